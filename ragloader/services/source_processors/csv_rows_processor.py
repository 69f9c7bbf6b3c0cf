"""Fallback processor for generic CSV files.

Every non-empty row becomes a document whose content lists the row's
non-empty cells as ``column: value`` lines.
"""

from __future__ import annotations

import structlog

from ragloader.models.ingestion import Document, ProductMetadata
from ragloader.services.source_processors.base import TabularProcessor

logger = structlog.get_logger(logger_name=__name__)


class CsvRowProcessor(TabularProcessor):
    """Imports each row of an arbitrary CSV as its own record."""

    kind = "csv"

    def accepts(self, filename: str, headers: list[str]) -> bool:
        return bool(headers)

    def process(self, rows: list[dict[str, str]], filename: str, doc_id: str) -> list[Document]:
        documents: list[Document] = []
        for n, row in enumerate(rows, start=1):
            lines = [f"{column}: {value}" for column, value in row.items() if column and value]
            if not lines:
                continue
            documents.append(
                Document(
                    id=f"csv-{doc_id}-row-{n}",
                    filename=filename,
                    content="\n".join(lines),
                    metadata=ProductMetadata(
                        source="tabular",
                        original_format="csv",
                        processing_steps=["csv_row_import"],
                        product_type="csv_row",
                    ),
                )
            )
        logger.info("csv_rows_processed", filename=filename, rows=len(rows), documents=len(documents))
        return documents
