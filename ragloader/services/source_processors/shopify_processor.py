"""Source processor for Shopify product exports.

Turns each active product row into a natural-language product description
with product metadata attached.  Shopify exports one row per variant; only
the first row of a handle carries the title, so later variant rows without
a title are skipped, but their price is still used if the first row had
none.
"""

from __future__ import annotations

import re

import structlog

from ragloader.models.ingestion import Document, ProductMetadata
from ragloader.services.source_processors.base import TabularProcessor, html_to_text

logger = structlog.get_logger(logger_name=__name__)

_PRICE_CHARS = re.compile(r"[^0-9.]")

# (column, label) pairs rendered after the core product lines, in order.
_LABELLED_FIELDS: list[tuple[str, str]] = [
    ("Metafield: custom.how_to_use [multi_line_text_field]", "How to Use"),
    ("Metafield: custom.ingredients [multi_line_text_field]", "Ingredients"),
    ("Metafield: custom.summary_blurb [multi_line_text_field]", "Summary"),
    ("Metafield: custom.smells_like [multi_line_text_field]", "Smells Like"),
    ("Metafield: custom.essences_inside_names [list.single_line_text_field]", "Essences"),
    (
        "Metafield: custom.essences_inside_descriptors [list.single_line_text_field]",
        "Essence Descriptions",
    ),
    ("Metafield: title_tag [string]", "SEO Title"),
    ("Metafield: description_tag [string]", "SEO Description"),
    ("URL", "Product URL"),
    ("Custom Collections", "Custom Collections"),
    ("Smart Collections", "Smart Collections"),
]


def parse_price(raw: str) -> float | None:
    """Parse a price cell such as ``"$42.00"``; returns ``None`` if unparsable."""
    cleaned = _PRICE_CHARS.sub("", raw or "")
    try:
        return float(cleaned)
    except ValueError:
        return None


class ShopifyProductProcessor(TabularProcessor):
    """Imports active products from a Shopify product CSV export.

    Parameters
    ----------
    default_vendor:
        Vendor recorded on every product; the export has no vendor column.
    """

    kind = "shopify"

    def __init__(self, default_vendor: str) -> None:
        self._vendor = default_vendor

    def accepts(self, filename: str, headers: list[str]) -> bool:
        if "shopify" in filename.lower():
            return True
        return "Handle" in headers and "Variant Price" in headers

    def process(self, rows: list[dict[str, str]], filename: str, doc_id: str) -> list[Document]:
        prices: dict[str, float] = {}
        for row in rows:
            handle = row.get("Handle", "")
            if handle not in prices:
                price = parse_price(row.get("Variant Price", ""))
                if price is not None:
                    prices[handle] = price

        documents: list[Document] = []
        skipped = 0
        for row in rows:
            status = row.get("Status", "")
            title = row.get("Title", "")
            handle = row.get("Handle", "")
            if status and status.lower() != "active":
                skipped += 1
                continue
            if not title:
                skipped += 1
                continue

            tags = [t.strip() for t in row.get("Tags", "").split(",") if t.strip()]
            documents.append(
                Document(
                    id=f"shopify-{handle or f'{doc_id}-row-{len(documents)}'}",
                    filename=filename,
                    content=self._describe(row),
                    metadata=ProductMetadata(
                        source="shopify",
                        original_format="csv",
                        processing_steps=["shopify_csv_import"],
                        product_type="shopify_product",
                        product_handle=handle or None,
                        product_title=title,
                        vendor=self._vendor,
                        product_category=row.get("Type") or None,
                        tags=tags,
                        price=prices.get(handle),
                        sku=handle or None,
                        in_stock=True,
                        url=row.get("URL") or None,
                        priority_score=100,
                    ),
                )
            )

        logger.info("shopify_rows_processed", filename=filename, products=len(documents), skipped=skipped)
        return documents

    @staticmethod
    def _describe(row: dict[str, str]) -> str:
        parts = [f"Product: {row['Title']}"]
        if row.get("Type"):
            parts.append(f"Category: {row['Type']}")
        description = html_to_text(row.get("Body HTML", ""))
        if description:
            parts.append(f"Description: {description}")
        if row.get("Variant Price"):
            parts.append(f"Price: ${row['Variant Price'].lstrip('$')}")
        if row.get("Tags"):
            parts.append(f"Tags: {row['Tags']}")
        for column, label in _LABELLED_FIELDS:
            if row.get(column):
                parts.append(f"{label}: {row[column]}")
        return "\n".join(parts)
