"""Shared plumbing for tabular (CSV export) source processors.

A tabular upload is decoded once, parsed into header + row dicts, and
handed to the first registered processor whose :meth:`accepts` matches.
Each processor turns rows into one :class:`Document` per importable
record.
"""

from __future__ import annotations

import csv
import io
from abc import ABC, abstractmethod

from bs4 import BeautifulSoup

from ragloader.models.ingestion import Document


def read_csv(text: str) -> tuple[list[str], list[dict[str, str]]]:
    """Parse CSV text into ``(headers, rows)``.

    Cells are whitespace-trimmed, blank rows are skipped, and short rows
    are padded with empty strings so every row carries every header.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    try:
        headers = [h.strip() for h in next(reader)]
    except StopIteration:
        return [], []

    rows: list[dict[str, str]] = []
    for raw in reader:
        if not any(cell.strip() for cell in raw):
            continue
        cells = [c.strip() for c in raw[: len(headers)]]
        cells += [""] * (len(headers) - len(cells))
        rows.append(dict(zip(headers, cells)))
    return headers, rows


def html_to_text(html: str) -> str:
    """Flatten an HTML fragment to single-spaced plain text."""
    if not html:
        return ""
    return " ".join(BeautifulSoup(html, "html.parser").get_text(" ").split())


class TabularProcessor(ABC):
    """Base class for processors that import records from a CSV export."""

    #: Short label used in document ids and processing steps.
    kind: str = "csv"

    @abstractmethod
    def accepts(self, filename: str, headers: list[str]) -> bool:
        """Return ``True`` if this processor recognises the export format."""

    @abstractmethod
    def process(self, rows: list[dict[str, str]], filename: str, doc_id: str) -> list[Document]:
        """Convert parsed rows into documents; unusable rows are skipped.

        *doc_id* is the content-derived id of the whole upload.
        """
