"""Format-specific source processors (PDF and tabular exports)."""

from ragloader.services.source_processors.base import TabularProcessor, read_csv
from ragloader.services.source_processors.csv_rows_processor import CsvRowProcessor
from ragloader.services.source_processors.pdf_processor import PDFProcessor
from ragloader.services.source_processors.shopify_processor import ShopifyProductProcessor
from ragloader.services.source_processors.webpage_processor import WebpageExportProcessor

__all__ = [
    "CsvRowProcessor",
    "PDFProcessor",
    "ShopifyProductProcessor",
    "TabularProcessor",
    "WebpageExportProcessor",
    "read_csv",
]
