"""Source processor for webpage / blog exports.

Each published, searchable page becomes one document whose content is a
labelled plain-text rendering of the page (title, author, SEO fields,
cleaned body, publication date, handle).  Pages are ranked with a
priority score that favours recent, long, SEO-annotated content.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

import structlog
from bs4 import BeautifulSoup
from dateutil import parser as dateutil_parser

from ragloader.models.ingestion import Document, ProductMetadata
from ragloader.services.source_processors.base import TabularProcessor

logger = structlog.get_logger(logger_name=__name__)

_MIN_CONTENT_CHARS = 50
_MAX_BODY_CHARS = 50_000
_MAX_TAGS = 10
_STOPWORDS = frozenset({"the", "and", "for", "with", "from"})
_KEYWORD_TAGS: list[tuple[str, str]] = [
    ("flower essence", "flower essence"),
    ("meditation", "meditation"),
    ("elixir", "elixir"),
    ("practice", "spiritual practice"),
    ("wallpaper", "digital wallpaper"),
]
_BLOCK_TAGS = ["div", "p", "h1", "h2", "h3", "h4", "h5", "h6"]

_SEO_TITLE = "Metafield: title_tag [string]"
_SEO_DESCRIPTION = "Metafield: description_tag [string]"
_HIDE_ON_SEARCH = "Metafield: custom.hide_on_search [boolean]"


def clean_html(html: str) -> str:
    """Render an HTML body as plain text, keeping paragraph and list structure.

    Block elements become line breaks and list items become bullet lines.
    """
    if not html:
        return ""
    if len(html) > _MAX_BODY_CHARS:
        html = html[:_MAX_BODY_CHARS]

    soup = BeautifulSoup(html, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for li in soup.find_all("li"):
        li.insert(0, "• ")
        li.append("\n")
    for block in soup.find_all(_BLOCK_TAGS):
        block.insert(0, "\n")
        block.append("\n")

    text = soup.get_text()
    text = re.sub(r"[ \t\xa0]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = text.strip()
    if len(text) > _MAX_BODY_CHARS:
        text = text[:_MAX_BODY_CHARS] + "..."
    return text


def months_since(value: str, now: datetime | None = None) -> float | None:
    """Return the age of a date string in 30-day months, or ``None`` if unparsable."""
    try:
        parsed = dateutil_parser.parse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return (now - parsed).total_seconds() / (60 * 60 * 24 * 30)


class WebpageExportProcessor(TabularProcessor):
    """Imports published pages from a webpage / blog CSV export."""

    kind = "webpage"

    def accepts(self, filename: str, headers: list[str]) -> bool:
        return "Body HTML" in headers and ("Published At" in headers or "Author" in headers)

    def process(self, rows: list[dict[str, str]], filename: str, doc_id: str) -> list[Document]:
        documents: list[Document] = []
        skipped = 0
        for row in rows:
            published = row.get("Published", "")
            if published and published.lower() != "true":
                skipped += 1
                continue
            if row.get(_HIDE_ON_SEARCH) == "TRUE":
                skipped += 1
                continue

            content = self._describe(row)
            if len(content) < _MIN_CONTENT_CHARS:
                skipped += 1
                continue

            handle = row.get("Handle") or row.get("ID") or f"{doc_id}-row-{len(documents)}"
            documents.append(
                Document(
                    id=f"webpage-{handle}",
                    filename=filename,
                    content=content,
                    metadata=ProductMetadata(
                        source="text",
                        original_format="csv",
                        processing_steps=["webpage_csv_import"],
                        product_type="webpage",
                        product_handle=row.get("Handle") or None,
                        product_title=row.get("Title") or None,
                        vendor=row.get("Author") or None,
                        product_category="blog_post",
                        tags=self.extract_tags(row),
                        priority_score=self.priority_score(row),
                    ),
                )
            )

        logger.info("webpage_rows_processed", filename=filename, pages=len(documents), skipped=skipped)
        return documents

    @staticmethod
    def _describe(row: dict[str, str]) -> str:
        parts: list[str] = []
        title = row.get("Title", "")
        if title:
            parts.append(f"Title: {title}\n\n")
        if row.get("Author"):
            parts.append(f"Author: {row['Author']}\n\n")
        seo_title = row.get(_SEO_TITLE, "")
        if seo_title and seo_title != title:
            parts.append(f"SEO Title: {seo_title}\n\n")
        if row.get(_SEO_DESCRIPTION):
            parts.append(f"Description: {row[_SEO_DESCRIPTION]}\n\n")
        body = clean_html(row.get("Body HTML", ""))
        if body:
            parts.append(f"Content:\n{body}\n\n")
        if row.get("Published At"):
            parts.append(f"Published: {row['Published At']}\n")
        if row.get("Handle"):
            parts.append(f"URL Handle: {row['Handle']}\n")
        return "".join(parts).strip()

    @staticmethod
    def extract_tags(row: dict[str, str]) -> list[str]:
        """Derive up to ten tags from the title, template suffix and body keywords."""
        tags: list[str] = []
        for word in row.get("Title", "").lower().split():
            if len(word) > 3 and word not in _STOPWORDS:
                tags.append(word)
        if row.get("Template Suffix"):
            tags.append(row["Template Suffix"].replace("-", " "))
        body = row.get("Body HTML", "").lower()
        for needle, tag in _KEYWORD_TAGS:
            if needle in body:
                tags.append(tag)
        return list(dict.fromkeys(tags))[:_MAX_TAGS]

    @staticmethod
    def priority_score(row: dict[str, str], now: datetime | None = None) -> int:
        """Score a page from 50 to 100 by recency, authorship, SEO fields and length."""
        score = 50

        date_str = row.get("Updated At") or row.get("Published At")
        if date_str:
            months = months_since(date_str, now)
            if months is not None:
                if months < 6:
                    score += 30
                elif months < 12:
                    score += 20
                elif months < 24:
                    score += 10

        if row.get("Author"):
            score += 10
        if row.get(_SEO_TITLE):
            score += 10
        if row.get(_SEO_DESCRIPTION):
            score += 10

        body_len = len(row.get("Body HTML", ""))
        if body_len > 5000:
            score += 20
        elif body_len > 2000:
            score += 10
        elif body_len > 500:
            score += 5

        return min(score, 100)
