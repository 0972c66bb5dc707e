"""Ingest stage — PDF file validation, metadata, tokens and page text.

Public API
----------
- :func:`ingest_pdf` — open + validate a PDF, return :class:`PdfMeta`
- :func:`read_document` — tokens and plain text per selected page
- :func:`extract_page_tokens` / :func:`extract_page_text`
- :func:`select_pages` — 1-based page numbers to zero-based indices
- :class:`IngestError` / :class:`InvalidPageNumber`
"""

from .ingest import (
    IngestError,
    InvalidPageNumber,
    PageInfo,
    PdfMeta,
    extract_page_text,
    extract_page_tokens,
    ingest_pdf,
    read_document,
    select_pages,
)

__all__ = [
    "IngestError",
    "InvalidPageNumber",
    "PageInfo",
    "PdfMeta",
    "extract_page_text",
    "extract_page_tokens",
    "ingest_pdf",
    "read_document",
    "select_pages",
]
