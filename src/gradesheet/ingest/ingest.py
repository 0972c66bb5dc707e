"""Ingest stage — PDF validation, page metadata, tokens and page text.

Centralises PDF opening so that downstream stages never call
``pdfplumber.open()`` directly.  The decoder's word dicts are converted
into :class:`~gradesheet.models.Token` objects here; everything past this
module works on tokens and plain text only.

Public API
----------
- :func:`ingest_pdf` — open + validate a PDF, return a :class:`PdfMeta`
- :func:`read_document` — metadata plus tokens and text for each page
- :func:`extract_page_tokens` / :func:`extract_page_text` — one page
- :func:`select_pages` — validate 1-based page numbers
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple

import pdfplumber

from ..config import ExtractionConfig
from ..models import Token, coerce_tokens

log = logging.getLogger(__name__)

# Extra word attributes requested from pdfplumber; ``size`` is the font size.
EXTRA_WORD_ATTRS = ["size"]


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------


@dataclass
class PageInfo:
    """Dimension metadata for a single PDF page."""

    index: int  # zero-based page number
    width: float  # points
    height: float  # points

    def to_dict(self) -> dict:
        """Serialize page info to a JSON-compatible dict."""
        return {
            "index": self.index,
            "width": round(self.width, 3),
            "height": round(self.height, 3),
        }


@dataclass
class PdfMeta:
    """PDF-level metadata returned by :func:`ingest_pdf`.

    Does not hold the ``pdfplumber.PDF`` handle open.
    """

    path: Path
    num_pages: int
    pages: List[PageInfo] = field(default_factory=list)
    file_size_bytes: int = 0
    pdf_metadata: dict = field(default_factory=dict)  # PDF info dict
    # zero-based indices actually read by read_document
    selected_pages: List[int] = field(default_factory=list)

    def page(self, index: int) -> PageInfo:
        """Return :class:`PageInfo` for *index* (zero-based)."""
        return self.pages[index]

    def to_dict(self) -> dict:
        """Serialize PDF metadata to a JSON-compatible dict."""
        d: dict = {
            "path": str(self.path),
            "num_pages": self.num_pages,
            "file_size_bytes": self.file_size_bytes,
        }
        if self.pdf_metadata:
            d["pdf_metadata"] = self.pdf_metadata
        if self.selected_pages:
            d["selected_pages"] = list(self.selected_pages)
        d["pages"] = [p.to_dict() for p in self.pages]
        return d


# ---------------------------------------------------------------------------
# Errors and validation helpers
# ---------------------------------------------------------------------------


class IngestError(Exception):
    """Raised when a PDF cannot be ingested."""


class InvalidPageNumber(ValueError):
    """A requested page number is outside ``[1, page_count]``."""

    def __init__(self, page_number: int, page_count: int) -> None:
        self.page_number = page_number
        self.page_count = page_count
        super().__init__(
            f"Invalid page number {page_number}: document has {page_count} page(s)"
        )


def _validate_pdf_path(pdf_path: Path) -> None:
    """Raise :class:`IngestError` for missing / empty / wrong-extension files."""
    if not pdf_path.exists():
        raise IngestError(f"File not found: {pdf_path}")
    if not pdf_path.is_file():
        raise IngestError(f"Not a file: {pdf_path}")
    if pdf_path.stat().st_size == 0:
        raise IngestError(f"Empty file: {pdf_path}")
    if pdf_path.suffix.lower() != ".pdf":
        raise IngestError(f"Not a PDF (suffix={pdf_path.suffix!r}): {pdf_path}")


def _check_extractable(pdf: Any, pdf_path: Path) -> None:
    # pdfminer sets is_extractable = False on password-protected documents.
    if hasattr(pdf, "doc") and hasattr(pdf.doc, "is_extractable"):
        if not pdf.doc.is_extractable:
            raise IngestError(
                f"PDF is password-protected or encrypted "
                f"(text extraction not permitted): {pdf_path}"
            )


def _clean_metadata(raw_meta: Optional[dict]) -> dict:
    """Coerce the PDF info dict to ``str -> str`` (some values are bytes)."""
    out = {}
    for k, v in (raw_meta or {}).items():
        if isinstance(v, bytes):
            v = v.decode("utf-8", errors="replace")
        out[str(k)] = str(v) if v is not None else ""
    return out


def _build_meta(pdf: Any, pdf_path: Path) -> PdfMeta:
    pages = [
        PageInfo(index=i, width=float(pg.width), height=float(pg.height))
        for i, pg in enumerate(pdf.pages)
    ]
    return PdfMeta(
        path=pdf_path.resolve(),
        num_pages=len(pages),
        pages=pages,
        file_size_bytes=pdf_path.stat().st_size,
        pdf_metadata=_clean_metadata(pdf.metadata),
    )


# ---------------------------------------------------------------------------
# Page selection
# ---------------------------------------------------------------------------


def select_pages(page_numbers: Iterable[int], page_count: int) -> List[int]:
    """Validate 1-based *page_numbers* and return zero-based indices.

    Order is preserved and duplicates are removed.

    Raises
    ------
    InvalidPageNumber
        For any number below 1 or above *page_count*.
    """
    indices: List[int] = []
    for n in page_numbers:
        if n < 1 or n > page_count:
            raise InvalidPageNumber(n, page_count)
        if n - 1 not in indices:
            indices.append(n - 1)
    return indices


# ---------------------------------------------------------------------------
# Per-page extraction
# ---------------------------------------------------------------------------


def _word_to_token_dict(w: dict) -> Optional[dict]:
    """Map a pdfplumber word dict to :meth:`Token.from_dict` keys."""
    try:
        x0 = float(w["x0"])
        top = float(w["top"])
        return {
            "text": w.get("text"),
            "x": x0,
            "y": top,
            "width": float(w.get("x1", x0)) - x0,
            "height": float(w.get("bottom", top)) - top,
            "font_size": float(w.get("size") or 0.0),
        }
    except (KeyError, TypeError, ValueError):
        return None


def extract_page_tokens(page: Any, page_index: int) -> List[Token]:
    """Extract positioned word tokens from one pdfplumber page.

    Malformed words (missing or non-numeric coordinates, blank text) are
    skipped; the count is logged at debug level.
    """
    words = page.extract_words(extra_attrs=EXTRA_WORD_ATTRS)
    raw = [d for d in (_word_to_token_dict(w) for w in words) if d is not None]
    tokens = coerce_tokens(raw)
    skipped = len(words) - len(tokens)
    if skipped:
        log.debug(
            "page %d: skipped %d malformed word(s)",
            page_index,
            skipped,
            extra={"stage": "ingest", "page": page_index},
        )
    return tokens


def extract_page_text(page: Any) -> str:
    """Plain text of one pdfplumber page (empty string when none)."""
    return page.extract_text() or ""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def ingest_pdf(pdf_path: Path | str) -> PdfMeta:
    """Open and validate a PDF, returning a :class:`PdfMeta` descriptor.

    Raises
    ------
    IngestError
        When the file is missing, empty, encrypted, or cannot be opened
        as a PDF.
    """
    pdf_path = Path(pdf_path)
    _validate_pdf_path(pdf_path)

    try:
        with pdfplumber.open(pdf_path) as pdf:
            _check_extractable(pdf, pdf_path)
            meta = _build_meta(pdf, pdf_path)
    except IngestError:
        raise
    except Exception as exc:
        raise IngestError(f"Cannot open PDF: {exc}") from exc

    log.info(
        "Ingested %s: %d pages, %.1f KB",
        pdf_path.name,
        meta.num_pages,
        meta.file_size_bytes / 1024,
    )
    return meta


def read_document(
    pdf_path: Path | str,
    cfg: Optional[ExtractionConfig] = None,
    pages: Optional[Sequence[int]] = None,
) -> Tuple[PdfMeta, List[List[Token]], List[str]]:
    """Read tokens and plain text for the selected pages of a PDF.

    Parameters
    ----------
    pdf_path : Path or str
        Path to the PDF file.
    cfg : ExtractionConfig, optional
        ``max_pages`` caps how many pages are read when *pages* is None.
    pages : sequence of int, optional
        1-based page numbers; every page when omitted.

    Returns
    -------
    (meta, tokens_per_page, texts_per_page)
        The two lists are aligned with each other, in selection order.

    Raises
    ------
    IngestError
        As for :func:`ingest_pdf`.
    InvalidPageNumber
        When *pages* names a page outside the document.
    """
    cfg = cfg or ExtractionConfig()
    pdf_path = Path(pdf_path)
    _validate_pdf_path(pdf_path)

    try:
        with pdfplumber.open(pdf_path) as pdf:
            _check_extractable(pdf, pdf_path)
            meta = _build_meta(pdf, pdf_path)
            if pages is not None:
                indices = select_pages(pages, meta.num_pages)
            else:
                indices = list(range(meta.num_pages))
                if cfg.max_pages is not None:
                    indices = indices[: cfg.max_pages]
            meta.selected_pages = list(indices)

            tokens_per_page: List[List[Token]] = []
            texts_per_page: List[str] = []
            for i in indices:
                page = pdf.pages[i]
                tokens_per_page.append(extract_page_tokens(page, i))
                texts_per_page.append(extract_page_text(page))
    except (IngestError, InvalidPageNumber):
        raise
    except Exception as exc:
        raise IngestError(f"Cannot open PDF: {exc}") from exc

    log.info(
        "Read %s: %d of %d page(s), %d token(s)",
        pdf_path.name,
        len(indices),
        meta.num_pages,
        sum(len(t) for t in tokens_per_page),
        extra={"stage": "ingest", "page": None},
    )
    return meta, tokens_per_page, texts_per_page
