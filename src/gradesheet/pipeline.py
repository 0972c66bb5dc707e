"""Pipeline stage infrastructure: timing, stage-result recording, orchestration.

Two independent flows share one stage contract:

    extraction:   ingest → tables (per page) → analysis → metadata
    segmentation: classify (per page) → filter → group

Every stage produces a :class:`StageResult` so that callers (CLI, tests,
embedding scripts) see the same timing, counts and error records.  The
``run_*`` functions return structured results without performing any file
I/O beyond reading the PDF in :func:`run_document`.
"""

from __future__ import annotations

import logging
import time
import traceback
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Sequence

from .analysis.grades import analyze_grades
from .analysis.metadata import extract_metadata
from .config import ExtractionConfig
from .models import (
    DocumentMetadata,
    OverallStatistics,
    SectionBoundary,
    SemesterGroup,
    StudentRecord,
    SubjectStatistics,
    Table,
    Token,
)
from .segmentation.classifier import detect_boundaries
from .segmentation.filter import Threshold, filter_boundaries, resolve_threshold
from .segmentation.grouper import group_sections
from .tables.strategies import reconstruct_tables

logger = logging.getLogger("gradesheet.pipeline")

NO_TABLE_DETECTED = "no_table_detected"

# ── Skip reasons (exhaustive enumeration) ──────────────────────────────


class SkipReason(str, Enum):
    """Why a pipeline stage was skipped."""

    no_pages = "no_pages"
    no_tokens = "no_tokens"
    no_tables = "no_tables"
    no_text = "no_text"


class ProcessingTimeout(TimeoutError):
    """The configured wall-clock budget ran out before the run finished."""


# ── Stage result ───────────────────────────────────────────────────────


@dataclass
class StageResult:
    """Outcome record for a single pipeline stage."""

    stage: str
    ran: bool = False
    status: str = "skipped"  # "success" | "skipped" | "failed"
    skip_reason: Optional[str] = None
    duration_ms: int = 0
    counts: Dict[str, Any] = field(default_factory=dict)
    inputs: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize stage result to a JSON-compatible dict."""
        d: Dict[str, Any] = {
            "stage": self.stage,
            "ran": self.ran,
            "status": self.status,
        }
        if self.skip_reason is not None:
            d["skip_reason"] = self.skip_reason
        d["duration_ms"] = self.duration_ms
        if self.counts:
            d["counts"] = self.counts
        if self.inputs:
            d["inputs"] = self.inputs
        if self.error is not None:
            d["error"] = self.error
        return d


@contextmanager
def run_stage(
    stage: str,
    inputs: Dict[str, Any] | None = None,
    skip_reason: Optional[str] = None,
) -> Generator[StageResult, None, None]:
    """Context manager that wraps a pipeline stage with timing.

    Usage::

        with run_stage("tables", {"tokens": 120}) as sr:
            if sr.ran:
                # … do the work …
                sr.counts["tables"] = 1

    A stage given a *skip_reason* is yielded with ``ran=False`` and the
    caller should not do the work.  Exceptions raised inside the block
    are recorded on the result and re-raised.
    """
    sr = StageResult(stage=stage)
    if inputs:
        sr.inputs = inputs

    if skip_reason is not None:
        sr.skip_reason = skip_reason
        yield sr
        return

    sr.ran = True
    t0 = time.perf_counter()
    try:
        yield sr
        if sr.status not in ("success", "failed"):
            sr.status = "success"
    except Exception as exc:
        sr.status = "failed"
        sr.error = {
            "type": type(exc).__name__,
            "message": str(exc),
            "stack": traceback.format_exc(),
        }
        # Re-raise so the outer handler can decide fallback policy.
        raise
    finally:
        sr.duration_ms = int((time.perf_counter() - t0) * 1000)


class _Deadline:
    """Wall-clock budget checked at page boundaries."""

    def __init__(self, budget_s: Optional[float]) -> None:
        self.budget_s = budget_s
        self._t0 = time.monotonic()

    def check(self, where: str) -> None:
        if self.budget_s is None:
            return
        elapsed = time.monotonic() - self._t0
        if elapsed > self.budget_s:
            raise ProcessingTimeout(
                f"Time budget of {self.budget_s:g}s exceeded at {where} "
                f"({elapsed:.2f}s elapsed)"
            )


# ── Page-level extraction ──────────────────────────────────────────────


@dataclass
class PageResult:
    """Tables reconstructed from a single page."""

    page: int = 0
    tables: List[Table] = field(default_factory=list)
    strategy: str = ""
    stages: Dict[str, StageResult] = field(default_factory=dict)
    error: Optional[str] = None

    def to_summary_dict(self) -> Dict[str, Any]:
        """Return a lightweight summary suitable for JSON serialisation."""
        d: Dict[str, Any] = {
            "page": self.page,
            "strategy": self.strategy,
            "tables": len(self.tables),
            "stages": {n: sr.to_dict() for n, sr in self.stages.items()},
        }
        if self.error:
            d["error"] = self.error
        return d


def extract_page(
    tokens: Sequence[Token],
    page: int,
    cfg: ExtractionConfig,
) -> PageResult:
    """Run the table strategy chain over one page's tokens.

    A page with no table gets ``error == "no_table_detected"``; that is a
    value, not an exception.
    """
    pr = PageResult(page=page)
    skip = None if tokens else SkipReason.no_tokens.value
    with run_stage("tables", {"tokens": len(tokens)}, skip_reason=skip) as sr:
        if sr.ran:
            pr.tables, pr.strategy = reconstruct_tables(tokens, cfg, page=page)
            sr.counts = {
                "tables": len(pr.tables),
                "rows": sum(len(t.rows) for t in pr.tables),
            }
            if pr.strategy:
                sr.counts["strategy"] = pr.strategy
    pr.stages["tables"] = sr
    if not pr.tables:
        pr.error = NO_TABLE_DETECTED
        logger.debug(
            "no table detected", extra={"stage": "tables", "page": page}
        )
    return pr


# ── Document-level extraction ──────────────────────────────────────────


@dataclass
class ExtractionResult:
    """Tables, text and grade statistics for a whole document."""

    tables: List[Table] = field(default_factory=list)
    full_text: str = ""
    records: List[StudentRecord] = field(default_factory=list)
    subjects: List[SubjectStatistics] = field(default_factory=list)
    overall: OverallStatistics = field(default_factory=OverallStatistics)
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    pages: List[PageResult] = field(default_factory=list)
    stages: Dict[str, StageResult] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        d: Dict[str, Any] = {
            "tables": [t.to_dict() for t in self.tables],
            "full_text": self.full_text,
            "records": [r.to_dict() for r in self.records],
            "subjects": [s.to_dict() for s in self.subjects],
            "overall": self.overall.to_dict(),
            "metadata": self.metadata.to_dict(),
            "pages": [p.to_summary_dict() for p in self.pages],
            "stages": {n: sr.to_dict() for n, sr in self.stages.items()},
        }
        if self.error:
            d["error"] = self.error
        return d


def join_page_texts(texts: Sequence[str], page_numbers: Sequence[int]) -> str:
    """Join page texts with ``--- Page N ---`` separators (N is 1-based)."""
    parts: List[str] = []
    for i, (text, number) in enumerate(zip(texts, page_numbers)):
        if i > 0:
            parts.append(f"\n\n--- Page {number} ---\n\n")
        parts.append(text)
    return "".join(parts)


def run_extraction(
    tokens_per_page: Sequence[Sequence[Token]],
    texts_per_page: Sequence[str] | None = None,
    cfg: ExtractionConfig | None = None,
    page_indices: Sequence[int] | None = None,
) -> ExtractionResult:
    """Reconstruct tables on every page and analyse the grades found.

    Parameters
    ----------
    tokens_per_page : sequence of token lists
        One entry per page, in document order.
    texts_per_page : sequence of str, optional
        Plain page text, joined into :attr:`ExtractionResult.full_text`.
    cfg : ExtractionConfig, optional
        ``max_pages``, ``max_workers`` and ``time_budget_s`` apply here.
    page_indices : sequence of int, optional
        Zero-based page index of each entry; defaults to ``0..n-1``.

    Raises
    ------
    ProcessingTimeout
        When ``cfg.time_budget_s`` runs out between pages.
    """
    if cfg is None:
        cfg = ExtractionConfig()
    if page_indices is None:
        page_indices = list(range(len(tokens_per_page)))
    texts = list(texts_per_page) if texts_per_page is not None else []

    n = len(tokens_per_page)
    if cfg.max_pages is not None:
        n = min(n, cfg.max_pages)
    deadline = _Deadline(cfg.time_budget_s)

    def _page(i: int) -> PageResult:
        deadline.check(f"page {page_indices[i]}")
        return extract_page(tokens_per_page[i], page_indices[i], cfg)

    if cfg.max_workers > 1 and n > 1:
        with ThreadPoolExecutor(max_workers=cfg.max_workers) as pool:
            futures = [pool.submit(_page, i) for i in range(n)]
            pages = [f.result() for f in futures]
    else:
        pages = [_page(i) for i in range(n)]
    deadline.check("end of table extraction")

    result = ExtractionResult(pages=pages)
    result.tables = [t for pr in pages for t in pr.tables]
    result.full_text = join_page_texts(
        texts[:n], [p + 1 for p in page_indices[:n]]
    )

    skip = None if result.tables else SkipReason.no_tables.value
    with run_stage("analysis", {"tables": len(result.tables)}, skip) as sr:
        if sr.ran:
            analysis = analyze_grades(result.tables, cfg)
            result.records = analysis.records
            result.subjects = analysis.subjects
            result.overall = analysis.overall
            sr.counts = {
                "records": len(result.records),
                "subjects": len(result.subjects),
            }
    result.stages["analysis"] = sr

    skip = None if result.full_text.strip() else SkipReason.no_text.value
    with run_stage("metadata", {"chars": len(result.full_text)}, skip) as sr:
        if sr.ran:
            result.metadata = extract_metadata(result.full_text)
            found = [k for k, v in result.metadata.to_dict().items() if v is not None]
            sr.counts = {"fields_found": len(found)}
    result.stages["metadata"] = sr

    if not result.tables:
        result.error = NO_TABLE_DETECTED
        logger.warning(
            "no table detected on any of %d page(s)",
            n,
            extra={"stage": "tables", "page": None},
        )
    logger.info(
        "run_extraction: %d page(s), %d table(s), %d record(s)",
        n,
        len(result.tables),
        len(result.records),
        extra={"stage": "analysis", "page": None},
    )
    return result


# ── Semester segmentation ──────────────────────────────────────────────


@dataclass
class SegmentationResult:
    """Semester groups for a document plus the boundaries behind them."""

    groups: List[SemesterGroup] = field(default_factory=list)
    boundaries: List[SectionBoundary] = field(default_factory=list)
    rejected_boundaries: List[SectionBoundary] = field(default_factory=list)
    threshold: float = 0.0
    total_pages: int = 0
    stages: Dict[str, StageResult] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "threshold": self.threshold,
            "total_pages": self.total_pages,
            "groups": [g.to_dict() for g in self.groups],
            "boundaries": [b.to_dict() for b in self.boundaries],
            "rejected_boundaries": [b.to_dict() for b in self.rejected_boundaries],
            "stages": {n: sr.to_dict() for n, sr in self.stages.items()},
        }


def run_segmentation(
    page_texts: Sequence[str],
    threshold: Threshold = "medium",
    cfg: ExtractionConfig | None = None,
    force_fallback: bool = False,
) -> SegmentationResult:
    """Partition a document into contiguous semester page ranges.

    ``max_pages`` and ``time_budget_s`` apply here as in
    :func:`run_extraction`.

    Raises
    ------
    LowConfidenceError
        When no detected boundary meets *threshold*.
    ProcessingTimeout
        When ``cfg.time_budget_s`` runs out.
    ValueError
        When *page_texts* is empty or *threshold* is not understood.
    """
    if cfg is None:
        cfg = ExtractionConfig()
    if not page_texts:
        raise ValueError("Cannot segment a document with no pages")

    if cfg.max_pages is not None:
        page_texts = page_texts[: cfg.max_pages]
    total = len(page_texts)
    result = SegmentationResult(
        threshold=resolve_threshold(threshold), total_pages=total
    )
    deadline = _Deadline(cfg.time_budget_s)

    with run_stage("classify", {"pages": total}) as sr:
        result.stages["classify"] = sr
        boundaries = detect_boundaries(
            page_texts,
            cfg,
            force_fallback,
            before_page=lambda i: deadline.check(f"page {i}"),
        )
        sr.counts = {"boundaries": len(boundaries)}
    deadline.check("end of classification")
    result.boundaries = boundaries

    with run_stage("filter", {"boundaries": len(boundaries)}) as sr:
        result.stages["filter"] = sr
        accepted, rejected = filter_boundaries(boundaries, result.threshold, cfg)
        sr.counts = {"accepted": len(accepted), "rejected": len(rejected)}

    with run_stage("group", {"accepted": len(accepted)}) as sr:
        groups, dropped = group_sections(accepted, total)
        sr.counts = {"groups": len(groups), "dropped": len(dropped)}
    result.stages["group"] = sr

    result.groups = groups
    result.rejected_boundaries = rejected + dropped
    logger.info(
        "run_segmentation: %d page(s) -> %d semester group(s)",
        total,
        len(groups),
        extra={"stage": "group", "page": None},
    )
    return result


# ── Document-level entry point ─────────────────────────────────────────


@dataclass
class DocumentResult:
    """Aggregated result for a whole-document run."""

    pdf_path: Optional[Path] = None
    num_pages: int = 0
    stages: Dict[str, StageResult] = field(default_factory=dict)
    extraction: Optional[ExtractionResult] = None
    segmentation: Optional[SegmentationResult] = None

    def to_summary_dict(self) -> Dict[str, Any]:
        """Serialize document result to a summary dict."""
        d: Dict[str, Any] = {
            "pdf": str(self.pdf_path) if self.pdf_path else None,
            "num_pages": self.num_pages,
            "stages": {n: sr.to_dict() for n, sr in self.stages.items()},
        }
        if self.extraction is not None:
            d["extraction"] = self.extraction.to_dict()
        if self.segmentation is not None:
            d["segmentation"] = self.segmentation.to_dict()
        return d


def run_document(
    pdf_path: Path | str,
    cfg: ExtractionConfig | None = None,
    pages: List[int] | None = None,
    extract: bool = True,
    threshold: Optional[Threshold] = None,
    force_fallback: bool = False,
) -> DocumentResult:
    """Read a PDF and run extraction and/or semester segmentation.

    Parameters
    ----------
    pdf_path : Path or str
        Path to the source PDF.
    cfg : ExtractionConfig, optional
        Pipeline configuration.
    pages : list[int], optional
        1-based page numbers.  ``None`` = all pages (up to ``max_pages``).
    extract : bool
        Run table extraction and grade analysis.
    threshold : float or str, optional
        Run segmentation at this confidence threshold; skipped when None.
        Page indices in the groups refer to positions in the page
        selection.
    force_fallback : bool
        Add page-based fallback boundaries even when markers are found.

    Raises
    ------
    IngestError, InvalidPageNumber
        From the ingest stage.
    LowConfidenceError, ProcessingTimeout
        From the later stages.
    """
    from .ingest import read_document

    if cfg is None:
        cfg = ExtractionConfig()
    pdf_path = Path(pdf_path)

    dr = DocumentResult(pdf_path=pdf_path)
    with run_stage("ingest", {"pages": pages} if pages else None) as sr:
        meta, tokens_per_page, texts_per_page = read_document(pdf_path, cfg, pages)
        sr.counts = {
            "pages_read": len(meta.selected_pages),
            "tokens": sum(len(t) for t in tokens_per_page),
        }
    dr.stages["ingest"] = sr
    dr.num_pages = meta.num_pages

    if extract:
        dr.extraction = run_extraction(
            tokens_per_page, texts_per_page, cfg, meta.selected_pages
        )
    if threshold is not None:
        dr.segmentation = run_segmentation(
            texts_per_page, threshold, cfg, force_fallback
        )

    logger.info(
        "run_document %s: %d of %d page(s)",
        pdf_path.name,
        len(meta.selected_pages),
        meta.num_pages,
        extra={"stage": "ingest", "page": None},
    )
    return dr
