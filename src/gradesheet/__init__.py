"""Grade-table extraction and semester segmentation for result PDFs.

Frequently-used symbols are re-exported here for convenience.
For specialised imports (individual table strategies, CSV exporters,
classifier regexes, etc.) import directly from the relevant
submodule — e.g.::

    from gradesheet.tables.strategies import semantic_table_strategy
    from gradesheet.export.csv_export import export_records_csv
    from gradesheet.segmentation.classifier import classify_page
"""

# ── Core models & config ──────────────────────────────────────────────

from .analysis import GradeAnalysis, analyze_grades, extract_metadata, extract_records
from .config import ConfigValidationError, ExtractionConfig
from .grouping import cluster_rows, infer_columns
from .ingest import IngestError, InvalidPageNumber, PdfMeta, ingest_pdf, read_document
from .models import (
    Column,
    ConfidenceTier,
    DocumentMetadata,
    OverallStatistics,
    Row,
    SectionBoundary,
    SemesterGroup,
    StudentRecord,
    SubjectStatistics,
    Table,
    Token,
)
from .pipeline import (
    DocumentResult,
    ExtractionResult,
    PageResult,
    ProcessingTimeout,
    SegmentationResult,
    StageResult,
    run_document,
    run_extraction,
    run_segmentation,
)
from .segmentation import (
    LowConfidenceError,
    detect_boundaries,
    filter_boundaries,
    group_sections,
)
from .tables import reconstruct_tables

__all__ = [
    # Models & config
    "ExtractionConfig",
    "ConfigValidationError",
    "Token",
    "Row",
    "Column",
    "Table",
    "StudentRecord",
    "SubjectStatistics",
    "OverallStatistics",
    "ConfidenceTier",
    "SectionBoundary",
    "SemesterGroup",
    "DocumentMetadata",
    # Geometry & tables
    "cluster_rows",
    "infer_columns",
    "reconstruct_tables",
    # Analysis
    "GradeAnalysis",
    "analyze_grades",
    "extract_records",
    "extract_metadata",
    # Segmentation
    "LowConfidenceError",
    "detect_boundaries",
    "filter_boundaries",
    "group_sections",
    # Ingest
    "IngestError",
    "InvalidPageNumber",
    "PdfMeta",
    "ingest_pdf",
    "read_document",
    # Pipeline
    "DocumentResult",
    "ExtractionResult",
    "PageResult",
    "ProcessingTimeout",
    "SegmentationResult",
    "StageResult",
    "run_document",
    "run_extraction",
    "run_segmentation",
]
