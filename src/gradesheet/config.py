from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple

# Canonical grade-point table shared by record extraction and analysis.
DEFAULT_GRADE_POINTS: Dict[str, float] = {
    "O": 10.0,
    "A+": 9.0,
    "A": 8.0,
    "B+": 7.0,
    "B": 6.0,
    "C": 5.0,
    "P": 4.0,
    "RA": 0.0,
    "AB": 0.0,
    "UA": 0.0,
    "F": 0.0,
    "U": 0.0,
    "I": 0.0,
    "W": 0.0,
}

DEFAULT_PASS_GRADES: Tuple[str, ...] = ("O", "A+", "A", "B+", "B", "C", "P")
DEFAULT_FAIL_GRADES: Tuple[str, ...] = ("RA", "AB", "UA", "F", "U", "W", "I")

# (minimum threshold, accepted tier names), checked top to bottom.
DEFAULT_CONFIDENCE_BREAKPOINTS: Tuple[Tuple[float, Tuple[str, ...]], ...] = (
    (0.8, ("HIGH",)),
    (0.5, ("HIGH", "MEDIUM")),
    (0.3, ("HIGH", "MEDIUM", "LOW")),
    (0.0, ("HIGH", "MEDIUM", "LOW", "FALLBACK")),
)

GPA_DENOMINATORS = ("subjects", "graded")


class ConfigValidationError(ValueError):
    """Raised when an :class:`ExtractionConfig` field is out of range."""


@dataclass
class ExtractionConfig:
    """Tunables for table reconstruction, grade analysis and splitting."""

    # ── Row / column clustering ───────────────────────────────────────
    # Max Y distance (layout units) for a token to join an existing row.
    row_y_tolerance: float = 0.5
    # Max X distance for a position to merge into the running column.
    column_merge_tolerance: float = 3.0
    # Cell assignment accepts distance <= merge tolerance * this multiplier.
    cell_tolerance_mult: float = 1.5
    # Width reported for a column built from a single x position.
    min_column_width: float = 10.0

    # ── Semantic (name/grade proximity) table ─────────────────────────
    semantic_min_subject_codes: int = 3
    semantic_min_grades: int = 3
    semantic_y_tolerance: float = 3.0
    semantic_x_tolerance: float = 15.0
    semantic_row_tolerance: float = 2.5
    semantic_fallback_x_tolerance: float = 20.0

    # ── Coarse grid fallback ──────────────────────────────────────────
    grid_step: float = 0.5

    # ── Grades ────────────────────────────────────────────────────────
    pass_grades: Tuple[str, ...] = DEFAULT_PASS_GRADES
    fail_grades: Tuple[str, ...] = DEFAULT_FAIL_GRADES
    grade_points: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_GRADE_POINTS)
    )
    # "subjects": divide by subject columns in the table.
    # "graded": divide by grades that carry a point value.
    gpa_denominator: str = "subjects"

    # ── Segmentation ──────────────────────────────────────────────────
    max_semesters: int = 8
    confidence_breakpoints: Tuple[Tuple[float, Tuple[str, ...]], ...] = (
        DEFAULT_CONFIDENCE_BREAKPOINTS
    )

    # ── Processing limits ─────────────────────────────────────────────
    # None processes every page.
    max_pages: Optional[int] = None
    # Worker threads for page-parallel stages; 1 runs sequentially.
    max_workers: int = 1
    # Wall-clock budget in seconds for a whole run; None disables it.
    time_budget_s: Optional[float] = None

    def __post_init__(self) -> None:
        for name in (
            "row_y_tolerance",
            "column_merge_tolerance",
            "cell_tolerance_mult",
            "semantic_y_tolerance",
            "semantic_x_tolerance",
            "semantic_row_tolerance",
            "semantic_fallback_x_tolerance",
            "grid_step",
        ):
            _require_positive(name, getattr(self, name))

        _require_non_negative("min_column_width", self.min_column_width)

        for name in ("semantic_min_subject_codes", "semantic_min_grades"):
            if getattr(self, name) < 0:
                raise ConfigValidationError(f"{name} must be >= 0")

        if self.max_semesters < 1:
            raise ConfigValidationError("max_semesters must be >= 1")
        if self.max_workers < 1:
            raise ConfigValidationError("max_workers must be >= 1")
        if self.max_pages is not None and self.max_pages < 1:
            raise ConfigValidationError("max_pages must be >= 1 or None")
        if self.time_budget_s is not None:
            _require_positive("time_budget_s", self.time_budget_s)

        if self.gpa_denominator not in GPA_DENOMINATORS:
            raise ConfigValidationError(
                f"gpa_denominator must be one of {GPA_DENOMINATORS}, "
                f"got {self.gpa_denominator!r}"
            )

        overlap = set(self.pass_grades) & set(self.fail_grades)
        if overlap:
            raise ConfigValidationError(
                f"pass_grades and fail_grades overlap: {sorted(overlap)}"
            )

        for threshold, tiers in self.confidence_breakpoints:
            if not 0.0 <= threshold <= 1.0:
                raise ConfigValidationError(
                    f"confidence_breakpoints threshold {threshold} outside [0, 1]"
                )
            unknown = set(tiers) - {"HIGH", "MEDIUM", "LOW", "FALLBACK"}
            if unknown:
                raise ConfigValidationError(
                    f"confidence_breakpoints has unknown tiers {sorted(unknown)}"
                )

    @property
    def cell_tolerance(self) -> float:
        """Max X distance for assigning a token to an inferred column."""
        return self.column_merge_tolerance * self.cell_tolerance_mult

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ExtractionConfig":
        """Build a config from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})


def _require_positive(name: str, value: float) -> None:
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        raise ConfigValidationError(f"{name} must be > 0, got {value!r}")


def _require_non_negative(name: str, value: float) -> None:
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
        raise ConfigValidationError(f"{name} must be >= 0, got {value!r}")
