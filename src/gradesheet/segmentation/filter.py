from __future__ import annotations

import logging
from typing import FrozenSet, List, Optional, Sequence, Tuple, Union

from ..config import ExtractionConfig
from ..models import ConfidenceTier, SectionBoundary

log = logging.getLogger(__name__)

NAMED_THRESHOLDS = {"high": 0.8, "medium": 0.5, "low": 0.0}

Threshold = Union[float, int, str]


class LowConfidenceError(ValueError):
    """No boundary meets the requested confidence threshold."""

    def __init__(self, threshold: float, message: Optional[str] = None) -> None:
        self.threshold = threshold
        super().__init__(
            message
            or (
                f"No semester boundary meets confidence threshold {threshold:g}; "
                "try again with a lower confidence threshold"
            )
        )


def resolve_threshold(value: Threshold) -> float:
    """Normalise a threshold to a float in ``[0, 1]``.

    Accepts the names ``"high"``, ``"medium"`` and ``"low"`` as well as
    numbers and numeric strings.
    """
    if isinstance(value, str):
        key = value.strip().lower()
        if key in NAMED_THRESHOLDS:
            return NAMED_THRESHOLDS[key]
        try:
            number = float(key)
        except ValueError:
            raise ValueError(
                f"Unknown confidence threshold {value!r}; "
                f"expected a number or one of {sorted(NAMED_THRESHOLDS)}"
            ) from None
    else:
        number = float(value)
    if not 0.0 <= number <= 1.0:
        raise ValueError(f"Confidence threshold must be in [0, 1], got {number}")
    return number


def accepted_tiers(
    threshold: Threshold,
    cfg: ExtractionConfig,
) -> FrozenSet[ConfidenceTier]:
    """Tiers admitted at *threshold*, using ``cfg.confidence_breakpoints``.

    The highest breakpoint not above the threshold decides; below every
    breakpoint nothing is admitted.
    """
    t = resolve_threshold(threshold)
    for breakpoint, tiers in sorted(
        cfg.confidence_breakpoints, key=lambda bp: bp[0], reverse=True
    ):
        if t >= breakpoint:
            return frozenset(ConfidenceTier(name) for name in tiers)
    return frozenset()


def filter_boundaries(
    boundaries: Sequence[SectionBoundary],
    threshold: Threshold,
    cfg: ExtractionConfig,
) -> Tuple[List[SectionBoundary], List[SectionBoundary]]:
    """Split boundaries into ``(accepted, rejected)``.

    Raises
    ------
    LowConfidenceError
        If no boundary is accepted.
    """
    t = resolve_threshold(threshold)
    tiers = accepted_tiers(t, cfg)
    accepted = [b for b in boundaries if b.confidence_tier in tiers]
    rejected = [b for b in boundaries if b.confidence_tier not in tiers]
    log.info(
        "filter: threshold %.2f admits %s; %d accepted, %d rejected",
        t,
        sorted(tier.value for tier in tiers) or "nothing",
        len(accepted),
        len(rejected),
        extra={"stage": "filter", "page": None},
    )
    if not accepted:
        raise LowConfidenceError(t)
    return accepted, rejected
