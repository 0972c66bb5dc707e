"""Command-line entry point.

Usage::

    gradesheet extract results.pdf --out exports/
    gradesheet extract results.pdf --pages 1,3-4 --json
    gradesheet split transcript.pdf --threshold high
    gradesheet split transcript.pdf --threshold low --force-fallback
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .config import ConfigValidationError, ExtractionConfig
from .export import export_extraction, export_groups_csv
from .ingest import IngestError, InvalidPageNumber
from .pipeline import ProcessingTimeout, run_document
from .segmentation import LowConfidenceError

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2


def parse_page_spec(spec: str) -> List[int]:
    """Parse ``"1,3,5-7"`` into ``[1, 3, 5, 6, 7]`` (1-based, in order)."""
    pages: List[int] = []
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            lo, hi = (int(p) for p in part.split("-", 1))
            if hi < lo:
                raise argparse.ArgumentTypeError(f"Bad page range {part!r}")
            pages.extend(range(lo, hi + 1))
        else:
            pages.append(int(part))
    if not pages:
        raise argparse.ArgumentTypeError(f"No pages in {spec!r}")
    return pages


def _page_spec(value: str) -> List[int]:
    try:
        return parse_page_spec(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Bad page list {value!r}: {exc}") from exc


def _load_config(args: argparse.Namespace) -> ExtractionConfig:
    data = {}
    if args.config:
        try:
            raw = Path(args.config).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigValidationError(
                f"cannot read config file {args.config}: {exc.strerror or exc}"
            ) from exc
        data = json.loads(raw)
    if args.max_pages is not None:
        data["max_pages"] = args.max_pages
    if args.workers is not None:
        data["max_workers"] = args.workers
    if args.time_budget is not None:
        data["time_budget_s"] = args.time_budget
    return ExtractionConfig.from_dict(data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gradesheet",
        description="Extract grade tables from result PDFs and split "
        "transcripts into semesters",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("pdf", type=Path, help="Path to PDF")
    common.add_argument(
        "--pages", type=_page_spec, help="1-based pages, e.g. 1,3-5 (default: all)"
    )
    common.add_argument("--out", type=Path, help="Directory for CSV/JSON exports")
    common.add_argument("--config", type=Path, help="JSON file of config overrides")
    common.add_argument("--max-pages", type=int, help="Process at most N pages")
    common.add_argument("--workers", type=int, help="Worker threads per stage")
    common.add_argument(
        "--time-budget", type=float, help="Wall-clock budget in seconds"
    )
    common.add_argument(
        "--json", action="store_true", help="Print the full result as JSON"
    )

    sub.add_parser(
        "extract",
        parents=[common],
        help="Reconstruct grade tables and compute statistics",
    )
    split = sub.add_parser(
        "split",
        parents=[common],
        help="Partition a transcript into semester page ranges",
    )
    split.add_argument(
        "--threshold",
        default="medium",
        help="high, medium, low or a number in [0, 1] (default: medium)",
    )
    split.add_argument(
        "--force-fallback",
        action="store_true",
        help="Add page-based fallback boundaries even when markers are found",
    )
    return parser


def _print_extraction(result) -> None:
    print(f"Tables: {len(result.tables)}")
    print(f"Records: {len(result.records)}")
    if result.error:
        print(f"Error: {result.error}")
        return
    for s in result.subjects:
        print(
            f"  {s.subject_code}: {s.passed}/{s.total_students} passed "
            f"({s.pass_percentage:.2f}%)"
        )
    print(f"Overall pass rate: {result.overall.overall_pass_rate:.2f}%")


def _print_segmentation(result) -> None:
    print(f"Semesters: {len(result.groups)} over {result.total_pages} page(s)")
    for g in result.groups:
        print(
            f"  Semester {g.semester_number}: pages {g.start_page + 1}-"
            f"{g.end_page + 1} ({g.confidence_tier.value})"
        )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = _load_config(args)
        splitting = args.command == "split"
        dr = run_document(
            args.pdf,
            cfg,
            pages=args.pages,
            extract=not splitting,
            threshold=args.threshold if splitting else None,
            force_fallback=splitting and args.force_fallback,
        )
    except (ConfigValidationError, InvalidPageNumber, LowConfidenceError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE
    except (IngestError, ProcessingTimeout) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except ValueError as exc:
        # Unparseable threshold or config file contents.
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    stem = args.pdf.stem
    if splitting:
        if args.out:
            args.out.mkdir(parents=True, exist_ok=True)
            path = export_groups_csv(
                dr.segmentation.groups, args.out / f"{stem}_groups.csv"
            )
            log.info("wrote %s", path)
        if args.json:
            print(json.dumps(dr.segmentation.to_dict(), indent=2))
        else:
            _print_segmentation(dr.segmentation)
        return EXIT_OK

    if args.out:
        written = export_extraction(dr.extraction, args.out, stem)
        log.info("wrote %s", ", ".join(written.values()))
    if args.json:
        print(json.dumps(dr.extraction.to_dict(), indent=2))
    else:
        _print_extraction(dr.extraction)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
