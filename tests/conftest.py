"""Shared test fixtures for gradesheet."""

from pathlib import Path
from typing import Optional
from unittest.mock import MagicMock

import pytest

from gradesheet.config import ExtractionConfig
from gradesheet.models import Column, Table, Token

# ── Helpers ────────────────────────────────────────────────────────────


def make_token(
    text: str,
    x: float,
    y: float,
    width: float = 10.0,
    height: float = 8.0,
    font_size: float = 8.0,
) -> Token:
    """Create a Token with sane defaults."""
    return Token(text=text, x=x, y=y, width=width, height=height, font_size=font_size)


def make_table(rows: list[list[str]], header_row: Optional[int] = 0) -> Table:
    """Build a Table with evenly spaced columns from a list of cell rows."""
    width = len(rows[0]) if rows else 0
    columns = [Column(center=i * 20.0, width=10.0) for i in range(width)]
    return Table(columns=columns, rows=rows, header_row=header_row, strategy="grid")


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def default_cfg() -> ExtractionConfig:
    """Return a default ExtractionConfig."""
    return ExtractionConfig()


@pytest.fixture
def john_doe_tokens() -> list[Token]:
    """Two subject codes over one student row.

    Layout:
                   CS1001      CS1002        (y=0)
        JOHN DOE     A           B+          (y=10)
    """
    return [
        make_token("CS1001", 10, 0),
        make_token("CS1002", 30, 0),
        make_token("JOHN DOE", 5, 10),
        make_token("A", 12, 10),
        make_token("B+", 32, 10),
    ]


@pytest.fixture
def class_sheet_tokens() -> list[Token]:
    """A three-subject, three-student grade sheet with register numbers.

    Layout (x positions 10 / 60 / 140 / 180 / 220):
        REGISTER NUMBER   NAME         CS3401  CS3451  MA3391
        311521104001      ANITHA R     O       A+      RA
        311521104002      BALAJI K     B+      A       B
        311521104003      CHITRA S     U       C       A
    """
    header = [
        make_token("REGISTER NUMBER", 10, 0),
        make_token("NAME", 60, 0),
        make_token("CS3401", 140, 0),
        make_token("CS3451", 180, 0),
        make_token("MA3391", 220, 0),
    ]
    students = [
        ("311521104001", "ANITHA R", "O", "A+", "RA"),
        ("311521104002", "BALAJI K", "B+", "A", "B"),
        ("311521104003", "CHITRA S", "U", "C", "A"),
    ]
    body = []
    for i, (reg, name, g1, g2, g3) in enumerate(students, start=1):
        y = i * 12.0
        body += [
            make_token(reg, 10, y),
            make_token(name, 60, y),
            make_token(g1, 141, y),
            make_token(g2, 181, y),
            make_token(g3, 221, y),
        ]
    return header + body


def make_word(text: str, x: float, y: float, size: float = 8.0) -> dict:
    """A pdfplumber ``extract_words`` dict for a 10x8 word at (x, y)."""
    return {"text": text, "x0": x, "x1": x + 10, "top": y, "bottom": y + 8, "size": size}


def make_mock_pdf(pages: list[tuple[list[dict], str]]) -> MagicMock:
    """A stand-in for ``pdfplumber.open(...)`` from ``(words, text)`` per page."""
    mock_pages = []
    for words, text in pages:
        page = MagicMock(width=612.0, height=792.0)
        page.extract_words.return_value = words
        page.extract_text.return_value = text
        mock_pages.append(page)
    mock_pdf = MagicMock()
    mock_pdf.pages = mock_pages
    mock_pdf.metadata = {}
    mock_pdf.doc.is_extractable = True
    mock_pdf.__enter__ = MagicMock(return_value=mock_pdf)
    mock_pdf.__exit__ = MagicMock(return_value=False)
    return mock_pdf


@pytest.fixture
def transcript_pdf(tmp_path) -> tuple[Path, MagicMock]:
    """Two-page transcript: a JOHN DOE grade table on "Semester 1", then "Semester 2"."""
    words = [
        make_word("CS1001", 10, 0),
        make_word("CS1002", 30, 0),
        make_word("JOHN DOE", 5, 10),
        make_word("A", 12, 10),
        make_word("B+", 32, 10),
    ]
    mock_pdf = make_mock_pdf([(words, "Semester 1"), ([], "Semester 2")])
    f = tmp_path / "transcript.pdf"
    f.write_bytes(b"%PDF-1.4\n%%EOF")
    return f, mock_pdf
