"""Token classification for grade sheets.

Every token gets exactly one :class:`TokenKind`, decided by a fixed
priority: subject code, grade, register number, name, other.  The first
classifier that accepts the text wins, so a token is never counted twice.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, List, Tuple

from ..models import Row, Token

RE_SUBJECT_CODE = re.compile(r"[A-Z]{2,3}\d{4}[A-Z]?")
RE_GRADE = re.compile(r"O|[A-F][+\-]?|P|U|I|W|AB|UA|RA")
RE_REGISTER_NUMBER = re.compile(r"\d{12}")
RE_NAME_LIKE = re.compile(r"[A-Z][A-Z .]*")

# Whole words that disqualify an upper-case run from being a student name.
NAME_STOP_WORDS = frozenset(
    {
        "UNIVERSITY",
        "COLLEGE",
        "INSTITUTE",
        "DEPARTMENT",
        "EXAMINATION",
        "EXAMINATIONS",
        "GRADE",
        "GRADES",
        "SUBJECT",
        "SUBJECTS",
        "CODE",
        "NAME",
        "REGISTER",
        "NUMBER",
        "SEMESTER",
        "RESULT",
        "RESULTS",
        # Result-column and summary vocabulary.
        "PASS",
        "PASSED",
        "FAIL",
        "FAILED",
        "ABSENT",
        "WITHHELD",
        "STATUS",
        "REMARKS",
        "TOTAL",
        "MARKS",
        "CREDIT",
        "CREDITS",
        "GPA",
        "SGPA",
        "CGPA",
        "ARREAR",
        "ARREARS",
    }
)


class TokenKind(str, Enum):
    """Semantic category of a grade-sheet token."""

    SUBJECT_CODE = "subject_code"
    GRADE = "grade"
    REGISTER_NUMBER = "register_number"
    NAME = "name"
    OTHER = "other"


def is_subject_code(text: str) -> bool:
    return RE_SUBJECT_CODE.fullmatch(text.strip()) is not None


def is_grade(text: str) -> bool:
    return RE_GRADE.fullmatch(text.strip()) is not None


def is_register_number(text: str) -> bool:
    return RE_REGISTER_NUMBER.fullmatch(text.strip()) is not None


def is_name_like(text: str) -> bool:
    """Upper-case alphabetic run (spaces and dots allowed), length > 2."""
    s = text.strip()
    return len(s) > 2 and RE_NAME_LIKE.fullmatch(s) is not None


def is_name_text(text: str) -> bool:
    """Name-like text that contains no header stop-word."""
    if not is_name_like(text):
        return False
    words = re.split(r"[ .]+", text.strip())
    return not any(w in NAME_STOP_WORDS for w in words)


def classify_text(text: str) -> TokenKind:
    """Classify raw text by fixed priority."""
    if is_subject_code(text):
        return TokenKind.SUBJECT_CODE
    if is_grade(text):
        return TokenKind.GRADE
    if is_register_number(text):
        return TokenKind.REGISTER_NUMBER
    if is_name_text(text):
        return TokenKind.NAME
    return TokenKind.OTHER


def classify_token(token: Token) -> TokenKind:
    """Classify a token by its text."""
    return classify_text(token.text)


def classify_tokens(tokens: Iterable[Token]) -> List[Tuple[Token, TokenKind]]:
    """Tag each token with its kind, preserving input order."""
    return [(t, classify_token(t)) for t in tokens]


def is_table_like_row(row: Row) -> bool:
    """True when a row plausibly belongs to a grade table.

    A row qualifies with more than one token, or with a single token that
    is a subject code, register number, grade, the word "grade", or any
    upper-case name-like run.
    """
    if len(row.tokens) > 1:
        return True
    for tok in row.tokens:
        if classify_token(tok) is not TokenKind.OTHER:
            return True
        if "grade" in tok.text.lower() or is_name_like(tok.text):
            return True
    return False
