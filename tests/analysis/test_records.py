"""Tests for gradesheet.analysis.records — rows to StudentRecords and GPA."""

import pytest

from gradesheet.analysis.records import (
    compute_gpa,
    extract_records,
    find_header_row,
    grade_points,
)
from gradesheet.config import ExtractionConfig
from gradesheet.tables.strategies import grid_table_strategy

from conftest import make_table, make_token


class TestFindHeaderRow:
    def test_uses_recorded_header(self):
        t = make_table([["x", "CS1001"], ["ANN", "A"]], header_row=0)
        assert find_header_row(t) == 0

    def test_scans_when_unknown(self):
        t = make_table(
            [["RESULTS", ""], ["NAME", "CS1001"], ["ANN", "A"]], header_row=None
        )
        assert find_header_row(t) == 1

    def test_no_subject_codes(self):
        t = make_table([["a", "b"], ["c", "d"]], header_row=None)
        assert find_header_row(t) is None


class TestGradePoints:
    def test_lookup(self, default_cfg):
        pts = grade_points({"CS1001": "O", "CS1002": "B"}, default_cfg)
        assert pts == {"CS1001": 10.0, "CS1002": 6.0}

    def test_unknown_grade_has_no_entry(self, default_cfg):
        assert grade_points({"CS1001": "Z"}, default_cfg) == {}


class TestComputeGpa:
    def test_six_grades_example(self, default_cfg):
        grades = {f"CS100{i}": g for i, g in enumerate(["O", "A+", "A", "B+", "B", "C"])}
        pts = grade_points(grades, default_cfg)
        assert compute_gpa(pts, 6, default_cfg) == 7.5

    def test_subjects_denominator_counts_missing(self, default_cfg):
        # Two graded subjects in a four-subject table.
        assert compute_gpa({"a": 10.0, "b": 8.0}, 4, default_cfg) == 4.5

    def test_graded_denominator(self):
        cfg = ExtractionConfig(gpa_denominator="graded")
        assert compute_gpa({"a": 10.0, "b": 8.0}, 4, cfg) == 9.0

    def test_zero_denominator(self, default_cfg):
        assert compute_gpa({}, 0, default_cfg) == 0.0

    def test_rounded_to_two_places(self, default_cfg):
        assert compute_gpa({"a": 10.0, "b": 9.0, "c": 0.0}, 3, default_cfg) == 6.33


class TestExtractRecords:
    def test_john_doe_end_to_end(self, default_cfg, john_doe_tokens):
        (table,) = grid_table_strategy(john_doe_tokens, default_cfg)
        (rec,) = extract_records(table, default_cfg)
        assert rec.name == "JOHN DOE"
        assert rec.register_number is None
        assert rec.subject_grades == {"CS1001": "A", "CS1002": "B+"}
        assert rec.grade_points == {"CS1001": 8.0, "CS1002": 7.0}
        assert rec.gpa == 7.5

    def test_class_sheet(self, default_cfg, class_sheet_tokens):
        (table,) = grid_table_strategy(class_sheet_tokens, default_cfg)
        records = extract_records(table, default_cfg)
        assert [r.register_number for r in records] == [
            "311521104001",
            "311521104002",
            "311521104003",
        ]
        assert [r.name for r in records] == ["ANITHA R", "BALAJI K", "CHITRA S"]
        assert records[0].subject_grades == {"CS3401": "O", "CS3451": "A+", "MA3391": "RA"}
        assert [r.gpa for r in records] == [6.33, 7.0, 4.33]

    def test_rows_without_grades_skipped(self, default_cfg):
        t = make_table(
            [
                ["", "CS1001", "CS1002"],
                ["ANN", "A", ""],
                ["Total", "", ""],
            ]
        )
        records = extract_records(t, default_cfg)
        assert len(records) == 1
        assert records[0].subject_grades == {"CS1001": "A"}

    def test_grades_normalised(self, default_cfg):
        t = make_table([["", "CS1001"], ["ANN", " a+ "]])
        (rec,) = extract_records(t, default_cfg)
        assert rec.subject_grades == {"CS1001": "A+"}

    def test_name_not_taken_from_subject_column(self, default_cfg):
        t = make_table([["CS1001", "CS1002"], ["PASS", "ABC"]])
        (rec,) = extract_records(t, default_cfg)
        assert rec.name is None

    def test_no_header(self, default_cfg):
        t = make_table([["a", "b"], ["c", "d"]], header_row=None)
        assert extract_records(t, default_cfg) == []

    def test_stacked_header_blocks(self, default_cfg):
        t = make_table(
            [
                ["NAME", "CS1001", "CS1002"],
                ["ANN", "A", "B"],
                ["", "MA2001", "MA2002"],
                ["BEN", "O", "C"],
            ]
        )
        ann, ben = extract_records(t, default_cfg)
        assert (ann.name, ann.subject_grades) == ("ANN", {"CS1001": "A", "CS1002": "B"})
        assert (ben.name, ben.subject_grades) == ("BEN", {"MA2001": "O", "MA2002": "C"})

    def test_stacked_blocks_from_grid(self, default_cfg):
        toks = [
            make_token("CS1001", 20, 0),
            make_token("CS1002", 40, 0),
            make_token("ANN", 0, 10),
            make_token("A", 20, 10),
            make_token("B", 40, 10),
            make_token("MA2001", 20, 20),
            make_token("MA2002", 40, 20),
            make_token("BEN", 0, 30),
            make_token("O", 20, 30),
            make_token("C", 40, 30),
        ]
        (t,) = grid_table_strategy(toks, default_cfg)
        assert t.header_row == 0
        records = extract_records(t, default_cfg)
        assert [r.name for r in records] == ["ANN", "BEN"]
        assert records[1].subject_grades == {"MA2001": "O", "MA2002": "C"}
