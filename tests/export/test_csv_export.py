"""Tests for gradesheet.export — CSV and JSON writers."""

import csv
import json

from gradesheet.export import (
    _safe_str,
    export_extraction,
    export_groups_csv,
    export_records_csv,
    export_statistics_json,
    export_tables_csv,
)
from gradesheet.models import (
    ConfidenceTier,
    OverallStatistics,
    SemesterGroup,
    StudentRecord,
    SubjectStatistics,
)
from gradesheet.pipeline import run_extraction

from conftest import make_table


def _read_csv(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


def _record(reg, name, grades, gpa):
    return StudentRecord(
        register_number=reg,
        name=name,
        subject_grades=grades,
        grade_points={},
        gpa=gpa,
    )


class TestSafeStr:
    def test_none(self):
        assert _safe_str(None) == ""

    def test_value(self):
        assert _safe_str(3) == "3"


class TestExportTablesCsv:
    def test_rows_with_identity_columns(self, tmp_path):
        t1 = make_table([["CS1001", "CS1002"], ["A", "B+"]])
        t1.page = 0
        t1.strategy = "grid"
        t2 = make_table([["NAME", "MA3391", "PH3151"], ["X", "O", "A"]])
        t2.page = 3
        t2.strategy = "semantic"
        out = export_tables_csv([t1, t2], tmp_path / "tables.csv")
        rows = _read_csv(out)
        assert rows[0] == ["table", "page", "strategy", "row", "c0", "c1", "c2"]
        assert rows[1] == ["0", "0", "grid", "0", "CS1001", "CS1002"]
        assert rows[2] == ["0", "0", "grid", "1", "A", "B+"]
        assert rows[4] == ["1", "3", "semantic", "1", "X", "O", "A"]

    def test_no_tables(self, tmp_path):
        rows = _read_csv(export_tables_csv([], tmp_path / "t.csv"))
        assert rows == [["table", "page", "strategy", "row"]]


class TestExportRecordsCsv:
    def test_sorted_codes_and_blanks(self, tmp_path):
        records = [
            _record("311521104001", "ANITHA R", {"MA3391": "RA", "CS3401": "O"}, 5.0),
            _record(None, "JOHN DOE", {"CS1001": "A"}, 7.5),
        ]
        rows = _read_csv(export_records_csv(records, tmp_path / "r.csv"))
        assert rows[0] == ["register_number", "name", "CS1001", "CS3401", "MA3391", "gpa"]
        assert rows[1] == ["311521104001", "ANITHA R", "", "O", "RA", "5.00"]
        assert rows[2] == ["", "JOHN DOE", "A", "", "", "7.50"]

    def test_accepts_generator(self, tmp_path):
        gen = (r for r in [_record("1", "A", {"X": "O"}, 10.0)])
        rows = _read_csv(export_records_csv(gen, tmp_path / "r.csv"))
        assert len(rows) == 2


class TestExportStatisticsJson:
    def test_payload(self, tmp_path):
        subjects = [SubjectStatistics("CS1001", 2, 1, 1, 50.0, {"A": 1, "U": 1})]
        overall = OverallStatistics(
            total_subjects=1,
            total_students=2,
            total_passed=1,
            total_failed=1,
            total_attempts=2,
            average_pass_rate=50.0,
            overall_pass_rate=50.0,
        )
        out = export_statistics_json(subjects, overall, tmp_path / "s.json")
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["subjects"][0]["grade_distribution"] == {"A": 1, "U": 1}
        assert data["overall"]["overall_pass_rate"] == 50.0


class TestExportGroupsCsv:
    def test_rows(self, tmp_path):
        groups = [
            SemesterGroup(1, 0, 4, ConfidenceTier.HIGH),
            SemesterGroup(2, 5, 5, ConfidenceTier.FALLBACK),
        ]
        rows = _read_csv(export_groups_csv(groups, tmp_path / "g.csv"))
        assert rows == [
            ["semester", "start_page", "end_page", "page_count", "confidence"],
            ["1", "0", "4", "5", "HIGH"],
            ["2", "5", "5", "1", "FALLBACK"],
        ]


class TestExportExtraction:
    def test_writes_all_artefacts(self, tmp_path, class_sheet_tokens):
        result = run_extraction([class_sheet_tokens])
        out_dir = tmp_path / "nested" / "out"
        written = export_extraction(result, out_dir, "sheet")
        assert set(written) == {"tables", "records", "statistics"}
        assert written["records"].endswith("sheet_records.csv")
        records = _read_csv(written["records"])
        assert [r[1] for r in records[1:]] == ["ANITHA R", "BALAJI K", "CHITRA S"]
        stats = json.loads((out_dir / "sheet_statistics.json").read_text())
        assert stats["overall"]["total_passed"] == 7

    def test_no_tables_writes_headers_only(self, tmp_path):
        result = run_extraction([[]])
        written = export_extraction(result, tmp_path, "empty")
        assert not (tmp_path / "empty_groups.csv").exists()
        assert _read_csv(written["records"]) == [["register_number", "name", "gpa"]]
        assert _read_csv(written["tables"]) == [["table", "page", "strategy", "row"]]
