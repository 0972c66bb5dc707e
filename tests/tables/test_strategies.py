"""Tests for gradesheet.tables.strategies — the three table strategies and the chain."""

import pytest

from gradesheet.analysis.records import extract_records
from gradesheet.config import ExtractionConfig
from gradesheet.models import Column, Table
from gradesheet.tables.strategies import (
    NAME_HEADER,
    REGISTER_HEADER,
    STRATEGY_CHAIN,
    coarse_grid_strategy,
    grid_table_strategy,
    reconstruct_tables,
    semantic_table_strategy,
)

from conftest import make_token


# ── Strategy A: grid ───────────────────────────────────────────────────


class TestGridStrategy:
    def test_john_doe(self, default_cfg, john_doe_tokens):
        tables = grid_table_strategy(john_doe_tokens, default_cfg)
        assert len(tables) == 1
        t = tables[0]
        assert t.strategy == "grid"
        assert t.header_row == 0
        assert [c.center for c in t.columns] == [5.0, 11.0, 31.0]
        assert t.rows == [["", "CS1001", "CS1002"], ["JOHN DOE", "A", "B+"]]

    def test_shared_cell_concatenated(self, default_cfg):
        toks = [
            make_token("CS1001", 20, 0),
            make_token("CS1002", 40, 0),
            make_token("JOHN", 0, 10),
            make_token("DOE", 2, 10),
            make_token("A", 20, 10),
            make_token("B", 40, 10),
        ]
        (t,) = grid_table_strategy(toks, default_cfg)
        assert t.rows[1] == ["JOHN DOE", "A", "B"]

    def test_prose_row_splits_tables(self, default_cfg):
        toks = [
            make_token("CS1001", 20, 0),
            make_token("CS1002", 40, 0),
            make_token("ANN", 0, 10),
            make_token("A", 20, 10),
            make_token("B", 40, 10),
            make_token("Page", 0, 20),
            make_token("MA2001", 20, 30),
            make_token("MA2002", 40, 30),
            make_token("BEN", 0, 40),
            make_token("O", 20, 40),
            make_token("C", 40, 40),
        ]
        tables = grid_table_strategy(toks, default_cfg)
        assert len(tables) == 2
        assert tables[0].rows[0][1:] == ["CS1001", "CS1002"]
        assert tables[1].rows[0][1:] == ["MA2001", "MA2002"]

    def test_single_row_is_not_a_table(self, default_cfg):
        toks = [make_token("CS1001", 20, 0), make_token("CS1002", 40, 0)]
        assert grid_table_strategy(toks, default_cfg) == []

    def test_header_is_first_row_with_two_codes(self, default_cfg):
        toks = [
            make_token("RESULTS", 0, 0),
            make_token("CS1001", 20, 0),
            make_token("SUBJECT", 0, 10),
            make_token("CS1001", 20, 10),
            make_token("CS1002", 40, 10),
            make_token("ANN", 0, 20),
            make_token("A", 20, 20),
            make_token("B", 40, 20),
        ]
        (t,) = grid_table_strategy(toks, default_cfg)
        assert t.header_row == 1

    def test_every_row_full_width(self, default_cfg, class_sheet_tokens):
        for t in grid_table_strategy(class_sheet_tokens, default_cfg):
            assert t.is_valid()


# ── Strategy B: semantic ───────────────────────────────────────────────


class TestSemanticStrategy:
    def test_class_sheet(self, default_cfg, class_sheet_tokens):
        (t,) = semantic_table_strategy(class_sheet_tokens, default_cfg)
        assert t.strategy == "semantic"
        assert t.header_row == 0
        assert t.rows[0] == [NAME_HEADER, REGISTER_HEADER, "CS3401", "CS3451", "MA3391"]
        assert t.rows[1] == ["ANITHA R", "311521104001", "O", "A+", "RA"]
        assert t.rows[3] == ["CHITRA S", "311521104003", "U", "C", "A"]
        assert t.is_valid()

    def test_synthetic_columns_are_separated(self, default_cfg, class_sheet_tokens):
        (t,) = semantic_table_strategy(class_sheet_tokens, default_cfg)
        centers = [c.center for c in t.columns]
        assert centers == sorted(centers)
        for a, b in zip(centers, centers[1:]):
            assert b - a > default_cfg.column_merge_tolerance

    def test_too_few_subject_codes(self, default_cfg, john_doe_tokens):
        assert semantic_table_strategy(john_doe_tokens, default_cfg) == []

    def test_min_codes_configurable(self, john_doe_tokens):
        cfg = ExtractionConfig(semantic_min_subject_codes=2)
        (t,) = semantic_table_strategy(john_doe_tokens, cfg)
        assert t.rows[1] == ["JOHN DOE", "A", "B+"]

    def test_row_grouping_fallback(self, default_cfg):
        # Grades sit 18 units right of their codes: too far for the direct
        # pass (15), close enough for the row-grouping pass (20).
        toks = [
            make_token("CS1001", 100, 0),
            make_token("CS1002", 200, 0),
            make_token("CS1003", 300, 0),
            make_token("JOHN DOE", 10, 20),
            make_token("A", 118, 20),
            make_token("B+", 218, 20),
            make_token("O", 318, 20),
        ]
        (t,) = semantic_table_strategy(toks, default_cfg)
        assert t.rows[0] == [NAME_HEADER, "CS1001", "CS1002", "CS1003"]
        assert t.rows[1] == ["JOHN DOE", "A", "B+", "O"]

    def test_result_column_is_not_a_student(self, default_cfg):
        toks = [
            make_token("CS1001", 100, 0),
            make_token("CS1002", 200, 0),
            make_token("CS1003", 300, 0),
            make_token("JOHN DOE", 10, 20),
            make_token("A", 118, 20),
            make_token("B+", 218, 20),
            make_token("O", 318, 20),
            make_token("PASS", 400, 20),
        ]
        (t,) = semantic_table_strategy(toks, default_cfg)
        assert [r[0] for r in t.rows[1:]] == ["JOHN DOE"]
        (rec,) = extract_records(t, default_cfg)
        assert rec.subject_grades == {"CS1001": "A", "CS1002": "B+", "CS1003": "O"}

    def test_row_grouping_gives_grades_to_one_name(self, default_cfg):
        toks = [
            make_token("CS1001", 100, 0),
            make_token("CS1002", 200, 0),
            make_token("CS1003", 300, 0),
            make_token("JOHN", 10, 20),
            make_token("KUMAR", 60, 20),
            make_token("A", 118, 20),
            make_token("B+", 218, 20),
            make_token("O", 318, 20),
        ]
        (t,) = semantic_table_strategy(toks, default_cfg)
        assert t.rows[1] == ["JOHN", "A", "B+", "O"]
        assert t.rows[2] == ["KUMAR", "", "", ""]
        records = extract_records(t, default_cfg)
        assert [r.name for r in records] == ["JOHN"]

    def test_duplicate_codes_collapsed(self, default_cfg, class_sheet_tokens):
        toks = class_sheet_tokens + [make_token("CS3401", 140, 100)]
        (t,) = semantic_table_strategy(toks, default_cfg)
        assert t.rows[0].count("CS3401") == 1


# ── Strategy C: coarse grid ────────────────────────────────────────────


class TestCoarseGridStrategy:
    def test_snaps_onto_lattice(self, default_cfg):
        toks = [
            make_token("CS1001", 10, 0),
            make_token("CS1002", 30, 0),
            make_token("JOHN DOE", 0, 10),
            make_token("A", 10.1, 10),
            make_token("B+", 29.9, 10.2),
            make_token("Page", 50, 50),  # OTHER: not placed
        ]
        (t,) = coarse_grid_strategy(toks, default_cfg)
        assert t.strategy == "coarse_grid"
        assert [c.center for c in t.columns] == [0.0, 10.0, 30.0]
        assert t.rows == [["", "CS1001", "CS1002"], ["JOHN DOE", "A", "B+"]]

    def test_nothing_classified(self, default_cfg):
        toks = [make_token("Page", 0, 0), make_token("of", 10, 0)]
        assert coarse_grid_strategy(toks, default_cfg) == []

    def test_columns_strictly_increasing(self, default_cfg, class_sheet_tokens):
        (t,) = coarse_grid_strategy(class_sheet_tokens, default_cfg)
        centers = [c.center for c in t.columns]
        for a, b in zip(centers, centers[1:]):
            assert b - a >= default_cfg.grid_step


# ── Chain ──────────────────────────────────────────────────────────────


class TestReconstructTables:
    def test_chain_order(self):
        assert [name for name, _ in STRATEGY_CHAIN] == ["grid", "semantic", "coarse_grid"]

    def test_first_success_wins(self, default_cfg, john_doe_tokens):
        tables, name = reconstruct_tables(john_doe_tokens, default_cfg, page=3)
        assert name == "grid"
        assert len(tables) == 1
        assert tables[0].page == 3

    def test_no_tokens(self, default_cfg):
        assert reconstruct_tables([], default_cfg) == ([], "")

    def test_falls_through_to_next_strategy(self, default_cfg, class_sheet_tokens):
        chain = (
            ("never", lambda tokens, cfg: []),
            ("semantic", semantic_table_strategy),
        )
        tables, name = reconstruct_tables(
            class_sheet_tokens, default_cfg, strategies=chain
        )
        assert name == "semantic"

    def test_invalid_tables_are_discarded(self, default_cfg):
        broken = Table(columns=[Column(0, 10)], rows=[["only one row"]])
        chain = (("broken", lambda tokens, cfg: [broken]),)
        assert reconstruct_tables([make_token("A", 0, 0)], default_cfg, strategies=chain) == ([], "")

    @pytest.mark.parametrize("name,strategy", STRATEGY_CHAIN)
    def test_all_strategies_emit_valid_tables(self, default_cfg, class_sheet_tokens, name, strategy):
        for t in strategy(class_sheet_tokens, default_cfg):
            assert t.is_valid()
            assert len(t.rows) >= 2
