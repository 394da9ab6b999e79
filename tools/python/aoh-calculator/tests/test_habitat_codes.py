"""
Tests — Habitat Code Translation
=================================
Unit tests for :mod:`aoh_calculator.habitat_codes`.
"""

from __future__ import annotations

import pytest

from aoh_calculator.habitat_codes import VALID_JUNG_CODES, candidate_codes, parse_code, translate_codes
from shared.python.exceptions import (
    CodeTranslationError,
    EmptyHabitatCodeError,
    NonNumericHabitatCodeError,
)


class TestParseCode:
    def test_three_levels(self) -> None:
        assert parse_code("9.8.5") == [9, 8, 5]

    def test_single_level(self) -> None:
        assert parse_code("14") == [14]

    def test_empty_raises(self) -> None:
        with pytest.raises(EmptyHabitatCodeError):
            parse_code("")

    @pytest.mark.parametrize("code", ["hello", "1.x", "1..2", "-1", "1.2 "])
    def test_non_numeric_raises(self, code: str) -> None:
        with pytest.raises(NonNumericHabitatCodeError) as exc_info:
            parse_code(code)
        assert exc_info.value.code == code


class TestCandidateCodes:
    def test_second_level_yields_parent_and_self(self) -> None:
        assert candidate_codes([11, 1]) == {1100, 1101}

    def test_top_level_yields_every_child(self) -> None:
        codes = candidate_codes([3])
        assert 300 in codes
        assert {301, 308, 319} <= codes


class TestTranslateCodes:
    @pytest.mark.parametrize(
        ("codes", "expected"),
        [
            ([], set()),
            (["11"], {1100, 1101, 1102, 1103, 1104, 1105, 1106}),
            (["11.1"], {1100, 1101}),
            (["11.1.1"], {1100, 1101}),
        ],
    )
    def test_translation(self, codes: list[str], expected: set[int]) -> None:
        assert translate_codes(codes) == expected

    def test_unmappable_codes_are_dropped(self) -> None:
        codes = [
            "7", "7.1", "7.2", "9.8.1", "9.8.2", "9.8.3", "9.8.4", "9.8.5", "9.8.6",
            "11.1.1", "11.1.2", "13", "13.1", "13.2", "13.3", "13.4", "13.5", "15",
            "15.1", "15.2", "15.3", "15.4", "15.5", "15.6", "15.7", "15.8", "15.9",
            "15.10", "15.11", "15.12", "15.13", "16", "18",
        ]
        assert translate_codes(codes) == {900, 908, 1100, 1101}

    def test_result_is_subset_of_valid_codes(self) -> None:
        assert translate_codes(["1", "5", "14.3", "17"]) <= VALID_JUNG_CODES

    def test_custom_valid_codes(self) -> None:
        assert translate_codes(["2"], valid_codes=frozenset({200, 205})) == {200, 205}

    def test_garbage_in_raises(self) -> None:
        with pytest.raises(NonNumericHabitatCodeError):
            translate_codes(["hello"])

    def test_empty_string_raises(self) -> None:
        with pytest.raises(EmptyHabitatCodeError):
            translate_codes([""])

    def test_errors_share_base_class(self) -> None:
        with pytest.raises(CodeTranslationError):
            translate_codes(["1.4", "oops"])
