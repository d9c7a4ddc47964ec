"""Unit tests for prdforge.records.fields – FieldSpec and coerce()."""

from __future__ import annotations

import math
from typing import Any

import pytest

from prdforge.records.fields import _MISSING, FieldKind, FieldSpec, coerce, lookup


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

TITLE = FieldSpec("title", FieldKind.STRING, ("title", "name"), "Untitled")
TAGS = FieldSpec("tags", FieldKind.STRING_ARRAY, ("tags",), ())
HOURS = FieldSpec("hours", FieldKind.NUMBER, ("hours",), 4.0, minimum=0, maximum=100)
ORDER = FieldSpec("order", FieldKind.NUMBER, ("order",), 0, minimum=0, integer=True)
PRIORITY = FieldSpec(
    "priority",
    FieldKind.ENUM,
    ("priority",),
    "medium",
    choices=("low", "medium", "high"),
)
ROLE = FieldSpec(
    "role",
    FieldKind.ENUM,
    ("role",),
    "Full Stack",
    choices=("Frontend", "Backend", "QA", "Full Stack"),
    substring_match=True,
)


class TestFieldSpec:
    """Tests for FieldSpec construction."""

    def test_keys_default_to_attr(self) -> None:
        assert FieldSpec("phase", FieldKind.STRING).keys == ("phase",)

    def test_enum_requires_choices(self) -> None:
        with pytest.raises(ValueError, match="needs choices"):
            FieldSpec("p", FieldKind.ENUM, default="x")

    def test_enum_default_must_be_a_choice(self) -> None:
        with pytest.raises(ValueError, match="not one of its choices"):
            FieldSpec("p", FieldKind.ENUM, default="x", choices=("a", "b"))

    def test_array_default_is_copied(self) -> None:
        first = TAGS.default_value()
        first.append("mutated")
        assert TAGS.default_value() == []


class TestLookup:
    """Tests for alias-aware key lookup."""

    def test_canonical_key(self) -> None:
        assert lookup({"title": "A", "name": "B"}, TITLE) == "A"

    def test_alias_key(self) -> None:
        assert lookup({"name": "B"}, TITLE) == "B"

    def test_blank_canonical_falls_through(self) -> None:
        assert lookup({"title": "  ", "name": "B"}, TITLE) == "B"

    def test_null_canonical_falls_through(self) -> None:
        assert lookup({"title": None, "name": "B"}, TITLE) == "B"

    def test_missing(self) -> None:
        assert lookup({"other": 1}, TITLE) is _MISSING

    def test_zero_is_present(self) -> None:
        assert lookup({"hours": 0}, HOURS) == 0


# ---------------------------------------------------------------------------
# coerce()
# ---------------------------------------------------------------------------


class TestCoerceString:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("  Login  ", "Login"),
            (42, "42"),
            (2.0, "2"),
            (2.5, "2.5"),
            (True, "true"),
            (["a", " b ", "", 3], "a, b, 3"),
            ({"nested": 1}, "Untitled"),
            ([], "Untitled"),
            ("", "Untitled"),
            (None, "Untitled"),
        ],
    )
    def test_string(self, value: Any, expected: str) -> None:
        assert coerce(value, TITLE) == expected


class TestCoerceStringArray:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (["a", "b"], ["a", "b"]),
            ([" a ", "", None, 1, False], ["a", "1", "false"]),
            ("single", ["single"]),
            ("   ", []),
            (42, []),
            ({"a": 1}, []),
            ([{"a": 1}, "kept"], ["kept"]),
        ],
    )
    def test_string_array(self, value: Any, expected: list[str]) -> None:
        assert coerce(value, TAGS) == expected


class TestCoerceNumber:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (8, 8.0),
            (2.5, 2.5),
            ("6", 6.0),
            (" 3.5 ", 3.5),
            ("eight", 4.0),
            (0, 4.0),
            (-3, 4.0),
            (250, 100.0),
            (True, 4.0),
            (math.inf, 4.0),
            (math.nan, 4.0),
            ("nan", 4.0),
            ([8], 4.0),
        ],
    )
    def test_number(self, value: Any, expected: float) -> None:
        assert coerce(value, HOURS) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(3, 3), (2.6, 3), ("4", 4), (0, 0), (-1, 0)],
    )
    def test_integer_number(self, value: Any, expected: int) -> None:
        result = coerce(value, ORDER)
        assert result == expected
        assert isinstance(result, int)


class TestCoerceEnum:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("HIGH", "high"),
            (" Low ", "low"),
            ("critical", "medium"),
            ("very high", "medium"),
            (3, "medium"),
            ("", "medium"),
        ],
    )
    def test_exact_match(self, value: Any, expected: str) -> None:
        assert coerce(value, PRIORITY) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("backend", "Backend"),
            ("Senior Backend Engineer", "Backend"),
            ("qa automation", "QA"),
            ("full stack", "Full Stack"),
            ("Data Science", "Full Stack"),
        ],
    )
    def test_substring_match(self, value: str, expected: str) -> None:
        assert coerce(value, ROLE) == expected
