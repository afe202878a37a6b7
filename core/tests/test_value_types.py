"""Unit tests for value types and the compatibility table."""

from __future__ import annotations

import pytest

from sketchgraph.domain.value_types import COMPATIBILITY, ValueType, is_compatible, zero_value


@pytest.mark.parametrize("other", list(ValueType))
def test_wildcard_is_compatible_both_ways(other: ValueType) -> None:
    assert is_compatible(ValueType.ANY, other)
    assert is_compatible(other, ValueType.ANY)


def test_compatibility_is_directed() -> None:
    assert is_compatible(ValueType.BYTE, ValueType.INT)
    assert not is_compatible(ValueType.INT, ValueType.BYTE)

    assert is_compatible(ValueType.INT, ValueType.LONG)
    assert not is_compatible(ValueType.LONG, ValueType.INT)


def test_integrals_widen_into_floating_types() -> None:
    assert is_compatible(ValueType.INT, ValueType.FLOAT)
    assert is_compatible(ValueType.UINT32, ValueType.DOUBLE)
    assert is_compatible(ValueType.FLOAT, ValueType.DOUBLE)
    assert not is_compatible(ValueType.DOUBLE, ValueType.FLOAT)


def test_string_and_char_pointer_are_cross_compatible() -> None:
    assert is_compatible(ValueType.CHAR_PTR, ValueType.STRING)
    assert is_compatible(ValueType.STRING, ValueType.CHAR_PTR)
    assert not is_compatible(ValueType.INT, ValueType.STRING)


def test_boolean_is_treated_as_integral() -> None:
    assert is_compatible(ValueType.BOOL, ValueType.INT)
    assert is_compatible(ValueType.INT, ValueType.BOOL)
    assert is_compatible(ValueType.BOOLEAN, ValueType.BOOL)


def test_void_accepts_nothing_but_the_wildcard() -> None:
    assert COMPATIBILITY[ValueType.VOID] == frozenset()
    assert not is_compatible(ValueType.VOID, ValueType.VOID)
    assert not is_compatible(ValueType.INT, ValueType.VOID)
    assert is_compatible(ValueType.ANY, ValueType.VOID)


def test_every_type_except_void_accepts_itself() -> None:
    for value_type in ValueType:
        if value_type is ValueType.VOID:
            continue
        assert is_compatible(value_type, value_type), value_type


@pytest.mark.parametrize(
    ("value_type", "expected"),
    [
        (ValueType.STRING, '""'),
        (ValueType.BOOL, "false"),
        (ValueType.BOOLEAN, "false"),
        (ValueType.FLOAT, "0.0"),
        (ValueType.DOUBLE, "0.0"),
        (ValueType.CHAR, "'\\0'"),
        (ValueType.INT, "0"),
        (ValueType.UINT8, "0"),
        (ValueType.ANY, "0"),
    ],
)
def test_zero_value(value_type: ValueType, expected: str) -> None:
    assert zero_value(value_type) == expected


def test_value_type_renders_as_cpp_spelling() -> None:
    assert str(ValueType.ULONG) == "unsigned long"
    assert f"{ValueType.STRING} s;" == "String s;"
    assert ValueType("char*") is ValueType.CHAR_PTR
