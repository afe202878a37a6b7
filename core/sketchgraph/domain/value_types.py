"""Value types and the directed type-compatibility table.

Every port carries a `ValueType`. A data edge may only be created when the
source port's type is allowed to flow into the target port's type.

The table below is indexed by *target* type: each row lists the source types
accepted by that target. The relation is directed, e.g. ``byte`` flows into
``int`` but ``int`` does not flow into ``byte``.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping


class ValueType(str, Enum):
    """Closed set of sketch value types.

    ``ANY`` is the wildcard used for unresolved or generic C++ types.
    """

    VOID = "void"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BOOL = "bool"
    BOOLEAN = "boolean"
    BYTE = "byte"
    CHAR = "char"
    STRING = "String"
    UINT8 = "uint8_t"
    UINT16 = "uint16_t"
    UINT32 = "uint32_t"
    ULONG = "unsigned long"
    INT_PTR = "int*"
    CHAR_PTR = "char*"
    ANY = "any"

    def __str__(self) -> str:
        return self.value


_T = ValueType

COMPATIBILITY: Mapping[ValueType, frozenset[ValueType]] = MappingProxyType(
    {
        _T.VOID: frozenset(),
        _T.INT: frozenset({_T.INT, _T.BYTE, _T.UINT8, _T.BOOL, _T.BOOLEAN, _T.CHAR}),
        _T.LONG: frozenset(
            {_T.LONG, _T.INT, _T.BYTE, _T.UINT8, _T.UINT16, _T.BOOL, _T.BOOLEAN, _T.CHAR}
        ),
        _T.FLOAT: frozenset({_T.FLOAT, _T.INT, _T.LONG, _T.BYTE, _T.UINT8, _T.UINT16, _T.UINT32}),
        _T.DOUBLE: frozenset(
            {_T.DOUBLE, _T.FLOAT, _T.INT, _T.LONG, _T.BYTE, _T.UINT8, _T.UINT16, _T.UINT32}
        ),
        _T.BOOL: frozenset({_T.BOOL, _T.BOOLEAN, _T.INT, _T.BYTE}),
        _T.BOOLEAN: frozenset({_T.BOOLEAN, _T.BOOL, _T.INT, _T.BYTE}),
        _T.BYTE: frozenset({_T.BYTE, _T.UINT8, _T.CHAR}),
        _T.CHAR: frozenset({_T.CHAR, _T.BYTE, _T.UINT8}),
        _T.STRING: frozenset({_T.STRING, _T.CHAR_PTR}),
        _T.UINT8: frozenset({_T.UINT8, _T.BYTE, _T.CHAR}),
        _T.UINT16: frozenset({_T.UINT16, _T.INT}),
        _T.UINT32: frozenset({_T.UINT32, _T.LONG, _T.ULONG}),
        _T.ULONG: frozenset({_T.ULONG, _T.UINT32, _T.LONG}),
        _T.INT_PTR: frozenset({_T.INT_PTR}),
        _T.CHAR_PTR: frozenset({_T.CHAR_PTR, _T.STRING}),
    }
)


def is_compatible(source: ValueType, target: ValueType) -> bool:
    """Return True if a value of type ``source`` may flow into ``target``.

    Args:
        source: Type of the producing output port.
        target: Type of the consuming input port.

    Returns:
        True when either side is the wildcard, or ``source`` is listed in the
        target's row of `COMPATIBILITY`. Unknown targets accept nothing else.
    """

    if source is ValueType.ANY or target is ValueType.ANY:
        return True
    return source in COMPATIBILITY.get(target, frozenset())


def zero_value(value_type: ValueType) -> str:
    """Return the literal used for an unconnected input without a value."""

    if value_type is ValueType.STRING:
        return '""'
    if value_type in (ValueType.BOOL, ValueType.BOOLEAN):
        return "false"
    if value_type in (ValueType.FLOAT, ValueType.DOUBLE):
        return "0.0"
    if value_type is ValueType.CHAR:
        return "'\\0'"
    return "0"
