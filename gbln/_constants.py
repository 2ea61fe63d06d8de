"""GBLN constants - foreign type tags, result codes, ranges and limits.

The foreign engine speaks in two small integer enumerations: a 15-way
value type tag and a 13-way result code.  Both must match the C header
of libgbln exactly, since they cross the boundary as raw integers.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, Tuple

__version__ = "0.9.0"


# ── Foreign value type tags ──────────────────────────────────
# Order is fixed by the C enum.  Integers first (signed, then unsigned),
# then the two float widths, then the non-numeric kinds.

class ValueType(IntEnum):
    I8 = 0
    I16 = 1
    I32 = 2
    I64 = 3
    U8 = 4
    U16 = 5
    U32 = 6
    U64 = 7
    F32 = 8
    F64 = 9
    STR = 10
    BOOL = 11
    NULL = 12
    OBJECT = 13
    ARRAY = 14


INTEGER_TYPES = frozenset({
    ValueType.I8, ValueType.I16, ValueType.I32, ValueType.I64,
    ValueType.U8, ValueType.U16, ValueType.U32, ValueType.U64,
})
FLOAT_TYPES = frozenset({ValueType.F32, ValueType.F64})


# ── Foreign result codes ─────────────────────────────────────

class ErrorCode(IntEnum):
    OK = 0
    UNEXPECTED_CHAR = 1
    UNTERMINATED_STRING = 2
    UNEXPECTED_TOKEN = 3
    UNEXPECTED_EOF = 4
    INVALID_SYNTAX = 5
    INT_OUT_OF_RANGE = 6
    STRING_TOO_LONG = 7
    TYPE_MISMATCH = 8
    INVALID_TYPE_HINT = 9
    DUPLICATE_KEY = 10
    NULL_POINTER = 11
    IO = 12


# ── Integer ranges ───────────────────────────────────────────
# Python ints are unbounded; every width the engine knows gets an
# explicit inclusive range.  The in-memory lane is always int64.

INT64_MIN: int = -(2**63)
INT64_MAX: int = 2**63 - 1

INTEGER_RANGES: Dict[ValueType, Tuple[int, int]] = {
    ValueType.I8: (-(2**7), 2**7 - 1),
    ValueType.I16: (-(2**15), 2**15 - 1),
    ValueType.I32: (-(2**31), 2**31 - 1),
    ValueType.I64: (INT64_MIN, INT64_MAX),
    ValueType.U8: (0, 2**8 - 1),
    ValueType.U16: (0, 2**16 - 1),
    ValueType.U32: (0, 2**32 - 1),
    ValueType.U64: (0, 2**64 - 1),
}

# Search order for the optimal integer selector.  Unsigned widths win
# for non-negative values; negatives fall through to the signed ladder.
UNSIGNED_LADDER = (ValueType.U8, ValueType.U16, ValueType.U32, ValueType.U64)
SIGNED_LADDER = (ValueType.I8, ValueType.I16, ValueType.I32, ValueType.I64)


# ── String capacity buckets ──────────────────────────────────
# A foreign string is a fixed-capacity slot measured in characters.

STRING_BUCKETS: Tuple[int, ...] = (2, 4, 8, 16, 32, 64, 128, 256, 512, 1024)
MAX_STRING_CHARS: int = STRING_BUCKETS[-1]


# ── Configuration ranges (inclusive) ─────────────────────────

COMPRESSION_LEVEL_RANGE: Tuple[int, int] = (0, 9)
INDENT_RANGE: Tuple[int, int] = (0, 16)
DEFAULT_COMPRESSION_LEVEL: int = 6
DEFAULT_INDENT: int = 2


# ── Library discovery ────────────────────────────────────────

LIBRARY_ENV_VAR: str = "GBLN_LIBRARY"
LIBRARY_NAME: str = "gbln"
LIBRARY_FILENAMES: Tuple[str, ...] = ("libgbln.so", "libgbln.dylib", "gbln.dll")
