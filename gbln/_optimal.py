"""Optimal foreign type selection.

GBLN stores every value with an explicit width.  When a Value built in
Python goes to the engine we pick the narrowest type that holds it
without loss:

    integers - unsigned widths first for n >= 0 (u8 → u16 → u32 → u64),
               signed widths for n < 0 (i8 → i16 → i32 → i64)
    strings  - smallest capacity bucket (2, 4, ..., 1024) that holds
               the character count, not the byte count

Both selectors are pure; they never touch the engine.
"""

from __future__ import annotations

from typing import Union

from ._constants import (
    INT64_MAX,
    INT64_MIN,
    INTEGER_RANGES,
    MAX_STRING_CHARS,
    SIGNED_LADDER,
    STRING_BUCKETS,
    UNSIGNED_LADDER,
    ValueType,
)
from ._errors import ConversionError, InvalidEncoding, StringTooLong


def optimal_int_type(n: int) -> ValueType:
    """Narrowest integer tag for a signed 64-bit value.

    >>> optimal_int_type(200).name, optimal_int_type(-5).name
    ('U8', 'I8')
    """
    if isinstance(n, bool) or n < INT64_MIN or n > INT64_MAX:
        raise ConversionError("integer {!r} outside int64 range".format(n))

    ladder = UNSIGNED_LADDER if n >= 0 else SIGNED_LADDER
    for value_type in ladder:
        lo, hi = INTEGER_RANGES[value_type]
        if lo <= n <= hi:
            return value_type
    # Unreachable for in-range input: U64 and I64 cover both halves.
    return ValueType.I64


# ── UTF-8 character counting ─────────────────────────────────
# Only lead bytes are inspected.  Continuation bytes are skipped by
# the length the lead byte announces and are not themselves checked.

def utf8_char_count(data: bytes) -> int:
    """Count characters in UTF-8 bytes by lead-byte pattern."""
    count = 0
    i = 0
    size = len(data)
    while i < size:
        lead = data[i]
        if lead < 0x80:
            i += 1
        elif lead & 0xE0 == 0xC0:
            i += 2
        elif lead & 0xF0 == 0xE0:
            i += 3
        elif lead & 0xF8 == 0xF0:
            i += 4
        else:
            raise InvalidEncoding(
                "invalid UTF-8 lead byte 0x{:02x} at offset {}".format(lead, i))
        count += 1
    return count


def string_bucket(char_count: int) -> int:
    """Smallest capacity bucket that holds `char_count` characters."""
    for bucket in STRING_BUCKETS:
        if char_count <= bucket:
            return bucket
    raise StringTooLong("string too long ({} characters, max {})".format(
        char_count, MAX_STRING_CHARS))


def optimal_string_capacity(text: Union[str, bytes]) -> int:
    """Capacity bucket for a string (str is encoded as UTF-8 first).

    >>> optimal_string_capacity("abc")
    4
    """
    if isinstance(text, str):
        try:
            text = text.encode("utf-8")
        except UnicodeEncodeError as exc:
            # Lone surrogates have no UTF-8 form.
            raise InvalidEncoding("string is not encodable as UTF-8: {}".format(exc.reason))
    return string_bucket(utf8_char_count(text))
