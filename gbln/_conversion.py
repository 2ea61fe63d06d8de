"""Conversion between engine value trees and Value trees.

foreign_to_value() walks a borrowed engine pointer and builds a Value.
value_to_foreign() builds a new engine tree and returns it as an owned
ValueHandle.

Either direction fails as a whole: the first failure raises, every
handle created so far is released by its `with` scope on the way out,
and no partially built result ever reaches the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ._constants import FLOAT_TYPES, INTEGER_TYPES, ErrorCode, ValueType
from ._errors import ConversionError, describe_code
from ._ffi import engine_lock
from ._handles import KeyListHandle, ValueHandle
from ._optimal import optimal_int_type, optimal_string_capacity
from ._value import Kind, Value

logger = logging.getLogger(__name__)


# ── engine → Value ───────────────────────────────────────────

def _read(engine: Any, ptr: int, value_type: ValueType, what: str) -> Any:
    value, ok = engine.value_as(ptr, value_type)
    if not ok:
        raise ConversionError("failed to extract {} value".format(what))
    return value


def _decode(raw: bytes, what: str) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        raise ConversionError("{} is not valid UTF-8".format(what))


def foreign_to_value(engine: Any, ptr: Optional[int]) -> Value:
    """Convert a borrowed engine value (and its subtree) into a Value.

    Integers of every width are read through the i64 accessor and floats
    are widened to 64 bits.  Strings are copied before return.
    """
    if not ptr:
        raise ConversionError("null value pointer")

    tag = engine.value_type(ptr)

    if tag == ValueType.NULL:
        return Value(None)

    if tag == ValueType.BOOL:
        return Value(bool(_read(engine, ptr, ValueType.BOOL, "boolean")))

    if tag in INTEGER_TYPES:
        return Value(int(_read(engine, ptr, ValueType.I64, "integer")))

    if tag in FLOAT_TYPES:
        return Value(float(_read(engine, ptr, ValueType(tag), ValueType(tag).name.lower())))

    if tag == ValueType.STR:
        return Value(_decode(_read(engine, ptr, ValueType.STR, "string"), "string value"))

    if tag == ValueType.OBJECT:
        return Value._adopt(Kind.OBJECT, _object_from_foreign(engine, ptr))

    if tag == ValueType.ARRAY:
        items = []
        for index in range(engine.array_len(ptr)):
            child = engine.array_get(ptr, index)
            if not child:
                raise ConversionError("failed to get array element at index {}".format(index))
            items.append(foreign_to_value(engine, child))
        return Value._adopt(Kind.ARRAY, items)

    raise ConversionError("unknown GBLN value type: {}".format(tag))


def _object_from_foreign(engine: Any, ptr: int) -> dict:
    keys_ptr, count = engine.object_keys(ptr)
    if not keys_ptr:
        if count:
            raise ConversionError("failed to get object keys")
        return {}

    entries = {}
    with KeyListHandle(engine, keys_ptr, count) as keys:
        for index in range(len(keys)):
            raw_key = keys[index]
            key = _decode(raw_key, "object key")
            child = engine.object_get(ptr, raw_key)
            if not child:
                raise ConversionError("failed to get object value for key: {}".format(key))
            entries[key] = foreign_to_value(engine, child)
    return entries


# ── Value → engine ───────────────────────────────────────────

def _own(engine: Any, ptr: Optional[int], what: str) -> ValueHandle:
    if not ptr:
        raise ConversionError("failed to create {}".format(what))
    return ValueHandle(engine, ptr)


def value_to_foreign(engine: Any, value: Value) -> ValueHandle:
    """Build an engine tree for `value`; the caller owns the result.

    Integers and strings get their narrowest engine type.  Object keys
    are emitted in sorted order so serialization is deterministic.
    """
    if not isinstance(value, Value):
        raise ConversionError("expected a Value, got {}".format(type(value).__name__))
    kind = value.kind

    if kind is Kind.NULL:
        return _own(engine, engine.new_null(), "null")

    if kind is Kind.BOOL:
        return _own(engine, engine.new_bool(value.as_bool()), "boolean")

    if kind is Kind.INTEGER:
        n = value.as_int()
        return _own(engine, engine.new_integer(optimal_int_type(n), n), "integer")

    if kind is Kind.FLOAT:
        return _own(engine, engine.new_float(ValueType.F64, value.as_float()), "float")

    if kind is Kind.STRING:
        text = value.as_string()
        capacity = optimal_string_capacity(text)
        return _own(engine, engine.new_str(text.encode("utf-8"), capacity), "string")

    if kind is Kind.OBJECT:
        with _own(engine, engine.new_object(), "object") as obj:
            entries = value.as_object()
            for key in sorted(entries):
                raw_key = key.encode("utf-8")
                with value_to_foreign(engine, entries[key]) as child:
                    with engine_lock:
                        code = child.give(lambda p: engine.object_insert(obj.ptr, raw_key, p))
                if code != ErrorCode.OK:
                    logger.debug("insert of key %r rejected: %s", key, describe_code(code))
                    raise ConversionError("failed to insert object key: {} ({})".format(
                        key, describe_code(code)))
            return obj.transfer()

    if kind is Kind.ARRAY:
        with _own(engine, engine.new_array(), "array") as arr:
            for index, item in enumerate(value.as_array()):
                with value_to_foreign(engine, item) as child:
                    with engine_lock:
                        code = child.give(lambda p: engine.array_push(arr.ptr, p))
                if code != ErrorCode.OK:
                    logger.debug("push of element %d rejected: %s", index, describe_code(code))
                    raise ConversionError("failed to push array element {} ({})".format(
                        index, describe_code(code)))
            return arr.transfer()

    raise ConversionError("unknown value kind: {}".format(kind))
