"""GBLN value model - a closed, recursive tagged union.

Seven variants:

    NULL     - no payload
    BOOL     - True / False
    INTEGER  - signed 64-bit; every foreign integer width lands here
    FLOAT    - 64-bit; both foreign float widths land here
    STRING   - text (UTF-8 on the wire)
    OBJECT   - str → Value, keys unique
    ARRAY    - ordered list of Value

The tag alone decides which accessor is valid.  Asking an INTEGER for
its string is a bug in the caller, so it raises VariantError (a
TypeError) rather than a recoverable GblnError.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Tuple, Union

from ._constants import INT64_MAX, INT64_MIN
from ._errors import ConversionError


class Kind(Enum):
    NULL = "null"
    BOOL = "bool"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    OBJECT = "object"
    ARRAY = "array"


class VariantError(TypeError):
    """Accessor called on a Value of a different variant."""

    def __init__(self, wanted: Kind, actual: Kind) -> None:
        super().__init__("expected {} value, got {}".format(wanted.value, actual.value))
        self.wanted = wanted
        self.actual = actual


class Value:
    """One node of a GBLN value tree.

    Construct from native Python data; containers are wrapped
    recursively and own their children:

        >>> v = Value({"user": {"id": 12345, "active": True}})
        >>> v["user"]["id"].as_int()
        12345
    """

    __slots__ = ("_kind", "_data")

    def __init__(self, data: Any = None) -> None:
        if isinstance(data, Value):
            # Copy: a node never has two owners, so trees stay acyclic.
            data = data.to_python()
        self._kind, self._data = _wrap(data)

    # ── constructors ──────────────────────────────────────────

    @classmethod
    def null(cls) -> "Value":
        return cls(None)

    @classmethod
    def object(cls, entries: Union[Dict[str, Any], None] = None) -> "Value":
        return cls(dict(entries or {}))

    @classmethod
    def array(cls, items: Union[List[Any], None] = None) -> "Value":
        return cls(list(items or []))

    @classmethod
    def _adopt(cls, kind: Kind, data: Any) -> "Value":
        # Children must be freshly built Values owned by nobody else.
        value = cls.__new__(cls)
        value._kind, value._data = kind, data
        return value

    # ── type checks ───────────────────────────────────────────

    @property
    def kind(self) -> Kind:
        return self._kind

    def is_null(self) -> bool:
        return self._kind is Kind.NULL

    def is_bool(self) -> bool:
        return self._kind is Kind.BOOL

    def is_int(self) -> bool:
        return self._kind is Kind.INTEGER

    def is_float(self) -> bool:
        return self._kind is Kind.FLOAT

    def is_string(self) -> bool:
        return self._kind is Kind.STRING

    def is_object(self) -> bool:
        return self._kind is Kind.OBJECT

    def is_array(self) -> bool:
        return self._kind is Kind.ARRAY

    # ── accessors ─────────────────────────────────────────────

    def _expect(self, kind: Kind) -> Any:
        if self._kind is not kind:
            raise VariantError(kind, self._kind)
        return self._data

    def as_bool(self) -> bool:
        return self._expect(Kind.BOOL)

    def as_int(self) -> int:
        return self._expect(Kind.INTEGER)

    def as_float(self) -> float:
        return self._expect(Kind.FLOAT)

    def as_string(self) -> str:
        return self._expect(Kind.STRING)

    def as_object(self) -> Mapping[str, "Value"]:
        """Read-only view of the entries; use v[key] = ... to change them."""
        return MappingProxyType(self._expect(Kind.OBJECT))

    def as_array(self) -> Tuple["Value", ...]:
        """Snapshot of the items; use append() or v[i] = ... to change them."""
        return tuple(self._expect(Kind.ARRAY))

    # ── container conveniences ───────────────────────────────

    def __getitem__(self, key: Union[str, int]) -> "Value":
        if self._kind in (Kind.OBJECT, Kind.ARRAY):
            return self._data[key]
        raise VariantError(Kind.OBJECT, self._kind)

    def __setitem__(self, key: Union[str, int], data: Any) -> None:
        """Store a copy of `data` under an object key or array index."""
        if self._kind is Kind.OBJECT:
            if not isinstance(key, str):
                raise ConversionError("object key must be a string, got {}".format(
                    type(key).__name__))
        elif self._kind is not Kind.ARRAY:
            raise VariantError(Kind.OBJECT, self._kind)
        self._data[key] = Value(data)

    def __delitem__(self, key: Union[str, int]) -> None:
        if self._kind not in (Kind.OBJECT, Kind.ARRAY):
            raise VariantError(Kind.OBJECT, self._kind)
        del self._data[key]

    def append(self, data: Any) -> None:
        """Append a copy of `data` to an array."""
        self._expect(Kind.ARRAY).append(Value(data))

    def __len__(self) -> int:
        if self._kind in (Kind.OBJECT, Kind.ARRAY, Kind.STRING):
            return len(self._data)
        raise TypeError("{} value has no length".format(self._kind.value))

    def __iter__(self) -> Iterator[Any]:
        if self._kind in (Kind.OBJECT, Kind.ARRAY):
            return iter(self._data)
        raise TypeError("{} value is not iterable".format(self._kind.value))

    def __contains__(self, key: object) -> bool:
        return key in self._expect(Kind.OBJECT)

    # ── comparison / display ─────────────────────────────────

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        # Kind check first: True == 1 in Python, but BOOL != INTEGER here.
        return self._kind is other._kind and self._data == other._data

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self._kind is Kind.NULL:
            return "Value(None)"
        return "Value({!r})".format(self._data)

    def to_python(self) -> Any:
        """Unwrap into plain None/bool/int/float/str/dict/list."""
        if self._kind is Kind.OBJECT:
            return {k: v.to_python() for k, v in self._data.items()}
        if self._kind is Kind.ARRAY:
            return [v.to_python() for v in self._data]
        return self._data


def _wrap(data: Any):
    """Classify a native value and wrap any children."""
    if data is None:
        return Kind.NULL, None

    # bool before int: isinstance(True, int) is True.
    if isinstance(data, bool):
        return Kind.BOOL, data

    if isinstance(data, int):
        if data < INT64_MIN or data > INT64_MAX:
            raise ConversionError("integer {} outside int64 range".format(data))
        return Kind.INTEGER, int(data)

    if isinstance(data, float):
        return Kind.FLOAT, data

    if isinstance(data, str):
        return Kind.STRING, data

    if isinstance(data, dict):
        out: Dict[str, Value] = {}
        for k, v in data.items():
            if not isinstance(k, str):
                raise ConversionError("object key must be a string, got {}".format(
                    type(k).__name__))
            out[k] = Value(v)
        return Kind.OBJECT, out

    if isinstance(data, (list, tuple)):
        return Kind.ARRAY, [Value(v) for v in data]

    raise ConversionError("unsupported type: {}".format(type(data).__name__))
