"""Scoped ownership of foreign resources.

Each handle owns exactly one pointer handed out by libgbln and releases
it exactly once: on leaving a ``with`` block, on an explicit release(),
or never (if ownership was transferred out first).  Handles cannot be
copied, only transferred.

    with ValueHandle(engine, ptr) as h:
        ...                       # h.ptr is valid here
    # released here, whatever happened inside

Transfer is the only way to let a pointer escape a scope:

    return h.transfer()           # h is now empty; caller owns the new handle

give() covers the engine calls that take ownership only on success
(object insert, array push): the pointer is detached when the consumer
reports OK and stays owned otherwise, so a failed insert is still
released by the scope that created the child.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from ._constants import ErrorCode
from ._errors import InvalidHandle


class ForeignHandle:
    """Owns one foreign pointer of a single resource kind."""

    __slots__ = ("_engine", "_ptr")

    resource = "resource"

    def __init__(self, engine: Any, ptr: Optional[int]) -> None:
        if not ptr:
            raise InvalidHandle("cannot wrap a null {} pointer".format(self.resource))
        self._engine = engine
        self._ptr = ptr

    @property
    def ptr(self) -> int:
        if not self._ptr:
            raise InvalidHandle("{} handle no longer owns a pointer".format(self.resource))
        return self._ptr

    @property
    def owned(self) -> bool:
        return bool(self._ptr)

    def _free(self, ptr: int) -> None:
        raise NotImplementedError

    def release(self) -> None:
        """Free the resource.  Idempotent; a no-op after transfer."""
        ptr, self._ptr = self._ptr, None
        if ptr:
            self._free(ptr)

    def detach(self) -> int:
        """Give up ownership and return the raw pointer."""
        ptr = self.ptr
        self._ptr = None
        return ptr

    def transfer(self) -> "ForeignHandle":
        """Move ownership into a new handle; this one becomes empty."""
        moved = object.__new__(type(self))
        moved._move_from(self)
        return moved

    def _move_from(self, other: "ForeignHandle") -> None:
        self._engine = other._engine
        self._ptr = other.detach()

    def give(self, consumer: Callable[[int], int]) -> int:
        """Hand the pointer to `consumer`, which returns a result code.

        Ownership moves only when the code is OK.  On any other code
        this handle still owns the pointer and will release it.
        """
        code = consumer(self.ptr)
        if code == ErrorCode.OK:
            self._ptr = None
        return code

    def __enter__(self) -> "ForeignHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def __copy__(self):
        raise TypeError("{} is not copyable; use transfer()".format(type(self).__name__))

    def __deepcopy__(self, memo):
        raise TypeError("{} is not copyable; use transfer()".format(type(self).__name__))

    def __reduce__(self):
        raise TypeError("{} cannot be pickled".format(type(self).__name__))

    def __bool__(self) -> bool:
        return self.owned

    def __repr__(self) -> str:
        state = "0x{:x}".format(self._ptr) if self._ptr else "empty"
        return "<{} {}>".format(type(self).__name__, state)


class ValueHandle(ForeignHandle):
    """An owned GblnValue* (a whole tree: freeing the root frees children)."""

    __slots__ = ()
    resource = "value"

    def _free(self, ptr: int) -> None:
        self._engine.value_free(ptr)


class ConfigHandle(ForeignHandle):
    __slots__ = ()
    resource = "config"

    def _free(self, ptr: int) -> None:
        self._engine.config_free(ptr)


class StringHandle(ForeignHandle):
    """An owned char* returned by the engine (serialized text, error text)."""

    __slots__ = ()
    resource = "string"

    def _free(self, ptr: int) -> None:
        self._engine.string_free(ptr)

    def read(self) -> str:
        """Copy the text out; the copy outlives the handle."""
        return self._engine.read_string(self.ptr).decode("utf-8", errors="replace")


class KeyListHandle(ForeignHandle):
    """An owned char** plus its count, freed together."""

    __slots__ = ("_count",)
    resource = "key-list"

    def __init__(self, engine: Any, ptr: Optional[int], count: int) -> None:
        super().__init__(engine, ptr)
        self._count = count

    def _move_from(self, other: "ForeignHandle") -> None:
        self._count = other._count
        super()._move_from(other)
        other._count = 0

    def _free(self, ptr: int) -> None:
        count, self._count = self._count, 0
        self._engine.keys_free(ptr, count)

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index: int) -> bytes:
        """Copy of the key bytes at `index`."""
        if index < 0 or index >= self._count:
            raise IndexError("key index {} out of range".format(index))
        return self._engine.key_at(self.ptr, index)
