"""ctypes binding to libgbln, the native GBLN engine.

Grammar, serializer, compression and file I/O all live in libgbln; this
module only declares its C surface and wraps it in the `Engine` facade
the rest of the package talks to.  Pointers cross the boundary as plain
ints (c_void_p); None or 0 means null.

Ownership rules of the C API, as relied on elsewhere:

    gbln_parse / gbln_read_io      out-value is owned by the caller
    gbln_to_string[_pretty]        returned char* is owned by the caller
    gbln_last_error_*              returned char* is owned by the caller
    gbln_object_keys               char** + count owned by the caller
    gbln_value_as_string           char* is BORROWED from the value
    gbln_object_get / array_get    child is BORROWED from the container
    gbln_object_insert / push      child ownership moves only on Ok

Thread safety: the engine keeps its last-error text in process-wide
state.  Calls that may set it are made under `engine_lock`, and the
text is copied out before the lock is dropped.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
import threading
from ctypes import (
    CDLL, POINTER, byref, c_bool, c_char_p, c_double, c_float, c_int,
    c_int8, c_int16, c_int32, c_int64, c_size_t, c_uint8, c_uint16,
    c_uint32, c_uint64, c_void_p,
)
from typing import Any, Dict, List, Optional, Tuple, Type

from ._constants import (
    LIBRARY_ENV_VAR,
    LIBRARY_FILENAMES,
    LIBRARY_NAME,
    ErrorCode,
    ValueType,
)
from ._errors import (
    EngineUnavailable,
    GblnError,
    describe_code,
    error_class_for,
)
from ._handles import StringHandle

logger = logging.getLogger(__name__)

engine_lock = threading.RLock()


# ── Per-type C signatures ────────────────────────────────────
# (ctype, suffix) for each scalar tag; suffix names the C function pair
# gbln_value_as_<suffix> / gbln_value_new_<suffix>.

_SCALAR_CTYPES: Dict[ValueType, Tuple[Any, str]] = {
    ValueType.I8: (c_int8, "i8"),
    ValueType.I16: (c_int16, "i16"),
    ValueType.I32: (c_int32, "i32"),
    ValueType.I64: (c_int64, "i64"),
    ValueType.U8: (c_uint8, "u8"),
    ValueType.U16: (c_uint16, "u16"),
    ValueType.U32: (c_uint32, "u32"),
    ValueType.U64: (c_uint64, "u64"),
    ValueType.F32: (c_float, "f32"),
    ValueType.F64: (c_double, "f64"),
    ValueType.BOOL: (c_bool, "bool"),
}


def _declare(lib: CDLL) -> None:
    """Set argtypes/restype for every libgbln entry point we call."""
    vp = c_void_p
    pvp = POINTER(c_void_p)

    def sig(name: str, restype: Any, *argtypes: Any) -> None:
        fn = getattr(lib, name)
        fn.argtypes = list(argtypes)
        fn.restype = restype

    # Memory management
    sig("gbln_value_free", None, vp)
    sig("gbln_string_free", None, vp)
    sig("gbln_keys_free", None, vp, c_size_t)

    # Parse / serialize
    sig("gbln_parse", c_int, c_char_p, pvp)
    sig("gbln_to_string", vp, vp)
    sig("gbln_to_string_pretty", vp, vp)

    # Error information
    sig("gbln_last_error_message", vp)
    sig("gbln_last_error_suggestion", vp)

    # Introspection
    sig("gbln_value_type", c_int, vp)
    for ctype, suffix in _SCALAR_CTYPES.values():
        sig("gbln_value_as_" + suffix, ctype, vp, POINTER(c_bool))
        sig("gbln_value_new_" + suffix, vp, ctype)
    sig("gbln_value_as_string", vp, vp, POINTER(c_bool))

    sig("gbln_object_get", vp, vp, c_char_p)
    sig("gbln_object_keys", vp, vp, POINTER(c_size_t))
    sig("gbln_array_len", c_size_t, vp)
    sig("gbln_array_get", vp, vp, c_size_t)

    # Construction
    sig("gbln_value_new_str", vp, c_char_p, c_size_t)
    sig("gbln_value_new_null", vp)
    sig("gbln_value_new_object", vp)
    sig("gbln_value_new_array", vp)
    sig("gbln_object_insert", c_int, vp, c_char_p, vp)
    sig("gbln_array_push", c_int, vp, vp)

    # I/O and configuration
    sig("gbln_write_io", c_int, vp, c_char_p, vp)
    sig("gbln_read_io", c_int, c_char_p, pvp)
    sig("gbln_config_new", vp, c_bool, c_bool, c_uint8, c_size_t, c_bool)
    sig("gbln_config_free", None, vp)


class Engine:
    """Thin method-per-call facade over a loaded libgbln.

    Nothing here interprets results beyond unpacking out-parameters;
    ownership and error policy belong to the callers.  Anything with
    the same methods can stand in for an Engine.
    """

    def __init__(self, lib: CDLL) -> None:
        _declare(lib)
        self.lib = lib

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Engine":
        return cls(load_library(path))

    # ── lifecycle ─────────────────────────────────────────────

    def value_free(self, ptr: int) -> None:
        self.lib.gbln_value_free(ptr)

    def string_free(self, ptr: int) -> None:
        self.lib.gbln_string_free(ptr)

    def keys_free(self, ptr: int, count: int) -> None:
        self.lib.gbln_keys_free(ptr, count)

    def config_free(self, ptr: int) -> None:
        self.lib.gbln_config_free(ptr)

    # ── parse / serialize ─────────────────────────────────────

    def parse(self, text: bytes) -> Tuple[int, Optional[int]]:
        out = c_void_p()
        code = self.lib.gbln_parse(text, byref(out))
        return code, out.value

    def to_string(self, ptr: int) -> Optional[int]:
        return self.lib.gbln_to_string(ptr)

    def to_string_pretty(self, ptr: int) -> Optional[int]:
        return self.lib.gbln_to_string_pretty(ptr)

    def read_string(self, ptr: int) -> bytes:
        return ctypes.string_at(ptr)

    def last_error_message(self) -> Optional[int]:
        return self.lib.gbln_last_error_message()

    def last_error_suggestion(self) -> Optional[int]:
        return self.lib.gbln_last_error_suggestion()

    # ── introspection ─────────────────────────────────────────

    def value_type(self, ptr: int) -> int:
        return self.lib.gbln_value_type(ptr)

    def value_as(self, ptr: int, value_type: ValueType) -> Tuple[Any, bool]:
        """Typed read with success flag.  Strings come back as copied bytes."""
        ok = c_bool(False)
        if value_type == ValueType.STR:
            borrowed = self.lib.gbln_value_as_string(ptr, byref(ok))
            if not ok.value or not borrowed:
                return None, False
            return ctypes.string_at(borrowed), True
        _ctype, suffix = _SCALAR_CTYPES[value_type]
        value = getattr(self.lib, "gbln_value_as_" + suffix)(ptr, byref(ok))
        return value, bool(ok.value)

    def object_get(self, ptr: int, key: bytes) -> Optional[int]:
        return self.lib.gbln_object_get(ptr, key)

    def object_keys(self, ptr: int) -> Tuple[Optional[int], int]:
        count = c_size_t(0)
        keys = self.lib.gbln_object_keys(ptr, byref(count))
        return keys, count.value

    def key_at(self, keys_ptr: int, index: int) -> bytes:
        entries = ctypes.cast(keys_ptr, POINTER(c_char_p))
        return entries[index] or b""

    def array_len(self, ptr: int) -> int:
        return self.lib.gbln_array_len(ptr)

    def array_get(self, ptr: int, index: int) -> Optional[int]:
        return self.lib.gbln_array_get(ptr, index)

    # ── construction ──────────────────────────────────────────

    def new_integer(self, value_type: ValueType, n: int) -> Optional[int]:
        _ctype, suffix = _SCALAR_CTYPES[value_type]
        return getattr(self.lib, "gbln_value_new_" + suffix)(n)

    def new_float(self, value_type: ValueType, x: float) -> Optional[int]:
        _ctype, suffix = _SCALAR_CTYPES[value_type]
        return getattr(self.lib, "gbln_value_new_" + suffix)(x)

    def new_str(self, data: bytes, max_len: int) -> Optional[int]:
        return self.lib.gbln_value_new_str(data, max_len)

    def new_bool(self, flag: bool) -> Optional[int]:
        return self.lib.gbln_value_new_bool(flag)

    def new_null(self) -> Optional[int]:
        return self.lib.gbln_value_new_null()

    def new_object(self) -> Optional[int]:
        return self.lib.gbln_value_new_object()

    def new_array(self) -> Optional[int]:
        return self.lib.gbln_value_new_array()

    def object_insert(self, obj: int, key: bytes, child: int) -> int:
        return self.lib.gbln_object_insert(obj, key, child)

    def array_push(self, arr: int, child: int) -> int:
        return self.lib.gbln_array_push(arr, child)

    # ── configuration / I/O ───────────────────────────────────

    def config_new(self, mini_mode: bool, compress: bool, compression_level: int,
                   indent: int, strip_comments: bool) -> Optional[int]:
        return self.lib.gbln_config_new(mini_mode, compress, compression_level,
                                        indent, strip_comments)

    def write_io(self, ptr: int, path: bytes, config: int) -> int:
        return self.lib.gbln_write_io(ptr, path, config)

    def read_io(self, path: bytes) -> Tuple[int, Optional[int]]:
        out = c_void_p()
        code = self.lib.gbln_read_io(path, byref(out))
        return code, out.value


# ── Library discovery ────────────────────────────────────────

def _candidate_paths(path: Optional[str]) -> List[str]:
    candidates: List[str] = []
    if path:
        candidates.append(path)
    env_path = os.environ.get(LIBRARY_ENV_VAR)
    if env_path:
        candidates.append(env_path)
    found = ctypes.util.find_library(LIBRARY_NAME)
    if found:
        candidates.append(found)
    candidates.extend(LIBRARY_FILENAMES)

    seen = set()
    unique = []
    for candidate in candidates:
        if candidate not in seen:
            seen.add(candidate)
            unique.append(candidate)
    return unique


def load_library(path: Optional[str] = None) -> CDLL:
    """Load libgbln: explicit path, then $GBLN_LIBRARY, then the system."""
    tried = _candidate_paths(path)
    for candidate in tried:
        try:
            lib = CDLL(candidate)
        except OSError as exc:
            logger.debug("libgbln not loadable from %s: %s", candidate, exc)
            continue
        logger.info("loaded libgbln from %s", candidate)
        return lib
    raise EngineUnavailable(
        "could not load libgbln (tried: {})".format(", ".join(tried)),
        suggestion="set {} to the path of the shared library".format(LIBRARY_ENV_VAR),
    )


_default_engine: Optional[Any] = None


def get_engine(engine: Optional[Any] = None) -> Any:
    """Return `engine` if given, else the lazily loaded process default."""
    global _default_engine
    if engine is not None:
        return engine
    with engine_lock:
        if _default_engine is None:
            _default_engine = Engine.load()
        return _default_engine


def set_engine(engine: Optional[Any]) -> None:
    """Replace the process default engine (None forces a reload)."""
    global _default_engine
    with engine_lock:
        _default_engine = engine


# ── Error mapping ────────────────────────────────────────────

def _take_string(engine: Any, ptr: Optional[int]) -> Optional[str]:
    if not ptr:
        return None
    with StringHandle(engine, ptr) as handle:
        return handle.read()


def last_error(engine: Any) -> Tuple[Optional[str], Optional[str]]:
    """Copy the engine's last error message and suggestion.

    Must run before any other engine call that could overwrite them;
    callers hold engine_lock across the failing call and this read.
    """
    message = _take_string(engine, engine.last_error_message())
    suggestion = _take_string(engine, engine.last_error_suggestion())
    return message, suggestion


def raise_for_code(engine: Any, code: int, default: Type[GblnError],
                   context: str) -> None:
    """Raise the mapped GblnError for a failing result code; no-op on OK."""
    if code == ErrorCode.OK:
        return
    message, suggestion = last_error(engine)
    cls = error_class_for(code, default)
    detail = message or describe_code(code)
    logger.debug("%s failed with code %s: %s", context, code, detail)
    raise cls("{}: {}".format(context, detail), suggestion=suggestion)
