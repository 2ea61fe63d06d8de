"""gbln - Python bindings for GBLN, a compact type-annotated data format.

Parsing, serialization, compression and file I/O are done by the native
libgbln engine; this package converts between its value trees and a
plain Python value model, choosing the narrowest GBLN type for every
integer and string on the way out.

Quick start:
    >>> import gbln
    >>> data = gbln.parse("user{id<u32>(12345)name<s64>(Alice)}")
    >>> data["user"]["name"].as_string()
    'Alice'
    >>> gbln.serialize(data)
    'user{id<u16>(12345)name<s8>(Alice)}'

Thread safety: libgbln reports errors through process-wide state.  The
functions here serialize their engine calls on one module-level lock,
so calling them from several threads is safe, but code that calls
libgbln directly must take `engine_lock` too.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional, Union

from ._config import Config
from ._constants import ErrorCode, ValueType, __version__
from ._conversion import foreign_to_value, value_to_foreign
from ._errors import (
    ERR_CONFIG,
    ERR_CONVERSION,
    ERR_ENCODING,
    ERR_ENGINE,
    ERR_INVALID_HANDLE,
    ERR_IO,
    ERR_PARSE,
    ERR_STRING_TOO_LONG,
    ERR_VALIDATION,
    ConfigurationError,
    ConversionError,
    EngineUnavailable,
    GblnError,
    InvalidEncoding,
    InvalidHandle,
    IoError,
    ParseError,
    StringTooLong,
    ValidationError,
)
from ._ffi import Engine, engine_lock, get_engine, raise_for_code, set_engine
from ._handles import ConfigHandle, StringHandle, ValueHandle
from ._optimal import optimal_int_type, optimal_string_capacity
from ._value import Kind, Value, VariantError

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

__all__ = [
    # Public API functions
    "parse",
    "parse_file",
    "serialize",
    "to_string",
    "to_string_pretty",
    "read_io",
    "write_io",
    "optimal_int_type",
    "optimal_string_capacity",
    # Model and configuration
    "Value",
    "Kind",
    "Config",
    "ValueType",
    "ErrorCode",
    # Engine
    "Engine",
    "engine_lock",
    "get_engine",
    "set_engine",
    # Exceptions
    "GblnError",
    "ParseError",
    "ValidationError",
    "ConversionError",
    "InvalidEncoding",
    "StringTooLong",
    "InvalidHandle",
    "ConfigurationError",
    "IoError",
    "EngineUnavailable",
    "VariantError",
    # Error codes
    "ERR_PARSE",
    "ERR_VALIDATION",
    "ERR_CONVERSION",
    "ERR_ENCODING",
    "ERR_STRING_TOO_LONG",
    "ERR_INVALID_HANDLE",
    "ERR_CONFIG",
    "ERR_IO",
    "ERR_ENGINE",
]


def _as_value(value: Any) -> Value:
    return value if isinstance(value, Value) else Value(value)


# ── Parsing ──────────────────────────────────────────────────

def parse(text: str, *, engine: Optional[Any] = None) -> Value:
    """Parse GBLN text into a Value.

    "user{...}" is a record named user, so the result is an object with
    the single key "user".
    """
    eng = get_engine(engine)
    with engine_lock:
        code, ptr = eng.parse(text.encode("utf-8"))
        raise_for_code(eng, code, ParseError, "parse failed")
    if not ptr:
        raise ParseError("parse returned a null value")
    with ValueHandle(eng, ptr) as root:
        return foreign_to_value(eng, root.ptr)


def parse_file(path: PathLike, *, engine: Optional[Any] = None) -> Value:
    """Read a UTF-8 GBLN source file and parse it."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise IoError("cannot read file '{}': {}".format(os.fspath(path), exc))
    return parse(text, engine=engine)


# ── Serialization ────────────────────────────────────────────

def serialize(value: Any, *, pretty: bool = False, engine: Optional[Any] = None) -> str:
    """Serialize a Value (or native data) to GBLN text."""
    eng = get_engine(engine)
    with value_to_foreign(eng, _as_value(value)) as handle:
        with engine_lock:
            if pretty:
                out = eng.to_string_pretty(handle.ptr)
            else:
                out = eng.to_string(handle.ptr)
        if not out:
            raise ConversionError("serialisation returned a null string")
        with StringHandle(eng, out) as text:
            return text.read()


def to_string(value: Any, mini: bool = True, *, engine: Optional[Any] = None) -> str:
    """Compact (mini) or pretty text, as selected by `mini`."""
    return serialize(value, pretty=not mini, engine=engine)


def to_string_pretty(value: Any, indent: int = 2, *, engine: Optional[Any] = None) -> str:
    """Pretty text.  libgbln formats with a fixed indent; `indent` is accepted
    for API symmetry with Config and otherwise ignored."""
    return serialize(value, pretty=True, engine=engine)


# ── I/O format files ─────────────────────────────────────────

def read_io(path: PathLike, *, engine: Optional[Any] = None) -> Value:
    """Read a GBLN I/O file (usually .io.gbln.xz)."""
    eng = get_engine(engine)
    path_str = os.fspath(path)
    with engine_lock:
        code, ptr = eng.read_io(path_str.encode("utf-8"))
        raise_for_code(eng, code, IoError, "failed to read I/O file '{}'".format(path_str))
    if not ptr:
        raise IoError("I/O read returned a null value for: {}".format(path_str))
    with ValueHandle(eng, ptr) as root:
        return foreign_to_value(eng, root.ptr)


def write_io(value: Any, path: PathLike, config: Optional[Config] = None, *,
             engine: Optional[Any] = None) -> None:
    """Write a GBLN I/O file.  Defaults to Config.io_default()."""
    cfg = config if config is not None else Config.io_default()
    cfg.validate()

    eng = get_engine(engine)
    path_str = os.fspath(path)
    with value_to_foreign(eng, _as_value(value)) as handle:
        cfg_ptr = eng.config_new(cfg.mini_mode, cfg.compress, cfg.compression_level,
                                 cfg.indent, cfg.strip_comments)
        if not cfg_ptr:
            raise IoError("failed to create configuration")
        with ConfigHandle(eng, cfg_ptr) as cfg_handle:
            with engine_lock:
                code = eng.write_io(handle.ptr, path_str.encode("utf-8"), cfg_handle.ptr)
                raise_for_code(eng, code, IoError,
                               "failed to write I/O file '{}'".format(path_str))
    logger.debug("wrote %s (compress=%s, level=%s)", path_str, cfg.compress,
                 cfg.compression_level)
