"""GBLN error codes, exception hierarchy, and foreign result-code mapping.

Every failure the bindings report is a GblnError subclass carrying a
grep-friendly `.code` string.  Foreign result codes (see ErrorCode) are
translated here and nowhere else.
"""

from __future__ import annotations

from typing import Dict, Optional, Type

from ._constants import ErrorCode

# ── Error codes ──────────────────────────────────────────────

ERR_PARSE: str = "ERR_PARSE"                  # engine rejected the text
ERR_VALIDATION: str = "ERR_VALIDATION"        # range/type/duplicate-key checks
ERR_CONVERSION: str = "ERR_CONVERSION"        # value could not cross the boundary
ERR_ENCODING: str = "ERR_ENCODING"            # bad UTF-8 lead byte
ERR_STRING_TOO_LONG: str = "ERR_STRING_TOO_LONG"  # more than 1024 characters
ERR_INVALID_HANDLE: str = "ERR_INVALID_HANDLE"    # null foreign resource wrapped
ERR_CONFIG: str = "ERR_CONFIG"                # configuration out of range
ERR_IO: str = "ERR_IO"                        # delegated file I/O failed
ERR_ENGINE: str = "ERR_ENGINE"                # libgbln could not be loaded


class GblnError(Exception):
    """Base exception for GBLN processing errors.

    `.code` is one of the ERR_* strings above.  `.suggestion` holds the
    engine's hint text when one was available.
    """

    code: str = ERR_CONVERSION

    def __init__(self, message: str = "", suggestion: Optional[str] = None,
                 code: Optional[str] = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(message or self.code)
        self.message = message or self.code
        self.suggestion = suggestion

    def __str__(self) -> str:
        if self.suggestion:
            return "{} (hint: {})".format(self.message, self.suggestion)
        return self.message


class ParseError(GblnError):
    code = ERR_PARSE


class ValidationError(GblnError):
    code = ERR_VALIDATION


class ConversionError(GblnError):
    code = ERR_CONVERSION


class InvalidEncoding(ConversionError):
    code = ERR_ENCODING


class StringTooLong(ConversionError):
    code = ERR_STRING_TOO_LONG


class InvalidHandle(GblnError):
    """A null foreign resource was handed to a scoped handle.

    This is a contract violation in the calling code, not bad input.
    """

    code = ERR_INVALID_HANDLE


class ConfigurationError(GblnError):
    code = ERR_CONFIG


class IoError(GblnError):
    code = ERR_IO


class EngineUnavailable(GblnError):
    code = ERR_ENGINE


# ── Foreign result code → exception class ────────────────────

_CODE_TO_ERROR: Dict[ErrorCode, Type[GblnError]] = {
    ErrorCode.UNEXPECTED_CHAR: ParseError,
    ErrorCode.UNTERMINATED_STRING: ParseError,
    ErrorCode.UNEXPECTED_TOKEN: ParseError,
    ErrorCode.UNEXPECTED_EOF: ParseError,
    ErrorCode.INVALID_SYNTAX: ParseError,
    ErrorCode.INT_OUT_OF_RANGE: ValidationError,
    ErrorCode.STRING_TOO_LONG: StringTooLong,
    ErrorCode.TYPE_MISMATCH: ValidationError,
    ErrorCode.INVALID_TYPE_HINT: ValidationError,
    ErrorCode.DUPLICATE_KEY: ValidationError,
    ErrorCode.NULL_POINTER: ConversionError,
    ErrorCode.IO: IoError,
}


def error_class_for(code: int, default: Type[GblnError] = GblnError) -> Type[GblnError]:
    """Return the exception class for a foreign result code."""
    try:
        return _CODE_TO_ERROR[ErrorCode(code)]
    except (ValueError, KeyError):
        return default


def describe_code(code: int) -> str:
    try:
        return ErrorCode(code).name.lower().replace("_", " ")
    except ValueError:
        return "unknown result code {}".format(code)
