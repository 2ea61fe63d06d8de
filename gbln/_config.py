"""Write configuration for the GBLN I/O format."""

from __future__ import annotations

from dataclasses import dataclass

from ._constants import (
    COMPRESSION_LEVEL_RANGE,
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_INDENT,
    INDENT_RANGE,
)
from ._errors import ConfigurationError


@dataclass
class Config:
    """Options handed to the engine by write_io().

    mini_mode          compact text, no whitespace
    compress           XZ-compress the file
    compression_level  0 (fastest) .. 9 (smallest)
    indent             pretty-print width, ignored in mini mode
    strip_comments     drop comments from the written file
    """

    mini_mode: bool = True
    compress: bool = True
    compression_level: int = DEFAULT_COMPRESSION_LEVEL
    indent: int = DEFAULT_INDENT
    strip_comments: bool = True

    def validate(self) -> None:
        _check_range("compression level", self.compression_level, COMPRESSION_LEVEL_RANGE)
        _check_range("indent", self.indent, INDENT_RANGE)

    @classmethod
    def io_default(cls) -> "Config":
        """MINI + compressed: the format for machine-to-machine files."""
        return cls(mini_mode=True, compress=True,
                   compression_level=DEFAULT_COMPRESSION_LEVEL, strip_comments=True)

    @classmethod
    def source_default(cls) -> "Config":
        """Pretty + uncompressed: the format for hand-edited files."""
        return cls(mini_mode=False, compress=False, indent=DEFAULT_INDENT,
                   strip_comments=False)


def _check_range(name: str, value: object, bounds) -> None:
    lo, hi = bounds
    # bool is an int subclass; True is not a compression level.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError("{} must be an integer, got: {!r}".format(name, value))
    if value < lo or value > hi:
        raise ConfigurationError("{} must be {}-{}, got: {}".format(
            name.capitalize(), lo, hi, value))
