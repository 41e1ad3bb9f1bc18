"""Error types raised by the configuration store, codec and compositor."""

from __future__ import annotations

from typing import Tuple

__all__ = [
    "ModConfError",
    "ConfigLookupError",
    "SchemaError",
    "DimensionMismatch",
    "SourceUnavailable",
]


class ModConfError(Exception):
    """Base class for every error raised by modconf."""


class ConfigLookupError(ModConfError, LookupError):
    """An option, suboption or path could not be found in a config."""


class SchemaError(ModConfError, ValueError):
    """Persisted data does not have the expected shape."""


class DimensionMismatch(ModConfError):
    """Two images that must share pixel dimensions do not."""

    def __init__(self, expected: Tuple[int, int], actual: Tuple[int, int]) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"image size {actual[0]}x{actual[1]} does not match {expected[0]}x{expected[1]}"
        )


class SourceUnavailable(ModConfError):
    """The loader has no bytes for a requested path."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"source unavailable: {path}")
