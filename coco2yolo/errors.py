"""Exception types raised by the converter."""

from __future__ import annotations


class ConversionError(Exception):
    """Base class for errors that abort a conversion run."""

    exit_code = 1


class ConfigError(ConversionError):
    """Invalid command-line options or input paths."""

    exit_code = 2


class DataError(ConversionError):
    """An annotation file that cannot be parsed."""


class OutputError(ConversionError):
    """The output directory cannot be created or written."""


__all__ = ["ConversionError", "ConfigError", "DataError", "OutputError"]
