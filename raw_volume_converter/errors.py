"""
Exceptions raised by the raw volume converter.

Every failure aborts the whole conversion; no partial result is ever returned.
The concrete kinds also derive from the matching builtin (``OSError`` for file
access, ``ValueError`` for bad parameters or bad data) so that callers that
already guard readers with ``except ValueError`` keep working.
"""

from __future__ import annotations

from typing import Optional


class RawConversionError(Exception):
    """Base exception for all raw conversion errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        # ConversionState in which the orchestrator aborted (set by RawConverter).
        self.aborted_in = None

    @property
    def default_message(self) -> str:
        return "An unknown raw conversion error occurred."

    def __str__(self) -> str:
        return self.message


class UserDeclinedError(RawConversionError):
    """Raised when the parameter source refused, or interaction is disabled."""

    @property
    def default_message(self) -> str:
        return "The data set parameters were not provided; conversion declined."


class ConversionIOError(RawConversionError, OSError):
    """Raised when a file cannot be opened, read or written."""

    @property
    def default_message(self) -> str:
        return "File access failed during raw conversion."


class InvalidParameterError(RawConversionError, ValueError):
    """Raised when a request field is missing or outside its defined range."""

    @property
    def default_message(self) -> str:
        return "Invalid conversion parameter."


class SizeMismatchError(RawConversionError, ValueError):
    """Raised when the declared geometry needs more bytes than are available."""

    def __init__(
        self,
        message: str = "",
        *,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual

    @property
    def default_message(self) -> str:
        return "Declared volume geometry exceeds the available data."


class ParseError(RawConversionError, ValueError):
    """Raised when delimited text tokens are malformed or miscounted."""

    @property
    def default_message(self) -> str:
        return "Text data set could not be parsed."


class DecompressionError(RawConversionError, ValueError):
    """Raised when a compressed stream is malformed or truncated."""

    @property
    def default_message(self) -> str:
        return "Compressed data set is malformed or truncated."
