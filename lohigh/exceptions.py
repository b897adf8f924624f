"""
Custom exception hierarchy for lohigh.

Every exception carries an ErrorKind so the combiner can turn it into a
structured CombineResult, plus a context dict with diagnostic details.
"""

from enum import Enum
from typing import Dict, Any, Optional


class ErrorKind(str, Enum):
    """Structured error kinds reported in a CombineResult."""

    NOT_FOUND = "NotFound"
    PERMISSION_DENIED = "PermissionDenied"
    EMPTY_FILE = "EmptyFile"
    TOO_LARGE = "TooLarge"
    UNSUPPORTED = "Unsupported"
    CORRUPT = "Corrupt"
    ZERO_DURATION = "ZeroDuration"
    FORMAT_MISMATCH = "FormatMismatch"
    INSUFFICIENT_DISK_SPACE = "InsufficientDiskSpace"
    IO_FAILURE = "IoFailure"
    INVALID_OPTION = "InvalidOption"


class LohighError(Exception):
    """
    Base exception for all lohigh errors.

    Subclasses set a default ``kind``; callers may override it per instance.
    """

    kind = ErrorKind.IO_FAILURE

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        kind: Optional[ErrorKind] = None,
    ):
        """
        Initialize exception with message and optional context.

        Args:
            message: Human-readable error description
            context: Additional diagnostic information (file paths, values, etc.)
            kind: Error kind, defaults to the class-level kind
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        if kind is not None:
            self.kind = kind

    def __str__(self) -> str:
        """Format exception with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


# Input validation

class ValidationError(LohighError):
    """
    Raised when an input file fails a pre-flight check.

    The kind says which check failed (NotFound, EmptyFile, TooLarge, ...).
    """

    kind = ErrorKind.UNSUPPORTED


# Audio errors

class AudioError(LohighError):
    """Base class for audio-related errors."""

    kind = ErrorKind.UNSUPPORTED


class AudioFormatError(AudioError):
    """
    Raised when a file is not an integer-PCM WAV container.

    Kind is Unsupported for foreign containers and codecs, Corrupt for a
    WAV whose header cannot be parsed.
    """
    pass


class FormatMismatch(AudioError):
    """
    Raised when two inputs differ in rate, channels, depth or byte order.

    ``reference`` is the SampleFormat the other input should be converted to
    (the first input's), when known.
    """

    kind = ErrorKind.FORMAT_MISMATCH

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 reference=None):
        super().__init__(message, context)
        self.reference = reference


# Configuration errors

class ConfigurationError(LohighError):
    """Base class for configuration-related errors."""

    kind = ErrorKind.INVALID_OPTION


class InvalidParameter(ConfigurationError):
    """Raised when an option or config value is out of range."""
    pass


# Filesystem errors

class FilesystemError(LohighError):
    """Base class for filesystem-related errors (read, write, rename)."""

    kind = ErrorKind.IO_FAILURE


class DiskFullError(FilesystemError):
    """Raised when the target volume cannot hold the output."""

    kind = ErrorKind.INSUFFICIENT_DISK_SPACE


class PermissionError(FilesystemError):
    """Raised when filesystem permissions prevent an operation."""

    kind = ErrorKind.PERMISSION_DENIED
