"""
Pre-flight checks for input files and output volumes.
"""

import os
import shutil
from pathlib import Path

from lohigh import io_utils
from lohigh.exceptions import ErrorKind, ValidationError, AudioFormatError, FilesystemError
from lohigh.logger import get_logger
from lohigh.models import DEFAULT_MAX_FILE_SIZE, WavInfo

logger = get_logger(__name__)

DISK_SPACE_MARGIN = 100 * 1024 * 1024  # 100 MiB


def validate(filepath: str, max_size: int = DEFAULT_MAX_FILE_SIZE) -> WavInfo:
    """
    Validate an input audio file, stopping at the first failed check.

    Checks, in order: exists, readable, non-empty, not larger than
    ``max_size``, decodable as integer PCM WAV, at least one frame.

    Args:
        filepath: Path to the audio file
        max_size: Largest accepted file size in bytes

    Returns:
        WavInfo from the probe, so callers don't have to probe again

    Raises:
        ValidationError: kind is one of NotFound, PermissionDenied,
            EmptyFile, TooLarge, Unsupported, Corrupt, ZeroDuration, IoFailure
    """
    filepath = str(filepath)

    if not os.path.exists(filepath):
        raise ValidationError(
            f"cannot open '{filepath}' - file not found",
            context={"filepath": filepath},
            kind=ErrorKind.NOT_FOUND,
        )

    if not os.path.isfile(filepath):
        raise ValidationError(
            f"'{filepath}' is not a regular file",
            context={"filepath": filepath},
            kind=ErrorKind.UNSUPPORTED,
        )

    if not os.access(filepath, os.R_OK):
        raise ValidationError(
            f"cannot read '{filepath}' - permission denied",
            context={"filepath": filepath},
            kind=ErrorKind.PERMISSION_DENIED,
        )

    size = os.path.getsize(filepath)
    if size == 0:
        raise ValidationError(
            f"'{filepath}' is empty (0 bytes)",
            context={"filepath": filepath},
            kind=ErrorKind.EMPTY_FILE,
        )

    if size > max_size:
        raise ValidationError(
            f"'{filepath}' is too large ({size // 1024 // 1024} MB)",
            context={"filepath": filepath, "size_bytes": size, "max_bytes": max_size},
            kind=ErrorKind.TOO_LARGE,
        )

    try:
        info = io_utils.probe(filepath)
    except (AudioFormatError, FilesystemError) as e:
        raise ValidationError(
            f"'{filepath}' is not a valid audio file: {e.message}",
            context=dict(e.context),
            kind=e.kind,
        ) from e

    if info.frames <= 0:
        raise ValidationError(
            f"'{filepath}' has invalid duration (no audio frames)",
            context={"filepath": filepath},
            kind=ErrorKind.ZERO_DURATION,
        )

    logger.debug(f"Validated {filepath}: {info.format.describe()}, {info.frames} frames")
    return info


def _existing_ancestor(path: Path) -> Path:
    path = path.absolute()
    for candidate in (path, *path.parents):
        if candidate.exists():
            return candidate
    return Path(".")


def check_disk_space(target_path: str, estimated_bytes: int) -> bool:
    """
    Check whether the target's volume can hold ``estimated_bytes`` plus a margin.

    Args:
        target_path: Path of the file about to be written
        estimated_bytes: Expected size of the output

    Returns:
        False if free space is below estimated_bytes + 100 MiB. True if
        there is enough room or free space could not be determined.
    """
    directory = _existing_ancestor(Path(target_path).parent)
    required = estimated_bytes + DISK_SPACE_MARGIN

    try:
        free = shutil.disk_usage(directory).free
    except OSError as e:
        logger.warning(f"Could not verify available disk space: {e}")
        return True

    if free < required:
        logger.debug(
            f"Insufficient disk space: {free / 1024 / 1024:.1f} MB available, "
            f"{required / 1024 / 1024:.1f} MB needed"
        )
        return False
    return True
