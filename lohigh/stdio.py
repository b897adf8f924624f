"""
stdin/stdout adapter for Unix pipelines.

The combiner only works on filesystem paths, so '-' inputs are spooled to a
temporary file first and the finished output is streamed back afterwards.
"""

import os
import shutil
import sys
import tempfile
from typing import BinaryIO, Optional

STDIO_MARKER = "-"
COPY_BUFFER_SIZE = 64 * 1024


def is_stdio(path: Optional[str]) -> bool:
    """True if the path stands for stdin/stdout."""
    return path == STDIO_MARKER


def read_stdin_to_temp_file(stream: Optional[BinaryIO] = None, prefix: str = "lohigh_stdin_") -> str:
    """
    Copy a binary stream (stdin by default) into a new temporary .wav file.

    Returns:
        Path of the temporary file; the caller removes it
    """
    stream = stream or sys.stdin.buffer
    fd, path = tempfile.mkstemp(prefix=prefix, suffix=".wav")
    try:
        with os.fdopen(fd, "wb") as out:
            shutil.copyfileobj(stream, out, COPY_BUFFER_SIZE)
    except BaseException:
        os.remove(path)
        raise
    return path


def make_temp_output(prefix: str = "lohigh_stdout_") -> str:
    """Reserve a temporary path for output that will be streamed to stdout."""
    fd, path = tempfile.mkstemp(prefix=prefix, suffix=".wav")
    os.close(fd)
    return path


def write_to_stdout(audio_file: str, stream: Optional[BinaryIO] = None) -> None:
    """Stream a file to a binary stream (stdout by default)."""
    stream = stream or sys.stdout.buffer
    with open(audio_file, "rb") as f:
        shutil.copyfileobj(f, stream, COPY_BUFFER_SIZE)
    stream.flush()
