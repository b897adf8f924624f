"""
WAV container I/O: probing, chunked reading, atomic writing, discovery.
"""

import errno
import os
import struct
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import numpy as np
import soundfile as sf

from lohigh.codec import SampleCodec
from lohigh.exceptions import (
    AudioFormatError,
    DiskFullError,
    ErrorKind,
    FilesystemError,
    FormatMismatch,
    PermissionError as LohighPermissionError,
)
from lohigh.logger import get_logger
from lohigh.models import PcmBuffer, SampleFormat, WavInfo

logger = get_logger(__name__)

SUPPORTED_AUDIO_FORMATS = {'.wav', '.wave'}

# Containers libsndfile reports for RIFF/RIFX WAVE files
WAV_CONTAINERS = {'WAV', 'WAVEX'}

PCM_SUBTYPES = {
    'PCM_U8': 8,
    'PCM_16': 16,
    'PCM_24': 24,
    'PCM_32': 32,
}
SUBTYPE_FOR_BITS = {bits: subtype for subtype, bits in PCM_SUBTYPES.items()}

# soundfile dtype used to move each depth in and out of libsndfile, and the
# left shift libsndfile applies when widening to that dtype
TRANSFER_DTYPES = {
    8: ('int16', 8),
    16: ('int16', 0),
    24: ('int32', 8),
    32: ('int32', 0),
}

# fmt chunk format tags that may carry integer PCM
WAVE_FORMAT_PCM = 0x0001
WAVE_FORMAT_EXTENSIBLE = 0xFFFE

DEFAULT_CHUNK_FRAMES = 65536

ProgressCallback = Callable[[int, int, str], None]


def discover_audio_files(directory: str) -> List[str]:
    """
    Recursively discover WAV files in a directory.

    Args:
        directory: Path to search

    Returns:
        Sorted list of file paths with a supported extension
    """
    if not os.path.isdir(directory):
        return []

    files = []
    for root, dirs, filenames in os.walk(directory):
        for filename in filenames:
            ext = Path(filename).suffix.lower()
            if ext in SUPPORTED_AUDIO_FORMATS:
                files.append(os.path.join(root, filename))

    return sorted(files)


def _sniff_header(filepath: str) -> bool:
    """
    Check the RIFF/RIFX WAVE magic.

    Returns:
        True if the file is big-endian (RIFX), False for RIFF

    Raises:
        AudioFormatError: Unsupported for foreign containers, Corrupt for a
            header cut short
        FilesystemError: If the file cannot be opened
    """
    try:
        with open(filepath, 'rb') as f:
            header = f.read(12)
    except OSError as e:
        raise FilesystemError(
            "Could not read audio file",
            context={"filepath": filepath, "error": str(e)},
        ) from e

    magic = header[:4]
    if len(header) < 12:
        if header and (b'RIFF'.startswith(magic) or b'RIFX'.startswith(magic)):
            raise AudioFormatError(
                "WAV header is truncated",
                context={"filepath": filepath, "header_bytes": len(header)},
                kind=ErrorKind.CORRUPT,
            )
        raise AudioFormatError(
            "Not a WAV file",
            context={"filepath": filepath},
            kind=ErrorKind.UNSUPPORTED,
        )

    if magic not in (b'RIFF', b'RIFX') or header[8:12] != b'WAVE':
        raise AudioFormatError(
            "Not a WAV file",
            context={"filepath": filepath},
            kind=ErrorKind.UNSUPPORTED,
        )
    return magic == b'RIFX'


def _format_tag(filepath: str, big_endian: bool) -> Optional[int]:
    """
    Walk the RIFF chunks to ``fmt `` and return its format tag.

    Returns None when no complete ``fmt `` chunk header can be found.
    """
    order = '>' if big_endian else '<'
    try:
        with open(filepath, 'rb') as f:
            f.seek(12)
            while True:
                header = f.read(8)
                if len(header) < 8:
                    return None
                chunk_id = header[:4]
                (size,) = struct.unpack(order + 'I', header[4:])
                if chunk_id == b'fmt ':
                    tag = f.read(2)
                    if len(tag) < 2:
                        return None
                    return struct.unpack(order + 'H', tag)[0]
                f.seek(size + (size & 1), os.SEEK_CUR)
    except OSError as e:
        raise FilesystemError(
            "Could not read audio file",
            context={"filepath": filepath, "error": str(e)},
        ) from e


def probe(filepath: str) -> WavInfo:
    """
    Read container metadata without loading samples.

    Args:
        filepath: Path to a WAV file

    Returns:
        WavInfo with sample format, frame count and file size

    Raises:
        AudioFormatError: Unsupported (not integer PCM WAV) or Corrupt
        FilesystemError: If the file cannot be read
    """
    big_endian = _sniff_header(filepath)

    try:
        info = sf.info(filepath)
    except RuntimeError as e:
        # libsndfile refused a file that carries WAV magic
        tag = _format_tag(filepath, big_endian)
        if tag is not None and tag not in (WAVE_FORMAT_PCM, WAVE_FORMAT_EXTENSIBLE):
            raise AudioFormatError(
                f"Unsupported codec: format tag 0x{tag:04X} (only integer PCM is supported)",
                context={"filepath": filepath},
                kind=ErrorKind.UNSUPPORTED,
            ) from e
        raise AudioFormatError(
            "Malformed WAV header",
            context={"filepath": filepath, "error": str(e)},
            kind=ErrorKind.CORRUPT,
        ) from e
    except OSError as e:
        raise FilesystemError(
            "Could not read audio file",
            context={"filepath": filepath, "error": str(e)},
        ) from e

    if info.format not in WAV_CONTAINERS:
        raise AudioFormatError(
            f"Unsupported container: {info.format}",
            context={"filepath": filepath},
            kind=ErrorKind.UNSUPPORTED,
        )
    if info.subtype not in PCM_SUBTYPES:
        raise AudioFormatError(
            f"Unsupported codec: {info.subtype} (only integer PCM is supported)",
            context={"filepath": filepath},
            kind=ErrorKind.UNSUPPORTED,
        )

    fmt = SampleFormat(
        sample_rate=int(info.samplerate),
        channels=int(info.channels),
        bits_per_sample=PCM_SUBTYPES[info.subtype],
        big_endian=big_endian,
    )
    return WavInfo(
        path=str(filepath),
        format=fmt,
        frames=int(info.frames),
        size_bytes=os.path.getsize(filepath),
    )


def read_frames(
    filepath: str,
    max_frames: Optional[int] = None,
    chunk_frames: int = DEFAULT_CHUNK_FRAMES,
    progress: Optional[ProgressCallback] = None,
) -> PcmBuffer:
    """
    Read raw sample bytes, chunk by chunk.

    Args:
        filepath: Path to a WAV file
        max_frames: Stop after this many frames (None reads everything)
        chunk_frames: Frames decoded per block, bounds peak memory per read
        progress: Optional callback(done_bytes, total_bytes, label)

    Returns:
        PcmBuffer in the file's own byte layout

    Raises:
        AudioFormatError: If the file is not integer PCM WAV
        FilesystemError: If reading fails
    """
    info = probe(filepath)
    fmt = info.format
    codec = SampleCodec(fmt)
    dtype, shift = TRANSFER_DTYPES[fmt.bits_per_sample]

    total_frames = info.frames if max_frames is None else max(0, min(info.frames, max_frames))
    total_bytes = total_frames * fmt.frame_size
    label = os.path.basename(filepath)
    data = bytearray()

    try:
        with sf.SoundFile(filepath) as f:
            if total_frames > 0:
                for block in f.blocks(blocksize=chunk_frames, frames=total_frames,
                                      dtype=dtype, always_2d=True):
                    samples = block.reshape(-1).astype(np.int64) >> shift
                    data += codec.encode(samples)
                    if progress is not None:
                        progress(len(data), total_bytes, label)
    except RuntimeError as e:
        raise AudioFormatError(
            "Could not decode audio data",
            context={"filepath": filepath, "error": str(e)},
            kind=ErrorKind.CORRUPT,
        ) from e
    except OSError as e:
        raise FilesystemError(
            "Could not read audio file",
            context={"filepath": filepath, "error": str(e)},
        ) from e

    del data[len(data) - len(data) % fmt.frame_size:]
    logger.debug(f"Read {len(data)} bytes ({len(data) // fmt.frame_size} frames) from {filepath}")
    return PcmBuffer(bytes(data), fmt)


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temporary file {path}: {e}")


def _filesystem_error(e: OSError, filepath: str) -> FilesystemError:
    if e.errno == errno.ENOSPC:
        return DiskFullError(
            "No space left on device",
            context={"filepath": filepath, "error": str(e)},
        )
    if e.errno in (errno.EACCES, errno.EPERM):
        return LohighPermissionError(
            "Permission denied",
            context={"filepath": filepath, "error": str(e)},
        )
    return FilesystemError(
        "Could not save audio file",
        context={"filepath": filepath, "error": str(e)},
    )


def _to_transfer_array(fmt: SampleFormat, buffer: PcmBuffer) -> Tuple[np.ndarray, str]:
    dtype, shift = TRANSFER_DTYPES[fmt.bits_per_sample]
    samples = SampleCodec(fmt).decode(buffer.data) << shift
    return samples.astype(dtype).reshape(-1, fmt.channels), SUBTYPE_FOR_BITS[fmt.bits_per_sample]


def write_atomic(filepath: str, fmt: SampleFormat, buffer: PcmBuffer) -> int:
    """
    Write a WAV file via a sibling temp file and a rename.

    The container is written to ``<filepath>.tmp`` in the same directory and
    then renamed over ``filepath``. If anything fails the temp file is
    removed and ``filepath`` keeps its previous contents (or stays absent).

    Args:
        filepath: Final output path
        fmt: Output sample format
        buffer: Samples to write, in ``fmt``

    Returns:
        Size of the written file in bytes

    Raises:
        FormatMismatch: If the buffer is not in ``fmt``
        DiskFullError: If the volume ran out of space
        PermissionError: If the directory is not writable
        FilesystemError: Any other write or rename failure
    """
    if not buffer.format.is_compatible(fmt):
        raise FormatMismatch(
            "Buffer format does not match output format",
            context={"buffer": buffer.format.describe(), "output": fmt.describe()},
        )

    target = Path(filepath)
    tmp_path = Path(f"{filepath}.tmp")
    samples, subtype = _to_transfer_array(fmt, buffer)
    endian = 'BIG' if fmt.big_endian else 'FILE'

    try:
        os.makedirs(target.parent, exist_ok=True)
        logger.debug(f"Writing to temporary file: {tmp_path}")
        # Explicit format: the .tmp suffix says nothing about the container
        sf.write(str(tmp_path), samples, fmt.sample_rate, subtype=subtype,
                 endian=endian, format='WAV')
        logger.debug(f"Atomically renaming to: {target}")
        os.replace(tmp_path, target)
    except BaseException as e:
        _discard(tmp_path)
        if isinstance(e, OSError):
            logger.error(f"Failed to save {target}: {e}")
            raise _filesystem_error(e, str(target)) from e
        if isinstance(e, RuntimeError):
            logger.error(f"Failed to save {target}: {e}")
            raise FilesystemError(
                "Could not save audio file",
                context={"filepath": str(target), "error": str(e)},
            ) from e
        raise

    return os.path.getsize(target)


def get_filename_stem(filepath: str) -> str:
    """Extract filename without extension."""
    return Path(filepath).stem


def ensure_directory(directory: str) -> None:
    """Create directory if it doesn't exist."""
    os.makedirs(directory, exist_ok=True)
