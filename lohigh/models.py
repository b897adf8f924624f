"""
Value types shared across the combination pipeline.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from lohigh.exceptions import ErrorKind, FormatMismatch, InvalidParameter

DEFAULT_MAX_FILE_SIZE = 1024 * 1024 * 1024  # 1 GiB


@dataclass(frozen=True)
class SampleFormat:
    """Integer PCM layout of a WAV stream."""

    sample_rate: int
    channels: int
    bits_per_sample: int
    big_endian: bool = False

    @property
    def bytes_per_sample(self) -> int:
        return self.bits_per_sample // 8

    @property
    def frame_size(self) -> int:
        return self.channels * self.bytes_per_sample

    def is_compatible(self, other: "SampleFormat") -> bool:
        """Exact match on all four fields; there is no resampling."""
        return self == other

    def frames_for(self, seconds: float) -> int:
        """Whole frames covered by a duration, truncated toward zero."""
        return int(seconds * self.sample_rate)

    def describe(self) -> str:
        order = "big-endian" if self.big_endian else "little-endian"
        return (
            f"{self.sample_rate} Hz, {self.channels} ch, "
            f"{self.bits_per_sample}-bit, {order}"
        )


@dataclass(frozen=True)
class PcmBuffer:
    """
    Raw interleaved sample bytes plus their format.

    The byte length is always a whole number of frames. Use ``from_bytes``
    for data that may end in a partial frame; the constructor rejects it.
    """

    data: bytes
    format: SampleFormat

    def __post_init__(self):
        if len(self.data) % self.format.frame_size:
            raise ValueError(
                f"buffer length {len(self.data)} is not a multiple of "
                f"frame size {self.format.frame_size}"
            )

    @classmethod
    def from_bytes(cls, data: bytes, fmt: SampleFormat) -> "PcmBuffer":
        """Build a buffer, dropping any trailing partial frame."""
        usable = len(data) - len(data) % fmt.frame_size
        return cls(bytes(data[:usable]), fmt)

    @classmethod
    def empty(cls, fmt: SampleFormat) -> "PcmBuffer":
        return cls(b"", fmt)

    def __len__(self) -> int:
        return len(self.data)

    def __add__(self, other: "PcmBuffer") -> "PcmBuffer":
        if not isinstance(other, PcmBuffer):
            return NotImplemented
        if not self.format.is_compatible(other.format):
            raise FormatMismatch(
                "Cannot concatenate buffers of different formats",
                context={"left": self.format.describe(), "right": other.format.describe()},
            )
        return PcmBuffer(self.data + other.data, self.format)

    @property
    def frames(self) -> int:
        return len(self.data) // self.format.frame_size

    @property
    def duration_seconds(self) -> float:
        return self.frames / self.format.sample_rate

    def head(self, n_bytes: int) -> "PcmBuffer":
        """First ``n_bytes`` bytes (must be frame aligned)."""
        return PcmBuffer(self.data[:n_bytes], self.format)

    def tail(self, n_bytes: int) -> "PcmBuffer":
        """Last ``n_bytes`` bytes (must be frame aligned)."""
        if n_bytes <= 0:
            return PcmBuffer.empty(self.format)
        return PcmBuffer(self.data[-n_bytes:], self.format)

    def drop_head(self, n_bytes: int) -> "PcmBuffer":
        return PcmBuffer(self.data[n_bytes:], self.format)

    def drop_tail(self, n_bytes: int) -> "PcmBuffer":
        if n_bytes <= 0:
            return self
        return PcmBuffer(self.data[:-n_bytes], self.format)


@dataclass(frozen=True)
class WavInfo:
    """Container metadata returned by a probe; no samples are loaded."""

    path: str
    format: SampleFormat
    frames: int
    size_bytes: int

    @property
    def duration_seconds(self) -> float:
        return self.frames / self.format.sample_rate


def _check_options(
    crossfade_seconds: float,
    normalize_target: Optional[float],
    preview_seconds: Optional[float],
    loop_count: int,
    max_file_size: int,
) -> None:
    errors = []
    if not math.isfinite(crossfade_seconds) or crossfade_seconds < 0:
        errors.append(f"crossfade_seconds ({crossfade_seconds}) must be >= 0")
    if normalize_target is not None and not (0.0 < normalize_target <= 1.0):
        errors.append(f"normalize_target ({normalize_target}) must be in (0, 1]")
    if preview_seconds is not None and not (math.isfinite(preview_seconds) and preview_seconds > 0):
        errors.append(f"preview_seconds ({preview_seconds}) must be > 0")
    if not isinstance(loop_count, int) or loop_count < 1:
        errors.append(f"loop_count ({loop_count}) must be an integer >= 1")
    if max_file_size <= 0:
        errors.append(f"max_file_size ({max_file_size}) must be positive")
    if errors:
        raise InvalidParameter("; ".join(errors), context={"error_count": len(errors)})


@dataclass(frozen=True)
class CombineOptions:
    """Processing options shared by every step of a combine or a chain."""

    crossfade_seconds: float = 0.0
    normalize_target: Optional[float] = None
    preview_seconds: Optional[float] = None
    loop_count: int = 1
    dry_run: bool = False
    normalize_attenuate: bool = False
    max_file_size: int = DEFAULT_MAX_FILE_SIZE

    def __post_init__(self):
        _check_options(
            self.crossfade_seconds,
            self.normalize_target,
            self.preview_seconds,
            self.loop_count,
            self.max_file_size,
        )

    def request(self, input_a: str, input_b: str, output: str) -> "CombineRequest":
        return CombineRequest(
            input_a=str(input_a),
            input_b=str(input_b),
            output=str(output),
            crossfade_seconds=self.crossfade_seconds,
            normalize_target=self.normalize_target,
            preview_seconds=self.preview_seconds,
            loop_count=self.loop_count,
            dry_run=self.dry_run,
            normalize_attenuate=self.normalize_attenuate,
            max_file_size=self.max_file_size,
        )


@dataclass(frozen=True)
class CombineRequest:
    """One two-file combination. Immutable once built."""

    input_a: str
    input_b: str
    output: str
    crossfade_seconds: float = 0.0
    normalize_target: Optional[float] = None
    preview_seconds: Optional[float] = None
    loop_count: int = 1
    dry_run: bool = False
    normalize_attenuate: bool = False
    max_file_size: int = DEFAULT_MAX_FILE_SIZE

    def __post_init__(self):
        _check_options(
            self.crossfade_seconds,
            self.normalize_target,
            self.preview_seconds,
            self.loop_count,
            self.max_file_size,
        )


@dataclass(frozen=True)
class DryRunReport:
    """What a combine would do, computed from headers only."""

    input_a: WavInfo
    input_b: WavInfo
    output_path: str
    estimated_size_bytes: int
    estimated_duration_seconds: float
    formats_compatible: bool
    crossfade_seconds: float
    normalize_target: Optional[float]
    loop_count: int


@dataclass(frozen=True)
class ChainDryRunReport:
    """What a playlist chain would do: every input probed, nothing written."""

    inputs: Tuple[WavInfo, ...]
    output_path: str
    estimated_size_bytes: int
    formats_compatible: bool
    # paths whose format differs from the first input's
    mismatched: Tuple[str, ...] = ()

    @property
    def steps(self) -> int:
        return max(0, len(self.inputs) - 1)


@dataclass(frozen=True)
class CombineResult:
    success: bool
    output_path: str
    error_kind: Optional[ErrorKind] = None
    bytes_written: Optional[int] = None
    detail: Optional[str] = None
    report: Optional[Union[DryRunReport, ChainDryRunReport]] = None
    reference_format: Optional[SampleFormat] = None

    @classmethod
    def failed(cls, output_path: str, error) -> "CombineResult":
        """Failed result from a LohighError."""
        return cls(
            success=False,
            output_path=output_path,
            error_kind=error.kind,
            detail=str(error),
            reference_format=getattr(error, "reference", None),
        )
