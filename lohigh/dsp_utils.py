"""
DSP utilities on raw PCM buffers: peak detection, normalization, crossfade, looping.

Every function decodes through SampleCodec, so all supported bit depths
(8, 16, 24, 32) and both byte orders are handled the same way. Inputs are
never modified; each transform returns a new PcmBuffer.
"""

import numpy as np

from lohigh.codec import SampleCodec
from lohigh.exceptions import FormatMismatch
from lohigh.logger import get_logger
from lohigh.models import PcmBuffer

logger = get_logger(__name__)

# Peaks below this fraction of full scale are treated as silence
SILENCE_PEAK = 0.001


def peak_level(buffer: PcmBuffer) -> float:
    """
    Peak absolute sample as a fraction of full scale.

    Args:
        buffer: Samples to scan

    Returns:
        Value in [0, 1]; 0 for empty or all-zero buffers
    """
    if not len(buffer):
        return 0.0
    codec = SampleCodec(buffer.format)
    peak = int(np.max(np.abs(codec.decode(buffer.data))))
    return min(1.0, peak / codec.full_scale)


def normalize(buffer: PcmBuffer, target_peak: float, attenuate: bool = False) -> PcmBuffer:
    """
    Scale a buffer so its peak reaches ``target_peak``.

    Boost only by default: a buffer already at or above the target is
    returned unchanged. Pass ``attenuate=True`` to scale loud buffers down
    to the target as well. Near-silent buffers (peak < 0.001) are never
    touched, and the gain never pushes the peak past full scale.

    Args:
        buffer: Input samples
        target_peak: Target peak level in (0, 1]
        attenuate: Also scale down buffers louder than the target

    Returns:
        Normalized buffer (the input itself when no change is needed)
    """
    current_peak = peak_level(buffer)

    if current_peak < SILENCE_PEAK:
        return buffer

    scale = target_peak / current_peak
    if scale > 1.0:
        scale = min(scale, 1.0 / current_peak)
    elif scale == 1.0 or not attenuate:
        return buffer

    codec = SampleCodec(buffer.format)
    samples = codec.decode(buffer.data)
    # truncate toward zero so the result never overshoots the target
    scaled = np.trunc(samples * scale).astype(np.int64)
    logger.debug(f"Normalizing peak {current_peak:.3f} -> {target_peak:.3f} (gain {scale:.3f})")
    return PcmBuffer(codec.encode(scaled), buffer.format)


def crossfade(tail_a: PcmBuffer, head_b: PcmBuffer) -> PcmBuffer:
    """
    Linear crossfade from ``tail_a`` into ``head_b``.

    The region is min(len(tail_a), len(head_b)) bytes. The sample at byte
    offset i gets fade factor f = i / length, so the ramp advances once per
    sample (not per frame) from 0 towards 1.

    Args:
        tail_a: End of the first clip (fades out)
        head_b: Start of the second clip (fades in)

    Returns:
        Blended buffer of the shorter length
    """
    if not tail_a.format.is_compatible(head_b.format):
        raise FormatMismatch(
            "Cannot crossfade buffers of different formats",
            context={"a": tail_a.format.describe(), "b": head_b.format.describe()},
        )
    fmt = tail_a.format
    length = min(len(tail_a), len(head_b))
    if length == 0:
        return PcmBuffer.empty(fmt)

    codec = SampleCodec(fmt)
    a = codec.decode(tail_a.data[:length]).astype(np.float64)
    b = codec.decode(head_b.data[:length]).astype(np.float64)

    offsets = np.arange(a.size, dtype=np.float64) * fmt.bytes_per_sample
    fade = offsets / length
    mixed = np.rint(a * (1.0 - fade) + b * fade).astype(np.int64)
    return PcmBuffer(codec.encode(mixed), fmt)


def loop(buffer: PcmBuffer, count: int) -> PcmBuffer:
    """Repeat a buffer ``count`` times; count <= 1 returns it unchanged."""
    if count <= 1:
        return buffer
    return PcmBuffer(buffer.data * count, buffer.format)


def splice(a: PcmBuffer, b: PcmBuffer, overlap_bytes: int) -> PcmBuffer:
    """
    Join two buffers with a crossfaded overlap.

    The overlap is clamped to the length of the shorter buffer and rounded
    down to whole frames. Result is a minus its tail, then the crossfade of
    that tail with b's head, then b minus its head.

    Args:
        a: First clip
        b: Second clip
        overlap_bytes: Requested overlap in bytes

    Returns:
        Joined buffer of length len(a) + len(b) - overlap
    """
    frame = a.format.frame_size
    overlap = min(max(0, overlap_bytes), len(a), len(b))
    overlap -= overlap % frame
    if overlap == 0:
        return a + b

    faded = crossfade(a.tail(overlap), b.head(overlap))
    return a.drop_tail(overlap) + faded + b.drop_head(overlap)
