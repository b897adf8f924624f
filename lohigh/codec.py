"""
Sample codec: raw PCM bytes <-> signed integer numpy arrays.

One codec instance is bound to a SampleFormat and used by every sample-level
transform, so byte order and bit depth are handled in a single place.

Supported depths:
    8-bit   unsigned, offset 128 (WAV convention)
    16-bit  signed
    24-bit  signed, packed 3 bytes per sample
    32-bit  signed
"""

import numpy as np

from lohigh.exceptions import AudioFormatError, ErrorKind
from lohigh.models import SampleFormat

SUPPORTED_BIT_DEPTHS = (8, 16, 24, 32)


class SampleCodec:
    """Vectorised decode/encode of interleaved samples for one format."""

    def __init__(self, fmt: SampleFormat):
        if fmt.bits_per_sample not in SUPPORTED_BIT_DEPTHS:
            raise AudioFormatError(
                f"Unsupported bit depth: {fmt.bits_per_sample}",
                context={"supported": SUPPORTED_BIT_DEPTHS},
                kind=ErrorKind.UNSUPPORTED,
            )
        self.format = fmt
        self.bits = fmt.bits_per_sample
        self.max_value = (1 << (self.bits - 1)) - 1
        self.min_value = -(1 << (self.bits - 1))
        self.full_scale = self.max_value

        order = ">" if fmt.big_endian else "<"
        if self.bits == 16:
            self._dtype = np.dtype(f"{order}i2")
        elif self.bits == 32:
            self._dtype = np.dtype(f"{order}i4")
        else:
            self._dtype = None

    def decode(self, data: bytes) -> np.ndarray:
        """Decode bytes to an int64 array of interleaved signed samples."""
        if self.bits == 8:
            return np.frombuffer(data, dtype=np.uint8).astype(np.int64) - 128
        if self.bits == 24:
            raw = np.frombuffer(data, dtype=np.uint8).reshape(-1, 3).astype(np.int64)
            if self.format.big_endian:
                raw = raw[:, ::-1]
            value = raw[:, 0] | (raw[:, 1] << 8) | (raw[:, 2] << 16)
            # sign-extend from 24 bits
            return (value ^ 0x800000) - 0x800000
        return np.frombuffer(data, dtype=self._dtype).astype(np.int64)

    def clip(self, samples: np.ndarray) -> np.ndarray:
        return np.clip(samples, self.min_value, self.max_value)

    def encode(self, samples: np.ndarray) -> bytes:
        """Clamp to the depth's range and encode back to raw bytes."""
        samples = self.clip(np.asarray(samples, dtype=np.int64))
        if self.bits == 8:
            return (samples + 128).astype(np.uint8).tobytes()
        if self.bits == 24:
            value = samples & 0xFFFFFF
            raw = np.stack([value & 0xFF, (value >> 8) & 0xFF, (value >> 16) & 0xFF], axis=1)
            if self.format.big_endian:
                raw = raw[:, ::-1]
            return raw.astype(np.uint8).tobytes()
        return samples.astype(self._dtype).tobytes()
