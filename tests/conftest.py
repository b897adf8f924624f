import struct

import numpy as np
import pytest
import soundfile as sf


def write_wav(path, samples, sr=44100, subtype='PCM_16', endian='FILE'):
    """Write integer samples (frames,) or (frames, channels) as a WAV file."""
    sf.write(str(path), samples, sr, subtype=subtype, endian=endian, format='WAV')
    return str(path)


def write_riff(path, format_tag, channels=2, sr=44100, bits=16, payload=b"\x00" * 64, leading=b""):
    """Hand-build a RIFF/WAVE file whose fmt chunk carries ``format_tag``."""
    block_align = channels * max(1, bits // 8)
    fmt = struct.pack("<HHIIHH", format_tag, channels, sr, sr * block_align, block_align, bits)
    body = b"WAVE" + leading + b"fmt " + struct.pack("<I", len(fmt)) + fmt
    body += b"data" + struct.pack("<I", len(payload)) + payload
    with open(path, "wb") as f:
        f.write(b"RIFF" + struct.pack("<I", len(body)) + body)
    return str(path)


def random_samples(frames, channels=1, amplitude=8000, seed=0, dtype=np.int16):
    rng = np.random.default_rng(seed)
    shape = (frames, channels) if channels > 1 else (frames,)
    return rng.integers(-amplitude, amplitude + 1, size=shape).astype(dtype)


@pytest.fixture
def wav_factory(tmp_path):
    """Create 16-bit WAV files in tmp_path; returns the path as a string."""

    def make(name, frames=44100, channels=1, sr=44100, amplitude=8000, seed=0, samples=None):
        if samples is None:
            samples = random_samples(frames, channels, amplitude, seed)
        return write_wav(tmp_path / name, samples, sr=sr)

    return make
