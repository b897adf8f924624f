"""
End-to-end tests for the two-file combine pipeline on real WAV files.
"""

import os

import numpy as np
import pytest

from lohigh import combiner, dsp_utils, io_utils
from lohigh.exceptions import ErrorKind, InvalidParameter
from lohigh.models import CombineOptions, CombineRequest, SampleFormat

from conftest import random_samples, write_wav


def leftovers(directory):
    return sorted(name for name in os.listdir(directory) if name.endswith(".tmp"))


class TestConcatenation:

    def test_output_is_a_then_b(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=1000, seed=1)
        b = wav_factory("b.wav", frames=500, seed=2)
        out = str(tmp_path / "out.wav")

        result = combiner.combine(CombineRequest(a, b, out))

        assert result.success
        assert result.error_kind is None
        assert result.bytes_written == os.path.getsize(out)
        expected = io_utils.read_frames(a).data + io_utils.read_frames(b).data
        assert io_utils.read_frames(out).data == expected

    def test_stereo_24_bit(self, tmp_path):
        a = write_wav(tmp_path / "a.wav", random_samples(300, channels=2, seed=4, dtype=np.int32) << 16,
                      sr=48000, subtype="PCM_24")
        b = write_wav(tmp_path / "b.wav", random_samples(200, channels=2, seed=5, dtype=np.int32) << 16,
                      sr=48000, subtype="PCM_24")
        out = str(tmp_path / "out.wav")

        assert combiner.combine(CombineRequest(a, b, out)).success
        info = io_utils.probe(out)
        assert info.format.bits_per_sample == 24
        assert info.format.channels == 2
        assert info.frames == 500

    def test_big_endian_inputs_give_big_endian_output(self, tmp_path):
        a = write_wav(tmp_path / "a.wav", random_samples(100, seed=1), endian="BIG")
        b = write_wav(tmp_path / "b.wav", random_samples(100, seed=2), endian="BIG")
        out = str(tmp_path / "out.wav")

        assert combiner.combine(CombineRequest(a, b, out)).success
        with open(out, "rb") as f:
            assert f.read(4) == b"RIFX"

    def test_progress_callback(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=100)
        b = wav_factory("b.wav", frames=100)
        labels = set()
        combiner.combine(CombineRequest(a, b, str(tmp_path / "out.wav")),
                         progress=lambda done, total, label: labels.add(label))
        assert labels == {"a.wav", "b.wav"}


class TestCrossfade:

    def test_overlap_shortens_output(self, wav_factory, tmp_path):
        silent = np.zeros(44100, dtype=np.int16)
        a = wav_factory("a.wav", samples=silent)
        b = wav_factory("b.wav", samples=silent)
        out = str(tmp_path / "out.wav")

        result = combiner.combine(CombineRequest(a, b, out, crossfade_seconds=0.5))

        assert result.success
        info = io_utils.probe(out)
        assert info.frames == 66150
        assert info.duration_seconds == pytest.approx(1.5)

    def test_blend_region(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", samples=np.full(100, 1000, dtype=np.int16))
        b = wav_factory("b.wav", samples=np.full(100, -1000, dtype=np.int16))
        out = str(tmp_path / "out.wav")

        # 4 frames at 44.1 kHz
        combiner.combine(CombineRequest(a, b, out, crossfade_seconds=4 / 44100 + 1e-9))

        values = np.frombuffer(io_utils.read_frames(out).data, dtype="<i2")
        assert len(values) == 196
        assert list(values[94:101]) == [1000, 1000, 1000, 500, 0, -500, -1000]

    def test_fade_longer_than_second_file(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=44100)
        b = wav_factory("b.wav", frames=4410)
        out = str(tmp_path / "out.wav")

        assert combiner.combine(CombineRequest(a, b, out, crossfade_seconds=1.0)).success
        assert io_utils.probe(out).frames == 44100

    def test_sub_frame_fade_is_plain_concatenation(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=100, seed=1)
        b = wav_factory("b.wav", frames=100, seed=2)
        out = str(tmp_path / "out.wav")

        combiner.combine(CombineRequest(a, b, out, crossfade_seconds=1e-6))
        assert io_utils.probe(out).frames == 200


class TestOptions:

    def test_loop_repeats_first_file(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=100, seed=1)
        b = wav_factory("b.wav", frames=50, seed=2)
        out = str(tmp_path / "out.wav")

        combiner.combine(CombineRequest(a, b, out, loop_count=3))

        data_a = io_utils.read_frames(a).data
        data = io_utils.read_frames(out).data
        assert len(data) == (300 + 50) * 2
        assert data[:len(data_a) * 3] == data_a * 3

    def test_preview_limits_each_input(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=44100, seed=1)
        b = wav_factory("b.wav", frames=44100, seed=2)
        out = str(tmp_path / "out.wav")

        combiner.combine(CombineRequest(a, b, out, preview_seconds=0.01))

        data = io_utils.read_frames(out).data
        assert len(data) == 882 * 2
        assert data[:882] == io_utils.read_frames(a).data[:882]
        assert data[882:] == io_utils.read_frames(b).data[:882]

    def test_preview_longer_than_file(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=100)
        b = wav_factory("b.wav", frames=100)
        out = str(tmp_path / "out.wav")
        combiner.combine(CombineRequest(a, b, out, preview_seconds=30))
        assert io_utils.probe(out).frames == 200

    def test_normalize_boosts_both_inputs(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=1000, amplitude=1000, seed=1)
        b = wav_factory("b.wav", frames=1000, amplitude=3000, seed=2)
        out = str(tmp_path / "out.wav")

        combiner.combine(CombineRequest(a, b, out, normalize_target=0.8))

        buffer = io_utils.read_frames(out)
        first = buffer.head(2000)
        second = buffer.drop_head(2000)
        assert dsp_utils.peak_level(first) == pytest.approx(0.8, abs=1e-3)
        assert dsp_utils.peak_level(second) == pytest.approx(0.8, abs=1e-3)

    def test_options_request_carries_settings(self):
        options = CombineOptions(crossfade_seconds=2.0, normalize_target=0.5, loop_count=2)
        request = options.request("a.wav", "b.wav", "out.wav")
        assert request.crossfade_seconds == 2.0
        assert request.normalize_target == 0.5
        assert request.loop_count == 2
        assert request.output == "out.wav"


class TestDryRun:

    def test_reports_without_writing(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=44100)
        b = wav_factory("b.wav", frames=22050)
        out = tmp_path / "out.wav"

        result = combiner.combine(CombineRequest(a, b, str(out), crossfade_seconds=0.25, dry_run=True))

        assert result.success
        assert not out.exists()
        report = result.report
        assert report.formats_compatible
        assert report.estimated_size_bytes == os.path.getsize(a) + os.path.getsize(b)
        assert report.estimated_duration_seconds == pytest.approx(1.25)
        assert report.input_a.frames == 44100

    def test_flags_incompatible_formats(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=100, sr=44100)
        b = wav_factory("b.wav", frames=100, sr=48000)
        result = combiner.combine(CombineRequest(a, b, str(tmp_path / "out.wav"), dry_run=True))
        assert result.success
        assert result.report.formats_compatible is False

    def test_still_validates_inputs(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=100)
        result = combiner.combine(CombineRequest(a, str(tmp_path / "nope.wav"),
                                                 str(tmp_path / "out.wav"), dry_run=True))
        assert not result.success
        assert result.error_kind == ErrorKind.NOT_FOUND


class TestFailures:

    def test_format_mismatch_writes_nothing(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=100, sr=44100)
        b = wav_factory("b.wav", frames=100, sr=48000)
        out = tmp_path / "out.wav"

        result = combiner.combine(CombineRequest(a, b, str(out)))

        assert not result.success
        assert result.error_kind == ErrorKind.FORMAT_MISMATCH
        assert "48000" in result.detail
        assert not out.exists()
        assert leftovers(tmp_path) == []

    def test_channel_mismatch(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=100, channels=1)
        b = wav_factory("b.wav", frames=100, channels=2)
        result = combiner.combine(CombineRequest(a, b, str(tmp_path / "out.wav")))
        assert result.error_kind == ErrorKind.FORMAT_MISMATCH

    def test_mismatch_carries_first_file_format(self, wav_factory, tmp_path):
        a = wav_factory("a.wav", frames=100, channels=1, sr=48000)
        b = wav_factory("b.wav", frames=100, channels=2, sr=22050)
        result = combiner.combine(CombineRequest(a, b, str(tmp_path / "out.wav")))
        assert result.reference_format == SampleFormat(48000, 1, 16)

    def test_other_failures_carry_no_reference_format(self, wav_factory, tmp_path):
        b = wav_factory("b.wav", frames=100)
        result = combiner.combine(CombineRequest(str(tmp_path / "missing.wav"), b, str(tmp_path / "out.wav")))
        assert result.reference_format is None

    def test_missing_input(self, wav_factory, tmp_path):
        b = wav_factory("b.wav", frames=100)
        result = combiner.combine(CombineRequest(str(tmp_path / "gone.wav"), b, str(tmp_path / "out.wav")))
        assert result.error_kind == ErrorKind.NOT_FOUND
        assert "gone.wav" in result.detail

    def test_insufficient_disk_space(self, wav_factory, tmp_path, monkeypatch):
        a = wav_factory("a.wav", frames=100)
        b = wav_factory("b.wav", frames=100)
        out = tmp_path / "out.wav"
        monkeypatch.setattr(combiner.validator, "check_disk_space", lambda path, size: False)

        result = combiner.combine(CombineRequest(a, b, str(out)))

        assert result.error_kind == ErrorKind.INSUFFICIENT_DISK_SPACE
        assert not out.exists()

    def test_write_failure_becomes_result(self, wav_factory, tmp_path, monkeypatch):
        a = wav_factory("a.wav", frames=100)
        b = wav_factory("b.wav", frames=100)
        out = tmp_path / "out.wav"

        def fail_replace(src, dst):
            raise OSError("rename failed")

        monkeypatch.setattr(io_utils.os, "replace", fail_replace)
        result = combiner.combine(CombineRequest(a, b, str(out)))

        assert not result.success
        assert result.error_kind == ErrorKind.IO_FAILURE
        assert not out.exists()
        assert leftovers(tmp_path) == []

    def test_invalid_request_rejected_on_construction(self):
        with pytest.raises(InvalidParameter):
            CombineRequest("a.wav", "b.wav", "out.wav", normalize_target=1.5)
        with pytest.raises(InvalidParameter):
            CombineRequest("a.wav", "b.wav", "out.wav", loop_count=0)
        with pytest.raises(InvalidParameter):
            CombineRequest("a.wav", "b.wav", "out.wav", crossfade_seconds=-1)
