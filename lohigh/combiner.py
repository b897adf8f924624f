"""
Two-file combination pipeline.

validate -> (dry run report) -> format check -> disk check -> read A ->
loop A -> read B -> normalize -> crossfade or concatenate -> atomic write.

combine() never raises for per-file problems: every LohighError or OSError
raised along the way becomes a failed CombineResult with an ErrorKind.
"""

from typing import Optional

from lohigh import dsp_utils, io_utils, validator
from lohigh.exceptions import DiskFullError, ErrorKind, FormatMismatch, LohighError
from lohigh.io_utils import ProgressCallback
from lohigh.logger import get_logger
from lohigh.models import CombineRequest, CombineResult, DryRunReport, PcmBuffer, WavInfo

logger = get_logger(__name__)


def _preview_frames(info: WavInfo, preview_seconds: Optional[float]) -> int:
    if preview_seconds is None:
        return info.frames
    return min(info.frames, info.format.frames_for(preview_seconds))


def _dry_run_report(request: CombineRequest, info_a: WavInfo, info_b: WavInfo) -> DryRunReport:
    fmt = info_a.format
    frames_a = _preview_frames(info_a, request.preview_seconds) * max(1, request.loop_count)
    frames_b = _preview_frames(info_b, request.preview_seconds)
    overlap = 0
    if request.crossfade_seconds > 0:
        overlap = min(fmt.frames_for(request.crossfade_seconds), frames_a, frames_b)

    return DryRunReport(
        input_a=info_a,
        input_b=info_b,
        output_path=request.output,
        estimated_size_bytes=info_a.size_bytes + info_b.size_bytes,
        estimated_duration_seconds=(frames_a + frames_b - overlap) / fmt.sample_rate,
        formats_compatible=info_a.format.is_compatible(info_b.format),
        crossfade_seconds=request.crossfade_seconds,
        normalize_target=request.normalize_target,
        loop_count=request.loop_count,
    )


def _check_formats(info_a: WavInfo, info_b: WavInfo) -> None:
    if not info_a.format.is_compatible(info_b.format):
        raise FormatMismatch(
            "audio format mismatch between input files",
            context={
                "file_1": f"{info_a.path} ({info_a.format.describe()})",
                "file_2": f"{info_b.path} ({info_b.format.describe()})",
            },
            reference=info_a.format,
        )


def _read_input(
    info: WavInfo,
    preview_seconds: Optional[float],
    progress: Optional[ProgressCallback],
) -> PcmBuffer:
    max_frames = None
    if preview_seconds is not None:
        max_frames = info.format.frames_for(preview_seconds)
        logger.debug(f"Preview mode: limiting {info.path} to {min(max_frames, info.frames)} frames")
    return io_utils.read_frames(info.path, max_frames=max_frames, progress=progress)


def _merge(request: CombineRequest, audio_a: PcmBuffer, audio_b: PcmBuffer) -> PcmBuffer:
    fmt = audio_a.format
    fade_bytes = fmt.frames_for(request.crossfade_seconds) * fmt.frame_size

    if request.crossfade_seconds > 0 and fade_bytes > 0:
        logger.debug(f"Applying {request.crossfade_seconds}s crossfade between files")
        return dsp_utils.splice(audio_a, audio_b, fade_bytes)

    return audio_a + audio_b


def _run(request: CombineRequest, progress: Optional[ProgressCallback]) -> CombineResult:
    info_a = validator.validate(request.input_a, max_size=request.max_file_size)
    info_b = validator.validate(request.input_b, max_size=request.max_file_size)

    if request.dry_run:
        report = _dry_run_report(request, info_a, info_b)
        logger.debug(f"Dry run: {request.input_a} + {request.input_b} -> {request.output}")
        return CombineResult(success=True, output_path=request.output, report=report)

    _check_formats(info_a, info_b)

    estimated = info_a.size_bytes + info_b.size_bytes
    if not validator.check_disk_space(request.output, estimated):
        raise DiskFullError(
            "insufficient disk space for output file",
            context={"output": request.output, "estimated_bytes": estimated},
        )

    audio_a = _read_input(info_a, request.preview_seconds, progress)
    if request.loop_count > 1:
        logger.debug(f"Looping first file {request.loop_count} times")
        audio_a = dsp_utils.loop(audio_a, request.loop_count)

    audio_b = _read_input(info_b, request.preview_seconds, progress)

    if request.normalize_target is not None:
        logger.debug(
            f"Pre-normalization peaks: {dsp_utils.peak_level(audio_a):.1%}, "
            f"{dsp_utils.peak_level(audio_b):.1%}"
        )
        audio_a = dsp_utils.normalize(audio_a, request.normalize_target, request.normalize_attenuate)
        audio_b = dsp_utils.normalize(audio_b, request.normalize_target, request.normalize_attenuate)

    merged = _merge(request, audio_a, audio_b)
    written = io_utils.write_atomic(request.output, info_a.format, merged)
    logger.debug(f"Wrote {written} bytes to {request.output}")
    return CombineResult(success=True, output_path=request.output, bytes_written=written)


def combine(request: CombineRequest, progress: Optional[ProgressCallback] = None) -> CombineResult:
    """
    Combine ``request.input_a`` and ``request.input_b`` into ``request.output``.

    Args:
        request: What to combine and how
        progress: Optional callback(done_bytes, total_bytes, label) for reads

    Returns:
        CombineResult; on failure ``error_kind`` and ``detail`` say why and
        no output or temporary file has been left behind
    """
    try:
        return _run(request, progress)
    except LohighError as e:
        logger.debug(f"Combine failed ({e.kind.value}): {e}")
        return CombineResult.failed(request.output, e)
    except OSError as e:
        logger.debug(f"Combine failed (I/O): {e}")
        return CombineResult(
            success=False,
            output_path=request.output,
            error_kind=ErrorKind.IO_FAILURE,
            detail=str(e),
        )
