"""
Pairwise chaining of N files into one output (playlist mode).

files[0] + files[1] -> intermediate 1, intermediate 1 + files[2] ->
intermediate 2, ... and the last pair writes straight to the final output.
"""

import os
import uuid
from typing import Callable, List, Optional, Sequence

from lohigh import combiner, validator
from lohigh.exceptions import InvalidParameter, LohighError
from lohigh.io_utils import ProgressCallback
from lohigh.logger import get_logger
from lohigh.models import ChainDryRunReport, CombineOptions, CombineResult

logger = get_logger(__name__)

# on_step(step, total_steps, current_input, next_input)
StepCallback = Callable[[int, int, str, str], None]


class ArtifactRing:
    """
    Two-slot ring of intermediate files, addressed by step number.

    Registering step n's file evicts (and deletes) the file of step n-2, so
    only the current chain input and the newest output are kept on disk.
    """

    SIZE = 2

    def __init__(self):
        self._slots: List[Optional[str]] = [None] * self.SIZE

    def register(self, step: int, path: str) -> None:
        slot = step % self.SIZE
        evicted = self._slots[slot]
        self._slots[slot] = path
        if evicted is not None:
            _remove(evicted)

    def paths(self) -> List[str]:
        return [p for p in self._slots if p is not None]

    def clear(self) -> None:
        for i, path in enumerate(self._slots):
            if path is not None:
                _remove(path)
                self._slots[i] = None


def _remove(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove intermediate file {path}: {e}")


def _intermediate_path(final_output: str, token: str, step: int) -> str:
    return f"{final_output}.chain_{token}_{step}.wav"


def _dry_run(files: Sequence[str], final_output: str, options: CombineOptions) -> CombineResult:
    """
    Validate every file and compare each format against the first.

    A format mismatch does not fail the dry run; it is reported through
    ``ChainDryRunReport.formats_compatible`` and ``mismatched``.
    """
    infos = []
    for path in files:
        try:
            infos.append(validator.validate(path, max_size=options.max_file_size))
        except LohighError as e:
            return CombineResult.failed(final_output, e)

    reference = infos[0].format
    mismatched = tuple(info.path for info in infos[1:] if not info.format.is_compatible(reference))
    for path in mismatched:
        logger.debug(f"Dry run: {path} does not match {reference.describe()}")

    report = ChainDryRunReport(
        inputs=tuple(infos),
        output_path=final_output,
        estimated_size_bytes=sum(info.size_bytes for info in infos),
        formats_compatible=not mismatched,
        mismatched=mismatched,
    )
    return CombineResult(
        success=True,
        output_path=final_output,
        detail=f"{len(files)} files validated, {report.steps} combine steps",
        report=report,
        reference_format=reference if mismatched else None,
    )


def combine_sequence(
    files: Sequence[str],
    final_output: str,
    options: Optional[CombineOptions] = None,
    progress: Optional[ProgressCallback] = None,
    on_step: Optional[StepCallback] = None,
) -> CombineResult:
    """
    Combine an ordered list of files pairwise into ``final_output``.

    Args:
        files: At least two input paths, in order
        final_output: Destination of the last combine step
        options: Processing options applied to every step
        progress: Optional read-progress callback passed to each combine
        on_step: Optional callback(step, total_steps, current, next) before each step

    Returns:
        CombineResult for the whole chain. On failure every intermediate
        file is removed and ``detail`` names the failing step.
    """
    files = [str(f) for f in files]
    final_output = str(final_output)
    options = options or CombineOptions()

    if len(files) < 2:
        return CombineResult.failed(
            final_output,
            InvalidParameter(
                "a sequence needs at least two files",
                context={"file_count": len(files)},
            ),
        )

    if options.dry_run:
        return _dry_run(files, final_output, options)

    token = uuid.uuid4().hex[:8]
    ring = ArtifactRing()
    total_steps = len(files) - 1
    current = files[0]
    result = None

    for step in range(1, len(files)):
        nxt = files[step]
        if step == total_steps:
            target = final_output
        else:
            target = _intermediate_path(final_output, token, step)
            ring.register(step, target)

        if on_step is not None:
            on_step(step, total_steps, current, nxt)
        logger.debug(f"[{step}/{total_steps}] Combining: {os.path.basename(current)} + {os.path.basename(nxt)}")

        result = combiner.combine(options.request(current, nxt, target), progress=progress)
        if not result.success:
            ring.clear()
            return CombineResult(
                success=False,
                output_path=final_output,
                error_kind=result.error_kind,
                reference_format=result.reference_format,
                detail=f"step {step}/{total_steps} ({current} + {nxt}): {result.detail}",
            )
        current = target

    ring.clear()
    return CombineResult(
        success=True,
        output_path=final_output,
        bytes_written=result.bytes_written,
    )
