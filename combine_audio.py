#!/usr/bin/env python3
"""
combine_audio.py: Command-line front end for lohigh.

Usage:
  python combine_audio.py first.wav second.wav output.wav
  python combine_audio.py track.wav output.wav           # ambient bed first
  python combine_audio.py --batch a.wav b.wav --output-dir mixed/
  python combine_audio.py --playlist files.txt output.wav
  cat track.wav | python combine_audio.py - - > output.wav
"""

import argparse
import json
import logging
import os
import random
import sys
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import List, Optional

import yaml

from lohigh import ambient, chainer, combiner, io_utils, playlist, stdio
from lohigh.exceptions import ErrorKind, LohighError
from lohigh.logger import configure_logging, get_logger, log_success
from lohigh.models import ChainDryRunReport, CombineOptions, CombineResult, DryRunReport, SampleFormat
from validate_config import validate_config

logger = get_logger("cli")

DEFAULT_CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".lohighrc")
DEFAULT_LEVEL = 0.8
PROGRESS_THRESHOLD_BYTES = 10 * 1024 * 1024

SUGGESTIONS = {
    ErrorKind.NOT_FOUND: "check the file path and try again",
    ErrorKind.PERMISSION_DENIED: "check file permissions (chmod +r <file>)",
    ErrorKind.EMPTY_FILE: "ensure the file contains valid audio data",
    ErrorKind.TOO_LARGE: "split the file or raise the size limit",
    ErrorKind.UNSUPPORTED: "ensure the file is an uncompressed PCM WAV; "
                           "try converting with: ffmpeg -i input.mp3 output.wav",
    ErrorKind.CORRUPT: "the WAV header is damaged; re-export or re-convert the file",
    ErrorKind.ZERO_DURATION: "ensure the file contains audio frames",
    ErrorKind.FORMAT_MISMATCH: "convert files to a matching format using ffmpeg",
    ErrorKind.INSUFFICIENT_DISK_SPACE: "free up disk space or choose a different output location",
    ErrorKind.IO_FAILURE: "check file permissions and disk space",
    ErrorKind.INVALID_OPTION: "run with --help to see accepted values",
}


@dataclass
class Settings:
    """Options after merging config-file defaults with command-line flags."""

    fade: float = 0.0
    level: Optional[float] = DEFAULT_LEVEL
    loop: int = 1
    preview: Optional[float] = None
    output_dir: str = "./"
    force: bool = False
    reverse: bool = False
    shuffle: bool = False
    ambient: Optional[str] = None
    dry_run: bool = False

    def options(self) -> CombineOptions:
        return CombineOptions(
            crossfade_seconds=self.fade,
            normalize_target=self.level if self.level else None,
            preview_seconds=self.preview,
            loop_count=self.loop,
            dry_run=self.dry_run,
        )


def parse_seconds(value: str) -> float:
    """Parse '1.5' or '1.5s'."""
    text = value.strip()
    if text.endswith("s"):
        text = text[:-1]
    try:
        return float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid duration '{value}' (use e.g. 1.5 or 1.5s)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lohigh",
        description="Combine two PCM WAV files with optional crossfade, normalization and looping",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  lohigh first.wav second.wav out.wav --fade=1.5s
  lohigh track.wav out.wav --ambient=rain        # ambient bed, then track
  lohigh --batch songs/ --output-dir=mixed/
  lohigh --playlist=files.txt out.wav
  cat track.wav | lohigh - - > out.wav
        """
    )
    parser.add_argument('files', nargs='*', help="Input and output files ('-' for stdin/stdout)")
    parser.add_argument('--force', action='store_true', default=None,
                        help='Overwrite output file if it already exists')
    parser.add_argument('--fade', type=parse_seconds, default=None,
                        help='Crossfade duration in seconds (e.g. 1.5 or 1.5s)')
    parser.add_argument('--level', type=float, default=None,
                        help=f'Normalize to target peak 0.0-1.0 (default: {DEFAULT_LEVEL})')
    parser.add_argument('--no-normalize', action='store_true',
                        help='Disable volume normalization')
    parser.add_argument('--reverse', action='store_true', default=None,
                        help='Swap file order (track before ambient)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Show detailed processing information')
    parser.add_argument('-q', '--quiet', action='store_true',
                        help='Suppress all output except errors')
    parser.add_argument('--json', action='store_true',
                        help='Print the result as JSON for scripting')
    parser.add_argument('--dry-run', action='store_true',
                        help='Show what would be done without processing')
    parser.add_argument('--preview', type=parse_seconds, default=None,
                        help='Process only the first N seconds of each file')
    parser.add_argument('--shuffle', action='store_true', default=None,
                        help='Randomize file order in batch and playlist modes')
    parser.add_argument('--batch', action='store_true',
                        help='Combine the ambient bed with each input file')
    parser.add_argument('--output-dir', default=None,
                        help='Output directory for batch mode (default: ./)')
    parser.add_argument('--playlist', default=None,
                        help='Chain the files listed in a playlist (one path per line)')
    parser.add_argument('--loop', type=int, default=None,
                        help='Repeat the first file N times')
    parser.add_argument('--ambient', default=None,
                        help='Ambient track (ambient, vinyl, rain, cafe, night, random, or a path)')
    parser.add_argument('--list-ambients', action='store_true',
                        help='List available ambient files and exit')
    parser.add_argument('--config', default=DEFAULT_CONFIG_PATH,
                        help='Path to YAML config (default: ~/.lohighrc)')
    return parser


def load_config(config_path: str) -> dict:
    """
    Load YAML defaults; a missing file yields an empty config.

    Raises:
        LohighError: If the file is unreadable or fails validation
    """
    if not os.path.exists(config_path):
        return {}

    logger.debug(f"Reading configuration from {config_path}")
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise LohighError("Failed to load config", context={"path": config_path, "error": str(e)},
                          kind=ErrorKind.INVALID_OPTION) from e

    config = config or {}
    validate_config(config)
    return config


def merge_settings(args: argparse.Namespace, config: dict) -> Settings:
    """Command-line flags override config values, which override defaults."""
    settings = Settings()

    settings.fade = config.get("fade", settings.fade)
    settings.level = config.get("level", settings.level)
    if config.get("normalize") is False:
        settings.level = None
    settings.loop = config.get("loop", settings.loop)
    settings.preview = config.get("preview", settings.preview)
    settings.output_dir = config.get("output_dir", settings.output_dir)
    settings.force = config.get("force", settings.force)
    settings.reverse = config.get("reverse", settings.reverse)
    settings.shuffle = config.get("shuffle", settings.shuffle)
    settings.ambient = config.get("ambient", settings.ambient)

    if args.fade is not None:
        settings.fade = args.fade
    if args.level is not None:
        settings.level = args.level
    if args.no_normalize:
        settings.level = None
    if args.loop is not None:
        settings.loop = args.loop
    if args.preview is not None:
        settings.preview = args.preview
    if args.output_dir is not None:
        settings.output_dir = args.output_dir
    if args.force is not None:
        settings.force = args.force
    if args.reverse is not None:
        settings.reverse = args.reverse
    if args.shuffle is not None:
        settings.shuffle = args.shuffle
    if args.ambient is not None:
        settings.ambient = args.ambient
    settings.dry_run = args.dry_run

    return settings


def check_settings(settings: Settings) -> List[str]:
    errors = []
    if settings.fade < 0:
        errors.append("fade duration must be positive")
    if settings.level is not None and not 0.0 <= settings.level <= 1.0:
        errors.append("normalization level must be between 0.0 and 1.0")
    if settings.loop < 1:
        errors.append("loop count must be at least 1")
    if settings.preview is not None and settings.preview <= 0:
        errors.append("preview duration must be positive")
    return errors


class ProgressPrinter:
    """Single-line progress bar for reads of large files."""

    BAR_LENGTH = 40

    def __init__(self, stream=None, threshold: int = PROGRESS_THRESHOLD_BYTES):
        self.stream = stream or sys.stderr
        self.threshold = threshold
        self.enabled = logger.isEnabledFor(logging.INFO)

    def __call__(self, done: int, total: int, label: str) -> None:
        if not self.enabled or total < self.threshold or total <= 0:
            return
        filled = min(self.BAR_LENGTH, done * self.BAR_LENGTH // total)
        bar = "=" * filled + (">" if filled < self.BAR_LENGTH else "") + " " * (self.BAR_LENGTH - filled - 1)
        self.stream.write(f"\rReading {label}: [{bar}] {done * 100 // total}%")
        if done >= total:
            self.stream.write("\n")
        self.stream.flush()


def conversion_command(fmt: SampleFormat) -> str:
    """ffmpeg command converting a file to the rate and channel count of ``fmt``."""
    return f"ffmpeg -i input.wav -ar {fmt.sample_rate} -ac {fmt.channels} output.wav"


def suggestion_for(result: CombineResult) -> Optional[str]:
    suggestion = SUGGESTIONS.get(result.error_kind)
    if result.error_kind == ErrorKind.FORMAT_MISMATCH and result.reference_format is not None:
        return f"{suggestion}: {conversion_command(result.reference_format)}"
    return suggestion


def report_failure(result: CombineResult) -> None:
    logger.error(f"error: {result.detail}")
    suggestion = suggestion_for(result)
    if suggestion:
        logger.error(f"suggestion: {suggestion}")


def log_dry_run(report: DryRunReport) -> None:
    logger.info("=== DRY RUN MODE ===")
    for label, info in (("Input File 1", report.input_a), ("Input File 2", report.input_b)):
        fmt = info.format
        logger.info(f"{label}: {info.path}")
        logger.info(f"  Size: {info.size_bytes // 1024} KB")
        logger.info(f"  Duration: {info.duration_seconds:.2f} seconds")
        logger.info(f"  Sample Rate: {fmt.sample_rate} Hz")
        logger.info(f"  Channels: {fmt.channels}")
        logger.info(f"  Bit Depth: {fmt.bits_per_sample} bits")
    logger.info(f"Output File: {report.output_path}")
    logger.info(f"  Estimated Size: {report.estimated_size_bytes // 1024} KB")
    logger.info(f"  Estimated Duration: {report.estimated_duration_seconds:.2f} seconds")
    if not report.formats_compatible:
        logger.warning("  Input formats differ; the combine would fail")
    logger.info("Settings:")
    fade = f"{report.crossfade_seconds} seconds" if report.crossfade_seconds > 0 else "disabled"
    level = f"{report.normalize_target:.1%}" if report.normalize_target else "disabled"
    logger.info(f"  Crossfade: {fade}")
    logger.info(f"  Normalization: {level}")
    logger.info(f"  Loop: {report.loop_count}x")
    logger.info("No files were modified (dry run).")


def build_json_result(result: CombineResult, inputs: List[str], settings: Settings) -> dict:
    payload = {
        "status": "success" if result.success else "error",
        "input_files": list(inputs),
        "output_file": result.output_path,
    }
    if not result.success:
        payload["error"] = result.detail or "Processing failed"
        payload["error_kind"] = result.error_kind.value if result.error_kind else None
    if result.bytes_written is not None:
        payload["size_bytes"] = result.bytes_written
    if isinstance(result.report, ChainDryRunReport):
        payload["formats_compatible"] = result.report.formats_compatible
        payload["mismatched_files"] = list(result.report.mismatched)
    payload["fade_duration"] = settings.fade
    payload["normalize_level"] = settings.level if settings.level else -1.0
    payload["loop_count"] = settings.loop
    payload["timestamp"] = datetime.now(timezone.utc).isoformat()
    return payload


def emit_json(payload, stream=None) -> None:
    stream = stream or sys.stdout
    stream.write(json.dumps(payload, indent=2) + "\n")
    stream.flush()


def run_single(args, settings: Settings, parser: argparse.ArgumentParser) -> int:
    files = args.files
    if len(files) == 3:
        input1, input2, output = files
        if settings.reverse:
            input1, input2 = input2, input1
    elif len(files) == 2:
        selected = ambient.select_ambient_file(settings.ambient)
        if settings.reverse:
            input1, input2 = files[0], selected
        else:
            input1, input2 = selected, files[0]
        output = files[1]
    else:
        logger.error("error: expected 2 or 3 file arguments")
        parser.print_usage(sys.stderr)
        return 1

    if stdio.is_stdio(input1) and stdio.is_stdio(input2):
        logger.error("error: stdin can only supply one input file")
        return 1

    output_is_stdout = stdio.is_stdio(output)
    if not output_is_stdout and os.path.exists(output) and not settings.force and not settings.dry_run:
        logger.error(f"error: output file '{output}' already exists")
        logger.error("suggestion: use a different output filename, or use --force to overwrite")
        return 1

    temp_files = []
    actual_input1, actual_input2, actual_output = input1, input2, output
    try:
        if stdio.is_stdio(input1):
            logger.debug("Reading input file 1 from stdin")
            actual_input1 = stdio.read_stdin_to_temp_file()
            temp_files.append(actual_input1)
        if stdio.is_stdio(input2):
            logger.debug("Reading input file 2 from stdin")
            actual_input2 = stdio.read_stdin_to_temp_file()
            temp_files.append(actual_input2)
        if output_is_stdout:
            actual_output = stdio.make_temp_output()
            temp_files.append(actual_output)
            logger.debug("Writing output to stdout")

        request = settings.options().request(actual_input1, actual_input2, actual_output)
        result = combiner.combine(request, progress=ProgressPrinter())

        if result.success and output_is_stdout and not settings.dry_run:
            stdio.write_to_stdout(actual_output)
    except OSError as e:
        logger.error(f"error: failed to handle stdin/stdout: {e}")
        result = CombineResult(success=False, output_path=output,
                               error_kind=ErrorKind.IO_FAILURE, detail=str(e))
    finally:
        for path in temp_files:
            if os.path.exists(path):
                os.remove(path)

    if result.success:
        if result.report is not None:
            log_dry_run(result.report)
        else:
            log_success(logger, f"Combined audio written to {output}")
    else:
        report_failure(result)

    if args.json:
        display = CombineResult(
            success=result.success,
            output_path=output,
            error_kind=result.error_kind,
            bytes_written=result.bytes_written,
            detail=result.detail,
        )
        emit_json(build_json_result(display, [input1, input2], settings),
                  sys.stderr if output_is_stdout else sys.stdout)

    return 0 if result.success else 1


def expand_inputs(paths: List[str]) -> List[str]:
    """Replace directories with the WAV files found inside them."""
    files = []
    for path in paths:
        if os.path.isdir(path):
            files.extend(io_utils.discover_audio_files(path))
        else:
            files.append(path)
    return files


def run_batch(args, settings: Settings) -> int:
    inputs = expand_inputs(args.files)
    if not inputs:
        logger.error("error: batch mode requires at least one input file")
        logger.error("usage: lohigh --batch file1.wav file2.wav --output-dir=./mixed/")
        return 1

    if settings.shuffle:
        random.shuffle(inputs)
        logger.debug("Shuffled file order")

    try:
        io_utils.ensure_directory(settings.output_dir)
    except OSError as e:
        logger.error(f"error: could not create output directory {settings.output_dir}: {e}")
        return 1

    selected = ambient.select_ambient_file(settings.ambient)
    options = settings.options()
    logger.info(f"Batch processing {len(inputs)} file(s)...")

    results = []
    success_count = 0
    skipped_count = 0
    for index, input_file in enumerate(inputs, start=1):
        out_path = os.path.join(settings.output_dir, f"{io_utils.get_filename_stem(input_file)}_lofi.wav")
        logger.info(f"[{index}/{len(inputs)}] Processing: {input_file}")

        if os.path.exists(out_path) and not settings.force and not settings.dry_run:
            logger.warning("  Skipping: output file already exists (use --force to overwrite)")
            skipped_count += 1
            results.append({"input_file": input_file, "output_file": out_path,
                            "status": "skipped"})
            continue

        first, second = (input_file, selected) if settings.reverse else (selected, input_file)
        result = combiner.combine(options.request(first, second, out_path), progress=ProgressPrinter())
        if result.success:
            success_count += 1
            if result.report is not None:
                log_dry_run(result.report)
        else:
            report_failure(result)
        results.append({
            "input_file": input_file,
            "output_file": out_path,
            "status": "success" if result.success else "error",
            "error_kind": result.error_kind.value if result.error_kind else None,
            "size_bytes": result.bytes_written,
        })

    fail_count = len(inputs) - success_count - skipped_count
    logger.info("=== Batch processing complete ===")
    logger.info(f"  Successful: {success_count}")
    logger.info(f"  Skipped: {skipped_count}")
    logger.info(f"  Failed: {fail_count}")
    logger.info(f"  Total: {len(inputs)}")

    if args.json:
        emit_json({
            "status": "success" if fail_count == 0 else "error",
            "results": results,
            "successful": success_count,
            "failed": fail_count,
            "skipped": skipped_count,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    return 0 if fail_count == 0 else 1


def run_playlist(args, settings: Settings) -> int:
    try:
        files = playlist.read_playlist(args.playlist)
    except LohighError as e:
        logger.error(f"error: {e}")
        return 1

    if len(files) < 2:
        logger.error("error: playlist must list at least two files")
        logger.error("suggestion: ensure the playlist file contains one file path per line")
        return 1

    if settings.shuffle:
        random.shuffle(files)
        logger.debug("Shuffled playlist order")

    if not args.files:
        logger.error("error: playlist mode requires an output file")
        logger.error("usage: lohigh --playlist=files.txt output.wav")
        return 1
    output = args.files[0]

    if os.path.exists(output) and not settings.force and not settings.dry_run:
        logger.error(f"error: output file '{output}' already exists")
        logger.error("suggestion: use a different output filename, or use --force to overwrite")
        return 1

    logger.info(f"Processing playlist with {len(files)} file(s)...")

    def on_step(step, total, current, nxt):
        logger.info(f"[{step}/{total}] Combining: {os.path.basename(current)} + {os.path.basename(nxt)}")

    result = chainer.combine_sequence(files, output, settings.options(),
                                      progress=ProgressPrinter(), on_step=on_step)
    if result.success:
        if settings.dry_run:
            logger.info(f"Dry run: {result.detail}")
            report = result.report
            if report is not None and not report.formats_compatible:
                for path in report.mismatched:
                    logger.warning(f"  {path} does not match the first file's format; the chain would fail")
                logger.warning(f"suggestion: {suggestion_for(replace(result, error_kind=ErrorKind.FORMAT_MISMATCH))}")
        else:
            log_success(logger, f"Playlist processing complete: {output}")
    else:
        report_failure(result)

    if args.json:
        emit_json(build_json_result(result, files, settings))

    return 0 if result.success else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.json:
        configure_logging("CRITICAL")
    elif args.verbose:
        configure_logging("DEBUG")
    elif args.quiet:
        configure_logging("ERROR")
    else:
        configure_logging()

    if args.list_ambients:
        logger.info("Available ambient files:")
        for name in ambient.list_ambient_files():
            logger.info(f"  - {name}")
        logger.info("  - random (selects randomly from available files)")
        logger.info("  - Or provide a custom file path")
        return 0

    try:
        config = load_config(args.config)
    except LohighError as e:
        logger.error(f"error: {e}")
        return 1

    settings = merge_settings(args, config)
    errors = check_settings(settings)
    if errors:
        for error in errors:
            logger.error(f"error: {error}")
        return 1

    try:
        settings.options()
    except LohighError as e:
        logger.error(f"error: {e}")
        return 1

    if args.batch:
        return run_batch(args, settings)
    if args.playlist:
        return run_playlist(args, settings)
    return run_single(args, settings, parser)


if __name__ == '__main__':
    sys.exit(main())
