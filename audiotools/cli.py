# audiotools/cli.py
"""
Command Line Interface (CLI) for the audio analysis commands.

Usage examples:
  python -m audiotools.cli --help
  python -m audiotools.cli spectrum --input take.wav
  python -m audiotools.cli spectrum --input recordings/ --recursive --jobs 4
  python -m audiotools.cli waveform --input take.wav --start 0:05 --end 50% --scale decibel --rms
  python -m audiotools.cli waveform --input take.wav --auto-start --annotate "1.2:snare"
  python -m audiotools.cli info --input recordings/
  python -m audiotools.cli peak --input take.wav

Notes:
- --input may be a single WAV file or a directory of WAV files.
- One PNG is written per input file, next to the input unless --output-dir is given.
- A file that fails (bad header, invalid time range) is reported on stderr and
  the remaining files are still processed; the exit status is then 1.
- Malformed --start/--end/--annotate/--mark values stop the run before any file is read.
"""

from __future__ import annotations

import argparse
import math
import sys
from functools import partial
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from audiotools.batch import FileOutcome, iter_wav_files, output_path_for, run_batch
from audiotools.detection import (
    OnsetDetectionSettings,
    create_auto_start_settings,
    detect_peak_level_dbfs,
)
from audiotools.errors import SettingsError, TimeParseError
from audiotools.io import load_wav_file, read_wav_header_from_file
from audiotools.spectrogram import (
    SpectrogramAnalysisSettings,
    SpectrogramPlotSettings,
    plot_spectrogram_from_wav_file,
    summarise_spectrogram_result_text,
)
from audiotools.timerange import (
    TimeRange,
    create_time_range,
    parse_time_annotation,
    parse_time_specification,
)
from audiotools.waveform import (
    WaveformAnalysisSettings,
    WaveformPlotSettings,
    plot_waveform_from_wav_file,
    summarise_waveform_result_text,
)


EXIT_OK = 0
EXIT_FILE_ERRORS = 1

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")


# --------------------------------------------------------------------------------------
# Argument types
# --------------------------------------------------------------------------------------


def _time_specification_argument(text: str):
    try:
        return parse_time_specification(text)
    except TimeParseError as parse_error:
        raise argparse.ArgumentTypeError(str(parse_error)) from parse_error


def _annotation_argument(text: str) -> Tuple[float, str]:
    try:
        return parse_time_annotation(text)
    except TimeParseError as parse_error:
        raise argparse.ArgumentTypeError(str(parse_error)) from parse_error


def format_size(size_bytes: int) -> str:
    """
    Human-readable size with 1024-based units, e.g. "1.50 KB (1536 bytes)".
    """
    if size_bytes == 0:
        return f"0 {SIZE_UNITS[0]}"

    unit_index = int(math.floor(math.log(size_bytes) / math.log(1024.0)))
    if unit_index >= len(SIZE_UNITS):
        return f"{size_bytes} {SIZE_UNITS[0]}"

    size = size_bytes / (1024.0 ** unit_index)
    return f"{size:.2f} {SIZE_UNITS[unit_index]} ({size_bytes} bytes)"


# --------------------------------------------------------------------------------------
# Parser
# --------------------------------------------------------------------------------------


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--input",
        dest="input_path",
        type=str,
        required=True,
        help="WAV file or directory of WAV files.",
    )

    parser.add_argument(
        "--recursive",
        action="store_true",
        help="Process directories recursively.",
    )


def _add_batch_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output-dir",
        dest="output_directory",
        type=str,
        default=None,
        help="Directory for PNGs (default: next to each input file).",
    )

    parser.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Number of files analysed in parallel (default: 1).",
    )

    parser.add_argument(
        "--show",
        dest="show_interactive",
        action="store_true",
        help="Also display each plot interactively (only with --jobs 1).",
    )


def _add_time_window_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--start",
        type=_time_specification_argument,
        default=None,
        help="Window start: seconds (2.5), MM:SS (1:30) or percentage (25%%). Default: 0.",
    )

    parser.add_argument(
        "--end",
        type=_time_specification_argument,
        default=None,
        help="Window end, same forms as --start. Default: 100%%.",
    )

    parser.add_argument(
        "--auto-start",
        dest="auto_start",
        action="store_true",
        help="Start the window at the detected signal onset.",
    )

    parser.add_argument(
        "--threshold",
        type=float,
        default=0.01,
        help="Onset RMS threshold, linear (default: 0.01, about -40 dBFS).",
    )

    parser.add_argument(
        "--detection-window",
        dest="detection_window_size",
        type=int,
        default=512,
        help="Onset RMS window in samples (default: 512).",
    )

    parser.add_argument(
        "--min-duration",
        dest="min_duration_seconds",
        type=float,
        default=0.01,
        help="Seconds the level must persist to count as an onset (default: 0.01).",
    )


def build_parser() -> argparse.ArgumentParser:
    top_level_parser = argparse.ArgumentParser(
        prog="audiotools",
        description="Audio analysis tools: spectrograms, waveforms, WAV header info, peak levels.",
    )

    subparsers = top_level_parser.add_subparsers(
        dest="command_name",
        required=True,
        help="Command to run. Use: audiotools <command> --help",
    )

    # ------------------------------------------------------------------
    # Spectrogram
    # ------------------------------------------------------------------
    spectrum_parser = subparsers.add_parser(
        "spectrum",
        help="Render a log-frequency STFT spectrogram PNG per WAV file.",
    )
    _add_input_arguments(spectrum_parser)
    _add_batch_output_arguments(spectrum_parser)
    _add_time_window_arguments(spectrum_parser)

    spectrum_parser.add_argument(
        "--window-size",
        dest="window_size",
        type=int,
        default=2048,
        help="FFT window size in samples (default: 2048).",
    )

    spectrum_parser.add_argument(
        "--overlap",
        type=float,
        default=0.75,
        help="Frame overlap fraction in [0, 1) (default: 0.75).",
    )

    spectrum_parser.add_argument(
        "--min-freq",
        dest="f_min_hz",
        type=float,
        default=20.0,
        help="Lowest displayed frequency in Hz (default: 20).",
    )

    spectrum_parser.add_argument(
        "--max-freq",
        dest="f_max_hz",
        type=float,
        default=20000.0,
        help="Highest displayed frequency in Hz (default: 20000).",
    )

    spectrum_parser.add_argument(
        "--mark",
        dest="frequency_markers",
        type=_annotation_argument,
        action="append",
        default=[],
        help="Horizontal frequency marker 'HZ:LABEL', e.g. '800:800 Hz'. Repeatable.",
    )

    # ------------------------------------------------------------------
    # Waveform
    # ------------------------------------------------------------------
    waveform_parser = subparsers.add_parser(
        "waveform",
        help="Render a waveform (peak + optional RMS) PNG per WAV file.",
    )
    _add_input_arguments(waveform_parser)
    _add_batch_output_arguments(waveform_parser)
    _add_time_window_arguments(waveform_parser)

    waveform_parser.add_argument(
        "--scale",
        type=str,
        default="amplitude",
        choices=["amplitude", "decibel"],
        help="Vertical scale (default: amplitude).",
    )

    waveform_parser.add_argument(
        "--rms",
        dest="show_rms",
        action="store_true",
        help="Overlay the 20 ms RMS envelope.",
    )

    waveform_parser.add_argument(
        "--annotate",
        dest="annotations",
        type=_annotation_argument,
        action="append",
        default=[],
        help="Vertical marker 'SECONDS:LABEL', e.g. '1.25:snare'. Repeatable.",
    )

    # ------------------------------------------------------------------
    # Info / peak
    # ------------------------------------------------------------------
    info_parser = subparsers.add_parser(
        "info",
        help="Print file size and WAV header fields.",
    )
    _add_input_arguments(info_parser)

    peak_parser = subparsers.add_parser(
        "peak",
        help="Print the sample peak level in dBFS.",
    )
    _add_input_arguments(peak_parser)

    return top_level_parser


# --------------------------------------------------------------------------------------
# Per-file workers (module level so they can run in worker processes)
# --------------------------------------------------------------------------------------


def _onset_note(onset_detected: Optional[bool]) -> str:
    if onset_detected is False:
        return "\n  onset not detected, using the requested range"
    return ""


def spectrum_worker(
    input_path: Path,
    output_directory: Optional[str],
    analysis_settings: SpectrogramAnalysisSettings,
    plot_settings: SpectrogramPlotSettings,
    time_range: Optional[TimeRange],
    onset_settings: Optional[OnsetDetectionSettings],
    show_interactive: bool = False,
) -> str:
    output_path = output_path_for(input_path, output_directory)
    result, analysis_window = plot_spectrogram_from_wav_file(
        input_wav_file_path=input_path,
        output_path=output_path,
        analysis_settings=analysis_settings,
        plot_settings=plot_settings,
        time_range=time_range,
        onset_settings=onset_settings,
        show_interactive=show_interactive,
    )
    return (
        f"Created spectrogram: {input_path} -> {output_path}\n"
        f"{summarise_spectrogram_result_text(result)}"
        f"{_onset_note(analysis_window.onset_detected)}"
    )


def waveform_worker(
    input_path: Path,
    output_directory: Optional[str],
    analysis_settings: WaveformAnalysisSettings,
    plot_settings: WaveformPlotSettings,
    time_range: Optional[TimeRange],
    onset_settings: Optional[OnsetDetectionSettings],
    show_interactive: bool = False,
) -> str:
    output_path = output_path_for(input_path, output_directory)
    result, analysis_window = plot_waveform_from_wav_file(
        input_wav_file_path=input_path,
        output_path=output_path,
        analysis_settings=analysis_settings,
        plot_settings=plot_settings,
        time_range=time_range,
        onset_settings=onset_settings,
        show_interactive=show_interactive,
    )
    return (
        f"Created waveform: {input_path} -> {output_path}\n"
        f"{summarise_waveform_result_text(result)}"
        f"{_onset_note(analysis_window.onset_detected)}"
    )


def info_worker(input_path: Path) -> str:
    header = read_wav_header_from_file(input_path)
    size_text = format_size(input_path.stat().st_size)
    return f"File: {input_path}\nSize: {size_text}\n{header.format_info()}"


def peak_worker(input_path: Path) -> str:
    loaded_audio = load_wav_file(input_path)
    peak_dbfs = detect_peak_level_dbfs(loaded_audio.channel_samples)
    return f"{input_path}: {peak_dbfs:.2f} dBFS"


# --------------------------------------------------------------------------------------
# Commands
# --------------------------------------------------------------------------------------


def _onset_settings_from_arguments(parsed_arguments: argparse.Namespace) -> Optional[OnsetDetectionSettings]:
    return create_auto_start_settings(
        enabled=bool(parsed_arguments.auto_start),
        threshold=float(parsed_arguments.threshold),
        window_size=int(parsed_arguments.detection_window_size),
        min_duration=float(parsed_arguments.min_duration_seconds),
    )


def build_worker(parsed_arguments: argparse.Namespace):
    """
    Turn parsed arguments into a one-argument per-file worker.

    Raises SettingsError for parameter combinations that cannot work.
    """
    command_name = str(parsed_arguments.command_name)

    if command_name == "info":
        return info_worker

    if command_name == "peak":
        return peak_worker

    time_range = create_time_range(parsed_arguments.start, parsed_arguments.end)
    onset_settings = _onset_settings_from_arguments(parsed_arguments)
    output_directory = parsed_arguments.output_directory
    show_interactive = bool(parsed_arguments.show_interactive) and int(parsed_arguments.jobs) <= 1

    if command_name == "spectrum":
        analysis_settings = SpectrogramAnalysisSettings(
            window_size=int(parsed_arguments.window_size),
            overlap=float(parsed_arguments.overlap),
            f_min_hz=float(parsed_arguments.f_min_hz),
            f_max_hz=float(parsed_arguments.f_max_hz),
        )
        plot_settings = SpectrogramPlotSettings(
            frequency_markers=tuple(parsed_arguments.frequency_markers),
        )
        return partial(
            spectrum_worker,
            output_directory=output_directory,
            analysis_settings=analysis_settings,
            plot_settings=plot_settings,
            time_range=time_range,
            onset_settings=onset_settings,
            show_interactive=show_interactive,
        )

    if command_name == "waveform":
        plot_settings = WaveformPlotSettings(
            scale=str(parsed_arguments.scale),
            show_rms=bool(parsed_arguments.show_rms),
            annotations=tuple(parsed_arguments.annotations),
        )
        return partial(
            waveform_worker,
            output_directory=output_directory,
            analysis_settings=WaveformAnalysisSettings(),
            plot_settings=plot_settings,
            time_range=time_range,
            onset_settings=onset_settings,
            show_interactive=show_interactive,
        )

    raise ValueError(f"Unknown command: {command_name}")


def report_outcomes(outcomes: List[FileOutcome]) -> int:
    exit_code = EXIT_OK
    for outcome in outcomes:
        if outcome.succeeded:
            print(outcome.message)
        else:
            print(f"Error processing {outcome.input_path}: {outcome.message}", file=sys.stderr)
            exit_code = EXIT_FILE_ERRORS
    return exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    parsed_arguments = parser.parse_args(argv)

    try:
        worker = build_worker(parsed_arguments)
    except SettingsError as settings_error:
        parser.error(str(settings_error))

    try:
        input_paths = list(iter_wav_files(parsed_arguments.input_path, bool(parsed_arguments.recursive)))
    except FileNotFoundError as missing_error:
        parser.error(str(missing_error))

    jobs = int(getattr(parsed_arguments, "jobs", 1))
    outcomes = run_batch(input_paths, worker, jobs=jobs)

    return report_outcomes(outcomes)


if __name__ == "__main__":
    raise SystemExit(main())
