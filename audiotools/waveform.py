# audiotools/waveform.py
"""
Waveform (peak) and RMS envelope view of a mono analysis window.

Series:
- peak: the samples themselves, one value per sample
- rms: centred sliding RMS over rms_window_seconds (20 ms by default);
  near the buffer edges the window shrinks instead of padding

Both series can be shown as amplitude or as dBFS clamped at -60 dB.

Output:
- One PNG per input file. By default written next to the input:
    <input>.png
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional, Tuple

import numpy as np

from audiotools.detection import OnsetDetectionSettings
from audiotools.errors import SettingsError
from audiotools.io import load_wav_mono, slice_time_window
from audiotools.plotting import (
    apply_time_grid,
    create_figure_and_axis,
    draw_time_markers,
    finalize_and_show_or_save,
    label_amplitude_axis,
    label_decibel_axis,
    label_time_axis_seconds,
    time_axis_from_sample_count,
)
from audiotools.timerange import AnalysisWindow, TimeRange, select_analysis_window


WaveformScale = Literal["amplitude", "decibel"]

DB_FLOOR = -60.0
SILENCE_AMPLITUDE = 1e-6

# "Nice" gridline spacings in seconds, milliseconds through minutes.
GRID_INTERVAL_LADDER_SECONDS = (
    0.001, 0.002, 0.005,
    0.01, 0.02, 0.05,
    0.1, 0.2, 0.5,
    1.0, 2.0, 5.0,
    10.0, 20.0, 30.0,
    60.0, 120.0, 300.0,
)
TARGET_GRID_COUNT = 10.0


# --------------------------------------------------------------------------------------
# Data models
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class WaveformAnalysisSettings:
    rms_window_seconds: float = 0.02

    def __post_init__(self) -> None:
        if not self.rms_window_seconds > 0.0:
            raise SettingsError(f"RMS window must be > 0 s, got {self.rms_window_seconds}")


@dataclass(frozen=True)
class WaveformPlotSettings:
    scale: WaveformScale = "amplitude"
    show_rms: bool = False
    # (time_seconds, label) vertical markers.
    annotations: Tuple[Tuple[float, str], ...] = ()


@dataclass(frozen=True)
class WaveformResult:
    sample_rate_hz: int
    start_seconds: float
    end_seconds: float

    time_seconds: np.ndarray      # (N,) absolute time in the file
    peak: np.ndarray              # (N,)
    rms: np.ndarray               # (N,)
    rms_window_size: int
    grid_interval_seconds: float

    def scaled(self, scale: WaveformScale) -> Tuple[np.ndarray, np.ndarray]:
        """
        (peak, rms) in the requested scale.
        """
        if scale == "amplitude":
            return self.peak, self.rms
        if scale == "decibel":
            return amplitude_to_db(self.peak), amplitude_to_db(self.rms)
        raise ValueError(f"Unknown waveform scale: {scale}")


# --------------------------------------------------------------------------------------
# Core
# --------------------------------------------------------------------------------------


def rms_window_size_samples(sample_rate_hz: int, rms_window_seconds: float = 0.02) -> int:
    return int(round(float(sample_rate_hz) * float(rms_window_seconds)))


def calculate_rms_envelope(samples: np.ndarray, window_size: int) -> np.ndarray:
    """
    RMS over [max(0, i - w/2), min(N, i + w/2)) for every sample index i.

    A window narrower than 2 samples is widened to cover [i - 1, i + 1).
    """
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        return np.zeros(0, dtype=np.float32)

    half_window = max(1, int(window_size) // 2)
    indices = np.arange(x.size)
    starts = np.maximum(0, indices - half_window)
    ends = np.minimum(x.size, indices + half_window)

    cumulative_energy = np.concatenate(([0.0], np.cumsum(x * x)))
    window_energy = np.maximum(cumulative_energy[ends] - cumulative_energy[starts], 0.0)

    return np.sqrt(window_energy / (ends - starts)).astype(np.float32)


def amplitude_to_db(amplitude, floor_db: float = DB_FLOOR):
    """
    20*log10(|a|) clamped at floor_db; |a| < 1e-6 maps straight to the floor.

    Accepts a scalar (returns float) or an array (returns float32 array).
    """
    a = np.abs(np.asarray(amplitude, dtype=np.float64))
    silent = a < SILENCE_AMPLITUDE

    with np.errstate(divide="ignore"):
        level_db = 20.0 * np.log10(np.where(silent, 1.0, a))
    level_db = np.where(silent, floor_db, np.maximum(level_db, floor_db))

    if level_db.ndim == 0:
        return float(level_db)
    return level_db.astype(np.float32)


def calculate_grid_interval(duration_seconds: float) -> float:
    """
    Ladder entry closest to duration / 10 (first one wins on ties).
    """
    ideal_interval = float(duration_seconds) / TARGET_GRID_COUNT
    ladder = np.asarray(GRID_INTERVAL_LADDER_SECONDS, dtype=np.float64)
    return float(ladder[int(np.argmin(np.abs(ladder - ideal_interval)))])


def format_time_tick(seconds: float, grid_interval_seconds: float) -> str:
    if grid_interval_seconds >= 1.0:
        return f"{seconds:.0f}s"
    if grid_interval_seconds >= 0.1:
        return f"{seconds:.1f}s"
    if grid_interval_seconds >= 0.01:
        return f"{seconds:.2f}s"
    return f"{seconds:.3f}s"


# --------------------------------------------------------------------------------------
# Analysis
# --------------------------------------------------------------------------------------


def analyse_waveform(
    samples: np.ndarray,
    sample_rate_hz: int,
    settings: Optional[WaveformAnalysisSettings] = None,
    start_seconds: float = 0.0,
    end_seconds: Optional[float] = None,
) -> WaveformResult:
    if settings is None:
        settings = WaveformAnalysisSettings()
    if samples.ndim != 1:
        raise ValueError("analyse_waveform expects a 1D mono array.")

    if end_seconds is None:
        end_seconds = float(start_seconds) + float(samples.size) / float(sample_rate_hz)

    window_size = rms_window_size_samples(sample_rate_hz, settings.rms_window_seconds)

    return WaveformResult(
        sample_rate_hz=int(sample_rate_hz),
        start_seconds=float(start_seconds),
        end_seconds=float(end_seconds),
        time_seconds=time_axis_from_sample_count(samples.size, sample_rate_hz, start_seconds),
        peak=samples.astype(np.float32, copy=True),
        rms=calculate_rms_envelope(samples, window_size),
        rms_window_size=window_size,
        grid_interval_seconds=calculate_grid_interval(float(end_seconds) - float(start_seconds)),
    )


def analyse_waveform_from_wav_file(
    input_wav_file_path: str | Path,
    settings: Optional[WaveformAnalysisSettings] = None,
    time_range: Optional[TimeRange] = None,
    onset_settings: Optional[OnsetDetectionSettings] = None,
) -> Tuple[WaveformResult, AnalysisWindow]:
    audio = load_wav_mono(input_wav_file_path)

    analysis_window = select_analysis_window(
        samples=audio.samples,
        sample_rate_hz=audio.sample_rate_hz,
        time_range=time_range,
        onset_settings=onset_settings,
    )

    windowed_samples = slice_time_window(
        audio.samples,
        audio.sample_rate_hz,
        analysis_window.start_seconds,
        analysis_window.end_seconds,
    )

    result = analyse_waveform(
        samples=windowed_samples,
        sample_rate_hz=audio.sample_rate_hz,
        settings=settings,
        start_seconds=analysis_window.start_seconds,
        end_seconds=analysis_window.end_seconds,
    )
    return result, analysis_window


# --------------------------------------------------------------------------------------
# Plotting
# --------------------------------------------------------------------------------------


def plot_waveform_figure(
    result: WaveformResult,
    plot_settings: WaveformPlotSettings,
    title: Optional[str] = None,
):
    figure, axis = create_figure_and_axis(title=title)

    if plot_settings.scale == "decibel":
        y_min, y_max = DB_FLOOR, 0.0
        label_decibel_axis(axis)
    else:
        y_min, y_max = -1.0, 1.0
        label_amplitude_axis(axis)

    peak, rms = result.scaled(plot_settings.scale)

    if plot_settings.show_rms:
        # dB fill is anchored at the floor, amplitude fill at zero.
        baseline = y_min if plot_settings.scale == "decibel" else 0.0
        axis.fill_between(result.time_seconds, baseline, rms, color="tab:green", alpha=0.5, label="RMS")

    axis.plot(result.time_seconds, peak, color="tab:blue", linewidth=0.8, label="Peak")

    axis.set_xlim(result.start_seconds, result.end_seconds)
    axis.set_ylim(y_min, y_max)
    label_time_axis_seconds(axis)

    apply_time_grid(axis, result.grid_interval_seconds, format_time_tick)

    draw_time_markers(
        axis,
        plot_settings.annotations,
        result.start_seconds,
        result.end_seconds,
        label_y=y_max - (y_max - y_min) * 0.1,
    )

    axis.legend(loc="upper right")

    return figure


def plot_waveform_from_wav_file(
    input_wav_file_path: str | Path,
    output_path: str | Path,
    analysis_settings: Optional[WaveformAnalysisSettings] = None,
    plot_settings: Optional[WaveformPlotSettings] = None,
    time_range: Optional[TimeRange] = None,
    onset_settings: Optional[OnsetDetectionSettings] = None,
    show_interactive: bool = False,
) -> Tuple[WaveformResult, AnalysisWindow]:
    """
    Convenience wrapper: analyse then write one PNG to output_path.
    """
    if plot_settings is None:
        plot_settings = WaveformPlotSettings()

    result, analysis_window = analyse_waveform_from_wav_file(
        input_wav_file_path=input_wav_file_path,
        settings=analysis_settings,
        time_range=time_range,
        onset_settings=onset_settings,
    )

    fig = plot_waveform_figure(
        result=result,
        plot_settings=plot_settings,
        title=Path(input_wav_file_path).name,
    )

    finalize_and_show_or_save(
        figure=fig,
        output_path=output_path,
        show_interactive=show_interactive,
    )

    return result, analysis_window


# --------------------------------------------------------------------------------------
# CLI-friendly numeric summary
# --------------------------------------------------------------------------------------


def summarise_waveform_result_text(result: WaveformResult) -> str:
    peak_abs = float(np.max(np.abs(result.peak))) if result.peak.size else 0.0
    rms_max = float(np.max(result.rms)) if result.rms.size else 0.0
    return (
        f"  window=[{result.start_seconds:.3f}s, {result.end_seconds:.3f}s)  "
        f"peak={amplitude_to_db(peak_abs):.1f} dB  max_rms={amplitude_to_db(rms_max):.1f} dB  "
        f"grid={result.grid_interval_seconds:g}s"
    )
