# audiotools/spectrogram.py
"""
Short-time Fourier spectrogram of a mono analysis window.

Method:
- hop = floor(window_size * (1 - overlap)), must be at least one sample
- periodic Hann window w[i] = 0.5 * (1 - cos(2*pi*i/N))
- frames start at 0, hop, 2*hop, ... while the frame fits in the buffer
- bin k of each frame: 20*log10(|X[k]| / N), k < N/2, clamped to floor_db

All bins are kept regardless of the display bounds; f_min_hz/f_max_hz only
select what the plot shows.

Output:
- One PNG per input file. By default written next to the input:
    <input>.png
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
import matplotlib.ticker as mticker

from audiotools.errors import SettingsError
from audiotools.io import load_wav_mono, slice_time_window
from audiotools.plotting import (
    create_figure_and_axis,
    draw_frequency_markers,
    finalize_and_show_or_save,
    label_frequency_axis_hz,
    label_time_axis_seconds,
)
from audiotools.timerange import AnalysisWindow, TimeRange, select_analysis_window
from audiotools.detection import OnsetDetectionSettings


# --------------------------------------------------------------------------------------
# Data models
# --------------------------------------------------------------------------------------


DEFAULT_FLOOR_DB = -128.0
DEFAULT_CEILING_DB = 0.0

FREQUENCY_TICK_FIRST_DECADE_HZ = 10.0
FREQUENCY_TICK_MULTIPLIERS = (1.0, 2.0, 5.0)


@dataclass(frozen=True)
class SpectrogramAnalysisSettings:
    # STFT parameters:
    window_size: int = 2048
    overlap: float = 0.75

    # Display/frequency bounds:
    f_min_hz: float = 20.0
    f_max_hz: float = 20000.0

    # dB values below this (including log10(0)) are reported as floor_db.
    floor_db: float = DEFAULT_FLOOR_DB

    def __post_init__(self) -> None:
        if int(self.window_size) < 2:
            raise SettingsError(f"FFT window size must be >= 2, got {self.window_size}")
        if not (0.0 <= self.overlap < 1.0):
            raise SettingsError(f"Overlap must be in [0, 1), got {self.overlap}")
        if compute_hop_size(self.window_size, self.overlap) < 1:
            raise SettingsError(
                f"Overlap {self.overlap} leaves no hop for window size {self.window_size}"
            )
        if not (0.0 <= self.f_min_hz < self.f_max_hz):
            raise SettingsError(
                f"Frequency bounds must satisfy 0 <= min < max, got [{self.f_min_hz}, {self.f_max_hz}]"
            )

    @property
    def hop_size(self) -> int:
        return compute_hop_size(self.window_size, self.overlap)


@dataclass(frozen=True)
class SpectrogramPlotSettings:
    vmin_db: float = DEFAULT_FLOOR_DB
    vmax_db: float = DEFAULT_CEILING_DB
    colormap: str = "hot"
    # (frequency_hz, label) horizontal markers.
    frequency_markers: Tuple[Tuple[float, str], ...] = ()


@dataclass(frozen=True)
class SpectrogramResult:
    sample_rate_hz: int
    window_size: int
    hop_size: int

    window_start_seconds: float
    analysis_length_samples: int

    time_seconds: np.ndarray          # (T,) frame start relative to window start
    frequency_hz: np.ndarray          # (N/2,)
    magnitude_db: np.ndarray          # (T, N/2)
    frequency_ticks_hz: Tuple[float, ...]

    @property
    def frame_count(self) -> int:
        return int(self.magnitude_db.shape[0])


# --------------------------------------------------------------------------------------
# Core STFT
# --------------------------------------------------------------------------------------


def compute_hop_size(window_size: int, overlap: float) -> int:
    return int(np.floor(float(window_size) * (1.0 - float(overlap))))


def hann_window(window_size: int) -> np.ndarray:
    """
    Periodic Hann window of length N (zero at i = 0, not at i = N - 1).
    """
    indices = np.arange(window_size, dtype=np.float64)
    return 0.5 * (1.0 - np.cos(2.0 * np.pi * indices / float(window_size)))


def compute_log_frequency_ticks(f_min_hz: float, f_max_hz: float) -> List[float]:
    """
    Decade ticks 10, 100, 1000, ... up to f_max_hz, each with its x2 and x5
    companions, keeping only those inside [f_min_hz, f_max_hz].
    """
    ticks: List[float] = []
    decade_hz = FREQUENCY_TICK_FIRST_DECADE_HZ
    while decade_hz <= f_max_hz:
        for multiplier in FREQUENCY_TICK_MULTIPLIERS:
            tick_hz = decade_hz * multiplier
            if f_min_hz <= tick_hz <= f_max_hz:
                ticks.append(tick_hz)
        decade_hz *= 10.0
    return sorted(ticks)


def compute_stft_magnitude_db(
    samples: np.ndarray,
    sample_rate_hz: int,
    window_size: int,
    hop_size: int,
    floor_db: float = DEFAULT_FLOOR_DB,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Returns (time_seconds, frequency_hz, magnitude_db) where magnitude_db shape is (T, N/2).

    A buffer shorter than one window gives T = 0.
    """
    if samples.ndim != 1:
        raise ValueError("compute_stft_magnitude_db expects a 1D mono array.")
    if window_size < 2 or hop_size < 1:
        raise SettingsError("window_size must be >= 2 and hop_size >= 1.")

    x = samples.astype(np.float64, copy=False)
    num_bins = window_size // 2

    frequency_hz = np.arange(num_bins, dtype=np.float64) * float(sample_rate_hz) / float(window_size)

    if x.size < window_size:
        num_frames = 0
    else:
        num_frames = 1 + (x.size - window_size) // hop_size

    window = hann_window(window_size)
    magnitude_db = np.empty((num_frames, num_bins), dtype=np.float32)

    for frame_index in range(num_frames):
        start = frame_index * hop_size
        spectrum = np.fft.rfft(x[start : start + window_size] * window)
        magnitude = np.abs(spectrum[:num_bins]) / float(window_size)

        with np.errstate(divide="ignore"):
            frame_db = 20.0 * np.log10(magnitude)
        magnitude_db[frame_index, :] = np.maximum(frame_db, float(floor_db)).astype(np.float32)

    time_seconds = np.arange(num_frames, dtype=np.float64) * float(hop_size) / float(sample_rate_hz)

    return time_seconds, frequency_hz, magnitude_db


def iter_spectrogram_points(result: SpectrogramResult) -> Iterator[Tuple[float, float, float]]:
    """
    Yield (time_seconds, frequency_hz, magnitude_db) for every frame and bin.
    """
    for frame_index, frame_time in enumerate(result.time_seconds):
        frame = result.magnitude_db[frame_index]
        for bin_index, bin_frequency in enumerate(result.frequency_hz):
            yield float(frame_time), float(bin_frequency), float(frame[bin_index])


# --------------------------------------------------------------------------------------
# Analysis
# --------------------------------------------------------------------------------------


def analyse_spectrogram(
    samples: np.ndarray,
    sample_rate_hz: int,
    settings: Optional[SpectrogramAnalysisSettings] = None,
    window_start_seconds: float = 0.0,
) -> SpectrogramResult:
    if settings is None:
        settings = SpectrogramAnalysisSettings()
    if samples.ndim != 1:
        raise ValueError("analyse_spectrogram expects a 1D mono array.")

    time_s, freq_hz, mag_db = compute_stft_magnitude_db(
        samples=samples,
        sample_rate_hz=int(sample_rate_hz),
        window_size=int(settings.window_size),
        hop_size=settings.hop_size,
        floor_db=float(settings.floor_db),
    )

    return SpectrogramResult(
        sample_rate_hz=int(sample_rate_hz),
        window_size=int(settings.window_size),
        hop_size=settings.hop_size,
        window_start_seconds=float(window_start_seconds),
        analysis_length_samples=int(samples.size),
        time_seconds=time_s,
        frequency_hz=freq_hz,
        magnitude_db=mag_db,
        frequency_ticks_hz=tuple(compute_log_frequency_ticks(settings.f_min_hz, settings.f_max_hz)),
    )


def analyse_spectrogram_from_wav_file(
    input_wav_file_path: str | Path,
    settings: Optional[SpectrogramAnalysisSettings] = None,
    time_range: Optional[TimeRange] = None,
    onset_settings: Optional[OnsetDetectionSettings] = None,
) -> Tuple[SpectrogramResult, AnalysisWindow]:
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

    result = analyse_spectrogram(
        samples=windowed_samples,
        sample_rate_hz=audio.sample_rate_hz,
        settings=settings,
        window_start_seconds=analysis_window.start_seconds,
    )
    return result, analysis_window


# --------------------------------------------------------------------------------------
# Plotting
# --------------------------------------------------------------------------------------


def _format_hz_ticks_for_log_axis(axis, ticks_hz: Sequence[float]) -> None:
    axis.set_yticks(list(ticks_hz))

    def _hz_formatter(x, pos):
        return f"{x:.0f}"

    axis.yaxis.set_major_formatter(mticker.FuncFormatter(_hz_formatter))
    axis.yaxis.set_minor_formatter(mticker.NullFormatter())


def plot_spectrogram_figure(
    result: SpectrogramResult,
    analysis_settings: SpectrogramAnalysisSettings,
    plot_settings: SpectrogramPlotSettings,
    title: Optional[str] = None,
):
    if result.frame_count == 0:
        raise ValueError(
            f"Not enough samples for a spectrogram: {result.analysis_length_samples} "
            f"samples, window size {result.window_size}."
        )

    # Log axis: the DC bin cannot be drawn.
    fmask = (
        (result.frequency_hz > 0.0)
        & (result.frequency_hz >= analysis_settings.f_min_hz)
        & (result.frequency_hz <= analysis_settings.f_max_hz)
    )
    freq = result.frequency_hz[fmask]
    mag = result.magnitude_db[:, fmask]

    if freq.size == 0:
        raise ValueError("Spectrogram frequency selection is empty (check min/max frequency).")

    figure, axis = create_figure_and_axis(title=title)

    t = result.window_start_seconds + result.time_seconds

    mesh = axis.pcolormesh(
        t,
        freq,
        mag.T,
        shading="nearest",
        cmap=plot_settings.colormap,
        vmin=plot_settings.vmin_db,
        vmax=plot_settings.vmax_db,
    )

    label_time_axis_seconds(axis)
    label_frequency_axis_hz(axis)
    axis.set_yscale("log")
    axis.set_ylim(max(analysis_settings.f_min_hz, float(freq[0])), analysis_settings.f_max_hz)
    _format_hz_ticks_for_log_axis(axis, result.frequency_ticks_hz)

    axis.grid(True, which="major", linestyle=":", linewidth=0.5)

    draw_frequency_markers(
        axis,
        plot_settings.frequency_markers,
        analysis_settings.f_min_hz,
        analysis_settings.f_max_hz,
        label_x=float(t[-1]),
    )

    figure.colorbar(mesh, ax=axis, label="Magnitude (dB)")

    return figure


def plot_spectrogram_from_wav_file(
    input_wav_file_path: str | Path,
    output_path: str | Path,
    analysis_settings: Optional[SpectrogramAnalysisSettings] = None,
    plot_settings: Optional[SpectrogramPlotSettings] = None,
    time_range: Optional[TimeRange] = None,
    onset_settings: Optional[OnsetDetectionSettings] = None,
    show_interactive: bool = False,
) -> Tuple[SpectrogramResult, AnalysisWindow]:
    """
    Convenience wrapper: analyse then write one PNG to output_path.
    """
    if analysis_settings is None:
        analysis_settings = SpectrogramAnalysisSettings()
    if plot_settings is None:
        plot_settings = SpectrogramPlotSettings()

    result, analysis_window = analyse_spectrogram_from_wav_file(
        input_wav_file_path=input_wav_file_path,
        settings=analysis_settings,
        time_range=time_range,
        onset_settings=onset_settings,
    )

    fig = plot_spectrogram_figure(
        result=result,
        analysis_settings=analysis_settings,
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


def summarise_spectrogram_result_text(result: SpectrogramResult) -> str:
    duration_s = float(result.analysis_length_samples) / float(result.sample_rate_hz)
    return (
        f"  start={result.window_start_seconds:.3f}s  dur={duration_s:.3f}s  "
        f"stft(n_fft={result.window_size}, hop={result.hop_size}, frames={result.frame_count})"
    )
