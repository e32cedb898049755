# audiotools/plotting.py
"""
Rendering helpers shared by the spectrogram and waveform commands.

Every figure is created here, labelled here and written out (then closed) here,
so that batch runs do not accumulate open figures.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.ticker as mticker


FIGURE_SIZE_INCHES = (12.0, 6.0)
FIGURE_DPI = 100

TIME_AXIS_LABEL = "Time (s)"
FREQUENCY_AXIS_LABEL = "Frequency (Hz)"
AMPLITUDE_AXIS_LABEL = "Amplitude"
DECIBEL_AXIS_LABEL = "Level (dB)"

Marker = Tuple[float, str]


def create_figure_and_axis(title: Optional[str] = None) -> Tuple[plt.Figure, plt.Axes]:
    figure, axis = plt.subplots(figsize=FIGURE_SIZE_INCHES, dpi=FIGURE_DPI)
    if title is not None:
        axis.set_title(title)
    axis.grid(True)
    return figure, axis


def finalize_and_show_or_save(
    figure: plt.Figure,
    output_path: Optional[str | Path] = None,
    show_interactive: bool = False,
) -> None:
    """
    Write the figure as PNG (creating parent directories), optionally show it,
    and always close it.
    """
    try:
        if output_path is not None:
            output_path = Path(output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            figure.savefig(output_path, bbox_inches="tight")

        if show_interactive:
            plt.show()
    finally:
        plt.close(figure)


def label_time_axis_seconds(axis: plt.Axes) -> None:
    axis.set_xlabel(TIME_AXIS_LABEL)


def label_frequency_axis_hz(axis: plt.Axes) -> None:
    axis.set_ylabel(FREQUENCY_AXIS_LABEL)


def label_amplitude_axis(axis: plt.Axes) -> None:
    axis.set_ylabel(AMPLITUDE_AXIS_LABEL)


def label_decibel_axis(axis: plt.Axes) -> None:
    axis.set_ylabel(DECIBEL_AXIS_LABEL)


def apply_time_grid(
    axis: plt.Axes,
    interval_seconds: float,
    tick_formatter: Callable[[float, float], str],
) -> None:
    """
    Major x ticks every interval_seconds, labelled with tick_formatter(value, interval).
    """
    axis.xaxis.set_major_locator(mticker.MultipleLocator(interval_seconds))
    axis.xaxis.set_major_formatter(
        mticker.FuncFormatter(lambda value, pos: tick_formatter(value, interval_seconds))
    )


def draw_time_markers(
    axis: plt.Axes,
    markers: Sequence[Marker],
    start_seconds: float,
    end_seconds: float,
    label_y: float,
) -> int:
    """
    Vertical line + label for each (time, label) inside [start, end]. Returns how many were drawn.
    """
    drawn = 0
    for marker_time, marker_label in markers:
        if start_seconds <= marker_time <= end_seconds:
            axis.axvline(marker_time, color="gold", linewidth=1.0)
            axis.text(marker_time, label_y, marker_label, color="goldenrod")
            drawn += 1
    return drawn


def draw_frequency_markers(
    axis: plt.Axes,
    markers: Sequence[Marker],
    f_min_hz: float,
    f_max_hz: float,
    label_x: float,
) -> int:
    """
    Horizontal line + label for each (frequency, label) inside [f_min, f_max].
    """
    drawn = 0
    for marker_hz, marker_label in markers:
        if f_min_hz <= marker_hz <= f_max_hz:
            axis.axhline(marker_hz, color="green", linewidth=1.0)
            axis.annotate(marker_label, xy=(label_x, marker_hz), color="green", ha="right", va="bottom")
            drawn += 1
    return drawn


def time_axis_from_sample_count(
    number_of_samples: int,
    sample_rate_hz: int,
    start_seconds: float = 0.0,
) -> np.ndarray:
    """
    Absolute time of each sample when the buffer starts start_seconds into the file.
    """
    return float(start_seconds) + np.arange(number_of_samples, dtype=np.float64) / float(sample_rate_hz)
