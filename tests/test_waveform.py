from __future__ import annotations

import numpy as np
import pytest

from audiotools.errors import SettingsError
from audiotools.waveform import (
    WaveformAnalysisSettings,
    WaveformPlotSettings,
    amplitude_to_db,
    analyse_waveform,
    analyse_waveform_from_wav_file,
    calculate_grid_interval,
    calculate_rms_envelope,
    format_time_tick,
    plot_waveform_figure,
    rms_window_size_samples,
)
from audiotools.timerange import Seconds, create_time_range


def test_rms_of_constant_signal_is_its_amplitude():
    rms = calculate_rms_envelope(np.full(500, -0.3), window_size=64)
    assert rms.shape == (500,)
    assert np.allclose(rms, 0.3, atol=1e-6)


def test_rms_window_narrows_at_edges():
    samples = np.zeros(20)
    samples[0] = 1.0
    rms = calculate_rms_envelope(samples, window_size=4)

    assert rms[0] == pytest.approx(np.sqrt(1.0 / 2.0))
    assert rms[1] == pytest.approx(np.sqrt(1.0 / 3.0))
    assert rms[2] == pytest.approx(0.5)
    assert rms[3] == 0.0


def test_rms_window_of_one_sample_is_widened():
    rms = calculate_rms_envelope(np.array([0.0, 1.0, 0.0]), window_size=1)
    assert rms[1] == pytest.approx(np.sqrt(0.5))


def test_rms_window_size_samples():
    assert rms_window_size_samples(44100) == 882
    assert rms_window_size_samples(8000, 0.02) == 160


def test_amplitude_to_db():
    assert amplitude_to_db(1.0) == pytest.approx(0.0)
    assert amplitude_to_db(-0.5) == pytest.approx(-6.0206, abs=1e-3)
    assert amplitude_to_db(1e-7) == -60.0
    assert amplitude_to_db(1e-4) == -60.0

    levels = amplitude_to_db(np.array([1.0, 0.1, 0.0]))
    assert levels.dtype == np.float32
    assert np.allclose(levels, [0.0, -20.0, -60.0], atol=1e-4)


def test_decibel_floor_is_never_crossed():
    rng = np.random.default_rng(7)
    levels = amplitude_to_db(rng.uniform(-1.0, 1.0, 1000) * 1e-3)
    assert np.all(levels >= -60.0)
    assert np.all(levels <= 0.0)


@pytest.mark.parametrize(
    "duration_seconds, expected_interval",
    [(10.0, 1.0), (0.05, 0.005), (1000.0, 120.0), (3.0, 0.2), (0.001, 0.001), (100000.0, 300.0)],
)
def test_calculate_grid_interval(duration_seconds, expected_interval):
    assert calculate_grid_interval(duration_seconds) == expected_interval


def test_format_time_tick():
    assert format_time_tick(3.0, 1.0) == "3s"
    assert format_time_tick(0.3, 0.2) == "0.3s"
    assert format_time_tick(0.05, 0.02) == "0.05s"
    assert format_time_tick(0.004, 0.002) == "0.004s"


def test_analyse_waveform_uses_absolute_time():
    samples = np.full(800, 0.25, dtype=np.float32)
    result = analyse_waveform(samples, 8000, WaveformAnalysisSettings(), start_seconds=0.5)

    assert result.end_seconds == pytest.approx(0.6)
    assert result.time_seconds[0] == pytest.approx(0.5)
    assert result.time_seconds[1] == pytest.approx(0.5 + 1 / 8000)
    assert result.rms_window_size == 160
    assert result.grid_interval_seconds == 0.01

    peak_db, rms_db = result.scaled("decibel")
    assert peak_db[0] == pytest.approx(-12.04, abs=0.01)
    assert rms_db[400] == pytest.approx(-12.04, abs=0.01)
    assert result.scaled("amplitude")[0] is result.peak

    with pytest.raises(ValueError):
        result.scaled("loudness")


def test_invalid_rms_window_raises():
    with pytest.raises(SettingsError):
        WaveformAnalysisSettings(rms_window_seconds=0.0)


def test_analyse_waveform_from_wav_file_honours_range(tone_wav):
    result, window = analyse_waveform_from_wav_file(
        tone_wav, time_range=create_time_range(Seconds(0.25), Seconds(0.75))
    )

    assert (window.start_seconds, window.end_seconds) == (0.25, 0.75)
    assert result.peak.size == 4000
    assert np.max(np.abs(result.peak)) == pytest.approx(0.5, abs=1e-3)


def test_plot_waveform_figure_annotations_inside_window_only():
    result = analyse_waveform(np.zeros(8000, dtype=np.float32), 8000)
    plot_settings = WaveformPlotSettings(
        scale="decibel",
        show_rms=True,
        annotations=((0.5, "snare"), (2.0, "outside")),
    )

    figure = plot_waveform_figure(result, plot_settings)
    axis = figure.axes[0]

    assert [text.get_text() for text in axis.texts] == ["snare"]
    assert axis.get_ylim() == (-60.0, 0.0)
