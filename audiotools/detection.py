# audiotools/detection.py
"""
Signal onset and peak-level detection on decoded sample buffers.

Onset detection:
- slide a window of window_size samples one sample at a time
- the first window whose RMS exceeds threshold triggers a candidate onset
- once min_duration seconds have elapsed since the trigger, the onset is
  refined to the first zero crossing after it and returned in seconds
- there is no re-arming: a triggered candidate stays triggered even if the
  level drops again; a buffer that ends first yields None
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from audiotools.errors import SettingsError


PEAK_LEVEL_FLOOR_AMPLITUDE = 1e-20


@dataclass(frozen=True)
class OnsetDetectionSettings:
    # Linear RMS threshold (0.01 is about -40 dBFS).
    threshold: float = 0.01
    window_size: int = 512
    # Seconds the candidate must persist before it is accepted.
    min_duration: float = 0.01

    def __post_init__(self) -> None:
        if not self.threshold > 0.0:
            raise SettingsError(f"Onset threshold must be > 0, got {self.threshold}")
        if int(self.window_size) <= 0:
            raise SettingsError(f"Onset window size must be > 0, got {self.window_size}")
        if not self.min_duration >= 0.0:
            raise SettingsError(f"Onset min duration must be >= 0, got {self.min_duration}")


def create_auto_start_settings(
    enabled: bool,
    threshold: float = 0.01,
    window_size: int = 512,
    min_duration: float = 0.01,
) -> Optional[OnsetDetectionSettings]:
    if not enabled:
        return None
    return OnsetDetectionSettings(
        threshold=float(threshold),
        window_size=int(window_size),
        min_duration=float(min_duration),
    )


def sliding_window_rms(samples: np.ndarray, window_size: int) -> np.ndarray:
    """
    RMS of every full window samples[i : i + window_size].

    Returns shape (num_samples - window_size + 1,), or an empty array when the
    buffer is shorter than one window.
    """
    x = np.asarray(samples, dtype=np.float64)
    if window_size <= 0:
        raise SettingsError(f"window_size must be > 0, got {window_size}")
    if x.size < window_size:
        return np.zeros(0, dtype=np.float64)

    cumulative_energy = np.concatenate(([0.0], np.cumsum(x * x)))
    window_energy = cumulative_energy[window_size:] - cumulative_energy[:-window_size]
    return np.sqrt(np.maximum(window_energy, 0.0) / float(window_size))


def is_zero_crossing(first_sample: float, second_sample: float) -> bool:
    return (first_sample < 0.0 <= second_sample) or (second_sample < 0.0 <= first_sample)


def _first_zero_crossing(samples: np.ndarray, start_index: int, stop_index: int) -> Optional[int]:
    """
    First j in [start_index, stop_index) where samples[j] and samples[j + 1]
    lie on opposite sides of zero.
    """
    stop_index = min(stop_index, samples.size - 1)
    if start_index >= stop_index:
        return None

    current = samples[start_index:stop_index]
    following = samples[start_index + 1:stop_index + 1]
    crossings = ((current < 0.0) & (following >= 0.0)) | ((current >= 0.0) & (following < 0.0))
    crossing_indices = np.flatnonzero(crossings)
    if crossing_indices.size == 0:
        return None
    return start_index + int(crossing_indices[0])


def detect_start_index(
    samples: np.ndarray,
    sample_rate_hz: float,
    settings: Optional[OnsetDetectionSettings] = None,
) -> Optional[int]:
    """
    Sample index of the detected onset, or None.

    The candidate start is the first sample inside the triggering window
    whose magnitude is above threshold (the window start if none is).
    """
    if settings is None:
        settings = OnsetDetectionSettings()

    x = np.asarray(samples, dtype=np.float64)
    window_size = int(settings.window_size)

    rms = sliding_window_rms(x, window_size)
    above_threshold = rms > float(settings.threshold)
    if not np.any(above_threshold):
        return None

    trigger_index = int(np.argmax(above_threshold))

    # The trigger position itself never completes; the earliest check is one step later.
    min_samples = int(float(settings.min_duration) * float(sample_rate_hz))
    decision_index = trigger_index + max(min_samples, 1)
    if decision_index >= rms.size:
        return None

    window = np.abs(x[trigger_index:trigger_index + window_size])
    loud_indices = np.flatnonzero(window > float(settings.threshold))
    candidate_index = trigger_index + (int(loud_indices[0]) if loud_indices.size else 0)

    crossing_index = _first_zero_crossing(x, candidate_index, decision_index)
    if crossing_index is not None:
        return crossing_index
    return candidate_index


def detect_start_time(
    samples: np.ndarray,
    sample_rate_hz: float,
    settings: Optional[OnsetDetectionSettings] = None,
) -> Optional[float]:
    """
    Onset time in seconds, or None if no sustained onset exists.
    """
    start_index = detect_start_index(samples, sample_rate_hz, settings)
    if start_index is None:
        return None
    return float(start_index) / float(sample_rate_hz)


def detect_peak_level_dbfs(samples: np.ndarray) -> float:
    """
    Peak absolute sample value in dBFS (1.0 = 0 dBFS). Silence reports -400 dBFS.
    """
    x = np.asarray(samples, dtype=np.float64)
    peak = float(np.max(np.abs(x))) if x.size else 0.0
    return 20.0 * float(np.log10(max(peak, PEAK_LEVEL_FLOOR_AMPLITUDE)))
