# audiotools/timerange.py
"""
Time specifications and analysis-window resolution.

A user gives start/end times in one of three forms:
    "2.5"   -> Seconds(2.5)
    "1:30"  -> MinutesSeconds(1, 30)
    "50%"   -> Percentage(0.5)

A TimeRange is resolved against the file duration into a concrete
(start_seconds, end_seconds) pair, or fails with a RangeError subclass.
Out-of-range values are never clamped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from audiotools.detection import OnsetDetectionSettings, detect_start_time
from audiotools.errors import (
    EmptyTimeRangeError,
    EndTimeExceedsDurationError,
    NegativeStartTimeError,
    TimeParseError,
)


# --------------------------------------------------------------------------------------
# Data models
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class Seconds:
    value: float

    def to_seconds(self, total_duration_seconds: float) -> float:
        return float(self.value)


@dataclass(frozen=True)
class MinutesSeconds:
    minutes: int
    seconds: int

    def to_seconds(self, total_duration_seconds: float) -> float:
        return float(self.minutes) * 60.0 + float(self.seconds)


@dataclass(frozen=True)
class Percentage:
    # Fraction of the duration in [0, 1] (already divided by 100).
    fraction: float

    def to_seconds(self, total_duration_seconds: float) -> float:
        return float(self.fraction) * float(total_duration_seconds)


TimeSpecification = Union[Seconds, MinutesSeconds, Percentage]


@dataclass(frozen=True)
class TimeRange:
    start: TimeSpecification
    end: TimeSpecification

    def resolve(self, total_duration_seconds: float) -> Tuple[float, float]:
        """
        Convert both endpoints to seconds and validate, in order:
        start >= 0, start < end, end <= total duration.
        """
        start_seconds = self.start.to_seconds(total_duration_seconds)
        end_seconds = self.end.to_seconds(total_duration_seconds)

        if start_seconds < 0.0:
            raise NegativeStartTimeError(start_seconds, end_seconds, total_duration_seconds)
        if start_seconds >= end_seconds:
            raise EmptyTimeRangeError(start_seconds, end_seconds, total_duration_seconds)
        if end_seconds > total_duration_seconds:
            raise EndTimeExceedsDurationError(start_seconds, end_seconds, total_duration_seconds)

        return start_seconds, end_seconds


@dataclass(frozen=True)
class AnalysisWindow:
    start_seconds: float
    end_seconds: float
    # None when onset detection was not requested.
    onset_detected: Optional[bool] = None

    @property
    def duration_seconds(self) -> float:
        return self.end_seconds - self.start_seconds


# --------------------------------------------------------------------------------------
# Construction / resolution
# --------------------------------------------------------------------------------------


def create_time_range(
    start: Optional[TimeSpecification] = None,
    end: Optional[TimeSpecification] = None,
) -> Optional[TimeRange]:
    """
    Build a TimeRange when at least one endpoint was given.

    Missing start defaults to 0 s, missing end to 100 %.
    Returns None when neither was given.
    """
    if start is None and end is None:
        return None

    return TimeRange(
        start=start if start is not None else Seconds(0.0),
        end=end if end is not None else Percentage(1.0),
    )


def resolve_time_range(
    time_range: Optional[TimeRange],
    total_duration_seconds: float,
) -> Tuple[float, float]:
    """
    Resolve time_range, or the whole file when none was given. An empty file
    fails like any other empty range.
    """
    if time_range is None:
        time_range = TimeRange(start=Seconds(0.0), end=Percentage(1.0))
    return time_range.resolve(total_duration_seconds)


def select_analysis_window(
    samples: np.ndarray,
    sample_rate_hz: int,
    time_range: Optional[TimeRange] = None,
    onset_settings: Optional[OnsetDetectionSettings] = None,
) -> AnalysisWindow:
    """
    Decide which part of the buffer to analyse.

    With onset detection the detected time replaces the start and the
    range's end (default 100 %) is resolved against it. If no onset is
    found the explicit range (or the whole file) is used instead and
    onset_detected is False.
    """
    total_duration_seconds = float(samples.size) / float(sample_rate_hz)

    if onset_settings is None:
        start_seconds, end_seconds = resolve_time_range(time_range, total_duration_seconds)
        return AnalysisWindow(start_seconds=start_seconds, end_seconds=end_seconds)

    detected_start = detect_start_time(samples, sample_rate_hz, onset_settings)

    if detected_start is None:
        start_seconds, end_seconds = resolve_time_range(time_range, total_duration_seconds)
        return AnalysisWindow(start_seconds=start_seconds, end_seconds=end_seconds, onset_detected=False)

    end_specification = time_range.end if time_range is not None else Percentage(1.0)
    start_seconds, end_seconds = TimeRange(
        start=Seconds(detected_start),
        end=end_specification,
    ).resolve(total_duration_seconds)

    return AnalysisWindow(start_seconds=start_seconds, end_seconds=end_seconds, onset_detected=True)


# --------------------------------------------------------------------------------------
# Text parsing
# --------------------------------------------------------------------------------------


FLOAT_PATTERN = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
UNSIGNED_INT_PATTERN = re.compile(r"[0-9]+")


def _parse_float(text: str, message: str, original_text: str) -> float:
    # float() alone would also take "1_5" and surrounding whitespace.
    if FLOAT_PATTERN.fullmatch(text) is None:
        raise TimeParseError(message, original_text)
    try:
        value = float(text)
    except ValueError as parse_error:
        raise TimeParseError(message, original_text) from parse_error
    if not np.isfinite(value):
        raise TimeParseError(message, original_text)
    return value


def _parse_unsigned_int(text: str, message: str, original_text: str) -> int:
    if UNSIGNED_INT_PATTERN.fullmatch(text) is None:
        raise TimeParseError(message, original_text)
    return int(text)


def parse_time_specification(text: str) -> TimeSpecification:
    """
    Parse "<float>%", "<uint>:<uint>" or "<float>" (first matching form wins).
    """
    stripped = text.strip()

    if stripped.endswith("%"):
        percentage = _parse_float(stripped[:-1], "Invalid percentage format", text)
        if percentage < 0.0 or percentage > 100.0:
            raise TimeParseError("Percentage must be between 0 and 100", text)
        return Percentage(percentage / 100.0)

    if ":" in stripped:
        parts = stripped.split(":")
        if len(parts) != 2:
            raise TimeParseError("Invalid time format. Use MM:SS", text)
        minutes = _parse_unsigned_int(parts[0], "Invalid minutes", text)
        seconds = _parse_unsigned_int(parts[1], "Invalid seconds", text)
        if seconds >= 60:
            raise TimeParseError("Seconds must be less than 60", text)
        return MinutesSeconds(minutes, seconds)

    seconds_value = _parse_float(stripped, "Invalid seconds", text)
    if seconds_value < 0.0:
        raise TimeParseError("Seconds must not be negative", text)
    return Seconds(seconds_value)


def parse_time_annotation(text: str) -> Tuple[float, str]:
    """
    Parse "<float>:<label>" into (value, label). Splits on the first colon only.
    """
    parts = text.split(":", 1)
    if len(parts) != 2:
        raise TimeParseError("Annotation format should be 'value:label'", text)

    value = _parse_float(parts[0], "Invalid annotation value", text)
    return value, parts[1]
