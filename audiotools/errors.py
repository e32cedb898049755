# audiotools/errors.py
"""
Exception types raised by the analysis core.

All of them derive from ValueError so callers that only care about
"bad input" can keep catching ValueError.

- DecodeError:     a WAV file could not be read (truncated header, bad payload)
- RangeError:      a resolved time window is invalid for the file's duration
- TimeParseError:  a time / annotation string from the command line is malformed
- SettingsError:   analysis parameters that cannot produce a result
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class AudioToolsError(ValueError):
    """Base class for all audiotools errors."""


class DecodeError(AudioToolsError):
    def __init__(self, message: str, file_path: Optional[str | Path] = None):
        self.file_path = None if file_path is None else Path(file_path)
        if self.file_path is not None:
            message = f"{message} ({self.file_path})"
        super().__init__(message)


class TimeParseError(AudioToolsError):
    def __init__(self, message: str, text: str):
        self.text = text
        super().__init__(f"{message}: {text!r}")


class SettingsError(AudioToolsError):
    pass


class RangeError(AudioToolsError):
    """
    A time window that does not satisfy 0 <= start < end <= total duration.

    Subclasses identify which of the three checks failed.
    """

    reason = "Invalid time range"

    def __init__(self, start_seconds: float, end_seconds: float, total_duration_seconds: float):
        self.start_seconds = float(start_seconds)
        self.end_seconds = float(end_seconds)
        self.total_duration_seconds = float(total_duration_seconds)
        super().__init__(
            f"{self.reason} (start={self.start_seconds:.6g}s, end={self.end_seconds:.6g}s, "
            f"duration={self.total_duration_seconds:.6g}s)"
        )


class NegativeStartTimeError(RangeError):
    reason = "Start time must not be negative"


class EmptyTimeRangeError(RangeError):
    reason = "Start time must be less than end time"


class EndTimeExceedsDurationError(RangeError):
    reason = "End time exceeds audio duration"
