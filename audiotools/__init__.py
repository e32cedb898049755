# audiotools/__init__.py
"""
audiotools package

Self-contained analysis of WAV audio: spectrograms, waveforms and RMS
envelopes, onset detection, and time-window selection.

This package contains:
- WAV header reading and mono decoding (audiotools.io)
- time specifications and window resolution (audiotools.timerange)
- onset and peak-level detection (audiotools.detection)
- STFT spectrogram (audiotools.spectrogram)
- waveform / RMS envelope (audiotools.waveform)
- command line interface entrypoint (audiotools.cli)

Typical usage:
    from audiotools.io import load_wav_mono
"""

from .errors import (
    AudioToolsError,
    DecodeError,
    EmptyTimeRangeError,
    EndTimeExceedsDurationError,
    NegativeStartTimeError,
    RangeError,
    SettingsError,
    TimeParseError,
)
from .io import (
    LoadedAudio,
    MonoAudio,
    WavHeader,
    load_wav_file,
    load_wav_mono,
    read_wav_header,
    slice_time_window,
)
from .detection import OnsetDetectionSettings, detect_start_time
from .timerange import (
    MinutesSeconds,
    Percentage,
    Seconds,
    TimeRange,
    parse_time_specification,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AudioToolsError",
    "DecodeError",
    "EmptyTimeRangeError",
    "EndTimeExceedsDurationError",
    "NegativeStartTimeError",
    "RangeError",
    "SettingsError",
    "TimeParseError",
    "LoadedAudio",
    "MonoAudio",
    "WavHeader",
    "load_wav_file",
    "load_wav_mono",
    "read_wav_header",
    "slice_time_window",
    "OnsetDetectionSettings",
    "detect_start_time",
    "MinutesSeconds",
    "Percentage",
    "Seconds",
    "TimeRange",
    "parse_time_specification",
]
