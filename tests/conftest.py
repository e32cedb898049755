from __future__ import annotations

import struct
import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest
from scipy.io import wavfile

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def sine(frequency_hz: float, sample_rate_hz: int, num_samples: int, amplitude: float = 1.0) -> np.ndarray:
    t = np.arange(num_samples, dtype=np.float64) / float(sample_rate_hz)
    return amplitude * np.sin(2.0 * np.pi * frequency_hz * t)


def write_pcm16(path: Path, samples: np.ndarray, sample_rate_hz: int) -> Path:
    int16_samples = (np.clip(samples, -1.0, 1.0) * 32767.0).astype(np.int16)
    wavfile.write(str(path), sample_rate_hz, int16_samples)
    return path


@pytest.fixture
def tone_wav(tmp_path) -> Path:
    """One second of silence-then-tone, 16-bit mono at 8 kHz."""
    sample_rate_hz = 8000
    samples = np.concatenate([
        np.zeros(2000),
        sine(440.0, sample_rate_hz, 6000, amplitude=0.5),
    ])
    return write_pcm16(tmp_path / "tone.wav", samples, sample_rate_hz)


@pytest.fixture
def truncated_wav(tmp_path) -> Path:
    path = tmp_path / "broken.wav"
    path.write_bytes(b"RIFF\x24\x00\x00\x00WAVEfmt ")
    return path


@pytest.fixture
def zero_channel_wav(tmp_path) -> Path:
    """PCM header declaring 0 channels (and so a block align of 0), followed by a data chunk."""
    path = tmp_path / "no_channels.wav"
    payload = bytes(8)
    header = struct.pack(
        "<4sI4s4sIHHIIHH",
        b"RIFF", 36 + 8 + len(payload), b"WAVE",
        b"fmt ", 16, 1, 0, 8000, 0, 0, 16,
    )
    path.write_bytes(header + b"data" + struct.pack("<I", len(payload)) + payload)
    return path
