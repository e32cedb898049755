# audiotools/io.py
"""
WAV I/O utilities for the analysis commands.

Design goals:
- the 36-byte RIFF/fmt header is read field by field, exactly as stored
- sample payload decoding is delegated to scipy's WAV reader
- consistent internal format: float32, integer PCM divided by 2^(bits-1)
- analysis always works on a channel-averaged mono buffer

The mono buffer is never modified after loading; the analysis window is
cut out with slice_time_window(), which returns a copy.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Literal

import numpy as np

try:
    from scipy.io import wavfile
except ImportError as import_error:  # pragma: no cover
    raise ImportError(
        "scipy is required for WAV reading. Install with: pip install scipy"
    ) from import_error

from audiotools.errors import DecodeError


SampleFormat = Literal["int", "float"]

# chunk id, chunk size, format, subchunk1 id, subchunk1 size,
# audio format, channels, sample rate, byte rate, block align, bits per sample
WAV_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH")
WAV_HEADER_SIZE_BYTES = WAV_HEADER_STRUCT.size  # 36

WAVE_FORMAT_PCM = 1
WAVE_FORMAT_IEEE_FLOAT = 3


@dataclass(frozen=True)
class WavHeader:
    """
    The fixed-layout RIFF header plus the first (fmt) subchunk.

    Chunk ids are kept as raw bytes; they are not checked against
    "RIFF" / "WAVE" / "fmt ".
    """
    chunk_id: bytes
    chunk_size: int
    format: bytes
    subchunk1_id: bytes
    subchunk1_size: int
    audio_format: int
    num_channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int

    @property
    def sample_format(self) -> SampleFormat:
        return "float" if self.audio_format == WAVE_FORMAT_IEEE_FLOAT else "int"

    def to_bytes(self) -> bytes:
        return WAV_HEADER_STRUCT.pack(
            self.chunk_id,
            self.chunk_size,
            self.format,
            self.subchunk1_id,
            self.subchunk1_size,
            self.audio_format,
            self.num_channels,
            self.sample_rate,
            self.byte_rate,
            self.block_align,
            self.bits_per_sample,
        )

    def format_info(self) -> str:
        def _text(raw: bytes) -> str:
            return raw.decode("utf-8", errors="replace")

        return (
            "WAV Header Information:\n"
            f"ChunkID: {_text(self.chunk_id)}\n"
            f"ChunkSize: {self.chunk_size} bytes\n"
            f"Format: {_text(self.format)}\n"
            f"Subchunk1ID: {_text(self.subchunk1_id)}\n"
            f"Subchunk1Size: {self.subchunk1_size} bytes\n"
            f"Audio Format: {self.audio_format} (1 = PCM)\n"
            f"Number of Channels: {self.num_channels}\n"
            f"Sample Rate: {self.sample_rate} Hz\n"
            f"Byte Rate: {self.byte_rate} bytes/sec\n"
            f"Block Align: {self.block_align} bytes\n"
            f"Bits per Sample: {self.bits_per_sample} bits\n"
        )


@dataclass(frozen=True)
class LoadedAudio:
    """
    Decoded audio, all channels kept.
    """
    channel_samples: np.ndarray  # shape (num_samples, num_channels), float32
    sample_rate_hz: int
    header: WavHeader
    file_path: Path

    @property
    def channel_count(self) -> int:
        return int(self.channel_samples.shape[1])


@dataclass(frozen=True)
class MonoAudio:
    """
    Channel-averaged mono buffer used by every analysis stage.
    """
    samples: np.ndarray          # shape (num_samples,), float32
    sample_rate_hz: int
    file_path: Path

    @property
    def duration_seconds(self) -> float:
        return float(self.samples.size) / float(self.sample_rate_hz)


def read_wav_header(file_handle: BinaryIO, file_path: str | Path | None = None) -> WavHeader:
    """
    Read the 36-byte header from a file handle positioned at the start of the file.
    """
    raw = file_handle.read(WAV_HEADER_SIZE_BYTES)
    if len(raw) < WAV_HEADER_SIZE_BYTES:
        raise DecodeError(
            f"WAV header truncated: expected {WAV_HEADER_SIZE_BYTES} bytes, got {len(raw)}",
            file_path,
        )

    return WavHeader(*WAV_HEADER_STRUCT.unpack(raw))


def read_wav_header_from_file(wav_file_path: str | Path) -> WavHeader:
    wav_file_path = Path(wav_file_path)
    with wav_file_path.open("rb") as file_handle:
        return read_wav_header(file_handle, wav_file_path)


def _convert_integer_pcm_to_float32(samples: np.ndarray) -> np.ndarray:
    """
    Convert integer PCM to float32 by dividing by 2^(bits-1).

    Supports:
    - uint8: offset binary, centred on 128
    - int16: scale by 32768
    - int32: scale by 2147483648

    Note:
    scipy returns 24-bit PCM left-justified in an int32 container,
    so scaling by 2^31 is the same as scaling the 24-bit value by 2^23.
    """
    if samples.dtype == np.uint8:
        return ((samples.astype(np.float32) - 128.0) / 128.0)

    if samples.dtype == np.int16:
        return (samples.astype(np.float32) / 32768.0)

    if samples.dtype == np.int32:
        return (samples.astype(np.float64) / 2147483648.0).astype(np.float32)

    raise DecodeError(f"Unsupported integer PCM dtype: {samples.dtype}")


def convert_wav_samples_to_float32(samples_from_wav: np.ndarray) -> np.ndarray:
    """
    Convert WAV samples to float32 regardless of source dtype.

    - float32/float64: passed through unchanged
    - uint8/int16/int32: scaled to full scale = 1.0
    """
    if np.issubdtype(samples_from_wav.dtype, np.floating):
        return samples_from_wav.astype(np.float32, copy=False)

    if np.issubdtype(samples_from_wav.dtype, np.integer):
        return _convert_integer_pcm_to_float32(samples_from_wav)

    raise DecodeError(f"Unsupported WAV dtype: {samples_from_wav.dtype}")


def ensure_2d_channel_array(float_samples: np.ndarray) -> np.ndarray:
    """
    Ensure samples are shaped (num_samples, num_channels).
    """
    if float_samples.ndim == 1:
        return float_samples.reshape((-1, 1))

    if float_samples.ndim == 2:
        return float_samples

    raise DecodeError(f"Expected 1D or 2D audio array, got shape {float_samples.shape}")


def downmix_to_mono(float_samples: np.ndarray) -> np.ndarray:
    """
    Average all channels of each frame. Returns shape (num_samples,).
    """
    float_samples = ensure_2d_channel_array(float_samples)

    if float_samples.shape[1] == 1:
        return float_samples[:, 0].astype(np.float32)

    return np.mean(float_samples, axis=1, dtype=np.float64).astype(np.float32)


def _check_header_layout(header: WavHeader, wav_file_path: Path) -> None:
    # Zero frame sizes cannot describe any sample data.
    for field_name in ("num_channels", "block_align", "bits_per_sample"):
        if getattr(header, field_name) == 0:
            raise DecodeError(f"Invalid WAV header: {field_name} is 0", wav_file_path)


def load_wav_file(wav_file_path: str | Path) -> LoadedAudio:
    """
    Load a WAV file: header fields plus all channels as float32 (N, C).
    """
    wav_file_path = Path(wav_file_path)

    header = read_wav_header_from_file(wav_file_path)
    _check_header_layout(header, wav_file_path)

    try:
        sample_rate_hz, samples_from_wav = wavfile.read(str(wav_file_path))
    except (ValueError, EOFError, ZeroDivisionError, struct.error) as read_error:
        raise DecodeError(f"Could not decode WAV sample data: {read_error}", wav_file_path) from read_error

    if int(sample_rate_hz) <= 0:
        raise DecodeError(f"Invalid sample rate {sample_rate_hz}", wav_file_path)

    float_samples = ensure_2d_channel_array(convert_wav_samples_to_float32(samples_from_wav))

    return LoadedAudio(
        channel_samples=float_samples,
        sample_rate_hz=int(sample_rate_hz),
        header=header,
        file_path=wav_file_path,
    )


def load_wav_mono(wav_file_path: str | Path) -> MonoAudio:
    """
    Load a WAV file and average its channels into one float32 stream.

    Typical usage:
        audio = load_wav_mono("take.wav")
        audio.samples, audio.sample_rate_hz
    """
    loaded_audio = load_wav_file(wav_file_path)
    return MonoAudio(
        samples=downmix_to_mono(loaded_audio.channel_samples),
        sample_rate_hz=loaded_audio.sample_rate_hz,
        file_path=loaded_audio.file_path,
    )


def slice_time_window(
    samples: np.ndarray,
    sample_rate_hz: int,
    start_seconds: float,
    end_seconds: float,
) -> np.ndarray:
    """
    Return a copy of samples[int(start*sr) : int(end*sr)].
    """
    start_sample = max(0, int(float(start_seconds) * float(sample_rate_hz)))
    end_sample = min(samples.size, int(float(end_seconds) * float(sample_rate_hz)))
    end_sample = max(start_sample, end_sample)
    return np.array(samples[start_sample:end_sample], dtype=np.float32, copy=True)
