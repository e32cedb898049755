from __future__ import annotations

import io
from dataclasses import replace

import numpy as np
import pytest
from scipy.io import wavfile

from audiotools.errors import DecodeError
from audiotools.io import (
    WAV_HEADER_SIZE_BYTES,
    WavHeader,
    downmix_to_mono,
    load_wav_file,
    load_wav_mono,
    read_wav_header,
    read_wav_header_from_file,
    slice_time_window,
)


def _cd_quality_header() -> WavHeader:
    return WavHeader(
        chunk_id=b"RIFF",
        chunk_size=36 + 4000,
        format=b"WAVE",
        subchunk1_id=b"fmt ",
        subchunk1_size=16,
        audio_format=1,
        num_channels=2,
        sample_rate=44100,
        byte_rate=44100 * 2 * 2,
        block_align=4,
        bits_per_sample=16,
    )


def test_header_round_trip():
    header = _cd_quality_header()
    raw = header.to_bytes()
    assert len(raw) == WAV_HEADER_SIZE_BYTES == 36

    decoded = read_wav_header(io.BytesIO(raw))
    assert decoded == header
    assert decoded.sample_rate == 44100
    assert decoded.num_channels == 2
    assert decoded.bits_per_sample == 16
    assert decoded.sample_format == "int"


def test_header_chunk_ids_are_not_validated():
    raw = _cd_quality_header().to_bytes()
    decoded = read_wav_header(io.BytesIO(b"XXXX" + raw[4:]))
    assert decoded.chunk_id == b"XXXX"


def test_truncated_header_raises_decode_error():
    raw = _cd_quality_header().to_bytes()[:30]
    with pytest.raises(DecodeError, match="truncated"):
        read_wav_header(io.BytesIO(raw))


def test_truncated_file_raises_decode_error(truncated_wav):
    with pytest.raises(DecodeError) as excinfo:
        load_wav_mono(truncated_wav)
    assert excinfo.value.file_path == truncated_wav
    assert str(truncated_wav) in str(excinfo.value)


def test_unreadable_payload_raises_decode_error(tmp_path):
    path = tmp_path / "junk.wav"
    path.write_bytes(b"XXXX" + bytes(60))
    with pytest.raises(DecodeError):
        load_wav_mono(path)


def test_format_info_lists_fields():
    text = _cd_quality_header().format_info()
    assert "ChunkID: RIFF" in text
    assert "Sample Rate: 44100 Hz" in text
    assert "Number of Channels: 2" in text
    assert "Bits per Sample: 16 bits" in text


def test_header_read_from_written_file(tmp_path):
    path = tmp_path / "stereo.wav"
    wavfile.write(str(path), 44100, np.zeros((100, 2), dtype=np.int16))

    header = read_wav_header_from_file(path)
    assert header.chunk_id == b"RIFF"
    assert header.format == b"WAVE"
    assert header.audio_format == 1
    assert header.num_channels == 2
    assert header.sample_rate == 44100
    assert header.bits_per_sample == 16
    assert header.block_align == 4
    assert header.byte_rate == 44100 * 4


def test_int16_stereo_is_normalised_and_averaged(tmp_path):
    path = tmp_path / "stereo.wav"
    frames = np.array([[16384, -16384], [16384, 16384], [-32768, -32768]], dtype=np.int16)
    wavfile.write(str(path), 8000, frames)

    audio = load_wav_mono(path)
    assert audio.sample_rate_hz == 8000
    assert audio.samples.dtype == np.float32
    assert np.allclose(audio.samples, [0.0, 0.5, -1.0])
    assert audio.duration_seconds == pytest.approx(3 / 8000)


def test_int32_and_uint8_scaling(tmp_path):
    int32_path = tmp_path / "int32.wav"
    wavfile.write(str(int32_path), 8000, np.array([1 << 30, -(1 << 31)], dtype=np.int32))
    assert np.allclose(load_wav_mono(int32_path).samples, [0.5, -1.0])

    uint8_path = tmp_path / "uint8.wav"
    wavfile.write(str(uint8_path), 8000, np.array([128, 192, 0], dtype=np.uint8))
    assert np.allclose(load_wav_mono(uint8_path).samples, [0.0, 0.5, -1.0])


def test_float_samples_pass_through(tmp_path):
    path = tmp_path / "float.wav"
    samples = np.array([0.25, -0.75, 1.5], dtype=np.float32)
    wavfile.write(str(path), 16000, samples)

    loaded = load_wav_file(path)
    assert loaded.channel_count == 1
    assert loaded.header.sample_format == "float"
    assert np.allclose(loaded.channel_samples[:, 0], samples)


def test_downmix_to_mono_averages_channels():
    frames = np.array([[1.0, 0.0, -1.0], [0.3, 0.3, 0.3]], dtype=np.float32)
    assert np.allclose(downmix_to_mono(frames), [0.0, 0.3])


def test_slice_time_window_returns_copy():
    samples = np.arange(100, dtype=np.float32)
    window = slice_time_window(samples, 10, 2.0, 5.5)
    assert np.array_equal(window, np.arange(20, 55, dtype=np.float32))

    window[:] = -1.0
    assert samples[20] == 20.0


def test_zero_channel_header_raises_decode_error(zero_channel_wav):
    with pytest.raises(DecodeError, match="num_channels is 0") as excinfo:
        load_wav_mono(zero_channel_wav)
    assert excinfo.value.file_path == zero_channel_wav


@pytest.mark.parametrize("field_name", ["block_align", "bits_per_sample"])
def test_zero_frame_size_fields_raise_decode_error(tmp_path, field_name):
    header = replace(_cd_quality_header(), **{field_name: 0})
    path = tmp_path / "bad_fmt.wav"
    path.write_bytes(header.to_bytes() + b"data" + (4).to_bytes(4, "little") + bytes(4))

    with pytest.raises(DecodeError, match=f"{field_name} is 0"):
        load_wav_file(path)
