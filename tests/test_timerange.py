from __future__ import annotations

import numpy as np
import pytest

from audiotools.detection import OnsetDetectionSettings
from audiotools.errors import (
    EmptyTimeRangeError,
    EndTimeExceedsDurationError,
    NegativeStartTimeError,
    RangeError,
    TimeParseError,
)
from audiotools.timerange import (
    MinutesSeconds,
    Percentage,
    Seconds,
    TimeRange,
    create_time_range,
    parse_time_annotation,
    parse_time_specification,
    resolve_time_range,
    select_analysis_window,
)


def test_parse_time_specification_forms():
    assert parse_time_specification("50%") == Percentage(0.5)
    assert parse_time_specification("1:30") == MinutesSeconds(1, 30)
    assert parse_time_specification("2.5") == Seconds(2.5)
    assert parse_time_specification("0") == Seconds(0.0)
    assert parse_time_specification("100%") == Percentage(1.0)


def test_parsed_specifications_resolve_to_seconds():
    assert parse_time_specification("50%").to_seconds(10.0) == pytest.approx(5.0)
    assert parse_time_specification("1:30").to_seconds(10.0) == pytest.approx(90.0)
    assert parse_time_specification("2.5").to_seconds(10.0) == pytest.approx(2.5)


@pytest.mark.parametrize(
    "text",
    ["abc", "-1", "150%", "-5%", "x%", "1:60", "1:2:3", "a:10", "1:-5", "1.5:10", "", "nan"],
)
def test_parse_time_specification_rejects_malformed_text(text):
    with pytest.raises(TimeParseError):
        parse_time_specification(text)


def test_resolve_valid_range():
    time_range = TimeRange(start=Seconds(1.0), end=Percentage(0.5))
    assert time_range.resolve(10.0) == pytest.approx((1.0, 5.0))


def test_resolve_reports_each_failure_separately():
    with pytest.raises(NegativeStartTimeError):
        TimeRange(start=Seconds(-1.0), end=Seconds(2.0)).resolve(10.0)

    with pytest.raises(EmptyTimeRangeError):
        TimeRange(start=Seconds(3.0), end=Seconds(3.0)).resolve(10.0)

    with pytest.raises(EndTimeExceedsDurationError) as excinfo:
        TimeRange(start=Seconds(0.0), end=MinutesSeconds(0, 12)).resolve(10.0)

    error = excinfo.value
    assert isinstance(error, RangeError)
    assert error.end_seconds == 12.0
    assert error.total_duration_seconds == 10.0
    assert "12" in str(error)


def test_resolve_checks_negative_start_first():
    with pytest.raises(NegativeStartTimeError):
        TimeRange(start=Seconds(-5.0), end=Seconds(-6.0)).resolve(10.0)


def test_resolve_does_not_clamp_end():
    with pytest.raises(EndTimeExceedsDurationError):
        TimeRange(start=Seconds(0.0), end=Seconds(10.001)).resolve(10.0)


def test_create_time_range_defaults():
    assert create_time_range(None, None) is None

    only_start = create_time_range(Seconds(2.0), None)
    assert only_start == TimeRange(start=Seconds(2.0), end=Percentage(1.0))
    assert only_start.resolve(8.0) == pytest.approx((2.0, 8.0))

    only_end = create_time_range(None, Seconds(3.0))
    assert only_end.resolve(8.0) == pytest.approx((0.0, 3.0))


def test_resolve_time_range_without_range_is_full_duration():
    assert resolve_time_range(None, 4.5) == (0.0, 4.5)


def test_parse_time_annotation():
    assert parse_time_annotation("1.5:kick") == (1.5, "kick")
    assert parse_time_annotation("800:800 Hz") == (800.0, "800 Hz")
    assert parse_time_annotation("2:verse: take 2") == (2.0, "verse: take 2")

    with pytest.raises(TimeParseError):
        parse_time_annotation("kick")
    with pytest.raises(TimeParseError):
        parse_time_annotation("x:kick")


def _silence_then_tone() -> np.ndarray:
    return np.concatenate([np.zeros(1000), np.full(1000, 0.5)]).astype(np.float32)


def test_select_analysis_window_without_onset_detection():
    samples = _silence_then_tone()
    window = select_analysis_window(samples, 44100, create_time_range(Percentage(0.5), None))
    assert window.start_seconds == pytest.approx(1000 / 44100)
    assert window.end_seconds == pytest.approx(2000 / 44100)
    assert window.onset_detected is None


def test_select_analysis_window_with_detected_onset():
    samples = _silence_then_tone()
    window = select_analysis_window(samples, 44100, None, OnsetDetectionSettings())
    assert window.onset_detected is True
    assert window.start_seconds >= 1000 / 44100 - 1e-9
    assert window.end_seconds == pytest.approx(2000 / 44100)


def test_select_analysis_window_falls_back_when_no_onset():
    samples = np.zeros(4410, dtype=np.float32)
    time_range = create_time_range(None, Percentage(0.5))
    window = select_analysis_window(samples, 44100, time_range, OnsetDetectionSettings())
    assert window.onset_detected is False
    assert (window.start_seconds, window.end_seconds) == pytest.approx((0.0, 0.05))


def test_select_analysis_window_end_before_onset_is_an_error():
    samples = _silence_then_tone()
    time_range = create_time_range(None, Seconds(0.001))
    with pytest.raises(EmptyTimeRangeError):
        select_analysis_window(samples, 44100, time_range, OnsetDetectionSettings())


@pytest.mark.parametrize("text", ["1_5", "1_000%", "1: 30", "1 :30", "0x10", "1e"])
def test_parse_time_specification_rejects_text_outside_the_grammar(text):
    with pytest.raises(TimeParseError):
        parse_time_specification(text)


def test_parse_time_specification_accepts_float_forms():
    assert parse_time_specification(".5") == Seconds(0.5)
    assert parse_time_specification("1e1") == Seconds(10.0)
    assert parse_time_specification(" 1:30 ") == MinutesSeconds(1, 30)


def test_parse_time_annotation_rejects_loose_numbers():
    with pytest.raises(TimeParseError):
        parse_time_annotation("1_5:kick")
    with pytest.raises(TimeParseError):
        parse_time_annotation(" 1.5:kick")


def test_default_range_of_empty_buffer_is_an_error():
    with pytest.raises(EmptyTimeRangeError):
        resolve_time_range(None, 0.0)
    with pytest.raises(EmptyTimeRangeError):
        select_analysis_window(np.zeros(0, dtype=np.float32), 8000)
