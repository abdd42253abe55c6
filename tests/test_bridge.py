import logging

import numpy as np
import pytest

from audio_utils import generate_sine_wave
from tuner import bridge
from tuner.pitch import UNPITCHED

SR = 44100
FRAME = 2048


@pytest.fixture
def handle():
    h = bridge.create(SR, FRAME)
    assert h is not None
    yield h
    bridge.destroy(h)


@pytest.fixture
def package_logger():
    logger = logging.getLogger(bridge.PACKAGE_LOGGER)
    level = logger.level
    yield logger
    bridge.set_log_callback(None)
    logger.setLevel(level)


def test_create_and_process(handle):
    result = bridge.process(handle, generate_sine_wave(440.0, FRAME, SR))
    assert result.pitched
    assert result.midi_note == 69
    assert abs(result.cents_offset) < 5.0


def test_create_accepts_numpy_integers():
    h = bridge.create(np.int64(SR), np.int32(FRAME))
    assert h is not None
    try:
        config = bridge._detectors[h].config
        assert type(config.sample_rate) is int
        assert type(config.frame_size) is int
        assert bridge.process(h, generate_sine_wave(440.0, FRAME, SR)).midi_note == 69
    finally:
        bridge.destroy(h)


def test_handles_are_distinct():
    first = bridge.create(SR, FRAME)
    second = bridge.create(SR, FRAME)
    try:
        assert first != second
    finally:
        bridge.destroy(first)
        bridge.destroy(second)


@pytest.mark.parametrize(
    "args",
    [(0, FRAME), (SR, 0), (SR, 1), (SR, FRAME, 0.0), (SR, FRAME, 1.5), (SR, FRAME, 0.1, -440.0)],
)
def test_invalid_create_returns_none(args):
    assert bridge.create(*args) is None


@pytest.mark.parametrize("bad_handle", [None, 0, 987654321, "1", True])
def test_unknown_handle(bad_handle):
    assert bridge.process(bad_handle, generate_sine_wave(440.0, FRAME, SR)) == UNPITCHED
    assert bridge.set_reference_pitch(bad_handle, 432.0) is False
    bridge.reset(bad_handle)
    bridge.destroy(bad_handle)


@pytest.mark.parametrize(
    "samples",
    [None, [], np.array([], dtype=np.float32), np.zeros((FRAME, 2)), ["a", "b", "c"]],
    ids=["none", "empty-list", "empty-array", "stereo", "strings"],
)
def test_bad_samples_are_unpitched(handle, samples):
    assert bridge.process(handle, samples) == UNPITCHED


def test_destroy_is_idempotent():
    h = bridge.create(SR, FRAME)
    bridge.destroy(h)
    bridge.destroy(h)
    assert bridge.process(h, generate_sine_wave(440.0, FRAME, SR)) == UNPITCHED
    assert bridge.set_reference_pitch(h, 432.0) is False
    bridge.reset(h)


def test_reference_pitch_round_trip(handle):
    frame = generate_sine_wave(440.0, FRAME, SR)
    baseline = bridge.process(handle, frame)
    assert bridge.set_reference_pitch(handle, -1.0) is False
    assert bridge.process(handle, frame) == baseline
    assert bridge.set_reference_pitch(handle, 432.0) is True
    shifted = bridge.process(handle, frame)
    assert shifted.midi_note == 69
    assert shifted.cents_offset > baseline.cents_offset + 25.0


def test_reset_matches_fresh_handle(handle):
    frame = generate_sine_wave(440.0, FRAME, SR)
    bridge.process(handle, generate_sine_wave(150.0, FRAME, SR))
    bridge.reset(handle)
    fresh = bridge.create(SR, FRAME)
    try:
        assert bridge.process(handle, frame) == bridge.process(fresh, frame)
    finally:
        bridge.destroy(fresh)


class TestInitialize:
    def test_defaults_to_fft(self, monkeypatch):
        monkeypatch.setattr(bridge, "_method", None)
        monkeypatch.delenv(bridge.METHOD_ENV_VAR, raising=False)
        assert bridge.initialize() == "fft"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setattr(bridge, "_method", None)
        monkeypatch.setenv(bridge.METHOD_ENV_VAR, " Direct ")
        assert bridge.initialize() == "direct"

    def test_unknown_method_falls_back(self, monkeypatch):
        monkeypatch.setattr(bridge, "_method", None)
        monkeypatch.setenv(bridge.METHOD_ENV_VAR, "wavelet")
        assert bridge.initialize() == "fft"

    def test_resolved_once(self, monkeypatch):
        monkeypatch.setattr(bridge, "_method", None)
        monkeypatch.setenv(bridge.METHOD_ENV_VAR, "direct")
        assert bridge.initialize() == "direct"
        monkeypatch.setenv(bridge.METHOD_ENV_VAR, "fft")
        assert bridge.initialize() == "direct"

    def test_create_uses_resolved_method(self, monkeypatch):
        monkeypatch.setattr(bridge, "_method", "direct")
        h = bridge.create(8000, 256)
        try:
            assert bridge._detectors[h].config.difference_method == "direct"
        finally:
            bridge.destroy(h)


class TestLogCallback:
    def test_receives_records(self, package_logger):
        records = []
        bridge.set_log_callback(lambda level, message: records.append((level, message)))
        h = bridge.create(SR, FRAME)
        bridge.destroy(h)
        bridge.process(h, [0.0] * 16)
        assert any(level == logging.INFO and "create" in message for level, message in records)
        assert any(level == logging.ERROR and "process" in message for level, message in records)

    def test_respects_level(self, package_logger):
        records = []
        bridge.set_log_callback(lambda level, message: records.append(level), level=logging.ERROR)
        assert bridge.create(0, FRAME) is None
        h = bridge.create(SR, FRAME)
        bridge.destroy(h)
        assert records == [logging.ERROR]

    def test_detach(self, package_logger):
        records = []
        bridge.set_log_callback(lambda level, message: records.append(level))
        bridge.set_log_callback(None)
        bridge.create(0, FRAME)
        assert records == []

    def test_replacing_callback_keeps_one_handler(self, package_logger):
        first, second = [], []
        bridge.set_log_callback(lambda level, message: first.append(level))
        bridge.set_log_callback(lambda level, message: second.append(level))
        bridge.create(0, FRAME)
        assert first == []
        assert second == [logging.ERROR]

    def test_detach_restores_logger_level(self, package_logger):
        package_logger.setLevel(logging.NOTSET)
        bridge.set_log_callback(lambda level, message: None, level=logging.DEBUG)
        assert package_logger.level == logging.DEBUG
        bridge.set_log_callback(None)
        assert package_logger.level == logging.NOTSET

    def test_replacing_callback_restores_original_level(self, package_logger):
        package_logger.setLevel(logging.WARNING)
        bridge.set_log_callback(lambda level, message: None, level=logging.DEBUG)
        bridge.set_log_callback(lambda level, message: None, level=logging.INFO)
        assert package_logger.level == logging.INFO
        bridge.set_log_callback(None)
        assert package_logger.level == logging.WARNING

    def test_level_left_alone_when_already_verbose(self, package_logger):
        package_logger.setLevel(logging.DEBUG)
        bridge.set_log_callback(lambda level, message: None, level=logging.ERROR)
        bridge.set_log_callback(None)
        assert package_logger.level == logging.DEBUG
