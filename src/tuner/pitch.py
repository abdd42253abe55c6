from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Sequence, Union

import numpy as np

from .config import DetectorConfig, valid_reference_pitch
from .dsp import nearest_note
from .dsp import note_name as midi_note_name
from .yin import (
    cumulative_mean_normalize,
    difference_function,
    find_valley,
    minimum_lag,
    parabolic_interpolation,
)

logger = logging.getLogger(__name__)

Samples = Union[np.ndarray, Sequence[float]]


@dataclass(frozen=True)
class DetectionResult:
    pitched: bool
    frequency_hz: float
    probability: float
    midi_note: int
    cents_offset: float

    @property
    def note_name(self) -> str:
        return midi_note_name(self.midi_note) if self.pitched else ""


UNPITCHED = DetectionResult(False, 0.0, 0.0, 0, 0.0)


class DetectorClosedError(RuntimeError):
    pass


def classify_voicing(
    sample_rate: int,
    refined_tau: float,
    normalized_value: float,
    config: DetectorConfig,
) -> DetectionResult:
    if refined_tau <= 0:
        return UNPITCHED
    frequency = sample_rate / refined_tau
    probability = min(1.0, max(0.0, 1.0 - normalized_value))
    voiced = normalized_value < config.threshold
    in_range = config.min_frequency_hz <= frequency <= config.max_frequency_hz
    if not (voiced and in_range):
        return UNPITCHED

    midi, cents = nearest_note(frequency, config.reference_pitch_hz)
    return DetectionResult(
        pitched=True,
        frequency_hz=frequency,
        probability=probability,
        midi_note=midi,
        cents_offset=cents,
    )


class PitchDetector:
    """Single-voice YIN detector with scratch buffers sized once per instance.

    Not thread-safe: ``process``, ``reset`` and ``set_reference_pitch`` must
    be called from one thread at a time. Any call after ``close`` raises
    :class:`DetectorClosedError`; ``close`` itself may be repeated.
    """

    def __init__(self, config: DetectorConfig):
        self.config = replace(config)
        self.config.validate()
        config = self.config
        self.tau_min = minimum_lag(config.sample_rate)

        half = config.frame_size // 2
        self._frame = np.zeros(config.frame_size, dtype=np.float64)
        self._energy_prefix = np.zeros(config.frame_size + 1, dtype=np.float64)
        self._difference = np.zeros(half, dtype=np.float64)
        self._normalized = np.zeros(half, dtype=np.float64)
        self._lags = np.arange(1, max(half, 1), dtype=np.float64)
        self._mask = np.zeros(config.frame_size, dtype=bool)
        self._closed = False
        logger.debug(
            "detector ready: sample_rate=%d frame_size=%d tau_min=%d method=%s",
            config.sample_rate,
            config.frame_size,
            self.tau_min,
            config.difference_method,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def reference_pitch_hz(self) -> float:
        return self.config.reference_pitch_hz

    def process(self, samples: Samples) -> DetectionResult:
        self._ensure_open("process")
        x = np.asarray(samples)
        if x.ndim != 1:
            raise ValueError(f"expected a 1-D block of mono samples, got shape {x.shape}")

        n = min(x.shape[0], self.config.frame_size)
        if n < 2:
            return UNPITCHED

        # longer blocks: only the most recent frame_size samples count
        frame = self._frame[:n]
        frame[:] = x[x.shape[0] - n :]
        finite = np.isfinite(frame, out=self._mask[:n])
        if not finite.all():
            return UNPITCHED

        half = n // 2
        difference = self._difference[:half]
        normalized = self._normalized[:half]
        difference_function(frame, difference, self.config.difference_method, self._energy_prefix, self._mask)
        cumulative_mean_normalize(difference, normalized, self._lags, self._mask)

        valley = find_valley(normalized, self.config.threshold, self.tau_min)
        if valley is None or not valley.below_threshold:
            return UNPITCHED

        refined_tau = parabolic_interpolation(normalized, valley.tau)
        return classify_voicing(
            self.config.sample_rate,
            refined_tau,
            float(normalized[valley.tau]),
            self.config,
        )

    def reset(self) -> None:
        self._ensure_open("reset")
        self._frame.fill(0.0)
        self._energy_prefix.fill(0.0)
        self._difference.fill(0.0)
        self._normalized.fill(0.0)
        logger.debug("detector reset")

    def set_reference_pitch(self, hz: float) -> bool:
        self._ensure_open("set_reference_pitch")
        if not valid_reference_pitch(hz):
            logger.error("rejected reference pitch %r", hz)
            return False
        self.config.reference_pitch_hz = float(hz)
        logger.info("reference pitch set to %.2f Hz", hz)
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        empty = np.zeros(0, dtype=np.float64)
        self._frame = self._energy_prefix = self._difference = self._normalized = empty
        self._mask = np.zeros(0, dtype=bool)
        logger.debug("detector closed")

    def __enter__(self) -> "PitchDetector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ensure_open(self, operation: str) -> None:
        if self._closed:
            raise DetectorClosedError(f"{operation}() called on a closed detector")
