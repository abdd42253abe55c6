"""Flat handle-based contract around :class:`~tuner.pitch.PitchDetector`.

Nothing here raises: invalid construction yields ``None``, calls on unknown
or destroyed handles log an error and return the ``UNPITCHED`` sentinel or
``False``. Handles index a module-level arena, so ``destroy`` is safe to
repeat.
"""
from __future__ import annotations

import itertools
import logging
import os
from typing import Callable, Dict, Optional

from .config import DIFFERENCE_METHODS, DetectorConfig
from .pitch import UNPITCHED, DetectionResult, PitchDetector, Samples

logger = logging.getLogger(__name__)

LogCallback = Callable[[int, str], None]

METHOD_ENV_VAR = "TUNER_DIFFERENCE_METHOD"
PACKAGE_LOGGER = "tuner"

_detectors: Dict[int, PitchDetector] = {}
_handles = itertools.count(1)
_method: Optional[str] = None
_callback_handler: Optional[logging.Handler] = None
_replaced_level: Optional[int] = None


def initialize() -> str:
    global _method
    if _method is None:
        requested = os.environ.get(METHOD_ENV_VAR, "").strip().lower()
        _method = requested if requested in DIFFERENCE_METHODS else "fft"
        logger.debug("difference method resolved to %s", _method)
    return _method


def create(
    sample_rate: int,
    frame_size: int,
    threshold: float = 0.10,
    reference_pitch_hz: float = 440.0,
) -> Optional[int]:
    config = DetectorConfig(
        sample_rate=sample_rate,
        frame_size=frame_size,
        threshold=threshold,
        reference_pitch_hz=reference_pitch_hz,
        difference_method=initialize(),
    )
    try:
        detector = PitchDetector(config)
    except ValueError as exc:
        logger.error("create: invalid arguments: %s", exc)
        return None

    handle = next(_handles)
    _detectors[handle] = detector
    logger.info(
        "create: handle=%d sample_rate=%d frame_size=%d threshold=%.3f reference_pitch_hz=%.2f",
        handle,
        sample_rate,
        frame_size,
        threshold,
        reference_pitch_hz,
    )
    return handle


def process(handle: Optional[int], samples: Optional[Samples]) -> DetectionResult:
    detector = _lookup(handle, "process")
    if detector is None or samples is None:
        return UNPITCHED
    try:
        return detector.process(samples)
    except (ValueError, TypeError) as exc:
        logger.error("process: rejected samples: %s", exc)
        return UNPITCHED


def reset(handle: Optional[int]) -> None:
    detector = _lookup(handle, "reset")
    if detector is not None:
        detector.reset()


def set_reference_pitch(handle: Optional[int], hz: float) -> bool:
    detector = _lookup(handle, "set_reference_pitch")
    if detector is None:
        return False
    return detector.set_reference_pitch(hz)


def destroy(handle: Optional[int]) -> None:
    if not _is_handle(handle):
        return
    detector = _detectors.pop(handle, None)
    if detector is None:
        return
    detector.close()
    logger.debug("destroy: handle=%d", handle)


def set_log_callback(callback: Optional[LogCallback], level: int = logging.INFO) -> None:
    """Forward ``tuner.*`` log records to ``callback(levelno, message)``.

    Lowers the package logger to ``level`` when it is quieter than that.
    Passing ``None`` detaches the current callback and puts back the level
    it replaced.
    """
    global _callback_handler, _replaced_level
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _callback_handler is not None:
        package_logger.removeHandler(_callback_handler)
        _callback_handler = None
    if _replaced_level is not None:
        package_logger.setLevel(_replaced_level)
        _replaced_level = None
    if callback is None:
        return

    _callback_handler = _CallbackHandler(callback)
    _callback_handler.setLevel(level)
    package_logger.addHandler(_callback_handler)
    if package_logger.getEffectiveLevel() > level:
        _replaced_level = package_logger.level
        package_logger.setLevel(level)


class _CallbackHandler(logging.Handler):
    def __init__(self, callback: LogCallback):
        super().__init__()
        self.callback = callback

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.callback(record.levelno, self.format(record))
        except Exception:
            self.handleError(record)


def _lookup(handle: Optional[int], operation: str) -> Optional[PitchDetector]:
    detector = _detectors.get(handle) if _is_handle(handle) else None
    if detector is None or detector.closed:
        logger.error("%s: invalid or destroyed handle %r", operation, handle)
        return None
    return detector


def _is_handle(handle: object) -> bool:
    return isinstance(handle, int) and not isinstance(handle, bool)
