from __future__ import annotations

import numpy as np

from .pitch import UNPITCHED, DetectionResult, PitchDetector, Samples


class StreamingPitchDetector:
    """Feeds arbitrary callback blocks to a :class:`PitchDetector`.

    Samples go into a ring of two frames. Once a full frame is buffered the
    detector runs every ``frame_size // 2`` new samples (50% overlap) and
    the previous result is repeated in between.
    """

    def __init__(self, detector: PitchDetector):
        self.detector = detector
        self.frame_size = detector.config.frame_size
        self.hop_size = max(1, self.frame_size // 2)
        self._capacity = 2 * self.frame_size
        self._ring = np.zeros(self._capacity, dtype=np.float64)
        self._window = np.zeros(self.frame_size, dtype=np.float64)
        self._write_pos = 0
        self._samples_ready = 0
        self._since_last = 0
        self.detections = 0
        self.last_result = UNPITCHED

    def process(self, block: Samples) -> DetectionResult:
        x = np.asarray(block)
        if x.ndim != 1:
            raise ValueError(f"expected a 1-D block of mono samples, got shape {x.shape}")
        count = x.shape[0]
        if count > self._capacity:
            raise ValueError(f"block of {count} samples exceeds the {self._capacity} sample ring")
        if count == 0:
            return self.last_result

        self._write(x)
        self._samples_ready = min(self.frame_size, self._samples_ready + count)
        self._since_last += count
        if self._samples_ready < self.frame_size or self._since_last < self.hop_size:
            return self.last_result

        self._since_last = 0
        self._assemble_window()
        self.detections += 1
        self.last_result = self.detector.process(self._window)
        return self.last_result

    def reset(self) -> None:
        self.detector.reset()
        self._ring.fill(0.0)
        self._window.fill(0.0)
        self._write_pos = 0
        self._samples_ready = 0
        self._since_last = 0
        self.detections = 0
        self.last_result = UNPITCHED

    def _write(self, x: np.ndarray) -> None:
        count = x.shape[0]
        first = min(count, self._capacity - self._write_pos)
        self._ring[self._write_pos : self._write_pos + first] = x[:first]
        if count > first:
            self._ring[: count - first] = x[first:]
        self._write_pos = (self._write_pos + count) % self._capacity

    def _assemble_window(self) -> None:
        start = (self._write_pos - self.frame_size) % self._capacity
        head = min(self.frame_size, self._capacity - start)
        self._window[:head] = self._ring[start : start + head]
        if head < self.frame_size:
            self._window[head:] = self._ring[: self.frame_size - head]
