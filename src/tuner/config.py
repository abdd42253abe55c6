import math
import numbers
from dataclasses import dataclass
from typing import Optional

DIFFERENCE_METHODS = ("fft", "direct")
MAX_FRAME_SIZE = 32768


@dataclass
class AudioConfig:
    sample_rate: int = 44100
    block_size: int = 1024
    channels: int = 1
    device: Optional[str] = None


@dataclass
class DetectorConfig:
    sample_rate: int = 44100
    frame_size: int = 2048
    threshold: float = 0.10
    reference_pitch_hz: float = 440.0
    min_frequency_hz: float = 20.0
    max_frequency_hz: float = 4200.0
    difference_method: str = "fft"

    def validate(self) -> None:
        if not _integer(self.sample_rate) or self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be a positive integer, got {self.sample_rate!r}")
        if not _integer(self.frame_size):
            raise ValueError(f"frame_size must be an integer, got {self.frame_size!r}")
        # numpy scalars from shapes or file headers become plain ints
        self.sample_rate = int(self.sample_rate)
        self.frame_size = int(self.frame_size)
        if not 1 < self.frame_size <= MAX_FRAME_SIZE:
            raise ValueError(f"frame_size must be in [2, {MAX_FRAME_SIZE}], got {self.frame_size}")
        if not _finite(self.threshold) or not 0.0 < self.threshold < 1.0:
            raise ValueError(f"threshold must be in (0, 1), got {self.threshold!r}")
        if not valid_reference_pitch(self.reference_pitch_hz):
            raise ValueError(f"reference_pitch_hz must be > 0, got {self.reference_pitch_hz!r}")
        if not _finite(self.min_frequency_hz) or not _finite(self.max_frequency_hz):
            raise ValueError("frequency range must be finite")
        if not 0.0 < self.min_frequency_hz < self.max_frequency_hz:
            raise ValueError(
                f"invalid frequency range [{self.min_frequency_hz}, {self.max_frequency_hz}]"
            )
        if self.difference_method not in DIFFERENCE_METHODS:
            raise ValueError(f"difference_method must be one of {DIFFERENCE_METHODS}")


def valid_reference_pitch(hz: float) -> bool:
    return _finite(hz) and hz > 0.0


def _integer(value: object) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _finite(value: float) -> bool:
    try:
        return math.isfinite(value)
    except TypeError:
        return False
