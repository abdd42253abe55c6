import math
from typing import Optional, Tuple

import numpy as np

A4_MIDI = 69
NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")


def rms(frame: np.ndarray) -> float:
    if frame.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(frame.astype(np.float32) ** 2)))


def hz_to_midi(hz: float, reference_hz: float = 440.0) -> Optional[float]:
    if hz <= 0 or reference_hz <= 0:
        return None
    return A4_MIDI + 12.0 * math.log2(hz / reference_hz)


def midi_to_hz(midi: float, reference_hz: float = 440.0) -> float:
    return reference_hz * (2.0 ** ((midi - A4_MIDI) / 12.0))


def nearest_note(hz: float, reference_hz: float = 440.0) -> Tuple[int, float]:
    """Nearest tempered MIDI note and the signed cents offset from it.

    The note is rounded half-up, so the offset always lies in [-50, 50).
    """
    midi_float = hz_to_midi(hz, reference_hz)
    if midi_float is None:
        raise ValueError(f"cannot map {hz!r} Hz against reference {reference_hz!r} Hz")
    midi = int(math.floor(midi_float + 0.5))
    # round-off near a half step can land a hair outside the band
    cents = min(50.0, max(-50.0, 100.0 * (midi_float - midi)))
    return midi, cents


def note_name(midi: int) -> str:
    if not 0 <= midi <= 127:
        return ""
    octave = midi // 12 - 1
    return f"{NOTE_NAMES[midi % 12]}{octave}"
