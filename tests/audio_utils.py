import numpy as np


def generate_sine_wave(freq_hz: float, num_samples: int, sr: int = 44100, amplitude: float = 1.0) -> np.ndarray:
    """Generates a pure sine wave of exactly num_samples samples."""
    t = np.arange(num_samples, dtype=np.float64) / sr
    audio = amplitude * np.sin(2 * np.pi * freq_hz * t)
    return audio.astype(np.float32)


def generate_silence(num_samples: int) -> np.ndarray:
    return np.zeros(num_samples, dtype=np.float32)


def generate_noise(num_samples: int, amplitude: float = 0.1, seed: int = 0) -> np.ndarray:
    """Uniform white noise in [-amplitude, amplitude], reproducible per seed."""
    rng = np.random.default_rng(seed)
    return (rng.uniform(-1.0, 1.0, num_samples) * amplitude).astype(np.float32)
