"""YIN building blocks operating on caller-owned numpy buffers.

de Cheveigne & Kawahara, "YIN, a fundamental frequency estimator for speech
and music", JASA 2002.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

LAG_SEARCH_CEILING_HZ = 20000.0
# relative to frame energy; FFT round-off sits orders of magnitude below this
ROUNDOFF_FLOOR = 1e-12


@dataclass(frozen=True)
class Valley:
    tau: int
    below_threshold: bool


def fft_size(frame_size: int) -> int:
    size = 1
    while size < 2 * frame_size:
        size <<= 1
    return size


def difference_function(
    frame: np.ndarray,
    out: np.ndarray,
    method: str = "fft",
    energy_prefix: Optional[np.ndarray] = None,
    mask: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Fill ``out[tau] = sum_{j<N-tau} (x[j] - x[j+tau])**2`` for tau < len(out).

    ``len(out)`` must be ``len(frame) // 2``. ``energy_prefix`` (length
    ``len(frame) + 1``, fft method) and ``mask`` (bool, at least ``len(out)``)
    are optional scratch buffers.
    """
    if method == "direct":
        _difference_direct(frame, out)
        energy = float(np.dot(frame, frame))
    else:
        energy = _difference_fft(frame, out, energy_prefix)

    half = out.shape[0]
    floor = _mask_view(mask, half)
    np.maximum(out, 0.0, out=out)
    np.less(out, ROUNDOFF_FLOOR * energy, out=floor)
    np.copyto(out, 0.0, where=floor)
    if half:
        out[0] = 0.0
    return out


def _difference_direct(frame: np.ndarray, out: np.ndarray) -> None:
    n = frame.shape[0]
    for tau in range(out.shape[0]):
        diff = frame[: n - tau] - frame[tau:]
        out[tau] = np.dot(diff, diff)


def _difference_fft(frame: np.ndarray, out: np.ndarray, energy_prefix: Optional[np.ndarray]) -> float:
    # d(tau) = S[N - tau] + (S[N] - S[tau]) - 2 r(tau), S = prefix sums of x**2
    n = frame.shape[0]
    half = out.shape[0]
    if energy_prefix is None:
        energy_prefix = np.empty(n + 1, dtype=np.float64)
    energy_prefix[0] = 0.0
    squares = energy_prefix[1 : n + 1]
    np.multiply(frame, frame, out=squares)
    np.cumsum(squares, out=squares)
    total = float(energy_prefix[n])

    size = fft_size(n)
    spectrum = np.fft.rfft(frame, n=size)
    corr = np.fft.irfft(np.abs(spectrum) ** 2, n=size)[:half]
    corr *= 2.0

    out[:] = energy_prefix[n : n - half : -1]
    out += total
    out -= energy_prefix[:half]
    out -= corr
    return total


def cumulative_mean_normalize(
    difference: np.ndarray,
    out: np.ndarray,
    lags: Optional[np.ndarray] = None,
    mask: Optional[np.ndarray] = None,
) -> np.ndarray:
    """d'(0) = 1, d'(tau) = d(tau) * tau / sum_{j=1..tau} d(j).

    ``out`` must not alias ``difference``. Lags whose running sum is zero
    (silence) are set to 1. ``lags`` (``1..len-1``) and ``mask`` are
    optional scratch.
    """
    out[0] = 1.0
    size = difference.shape[0]
    if size < 2:
        return out
    if lags is None:
        lags = np.arange(1, size, dtype=np.float64)

    tail = out[1:]
    voiced = _mask_view(mask, size - 1)
    np.cumsum(difference[1:], out=tail)
    np.greater(tail, 0.0, out=voiced)
    np.divide(difference[1:], tail, out=tail, where=voiced)
    np.multiply(tail, lags[: size - 1], out=tail, where=voiced)
    np.logical_not(voiced, out=voiced)
    np.copyto(tail, 1.0, where=voiced)
    return out


def _mask_view(mask: Optional[np.ndarray], size: int) -> np.ndarray:
    if mask is None:
        return np.empty(size, dtype=bool)
    return mask[:size]


def minimum_lag(sample_rate: int) -> int:
    return max(1, int(math.ceil(sample_rate / LAG_SEARCH_CEILING_HZ)))


def find_valley(normalized: np.ndarray, threshold: float, tau_min: int) -> Optional[Valley]:
    """First dip under ``threshold``, walked down to its local minimum.

    Taking the first dip rather than the deepest one keeps the fundamental
    period ahead of its multiples. With no dip under the threshold the global
    minimum is returned, flagged ``below_threshold=False``. ``None`` means the
    frame is too short to hold a single lag at or above ``tau_min``.
    """
    half = normalized.shape[0]
    if half <= tau_min:
        return None

    search = normalized[tau_min:]
    hits = np.flatnonzero(search < threshold)
    if hits.size:
        tau = int(hits[0]) + tau_min
        while tau + 1 < half and normalized[tau + 1] < normalized[tau]:
            tau += 1
        return Valley(tau, True)

    tau = int(np.argmin(search)) + tau_min
    return Valley(tau, False)


def parabolic_interpolation(normalized: np.ndarray, tau: int) -> float:
    if tau <= 0 or tau >= normalized.shape[0] - 1:
        return float(tau)
    s0 = float(normalized[tau - 1])
    s1 = float(normalized[tau])
    s2 = float(normalized[tau + 1])
    denom = 2.0 * (s0 - 2.0 * s1 + s2)
    if abs(denom) < 1e-12:
        return float(tau)
    return tau + (s0 - s2) / denom
