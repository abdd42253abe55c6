#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import List

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from tuner.config import DIFFERENCE_METHODS, DetectorConfig  # noqa: E402
from tuner.pitch import PitchDetector  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mede o tempo do detector em um tom sintetico.")
    parser.add_argument("--samplerate", type=int, default=44100, help="Sample rate")
    parser.add_argument("--frame-size", type=int, action="append", help="Tamanho(s) de janela (repetivel)")
    parser.add_argument("--freq", type=float, default=440.0, help="Frequencia do tom em Hz")
    parser.add_argument("--runs", type=int, default=200, help="Chamadas de process por medicao")
    parser.add_argument("--method", choices=DIFFERENCE_METHODS, action="append", help="Metodo(s) a medir")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    frame_sizes: List[int] = args.frame_size or [1024, 2048, 4096]
    methods: List[str] = args.method or list(DIFFERENCE_METHODS)

    print(f"{'metodo':<8} {'janela':>6} {'ms/bloco':>9} {'tempo real':>10} {'Hz':>9}")
    for method in methods:
        for frame_size in frame_sizes:
            config = DetectorConfig(sample_rate=args.samplerate, frame_size=frame_size, difference_method=method)
            frame = _sine(args.freq, frame_size, args.samplerate)
            with PitchDetector(config) as detector:
                result = detector.process(frame)
                started = time.perf_counter()
                for _ in range(args.runs):
                    detector.process(frame)
                elapsed = (time.perf_counter() - started) / args.runs

            block_s = frame_size / args.samplerate
            print(
                f"{method:<8} {frame_size:>6} {elapsed * 1000.0:>9.3f} "
                f"{block_s / elapsed:>9.1f}x {result.frequency_hz:>9.2f}"
            )
    return 0


def _sine(freq: float, size: int, sample_rate: int) -> np.ndarray:
    t = np.arange(size, dtype=np.float64) / sample_rate
    return (0.5 * np.sin(2.0 * np.pi * freq * t)).astype(np.float32)


if __name__ == "__main__":
    raise SystemExit(main())
