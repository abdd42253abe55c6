from __future__ import annotations

import argparse
import logging
import queue
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from .config import DIFFERENCE_METHODS, AudioConfig, DetectorConfig
from .dsp import midi_to_hz, rms
from .pitch import UNPITCHED, DetectionResult, PitchDetector
from .stream import StreamingPitchDetector
from .ui import PygameUI, UIState

logger = logging.getLogger(__name__)


@dataclass
class SessionStats:
    detections: int = 0
    pitched: int = 0
    notes: Counter = field(default_factory=Counter)
    cents: List[float] = field(default_factory=list)

    def add(self, result: DetectionResult) -> None:
        self.detections += 1
        if not result.pitched:
            return
        self.pitched += 1
        self.notes[result.note_name] += 1
        self.cents.append(result.cents_offset)

    def most_common_note(self) -> Optional[str]:
        if not self.notes:
            return None
        return self.notes.most_common(1)[0][0]

    def mean_cents(self) -> float:
        if not self.cents:
            return 0.0
        return float(np.mean(self.cents))


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Afinador em tempo real (YIN)")
    parser.add_argument("--device", help="Dispositivo de entrada de audio (indice ou nome)")
    parser.add_argument("--samplerate", type=int, default=44100, help="Sample rate")
    parser.add_argument("--blocksize", type=int, default=1024, help="Tamanho do bloco de audio")
    parser.add_argument("--frame-size", type=int, default=2048, help="Janela de analise em amostras")
    parser.add_argument("--threshold", type=float, default=0.10, help="Limiar YIN (0-1)")
    parser.add_argument("--reference", type=float, default=440.0, help="Frequencia do La4 em Hz")
    parser.add_argument("--method", choices=DIFFERENCE_METHODS, default="fft", help="Calculo da funcao diferenca")
    parser.add_argument("--fullscreen", action="store_true", help="Tela cheia")
    parser.add_argument("--headless", action="store_true", help="Sem UI, imprime as notas no terminal")
    parser.add_argument("--duration", type=float, default=0.0, help="Para apos N segundos (0 = sem limite)")
    parser.add_argument("--log-level", default="warning", help="Nivel de log (debug, info, warning, error)")
    return parser.parse_args(argv)


def build_configs(args: argparse.Namespace) -> Tuple[AudioConfig, DetectorConfig]:
    audio_cfg = AudioConfig(sample_rate=args.samplerate, block_size=args.blocksize, device=args.device)
    detector_cfg = DetectorConfig(
        sample_rate=args.samplerate,
        frame_size=args.frame_size,
        threshold=args.threshold,
        reference_pitch_hz=args.reference,
        difference_method=args.method,
    )
    detector_cfg.validate()
    if not 0 < audio_cfg.block_size <= 2 * detector_cfg.frame_size:
        raise ValueError(f"blocksize must be in [1, {2 * detector_cfg.frame_size}], got {audio_cfg.block_size}")
    return audio_cfg, detector_cfg


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s %(message)s",
    )
    try:
        audio_cfg, detector_cfg = build_configs(args)
    except ValueError as exc:
        print(f"Configuracao invalida: {exc}")
        return 2

    detector = PitchDetector(detector_cfg)
    streaming = StreamingPitchDetector(detector)
    audio_queue: "queue.Queue[np.ndarray]" = queue.Queue()

    def audio_callback(indata: np.ndarray, frames: int, time_info, status) -> None:
        if status:
            logger.warning("audio input status: %s", status)
            return
        audio_queue.put(indata.copy())

    stats = SessionStats()
    ui: Optional[PygameUI] = None
    try:
        import sounddevice as sd

        stream = sd.InputStream(
            channels=audio_cfg.channels,
            samplerate=audio_cfg.sample_rate,
            blocksize=audio_cfg.block_size,
            device=audio_cfg.device,
            callback=audio_callback,
        )
        if not args.headless:
            ui = PygameUI(fullscreen=args.fullscreen)

        result = UNPITCHED
        level = 0.0
        started_at = time.perf_counter()
        with stream:
            running = True
            try:
                while running:
                    while not audio_queue.empty():
                        frame = audio_queue.get()
                        mono = frame[:, 0]
                        level = rms(mono)
                        seen = streaming.detections
                        result = streaming.process(mono)
                        if streaming.detections == seen:
                            continue
                        stats.add(result)
                        if ui is None and result.pitched:
                            print(format_result(result, detector.reference_pitch_hz))

                    if ui:
                        running = ui.update(build_ui_state(result, detector.reference_pitch_hz, level))
                    else:
                        time.sleep(0.01)

                    if args.duration and time.perf_counter() - started_at >= args.duration:
                        running = False
            except KeyboardInterrupt:
                logger.info("interrupted")
    finally:
        if ui:
            ui.close()
        detector.close()

    _print_final(stats)
    return 0


def format_result(result: DetectionResult, reference_pitch_hz: float = 440.0) -> str:
    if not result.pitched:
        return "--"
    target = midi_to_hz(result.midi_note, reference_pitch_hz)
    return (
        f"{result.note_name:<4} {result.frequency_hz:8.2f} Hz (alvo {target:.2f})  "
        f"{result.cents_offset:+5.1f} cents  p={result.probability:.2f}"
    )


def build_ui_state(result: DetectionResult, reference_pitch_hz: float, level: float) -> UIState:
    target = midi_to_hz(result.midi_note, reference_pitch_hz) if result.pitched else 0.0
    return UIState(
        pitched=result.pitched,
        note_name=result.note_name,
        frequency_hz=result.frequency_hz,
        target_hz=target,
        cents_offset=result.cents_offset,
        probability=result.probability,
        reference_pitch_hz=reference_pitch_hz,
        level=level,
    )


def _print_final(stats: SessionStats) -> None:
    print("")
    print("Resumo:")
    print(f"  Analises:   {stats.detections}")
    print(f"  Com nota:   {stats.pitched}")
    note = stats.most_common_note()
    if note:
        print(f"  Mais comum: {note}")
        print(f"  Desvio medio: {stats.mean_cents():+.1f} cents")


if __name__ == "__main__":
    raise SystemExit(main())
