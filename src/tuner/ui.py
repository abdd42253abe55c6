from __future__ import annotations

from dataclasses import dataclass

import pygame

IN_TUNE_CENTS = 5.0


@dataclass
class UIState:
    pitched: bool
    note_name: str
    frequency_hz: float
    target_hz: float
    cents_offset: float
    probability: float
    reference_pitch_hz: float
    level: float


def cents_to_x(cents: float, left: int, width: int) -> int:
    clamped = max(-50.0, min(50.0, cents))
    return int(round(left + (clamped + 50.0) / 100.0 * width))


class PygameUI:
    def __init__(self, fullscreen: bool = False, size: tuple[int, int] | None = None):
        pygame.init()
        flags = pygame.FULLSCREEN if fullscreen else 0
        if size is None:
            self.screen = pygame.display.set_mode((0, 0), flags)
        else:
            self.screen = pygame.display.set_mode(size, flags)
        pygame.display.set_caption("Tuner")

        self.clock = pygame.time.Clock()
        self.width, self.height = self.screen.get_size()
        self.font_note = pygame.font.SysFont("DejaVu Sans", 140, bold=True)
        self.font_freq = pygame.font.SysFont("DejaVu Sans", 40)
        self.font_meta = pygame.font.SysFont("DejaVu Sans", 28)

    def update(self, state: UIState) -> bool:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            if event.type == pygame.KEYDOWN and event.key in (pygame.K_ESCAPE, pygame.K_q):
                return False

        self._draw_background(state)
        self._draw_header(state)
        self._draw_note(state)
        self._draw_needle(state)
        self._draw_meta(state)

        pygame.display.flip()
        self.clock.tick(30)
        return True

    def _draw_background(self, state: UIState) -> None:
        # top of the screen glows green while the note is in tune
        if state.pitched and abs(state.cents_offset) <= IN_TUNE_CENTS:
            glow = (16, 58, 30)
        else:
            glow = (18, 30, 54)
        base = (6, 8, 14)
        band = max(self.height - 1, 1)
        for y in range(self.height):
            mix = y / band
            color = tuple(int(g * (1.0 - mix) + b * mix) for g, b in zip(glow, base))
            pygame.draw.line(self.screen, color, (0, y), (self.width, y))

    def _draw_header(self, state: UIState) -> None:
        text = self.font_meta.render(f"A4 = {state.reference_pitch_hz:.1f} Hz", True, (200, 200, 200))
        self.screen.blit(text, (40, 24))

    def _draw_note(self, state: UIState) -> None:
        if state.pitched:
            in_tune = abs(state.cents_offset) <= IN_TUNE_CENTS
            color = (140, 235, 150) if in_tune else (255, 236, 156)
            note = self.font_note.render(state.note_name, True, color)
            freq = self.font_freq.render(
                f"{state.frequency_hz:.2f} Hz  (alvo {state.target_hz:.2f})", True, (190, 190, 190)
            )
        else:
            note = self.font_note.render("--", True, (90, 90, 90))
            freq = self.font_freq.render("", True, (190, 190, 190))

        note_rect = note.get_rect(center=(self.width // 2, self.height // 2 - 80))
        freq_rect = freq.get_rect(center=(self.width // 2, self.height // 2 + 10))
        self.screen.blit(note, note_rect)
        self.screen.blit(freq, freq_rect)

    def _draw_needle(self, state: UIState) -> None:
        left = self.width // 8
        width = self.width - 2 * left
        y = self.height // 2 + 90
        pygame.draw.line(self.screen, (120, 120, 120), (left, y), (left + width, y), 2)
        for cents in range(-50, 51, 10):
            x = cents_to_x(cents, left, width)
            tick = 18 if cents == 0 else 10
            pygame.draw.line(self.screen, (150, 150, 150), (x, y - tick), (x, y + tick), 2)

        if not state.pitched:
            return
        x = cents_to_x(state.cents_offset, left, width)
        pygame.draw.line(self.screen, (255, 120, 90), (x, y - 40), (x, y + 40), 4)

    def _draw_meta(self, state: UIState) -> None:
        if state.pitched:
            text = f"{state.cents_offset:+05.1f} cents  |  confianca {state.probability:.2f}"
        else:
            text = "sem nota"
        meta_surf = self.font_meta.render(text, True, (180, 220, 255))
        level_surf = self.font_meta.render(f"nivel {state.level:.3f}", True, (150, 150, 150))
        self.screen.blit(meta_surf, (40, self.height - 80))
        self.screen.blit(level_surf, (40, self.height - 45))

    def close(self) -> None:
        pygame.quit()
