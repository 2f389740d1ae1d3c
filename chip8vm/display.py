"""
Monochrome 64x32 bitmap with XOR sprite drawing.
"""

import numpy as np

from .constants import DISPLAY_HEIGHT, DISPLAY_WIDTH, SPRITE_WIDTH

# Column offsets 0-7 of a sprite row, MSB first
_COLUMNS = np.arange(SPRITE_WIDTH)


class Display:
    """Row-major pixel buffer, indexed as pixels[y, x].

    `dirty` records whether the buffer changed since the presentation
    backend last consumed it.
    """

    def __init__(self):
        self.pixels = np.zeros((DISPLAY_HEIGHT, DISPLAY_WIDTH), dtype=np.uint8)
        self.dirty = False

    def clear(self):
        self.pixels.fill(0)
        self.dirty = True

    def draw_sprite(self, x: int, y: int, rows: bytes) -> bool:
        """XOR an 8-pixel-wide sprite onto the buffer at (x, y).

        Each byte in `rows` is one sprite row, most significant bit on the
        left. Coordinates wrap on both axes. Returns True if any pixel that
        was on got switched off (collision).
        """
        self.dirty = True
        if not rows:
            return False

        sprite = np.unpackbits(np.frombuffer(bytes(rows), dtype=np.uint8)).reshape(-1, SPRITE_WIDTH)
        ys = (y + np.arange(sprite.shape[0])) % DISPLAY_HEIGHT
        xs = (x + _COLUMNS) % DISPLAY_WIDTH
        region = np.ix_(ys, xs)

        collision = bool(np.any(self.pixels[region] & sprite))
        self.pixels[region] ^= sprite
        return collision

    def get_display(self) -> np.ndarray:
        """Get current display state as 2D array"""
        return self.pixels.copy()

    def as_image(self, scale: int = 1) -> np.ndarray:
        """Get display as a scaled 0/255 grayscale array"""
        scaled = np.repeat(np.repeat(self.pixels, scale, axis=0), scale, axis=1)
        return (scaled * 255).astype(np.uint8)

    def render_text(self) -> str:
        return '\n'.join(''.join('██' if pixel else '  ' for pixel in row) for row in self.pixels)
