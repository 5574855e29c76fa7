from typing import Iterator

import numpy as np

from pingcanvas.render.position import Color, Position

# RGB888 pixels as a numpy array (3 bytes per pixel: R, G, B), row-major


class PixelBuffer:

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 3:
            raise ValueError(f"expected (height, width, 3) array, got shape {pixels.shape}")
        # own a private copy and freeze it, probe tasks share it by reference
        self.pixels = np.array(pixels, dtype=np.uint8, copy=True)
        self.pixels.flags.writeable = False
        self.height, self.width = self.pixels.shape[:2]

    @property
    def stride(self) -> int:
        """Number of pixels per row"""
        return self.width

    @property
    def size(self) -> Position:
        return Position(self.width, self.height)

    def __len__(self) -> int:
        return self.width * self.height

    def get_pixel(self, x: int, y: int) -> Color:
        r, g, b = self.pixels[y, x]
        return Color(int(r), int(g), int(b))

    def iter_pixels(self) -> Iterator[tuple[Position, Color]]:
        """Yields (local position, color) row by row"""
        for y in range(self.height):
            row = self.pixels[y]
            for x in range(self.width):
                r, g, b = row[x]
                yield Position(x, y), Color(int(r), int(g), int(b))
