import logging
from ipaddress import IPv6Address
from pathlib import Path
from typing import Iterable

import numpy as np
from PIL import Image

from pingcanvas.codec import address_to_pixel
from pingcanvas.models.config import CanvasConfig

logger = logging.getLogger(__name__)


class Canvas:
    """
    Observer side of the picture: paints pixels back from probed addresses.
    Addresses with a foreign prefix or outside the canvas are ignored.
    """

    def __init__(self, config: CanvasConfig):
        self.config = config
        self.pixels = np.zeros((config.height, config.width, 3), dtype=np.uint8)
        self.painted = 0

    def apply(self, address: IPv6Address | str) -> bool:
        """Paints the pixel encoded in address, returns False if it was ignored"""
        try:
            prefix, pos, rgb = address_to_pixel(address)
        except ValueError as e:
            logger.debug(f"Ignoring {address}: {e}")
            return False

        if prefix != tuple(self.config.prefix):
            return False
        if not (0 <= pos.x < self.config.width and 0 <= pos.y < self.config.height):
            return False

        self.pixels[pos.y, pos.x] = rgb
        self.painted += 1
        return True

    def apply_all(self, addresses: Iterable[IPv6Address | str]) -> int:
        return sum(1 for address in addresses if self.apply(address))

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    def save(self, path: str | Path) -> None:
        self.to_image().save(path)
        logger.info(f"Canvas saved to {path} ({self.painted} pixels)")
