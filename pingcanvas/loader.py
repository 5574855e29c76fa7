import logging
from typing import BinaryIO, Union
from pathlib import Path

import numpy as np
from PIL import Image

from pingcanvas.errors import DecodeError, DimensionsExceeded
from pingcanvas.models.config import CanvasConfig
from pingcanvas.render.frame import PixelBuffer
from pingcanvas.render.position import Position

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, BinaryIO]

# everything Pillow is known to raise on broken or missing input
_DECODER_ERRORS = (OSError, ValueError, SyntaxError, Image.DecompressionBombError)


def decode_rgb(source: ImageSource) -> PixelBuffer:
    """Decodes an image into an opaque RGB888 buffer, alpha is dropped"""
    try:
        with Image.open(source) as image:
            image.load()
            # convert to RGB if needed
            if image.mode != "RGB":
                image = image.convert("RGB")
            pixels = np.asarray(image, dtype=np.uint8)
    except _DECODER_ERRORS as e:
        raise DecodeError(str(e) or type(e).__name__) from e

    return PixelBuffer(pixels)


def load_image(source: ImageSource, offset: Position, canvas: CanvasConfig) -> PixelBuffer:
    """
    Loads the image and checks that it fits on the canvas when placed at offset.
    Raises DecodeError or DimensionsExceeded, nothing is probed in either case.
    """
    buffer = decode_rgb(source)

    bottom_right = buffer.size + Position(*offset)
    if bottom_right.exceeds(Position(canvas.width, canvas.height)):
        logger.debug(
            f"Image {buffer.width}x{buffer.height} at {tuple(offset)} "
            f"reaches {tuple(bottom_right)}, canvas is {canvas.width}x{canvas.height}"
        )
        raise DimensionsExceeded()

    logger.info(f"Loaded image {buffer.width}x{buffer.height} at offset {tuple(offset)}")
    return buffer
