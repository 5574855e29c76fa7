import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def make_image(tmp_path):
    """Factory writing a PNG with the given (height, width, channels) pixel array"""
    def _make(pixels, name="image.png"):
        pixels = np.asarray(pixels, dtype=np.uint8)
        path = tmp_path / name
        Image.fromarray(pixels).save(path)
        return path
    return _make


@pytest.fixture
def quad_pixels():
    # 2x2: red, green / deadbe, white
    return np.array(
        [
            [[0xFF, 0, 0], [0, 0xFF, 0]],
            [[0xDE, 0xAD, 0xBE], [0xFF, 0xFF, 0xFF]],
        ],
        dtype=np.uint8,
    )
