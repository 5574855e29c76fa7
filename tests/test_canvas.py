"""
Tests for rebuilding the picture from probed addresses
"""

import asyncio

import numpy as np

from pingcanvas.canvas import Canvas
from pingcanvas.codec import pixel_to_address
from pingcanvas.dispatcher import ProbeDispatcher
from pingcanvas.models.config import CanvasConfig
from pingcanvas.render.frame import PixelBuffer
from pingcanvas.render.position import Color, Position
from pingcanvas.transport.dryrun import DryRunTransport


class TestCanvas:

    def test_probed_addresses_rebuild_the_image(self, quad_pixels):
        config = CanvasConfig()
        transport = DryRunTransport()

        async def run():
            await transport.start()
            dispatcher = ProbeDispatcher(transport, config, timeout=0.001)
            await dispatcher.dispatch(PixelBuffer(quad_pixels), Position(109, 75))
            await transport.stop()

        asyncio.run(run())

        canvas = Canvas(config)
        assert canvas.apply_all(transport.addresses) == 4
        np.testing.assert_array_equal(canvas.pixels[75:77, 109:111], quad_pixels)
        # nothing painted outside the placed image
        assert int(canvas.pixels.sum()) == int(quad_pixels.astype(np.int64).sum())

    def test_foreign_prefix_is_ignored(self):
        canvas = Canvas(CanvasConfig())
        other = CanvasConfig(prefix=(0x2001, 0xDB8, 0))
        assert not canvas.apply(pixel_to_address(Position(1, 1), Color(1, 2, 3), other))
        assert canvas.painted == 0

    def test_out_of_canvas_is_ignored(self):
        canvas = Canvas(CanvasConfig())
        assert not canvas.apply(pixel_to_address(Position(160, 0), Color(1, 2, 3), CanvasConfig()))

    def test_malformed_address_is_ignored(self):
        canvas = Canvas(CanvasConfig())
        assert not canvas.apply("2001:4c08:2028:a:0:0:0:0")
        assert not canvas.apply("2001:4c08:2028:1:1:100:0:0")

    def test_save(self, tmp_path):
        from PIL import Image

        canvas = Canvas(CanvasConfig(width=4, height=3))
        canvas.apply(pixel_to_address(Position(3, 2), Color(9, 8, 7), canvas.config))
        path = tmp_path / "out.png"
        canvas.save(path)

        with Image.open(path) as image:
            assert image.size == (4, 3)
            assert image.getpixel((3, 2)) == (9, 8, 7)
