"""
Tests for the probe dispatcher
"""

import asyncio
from ipaddress import IPv6Address

import numpy as np

from pingcanvas.codec import address_to_pixel, pixel_to_address
from pingcanvas.dispatcher import ProbeDispatcher, ProbeStatus
from pingcanvas.errors import ProbeStartError
from pingcanvas.models.config import CanvasConfig
from pingcanvas.render.frame import PixelBuffer
from pingcanvas.render.position import Color, Position
from pingcanvas.transport.dryrun import DryRunTransport


async def _dispatch(transport, buffer, offset, timeout=0.01, interval=0.0):
    await transport.start()
    try:
        dispatcher = ProbeDispatcher(transport, CanvasConfig(), timeout=timeout, interval=interval)
        return await dispatcher.dispatch(buffer, offset)
    finally:
        await transport.stop()


class _RefusingTransport(DryRunTransport):
    """Refuses to open a session for one address"""

    def __init__(self, refused: IPv6Address):
        super().__init__()
        self.refused = refused

    def open_session(self, address):
        if address == self.refused:
            raise ProbeStartError(f"no socket for {address}")
        return super().open_session(address)


class _BrokenSendTransport(DryRunTransport):
    """Send fails for one address"""

    def __init__(self, broken: IPv6Address):
        super().__init__()
        self.broken = broken

    def send_echo(self, address, seq, payload):
        if address == self.broken:
            raise OSError("network is unreachable")
        super().send_echo(address, seq, payload)


class _FailsAfterFirstTransport(DryRunTransport):
    """Answers the first echo, then every further send fails"""

    def __init__(self):
        super().__init__(reply=True)

    def send_echo(self, address, seq, payload):
        if seq >= 1:
            raise OSError("no buffer space available")
        super().send_echo(address, seq, payload)


class TestDispatch:

    def test_one_probe_per_pixel(self, quad_pixels):
        buffer = PixelBuffer(quad_pixels)
        transport = DryRunTransport()
        report = asyncio.run(_dispatch(transport, buffer, Position(0, 0)))

        expected = [
            pixel_to_address(Position(0, 0), Color(0xFF, 0, 0), CanvasConfig()),
            pixel_to_address(Position(1, 0), Color(0, 0xFF, 0), CanvasConfig()),
            pixel_to_address(Position(0, 1), Color(0xDE, 0xAD, 0xBE), CanvasConfig()),
            pixel_to_address(Position(1, 1), Color(0xFF, 0xFF, 0xFF), CanvasConfig()),
        ]
        assert report.total == 4
        assert report.completed == 4
        assert report.failed == 0
        assert sorted(o.address for o in report.outcomes) == sorted(expected)
        assert sorted(transport.addresses) == sorted(expected)
        assert transport.open_sessions == 0

    def test_offset_is_applied(self, quad_pixels):
        buffer = PixelBuffer(quad_pixels)
        transport = DryRunTransport()
        asyncio.run(_dispatch(transport, buffer, Position(109, 75)))

        positions = {address_to_pixel(a)[1] for a in transport.addresses}
        assert positions == {Position(109, 75), Position(110, 75), Position(109, 76), Position(110, 76)}

    def test_full_canvas_fan_out(self):
        pixels = np.zeros((119, 159, 3), dtype=np.uint8)
        pixels[..., 0] = np.arange(159, dtype=np.uint8)
        transport = DryRunTransport()
        report = asyncio.run(_dispatch(transport, PixelBuffer(pixels), Position(0, 0), timeout=0.001))

        assert report.total == 159 * 119
        assert report.completed == 159 * 119
        assert len(set(transport.addresses)) == 159 * 119

    def test_waits_for_every_probe_window(self, quad_pixels):
        buffer = PixelBuffer(quad_pixels)
        transport = DryRunTransport()

        async def timed():
            loop = asyncio.get_running_loop()
            started = loop.time()
            report = await _dispatch(transport, buffer, Position(0, 0), timeout=0.05)
            return report, loop.time() - started

        report, elapsed = asyncio.run(timed())
        assert report.completed == 4
        # the clock may round a little below the nominal window
        assert elapsed >= 0.04
    def test_replies_are_counted(self, quad_pixels):
        buffer = PixelBuffer(quad_pixels)
        transport = DryRunTransport(reply=True)
        report = asyncio.run(_dispatch(transport, buffer, Position(0, 0), timeout=0.05, interval=0.005))

        assert report.completed == 4
        assert all(o.replies >= 1 for o in report.outcomes)
        assert report.replies == sum(o.replies for o in report.outcomes)
        # the stream keeps echoing with rising sequence numbers
        for outcome in report.outcomes:
            last = transport.last_seq[outcome.address]
            assert last >= 1
            assert last in (outcome.replies - 1, outcome.replies)

    def test_loopback_bookkeeping_is_per_address(self, quad_pixels):
        transport = DryRunTransport(reply=True)
        asyncio.run(_dispatch(transport, PixelBuffer(quad_pixels), Position(0, 0), timeout=0.05, interval=0.005))

        assert transport.echoes > 4
        assert len(transport.last_seq) == 4
        assert len(transport.addresses) == 4

    def test_send_failure_mid_stream_completes_probe(self, quad_pixels):
        transport = _FailsAfterFirstTransport()
        report = asyncio.run(_dispatch(transport, PixelBuffer(quad_pixels), Position(0, 0), timeout=0.5))

        assert report.completed == 4
        assert report.failed == 0
        assert all(o.replies == 1 for o in report.outcomes)
        assert transport.open_sessions == 0

    def test_no_replies_without_loopback(self, quad_pixels):
        transport = DryRunTransport()
        report = asyncio.run(_dispatch(transport, PixelBuffer(quad_pixels), Position(0, 0)))
        assert report.replies == 0
        # one echo per probe, the first one never got answered
        assert transport.echoes == 4
        assert set(transport.last_seq.values()) == {0}


class TestIsolation:

    def test_refused_probe_does_not_stop_others(self, quad_pixels):
        refused = pixel_to_address(Position(1, 0), Color(0, 0xFF, 0), CanvasConfig())
        transport = _RefusingTransport(refused)
        report = asyncio.run(_dispatch(transport, PixelBuffer(quad_pixels), Position(0, 0)))

        assert report.total == 4
        assert report.failed == 1
        assert report.completed == 3
        failed = [o for o in report.outcomes if o.status is ProbeStatus.FAILED_TO_START]
        assert failed[0].address == refused
        assert refused not in transport.addresses
        assert len(transport.addresses) == 3

    def test_failed_first_send_counts_as_not_started(self, quad_pixels):
        broken = pixel_to_address(Position(0, 1), Color(0xDE, 0xAD, 0xBE), CanvasConfig())
        transport = _BrokenSendTransport(broken)
        report = asyncio.run(_dispatch(transport, PixelBuffer(quad_pixels), Position(0, 0)))

        assert report.failed == 1
        assert report.completed == 3
        assert transport.open_sessions == 0

    def test_stopped_transport_fails_every_probe(self, quad_pixels):
        transport = DryRunTransport()
        dispatcher = ProbeDispatcher(transport, CanvasConfig(), timeout=0.01)
        report = asyncio.run(dispatcher.dispatch(PixelBuffer(quad_pixels), Position(0, 0)))

        assert report.total == 4
        assert report.failed == 4
        assert transport.echoes == 0
