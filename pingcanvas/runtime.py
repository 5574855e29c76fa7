import asyncio
import logging
from typing import Optional

from pingcanvas.config import GlobalConfig
from pingcanvas.dispatcher import DispatchReport, ProbeDispatcher
from pingcanvas.loader import ImageSource, load_image
from pingcanvas.render.frame import PixelBuffer
from pingcanvas.render.position import Position
from pingcanvas.transport.base import ProbeTransportBase
from pingcanvas.transport.driver import create_transport

logger = logging.getLogger(__name__)


class Runtime:
    """
    Owns one event loop for one run: loads the image, starts the transport,
    probes every pixel and tears everything down again.
    """

    def __init__(self, config: GlobalConfig, transport: Optional[ProbeTransportBase] = None):
        self.config = config
        self.transport = transport or create_transport(
            config.probe.transport, payload_size=config.probe.payload_size
        )

    def load(self, source: Optional[ImageSource] = None) -> PixelBuffer:
        """Decodes and bound-checks the image, raises ConversionError"""
        return load_image(
            source if source is not None else self.config.image.path,
            Position(*self.config.image.offset),
            self.config.canvas,
        )

    def run(self, source: Optional[ImageSource] = None) -> DispatchReport:
        # image errors stop the run before the loop even exists
        buffer = self.load(source)
        return asyncio.run(self.run_async(buffer))

    async def run_async(self, buffer: PixelBuffer) -> DispatchReport:
        await self.transport.start()
        try:
            dispatcher = ProbeDispatcher(
                self.transport,
                self.config.canvas,
                timeout=self.config.probe.timeout,
                interval=self.config.probe.interval,
            )
            return await dispatcher.dispatch(buffer, Position(*self.config.image.offset))
        finally:
            await self.transport.stop()
