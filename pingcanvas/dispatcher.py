import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from ipaddress import IPv6Address

from pingcanvas.codec import pixel_to_address
from pingcanvas.errors import ProbeStartError
from pingcanvas.models.config import CanvasConfig
from pingcanvas.render.frame import PixelBuffer
from pingcanvas.render.position import Position
from pingcanvas.transport.base import EchoSession, ProbeTransportBase

logger = logging.getLogger(__name__)


class ProbeStatus(Enum):
    COMPLETED = "completed"
    FAILED_TO_START = "failed_to_start"


@dataclass
class ProbeOutcome:
    address: IPv6Address
    status: ProbeStatus
    replies: int = 0


@dataclass
class DispatchReport:
    outcomes: list[ProbeOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def completed(self) -> int:
        return sum(1 for o in self.outcomes if o.status is ProbeStatus.COMPLETED)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status is ProbeStatus.FAILED_TO_START)

    @property
    def replies(self) -> int:
        return sum(o.replies for o in self.outcomes)


class ProbeDispatcher:
    """
    Fans a pixel buffer out into one probe task per pixel.
    Each probe runs for `timeout` seconds from its own start, probes never wait on each other.
    """

    def __init__(self, transport: ProbeTransportBase, canvas: CanvasConfig,
                 timeout: float, interval: float = 0.0):
        self.transport = transport
        self.canvas = canvas
        self.timeout = timeout
        self.interval = interval

    def addresses(self, buffer: PixelBuffer, offset: Position) -> list[IPv6Address]:
        """Target addresses in row-major pixel order"""
        offset = Position(*offset)
        return [
            pixel_to_address(pos + offset, rgb, self.canvas)
            for pos, rgb in buffer.iter_pixels()
        ]

    async def dispatch(self, buffer: PixelBuffer, offset: Position) -> DispatchReport:
        """Probes every pixel and returns once all probes have finished or failed to start"""
        # all tasks are scheduled before anything is awaited
        tasks = [
            asyncio.create_task(self.probe(address))
            for address in self.addresses(buffer, offset)
        ]
        logger.info(f"Dispatched {len(tasks)} probes (timeout {self.timeout}s)")

        outcomes = await asyncio.gather(*tasks)
        report = DispatchReport(outcomes=list(outcomes))
        logger.info(
            f"Dispatch finished: {report.completed} completed, "
            f"{report.failed} failed to start, {report.replies} replies"
        )
        return report

    async def probe(self, address: IPv6Address) -> ProbeOutcome:
        try:
            session = self.transport.open_session(address)
        except ProbeStartError as e:
            # best effort, one missing pixel does not stop the picture
            logger.debug(f"Probe for {address} not started: {e}")
            return ProbeOutcome(address, ProbeStatus.FAILED_TO_START)

        try:
            await asyncio.wait_for(self._echo_stream(session), self.timeout)
        except asyncio.TimeoutError:
            pass
        finally:
            session.close()

        return ProbeOutcome(address, ProbeStatus.COMPLETED, session.replies)

    async def _echo_stream(self, session: EchoSession) -> None:
        """Keeps echoing until cancelled by the probe timeout"""
        seq = 0
        while True:
            await session.wait_reply(seq)
            if self.interval:
                await asyncio.sleep(self.interval)
            seq = (seq + 1) & 0xFFFF
            try:
                session.send(seq)
            except OSError as e:
                logger.debug(f"Echo stream to {session.address} stopped: {e}")
                return
