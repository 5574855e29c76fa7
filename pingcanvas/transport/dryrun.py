import asyncio
import logging
from ipaddress import IPv6Address

from pingcanvas.transport.base import ProbeTransportBase

logger = logging.getLogger(__name__)


class DryRunTransport(ProbeTransportBase):
    """
    Transport that sends nothing, only records where echoes would go.
    With reply=True every echo is answered on the next loop iteration (loopback).
    Keeps one entry per address (last sequence sent), so long loopback runs stay bounded.
    """

    def __init__(self, payload_size: int = 16, reply: bool = False):
        super().__init__(payload_size)
        self.reply = reply
        self.echoes = 0
        self.last_seq: dict[IPv6Address, int] = {}
        self._running = False

    async def start(self) -> None:
        self._running = True
        logger.info(f"Dry-run transport started (reply={self.reply})")

    async def stop(self) -> None:
        self._running = False
        logger.info(f"Dry-run transport stopped, {self.echoes} echoes to {len(self.last_seq)} addresses")

    def is_connected(self) -> bool:
        return self._running

    def send_echo(self, address: IPv6Address, seq: int, payload: bytes) -> None:
        if not self._running:
            raise OSError("dry-run transport is stopped")
        logger.debug(f"Echo to {address} seq={seq}")
        self.echoes += 1
        self.last_seq[address] = seq
        if self.reply:
            asyncio.get_running_loop().call_soon(self.deliver_reply, address, seq)

    @property
    def addresses(self) -> list[IPv6Address]:
        """Distinct probed addresses in first-probe order"""
        return list(self.last_seq)
