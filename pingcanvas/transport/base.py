import asyncio
import logging
from abc import ABC, abstractmethod
from ipaddress import IPv6Address

from pingcanvas.errors import ProbeStartError

logger = logging.getLogger(__name__)


class EchoSession:
    """
    One probe's view of the transport: echoes to a single address and the
    replies that come back from it. Sequence numbers start at 0 and wrap at 0xFFFF.
    """

    def __init__(self, transport: "ProbeTransportBase", address: IPv6Address, payload: bytes = b""):
        self.transport = transport
        self.address = address
        self.payload = payload
        self.sent = 0
        self.replies = 0
        self._pending: dict[int, asyncio.Future] = {}
        self._closed = False

    def send(self, seq: int) -> None:
        """Sends echo request with the given sequence number, OSError is passed through"""
        if self._closed:
            raise OSError(f"session for {self.address} is closed")
        # future goes in first so a fast reply always finds it
        self._pending[seq] = asyncio.get_running_loop().create_future()
        try:
            self.transport.send_echo(self.address, seq, self.payload)
        except OSError:
            self._pending.pop(seq).cancel()
            raise
        self.sent += 1

    async def wait_reply(self, seq: int) -> None:
        """Waits until the reply for seq arrives"""
        future = self._pending[seq]
        try:
            await future
        finally:
            self._pending.pop(seq, None)

    def on_reply(self, seq: int) -> None:
        future = self._pending.get(seq)
        if future is None or future.done():
            # late or duplicate reply
            return
        self.replies += 1
        future.set_result(None)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for future in self._pending.values():
            future.cancel()
        self._pending.clear()
        self.transport.release_session(self)


class ProbeTransportBase(ABC):
    """Base class for all probe transports"""

    def __init__(self, payload_size: int = 16):
        self.payload = bytes(i & 0xFF for i in range(payload_size))
        self._sessions: dict[IPv6Address, EchoSession] = {}

    @abstractmethod
    async def start(self) -> None:
        """Starts the transport"""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stops the transport"""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Checks whether the transport can send"""
        pass

    @abstractmethod
    def send_echo(self, address: IPv6Address, seq: int, payload: bytes) -> None:
        """Sends one echo request to address"""
        pass

    def open_session(self, address: IPv6Address) -> EchoSession:
        """
        Opens a session for address and sends the first echo (seq 0).
        Raises ProbeStartError if the probe cannot be started.
        """
        if not self.is_connected():
            raise ProbeStartError(f"transport is not started, cannot probe {address}")
        if address in self._sessions:
            raise ProbeStartError(f"probe for {address} is already running")

        session = EchoSession(self, address, self.payload)
        self._sessions[address] = session
        try:
            session.send(0)
        except OSError as e:
            session.close()
            raise ProbeStartError(f"failed to send echo to {address}: {e}") from e
        return session

    def release_session(self, session: EchoSession) -> None:
        if self._sessions.get(session.address) is session:
            del self._sessions[session.address]

    def deliver_reply(self, address: IPv6Address, seq: int) -> None:
        """Routes an echo reply to the session waiting for it"""
        session = self._sessions.get(address)
        if session is None:
            logger.debug(f"Reply from {address} without open session")
            return
        logger.debug(f"Echo reply from {address} seq={seq}")
        session.on_reply(seq)

    @property
    def open_sessions(self) -> int:
        return len(self._sessions)
