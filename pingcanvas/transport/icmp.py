import asyncio
import logging
import os
import socket
import struct
from ipaddress import IPv6Address
from typing import Optional, Tuple

from pingcanvas.transport.base import ProbeTransportBase

logger = logging.getLogger(__name__)

# ICMPv6 message types (RFC 4443)
ICMPV6_ECHO_REQUEST = 128
ICMPV6_ECHO_REPLY = 129

# type, code, checksum, identifier, sequence
ECHO_HEADER_FMT = '!B B H H H'
ECHO_HEADER_SIZE = struct.calcsize(ECHO_HEADER_FMT)  # 8 bytes


def build_echo_request(ident: int, seq: int, payload: bytes = b"") -> bytes:
    """
    Packs an ICMPv6 echo request.
    Checksum stays 0, for ICMPv6 sockets the kernel fills it in (pseudo-header included).
    """
    header = struct.pack(ECHO_HEADER_FMT, ICMPV6_ECHO_REQUEST, 0, 0, ident & 0xFFFF, seq & 0xFFFF)
    return header + payload


def parse_echo_reply(data: bytes) -> Optional[Tuple[int, int]]:
    """Returns (identifier, sequence) for an echo reply, None for other ICMPv6 messages"""
    if len(data) < ECHO_HEADER_SIZE:
        raise ValueError(f'ICMPv6 message too short: {len(data)} bytes')

    mtype, _code, _checksum, ident, seq = struct.unpack(ECHO_HEADER_FMT, data[:ECHO_HEADER_SIZE])
    if mtype != ICMPV6_ECHO_REPLY:
        return None
    return ident, seq


class IcmpTransport(ProbeTransportBase):
    """
    ICMPv6 echo over one shared unprivileged ping socket (SOCK_DGRAM + IPPROTO_ICMPV6).
    Linux needs the process group inside net.ipv4.ping_group_range.
    Replies are routed to sessions by source address, the kernel owns the identifier.
    """

    def __init__(self, payload_size: int = 16):
        super().__init__(payload_size)
        self.ident = os.getpid() & 0xFFFF
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._protocol: Optional[asyncio.DatagramProtocol] = None

    async def start(self) -> None:
        """Opens the ping socket"""
        loop = asyncio.get_running_loop()
        try:
            sock = socket.socket(socket.AF_INET6, socket.SOCK_DGRAM, socket.IPPROTO_ICMPV6)
            sock.setblocking(False)
            self._transport, self._protocol = await loop.create_datagram_endpoint(
                lambda: _IcmpProtocol(self),
                sock=sock,
            )
            logger.info("ICMPv6 transport started")
        except Exception as e:
            logger.error(f"Failed to start ICMPv6 transport: {e}")
            raise

    async def stop(self) -> None:
        """Closes the ping socket"""
        if self._transport:
            self._transport.close()
            self._transport = None
        logger.info("ICMPv6 transport stopped")

    def is_connected(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    def send_echo(self, address: IPv6Address, seq: int, payload: bytes) -> None:
        if not self.is_connected():
            raise OSError("ICMPv6 transport is closed")
        packet = build_echo_request(self.ident, seq, payload)
        self._transport.sendto(packet, (str(address), 0))


class _IcmpProtocol(asyncio.DatagramProtocol):
    """Internal protocol that reads ICMPv6 replies off the ping socket"""

    def __init__(self, owner: IcmpTransport):
        self.owner = owner

    def datagram_received(self, data: bytes, addr: Tuple) -> None:
        try:
            reply = parse_echo_reply(data)
        except ValueError as e:
            logger.warning(f"Bad ICMPv6 packet from {addr[0]}: {e}")
            return

        if reply is None:
            return

        _ident, seq = reply
        # strip zone index (fe80::1%eth0)
        source = IPv6Address(addr[0].split('%', 1)[0])
        self.owner.deliver_reply(source, seq)

    def error_received(self, exc: Exception) -> None:
        # unreachable and friends, probes are best effort
        logger.debug(f"ICMPv6 socket error: {exc}")

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc:
            logger.error(f"ICMPv6 socket lost: {exc}")
