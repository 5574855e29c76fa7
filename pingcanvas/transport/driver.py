import logging
from urllib.parse import urlparse, parse_qs

from pingcanvas.transport.base import ProbeTransportBase
from pingcanvas.transport.dryrun import DryRunTransport
from pingcanvas.transport.icmp import IcmpTransport

logger = logging.getLogger(__name__)


def create_transport(transport_uri: str, payload_size: int = 16) -> ProbeTransportBase:
    """
    Creates the probe transport from a config URI.
    Examples:
        - icmp:// - ICMPv6 echo through the ping socket
        - dryrun:// - record addresses, send nothing
        - dryrun://?reply=1 - same, but every echo gets an immediate reply
    """
    parsed = urlparse(transport_uri)
    scheme = parsed.scheme

    if scheme == 'icmp':
        logger.info("Initialized ICMPv6 transport")
        return IcmpTransport(payload_size=payload_size)

    if scheme == 'dryrun':
        query = parse_qs(parsed.query)
        reply = query.get('reply', ['0'])[0].lower() in ('1', 'true', 'yes')
        logger.info(f"Initialized dry-run transport (reply={reply})")
        return DryRunTransport(payload_size=payload_size, reply=reply)

    raise ValueError(f"Unknown transport type: {scheme or transport_uri!r}")
