"""
Pixel <-> IPv6 address codec.

Address layout (eight 16-bit groups):

    PREFIX0:PREFIX1:PREFIX2:X:Y:R:G:B

X and Y are written so that their hex text reads as the decimal coordinate
(x=75 -> group "75"), which makes addresses readable in ping/tcpdump output.
R, G and B are plain zero-extended bytes (0xff -> group "ff").
"""

from ipaddress import IPv6Address

from pingcanvas.models.config import CanvasConfig
from pingcanvas.render.position import Color, Position


def encode_digit(num: int) -> int:
    """Packs decimal digits of num (0..255) into hex nibbles: 160 -> 0x160"""
    return num % 10 + num % 100 // 10 * 0x10 + num // 100 * 0x100


def decode_digit(group: int) -> int:
    """Inverse of encode_digit"""
    ones, tens, hundreds = group & 0xF, (group >> 4) & 0xF, (group >> 8) & 0xF
    if ones > 9 or tens > 9 or hundreds > 9 or group >> 12:
        raise ValueError(f"group {group:#x} is not a decimal-as-hex coordinate")
    return hundreds * 100 + tens * 10 + ones


def pixel_to_groups(pos: Position, rgb: Color, prefix: tuple[int, int, int]) -> tuple[int, ...]:
    return (
        prefix[0],
        prefix[1],
        prefix[2],
        encode_digit(pos.x),
        encode_digit(pos.y),
        rgb.r,
        rgb.g,
        rgb.b,
    )


def pixel_to_address(pos: Position, rgb: Color, canvas: CanvasConfig) -> IPv6Address:
    groups = pixel_to_groups(pos, rgb, canvas.prefix)
    value = 0
    for group in groups:
        value = (value << 16) | group
    return IPv6Address(value)


def address_to_pixel(address: IPv6Address | str) -> tuple[tuple[int, int, int], Position, Color]:
    """
    Splits an address back into (prefix, position, color).
    Raises ValueError when the groups do not look like an encoded pixel.
    """
    value = int(IPv6Address(address))
    groups = [(value >> (16 * (7 - i))) & 0xFFFF for i in range(8)]

    for channel in groups[5:]:
        if channel > 0xFF:
            raise ValueError(f"color group {channel:#x} does not fit in 8 bits")

    prefix = (groups[0], groups[1], groups[2])
    pos = Position(decode_digit(groups[3]), decode_digit(groups[4]))
    rgb = Color(groups[5], groups[6], groups[7])
    return prefix, pos, rgb
