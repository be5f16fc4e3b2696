"""
SpritePack Color - RGBA channel packing.

An OrgbColor packs opacity, red, green and blue bytes into a single
32-bit integer laid out as 0xAARRGGBB. That is the same channel order as
the 8-char hex color strings ("ff333333") used in manifests and by
tileNet-style color attributes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

# (r, g, b, a) -> packed color value
ColorPacker = Callable[[int, int, int, int], int]

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def pack_rgba(r: int, g: int, b: int, a: int) -> int:
    """Pack four channel bytes into an OrgbColor value."""
    return (a << 24) | (r << 16) | (g << 8) | b


@dataclass(frozen=True)
class OrgbColor:
    """A packed 0xAARRGGBB color."""
    value: int

    @classmethod
    def from_rgba(cls, r: int, g: int, b: int, a: int = 255) -> OrgbColor:
        """Build a color from channel bytes.

        Raises:
            ValueError: If any channel is outside 0..255.
        """
        for channel in (r, g, b, a):
            if not 0 <= channel <= 0xFF:
                raise ValueError(f"Channel value out of range: {channel!r}")
        return cls(pack_rgba(r, g, b, a))

    @classmethod
    def from_hex(cls, hex_str: str) -> OrgbColor:
        """Parse an 8-char AARRGGBB hex string (e.g., "ff333333")."""
        # int(..., 16) alone would also take "0x", signs and whitespace
        if len(hex_str) != 8 or any(ch not in HEX_DIGITS for ch in hex_str):
            raise ValueError(f"Invalid color string: {hex_str!r}")
        return cls(int(hex_str, 16))

    @property
    def a(self) -> int:
        return (self.value >> 24) & 0xFF

    @property
    def r(self) -> int:
        return (self.value >> 16) & 0xFF

    @property
    def g(self) -> int:
        return (self.value >> 8) & 0xFF

    @property
    def b(self) -> int:
        return self.value & 0xFF

    def to_rgba(self) -> tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)

    def to_hex(self) -> str:
        return f"{self.value:08x}"
