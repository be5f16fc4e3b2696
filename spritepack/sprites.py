"""
SpritePack Sprites - pixel repacking for single images and atlases.

Decoded images arrive as row-major RGBA bytes with the origin at the
top-left corner. Sprites hold one packed color per pixel with row 0 at
the BOTTOM of the image, so every decode flips rows:

  source pixel p  ->  row = p // width, col = p - row * width
                  ->  destination (height - 1 - row) * width + col

Atlases are tall images holding equal-height frames stacked top to
bottom; each frame is flipped on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Sequence, Union

from spritepack.color import ColorPacker, pack_rgba

log = logging.getLogger(__name__)

BYTES_PER_PIXEL = 4

PixelBuffer = Union[bytes, bytearray, memoryview, Sequence[int]]


class PixelBufferError(ValueError):
    """A pixel buffer does not match the dimensions it was given with."""


@dataclass(frozen=True)
class Sprite:
    """An immutable packed-pixel image, row 0 at the bottom."""
    width: int
    height: int
    pixels: tuple[int, ...]

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise PixelBufferError(
                f"Negative sprite size {self.width}x{self.height}")
        if len(self.pixels) != self.width * self.height:
            raise PixelBufferError(
                f"Sprite {self.width}x{self.height} needs "
                f"{self.width * self.height} pixels, got {len(self.pixels)}")

    def pixel_at(self, x: int, y: int) -> int:
        """Return the color at column x, row y (y counted from the bottom)."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x},{y}) outside {self.width}x{self.height}")
        return self.pixels[y * self.width + x]

    def row(self, y: int) -> tuple[int, ...]:
        """Return row y (0 = bottom) as a tuple of colors."""
        if not 0 <= y < self.height:
            raise IndexError(f"Row {y} outside height {self.height}")
        start = y * self.width
        return self.pixels[start:start + self.width]


@dataclass(frozen=True)
class SpriteMap:
    """Frames cut from one atlas, in top-to-bottom source order."""
    sprites: tuple[Sprite, ...]

    def __len__(self) -> int:
        return len(self.sprites)

    def __getitem__(self, index: int) -> Sprite:
        return self.sprites[index]

    def __iter__(self) -> Iterator[Sprite]:
        return iter(self.sprites)

    @property
    def frame_width(self) -> int:
        return self.sprites[0].width if self.sprites else 0

    @property
    def frame_height(self) -> int:
        return self.sprites[0].height if self.sprites else 0


def flipped_index(p: int, width: int, height: int) -> int:
    """Map a top-left-origin pixel index to its bottom-left-origin index."""
    row = p // width
    col = p - row * width
    return (height - 1 - row) * width + col


def _check_buffer(buffer: PixelBuffer, width: int, height: int) -> None:
    if width < 0 or height < 0:
        raise PixelBufferError(f"Negative image size {width}x{height}")
    expected = width * height * BYTES_PER_PIXEL
    if len(buffer) != expected:
        raise PixelBufferError(
            f"Buffer for {width}x{height} image must be {expected} bytes, "
            f"got {len(buffer)}")


def flip_pixels(buffer: PixelBuffer, width: int, height: int,
                pack: ColorPacker = pack_rgba) -> tuple[int, ...]:
    """Repack a top-left-origin RGBA buffer into bottom-left-origin colors.

    Args:
        buffer: Row-major RGBA bytes, exactly 4 * width * height long.
        width: Image width in pixels.
        height: Image height in pixels.
        pack: Converts (r, g, b, a) to a packed color.

    Returns:
        A tuple of width * height packed colors.

    Raises:
        PixelBufferError: If the buffer length does not match the size.
    """
    _check_buffer(buffer, width, height)
    count = width * height
    pixels = [0] * count
    for p in range(count):
        i = p * BYTES_PER_PIXEL
        pixels[flipped_index(p, width, height)] = pack(
            buffer[i], buffer[i + 1], buffer[i + 2], buffer[i + 3])
    return tuple(pixels)


def decode_sprite(buffer: PixelBuffer, width: int, height: int,
                  pack: ColorPacker = pack_rgba) -> Sprite:
    """Build one Sprite from a whole decoded image."""
    return Sprite(width, height, flip_pixels(buffer, width, height, pack))


def decode_atlas(buffer: PixelBuffer, width: int, height: int,
                 sprites_number: int,
                 pack: ColorPacker = pack_rgba) -> SpriteMap:
    """Cut a vertical atlas into sprites_number equal-height sprites.

    Frame height is height // sprites_number. When the height does not
    divide evenly the trailing source rows belong to no frame.

    Raises:
        ValueError: If sprites_number is less than 1.
        PixelBufferError: If the buffer length does not match the size.
    """
    if sprites_number < 1:
        raise ValueError(f"Atlas needs at least one frame, got {sprites_number}")
    _check_buffer(buffer, width, height)

    frame_height = height // sprites_number
    span = width * frame_height * BYTES_PER_PIXEL
    if height % sprites_number:
        log.debug("Atlas %dx%d / %d frames drops %d trailing rows",
                  width, height, sprites_number, height % sprites_number)

    sprites = []
    for k in range(sprites_number):
        frame = buffer[k * span:(k + 1) * span]
        sprites.append(decode_sprite(frame, width, frame_height, pack))
    return SpriteMap(tuple(sprites))
