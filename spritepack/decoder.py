"""
SpritePack Decoder - image sources to raw RGBA buffers.

A decoder turns a source identifier into a DecodedImage: row-major RGBA
bytes with the origin at the top-left corner, plus width and height.
Decoding is asynchronous; decode() returns an asyncio future that
resolves on the event loop thread.

The pygame decoder accepts:
  - a filesystem path to any format pygame.image can load
  - "hex:<digits>", hex-encoded image file bytes (the encoding
    tileNet image objects carry in their text attribute)
"""

from __future__ import annotations

import asyncio
import io
import logging
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from dataclasses import dataclass
from pathlib import Path

import pygame

log = logging.getLogger(__name__)

HEX_PREFIX = "hex:"


@dataclass(frozen=True)
class DecodedImage:
    """Raw decoder output. buffer holds 4 * width * height bytes."""
    buffer: bytes
    width: int
    height: int


class DecodeError(Exception):
    """An image source could not be read or decoded."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Cannot decode {describe_source(source)}: {reason}")
        self.source = source
        self.reason = reason


def describe_source(source: str) -> str:
    """Short form of a source for log lines (hex payloads get truncated)."""
    if source.startswith(HEX_PREFIX) and len(source) > 24:
        return f"{source[:24]}... ({len(source) - len(HEX_PREFIX)} hex chars)"
    return source


class ImageDecoder(ABC):
    """Turns source identifiers into decoded RGBA images."""

    @abstractmethod
    def decode(self, source: str) -> asyncio.Future[DecodedImage]:
        """Start decoding source. Must be called from the event loop thread.

        Failures are delivered as the future's exception.
        """


class PygameImageDecoder(ImageDecoder):
    """Decodes images with pygame in the event loop's executor."""

    def __init__(self, base_path: str | Path | None = None,
                 executor: Executor | None = None):
        self.base_path = Path(base_path) if base_path is not None else None
        self.executor = executor

    def decode(self, source: str) -> asyncio.Future[DecodedImage]:
        loop = asyncio.get_running_loop()
        return loop.run_in_executor(self.executor, self.decode_now, source)

    def decode_now(self, source: str) -> DecodedImage:
        """Decode source synchronously.

        Raises:
            DecodeError: If the source is unreadable or not an image.
        """
        try:
            surface = self._load_surface(source)
            width, height = surface.get_size()
            buffer = pygame.image.tobytes(surface, "RGBA")
        except (pygame.error, OSError, ValueError) as e:
            raise DecodeError(source, str(e)) from e

        log.debug("Decoded %s (%dx%d)", describe_source(source), width, height)
        return DecodedImage(buffer, width, height)

    def _load_surface(self, source: str) -> pygame.Surface:
        if source.startswith(HEX_PREFIX):
            raw_bytes = bytes.fromhex(source[len(HEX_PREFIX):])
            return pygame.image.load(io.BytesIO(raw_bytes))
        return pygame.image.load(str(self.resolve(source)))

    def resolve(self, source: str) -> Path:
        """Resolve a path source against base_path."""
        path = Path(source)
        if self.base_path is not None and not path.is_absolute():
            path = self.base_path / path
        return path
