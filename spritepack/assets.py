"""
SpritePack Assets - asynchronously loaded sprites, atlases, and packs.

Every asset follows the same contract:
  load()           start (or restart) loading, returns immediately
  is_loading()     True while a load is outstanding
  failed()         True if the last completion was a failure
  data_if_ready()  the loaded value once READY, otherwise None

Leaf assets (SpriteAsset, SpriteMapAsset) ask an ImageDecoder for a
future and update their own state in the future's done-callback, on the
event loop thread. An AssetPack owns named child assets (possibly other
packs) and answers is_loading()/failed() by asking its children on every
call.

Loads are never cancelled. Calling load() twice without waiting starts
two decodes, and whichever completes last decides data and state.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Iterator, Mapping, TypeVar

from spritepack.color import ColorPacker, pack_rgba
from spritepack.decoder import (
    DecodedImage, DecodeError, ImageDecoder, PygameImageDecoder, describe_source,
)
from spritepack.sprites import (
    Sprite, SpriteMap, decode_atlas, decode_sprite,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[["Asset[Any]"], None]


class LoadState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class Asset(ABC, Generic[T]):
    """Base class for anything that loads asynchronously.

    error holds the exception of a leaf's last failed load. Packs never
    set it; look at their leaves instead.
    """

    def __init__(self):
        self.error: BaseException | None = None
        self._listeners: list[Listener] = []

    @property
    @abstractmethod
    def state(self) -> LoadState:
        """Current load state."""

    @abstractmethod
    def load(self) -> None:
        """Start loading. Safe to call again at any time."""

    @abstractmethod
    def data_if_ready(self) -> T | None:
        """Return the loaded value if READY, else None."""

    def is_loading(self) -> bool:
        return self.state is LoadState.LOADING

    def failed(self) -> bool:
        return self.state is LoadState.FAILED

    def add_listener(self, callback: Listener) -> None:
        """Call callback(asset) after every completed load of this asset."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Listener) -> None:
        self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self)


class ImageAsset(Asset[T]):
    """A leaf asset decoded from one image source."""

    kind = "image"

    def __init__(self, src: str, decoder: ImageDecoder | None = None,
                 pack: ColorPacker = pack_rgba):
        super().__init__()
        self.src = src
        self.decoder = decoder if decoder is not None else PygameImageDecoder()
        self.pack = pack
        self.data: T | None = None
        self._state = LoadState.IDLE

    @property
    def state(self) -> LoadState:
        return self._state

    def data_if_ready(self) -> T | None:
        return self.data if self._state is LoadState.READY else None

    def load(self) -> None:
        self._state = LoadState.LOADING
        log.debug("Loading %s %s", self.kind, describe_source(self.src))
        try:
            future = self.decoder.decode(self.src)
        except Exception as e:
            self._fail(e)
            return
        future.add_done_callback(self._on_decoded)

    def _on_decoded(self, future: asyncio.Future[DecodedImage]) -> None:
        """Completion callback; runs on the event loop thread."""
        if future.cancelled():
            self._fail(DecodeError(self.src, "decode was cancelled"))
            return

        exc = future.exception()
        if exc is not None:
            self._fail(exc)
            return

        image = future.result()
        try:
            data = self._build(image)
        except Exception as e:
            log.exception("Cannot build %s from decoded %s", self.kind,
                          describe_source(self.src))
            self._fail(e, logged=True)
            return

        self.data = data
        self.error = None
        self._state = LoadState.READY
        log.debug("Loaded %s %s (%dx%d)", self.kind,
                  describe_source(self.src), image.width, image.height)
        self._notify()

    def _fail(self, exc: BaseException, logged: bool = False) -> None:
        self.error = exc
        self._state = LoadState.FAILED
        if not logged:
            log.warning("Failed to load %s %s: %s", self.kind,
                        describe_source(self.src), exc)
        self._notify()

    @abstractmethod
    def _build(self, image: DecodedImage) -> T:
        """Convert decoder output into this asset's data."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({describe_source(self.src)!r}, {self._state.name})"


class SpriteAsset(ImageAsset[Sprite]):
    """One image decoded into one Sprite."""

    kind = "sprite"

    def _build(self, image: DecodedImage) -> Sprite:
        return decode_sprite(image.buffer, image.width, image.height, self.pack)


class SpriteMapAsset(ImageAsset[SpriteMap]):
    """A vertical atlas decoded into sprites_number equal-height Sprites."""

    kind = "atlas"

    def __init__(self, src: str, sprites_number: int,
                 decoder: ImageDecoder | None = None,
                 pack: ColorPacker = pack_rgba):
        if sprites_number < 1:
            raise ValueError(f"Atlas needs at least one frame, got {sprites_number}")
        super().__init__(src, decoder, pack)
        self.sprites_number = sprites_number

    def _build(self, image: DecodedImage) -> SpriteMap:
        return decode_atlas(image.buffer, image.width, image.height,
                            self.sprites_number, self.pack)


class AssetPack(Asset[dict[str, Any]]):
    """A named collection of child assets loaded and polled as one.

    The pack owns its children. It stores no data of its own:
    data_if_ready() builds a {name: child data} dict on request once every
    child in the subtree is READY.
    """

    def __init__(self, assets: Mapping[str, Asset[Any]] | None = None,
                 **named: Asset[Any]):
        super().__init__()
        self.assets: dict[str, Asset[Any]] = dict(assets or {})
        self.assets.update(named)
        for child in self.assets.values():
            child.add_listener(self._on_child_done)

    @property
    def state(self) -> LoadState:
        if self.failed():
            return LoadState.FAILED
        if self.is_loading():
            return LoadState.LOADING
        if all(child.state is LoadState.READY for child in self.assets.values()):
            return LoadState.READY
        return LoadState.IDLE

    def load(self) -> None:
        log.debug("Loading pack of %d assets", len(self.assets))
        for child in self.assets.values():
            child.load()

    def is_loading(self) -> bool:
        return any(child.is_loading() for child in self.assets.values())

    def failed(self) -> bool:
        return any(child.failed() for child in self.assets.values())

    def data_if_ready(self) -> dict[str, Any] | None:
        if self.state is not LoadState.READY:
            return None
        return {name: child.data_if_ready() for name, child in self.assets.items()}

    def _on_child_done(self, child: Asset[Any]) -> None:
        if not self.is_loading():
            self._notify()

    def leaves(self, prefix: str = "") -> Iterator[tuple[str, Asset[Any]]]:
        """Yield (dotted_name, asset) for every non-pack asset in the subtree."""
        for name, child in self.assets.items():
            path = f"{prefix}.{name}" if prefix else name
            if isinstance(child, AssetPack):
                yield from child.leaves(path)
            else:
                yield path, child

    def items(self):
        return self.assets.items()

    def __getitem__(self, name: str) -> Asset[Any]:
        return self.assets[name]

    def __contains__(self, name: object) -> bool:
        return name in self.assets

    def __iter__(self) -> Iterator[str]:
        return iter(self.assets)

    def __len__(self) -> int:
        return len(self.assets)

    def __repr__(self) -> str:
        return f"AssetPack({list(self.assets)!r}, {self.state.name})"


async def wait_until_loaded(asset: Asset[Any], interval: float = 0.05,
                            timeout: float | None = None) -> Asset[Any]:
    """Poll asset.is_loading() until it turns False.

    Raises:
        TimeoutError: If timeout seconds pass while still loading.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout if timeout is not None else None
    while asset.is_loading():
        if deadline is not None and loop.time() >= deadline:
            raise TimeoutError(f"{asset!r} still loading after {timeout}s")
        await asyncio.sleep(interval)
    return asset
