"""
SpritePack Manifest - building asset trees from JSON.

Manifest format:
  {
    "base_path": "images",                       (optional)
    "assets": {
      "hero": "hero.png",                        bare string = sprite
      "walk": {"type": "atlas", "src": "walk.png", "frames": 4},
      "ui":   {"type": "pack", "assets": {...}}
    }
  }

base_path is resolved relative to the manifest file's directory.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from spritepack.assets import Asset, AssetPack, SpriteAsset, SpriteMapAsset
from spritepack.decoder import ImageDecoder, PygameImageDecoder

log = logging.getLogger(__name__)

TYPE_SPRITE = "sprite"
TYPE_ATLAS = "atlas"
TYPE_PACK = "pack"

VALID_TYPES = {TYPE_SPRITE, TYPE_ATLAS, TYPE_PACK}


class ManifestError(ValueError):
    """A manifest entry is malformed. path is the dotted asset name."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path or '<manifest>'}: {message}")
        self.path = path


def build_asset(path: str, entry: Any, decoder: ImageDecoder) -> Asset[Any]:
    """Build one asset from a manifest entry."""
    if isinstance(entry, str):
        return SpriteAsset(entry, decoder)
    if not isinstance(entry, dict):
        raise ManifestError(path, f"entry must be a string or object, got {entry!r}")

    kind = entry.get("type", TYPE_SPRITE)
    if kind not in VALID_TYPES:
        raise ManifestError(path, f"unknown asset type {kind!r}")

    if kind == TYPE_PACK:
        return build_pack(entry.get("assets"), decoder, prefix=path)

    src = entry.get("src")
    if not isinstance(src, str) or not src:
        raise ManifestError(path, "missing 'src'")

    if kind == TYPE_ATLAS:
        frames = entry.get("frames")
        # bool is an int subclass; reject it explicitly
        if not isinstance(frames, int) or isinstance(frames, bool) or frames < 1:
            raise ManifestError(path, f"'frames' must be a positive integer, got {frames!r}")
        return SpriteMapAsset(src, frames, decoder)

    return SpriteAsset(src, decoder)


def build_pack(entries: Any, decoder: ImageDecoder, prefix: str = "") -> AssetPack:
    """Build an AssetPack from a name -> entry mapping, keeping its order."""
    if not isinstance(entries, dict):
        raise ManifestError(prefix, "'assets' must be an object")

    assets: dict[str, Asset[Any]] = {}
    for name, entry in entries.items():
        if not name or "." in name:
            raise ManifestError(prefix, f"invalid asset name {name!r}")
        path = f"{prefix}.{name}" if prefix else name
        assets[name] = build_asset(path, entry, decoder)
    return AssetPack(assets)


def load_manifest(manifest_path: str | Path,
                  decoder: ImageDecoder | None = None) -> AssetPack:
    """Read a manifest file and build its (not yet loaded) AssetPack.

    Args:
        manifest_path: Path to the JSON manifest.
        decoder: Decoder for every asset. Defaults to a PygameImageDecoder
            rooted at the manifest's base_path.

    Raises:
        ManifestError: If the JSON is invalid or an entry is malformed.
        OSError: If the file cannot be read.
    """
    manifest_path = Path(manifest_path)
    try:
        doc = json.loads(manifest_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ManifestError("", f"invalid JSON: {e}") from e
    if not isinstance(doc, dict):
        raise ManifestError("", "manifest must be a JSON object")

    base_path = doc.get("base_path", "")
    if not isinstance(base_path, str):
        raise ManifestError("", f"'base_path' must be a string, got {base_path!r}")

    if decoder is None:
        base_path = manifest_path.parent / base_path
        decoder = PygameImageDecoder(base_path=base_path)

    pack = build_pack(doc.get("assets"), decoder)
    log.info("Manifest %s declares %d assets", manifest_path,
             sum(1 for _ in pack.leaves()))
    return pack
