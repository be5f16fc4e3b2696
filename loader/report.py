"""
SpritePack Loader Report - one status line per leaf asset.
"""

from __future__ import annotations

from typing import Any

from spritepack.assets import Asset, AssetPack, LoadState
from spritepack.sprites import Sprite, SpriteMap


def describe_asset(asset: Asset[Any]) -> str:
    """Describe a leaf asset's state and loaded data."""
    state = asset.state
    if state is LoadState.FAILED:
        return f"FAILED  {asset.error}"
    if state is not LoadState.READY:
        return state.name

    data = asset.data_if_ready()
    if isinstance(data, SpriteMap):
        return (f"READY  atlas {len(data)} x "
                f"{data.frame_width}x{data.frame_height}")
    if isinstance(data, Sprite):
        return f"READY  sprite {data.width}x{data.height}"
    return "READY"


def report_lines(pack: AssetPack) -> list[str]:
    """Return aligned "name  status" lines for every leaf of the pack."""
    leaves = list(pack.leaves())
    if not leaves:
        return []
    width = max(len(name) for name, _ in leaves)
    return [f"{name.ljust(width)}  {describe_asset(asset)}"
            for name, asset in leaves]
