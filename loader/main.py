"""
SpritePack Loader - Entry point.

Loads every asset declared in a manifest, polls the pack until nothing
is loading, and prints one line per asset.

Usage:
    python -m loader.main MANIFEST [--interval S] [--timeout S] [--debug]

Exit status: 0 all assets ready, 1 a load failed or timed out,
2 the manifest could not be read.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from loader.report import report_lines
from spritepack.assets import AssetPack, LoadState, wait_until_loaded
from spritepack.manifest import ManifestError, load_manifest

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BAD_MANIFEST = 2


async def run_loader(pack: AssetPack, interval: float,
                     timeout: float | None) -> int:
    """Load the pack and wait for it to settle. Returns an exit status."""
    def _on_settled(asset):
        log.info("Pack settled (%s)", asset.state.name)

    pack.add_listener(_on_settled)
    pack.load()
    log.info("Loading %d assets", len(list(pack.leaves())))

    try:
        await wait_until_loaded(pack, interval=interval, timeout=timeout)
    except TimeoutError:
        log.error("Timed out after %ss", timeout)
        return EXIT_FAILED

    if pack.state is LoadState.READY:
        return EXIT_OK
    return EXIT_FAILED


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="SpritePack Loader")
    parser.add_argument("manifest", help="Path to a JSON asset manifest")
    parser.add_argument("--interval", type=float, default=0.05,
                        help="Polling interval in seconds")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Give up after this many seconds")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        pack = load_manifest(args.manifest)
    except (ManifestError, OSError) as e:
        log.error("Cannot use manifest %s: %s", args.manifest, e)
        return EXIT_BAD_MANIFEST

    status = asyncio.run(run_loader(pack, args.interval, args.timeout))
    for line in report_lines(pack):
        print(line)
    return status


if __name__ == "__main__":
    sys.exit(main())
