import asyncio
import logging

import pytest

from spritepack.assets import (
    AssetPack, LoadState, SpriteAsset, SpriteMapAsset, wait_until_loaded,
)
from spritepack.decoder import DecodedImage, DecodeError, PygameImageDecoder
from spritepack.sprites import PixelBufferError, Sprite, SpriteMap

from fakes import FakeDecoder, red, rows_image, settle, solid_image


def test_new_asset_is_idle(decoder):
    asset = SpriteAsset("a.png", decoder)
    assert asset.state is LoadState.IDLE
    assert not asset.is_loading()
    assert asset.data is None
    assert asset.data_if_ready() is None


@pytest.mark.asyncio
async def test_sprite_asset_loads(decoder):
    asset = SpriteAsset("a.png", decoder)
    asset.load()
    assert asset.is_loading()
    assert decoder.pending[0][0] == "a.png"

    decoder.complete("a.png", rows_image(2, 2))
    await settle()

    assert not asset.is_loading()
    assert asset.state is LoadState.READY
    assert isinstance(asset.data, Sprite)
    assert asset.data.row(0) == (red(1), red(1))
    assert asset.data_if_ready() is asset.data


@pytest.mark.asyncio
async def test_sprite_map_asset_loads(decoder):
    asset = SpriteMapAsset("walk.png", 3, decoder)
    asset.load()
    decoder.complete("walk.png", rows_image(4, 10))
    await settle()

    assert isinstance(asset.data, SpriteMap)
    assert len(asset.data) == 3
    assert asset.data.frame_height == 3


def test_sprite_map_asset_needs_frames(decoder):
    with pytest.raises(ValueError):
        SpriteMapAsset("walk.png", 0, decoder)


@pytest.mark.asyncio
async def test_last_completion_wins(decoder):
    asset = SpriteAsset("a.png", decoder)
    asset.load()
    asset.load()
    assert len(decoder.pending) == 2

    decoder.complete("a.png", solid_image(1, 1, (2, 2, 2, 2)), index=1)
    await settle()
    assert asset.data.pixels == (0x02020202,)
    assert not asset.is_loading()

    decoder.complete("a.png", solid_image(1, 1, (1, 1, 1, 1)), index=0)
    await settle()
    assert asset.data.pixels == (0x01010101,)


@pytest.mark.asyncio
async def test_reload_after_ready_restarts_cycle(decoder):
    asset = SpriteAsset("a.png", decoder)
    asset.load()
    decoder.complete("a.png", solid_image(1, 1))
    await settle()

    asset.load()
    assert asset.is_loading()
    assert asset.data_if_ready() is None
    assert asset.data is not None


@pytest.mark.asyncio
async def test_decode_failure_marks_failed(decoder, caplog):
    asset = SpriteAsset("missing.png", decoder)
    asset.load()
    with caplog.at_level(logging.WARNING, logger="spritepack.assets"):
        decoder.fail("missing.png", "no such file")
        await settle()

    assert asset.failed()
    assert not asset.is_loading()
    assert isinstance(asset.error, DecodeError)
    assert asset.error.source == "missing.png"
    assert asset.data_if_ready() is None
    assert "missing.png" in caplog.text


@pytest.mark.asyncio
async def test_bad_decoder_output_fails_loudly(decoder, caplog):
    asset = SpriteAsset("a.png", decoder)
    asset.load()
    with caplog.at_level(logging.ERROR, logger="spritepack.assets"):
        decoder.complete("a.png", DecodedImage(bytes(3), 1, 1))
        await settle()

    assert asset.state is LoadState.FAILED
    assert isinstance(asset.error, PixelBufferError)
    assert caplog.records[-1].levelno == logging.ERROR


@pytest.mark.asyncio
async def test_cancelled_decode_fails(decoder):
    asset = SpriteAsset("a.png", decoder)
    asset.load()
    decoder.future_for("a.png").cancel()
    await settle()

    assert asset.failed()
    assert isinstance(asset.error, DecodeError)


@pytest.mark.asyncio
async def test_success_after_failure_clears_error(decoder):
    asset = SpriteAsset("a.png", decoder)
    asset.load()
    decoder.fail("a.png")
    await settle()

    asset.load()
    decoder.complete("a.png", solid_image(1, 1))
    await settle()
    assert asset.state is LoadState.READY
    assert asset.error is None


def _three_pack(decoder):
    return AssetPack({
        "one": SpriteAsset("1.png", decoder),
        "two": SpriteAsset("2.png", decoder),
        "three": SpriteAsset("3.png", decoder),
    })


@pytest.mark.asyncio
async def test_pack_loads_children_in_order(decoder):
    pack = _three_pack(decoder)
    pack.load()
    assert [s for s, _ in decoder.pending] == ["1.png", "2.png", "3.png"]


@pytest.mark.asyncio
async def test_pack_aggregates_loading(decoder):
    pack = _three_pack(decoder)
    pack.load()
    assert pack.is_loading()

    decoder.complete("1.png", solid_image(1, 1))
    decoder.complete("3.png", solid_image(1, 1))
    await settle()
    assert not pack["one"].is_loading()
    assert pack["two"].is_loading()
    assert not pack["three"].is_loading()
    assert pack.is_loading()
    assert pack.data_if_ready() is None

    decoder.complete("2.png", solid_image(1, 1))
    await settle()
    assert not pack.is_loading()
    assert pack.state is LoadState.READY


@pytest.mark.asyncio
async def test_pack_data_view(decoder):
    pack = AssetPack(hero=SpriteAsset("hero.png", decoder),
                     walk=SpriteMapAsset("walk.png", 2, decoder))
    pack.load()
    decoder.complete("hero.png", solid_image(1, 1))
    decoder.complete("walk.png", rows_image(1, 4))
    await settle()

    data = pack.data_if_ready()
    assert list(data) == ["hero", "walk"]
    assert isinstance(data["hero"], Sprite)
    assert len(data["walk"]) == 2


@pytest.mark.asyncio
async def test_nested_pack_failure_propagates(decoder):
    inner = AssetPack(icon=SpriteAsset("icon.png", decoder))
    outer = AssetPack(ui=inner, hero=SpriteAsset("hero.png", decoder))
    outer.load()

    decoder.fail("icon.png")
    await settle()
    assert outer.failed()
    assert outer.is_loading()
    assert outer.state is LoadState.FAILED

    decoder.complete("hero.png", solid_image(1, 1))
    await settle()
    assert not outer.is_loading()
    assert outer.failed()
    assert outer.data_if_ready() is None


def test_pack_mapping_access(decoder):
    inner = AssetPack(icon=SpriteAsset("icon.png", decoder))
    pack = AssetPack({"ui": inner}, hero=SpriteAsset("hero.png", decoder))

    assert len(pack) == 2
    assert "ui" in pack
    assert list(pack) == ["ui", "hero"]
    assert pack["ui"] is inner
    assert [name for name, _ in pack.leaves()] == ["ui.icon", "hero"]


def test_empty_pack_is_ready():
    pack = AssetPack()
    pack.load()
    assert not pack.is_loading()
    assert pack.state is LoadState.READY
    assert pack.data_if_ready() == {}


@pytest.mark.asyncio
async def test_pack_notifies_when_settled(decoder):
    pack = AssetPack(a=SpriteAsset("a.png", decoder),
                     b=SpriteAsset("b.png", decoder))
    calls = []
    pack.add_listener(calls.append)
    pack.load()

    decoder.complete("a.png", solid_image(1, 1))
    await settle()
    assert calls == []

    decoder.fail("b.png")
    await settle()
    assert calls == [pack]


@pytest.mark.asyncio
async def test_leaf_listener_removed(decoder):
    asset = SpriteAsset("a.png", decoder)
    calls = []
    asset.add_listener(calls.append)
    asset.remove_listener(calls.append)
    asset.load()
    decoder.complete("a.png", solid_image(1, 1))
    await settle()
    assert calls == []


@pytest.mark.asyncio
async def test_wait_until_loaded(decoder):
    asset = SpriteAsset("a.png", decoder)
    asset.load()
    loop = asyncio.get_running_loop()
    loop.call_later(0.02, decoder.complete, "a.png", solid_image(1, 1))

    assert await wait_until_loaded(asset, interval=0.005, timeout=2) is asset
    assert asset.state is LoadState.READY


@pytest.mark.asyncio
async def test_wait_until_loaded_times_out(decoder):
    asset = SpriteAsset("a.png", decoder)
    asset.load()
    with pytest.raises(TimeoutError):
        await wait_until_loaded(asset, interval=0.005, timeout=0.02)


@pytest.mark.asyncio
async def test_packer_error_fails_asset(decoder, caplog):
    def broken_pack(r, g, b, a):
        raise OverflowError("packed value too large")

    asset = SpriteAsset("a.png", decoder, pack=broken_pack)
    asset.load()
    with caplog.at_level(logging.ERROR, logger="spritepack.assets"):
        decoder.complete("a.png", solid_image(1, 1))
        await settle()

    assert asset.state is LoadState.FAILED
    assert not asset.is_loading()
    assert isinstance(asset.error, OverflowError)
    assert caplog.records[-1].levelno == logging.ERROR


class SyncFailDecoder(FakeDecoder):
    def decode(self, source):
        raise RuntimeError("cannot start decode")


@pytest.mark.asyncio
async def test_decoder_raising_on_start_fails_and_pack_continues(decoder):
    pack = AssetPack(bad=SpriteAsset("bad.png", SyncFailDecoder()),
                     other=SpriteAsset("other.png", decoder))
    pack.load()

    assert pack["bad"].failed()
    assert isinstance(pack["bad"].error, RuntimeError)
    assert pack["other"].is_loading()

    decoder.complete("other.png", solid_image(1, 1))
    await settle()
    assert not pack.is_loading()
    assert pack.state is LoadState.FAILED


def test_load_without_event_loop_fails():
    asset = SpriteAsset("a.png", PygameImageDecoder())
    asset.load()

    assert asset.failed()
    assert not asset.is_loading()
    assert isinstance(asset.error, RuntimeError)


def test_pack_error_is_none(decoder):
    assert AssetPack(a=SpriteAsset("a.png", decoder)).error is None
