import struct

import pytest

from uf2_tool.firmware.block import FLAG_FILE_CONTAINER, Block, parse_container
from uf2_tool.firmware.errors import MalformedContainer, ScriptTooLarge
from uf2_tool.firmware.flash import FlashImage
from uf2_tool.firmware.io import build_uf2, build_uf2_file, clear_uf2, clear_uf2_file
from uf2_tool.firmware.map import USER_SCRIPT
from uf2_tool.firmware.script import MAX_SCRIPT_LEN, NAME_OFF, SCRIPT_PRESENT, StatusWord
from uf2_tool.firmware.validate import validate_container


def region_blocks(blocks):
    return [b for b in blocks if USER_SCRIPT.contains(b.target_addr)]


def test_end_to_end(base_image, demo_script):
    out = parse_container(build_uf2(demo_script, base_image))
    assert len(out) == 192
    assert [b.block_no for b in out] == list(range(192))
    assert all(b.num_blocks == 192 for b in out)
    validate_container(out, USER_SCRIPT.start, USER_SCRIPT.end, 64)

    region = b"".join(b.payload for b in region_blocks(out))
    status = StatusWord.unpack(int.from_bytes(region[:4], "little"))
    assert status.magic == SCRIPT_PRESENT
    assert status.length == len(demo_script) == 17
    assert region[NAME_OFF:NAME_OFF + 32] == b"demo\x00" + b"\xFF" * 27


def test_base_blocks_preserved(base_image, base_blocks, demo_script):
    out = parse_container(build_uf2(demo_script, base_image))
    assert [(b.target_addr, b.data) for b in out[:128]] == [(b.target_addr, b.data) for b in base_blocks]


def test_deterministic(base_image, demo_script):
    assert build_uf2(demo_script, base_image) == build_uf2(demo_script, base_image)


def test_collision(colliding_image, demo_script):
    assert len(region_blocks(parse_container(colliding_image))) == 4
    out = parse_container(build_uf2(demo_script, colliding_image))
    assert len(out) == 128 + 64
    assert len(region_blocks(out)) == 64
    assert FlashImage().apply(out).script().script == demo_script


def test_no_base(demo_script):
    out = parse_container(build_uf2(demo_script))
    assert len(out) == 64
    assert out[0].target_addr == USER_SCRIPT.start


def test_explicit_name_overrides_marker(demo_script):
    out = parse_container(build_uf2(demo_script, name="other"))
    assert FlashImage().apply(out).script().name == "other"


def test_rebuild_replaces_previous_script(base_image):
    first = build_uf2(b"---one\nprint(1)\n", base_image)
    second = parse_container(build_uf2(b"---two\nprint(2)\n", first))
    assert len(second) == 192
    assert FlashImage().apply(second).script().name == "two"


def test_corrupt_base(demo_script):
    with pytest.raises(MalformedContainer):
        build_uf2(demo_script, b"\x00" * 513)


def test_oversize_script(base_image):
    with pytest.raises(ScriptTooLarge):
        build_uf2(b"x" * (MAX_SCRIPT_LEN + 1), base_image)


def test_clear(base_image):
    out = parse_container(clear_uf2(base_image))
    assert len(out) == 192
    assert FlashImage().apply(out).script().status.kind == "cleared"


def test_build_file(tmp_path, base_image, demo_script):
    (tmp_path / "base.uf2").write_bytes(base_image)
    (tmp_path / "demo.lua").write_bytes(demo_script)
    result = build_uf2_file(tmp_path / "demo.lua", tmp_path / "out" / "demo.uf2", tmp_path / "base.uf2")
    assert result["blocks"] == 192
    assert result["name"] == "demo"
    assert result["script_bytes"] == 17
    assert (tmp_path / "out" / "demo.uf2").read_bytes() == build_uf2(demo_script, base_image)


def test_clear_file(tmp_path):
    result = clear_uf2_file(tmp_path / "clear.uf2")
    assert result["blocks"] == 64
    assert result["base"] is None


def test_base_header_words_pass_through():
    # блок без family ID: слово 28 - это fileSize, его нельзя затирать
    extra = bytearray(Block(target_addr=0x20000000, payload_size=4, data=b"abcd",
                            flags=FLAG_FILE_CONTAINER, block_no=128, num_blocks=129).to_bytes())
    struct.pack_into("<I", extra, 28, 0x1234)
    out = build_uf2(b"print(1)\n", bytes(extra))
    assert out[28:32] == b"\x34\x12\x00\x00"
    assert out[32:508] == bytes(extra[32:508])
    assert parse_container(out)[0].file_size == 0x1234


def test_base_with_file_container_block(base_image):
    extra = Block(target_addr=0x20000000, payload_size=4, data=b"abcd",
                  flags=FLAG_FILE_CONTAINER, file_size=0x1234)
    out = parse_container(build_uf2(b"print(1)\n", base_image + extra.to_bytes()))
    assert len(out) == 128 + 1 + 64
    assert out[128].file_size == 0x1234
    assert out[128].flags == FLAG_FILE_CONTAINER


def test_undecodable_name_bytes_dropped():
    out = parse_container(build_uf2(b"x", name="a\udcffb"))
    assert FlashImage().apply(out).script().name == "ab"
