import pytest

from uf2_tool.firmware.block import FLAG_FAMILY_ID_PRESENT, Block, serialize_container
from uf2_tool.firmware.map import FAMILY_ID, FLASH_BASE, USER_SCRIPT
from uf2_tool.firmware.merge import merge_blocks


def firmware_blocks(count: int, start: int = FLASH_BASE, payload_size: int = 256) -> list:
    """Прошивка из count блоков подряд, как её выдаёт SDK, с уже выставленной нумерацией."""
    blocks = [
        Block(
            target_addr=start + i * payload_size,
            payload_size=payload_size,
            data=bytes([i & 0xFF]) * payload_size,
            flags=FLAG_FAMILY_ID_PRESENT,
            family_id=FAMILY_ID,
        )
        for i in range(count)
    ]
    return merge_blocks(blocks, [])


@pytest.fixture
def base_blocks():
    return firmware_blocks(128)


@pytest.fixture
def base_image(base_blocks):
    return serialize_container(base_blocks)


@pytest.fixture
def colliding_image():
    # 128 блоков прошивки + 4 устаревших блока в регионе скрипта
    stale = firmware_blocks(4, start=USER_SCRIPT.start)
    return serialize_container(merge_blocks(firmware_blocks(128), stale))


@pytest.fixture
def demo_script():
    return b"---demo\nprint(1)\n"
