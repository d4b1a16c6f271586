# firmware/flash.py
import zlib
from typing import List

from .block import FLAG_FILE_CONTAINER, FLAG_NOT_MAIN_FLASH, Block
from .map import FLASH, REGIONS, USER_SCRIPT
from .script import ScriptImage


class FlashImage:
    """
    Очень простая модель флеша устройства:
    - буфер размером с FLASH, заполненный 0xFF (стёртое состояние)
    - apply() раскладывает блоки UF2 по их адресам, как это делает загрузчик
    - умеет читать байты по абсолютному адресу и разбирать регион скрипта
    """
    def __init__(self):
        self.data = bytearray([0xFF] * FLASH.size)
        self.written = 0
        self.skipped = 0

    def apply(self, blocks: List[Block]) -> "FlashImage":
        for b in blocks:
            if b.flags & (FLAG_NOT_MAIN_FLASH | FLAG_FILE_CONTAINER):
                # загрузчик такие блоки во флеш не пишет
                self.skipped += 1
                continue
            if not FLASH.contains(b.target_addr) or not FLASH.contains(b.target_addr + b.payload_size - 1):
                # RAM, OTP и прочее, что не ложится во флеш
                self.skipped += 1
                continue
            off = b.target_addr - FLASH.start
            self.data[off:off + b.payload_size] = b.payload
            self.written += 1
        return self

    def read(self, addr: int, size: int) -> bytes:
        off = addr - FLASH.start
        end = off + size
        if off < 0 or size < 0 or end > len(self.data):
            raise ValueError("Read out of range")
        return bytes(self.data[off:end])

    def script(self) -> ScriptImage:
        return ScriptImage.from_bytes(self.read(USER_SCRIPT.start, USER_SCRIPT.size))

    def crc32(self) -> int:
        return zlib.crc32(self.data) & 0xFFFFFFFF

    def info(self) -> dict:
        s = self.script()
        return {
            "regions": [r.__dict__ for r in REGIONS],
            "size": FLASH.size,
            "crc32": f"0x{self.crc32():08X}",
            "blocks_written": self.written,
            "blocks_skipped": self.skipped,
            "script": {
                "kind": s.status.kind,
                "status": f"0x{s.status.pack():08X}",
                "name": s.name,
                "length": len(s.script),
            },
        }


def describe_container(blocks: List[Block]) -> dict:
    """Сводка по контейнеру для команды info."""
    if not blocks:
        return {"blocks": 0}
    addrs = [b.target_addr for b in blocks]
    families = sorted({b.family_id for b in blocks if b.family_id is not None})
    return {
        "blocks": len(blocks),
        "num_blocks": blocks[0].num_blocks,
        "first_addr": f"0x{min(addrs):08X}",
        "last_addr": f"0x{max(addrs):08X}",
        "payload_bytes": sum(b.payload_size for b in blocks),
        "families": [f"0x{f:08X}" for f in families],
        "region_blocks": sum(1 for a in addrs if USER_SCRIPT.contains(a)),
    }
