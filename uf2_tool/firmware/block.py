# firmware/block.py
"""
Разбор и сборка UF2-контейнера.

Блок UF2 - 512 байт: заголовок 8 x uint32 (little-endian), область данных
476 байт и завершающая магия. Формат задан Microsoft (github.com/microsoft/uf2).
"""
from __future__ import annotations

import struct
from dataclasses import dataclass, replace
from typing import List, Optional

from .errors import MalformedContainer

BLOCK_SIZE = 512
HEADER_SIZE = 32
DATA_AREA_SIZE = 476  # BLOCK_SIZE - HEADER_SIZE - 4

MAGIC_START0 = 0x0A324655  # "UF2\n"
MAGIC_START1 = 0x9E5D5157
MAGIC_END = 0x0AB16F30

# флаги
FLAG_NOT_MAIN_FLASH = 0x00000001
FLAG_FILE_CONTAINER = 0x00001000
FLAG_FAMILY_ID_PRESENT = 0x00002000

HEADER = struct.Struct("<8I")
TRAILER = struct.Struct("<I")


@dataclass(frozen=True)
class Block:
    target_addr: int
    payload_size: int
    data: bytes = b""
    flags: int = 0
    block_no: int = 0
    num_blocks: int = 0
    family_id: Optional[int] = None
    file_size: int = 0  # слово 28, когда флаг family ID не выставлен

    def __post_init__(self):
        if self.payload_size > DATA_AREA_SIZE:
            raise ValueError(f"payload_size {self.payload_size} > {DATA_AREA_SIZE}")
        if len(self.data) > DATA_AREA_SIZE:
            raise ValueError(f"data area is {len(self.data)} bytes, max {DATA_AREA_SIZE}")
        # область данных всегда храним целиком, чтобы блоки сравнивались побайтно
        object.__setattr__(self, "data", bytes(self.data).ljust(DATA_AREA_SIZE, b"\x00"))

    @property
    def payload(self) -> bytes:
        return self.data[:self.payload_size]

    @property
    def has_family_id(self) -> bool:
        return bool(self.flags & FLAG_FAMILY_ID_PRESENT)

    def renumbered(self, block_no: int, num_blocks: int) -> Block:
        return replace(self, block_no=block_no, num_blocks=num_blocks)

    def to_bytes(self) -> bytes:
        header = HEADER.pack(
            MAGIC_START0,
            MAGIC_START1,
            self.flags,
            self.target_addr,
            self.payload_size,
            self.block_no,
            self.num_blocks,
            (self.family_id or 0) if self.has_family_id else self.file_size,
        )
        return header + self.data + TRAILER.pack(MAGIC_END)


# ---- Разбор ----
def parse_block(raw: bytes, offset: int = 0) -> Block:
    """Декодировать один 512-байтный блок; offset нужен только для сообщений об ошибке."""
    if len(raw) != BLOCK_SIZE:
        raise MalformedContainer(f"block is {len(raw)} bytes", offset)

    magic0, magic1, flags, target_addr, payload_size, block_no, num_blocks, family = \
        HEADER.unpack_from(raw, 0)
    (magic_end,) = TRAILER.unpack_from(raw, BLOCK_SIZE - 4)

    if magic0 != MAGIC_START0 or magic1 != MAGIC_START1 or magic_end != MAGIC_END:
        raise MalformedContainer("bad magic", offset)
    if payload_size > DATA_AREA_SIZE:
        raise MalformedContainer(f"payload overflow ({payload_size} > {DATA_AREA_SIZE})", offset)

    return Block(
        target_addr=target_addr,
        payload_size=payload_size,
        data=raw[HEADER_SIZE:BLOCK_SIZE - 4],
        flags=flags,
        block_no=block_no,
        num_blocks=num_blocks,
        family_id=family if flags & FLAG_FAMILY_ID_PRESENT else None,
        file_size=0 if flags & FLAG_FAMILY_ID_PRESENT else family,
    )


def parse_container(data: bytes) -> List[Block]:
    if len(data) % BLOCK_SIZE != 0:
        raise MalformedContainer(
            f"length {len(data)} not block-aligned (multiple of {BLOCK_SIZE} expected)", len(data)
        )
    return [parse_block(data[off:off + BLOCK_SIZE], off) for off in range(0, len(data), BLOCK_SIZE)]


# ---- Сборка ----
def serialize_container(blocks: List[Block]) -> bytes:
    return b"".join(b.to_bytes() for b in blocks)
