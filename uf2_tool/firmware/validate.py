# firmware/validate.py
"""
Финальная проверка собранного контейнера перед выдачей.
Любая ошибка фатальна: такой образ нельзя заливать в устройство.
"""
from __future__ import annotations

from typing import List

from .block import Block
from .errors import (
    DuplicateAddress,
    MissingFamilyFlag,
    NonContiguousNumbering,
    RegionBlockCount,
    RegionStride,
)
from .map import FAMILY_ID, USER_SCRIPT_BLOCK_PAYLOAD


def validate_container(blocks: List[Block], region_start: int, region_end: int,
                       expected_region_blocks: int,
                       payload_size: int = USER_SCRIPT_BLOCK_PAYLOAD,
                       family_id: int = FAMILY_ID) -> None:
    total = len(blocks)

    # (a) нумерация 0..n-1 и одинаковый num_blocks
    for i, b in enumerate(blocks):
        if b.block_no != i:
            raise NonContiguousNumbering(f"block at position {i} has block_no {b.block_no}")
        if b.num_blocks != total:
            raise NonContiguousNumbering(f"block {i} declares num_blocks {b.num_blocks}, container has {total}")

    # (b) адреса не повторяются
    seen = {}
    for b in blocks:
        if b.target_addr in seen:
            raise DuplicateAddress(
                f"0x{b.target_addr:08X} in blocks {seen[b.target_addr]} and {b.block_no}"
            )
        seen[b.target_addr] = b.block_no

    # (c) регион покрыт ровно нужным числом блоков подряд
    region = [b for b in blocks if region_start <= b.target_addr <= region_end]
    if len(region) != expected_region_blocks:
        raise RegionBlockCount(f"{len(region)} region blocks, expected {expected_region_blocks}")
    addrs = sorted(b.target_addr for b in region)
    for i, addr in enumerate(addrs):
        want = region_start + i * payload_size
        if addr != want:
            raise RegionStride(f"region block {i} at 0x{addr:08X}, expected 0x{want:08X}")

    # (d) у блоков региона есть family ID устройства
    for b in region:
        if not b.has_family_id:
            raise MissingFamilyFlag(f"block {b.block_no} at 0x{b.target_addr:08X} has no family-id flag")
        if b.family_id != family_id:
            raise MissingFamilyFlag(
                f"block {b.block_no} family 0x{(b.family_id or 0):08X}, expected 0x{family_id:08X}"
            )
