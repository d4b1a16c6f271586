# firmware/merge.py
from __future__ import annotations

from typing import Iterable, List

from .block import DATA_AREA_SIZE, FLAG_FAMILY_ID_PRESENT, Block
from .errors import EmptyMerge, RegionSizeMismatch
from .map import FAMILY_ID, USER_SCRIPT, USER_SCRIPT_BLOCK_PAYLOAD


def iter_chunks(data: bytes | None, chunk_size: int) -> Iterable[bytes]:
    if not data:
        return
    for i in range(0, len(data), chunk_size):
        yield data[i:i+chunk_size]


# ---- Фильтр: убрать старое содержимое региона ----
def filter_region(blocks: List[Block], region_start: int, region_end: int) -> List[Block]:
    """
    Выкинуть блоки, чей target_addr попадает в [region_start, region_end].
    Номера блоков не трогаем - их пересчитает merge_blocks().
    """
    return [b for b in blocks if not region_start <= b.target_addr <= region_end]


# ---- Нарезка образа региона на блоки ----
def split_region(image: bytes, region_start: int,
                 payload_size: int = USER_SCRIPT_BLOCK_PAYLOAD,
                 family_id: int = FAMILY_ID) -> List[Block]:
    if not 0 < payload_size <= DATA_AREA_SIZE:
        raise ValueError(f"payload_size must be 1..{DATA_AREA_SIZE}")
    if region_start == USER_SCRIPT.start and len(image) != USER_SCRIPT.size:
        # регион скрипта загрузчик читает целиком, короткий образ оставил бы старые байты
        raise RegionSizeMismatch(len(image), payload_size, expected=USER_SCRIPT.size)
    if len(image) % payload_size != 0:
        raise RegionSizeMismatch(len(image), payload_size)

    return [
        Block(
            target_addr=region_start + i * payload_size,
            payload_size=payload_size,
            data=chunk,
            flags=FLAG_FAMILY_ID_PRESENT,
            family_id=family_id,
        )
        for i, chunk in enumerate(iter_chunks(image, payload_size))
    ]


# ---- Слияние и перенумерация ----
def merge_blocks(base_blocks: List[Block], script_blocks: List[Block]) -> List[Block]:
    """
    Базовые блоки, затем блоки региона. Каждый блок несёт свой абсолютный адрес,
    так что порядок нужен только для воспроизводимости результата.
    """
    merged = list(base_blocks) + list(script_blocks)
    if not merged:
        raise EmptyMerge()
    total = len(merged)
    return [b.renumbered(i, total) for i, b in enumerate(merged)]
