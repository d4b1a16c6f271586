# firmware/map.py
from dataclasses import dataclass

@dataclass(frozen=True)
class Region:
    name: str
    start: int
    size: int

    @property
    def end(self) -> int:
        """Последний адрес региона (включительно)."""
        return self.start + self.size - 1

    def contains(self, address: int) -> bool:
        return self.start <= address <= self.end

# RP2040 (Workshop Computer / blackbird): QSPI flash 2 МБ, отображённая в XIP с 0x10000000.
FLASH_BASE = 0x10000000
FLASH_SIZE = 0x200000

# Последние 16 КБ флеша отданы под пользовательский скрипт, загрузчик читает их при старте.
USER_SCRIPT_SIZE = 0x4000
USER_SCRIPT_OFFSET = 0x1FC000  # FLASH_SIZE - USER_SCRIPT_SIZE
USER_SCRIPT_BLOCK_PAYLOAD = 256
USER_SCRIPT_BLOCKS = 64  # USER_SCRIPT_SIZE / USER_SCRIPT_BLOCK_PAYLOAD

# UF2 family ID для RP2040
FAMILY_ID = 0xE48BFF56

FLASH = Region("FLASH", start=FLASH_BASE, size=FLASH_SIZE)
USER_SCRIPT = Region("USERSCRIPT", start=FLASH_BASE + USER_SCRIPT_OFFSET, size=USER_SCRIPT_SIZE)

REGIONS = [FLASH, USER_SCRIPT]
