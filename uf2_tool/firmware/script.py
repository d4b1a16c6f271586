# firmware/script.py
"""Образ региона пользовательского скрипта.

Регион занимает последние 16 КБ флеша и устроен так:

* слово статуса (4 байта, little-endian): младший полубайт - признак
  скрипта, биты 4..15 - версия формата, биты 16..31 - длина скрипта;
* имя скрипта (32 байта, строка с завершающим NUL);
* сам скрипт, остаток региона заполнен 0xFF (стёртый флеш).

Загрузчик проверяет признак и длину, затем выполняет скрипт.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ScriptTooLarge, UF2Error
from .map import USER_SCRIPT_SIZE

# Смещения полей внутри региона
STATUS_OFF = 0
STATUS_SIZE = 4
NAME_OFF = 4
NAME_SIZE = 32
SCRIPT_OFF = NAME_OFF + NAME_SIZE
MAX_SCRIPT_LEN = USER_SCRIPT_SIZE - STATUS_SIZE - NAME_SIZE  # 16348

ERASED = 0xFF

# Признаки в младшем полубайте статуса
SCRIPT_PRESENT = 0xA
SCRIPT_CLEARED = 0xC
SCRIPT_DEFAULT = 0xF  # всё, кроме PRESENT/CLEARED, прошивка считает «скрипт по умолчанию»

SCRIPT_VERSION = 0x001

NAME_MARKER = b"---"


@dataclass(frozen=True)
class StatusWord:
    """Упакованное слово статуса региона."""

    magic: int
    version: int
    length: int

    def __post_init__(self):
        if not 0 <= self.magic <= 0xF:
            raise ValueError(f"magic {self.magic:#x} does not fit in 4 bits")
        if not 0 <= self.version <= 0xFFF:
            raise ValueError(f"version {self.version:#x} does not fit in 12 bits")
        if not 0 <= self.length <= 0xFFFF:
            raise ValueError(f"length {self.length} does not fit in 16 bits")

    def pack(self) -> int:
        return self.magic | (self.version << 4) | (self.length << 16)

    @classmethod
    def unpack(cls, word: int) -> StatusWord:
        return cls(magic=word & 0xF, version=(word >> 4) & 0xFFF, length=(word >> 16) & 0xFFFF)

    @property
    def kind(self) -> str:
        if self.magic == SCRIPT_PRESENT:
            return "user"
        if self.magic == SCRIPT_CLEARED:
            return "cleared"
        return "default"


@dataclass(frozen=True)
class ScriptImage:
    """Разобранное содержимое региона."""

    status: StatusWord
    name: str
    script: bytes

    @classmethod
    def from_bytes(cls, region: bytes) -> ScriptImage:
        if len(region) != USER_SCRIPT_SIZE:
            raise ValueError(f"Регион {len(region)} байт, ожидалось {USER_SCRIPT_SIZE}")
        status = StatusWord.unpack(int.from_bytes(region[STATUS_OFF:STATUS_OFF + STATUS_SIZE], "little"))
        raw_name = region[NAME_OFF:NAME_OFF + NAME_SIZE]
        name = raw_name.split(b"\x00", 1)[0].rstrip(bytes([ERASED])).decode("utf-8", errors="replace")
        script = b""
        if status.kind == "user":
            if status.length > MAX_SCRIPT_LEN:
                raise UF2Error(f"Длина скрипта в статусе {status.length} > {MAX_SCRIPT_LEN}")
            script = region[SCRIPT_OFF:SCRIPT_OFF + status.length]
        return cls(status=status, name=name, script=script)


def derive_name(script: bytes) -> str:
    """Имя из первой строки вида '---имя'; без маркера имя пустое."""

    first_line = script.split(b"\n", 1)[0]
    if not first_line.startswith(NAME_MARKER):
        return ""
    return first_line[len(NAME_MARKER):].decode("utf-8", errors="ignore").strip()


def encode_name(name: str) -> bytes:
    """UTF-8 имя не длиннее NAME_SIZE - 1 байт, обрезанное по границе символа, плюс NUL."""

    # суррогаты из argv (неразборчивые байты имени файла) просто отбрасываем
    raw = name.encode("utf-8", errors="ignore")[:NAME_SIZE - 1]
    # обрезка могла попасть внутрь многобайтного символа - отбрасываем хвост
    raw = raw.decode("utf-8", errors="ignore").encode("utf-8")
    return raw + b"\x00"


def _region(status: StatusWord, name: str, script: bytes) -> bytes:
    buf = bytearray([ERASED] * USER_SCRIPT_SIZE)
    buf[STATUS_OFF:STATUS_OFF + STATUS_SIZE] = status.pack().to_bytes(STATUS_SIZE, "little")
    encoded = encode_name(name)
    buf[NAME_OFF:NAME_OFF + len(encoded)] = encoded
    buf[SCRIPT_OFF:SCRIPT_OFF + len(script)] = script
    return bytes(buf)


def build_script_image(script: bytes, name: str = "") -> bytes:
    """Собрать 16-килобайтный образ региона со скриптом."""

    if len(script) > MAX_SCRIPT_LEN:
        raise ScriptTooLarge(len(script), MAX_SCRIPT_LEN)
    status = StatusWord(magic=SCRIPT_PRESENT, version=SCRIPT_VERSION, length=len(script))
    return _region(status, name, bytes(script))


def build_cleared_image() -> bytes:
    """Регион с признаком «скрипт удалён»: пользовательский скрипт при загрузке не запускается."""

    status = StatusWord(magic=SCRIPT_CLEARED, version=SCRIPT_VERSION, length=0)
    return _region(status, "", b"")
