# firmware/errors.py
"""
Ошибки сборки UF2. Все фатальные: повтор не поможет, нужно исправить вход.
Наследуются от ValueError, чтобы вызывающий код мог ловить их как обычную
ошибку данных.
"""


class UF2Error(ValueError):
    """Базовая ошибка контейнера/образа."""


class MalformedContainer(UF2Error):
    def __init__(self, reason: str, offset: int):
        self.reason = reason
        self.offset = offset
        super().__init__(f"Повреждённый UF2: {reason} (offset 0x{offset:X})")


class ScriptTooLarge(UF2Error):
    def __init__(self, actual: int, maximum: int):
        self.actual = actual
        self.maximum = maximum
        super().__init__(f"Скрипт слишком большой: {actual} байт, максимум {maximum}")


class RegionSizeMismatch(UF2Error):
    """Внутренняя ошибка: образ региона не того размера или не делится на блоки ровно."""

    def __init__(self, size: int, payload_size: int, expected: int | None = None):
        self.size = size
        self.payload_size = payload_size
        self.expected = expected
        if expected is not None:
            super().__init__(f"Размер образа региона {size}, ожидалось ровно {expected}")
        else:
            super().__init__(f"Размер образа региона {size} не кратен {payload_size}")


class EmptyMerge(UF2Error):
    def __init__(self):
        super().__init__("Результат слияния пуст: нет ни одного блока")


class ValidationError(UF2Error):
    """Собранный образ нарушает инвариант и не должен уходить на устройство."""

    kind = "validation"

    def __init__(self, message: str):
        super().__init__(f"{self.kind}: {message}")


class NonContiguousNumbering(ValidationError):
    kind = "numbering"


class DuplicateAddress(ValidationError):
    kind = "duplicate-address"


class RegionBlockCount(ValidationError):
    kind = "region-count"


class RegionStride(ValidationError):
    kind = "region-stride"


class MissingFamilyFlag(ValidationError):
    kind = "family-id"
