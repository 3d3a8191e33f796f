from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StoreState(str, Enum):
    """
    Назначение:
        Состояние жизненного цикла VirtualRowStore.
    """

    UNINDEXED = "unindexed"
    INDEXING = "indexing"
    READY = "ready"


@dataclass(frozen=True)
class IndexEntry:
    """
    Назначение:
        Позиция одной логической строки в источнике.

    Поля:
        offset: int
            Смещение первого байта строки от начала источника.
        length: int
            Длина в байтах, включая завершающий перевод строки (если он есть).
    """

    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True)
class ParsedRow:
    """
    Назначение:
        Декодированная и разбитая на поля строка.
        Транзиентна: всегда восстанавливается из байтов источника по индексу.
    """

    row_number: int
    cells: tuple[str, ...]


@dataclass(frozen=True)
class CacheStats:
    size: int
    capacity: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict:
        return {
            "size": self.size,
            "capacity": self.capacity,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
        }
