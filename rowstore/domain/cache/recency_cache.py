from __future__ import annotations

from collections import OrderedDict
from typing import Generic, Hashable, Iterator, TypeVar

from rowstore.domain.models import CacheStats

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class RecencyCache(Generic[K, V]):
    """
    Назначение/ответственность:
        Ограниченное по размеру отображение key -> value с вытеснением
        давно не использованной записи (LRU).
    Инварианты/гарантии:
        - size() <= capacity в любой момент.
        - Порядок OrderedDict: от наименее к наиболее недавно использованной записи.
        - Перезапись существующего ключа считается использованием и не вытесняет.
    Ограничения:
        - Без блокировок: владелец один (хранилище строк).
        - Колбэка на вытеснение нет, записи всегда восстановимы из источника.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"Cache capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._entries: OrderedDict[K, V] = OrderedDict()
        self._hits = 0
        self._misses = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: K) -> V | None:
        """
        Назначение:
            Возвращает значение и помечает запись как самую свежую.
            Отсутствие ключа не ошибка: возвращается None.
        """
        try:
            value = self._entries[key]
        except KeyError:
            self._misses += 1
            return None
        self._entries.move_to_end(key)
        self._hits += 1
        return value

    def set(self, key: K, value: V) -> None:
        """
        Назначение:
            Вставка или перезапись. При переполнении вытесняет ровно одну
            наименее недавно использованную запись.
        """
        if key in self._entries:
            self._entries[key] = value
            self._entries.move_to_end(key)
            return
        self._entries[key] = value
        if len(self._entries) > self._capacity:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def size(self) -> int:
        return len(self._entries)

    def keys(self) -> list[K]:
        """
        Назначение:
            Ключи в порядке от наименее к наиболее недавно использованному.
        """
        return list(self._entries.keys())

    def stats(self) -> CacheStats:
        return CacheStats(
            size=len(self._entries),
            capacity=self._capacity,
            hits=self._hits,
            misses=self._misses,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        # Проверка наличия не меняет порядок.
        return key in self._entries

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys())


__all__ = ["RecencyCache"]
