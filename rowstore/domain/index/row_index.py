from __future__ import annotations

from array import array
from typing import Iterable, Iterator

from rowstore.domain.models import IndexEntry


class RowIndex:
    """
    Назначение/ответственность:
        Компактный индекс позиций строк: row_number -> IndexEntry.
        Хранит смещения и длины в двух массивах unsigned long long,
        номер строки равен позиции в массиве (без пропусков).
    Инварианты/гарантии:
        - Только дозапись; offset строго возрастает.
        - Диапазоны [offset, offset+length) не пересекаются.
    """

    def __init__(self) -> None:
        self._offsets = array("Q")
        self._lengths = array("Q")

    def append(self, entry: IndexEntry) -> None:
        if self._offsets:
            last_end = self._offsets[-1] + self._lengths[-1]
            if entry.offset < last_end:
                raise ValueError(
                    f"Index entry at offset {entry.offset} overlaps previous row ending at {last_end}"
                )
        self._offsets.append(entry.offset)
        self._lengths.append(entry.length)

    def extend(self, entries: Iterable[IndexEntry]) -> None:
        for entry in entries:
            self.append(entry)

    def truncate(self, length: int) -> None:
        """
        Назначение:
            Оставляет только первые length записей.
        """
        if length < 0 or length > len(self._offsets):
            raise ValueError(f"Cannot truncate index of {len(self._offsets)} rows to {length}")
        del self._offsets[length:]
        del self._lengths[length:]

    def get(self, row_number: int) -> IndexEntry | None:
        if row_number < 0 or row_number >= len(self._offsets):
            return None
        return IndexEntry(offset=self._offsets[row_number], length=self._lengths[row_number])

    def __getitem__(self, row_number: int) -> IndexEntry:
        entry = self.get(row_number)
        if entry is None:
            raise IndexError(f"Row {row_number} is not indexed")
        return entry

    def __len__(self) -> int:
        return len(self._offsets)

    def __iter__(self) -> Iterator[IndexEntry]:
        for offset, length in zip(self._offsets, self._lengths):
            yield IndexEntry(offset=offset, length=length)
