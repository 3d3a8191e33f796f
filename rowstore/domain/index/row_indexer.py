from __future__ import annotations

from rowstore.domain.exceptions import MalformedSourceError
from rowstore.domain.index.row_index import RowIndex
from rowstore.domain.models import IndexEntry

LINE_TERMINATOR = b"\n"


class RowIndexer:
    """
    Назначение/ответственность:
        Пошаговый построитель индекса строк. Получает байтовые чанки любого
        размера и дописывает IndexEntry каждой завершённой строки в RowIndex.

    Состояние:
        pending: bytearray
            Незавершённый хвост (не содержит перевода строки после feed).
        row_start: int
            Смещение в источнике первого байта pending.
        blank_run_start: int | None
            Смещение первой пустой (whitespace-only) строки в текущей
            серии пустых строк в конце индекса.
        blank_run_rows: int
            Длина этой серии. Серия уже лежит в индексе предварительно:
            если за ней придёт непустая строка, она остаётся, иначе
            finish() отрезает её.

    Инварианты/гарантии:
        - Результат не зависит от того, как источник нарезан на чанки.
        - Границы строк ищутся по байтам, поэтому offset/length точны
          даже если многобайтовый символ разрезан между чанками.
        - Хвостовая серия пустых строк не получает номеров.
        - Рабочая память помимо индекса: pending плюс два числа.
    """

    def __init__(self, encoding: str = "utf-8", index: RowIndex | None = None) -> None:
        self.encoding = encoding
        self.index = index if index is not None else RowIndex()
        self.pending = bytearray()
        self.row_start = 0
        self.blank_run_start: int | None = None
        self.blank_run_rows = 0
        self.finished = False

    @property
    def pending_bytes(self) -> int:
        return len(self.pending)

    @property
    def rows_emitted(self) -> int:
        """
        Назначение:
            Строки, номер которых уже окончательный (без предварительной
            серии пустых строк в конце).
        """
        return len(self.index) - self.blank_run_rows

    def feed(self, chunk: bytes) -> int:
        """
        Назначение:
            Добавляет чанк и дописывает в индекс все строки, которые
            завершились в нём.

        Выходные данные:
            int
                Сколько записей дописано (включая предварительные пустые).

        Алгоритм:
            - Дописывает чанк в pending.
            - Ищет последний перевод строки только в новом чанке: в старом
              pending переводов строки нет. Если его нет, копит дальше.
            - Проверяет декодируемость завершённого участка.
            - Режет участок на строки и дописывает их в индекс, ведя учёт
              серии пустых строк.
            - Сдвигает pending за обработанный участок.
        """
        if self.finished:
            raise RuntimeError("RowIndexer.feed() called after finish()")
        if not chunk:
            return 0
        search_from = len(self.pending)
        self.pending += chunk
        last_newline = self.pending.rfind(LINE_TERMINATOR, search_from)
        if last_newline == -1:
            return 0

        complete = bytes(self.pending[: last_newline + 1])
        self._check_decodable(complete, self.row_start)

        before = len(self.index)
        position = 0
        while position < len(complete):
            newline = complete.index(LINE_TERMINATOR, position)
            line = complete[position : newline + 1]
            self._accept(IndexEntry(offset=self.row_start + position, length=len(line)), line)
            position = newline + 1

        del self.pending[: last_newline + 1]
        self.row_start += last_newline + 1
        return len(self.index) - before

    def finish(self) -> RowIndex:
        """
        Назначение:
            Завершает индексацию: индексирует последнюю строку без перевода
            строки (если она непустая после trim) и отрезает хвостовую
            серию пустых строк.
        """
        if self.finished:
            return self.index
        self.finished = True
        tail = bytes(self.pending)
        if tail.strip():
            self._check_decodable(tail, self.row_start)
            self._accept(IndexEntry(offset=self.row_start, length=len(tail)), tail)
        self.index.truncate(len(self.index) - self.blank_run_rows)
        self.blank_run_start = None
        self.blank_run_rows = 0
        self.row_start += len(tail)
        self.pending.clear()
        return self.index

    def _accept(self, entry: IndexEntry, line: bytes) -> None:
        self.index.append(entry)
        if line.strip():
            self.blank_run_start = None
            self.blank_run_rows = 0
            return
        if self.blank_run_rows == 0:
            self.blank_run_start = entry.offset
        self.blank_run_rows += 1

    def _check_decodable(self, data: bytes, base_offset: int) -> None:
        try:
            data.decode(self.encoding)
        except UnicodeDecodeError as exc:
            raise MalformedSourceError(
                f"Cannot decode source as {self.encoding} at byte {base_offset + exc.start}",
                details={"offset": base_offset + exc.start, "encoding": self.encoding, "reason": exc.reason},
            ) from exc
        except LookupError as exc:
            raise MalformedSourceError(
                f"Unknown encoding: {self.encoding}",
                details={"encoding": self.encoding},
            ) from exc
