from __future__ import annotations

import logging
from typing import Callable

from rowstore.common.run_id import generate_run_id
from rowstore.config import DEFAULT_CACHE_SIZE, DEFAULT_CHUNK_SIZE
from rowstore.domain.cache.recency_cache import RecencyCache
from rowstore.domain.exceptions import (
    LoadInProgressError,
    MalformedSourceError,
    NotIndexedError,
    SourceReadError,
)
from rowstore.domain.index.row_index import RowIndex
from rowstore.domain.index.row_indexer import RowIndexer
from rowstore.domain.models import CacheStats, IndexEntry, ParsedRow, StoreState
from rowstore.domain.parsing.csv_line import parseCsvLine, stripTerminator
from rowstore.domain.ports.sources import ByteSource
from rowstore.infra.logging.setup import logEvent

ProgressCallback = Callable[[float], None]


class VirtualRowStore:
    """
    Назначение/ответственность:
        Виртуальное хранилище строк большого CSV: в памяти только индекс
        позиций (row_number -> offset/length) и ограниченный LRU-кэш
        разобранных строк. Строки читаются из источника по требованию.

    Жизненный цикл:
        UNINDEXED --load_file--> INDEXING --> READY
        clear() или ошибка load_file возвращают в UNINDEXED.

    Ограничения:
        - Один владелец, без внутренних блокировок: вызовы load_file/get_row/clear
          сериализует вызывающий (event loop, очередь задач).
        - Источник не закрывается и не модифицируется.
        - Повторов нет: ошибка чтения сразу уходит вызывающему.
    """

    def __init__(
        self,
        cache_size: int = DEFAULT_CACHE_SIZE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        encoding: str = "utf-8",
        logger: logging.Logger | None = None,
        run_id: str | None = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self.chunk_size = chunk_size
        self.encoding = encoding
        self.logger = logger or logging.getLogger("rowstore.store")
        self.run_id = run_id or generate_run_id()

        self._cache: RecencyCache[int, ParsedRow] = RecencyCache(cache_size)
        self._source: ByteSource | None = None
        self._index = RowIndex()
        self._state = StoreState.UNINDEXED
        self._total_rows = 0
        self._total_columns = 0
        # Увеличивается при каждой смене источника/индекса.
        self._generation = 0

    @property
    def state(self) -> StoreState:
        return self._state

    async def load_file(self, source: ByteSource, on_progress: ProgressCallback | None = None) -> None:
        """
        Назначение:
            Сбрасывает предыдущее состояние и строит индекс по источнику.

        Входные данные:
            source: ByteSource
            on_progress: Callable[[float], None] | None
                Процент в [0, 100], не убывает, на успехе заканчивается 100.

        Ошибки:
            LoadInProgressError, SourceReadError, MalformedSourceError.
            При ошибке хранилище остаётся в UNINDEXED, частичный индекс не публикуется.
        """
        if self._state is StoreState.INDEXING:
            raise LoadInProgressError()

        self._reset()
        self._source = source
        self._state = StoreState.INDEXING
        generation = self._generation

        logEvent(
            self.logger,
            logging.INFO,
            self.run_id,
            "index",
            f"Indexing source {source.name} ({source.size} bytes, chunk_size={self.chunk_size})",
        )

        completed = False
        try:
            index = await self._build_index(source, on_progress)
            first: ParsedRow | None = None
            if len(index) > 0:
                first = await self._fetch_row(source, 0, index[0])
            # Пока ждали чтения, хранилище могли очистить или перезагрузить.
            if self._generation != generation:
                logEvent(
                    self.logger,
                    logging.WARNING,
                    self.run_id,
                    "index",
                    f"Index for {source.name} discarded: store was cleared during indexing",
                )
                return
            self._index = index
            self._total_rows = len(index)
            if first is not None:
                self._total_columns = len(first.cells)
                self._cache.set(0, first)
            self._state = StoreState.READY
            completed = True
        except (SourceReadError, MalformedSourceError) as exc:
            logEvent(self.logger, logging.ERROR, self.run_id, "index", f"Indexing failed: {exc}")
            raise
        finally:
            if not completed and self._generation == generation:
                self._reset()

        logEvent(
            self.logger,
            logging.INFO,
            self.run_id,
            "index",
            f"Index complete: {self._total_rows} rows, {self._total_columns} columns",
        )

    async def _build_index(self, source: ByteSource, on_progress: ProgressCallback | None) -> RowIndex:
        """
        Алгоритм:
            - Читает источник чанками по chunk_size байт (точка приостановки на каждом чанке).
            - Каждый чанк отдаёт RowIndexer, который дописывает записи в свой RowIndex.
            - После последнего чанка RowIndexer.finish() индексирует хвост без перевода строки
              и отрезает хвостовые пустые строки.
        """
        indexer = RowIndexer(self.encoding)
        total = source.size
        offset = 0

        while offset < total:
            length = min(self.chunk_size, total - offset)
            chunk = await self._read(source, offset, length)
            if not chunk:
                raise SourceReadError(
                    f"Unexpected end of source {source.name} at byte {offset} of {total}",
                    details={"offset": offset, "size": total},
                )
            indexer.feed(chunk)
            offset += len(chunk)

            if on_progress is not None:
                on_progress(min(offset / total * 100.0, 100.0))

        index = indexer.finish()
        if on_progress is not None:
            on_progress(100.0)
        return index

    async def get_row(self, row_number: int) -> ParsedRow | None:
        """
        Назначение:
            Возвращает строку по номеру: из кэша, иначе читает, разбирает и кэширует.

        Выходные данные:
            ParsedRow | None
                None для номера вне [0, total_rows).

        Ошибки:
            NotIndexedError до завершения load_file.
            SourceReadError/MalformedSourceError при сбое чтения конкретной строки;
            индекс и другие записи кэша при этом не затрагиваются.
        """
        if self._state is not StoreState.READY or self._source is None:
            raise NotIndexedError(details={"row_number": row_number})

        if row_number < 0 or row_number >= self._total_rows:
            return None

        cached = self._cache.get(row_number)
        if cached is not None:
            return cached

        entry = self._index[row_number]
        generation = self._generation
        row = await self._fetch_row(self._source, row_number, entry)

        # Источник мог смениться, пока ждали чтения: такой результат не кэшируем.
        if generation == self._generation:
            self._cache.set(row_number, row)
        return row

    async def _fetch_row(self, source: ByteSource, row_number: int, entry: IndexEntry) -> ParsedRow:
        """
        Назначение:
            Читает ровно entry.length байт с entry.offset, декодирует и разбирает строку.
            В кэш не пишет.
        """
        logEvent(
            self.logger,
            logging.DEBUG,
            self.run_id,
            "rows",
            f"Cache miss for row {row_number} (offset={entry.offset}, length={entry.length})",
        )
        try:
            data = await self._read(source, entry.offset, entry.length)
            if len(data) != entry.length:
                raise SourceReadError(
                    f"Short read for row {row_number}: expected {entry.length} bytes, got {len(data)}",
                    details={"row_number": row_number, "offset": entry.offset, "length": entry.length},
                )
            return ParsedRow(row_number=row_number, cells=tuple(self._parse(data, row_number, entry)))
        except (SourceReadError, MalformedSourceError) as exc:
            logEvent(self.logger, logging.ERROR, self.run_id, "rows", f"Row {row_number} fetch failed: {exc}")
            raise

    async def get_rows(self, start_row: int, end_row: int) -> list[ParsedRow]:
        """
        Назначение:
            Строки диапазона [start_row, end_row] включительно, по возрастанию.
            Номера вне диапазона пропускаются.
        """
        if self._state is not StoreState.READY:
            raise NotIndexedError(details={"start_row": start_row, "end_row": end_row})

        first = max(start_row, 0)
        last = min(end_row, self._total_rows - 1)
        rows: list[ParsedRow] = []
        for row_number in range(first, last + 1):
            row = await self.get_row(row_number)
            if row is not None:
                rows.append(row)
        return rows

    def get_row_count(self) -> int:
        return self._total_rows

    def get_column_count(self) -> int:
        """
        Назначение:
            Число колонок, выведенное из количества полей первой строки.
        """
        return self._total_columns

    def get_index_entry(self, row_number: int) -> IndexEntry | None:
        if self._state is not StoreState.READY:
            raise NotIndexedError(details={"row_number": row_number})
        return self._index.get(row_number)

    def is_ready(self) -> bool:
        return self._state is StoreState.READY

    def get_cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def clear(self) -> None:
        """
        Назначение:
            Освобождает источник, индекс и кэш; состояние UNINDEXED.
        """
        self._reset()

    def _reset(self) -> None:
        self._generation += 1
        self._source = None
        self._index = RowIndex()
        self._cache.clear()
        self._total_rows = 0
        self._total_columns = 0
        self._state = StoreState.UNINDEXED

    def _parse(self, data: bytes, row_number: int, entry: IndexEntry) -> list[str]:
        try:
            text = data.decode(self.encoding)
        except UnicodeDecodeError as exc:
            raise MalformedSourceError(
                f"Cannot decode row {row_number} as {self.encoding}",
                details={"row_number": row_number, "offset": entry.offset + exc.start},
            ) from exc
        return parseCsvLine(stripTerminator(text))

    async def _read(self, source: ByteSource, offset: int, length: int) -> bytes:
        try:
            return await source.read(offset, length)
        except OSError as exc:
            raise SourceReadError(
                f"Failed to read {length} bytes at offset {offset} from {source.name}: {exc}",
                details={"offset": offset, "length": length},
            ) from exc
