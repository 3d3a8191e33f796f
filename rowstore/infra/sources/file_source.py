from __future__ import annotations

import asyncio
import os
import threading
from pathlib import Path
from typing import BinaryIO


class FileByteSource:
    """
    Назначение/ответственность:
        ByteSource поверх бинарного файла. Чтение выполняется в executor
        event loop, чтобы не блокировать поток UI/loop.
    Взаимодействия:
        - Владелец файла внешний: open()/close() или контекстный менеджер.
        - Хранилище строк только читает.
    Ограничения:
        - seek+read защищены блокировкой, общий дескриптор.
        - Размер фиксируется при создании (источник считается неизменяемым).
    """

    def __init__(self, handle: BinaryIO, name: str | None = None, owns_handle: bool = False) -> None:
        self._handle = handle
        self._name = name or getattr(handle, "name", "<stream>")
        self._owns_handle = owns_handle
        self._lock = threading.Lock()
        handle.seek(0, os.SEEK_END)
        self._size = handle.tell()
        handle.seek(0)

    @classmethod
    def open(cls, path: str | Path) -> "FileByteSource":
        p = Path(path)
        handle = p.open("rb")
        try:
            return cls(handle, name=str(p), owns_handle=True)
        except OSError:
            handle.close()
            raise

    @property
    def name(self) -> str:
        return str(self._name)

    @property
    def size(self) -> int:
        return self._size

    async def read(self, offset: int, length: int) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read_sync, offset, length)

    def _read_sync(self, offset: int, length: int) -> bytes:
        with self._lock:
            self._handle.seek(offset)
            return self._handle.read(length)

    def close(self) -> None:
        if self._owns_handle:
            self._handle.close()

    def __enter__(self) -> "FileByteSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class BytesByteSource:
    """
    Назначение/ответственность:
        ByteSource поверх буфера в памяти (тесты, небольшие вставки из буфера обмена).
    """

    def __init__(self, data: bytes, name: str = "<memory>") -> None:
        self._data = bytes(data)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def size(self) -> int:
        return len(self._data)

    async def read(self, offset: int, length: int) -> bytes:
        return self._data[offset : offset + length]
