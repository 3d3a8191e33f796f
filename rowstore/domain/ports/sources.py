from __future__ import annotations

from typing import Protocol


class ByteSource(Protocol):
    """
    Назначение/ответственность:
        Источник байтов с произвольным доступом (файл, буфер в памяти).
    Ограничения:
        - Неизменяем на время жизни хранилища.
        - Хранилище не закрывает и не модифицирует источник, владелец внешний.
    """

    @property
    def name(self) -> str:
        """
        Контракт:
            Человекочитаемое имя источника (для логов и отчётов).
        """
        ...

    @property
    def size(self) -> int:
        """
        Контракт:
            Общий размер источника в байтах.
        """
        ...

    async def read(self, offset: int, length: int) -> bytes:
        """
        Контракт:
            Вход: смещение и длина диапазона.
            Выход: не более length байтов начиная с offset.
            Ошибки чтения поднимаются как OSError.
        """
        ...
