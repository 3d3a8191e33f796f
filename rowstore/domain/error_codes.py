from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """
    Назначение:
        Единая таксономия кодов ошибок хранилища строк.
    """

    IO_ERROR = "IO_ERROR"
    MALFORMED_SOURCE = "MALFORMED_SOURCE"
    NOT_INDEXED = "NOT_INDEXED"
    LOAD_IN_PROGRESS = "LOAD_IN_PROGRESS"
