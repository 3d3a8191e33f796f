from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from rowstore.domain.error_codes import ErrorCode


@dataclass
class RowStoreError(Exception):
    """
    Назначение:
        Унифицированная ошибка хранилища строк.
    Инварианты/гарантии:
        - code всегда из ErrorCode.
        - retryable=True означает, что вызывающий может повторить операцию с нуля.
    """

    code: ErrorCode
    message: str
    retryable: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details or {},
        }


class SourceReadError(RowStoreError):
    """
    Назначение:
        Ошибка чтения байтов из источника (в т.ч. неожиданный конец данных).
    """

    def __init__(self, message: str, details: Dict[str, Any] | None = None) -> None:
        super().__init__(
            code=ErrorCode.IO_ERROR,
            message=message,
            retryable=True,
            details=details or {},
        )


class MalformedSourceError(RowStoreError):
    """
    Назначение:
        Байты источника не декодируются в текст, границы строк установить нельзя.
    """

    def __init__(self, message: str, details: Dict[str, Any] | None = None) -> None:
        super().__init__(
            code=ErrorCode.MALFORMED_SOURCE,
            message=message,
            retryable=False,
            details=details or {},
        )


class NotIndexedError(RowStoreError):
    """
    Назначение:
        Запрошено чтение строки до завершения load_file.
    """

    def __init__(self, message: str = "File not indexed yet", details: Dict[str, Any] | None = None) -> None:
        super().__init__(
            code=ErrorCode.NOT_INDEXED,
            message=message,
            retryable=False,
            details=details or {},
        )


class LoadInProgressError(RowStoreError):
    """
    Назначение:
        Повторный load_file, пока предыдущий ещё не завершён.
    """

    def __init__(self, message: str = "Another load_file is still in progress") -> None:
        super().__init__(
            code=ErrorCode.LOAD_IN_PROGRESS,
            message=message,
            retryable=True,
        )


__all__ = [
    "RowStoreError",
    "SourceReadError",
    "MalformedSourceError",
    "NotIndexedError",
    "LoadInProgressError",
]
