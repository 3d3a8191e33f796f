from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from rowstore.common.time import getNowIso


@dataclass
class ReportMeta:
    """
    Назначение:
        Метаданные запуска команды.
    """

    run_id: str
    command: str
    started_at: str
    source_path: str | None = None
    finished_at: str | None = None
    duration_ms: int | None = None


@dataclass
class ReportSummary:
    """
    Назначение:
        Итоговые счётчики: строки, колонки, состояние кэша.
    """

    rows_total: int = 0
    columns_total: int = 0
    rows_read: int = 0
    cache: dict[str, Any] = field(default_factory=dict)


@dataclass
class RunReport:
    """
    Назначение:
        Корневой объект отчёта (report.json).
    """

    meta: ReportMeta
    summary: ReportSummary = field(default_factory=ReportSummary)
    context: dict[str, Any] = field(default_factory=dict)
    errors: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def start(cls, run_id: str, command: str) -> "RunReport":
        return cls(meta=ReportMeta(run_id=run_id, command=command, started_at=getNowIso()))

    def set_context(self, key: str, value: Any) -> None:
        self.context[key] = value

    def add_error(self, error: dict[str, Any]) -> None:
        self.errors.append(error)

    def finish(self, duration_ms: int) -> None:
        self.meta.finished_at = getNowIso()
        self.meta.duration_ms = duration_ms

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
