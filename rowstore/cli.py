from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Callable

import typer

from rowstore.common.run_id import generate_run_id
from rowstore.common.time import getDurationMs
from rowstore.config import Settings, load_settings
from rowstore.domain.exceptions import RowStoreError
from rowstore.domain.reporting.models import RunReport
from rowstore.infra.artifacts.report_writer import createEmptyReport, finalizeReport, writeReportJson
from rowstore.infra.logging.setup import closeCommandLogger, createCommandLogger, logEvent
from rowstore.infra.sources.file_source import FileByteSource
from rowstore.store import VirtualRowStore

app = typer.Typer(no_args_is_help=True, add_completion=False)


def ensureDir(path: str) -> None:
    """
    Назначение:
        Создаёт каталог, если он отсутствует.
    """
    Path(path).mkdir(parents=True, exist_ok=True)


def requireCsv(csvPath: str | None) -> None:
    """
    Назначение:
        Базовая проверка наличия CSV-файла.

    Поведение:
        - Если csvPath не задан или файл не существует: exit code 2.
    """
    if not csvPath:
        typer.echo("ERROR: --csv is required", err=True)
        raise typer.Exit(code=2)

    p = Path(csvPath)
    if not p.exists() or not p.is_file():
        typer.echo(f"ERROR: CSV file not found: {csvPath}", err=True)
        raise typer.Exit(code=2)


def buildStore(settings: Settings, logger: logging.Logger, runId: str) -> VirtualRowStore:
    return VirtualRowStore(
        cache_size=settings.cache_size,
        chunk_size=settings.chunk_size,
        encoding=settings.encoding,
        logger=logger,
        run_id=runId,
    )


def runWithReport(
    ctx: typer.Context,
    commandName: str,
    csvPath: str | None,
    runner: Callable[[VirtualRowStore, FileByteSource, logging.Logger, RunReport], None],
) -> None:
    """
    Назначение:
        Унифицированная обвязка выполнения команд:
        - создаёт логгер + файл лога
        - создаёт report.json skeleton
        - проверяет CSV и открывает его как ByteSource
        - гарантирует запись отчёта в finally

    Поведение:
        - Нет CSV: exit code 2.
        - Ошибка хранилища (чтение/декодирование): exit code 1.
    """
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]
    sources = ctx.obj["sources"]

    startMonotonic = time.monotonic()
    logger, logFilePath = createCommandLogger(
        commandName=commandName,
        logDir=settings.log_dir,
        runId=runId,
        logLevel=settings.log_level,
    )
    report = createEmptyReport(runId=runId, command=commandName, configSources=sources)
    report.meta.source_path = csvPath

    exitCode = 0
    try:
        try:
            requireCsv(csvPath)
        except typer.Exit:
            logEvent(logger, logging.ERROR, runId, "cli", f"Invalid or missing CSV: {csvPath}")
            report.add_error({"code": "USAGE_ERROR", "message": f"Invalid or missing CSV: {csvPath}"})
            exitCode = 2
            return

        store = buildStore(settings, logger, runId)
        try:
            with FileByteSource.open(csvPath) as source:
                runner(store, source, logger, report)
        except RowStoreError as exc:
            logEvent(logger, logging.ERROR, runId, "cli", f"{commandName} failed: {exc}")
            report.add_error(exc.to_dict())
            typer.echo(f"ERROR: {exc}", err=True)
            exitCode = 1
        except OSError as exc:
            logEvent(logger, logging.ERROR, runId, "cli", f"Cannot open CSV: {exc}")
            report.add_error({"code": "IO_ERROR", "message": str(exc)})
            typer.echo(f"ERROR: cannot open CSV: {exc}", err=True)
            exitCode = 1
        finally:
            report.summary.rows_total = store.get_row_count()
            report.summary.columns_total = store.get_column_count()
            report.summary.cache = store.get_cache_stats().to_dict()
            store.clear()
    finally:
        finalizeReport(
            report,
            durationMs=getDurationMs(startMonotonic, time.monotonic()),
            logFile=logFilePath,
            reportDir=settings.report_dir,
        )
        writeReportJson(report, settings.report_dir, f"{commandName}_{runId}")
        closeCommandLogger(logger)
        if exitCode != 0:
            raise typer.Exit(code=exitCode)


@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="Path to config.yml"),
    runId: str | None = typer.Option(None, "--run-id", help="Run identifier (UUID). If omitted, generated."),
    logLevel: str | None = typer.Option(None, "--log-level", help="Log level: ERROR|WARN|INFO|DEBUG"),
    logDir: str | None = typer.Option(None, "--log-dir", help="Directory for logs."),
    reportDir: str | None = typer.Option(None, "--report-dir", help="Directory for reports."),
    chunkSize: int | None = typer.Option(None, "--chunk-size", help="Bytes read per chunk while indexing"),
    cacheSize: int | None = typer.Option(None, "--cache-size", help="Max parsed rows kept in memory"),
    encoding: str | None = typer.Option(None, "--encoding", help="Source text encoding"),
):
    """
    Назначение:
        Глобальная инициализация CLI:
        - генерирует/принимает run_id
        - загружает настройки (CLI > ENV > config > defaults)
        - создаёт каталоги log/report
        - сохраняет всё в ctx.obj для подкоманд
    """
    if not runId:
        runId = generate_run_id()

    cliOverrides = {
        "log_level": logLevel,
        "log_dir": logDir,
        "report_dir": reportDir,
        "chunk_size": chunkSize,
        "cache_size": cacheSize,
        "encoding": encoding,
    }
    try:
        loaded = load_settings(config_path=config, cli_overrides=cliOverrides)
    except ValueError as exc:
        typer.echo(f"ERROR: invalid settings: {exc}", err=True)
        raise typer.Exit(code=2)

    ensureDir(loaded.settings.log_dir)
    ensureDir(loaded.settings.report_dir)

    ctx.obj = {
        "runId": runId,
        "settings": loaded.settings,
        "sources": loaded.sources_used,
        "configPath": config,
    }


@app.command("index")
def index(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to input CSV"),
    progress: bool = typer.Option(False, "--progress/--no-progress", help="Print indexing progress"),
):
    """Build the row index and print row/column counts."""

    def runner(store: VirtualRowStore, source: FileByteSource, logger: logging.Logger, report: RunReport) -> None:
        lastShown = [-1]

        def onProgress(percent: float) -> None:
            whole = int(percent)
            if progress and whole != lastShown[0]:
                lastShown[0] = whole
                typer.echo(f"progress={whole}%")

        asyncio.run(store.load_file(source, onProgress))
        typer.echo(f"rows={store.get_row_count()} columns={store.get_column_count()}")

    runWithReport(ctx, "index", csv, runner)


@app.command("rows")
def rows(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to input CSV"),
    start: int = typer.Option(0, "--start", help="First row (0-based, inclusive)"),
    end: int | None = typer.Option(None, "--end", help="Last row (inclusive). Defaults to start."),
    asJson: bool = typer.Option(False, "--json", help="Print each row as a JSON array"),
):
    """Print rows of an inclusive range."""
    last = start if end is None else end

    def runner(store: VirtualRowStore, source: FileByteSource, logger: logging.Logger, report: RunReport) -> None:
        async def fetch():
            await store.load_file(source)
            return await store.get_rows(start, last)

        fetched = asyncio.run(fetch())
        report.summary.rows_read = len(fetched)
        for row in fetched:
            if asJson:
                typer.echo(json.dumps(list(row.cells), ensure_ascii=False))
            else:
                typer.echo(f"{row.row_number}: " + " | ".join(row.cells))

    runWithReport(ctx, "rows", csv, runner)


@app.command("stats")
def stats(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to input CSV"),
    sample: int = typer.Option(100, "--sample", help="Rows read twice to warm and hit the cache"),
):
    """Read a sample twice and print cache statistics."""

    def runner(store: VirtualRowStore, source: FileByteSource, logger: logging.Logger, report: RunReport) -> None:
        async def warm():
            await store.load_file(source)
            total = 0
            for _ in range(2):
                total += len(await store.get_rows(0, sample - 1))
            return total

        report.summary.rows_read = asyncio.run(warm())
        cacheStats = store.get_cache_stats()
        typer.echo(
            f"rows={store.get_row_count()} cache_size={cacheStats.size} capacity={cacheStats.capacity} "
            f"hits={cacheStats.hits} misses={cacheStats.misses} hit_rate={cacheStats.hit_rate:.2f}"
        )

    runWithReport(ctx, "stats", csv, runner)


if __name__ == "__main__":
    app()
