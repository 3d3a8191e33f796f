from __future__ import annotations

import asyncio
import logging

import pytest

from rowstore.infra.logging.setup import closeCommandLogger, createCommandLogger, logEvent, mapLogLevel
from rowstore.infra.sources.file_source import BytesByteSource
from rowstore.store import VirtualRowStore


def test_map_log_level():
    assert mapLogLevel("warn") == logging.WARNING
    assert mapLogLevel(" DEBUG ") == logging.DEBUG
    with pytest.raises(ValueError):
        mapLogLevel("TRACE")


def test_command_logger_writes_run_id_and_component(tmp_path):
    logger, path = createCommandLogger("index", str(tmp_path), "run-1", "INFO")
    logEvent(logger, logging.INFO, "run-1", "index", "hello")
    logger.info("no extra fields")
    closeCommandLogger(logger)

    text = (tmp_path / "index_run-1.log").read_text(encoding="utf-8")
    assert path.endswith("index_run-1.log")
    assert "runId=run-1 comp=index msg=hello" in text
    assert "runId=run-1 comp=core msg=no extra fields" in text


def test_store_logs_index_lifecycle(tmp_path):
    logger, _ = createCommandLogger("index", str(tmp_path), "run-2", "DEBUG")
    store = VirtualRowStore(logger=logger, run_id="run-2")
    asyncio.run(store.load_file(BytesByteSource(b"a\nb\n", name="mem.csv")))
    asyncio.run(store.get_row(1))
    closeCommandLogger(logger)

    text = (tmp_path / "index_run-2.log").read_text(encoding="utf-8")
    assert "comp=index msg=Indexing source mem.csv" in text
    assert "Index complete: 2 rows, 1 columns" in text
    assert "comp=rows msg=Cache miss for row 1" in text
