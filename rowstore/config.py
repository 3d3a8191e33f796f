from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import yaml

from rowstore.infra.logging.setup import mapLogLevel

DEFAULT_CHUNK_SIZE = 1024 * 1024
DEFAULT_CACHE_SIZE = 1000


@dataclass(frozen=True)
class Settings:
    # Store
    chunk_size: int = DEFAULT_CHUNK_SIZE
    cache_size: int = DEFAULT_CACHE_SIZE
    encoding: str = "utf-8"

    # Logging / artifacts
    log_dir: str = "./logs"
    log_level: str = "INFO"
    report_dir: str = "./reports"


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


def _read_yaml_config(path: Path) -> dict:
    if not path.exists():
        return {}
    if not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return {}
        return data


def _env_get(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _parse_positive_int(name: str, v) -> int:
    try:
        value = int(v)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid integer for {name}: {v!r}") from exc
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value


def _parse_log_level(v) -> str:
    value = str(v).strip().upper()
    # mapLogLevel поднимает ValueError на неизвестном уровне.
    mapLogLevel(value)
    return value


def load_settings(
    config_path: str | None,
    cli_overrides: dict,
) -> LoadedSettings:
    """
    Priority: CLI > ENV > config > defaults
    """
    sources: list[str] = []
    defaults = Settings()

    # 1) config file
    cfg: dict = {}
    if config_path:
        cfg = _read_yaml_config(Path(config_path))
        if cfg:
            sources.append("config")

    # 2) env
    env = {
        "chunk_size": _env_get("ROWSTORE_CHUNK_SIZE"),
        "cache_size": _env_get("ROWSTORE_CACHE_SIZE"),
        "encoding": _env_get("ROWSTORE_ENCODING"),
        "log_dir": _env_get("ROWSTORE_LOG_DIR"),
        "log_level": _env_get("ROWSTORE_LOG_LEVEL"),
        "report_dir": _env_get("ROWSTORE_REPORT_DIR"),
    }
    if any(v is not None for v in env.values()):
        sources.append("env")

    merged = {
        "chunk_size": cfg.get("chunk_size", defaults.chunk_size),
        "cache_size": cfg.get("cache_size", defaults.cache_size),
        "encoding": cfg.get("encoding", defaults.encoding),
        "log_dir": cfg.get("log_dir", defaults.log_dir),
        "log_level": cfg.get("log_level", defaults.log_level),
        "report_dir": cfg.get("report_dir", defaults.report_dir),
    }

    for k, v in env.items():
        if v is not None:
            merged[k] = v

    # 3) CLI overrides (only those explicitly passed)
    if any(v is not None for v in cli_overrides.values()):
        sources.append("cli")

    for k, v in cli_overrides.items():
        if v is None:
            continue
        merged[k] = v

    settings = Settings(
        chunk_size=_parse_positive_int("chunk_size", merged["chunk_size"]),
        cache_size=_parse_positive_int("cache_size", merged["cache_size"]),
        encoding=str(merged["encoding"]),
        log_dir=str(merged["log_dir"]),
        log_level=_parse_log_level(merged["log_level"]),
        report_dir=str(merged["report_dir"]),
    )

    return LoadedSettings(settings=settings, sources_used=sources)
