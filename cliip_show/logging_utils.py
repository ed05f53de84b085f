from __future__ import annotations

import logging
import os
import sys
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Mapping, Optional

ROOT_LOGGER_NAME = "CliipShow"
LOG_FILENAME = "cliip-show.log"
LOG_DIR_ENV = "CLIIP_SHOW_LOG_DIR"
DEBUG_ENV = "CLIIP_SHOW_DEBUG"
PROPAGATE_ENV = "CLIIP_SHOW_PROPAGATE_LOGS"
_TRUTHY = {"1", "true", "yes", "on"}

# Handlers installed by the configure_* helpers; replaced on reconfiguration.
_INSTALLED_HANDLERS: list[logging.Handler] = []


def _flag_enabled(name: str, env: Optional[Mapping[str, str]] = None) -> bool:
    environ = os.environ if env is None else env
    return (environ.get(name) or "").strip().lower() in _TRUTHY


def debug_enabled(env: Optional[Mapping[str, str]] = None) -> bool:
    return _flag_enabled(DEBUG_ENV, env)


def propagation_enabled(env: Optional[Mapping[str, str]] = None) -> bool:
    return _flag_enabled(PROPAGATE_ENV, env)


def resolve_logs_dir(log_dir_name: str = "cliip-show", env: Optional[Mapping[str, str]] = None) -> Path:
    """
    Resolve the directory to store cliip-show logs.

    Strategy:
    - Use CLIIP_SHOW_LOG_DIR if set (used as-is).
    - Fall back to XDG state/cache locations, then `cwd/logs/<log_dir_name>`.
    - Final fallback: tempdir/<log_dir_name>.
    """
    environ = os.environ if env is None else env
    candidates = []

    env_override = (environ.get(LOG_DIR_ENV) or "").strip()
    if env_override:
        candidates.append(Path(env_override).expanduser())

    state_home = Path(environ.get("XDG_STATE_HOME") or Path.home() / ".local" / "state")
    cache_home = Path(environ.get("XDG_CACHE_HOME") or Path.home() / ".cache")
    candidates.append(state_home / log_dir_name)
    candidates.append(cache_home / log_dir_name)
    candidates.append(Path.cwd() / "logs" / log_dir_name)

    for target in candidates:
        try:
            target.mkdir(parents=True, exist_ok=True)
            return target
        except OSError:
            continue

    temp_fallback = Path(tempfile.gettempdir()) / log_dir_name
    temp_fallback.mkdir(parents=True, exist_ok=True)
    return temp_fallback


def build_rotating_file_handler(
    log_dir: Path,
    filename: str,
    *,
    retention: int = 5,
    max_bytes: int = 512 * 1024,
    formatter: Optional[logging.Formatter] = None,
) -> logging.Handler:
    """Construct a rotating file handler with sane defaults."""
    retention = max(1, retention)
    backup_count = max(0, retention - 1)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    if formatter is not None:
        handler.setFormatter(formatter)
    return handler


def resolve_log_level(debug: bool) -> int:
    return logging.DEBUG if debug else logging.INFO


def _install(logger: logging.Logger, handler: logging.Handler) -> None:
    for previous in list(_INSTALLED_HANDLERS):
        logger.removeHandler(previous)
        previous.close()
        _INSTALLED_HANDLERS.remove(previous)
    logger.addHandler(handler)
    _INSTALLED_HANDLERS.append(handler)


def configure_app_logging(env: Optional[Mapping[str, str]] = None) -> Path:
    """Route `CliipShow.*` records to the rotating log file; returns its path."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    log_dir = resolve_logs_dir(env=env)
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", "%Y-%m-%d %H:%M:%S")
    handler = build_rotating_file_handler(log_dir, LOG_FILENAME, formatter=formatter)
    _install(logger, handler)
    logger.setLevel(resolve_log_level(debug_enabled(env)))
    logger.propagate = propagation_enabled(env)
    return log_dir / LOG_FILENAME


def configure_cli_logging(env: Optional[Mapping[str, str]] = None) -> None:
    """One-shot CLI modes only surface warnings and errors, on stderr."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    handler.setLevel(logging.WARNING)
    _install(logger, handler)
    logger.setLevel(resolve_log_level(debug_enabled(env)))
    logger.propagate = propagation_enabled(env)
