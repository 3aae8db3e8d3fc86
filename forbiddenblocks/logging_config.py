"""
Structlog-based logging configuration for ForbiddenBlocks.

This module provides the logging setup for the forbidden-item registry. Logs are
split per category (registry, settings, interaction) so that persistence problems
can be diagnosed without wading through per-interaction noise.

CORRECT USAGE:
    from forbiddenblocks.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Saved scope store", scope_id="singleplayer_Alpha", item_count=3)

Standard library loggers do not accept keyword context; always go through
get_logger().
"""

import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.stdlib import BoundLogger, LoggerFactory

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Log file name -> logger name prefixes routed into it
LOG_CATEGORIES: dict[str, list[str]] = {
    "registry": ["forbiddenblocks.store", "forbiddenblocks.registry", "forbiddenblocks.scope"],
    "identity": ["forbiddenblocks.identity"],
    "settings": ["forbiddenblocks.settings", "forbiddenblocks.config"],
    "interaction": ["forbiddenblocks.interaction", "forbiddenblocks.client"],
}


def _resolve_log_base(log_base: str) -> Path:
    """
    Resolve log_base to an absolute path.

    Relative paths are anchored at the nearest directory containing a
    pyproject.toml, falling back to the current working directory.
    """
    log_path = Path(log_base)
    if log_path.is_absolute():
        return log_path

    current_dir = Path.cwd()
    for parent in [current_dir] + list(current_dir.parents):
        if (parent / "pyproject.toml").exists():
            return parent / log_path
    return current_dir / log_path


def _rotate_log_files(env_log_dir: Path) -> None:
    """Rename non-empty log files left over from a previous session with a timestamp suffix."""
    if not env_log_dir.exists():
        return

    timestamp = datetime.now(UTC).strftime("%Y_%m_%d_%H%M%S")
    for log_file in env_log_dir.glob("*.log"):
        if log_file.stat().st_size == 0:
            continue
        rotated_name = f"{log_file.stem}.log.{timestamp}"
        try:
            log_file.rename(log_file.parent / rotated_name)
            get_logger("forbiddenblocks.logging").info("Rotated log file", old_name=log_file.name, new_name=rotated_name)
        except OSError as e:
            get_logger("forbiddenblocks.logging").warning("Could not rotate log file", name=log_file.name, error=str(e))


def _parse_max_bytes(max_size: str | int) -> int:
    """Convert a size such as '10MB' or '512KB' to a byte count."""
    if isinstance(max_size, int):
        return max_size
    size = max_size.strip().upper()
    if size.endswith("MB"):
        return int(size[:-2]) * 1024 * 1024
    if size.endswith("KB"):
        return int(size[:-2]) * 1024
    if size.endswith("B"):
        return int(size[:-1])
    return int(size)


def detect_environment() -> str:
    """
    Detect the current environment.

    Returns:
        "unit_test" under pytest, the FORBIDDENBLOCKS_ENV value when set, else "local".
    """
    if "pytest" in sys.modules or "pytest" in sys.argv[0]:
        return "unit_test"

    env = os.getenv("FORBIDDENBLOCKS_ENV")
    if env:
        return env

    return "local"


def _event_only_renderer(_logger: Any, _name: str, event_dict: dict[str, Any]) -> str:
    """
    Render the event string followed by its key/value context.

    File handlers apply their own timestamp and level prefix, so only the
    message body is produced here.
    """
    event = event_dict.pop("event", None)
    for key in ("timestamp", "level", "logger"):
        event_dict.pop(key, None)
    if not event_dict:
        return "" if event is None else str(event)
    context = " ".join(f"{key}={value!r}" for key, value in sorted(event_dict.items()))
    return f"{event} {context}" if event is not None else context


def configure_structlog(
    environment: str | None = None,
    log_level: str = "INFO",
    log_config: dict[str, Any] | None = None,
) -> None:
    """
    Configure Structlog based on environment.

    Args:
        environment: Environment name (auto-detected if None)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_config: Logging configuration dictionary
    """
    if environment is None:
        environment = detect_environment()

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _event_only_renderer,
    ]

    if log_config and not log_config.get("disable_logging", False):
        _setup_file_logging(environment, log_config, log_level)

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        # Later file-handler setup must reach loggers created before it
        cache_logger_on_first_use=False,
    )


def _setup_file_logging(environment: str, log_config: dict[str, Any], log_level: str) -> None:
    """Set up rotating file handlers for each log category plus console and error logs."""
    log_base = _resolve_log_base(log_config.get("log_base", "logs"))
    env_log_dir = log_base / environment
    env_log_dir.mkdir(parents=True, exist_ok=True)

    _rotate_log_files(env_log_dir)

    level = getattr(logging, str(log_level).upper(), logging.INFO)
    max_bytes = _parse_max_bytes(log_config.get("rotation_max_size", "10MB"))
    backup_count = log_config.get("rotation_backup_count", 5)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    def _handler(path: Path, handler_level: int) -> RotatingFileHandler:
        handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        return handler

    for log_file, prefixes in LOG_CATEGORIES.items():
        handler = _handler(env_log_dir / f"{log_file}.log", logging.DEBUG)
        for prefix in prefixes:
            category_logger = logging.getLogger(prefix)
            category_logger.addHandler(handler)
            category_logger.setLevel(level)
            # Root still needs WARN+ for errors.log
            category_logger.propagate = True

    root_logger = logging.getLogger()
    root_logger.addHandler(_handler(env_log_dir / "console.log", level))
    root_logger.addHandler(_handler(env_log_dir / "errors.log", logging.WARNING))
    root_logger.setLevel(logging.DEBUG)


def get_logger(name: str) -> BoundLogger:
    """
    Get a Structlog logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured Structlog logger instance
    """
    return structlog.get_logger(name)


def setup_logging(config: dict[str, Any]) -> None:
    """
    Set up logging configuration based on the application config.

    Args:
        config: Application configuration dictionary (as produced by AppConfig.model_dump())
    """
    logging_config = config.get("logging", {})
    environment = logging_config.get("environment") or detect_environment()
    log_level = logging_config.get("level", "INFO")

    if logging_config.get("disable_logging", False):
        configure_structlog(environment, log_level, {"disable_logging": True})
        return

    configure_structlog(environment, log_level, logging_config)

    get_logger("forbiddenblocks.logging").info(
        "Logging system initialized",
        environment=environment,
        log_level=log_level,
        log_base=logging_config.get("log_base", "logs"),
    )
