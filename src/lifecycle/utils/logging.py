"""Rotating logger setup for the lifecycle service."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Union

# HTTP client libraries log every request at INFO; release checks poll them
NOISY_LOGGERS = ("httpx", "httpcore")


def resolve_level(level: Union[int, str]) -> int:
    """Turn a level name ("debug", "INFO") or number into a logging level.

    Raises:
        ValueError: If the name is not a standard logging level
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logger(
    log_dir: Path,
    level: Union[int, str] = logging.INFO,
    name: str = "lifecycle",
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 3,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """Configure the service logger writing ``<log_dir>/<name>.log``.

    Component loggers ("lifecycle.update", "lifecycle.migration", ...)
    propagate to the logger configured here. Update script progress lines
    land in the same file, so one rotation covers a whole update.

    Args:
        log_dir: Directory for the log file (created if missing)
        level: Level name or number, usually from Settings.log_level
        name: Root logger name of the service
        max_bytes: Max size before rotation
        backup_count: Number of rotated files to keep
        quiet: Third-party loggers capped at WARNING

    Returns:
        Configured logger instance
    """
    level = resolve_level(level)
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    for noisy in quiet:
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    # Reconfiguring only adjusts levels
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    file_handler = RotatingFileHandler(
        log_dir / f"{name}.log", maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    console_handler = logging.StreamHandler()

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    for handler in (file_handler, console_handler):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
