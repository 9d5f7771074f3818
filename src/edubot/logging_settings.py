"""Helpers for parsing the simple logging settings file and applying it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_LEVEL_MAP: dict[str, int | None] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "off": None,
}

_LEVEL_KEYS = ("terminal", "file")
_DEFAULT_LEVEL = "info"
_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class LoggingSettings:
    terminal_level: int | None
    file_level: int | None
    log_file: Path | None = None


def _normalize_level(value: str) -> str:
    return value.strip().lower()


def _resolve_level(value: str) -> int | None:
    return _LEVEL_MAP.get(_normalize_level(value), _LEVEL_MAP[_DEFAULT_LEVEL])


def parse_logging_settings(path: Path) -> LoggingSettings:
    """Parse the human-readable logging settings file.

    Lines look like ``terminal = debug``; ``#`` starts a comment. A missing
    file yields INFO everywhere and no log file.
    """

    levels: dict[str, int | None] = {
        key: _LEVEL_MAP[_DEFAULT_LEVEL] for key in _LEVEL_KEYS
    }
    log_file: Path | None = None

    if path.exists():
        for raw_line in path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, value = (part.strip() for part in line.split("=", 1))
            normalized_key = key.lower()
            if normalized_key == "log_file":
                log_file = Path(value) if value else None
            elif normalized_key in _LEVEL_KEYS:
                levels[normalized_key] = _resolve_level(value)

    return LoggingSettings(
        terminal_level=levels["terminal"],
        file_level=levels["file"],
        log_file=log_file,
    )


def configure_logging(settings: LoggingSettings) -> None:
    """Install console and optional file handlers on the root logger."""

    # Load .env first so LOG_* overrides in the environment are visible
    load_dotenv()

    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)
    handlers: list[logging.Handler] = []

    if settings.terminal_level is not None:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(settings.terminal_level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    if settings.log_file is not None and settings.file_level is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        file_handler.setLevel(settings.file_level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    active_levels = [handler.level for handler in handlers]
    root_level = min(active_levels) if active_levels else logging.CRITICAL

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(level=root_level, handlers=handlers, force=True)
    logging.getLogger("edubot").setLevel(root_level)

    # Quiet down noisy transport libraries unless debugging
    transport_level = logging.DEBUG if root_level <= logging.DEBUG else logging.WARNING
    logging.getLogger("httpx").setLevel(transport_level)
    logging.getLogger("httpcore").setLevel(transport_level)


__all__ = ["LoggingSettings", "configure_logging", "parse_logging_settings"]
