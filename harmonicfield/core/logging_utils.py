"""
Logging setup for batch runs and the command line.

Library modules only call `logging.getLogger(__name__)`. `setup_logging` is
called once by an entrypoint and attaches two handlers to the root logger:

    - a UTF-8 log file with the full record (level from HARMONICFIELD_LOG_LEVEL)
    - optionally, a stderr stream showing warnings and errors only, so a batch
      job prints mesh-quality or solver problems without a debug flood
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from pathlib import Path
from typing import Optional, TextIO

ENV_LOG_LEVEL = "HARMONICFIELD_LOG_LEVEL"
ENV_LOG_DIR = "HARMONICFIELD_LOG_DIR"

FILE_HANDLER_NAME = "harmonicfield.file"
CONSOLE_HANDLER_NAME = "harmonicfield.console"

_FILE_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s [%(name)s] %(message)s"
_CONSOLE_FORMAT = "%(levelname)s: %(message)s"

_SEEN: dict[str, set[str]] = {}
_SEEN_LOCK = threading.Lock()


def default_log_dir() -> Path:
    """HARMONICFIELD_LOG_DIR, else the per-user state directory."""
    explicit = os.environ.get(ENV_LOG_DIR)
    if explicit:
        return Path(explicit)
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or str(Path.home())
        return Path(base) / "HarmonicField" / "logs"
    state = os.environ.get("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    return Path(state) / "harmonicfield" / "logs"


def _resolve_level(level: str | int | None) -> int:
    raw = os.environ.get(ENV_LOG_LEVEL) or level or "INFO"
    if isinstance(raw, int):
        return raw
    resolved = logging.getLevelName(str(raw).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _named_handler(root: logging.Logger, name: str) -> Optional[logging.Handler]:
    for handler in root.handlers:
        if handler.get_name() == name:
            return handler
    return None


def _attach_console(root: logging.Logger, stream: Optional[TextIO], level: int) -> None:
    if _named_handler(root, CONSOLE_HANDLER_NAME) is not None:
        return
    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console.set_name(CONSOLE_HANDLER_NAME)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    root.addHandler(console)


def _attach_file(root: logging.Logger, log_dir: Path, filename: str, level: int) -> Optional[Path]:
    existing = _named_handler(root, FILE_HANDLER_NAME)
    if existing is not None:
        return Path(existing.baseFilename)

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(str(log_dir / filename), encoding="utf-8")
    except OSError:
        return None
    handler.set_name(FILE_HANDLER_NAME)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    return Path(handler.baseFilename)


def setup_logging(
    *,
    log_level: str | int | None = None,
    log_dir: Optional[str | Path] = None,
    filename: str = "harmonicfield.log",
    console: bool = True,
    console_level: int = logging.WARNING,
    stream: Optional[TextIO] = None,
) -> Optional[Path]:
    """
    Attach the harmonicfield file handler (and stderr handler) to the root logger.

    Calling it again reuses the handlers already attached. Returns the log file
    path, or None when the file could not be opened; console logging is still
    set up in that case.
    """
    root = logging.getLogger()
    level = _resolve_level(log_level)
    root.setLevel(min(level, console_level) if console else level)

    if console:
        _attach_console(root, stream, console_level)

    resolved_dir = Path(log_dir) if log_dir is not None else default_log_dir()
    log_path = _attach_file(root, resolved_dir, filename, level)
    if log_path is not None:
        logging.getLogger(__name__).debug("Logging to %s", log_path)
    return log_path


def format_exception_message(prefix: str, message: str, *, log_path: Optional[Path]) -> str:
    if log_path is None:
        return f"{prefix}: {message}"
    return f"{prefix}: {message}\n(log file: {log_path})"


def log_once(
    logger: logging.Logger,
    key: str,
    level: int,
    msg: str,
    *args,
) -> bool:
    """
    Emit `msg` only the first time `key` is seen for this logger.

    Repeated solves on one mesh would otherwise repeat the same mesh-quality
    warning on every call.
    """
    with _SEEN_LOCK:
        seen = _SEEN.setdefault(logger.name, set())
        if key in seen:
            return False
        seen.add(key)
    logger.log(level, msg, *args)
    return True


def reset_log_once() -> None:
    """Forget every key seen by `log_once`."""
    with _SEEN_LOCK:
        _SEEN.clear()
