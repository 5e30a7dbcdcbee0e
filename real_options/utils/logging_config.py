"""Logging configuration for entry points.

Library modules never call basicConfig; they just do
`logger = logging.getLogger(__name__)`. The CLI and the dashboard call
`setup_logging(...)` once.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional, Union

LevelLike = Union[int, str]

_LEVELS: dict[str, int] = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}


def coerce_level(level: LevelLike) -> int:
    """Coerce a logging level given as int or string into an int."""
    if isinstance(level, int):
        return level

    s = str(level).strip().upper()
    if not s:
        raise ValueError("Empty logging level")
    if s.isdigit():
        return int(s)

    try:
        return _LEVELS[s]
    except KeyError as e:
        raise ValueError(f"Unknown logging level: {level!r}") from e


def setup_logging(
    level: LevelLike = "WARNING",
    *,
    fmt: str = "%(asctime)s %(levelname)s %(name)s - %(message)s",
    datefmt: str = "%Y-%m-%d %H:%M:%S",
    log_file: Optional[Union[str, Path]] = None,
    module_levels: Optional[Mapping[str, LevelLike]] = None,
) -> None:
    """Configure root logging (call once from an entry point).

    Console output goes to stderr so that JSON written to stdout stays
    machine-readable.

    Parameters
    - level: Root log level (int or string, e.g. logging.INFO or "INFO").
    - log_file: If provided, also write logs to this file.
    - module_levels: Optional per-logger overrides.
    """
    handlers: list[logging.Handler] = []

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
    handlers.append(console)

    if log_file is not None:
        p = Path(log_file)
        p.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(p, encoding="utf-8")
        fh.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
        handlers.append(fh)

    # force=True so repeated calls (tests, streamlit reruns) don't stack handlers
    logging.basicConfig(level=coerce_level(level), handlers=handlers, force=True)

    if module_levels:
        for name, lvl in module_levels.items():
            logging.getLogger(name).setLevel(coerce_level(lvl))
