from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional


class _ThirdPartyFilter(logging.Filter):
    """Keep taskboard and uvicorn logs; other libraries only at WARNING+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(("taskboard", "uvicorn")):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: str | int = logging.INFO, log_file: Optional[str | Path] = None) -> None:
    """
    Configure the root logger with a console handler and, when ``log_file``
    is given, a file handler that receives everything.

    Call once, before the server starts.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(level)
    ch.setFormatter(fmt)
    ch.addFilter(_ThirdPartyFilter())
    root.addHandler(ch)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    logging.captureWarnings(True)
