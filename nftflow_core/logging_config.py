"""
Logging setup for NFTFlow.

Two console formats:
  - **human** – single line, coloured when stderr is a terminal
  - **json**  – one JSON object per line

Ledger context passed through ``extra=`` (``txid``, ``round``,
``asset_id``, ``contract_id``) is rendered by both formatters, so a
transaction can be followed from broadcast to confirmation:

    logger.info("Confirmed", extra={"txid": txid, "round": 42})

Console status lines (balances, proposals) are printed by the demo and
never go through logging.

Usage:
    from nftflow_core.logging_config import setup_logging
    setup_logging(level="DEBUG", fmt="json", log_file="nftflow.log")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# Record attributes carried into the output when present.
CONTEXT_FIELDS = ("txid", "round", "asset_id", "contract_id")

# Loggers whose DEBUG output is transport noise.
_QUIET_LOGGERS = ("aiohttp", "asyncio")


def _context(record: logging.LogRecord) -> dict:
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class _JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields at top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            **_context(record),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class _HumanFormatter(logging.Formatter):
    """``HH:MM:SS [LEVEL  ] logger: message  key=value ...``"""

    LEVEL_COLOURS = {
        "DEBUG": "\033[2m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, colour: bool = False):
        super().__init__()
        self.colour = colour

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"[{record.levelname:<7}]"
        if self.colour:
            level = f"{self.LEVEL_COLOURS.get(record.levelname, '')}{level}{self.RESET}"
        line = f"{ts} {level} {record.name}: {record.getMessage()}"

        ctx = _context(record)
        if "txid" in ctx:
            ctx["txid"] = str(ctx["txid"])[:12]
        if ctx:
            line += "  " + " ".join(f"{k}={v}" for k, v in ctx.items())
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    fmt: str = "human",
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Parameters
    ----------
    level : str
        DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive).
    fmt : str
        ``"human"`` or ``"json"`` for the console handler.
    log_file : str, optional
        Additional JSON-lines log file; parent directories are created.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        console.setFormatter(_JSONFormatter())
    else:
        console.setFormatter(_HumanFormatter(colour=sys.stderr.isatty()))
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path), encoding="utf-8")
        fh.setFormatter(_JSONFormatter())
        root.addHandler(fh)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.INFO))
