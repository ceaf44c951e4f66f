"""Console logging for the bridge and its KNX connection."""

from __future__ import annotations

import logging
import sys

TRACE = 5
DEBUG = logging.DEBUG
INFO = logging.INFO
WARN = logging.WARNING
ERROR = logging.ERROR
FATAL = logging.CRITICAL
PANIC = logging.CRITICAL + 10
NO_LEVEL = logging.CRITICAL + 20
DISABLED = logging.CRITICAL + 30

_ROOT_LOGGER = "knx_mqtt"
_KNX_LOGGER = "knx_mqtt.knxnet"

_NAMED_LEVELS = {
    "trace": TRACE,
    "debug": DEBUG,
    "info": INFO,
    "warn": WARN,
    "error": ERROR,
    "fatal": FATAL,
    "panic": PANIC,
    "disabled": DISABLED,
    "": NO_LEVEL,
}
_NUMBERED_LEVELS = [TRACE, DEBUG, INFO, WARN, ERROR, FATAL, PANIC, NO_LEVEL, DISABLED]

_installed: dict[str, logging.Handler] = {}


class _ConsoleFormatter(logging.Formatter):
    _ABBREVIATIONS = {
        TRACE: "TRC",
        DEBUG: "DBG",
        INFO: "INF",
        WARN: "WRN",
        ERROR: "ERR",
        FATAL: "FTL",
        PANIC: "PNC",
    }

    def format(self, record: logging.LogRecord) -> str:
        record.short_level = self._ABBREVIATIONS.get(record.levelno, record.levelname[:3].upper())
        return super().format(record)


def _parse_level(text: str) -> int:
    name = text.lower()
    if name in _NAMED_LEVELS:
        return _NAMED_LEVELS[name]
    try:
        number = int(text)
    except ValueError:
        raise ValueError(f"Unknown Level String: '{text}', defaulting to NoLevel") from None
    # Numbered levels run from -1 (trace) upwards.
    position = min(max(number + 1, 0), len(_NUMBERED_LEVELS) - 1)
    return _NUMBERED_LEVELS[position]


def _install(logger: logging.Logger, handler: logging.Handler | None, level: int) -> None:
    previous = _installed.pop(logger.name, None)
    if previous is not None:
        logger.removeHandler(previous)
    if handler is not None:
        logger.addHandler(handler)
        _installed[logger.name] = handler
    logger.setLevel(level)


def setup_logging(log_level: str, enable_knx_logs: bool) -> int:
    """Send bridge logs to stdout at the given level; return the level applied."""
    logger = logging.getLogger(_ROOT_LOGGER)
    try:
        level = _parse_level(log_level)
    except ValueError as exc:
        logger.error("%s", exc)
        level = NO_LEVEL

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_ConsoleFormatter("%(asctime)s %(short_level)s %(message)s", datefmt="%I:%M%p"))
    _install(logger, console, level)

    knx_logger = logging.getLogger(_KNX_LOGGER)
    knx_logger.propagate = False
    if enable_knx_logs:
        knx_handler = logging.StreamHandler(sys.stdout)
        knx_handler.setFormatter(logging.Formatter("%(asctime)s %(message)s", datefmt="%Y/%m/%d %H:%M:%S"))
        _install(knx_logger, knx_handler, 1)
    else:
        _install(knx_logger, None, DISABLED)
    return level