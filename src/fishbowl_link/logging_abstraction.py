"""Structured logging for the Fishbowl client.

Every record is tagged with the correlation ID of the request being served,
so the lines belonging to one ``submit()`` (queueing, auto-login, dispatch,
classification) can be grepped out of a busy log. Context passed as ``extra``
is kept as structured data; credentials and ticket keys are masked before
they reach any handler.

Output is JSON (one object per line, for log shippers), human-readable text,
or both, selected by ``FISHBOWL_LOG_FORMAT``.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path

if sys.version_info >= (3, 12):
    from typing import override
else:
    from typing_extensions import override

from fishbowl_link.correlation import get_correlation_id

__all__ = [
    "SENSITIVE_KEYS",
    "FishbowlLogger",
    "HumanReadableFormatter",
    "JSONFormatter",
    "get_logger",
]

SENSITIVE_KEYS = frozenset({"password", "userpassword", "key", "ticket", "ticket_key"})
MASK = "***"
NO_CORRELATION = "--------"


_RECORD_ATTRS = frozenset(
    {*vars(logging.LogRecord("", 0, "", 0, "", None, None)), "message", "asctime", "correlation_id", "extra_data"},
)


def _context(record: logging.LogRecord) -> dict[str, object]:
    # FishbowlLogger nests context under extra_data; plain loggers set attributes directly
    extra_data = getattr(record, "extra_data", None)
    if not isinstance(extra_data, Mapping):
        extra_data = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
    if not extra_data:
        return {}
    return {
        str(k): MASK if str(k).lower() in SENSITIVE_KEYS and v else v
        for k, v in extra_data.items()
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }
        if context := _context(record):
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class HumanReadableFormatter(logging.Formatter):
    """``10/18/26 09:15:02.114 INFO [dispatcher:212] [1f0c9a2e] > ✓ PartGet ok | elapsed_ms=41``"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] [%(correlation_id)s] > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id = get_correlation_id()
        record.correlation_id = correlation_id[:8] if correlation_id else NO_CORRELATION
        line = super().format(record)
        if context := _context(record):
            line += " | " + " | ".join(f"{k}={v}" for k, v in context.items())
        return line


def _human_handler(destination: str) -> logging.Handler:
    match destination:
        case "stdout":
            return logging.StreamHandler(sys.stdout)
        case "stderr":
            return logging.StreamHandler(sys.stderr)
        case _:
            path = Path(destination)
            path.parent.mkdir(parents=True, exist_ok=True)
            return logging.FileHandler(path, mode="a", encoding="utf-8")


class FishbowlLogger:
    """Wrapper around ``logging.Logger`` that carries structured context.

    ``logger.info("✓ Logged in", extra={"user_id": 7})`` keeps ``user_id`` as a
    field in JSON output and appends ``| user_id=7`` in human output.
    """

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stderr",
        debug: bool = False,
    ) -> None:
        """Initialize FishbowlLogger.

        Args:
            name: Logger name (typically module name)
            log_format: "json", "human", or "both"
            json_file: Destination for JSON lines; JSON output is skipped without one
            human_output: "stdout", "stderr", or a file path
            debug: Start at DEBUG instead of INFO

        """
        self.name: str = name
        self.log_format: str = log_format
        self.logger: logging.Logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG if debug else logging.INFO)

        # Loggers are process-wide; a second wrapper must not double every line.
        if not self.logger.handlers:
            self._attach_handlers(json_file, human_output or "stderr")

    def _attach_handlers(self, json_file: str | Path | None, human_output: str) -> None:
        failures: list[tuple[str, OSError]] = []

        if self.log_format in ("json", "both") and json_file:
            try:
                json_path = Path(json_file)
                json_path.parent.mkdir(parents=True, exist_ok=True)
                self._add(logging.FileHandler(json_path, mode="a", encoding="utf-8"), JSONFormatter())
            except OSError as e:
                failures.append((str(json_file), e))

        if self.log_format in ("human", "both"):
            try:
                handler = _human_handler(human_output)
            except OSError as e:
                failures.append((human_output, e))
                handler = logging.StreamHandler(sys.stderr)
            self._add(handler, HumanReadableFormatter())

        for destination, error in failures:
            self.logger.warning("✗ Log destination unavailable: %s (%s)", destination, error)

    def _add(self, handler: logging.Handler, formatter: logging.Formatter) -> None:
        handler.setFormatter(formatter)
        handler.setLevel(self.logger.level)
        self.logger.addHandler(handler)

    def _log(
        self,
        level: int,
        msg: str,
        *args: object,
        extra: Mapping[str, object] | None = None,
        exc_info: bool = False,
    ) -> None:
        payload = {"extra_data": dict(extra)} if extra else None
        # stacklevel points module:lineno at the caller instead of this wrapper
        self.logger.log(level, msg, *args, extra=payload, exc_info=exc_info, stacklevel=3)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._log(logging.ERROR, msg, *args, extra=extra, exc_info=True)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> FishbowlLogger:
    """FishbowlLogger configured from the ``FISHBOWL_LOG_*`` environment defaults."""
    # const imports the package root, which imports client, which calls get_logger
    from fishbowl_link.const import (  # noqa: PLC0415
        FISHBOWL_DEBUG,
        FISHBOWL_LOG_FORMAT,
        FISHBOWL_LOG_HUMAN_OUTPUT,
        FISHBOWL_LOG_JSON_FILE,
    )

    return FishbowlLogger(
        name=name,
        log_format=log_format or FISHBOWL_LOG_FORMAT,
        json_file=json_file or FISHBOWL_LOG_JSON_FILE,
        human_output=human_output or FISHBOWL_LOG_HUMAN_OUTPUT,
        debug=FISHBOWL_DEBUG,
    )
