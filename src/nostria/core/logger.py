"""
Structured logging with key=value and JSON output support.

Every log line in the gateway is an event name plus context fields, e.g.
``event_resolved id=ab12... relays=3 retried=false``. Two renderings are
available: human-readable key=value pairs (default) and one JSON object per
line for log aggregators.

The ``StructuredFormatter`` is a stdlib ``logging.Formatter`` that reads the
``structured_kv`` extra attached by ``Logger`` and appends it as key=value
pairs. Installed on the root handler by the CLI, it also renders plain
``logging.getLogger(__name__)`` calls from the models and utils layers with
the same ``level name message`` prefix.

Examples:
    ```python
    from nostria.core.logger import Logger

    logger = Logger("resolver")
    logger.info("profile_cache_hit", pubkey="abc123")
    # Output: info resolver profile_cache_hit pubkey=abc123

    json_logger = Logger("resolver", json_output=True)
    json_logger.info("retry_started", relays=7)
    # Output: {"timestamp": "...", "level": "info", "service": "resolver", ...}
    ```
"""

import datetime
import json
import logging
from typing import Any, ClassVar


def _truncate(value: Any, max_value_length: int | None) -> str:
    s = str(value)
    if max_value_length and len(s) > max_value_length:
        return s[:max_value_length] + f"...<truncated {len(s) - max_value_length} chars>"
    return s


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Values longer than ``max_value_length`` are truncated. Values that are
    empty or contain whitespace, ``=``, or quotes are escaped and wrapped in
    double quotes so the line stays machine-splittable.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value. ``None`` disables
            truncation.
        prefix: String prepended to the output when it is not empty.

    Returns:
        Formatted string, e.g. ``' relay=wss://nos.lol reason="no match"'``,
        or an empty string when ``kwargs`` is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for key, value in kwargs.items():
        s = _truncate(value, max_value_length)
        if not s or any(c in s for c in " =\"'"):
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{key}="{escaped}"')
        else:
            parts.append(f"{key}={s}")
    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Formats log records as ``level name message key=value ...``."""

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            line += format_kv_pairs(extra)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class Logger:
    """Structured logger that turns keyword arguments into context fields.

    Wraps a standard ``logging.Logger``. Each public method mirrors the stdlib
    API but takes the context as ``**kwargs`` instead of ``%`` arguments.

    Examples:
        ```python
        logger = Logger("relay_pool")
        logger.warning("fetch_failed", relays=3, error="connection refused")
        ```
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Logger name passed to ``logging.getLogger``.
            json_output: Emit one JSON object per record instead of key=value.
            max_value_length: Truncation limit for individual values
                (default 1000).
        """
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = (
            self._DEFAULT_MAX_VALUE_LENGTH if max_value_length is None else max_value_length
        )

    @property
    def name(self) -> str:
        return self._logger.name

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "service": self._logger.name,
            "message": msg,
            **kwargs,
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        if not kwargs:
            return {}
        # Pre-truncate so the formatter receives clean data
        fields: dict[str, Any] = {}
        for key, value in kwargs.items():
            if self._max_value_length and len(str(value)) > self._max_value_length:
                fields[key] = _truncate(value, self._max_value_length)
            else:
                fields[key] = value
        return {"structured_kv": fields}

    def _log(
        self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._json_output:
            level_name = logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, level_name, kwargs), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra=self._make_extra(kwargs), exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.CRITICAL, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR level with the current exception traceback attached."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)
