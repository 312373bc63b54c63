"""
Structured logging for the router.

Log lines are an event name followed by ``key=value`` context::

    filters_updated identity=ab12... count=2
    push_failed token=ExponentPushToken[x] error="DeviceNotRegistered"

[Logger][nostrpush.core.logger.Logger] attaches the keyword arguments to the
record as the ``structured_kv`` extra, and
[StructuredFormatter][nostrpush.core.logger.StructuredFormatter] (installed
on the root handler by the CLI) renders them. Plain ``logging.getLogger()``
records from ``utils`` go through the same formatter, so the stream is
uniform. ``json_output=True`` switches a Logger to one JSON object per line.

Two rules apply to every value:

* it is cut to ``max_value_length`` characters (decrypted payloads and raw
  event content can be large);
* keys naming a secret (``private_key``, ``access_token``, ...) are
  replaced with ``<redacted>``.

Push tokens are not secret; they are the delivery address and are logged.
"""

import datetime
import json
import logging
from typing import Any, ClassVar


REDACTED = "<redacted>"
SECRET_KEYS = frozenset({"private_key", "secret_key", "access_token", "authorization"})


def _truncate(value: str, max_value_length: int | None) -> str:
    if not max_value_length or len(value) <= max_value_length:
        return value
    return f"{value[:max_value_length]}...<truncated {len(value) - max_value_length} chars>"


def _quote(value: str) -> str:
    if value and not any(ch in value for ch in " =\"'"):
        return value
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Render *kwargs* as ``key=value`` pairs.

    Values that are empty or contain whitespace, ``=`` or quotes are quoted
    and escaped. *prefix* is prepended unless there is nothing to render.
    """
    if not kwargs:
        return ""
    pairs = (f"{k}={_quote(_truncate(str(v), max_value_length))}" for k, v in kwargs.items())
    return prefix + " ".join(pairs)


class StructuredFormatter(logging.Formatter):
    """Render records as ``<level> <logger> <event> key=value ...``."""

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        line += format_kv_pairs(getattr(record, "structured_kv", None) or {})
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class Logger:
    """Event-name logger with keyword context.

    Mirrors the stdlib level methods, each taking the event name plus
    ``**context``::

        logger = Logger("router")
        logger.info("state_changed", previous="connecting", current="consuming")

    Args:
        name: Name of the underlying ``logging.Logger`` (``router``,
            ``router.registry``, ...).
        json_output: Emit one JSON object per record instead of key=value.
        max_value_length: Per-value character cap. Defaults to 1000.
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = (
            self._DEFAULT_MAX_VALUE_LENGTH if max_value_length is None else max_value_length
        )

    @property
    def name(self) -> str:
        return self._logger.name

    def _prepare(self, context: dict[str, Any]) -> dict[str, Any]:
        prepared: dict[str, Any] = {}
        for key, value in context.items():
            if key.lower() in SECRET_KEYS:
                prepared[key] = REDACTED
                continue
            text = str(value)
            if self._max_value_length and len(text) > self._max_value_length:
                prepared[key] = _truncate(text, self._max_value_length)
            else:
                prepared[key] = value
        return prepared

    def _log(self, level: int, msg: str, context: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        fields = self._prepare(context)
        if not self._json_output:
            extra = {"structured_kv": fields} if fields else {}
            self._logger.log(level, msg, extra=extra, exc_info=exc_info)
            return
        document = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": logging.getLevelName(level).lower(),
            "service": self._logger.name,
            "message": msg,
            **{k: str(v) for k, v in fields.items()},
        }
        self._logger.log(level, json.dumps(document, default=str), exc_info=exc_info)

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
        """Log at ERROR with the active exception's traceback attached."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)
