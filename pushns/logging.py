"""
pushns.logging
--------------

Structured logging for the naming contracts, the executor and the CLI.

Every record carries the fields bound in the current context (``trace_id``
for the outermost transaction or deployment, ``component``) plus whatever the
call site passes in ``extra``. Byte strings are rendered as 0x-hex; the text
format shortens 32-byte values (nodes, label hashes, commitments) so a line
stays readable, the JSON format keeps them whole.

    from pushns import logging as nlog

    nlog.configure(level="INFO")               # text on a TTY, JSON otherwise
    log = nlog.get_logger(__name__)

    with nlog.trace_scope():
        nlog.bind(component="controller")
        log.info("name registered", extra={"label": "tess", "node": node})

``PUSHNS_LOG_FORMAT=json|text`` overrides the TTY detection.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional, TextIO, Tuple

ROOT_LOGGER = "pushns"

_CTX: ContextVar[Dict[str, Any]] = ContextVar("pushns_log_ctx", default={})

# Context keys shown up front in text lines, in this order.
_HEADLINE_KEYS = ("trace_id", "component")

# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_COLORS = {
    logging.DEBUG: "\x1b[90m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[1;35m",
}
_RESET = "\x1b[0m"


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


def context() -> Dict[str, Any]:
    """Copy of the fields bound in the current context."""
    return dict(_CTX.get())


def bind(**fields: Any) -> None:
    _CTX.set({**_CTX.get(), **{k: _jsonable(v) for k, v in fields.items()}})


def clear_context() -> None:
    _CTX.set({})


@contextmanager
def trace_scope(trace_id: Optional[str] = None) -> Iterator[str]:
    """Bind a trace id for the duration of the block; the previous context is restored on exit."""
    saved = _CTX.get()
    tid = trace_id or uuid.uuid4().hex[:12]
    bind(trace_id=tid)
    try:
        yield tid
    finally:
        _CTX.set(saved)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _jsonable(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    if isinstance(v, dict):
        return {str(k): _jsonable(x) for k, x in v.items()}
    return str(v)


def _short(v: Any) -> str:
    if isinstance(v, str) and v.startswith("0x") and len(v) > 18:
        return f"{v[:8]}…{v[-6:]}"
    return str(v)


def _fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: _jsonable(v)
        for k, v in record.__dict__.items()
        if k not in _RECORD_ATTRS and not k.startswith("_")
    }


def _timestamp(record: logging.LogRecord) -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)) + f".{int(record.msecs):03d}Z"


class JSONFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, msg, context, extras, err."""

    def format(self, record: logging.LogRecord) -> str:
        out: Dict[str, Any] = {
            "ts": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        out.update(context())
        for k, v in _fields(record).items():
            out.setdefault(k, v)
        if record.exc_info:
            out["err"] = self.formatException(record.exc_info)
        return json.dumps(out, separators=(",", ":"), default=str)


class TextFormatter(logging.Formatter):
    """
    ``12:34:56.789 INFO  controller [3f9a0c1d2e4b] name registered label=tess node=0x4a1f…9c0e``
    """

    def __init__(self, color: bool = False) -> None:
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        level = f"{record.levelname:<5}"
        if self.color:
            level = f"{_COLORS.get(record.levelno, '')}{level}{_RESET}"
        parts = [time.strftime("%H:%M:%S", time.gmtime(record.created)) + f".{int(record.msecs):03d}", level]
        parts.append(ctx.get("component") or record.name.rsplit(".", 1)[-1])
        if ctx.get("trace_id"):
            parts.append(f"[{ctx['trace_id']}]")
        parts.append(record.getMessage())
        extras = {**{k: v for k, v in ctx.items() if k not in _HEADLINE_KEYS}, **_fields(record)}
        parts.extend(f"{k}={_short(v)}" for k, v in extras.items())
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def _is_tty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _use_json(flag: Optional[bool], stream: TextIO) -> bool:
    if flag is not None:
        return flag
    fmt = os.environ.get("PUSHNS_LOG_FORMAT", "").strip().lower()
    if fmt in ("json", "text"):
        return fmt == "json"
    return not _is_tty(stream)


def configure(
    *,
    json: Optional[bool] = None,
    level: str | int = "INFO",
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    (Re)configure the ``pushns`` logger tree with a single stream handler.

    ``json=None`` defers to ``PUSHNS_LOG_FORMAT`` and then to TTY detection.
    Unknown level names fall back to INFO. Returns the root ``pushns`` logger.
    """
    stream = stream if stream is not None else sys.stderr
    root = logging.getLogger(ROOT_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
    root.propagate = False
    for h in list(root.handlers):
        root.removeHandler(h)
    handler = logging.StreamHandler(stream)
    if _use_json(json, stream):
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter(color=_is_tty(stream) and "NO_COLOR" not in os.environ))
    root.addHandler(handler)
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or ROOT_LOGGER)


class FieldsAdapter(logging.LoggerAdapter):
    """Adds fixed fields to every record; call-site ``extra`` wins on clashes."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def with_fields(logger: logging.Logger, **fields: Any) -> FieldsAdapter:
    return FieldsAdapter(logger, {k: _jsonable(v) for k, v in fields.items()})


__all__ = [
    "ROOT_LOGGER",
    "configure",
    "get_logger",
    "with_fields",
    "FieldsAdapter",
    "JSONFormatter",
    "TextFormatter",
    "bind",
    "clear_context",
    "context",
    "trace_scope",
]
