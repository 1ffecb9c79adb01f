import json
import logging
import os
from typing import Optional

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_PROXY_HANDLER_NAME = "policy-proxy"


class JsonLineFormatter(logging.Formatter):
    """One JSON object per line; log shippers in CI pick these up as-is."""

    def format(self, record: logging.LogRecord) -> str:
        doc = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            doc["exc"] = self.formatException(record.exc_info)
        return json.dumps(doc, ensure_ascii=False)


def _make_text_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def resolve_level(level: Optional[str]) -> int:
    return _LEVELS.get((level or "INFO").upper(), logging.INFO)


def setup_logging(
    level: Optional[str] = None,
    fmt: Optional[str] = None,
) -> logging.Handler:
    """
    Install the proxy's stream handler on the root logger.
    Env overrides:
      LOG_LEVEL = INFO|DEBUG|...
      LOG_FORMAT = text|json
    Safe to call more than once (each app factory call does); the previous
    proxy handler is replaced, foreign handlers such as pytest's are left alone.
    """
    level = level or os.getenv("LOG_LEVEL") or "INFO"
    fmt = (fmt or os.getenv("LOG_FORMAT") or "text").lower()

    log_level = resolve_level(level)
    formatter = JsonLineFormatter() if fmt == "json" else _make_text_formatter()

    root = logging.getLogger()
    for h in list(root.handlers):
        if h.get_name() == _PROXY_HANDLER_NAME:
            root.removeHandler(h)

    handler = logging.StreamHandler()
    handler.set_name(_PROXY_HANDLER_NAME)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(log_level)

    # uvicorn ships its own handlers; route its loggers through ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = [handler]
        lg.propagate = False
        lg.setLevel(log_level)

    return handler
