import logging
import json
from typing import Optional

from .observability import _ContextFilter, get_structured_logger
from .settings import get_settings

_STANDARD_ATTRS = (
    "msg", "args", "exc_info", "exc_text", "stack_info", "stacklevel", "levelno", "levelname",
    "msecs", "relativeCreated", "created", "thread", "threadName", "processName", "process",
    "pathname", "filename", "module", "lineno", "funcName", "name", "taskName",
)


class JsonFormatter(logging.Formatter):
    """Emit logs as single-line JSON with common fields and request context (request_id, route)."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            # Context fields added by filter (see observability._ContextFilter)
            "request_id": getattr(record, "request_id", "-"),
            "route": getattr(record, "route", "-"),
        }
        for key, val in record.__dict__.items():
            if key in _STANDARD_ATTRS or key in ("request_id", "route"):
                continue
            try:
                json.dumps({key: val})
                base[key] = val
            except (TypeError, ValueError):
                base[key] = str(val)
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, separators=(",", ":"), ensure_ascii=False)


def _configure_root_logger(level: str, fmt: str) -> logging.Logger:
    logger = logging.getLogger()
    if not logger.handlers:
        handler = logging.StreamHandler()
        if fmt == "json":
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(
                logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | [%(request_id)s %(route)s] %(message)s")
            )
        handler.addFilter(_ContextFilter())
        logger.addHandler(handler)
    logger.setLevel(level)
    # motor/pymongo are chatty at INFO
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    return logger


_app_settings = get_settings().app
root_logger = _configure_root_logger(_app_settings.LOG_LEVEL, _app_settings.LOG_FORMAT)


# PUBLIC_INTERFACE
def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a module logger configured with the global format and level."""
    return get_structured_logger(name or __name__)
