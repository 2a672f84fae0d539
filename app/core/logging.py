"""
Logging JSON - une ligne JSON par événement sur stdout.

Champs d'une ligne:
- timestamp, level, logger, message
- trace_id: posé par le middleware HTTP ou au démarrage d'un job
- contexte métier promu au premier niveau (deal_id, project_id, path...)
- extra: tout autre kwarg passé au logger

Les modules de service loggent via loguru; setup_logging() redirige loguru
vers le même handler pour garder une seule sortie JSON.
"""
import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime
from functools import wraps
from typing import Any, Dict, Optional

from loguru import logger as loguru_logger

_trace_id: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)

PROMOTED_FIELDS = (
    "deal_id",
    "project_id",
    "user_id",
    "path",
    "method",
    "status_code",
    "duration_ms",
    "error_type",
)

NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "rq.worker", "PIL")


def get_trace_id() -> Optional[str]:
    return _trace_id.get()


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Pose le trace_id du contexte courant (nouvel id court si absent)."""
    trace_id = trace_id or uuid.uuid4().hex[:12]
    _trace_id.set(trace_id)
    return trace_id


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.utcfromtimestamp(record.created).isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        trace_id = get_trace_id()
        if trace_id:
            payload["trace_id"] = trace_id

        payload.update(getattr(record, "context", None) or {})
        extra = getattr(record, "extra_data", None)
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class StructuredLogger:
    """
    Wrapper sur logging.Logger qui accepte du contexte en kwargs:

        logger.info("Click tracked", deal_id=deal.id, project_id=None)

    Les kwargs à None sont ignorés.
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    @staticmethod
    def _split(fields: Dict[str, Any]):
        context, extra = {}, {}
        for key, value in fields.items():
            if value is None:
                continue
            if key == "duration_ms":
                value = round(value, 2)
            if key in PROMOTED_FIELDS:
                context[key] = value
            else:
                extra[key] = value
        return context, extra

    def _log(self, level: int, message: str, exc_info: bool = False, **fields):
        context, extra = self._split(fields)
        self._logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={"context": context, "extra_data": extra},
        )

    def debug(self, message: str, **fields):
        self._log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields):
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields):
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, exc_info: bool = True, **fields):
        self._log(logging.ERROR, message, exc_info=exc_info, **fields)

    def best_effort_failed(self, operation: str, error: Exception, **fields):
        """Échec d'une écriture secondaire: loggé, jamais propagé."""
        self._log(
            logging.ERROR,
            f"{operation} failed: {error}",
            error_type=type(error).__name__,
            best_effort=True,
            **fields,
        )


def _loguru_sink(message):
    record = message.record
    exc_info = None
    if record["exception"] is not None:
        exc = record["exception"]
        exc_info = (exc.type, exc.value, exc.traceback)
    logging.getLogger(record["name"] or "app").log(
        record["level"].no,
        record["message"],
        exc_info=exc_info,
        extra={"context": {"function": record["function"]}},
    )


def setup_logging(level: str = "INFO"):
    """Installe le handler JSON sur le root logger et y branche loguru."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    loguru_logger.remove()
    loguru_logger.add(_loguru_sink, level=level.upper(), format="{message}")


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)


def timed(logger: Optional[StructuredLogger] = None):
    """
    Décorateur de job: loggue la durée, et l'erreur éventuelle avant de la relancer.

        @timed(logger)
        def check_stale_deals():
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                if logger:
                    logger.error(
                        f"{func.__name__} failed",
                        duration_ms=(time.perf_counter() - start) * 1000,
                        error_type=type(e).__name__,
                    )
                raise
            if logger:
                logger.info(
                    f"{func.__name__} completed",
                    duration_ms=(time.perf_counter() - start) * 1000,
                )
            return result
        return wrapper
    return decorator
