"""Logging for the ModCalc API.

Everything goes through the ``modcalc`` logger; modules that use
``logging.getLogger(__name__)`` inside the package propagate to it. The
``log_*`` helpers emit one line per event in a ``KEY value key=value`` shape
so request, DB and upstream timings can be grepped out of the stream.
"""

import logging
import sys
from typing import Any

LOGGER_NAME = "modcalc"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the ``modcalc`` logger. Safe to call more than once."""
    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Level may change on a second call; the handler is installed once
    if app_logger.handlers:
        return app_logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    app_logger.addHandler(handler)
    app_logger.propagate = False

    return app_logger


logger = setup_logging()


def _fields(**kwargs: Any) -> str:
    return " ".join(f"{k}={v}" for k, v in kwargs.items() if v is not None)


def _duration(duration_ms: float | None) -> str:
    return f"duration_ms={duration_ms:.2f}" if duration_ms is not None else ""


def log_request(method: str, path: str, **kwargs: Any) -> None:
    logger.info(f"REQUEST {method} {path} {_fields(**kwargs)}".strip())


def log_response(method: str, path: str, status: int, duration_ms: float) -> None:
    logger.info(f"RESPONSE {method} {path} status={status} {_duration(duration_ms)}")


def log_error(message: str, exc: Exception | None = None, **kwargs: Any) -> None:
    """Log an error; pass ``exc`` to include the traceback."""
    line = f"ERROR {message} {_fields(**kwargs)}".strip()
    if exc is not None:
        logger.error(line, exc_info=exc)
    else:
        logger.error(line)


def log_db_query(operation: str, table: str, duration_ms: float | None = None) -> None:
    logger.debug(f"DB {operation} table={table} {_duration(duration_ms)}".strip())


def log_external_call(
    service: str, operation: str, success: bool, duration_ms: float | None = None
) -> None:
    """Log a call to Supabase auth, the AI endpoint or another upstream."""
    status = "success" if success else "failed"
    logger.info(
        f"EXTERNAL {service} {operation} status={status} {_duration(duration_ms)}".strip()
    )


def log_prediction(
    car_id: str,
    mod_count: int,
    hp: int,
    ai_notes: bool,
    user_id: str | None = None,
) -> None:
    """One line per served prediction."""
    fields = _fields(
        car_id=car_id,
        mods=mod_count,
        hp=hp,
        ai_notes=str(ai_notes).lower(),
        user=user_id or "anonymous",
    )
    logger.info(f"PREDICT {fields}")
