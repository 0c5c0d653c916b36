from __future__ import annotations
import logging, sys
import structlog
import structlog.stdlib

# Shared by structlog loggers and stdlib records (uvicorn, sqlalchemy, rq)
_PRE_CHAIN = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.add_log_level,
]

def _level(name: str | None) -> int:
    value = logging.getLevelName((name or "INFO").upper())
    return value if isinstance(value, int) else logging.INFO

def configure_logging(level: str | None = None):
    lvl = _level(level)
    structlog.configure(
        processors=[
            *_PRE_CHAIN,
            structlog.processors.format_exc_info,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(lvl),
        cache_logger_on_first_use=True,
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=_PRE_CHAIN,
    ))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(lvl)
    # SQL echo only when explicitly debugging
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING if lvl > logging.DEBUG else logging.INFO)
