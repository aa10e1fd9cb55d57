"""
Structured logging configuration
"""
import functools
import logging
import os
import sys
import time
import uuid

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# "json" for log shippers, "console" for local development
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").lower()


def configure_logging(level: str = LOG_LEVEL, log_format: str = LOG_FORMAT):
    """Configure structlog on top of the standard library logging"""
    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format == "console"
        else structlog.processors.JSONRenderer(ensure_ascii=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level, logging.INFO),
    )

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def get_logger(name: str = None):
    """Get a structured logger"""
    return structlog.get_logger(name)


def bind_request_context(request) -> str:
    """Start a fresh log context for an HTTP request and return its id"""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )
    return request_id


def log_performance(func_name: str):
    """Decorator that logs how long a generation step took"""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger("performance")
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    "generation_failed",
                    function=func_name,
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                    error=str(e),
                )
                raise
            logger.info(
                "generation_completed",
                function=func_name,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return result
        return wrapper
    return decorator


def log_api_request(request, response=None):
    """Log the start or the completion of an API request"""
    logger = get_logger("api")

    if response is None:
        logger.info(
            "api_request_started",
            client_ip=request.client.host if request.client else "unknown",
            user_agent=request.headers.get("user-agent", "unknown"),
        )
        return

    log = logger.warning if response.status_code >= 400 else logger.info
    log(
        "api_request_completed",
        status_code=response.status_code,
        response_time=getattr(response, "response_time", None),
    )
