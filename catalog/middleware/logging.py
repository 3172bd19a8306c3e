from fastapi import Request
import logging
import sys
import time
import structlog
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """JSON logs to stdout; call once at startup"""
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Request/response logging with a correlation id
    """

    # Paths to exclude from logging (reduce noise)
    EXCLUDE_PATHS = {"/health", "/favicon.ico"}

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.EXCLUDE_PATHS:
            return await call_next(request)

        correlation_id = request.headers.get(
            "X-Correlation-ID",
            f"req_{int(time.time() * 1000)}"
        )

        client_ip = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
        if not client_ip:
            client_ip = request.client.host if request.client else "unknown"

        start_time = time.time()

        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
        try:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
                query_params=str(request.query_params) if request.query_params else None,
                client_ip=client_ip,
            )

            response = await call_next(request)

            duration = time.time() - start_time

            log_level = "info"
            if response.status_code >= 500:
                log_level = "error"
            elif response.status_code >= 400:
                log_level = "warning"

            getattr(logger, log_level)(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=f"{duration * 1000:.2f}",
                client_ip=client_ip,
                high_duration=duration > 5.0,
            )
        finally:
            structlog.contextvars.unbind_contextvars("correlation_id")

        response.headers["X-Correlation-ID"] = correlation_id
        return response
