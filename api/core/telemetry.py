"""Request logging and operation tracing."""

import os
import time
import uuid
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import bind_contextvars, clear_contextvars, get_logger
from core.wide_event import clear_wide_event, get_wide_event, init_wide_event

logger = get_logger(__name__)

# Spans are only recorded when an OTLP exporter is configured
TELEMETRY_ENABLED = bool(os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"))

SERVICE_NAME = os.getenv("SERVICE_NAME", "growth-tracker-api")
SERVICE_VERSION = os.getenv("SERVICE_VERSION", "0.1.0")

# Requests slower than this are always logged
SLOW_REQUEST_MS = 1000

if TELEMETRY_ENABLED:
    from opentelemetry import trace

    tracer = trace.get_tracer(__name__)
else:
    trace = None
    tracer = None

P = ParamSpec("P")
R = TypeVar("R")


class RequestLoggingMiddleware:
    """Emits one ``request.completed`` wide event per request.

    - Generates a request id, returned in ``x-request-id``
    - Binds request_id into structlog contextvars for every log line
    - Always emits errors, slow requests and authenticated requests
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        path = scope.get("path", "")
        client = scope.get("client")
        request_id = str(uuid.uuid4())

        init_wide_event(
            service_name=SERVICE_NAME,
            service_version=SERVICE_VERSION,
            request_id=request_id,
            http_method=scope.get("method", "UNKNOWN"),
            http_path=path,
            http_client_ip=client[0] if client else "unknown",
        )
        bind_contextvars(request_id=request_id)

        response_status: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal response_status

            if message.get("type") == "http.response.start":
                response_status = int(message.get("status", 0))
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers

            elif message.get("type") == "http.response.body" and not message.get(
                "more_body", False
            ):
                duration_ms = (time.perf_counter() - start_time) * 1000
                route = scope.get("route")

                event = get_wide_event()
                event["http_route"] = getattr(route, "path", None) or path
                event["http_status_code"] = response_status
                event["duration_ms"] = round(duration_ms, 2)
                event["outcome"] = (
                    "success" if response_status and response_status < 400 else "error"
                )

                should_emit = (
                    response_status is None
                    or response_status >= 400
                    or duration_ms > SLOW_REQUEST_MS
                    or event.get("user_id")
                )
                if should_emit:
                    logger.info("request.completed", **event)

                clear_wide_event()

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            event = get_wide_event()
            event["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
            event["outcome"] = "exception"
            event["exception_type"] = type(exc).__name__
            logger.info("request.completed", **event)
            clear_wide_event()
            raise
        finally:
            clear_contextvars()


def track_operation(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator that wraps an async business operation in a span.

    Without an exporter configured this is a passthrough.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            if not TELEMETRY_ENABLED or tracer is None:
                return await func(*args, **kwargs)

            with tracer.start_as_current_span(
                operation_name, attributes={"operation.name": operation_name}
            ) as span:
                start_time = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                    span.set_attribute("operation.success", True)
                    return result
                except Exception as e:
                    span.set_attribute("operation.success", False)
                    span.record_exception(e)
                    raise
                finally:
                    duration_ms = (time.perf_counter() - start_time) * 1000
                    span.set_attribute("operation.duration_ms", duration_ms)

        return wrapper

    return decorator
