"""Request correlation for the customer and rider apps.

Both apps poll (order detail, live location, rider board), so a single
screen produces a steady stream of requests.  Every request gets a
correlation id and, when the app sends one, its ``X-Client-App`` name; both
are bound into structlog's contextvars for the lifetime of the request.
"""

import time
import uuid
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

logger = structlog.get_logger()

CLIENT_APP_MAX_LENGTH = 40


class CorrelationIdMiddleware:
    """Read ``X-Request-ID`` (or generate a UUID4) and echo it back."""

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())
        client_app = request.META.get("HTTP_X_CLIENT_APP", "")[:CLIENT_APP_MAX_LENGTH]

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)
        if client_app:
            structlog.contextvars.bind_contextvars(client_app=client_app)

        started = time.monotonic()
        log = logger.bind(method=request.method, path=request.path)
        log.info("request_started")
        response = self.get_response(request)

        log.info(
            "request_finished",
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )
        response["X-Request-ID"] = cid
        return response
