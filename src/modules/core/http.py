"""Translation of domain exceptions into DRF responses.

Views catch ``DomainError`` around service calls and hand it here so every
endpoint answers the same way:

* ``NotFound`` -> 404
* ``ActorNotAllowed`` -> 403
* ``StateConflict`` -> 409 with ``{"detail", "code"}``, logged at info

``IntegrityViolation`` is never translated: it propagates as a 500 after the
service has logged it at error level.

``window_from_request`` reads the reporting window (``period``,
``date_from``, ``date_to``) shared by the admin overviews.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import structlog
from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.request import Request
from rest_framework.response import Response

from shared.domain.exceptions import (
    ActorNotAllowed,
    DomainError,
    IntegrityViolation,
    NotFound,
    StateConflict,
)
from shared.domain.periods import DateWindow, resolve_window

logger = structlog.get_logger(__name__)


def domain_error_response(exc: DomainError) -> Response:
    if isinstance(exc, IntegrityViolation):
        raise exc
    if isinstance(exc, NotFound):
        http_status = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ActorNotAllowed):
        http_status = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, StateConflict):
        http_status = status.HTTP_409_CONFLICT
    else:
        http_status = status.HTTP_400_BAD_REQUEST

    logger.info(
        "api.domain_error",
        error=type(exc).__name__,
        code=exc.code,
        status_code=http_status,
    )
    return Response({"detail": str(exc), "code": exc.code}, status=http_status)


def window_from_request(request: Request, now: Optional[datetime] = None) -> DateWindow:
    """Reporting window from ``period`` / ``date_from`` / ``date_to`` params.

    Raises:
        ValidationError: malformed date or unknown period (DRF answers 400).
    """
    params = request.query_params
    bounds = {}
    for name in ("date_from", "date_to"):
        raw = params.get(name)
        if not raw:
            bounds[name] = None
            continue
        try:
            bounds[name] = parse_date(raw)
        except ValueError:
            bounds[name] = None
        if bounds[name] is None:
            raise ValidationError({name: "Use the YYYY-MM-DD format."})

    try:
        return resolve_window(
            timezone.localtime(now or timezone.now()),
            period=params.get("period"),
            date_from=bounds["date_from"],
            date_to=bounds["date_to"],
        )
    except ValueError as exc:
        raise ValidationError({"period": str(exc)}) from exc
