"""Asynchronous tasks of the core module."""

import structlog
from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.db.models import Case, IntegerField, Q, Value, When

from modules.core.models import EventStatus, OutboxEvent
from shared.domain.events import event_class_for
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size=None):
    """Relay pending outbox events to the in-process event bus.

    Rows are locked with ``skip_locked`` so concurrent workers never publish
    the same event twice.  A handler failure marks only that row as failed;
    failed rows are retried until ``OUTBOX_MAX_RETRIES`` and then left for
    an operator.  Pending rows go first so failures never starve them.
    """
    limit = batch_size or settings.OUTBOX_RELAY_BATCH_SIZE
    published = failed = 0

    with transaction.atomic():
        pending = list(
            OutboxEvent.objects.select_for_update(skip_locked=True)
            .filter(
                Q(status=EventStatus.PENDING)
                | Q(
                    status=EventStatus.FAILED,
                    retry_count__lt=settings.OUTBOX_MAX_RETRIES,
                )
            )
            .order_by(
                Case(
                    When(status=EventStatus.PENDING, then=Value(0)),
                    default=Value(1),
                    output_field=IntegerField(),
                ),
                "created_at",
                "id",
            )[:limit]
        )
        for outbox_event in pending:
            log = logger.bind(
                outbox_event_id=str(outbox_event.id),
                event_type=outbox_event.event_type,
                aggregate_id=outbox_event.aggregate_id,
            )
            event_class = event_class_for(outbox_event.event_type)
            if event_class is None:
                log.error("outbox.unknown_event_type")
                outbox_event.mark_as_failed("Unknown event type")
                failed += 1
                continue
            try:
                with transaction.atomic():
                    event_bus.publish(event_class.from_payload(outbox_event.payload))
            except Exception as exc:
                log.exception("outbox.publish_failed")
                outbox_event.mark_as_failed(str(exc))
                failed += 1
                continue
            outbox_event.mark_as_published()
            published += 1

    logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
