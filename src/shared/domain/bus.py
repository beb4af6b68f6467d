"""Event bus contracts.

Domain events leave the aggregates through the outbox; the relay task
decodes each row and hands it to an ``IEventBus``.  Handlers must be safe
to run more than once for the same event: a relay that fails half-way
re-publishes the row on its next run.
"""

from __future__ import annotations

from typing import Generic, List, Protocol, Type, TypeVar

from shared.domain.events import DomainEvent

E = TypeVar("E", bound=DomainEvent, contravariant=True)


class IEventHandler(Protocol, Generic[E]):
    def handle(self, event: E) -> None: ...


class IEventBus(Protocol):
    def publish(self, event: DomainEvent) -> None:
        """Run every handler subscribed to ``type(event)``; errors propagate."""

    def subscribe(self, event_class: Type[E], handler: IEventHandler[E]) -> None: ...

    def handlers_for(self, event_class: Type[DomainEvent]) -> List[IEventHandler]: ...
