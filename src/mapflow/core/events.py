"""Synchronous event bus for editor observability.

The editor emits a GraphChanged after every committed structural or
configuration change and a GraphWarning whenever it repairs stale state.
Embedding applications subscribe to surface these to users.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class GraphChanged:
    """A mutation was committed and node positions were recomputed."""

    operation: str
    node_ids: tuple[str, ...]
    node_count: int
    edge_count: int


class EventBusProtocol(Protocol):
    """Shared interface of EventBus and NullEventBus."""

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None: ...

    def emit(self, event: T) -> None: ...


class EventBus:
    """Dispatches events synchronously to subscribers of the event's type.

    Handler exceptions propagate to the caller. Events with no subscribers
    are ignored.

    Example:
        bus = EventBus()
        bus.subscribe(GraphWarning, lambda w: print(w.message))
        editor = WorkflowEditor(event_bus=bus)
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable[[Any], None]]] = {}

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        """Register ``handler`` for events of exactly ``event_type``."""
        self._subscribers.setdefault(event_type, []).append(handler)

    def emit(self, event: T) -> None:
        """Call every handler subscribed to the event's type, in subscription order."""
        for handler in self._subscribers.get(type(event), []):
            handler(event)


class NullEventBus:
    """Event bus that drops everything.

    Does not inherit from EventBus, so code that subscribes expecting
    callbacks fails loudly in review rather than silently at runtime.
    """

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        pass

    def emit(self, event: T) -> None:
        pass
