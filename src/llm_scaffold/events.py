"""Gateway events for observability.

Every routing decision, failure, fallback attempt and cost update emits a
typed event. Events are kept in a bounded in-memory store (the newest
MAX_EVENTS are retained, older ones are dropped) and also logged through
the ``llm_scaffold.events`` logger.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

__all__ = [
    "GatewayEvent",
    "EventType",
    "emit_event",
    "get_events",
    "clear_events",
    "MAX_EVENTS",
]


class EventType(Enum):
    """Types of events emitted by the provider gateway."""

    PROVIDER_REGISTERED = "provider_registered"
    PROVIDER_SELECTED = "provider_selected"
    PROVIDER_FAILED = "provider_failed"
    FALLBACK_ATTEMPT = "fallback_attempt"
    FALLBACK_EXHAUSTED = "fallback_exhausted"
    COMPLETION_SUCCEEDED = "completion_succeeded"
    COST_RECORDED = "cost_recorded"


# Failures are logged above INFO
_EVENT_LEVELS = {
    EventType.PROVIDER_FAILED: logging.WARNING,
    EventType.FALLBACK_ATTEMPT: logging.INFO,
    EventType.FALLBACK_EXHAUSTED: logging.ERROR,
    EventType.COST_RECORDED: logging.DEBUG,
}


@dataclass
class GatewayEvent:
    """An event emitted by the gateway."""

    event_type: EventType
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    provider: Optional[str] = None


# Oldest events are dropped once the store holds this many
MAX_EVENTS = 1000

# Global event store (in-memory, process lifetime)
_events: Deque[GatewayEvent] = deque(maxlen=MAX_EVENTS)

logger = logging.getLogger("llm_scaffold.events")


def emit_event(
    event_type: EventType,
    data: Dict[str, Any],
    provider: Optional[str] = None,
) -> GatewayEvent:
    """Emit a gateway event.

    Args:
        event_type: Type of event
        data: Event-specific data
        provider: Provider the event concerns, if any

    Returns:
        The emitted GatewayEvent
    """
    event = GatewayEvent(event_type=event_type, data=data, provider=provider)
    _events.append(event)

    logger.log(
        _EVENT_LEVELS.get(event_type, logging.INFO),
        "Gateway event: %s provider=%s data=%s",
        event_type.value,
        provider,
        data,
    )
    return event


def get_events(event_type: Optional[EventType] = None) -> List[GatewayEvent]:
    """Get emitted events in emission order, optionally filtered by type."""
    if event_type is None:
        return list(_events)
    return [e for e in _events if e.event_type == event_type]


def clear_events() -> None:
    """Clear all stored events."""
    _events.clear()
