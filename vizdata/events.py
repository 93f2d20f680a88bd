"""
Typed events and a synchronous observer list for vizdata.

Parsers and stores announce their progress through events. Each event
is a frozen dataclass whose ``type`` is an ``EventType`` member, so
listeners subscribe to an enum value rather than a free-form string.

Emission is a synchronous fan-out at the call site: every listener
registered for the event type is called, in registration order, before
``emit()`` returns. Listeners are snapshotted first, so a listener may
unsubscribe itself while being called.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from vizdata.table import DataTable

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Names of the events emitted by parsers and stores."""

    PARSE = "parse"
    AFTER_PARSE = "afterParse"
    PARSE_ERROR = "parseError"
    LOAD = "load"
    AFTER_LOAD = "afterLoad"
    LOAD_ERROR = "loadError"


@dataclass(frozen=True)
class ParserEvent:
    """Event emitted by a ``DataParser``.

    Attributes:
        type: ``PARSE``, ``AFTER_PARSE`` or ``PARSE_ERROR``.
        columns: Parsed column arrays (empty before parsing finished).
        headers: Column names, index-aligned with ``columns``.
        error: Error description for ``PARSE_ERROR``.
    """

    type: EventType
    columns: list[list[Any]] = field(default_factory=list)
    headers: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class StoreEvent:
    """Event emitted by a ``DataStore``.

    Attributes:
        type: ``LOAD``, ``AFTER_LOAD`` or ``LOAD_ERROR``.
        table: The store's table, fully built for ``AFTER_LOAD``.
        error: Error description for ``LOAD_ERROR``.
    """

    type: EventType
    table: DataTable | None = None
    error: str | None = None


Event = Union[ParserEvent, StoreEvent]
EventCallback = Callable[[Any], None]


class EventEmitter:
    """Mixin holding one listener list per event type."""

    def __init__(self) -> None:
        self._listeners: dict[EventType, list[EventCallback]] = {}

    def on(self, event_type: EventType, callback: EventCallback) -> Callable[[], None]:
        """Register *callback* for *event_type*.

        Returns:
            A function that unregisters the callback. Calling it more
            than once is harmless.
        """
        event_type = EventType(event_type)
        self._listeners.setdefault(event_type, []).append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event_type, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def emit(self, event: Event) -> None:
        """Call every listener registered for ``event.type``."""
        listeners = list(self._listeners.get(event.type, ()))
        logger.debug(
            "%s emits %s to %d listener(s)",
            type(self).__name__, event.type.value, len(listeners),
        )
        for callback in listeners:
            callback(event)
