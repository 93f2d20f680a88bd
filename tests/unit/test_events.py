"""
Unit tests for the event emitter (vizdata.events).
"""

from __future__ import annotations

import dataclasses

import pytest

from vizdata.events import EventEmitter, EventType, ParserEvent, StoreEvent


class TestEventEmitter:
    """Tests for EventEmitter.on() and emit()."""

    def test_listeners_called_in_registration_order(self):
        emitter = EventEmitter()
        calls: list[str] = []
        emitter.on(EventType.PARSE, lambda e: calls.append("first"))
        emitter.on(EventType.PARSE, lambda e: calls.append("second"))
        emitter.emit(ParserEvent(type=EventType.PARSE))
        assert calls == ["first", "second"]

    def test_only_matching_type_called(self):
        emitter = EventEmitter()
        calls: list = []
        emitter.on(EventType.AFTER_LOAD, calls.append)
        emitter.emit(StoreEvent(type=EventType.LOAD))
        assert calls == []

    def test_unsubscribe(self):
        emitter = EventEmitter()
        calls: list = []
        unsubscribe = emitter.on(EventType.PARSE, calls.append)
        unsubscribe()
        unsubscribe()
        emitter.emit(ParserEvent(type=EventType.PARSE))
        assert calls == []

    def test_listener_may_unsubscribe_during_emit(self):
        emitter = EventEmitter()
        calls: list[str] = []
        unsubscribe = None

        def once(event):
            calls.append("once")
            unsubscribe()

        unsubscribe = emitter.on(EventType.PARSE, once)
        emitter.on(EventType.PARSE, lambda e: calls.append("always"))
        emitter.emit(ParserEvent(type=EventType.PARSE))
        emitter.emit(ParserEvent(type=EventType.PARSE))
        assert calls == ["once", "always", "always"]

    def test_string_event_name_accepted(self):
        emitter = EventEmitter()
        calls: list = []
        emitter.on("afterParse", calls.append)
        emitter.emit(ParserEvent(type=EventType.AFTER_PARSE))
        assert len(calls) == 1

    def test_unknown_event_name_rejected(self):
        with pytest.raises(ValueError):
            EventEmitter().on("bogus", print)

    def test_listener_errors_propagate(self):
        emitter = EventEmitter()

        def boom(event):
            raise RuntimeError("listener failed")

        emitter.on(EventType.LOAD, boom)
        with pytest.raises(RuntimeError):
            emitter.emit(StoreEvent(type=EventType.LOAD))


class TestEventPayloads:
    """Tests for the event dataclasses."""

    def test_events_are_frozen(self):
        event = ParserEvent(type=EventType.PARSE)
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.error = "x"

    def test_defaults(self):
        event = StoreEvent(type=EventType.LOAD_ERROR, error="failed")
        assert event.table is None
        assert event.error == "failed"

    def test_wire_names(self):
        assert [e.value for e in EventType] == [
            "parse", "afterParse", "parseError", "load", "afterLoad", "loadError",
        ]
