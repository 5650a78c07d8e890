# ============================================================================
# EVENT BUS TESTS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Tests - Lifecycle event bus
# PURPOSE: Verify listener ordering, wildcard listeners and early termination
# CREATED: 19 OCT 2026
# ============================================================================
"""
Event Bus Tests

Run with:
    pytest tests/test_events.py -v
"""

import pytest

from broker.events import EventBus, ServiceEvent
from core.models.command import Command


@pytest.fixture
def bus():
    return EventBus()


class TestListenerOrder:

    def test_priority_then_registration_order(self, bus):
        bus.attach("evt", lambda e: "low", priority=1)
        bus.attach("evt", lambda e: "high", priority=100)
        bus.attach("evt", lambda e: "low-2", priority=1)

        responses = bus.trigger("evt")

        assert responses.to_list() == ["high", "low", "low-2"]
        assert not responses.stopped

    def test_wildcard_listeners_run_for_every_event(self, bus):
        bus.attach("*", lambda e: f"any:{e.name}")
        bus.attach("evt", lambda e: "specific", priority=5)

        assert bus.trigger("evt").to_list() == ["specific", "any:evt"]
        assert bus.trigger("other").to_list() == ["any:other"]

    def test_no_listeners(self, bus):
        responses = bus.trigger("nothing")
        assert responses.is_empty()
        assert not bus.has_listeners("nothing")


class TestEarlyTermination:

    def test_until_stops_chain(self, bus):
        bus.attach("evt", lambda e: 1, priority=3)
        bus.attach("evt", lambda e: 2, priority=2)
        bus.attach("evt", lambda e: 3, priority=1)

        responses = bus.trigger("evt", until=lambda r: r == 2)

        assert responses.to_list() == [1, 2]
        assert responses.stopped

    def test_stop_propagation(self, bus):
        def stopper(event):
            event.stop_propagation()
            return "stopped here"

        bus.attach("evt", stopper, priority=2)
        bus.attach("evt", lambda e: "never", priority=1)

        responses = bus.trigger("evt")

        assert responses.to_list() == ["stopped here"]
        assert responses.stopped


class TestAttachDetach:

    def test_detach(self, bus):
        handle = bus.attach("evt", lambda e: "x")
        assert bus.detach(handle)
        assert not bus.detach(handle)
        assert bus.get_events() == []

    def test_clear_listeners(self, bus):
        bus.attach("evt", lambda e: "x")
        bus.attach("evt", lambda e: "y")
        bus.clear_listeners("evt")
        assert not bus.has_listeners("evt")

    def test_attach_requires_callable(self, bus):
        with pytest.raises(TypeError):
            bus.attach("evt", "not callable")


class TestServiceEvent:

    def test_params_delegate_to_command(self, bus):
        command = Command("Valu.Test", "run", {"level": "debug"})
        bus.attach("evt", lambda e: e.set_param("level", "none"))

        bus.trigger("evt", ServiceEvent(command=command))

        assert command.get_param("level") == "none"

    def test_params_without_command(self):
        event = ServiceEvent("evt", params={"a": 1})
        event.set_param("b", 2)
        assert event.params == {"a": 1, "b": 2}
        assert event.get_param("a") == 1

    def test_trigger_sets_name(self, bus):
        event = ServiceEvent()
        bus.trigger("named", event)
        assert event.name == "named"
