"""Tests for the asyncio page session driver."""

import asyncio
from unittest.mock import MagicMock

from src.popup.frequency_store import KeyValueFrequencyStore
from src.popup.session import PageEvent, PageEventType, PageSession
from src.popup.trigger import TriggerCoordinator, TriggerState

from conftest import make_popup_config


def _session(telemetry=None, **config_kwargs) -> PageSession:
    coordinator = TriggerCoordinator(
        make_popup_config(**config_kwargs),
        KeyValueFrequencyStore({}),
        telemetry=telemetry,
    )
    return PageSession(coordinator, telemetry)


class TestPageEvent:
    def test_builders(self):
        assert PageEvent.scroll(40).data == {"percentage": 40}
        assert PageEvent.mouse_leave().data == {"cursor_y": 0}
        assert PageEvent.dismiss("cta_click").data == {"reason": "cta_click"}
        assert PageEvent.product_click("p1").type == PageEventType.PRODUCT_CLICK
        assert PageEvent.unload().data == {}


class TestPageSession:
    def test_scroll_then_timer_displays(self):
        session = _session(scroll_percentage=30, time_delay_ms=10)

        async def scenario():
            task = asyncio.create_task(session.run())
            session.post(PageEvent.scroll(35))
            await asyncio.sleep(0.05)
            session.post(PageEvent.unload())
            return await task

        assert asyncio.run(scenario()) == TriggerState.DISPLAYED

    def test_no_conditions_displays_without_signals(self):
        session = _session(scroll_percentage=None, time_delay_ms=None, exit_intent=False)

        async def scenario():
            task = asyncio.create_task(session.run())
            session.post(PageEvent.scroll(90))
            session.post(PageEvent.unload())
            return await task

        assert asyncio.run(scenario()) == TriggerState.DISPLAYED
        assert session._timer is None

    def test_unload_cancels_pending_timer(self):
        session = _session(scroll_percentage=None, time_delay_ms=60_000)

        async def scenario():
            task = asyncio.create_task(session.run())
            session.post(PageEvent.unload())
            return await task

        assert asyncio.run(scenario()) == TriggerState.ARMED
        assert session.unloaded is True
        assert session._timer is None

    def test_exit_intent_then_dismiss(self):
        session = _session(time_delay_ms=60_000)

        async def scenario():
            task = asyncio.create_task(session.run())
            session.post(PageEvent.mouse_leave(0))
            session.post(PageEvent.product_click("p-sony"))
            session.post(PageEvent.dismiss("cta_click"))
            session.post(PageEvent.unload())
            return await task

        assert asyncio.run(scenario()) == TriggerState.CLOSED
        assert session.coordinator.close_reason.value == "cta_click"

    def test_unload_flushes_telemetry(self):
        telemetry = MagicMock()
        session = _session(telemetry=telemetry)

        async def scenario():
            task = asyncio.create_task(session.run())
            session.post(PageEvent.unload())
            await task

        asyncio.run(scenario())
        telemetry.flush.assert_called_once()

    def test_handler_error_does_not_stop_loop(self):
        session = _session(time_delay_ms=60_000)

        async def scenario():
            task = asyncio.create_task(session.run())
            # dismiss before display is an illegal transition
            session.post(PageEvent.dismiss())
            session.post(PageEvent.mouse_leave(0))
            session.post(PageEvent.unload())
            return await task

        assert asyncio.run(scenario()) == TriggerState.DISPLAYED

    def test_gate_rejection_skips_timer(self):
        coordinator = TriggerCoordinator(
            make_popup_config(time_delay_ms=10),
            KeyValueFrequencyStore({"popup_popup-1_count": "3"}),
        )
        session = PageSession(coordinator)

        async def scenario():
            task = asyncio.create_task(session.run())
            await asyncio.sleep(0.03)
            session.post(PageEvent.unload())
            return await task

        assert asyncio.run(scenario()) == TriggerState.IDLE
        assert session._timer is None
