"""Page session — asyncio driver for one page load.

Feeds browser-like events from a queue into a TriggerCoordinator and owns
the single display timer. Unload flushes buffered telemetry and cancels the
timer; a trigger that has not fired by then never fires.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .telemetry import TelemetryClient
from .trigger import TriggerCoordinator, TriggerState

logger = logging.getLogger(__name__)


class PageEventType(str, Enum):
    SCROLL = "scroll"
    MOUSE_LEAVE = "mouse_leave"
    DISMISS = "dismiss"
    PRODUCT_CLICK = "product_click"
    UNLOAD = "unload"


@dataclass
class PageEvent:
    """One event from the page.

    scroll:        ``percentage`` or ``position``/``document_height``/``viewport_height``
    mouse_leave:   ``cursor_y``
    dismiss:       ``reason``
    product_click: ``product_id``
    """
    type: PageEventType
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def scroll(cls, percentage: float) -> PageEvent:
        return cls(PageEventType.SCROLL, {"percentage": percentage})

    @classmethod
    def mouse_leave(cls, cursor_y: float = 0) -> PageEvent:
        return cls(PageEventType.MOUSE_LEAVE, {"cursor_y": cursor_y})

    @classmethod
    def dismiss(cls, reason: str = "close_button") -> PageEvent:
        return cls(PageEventType.DISMISS, {"reason": reason})

    @classmethod
    def product_click(cls, product_id: str) -> PageEvent:
        return cls(PageEventType.PRODUCT_CLICK, {"product_id": product_id})

    @classmethod
    def unload(cls) -> PageEvent:
        return cls(PageEventType.UNLOAD)


class PageSession:
    """Runs one popup's trigger lifecycle for a single page load.

    Usage:
        session = PageSession(coordinator, telemetry)
        task = asyncio.create_task(session.run())
        session.post(PageEvent.scroll(40))
        session.post(PageEvent.unload())
        final_state = await task
    """

    def __init__(
        self,
        coordinator: TriggerCoordinator,
        telemetry: TelemetryClient | None = None,
    ):
        self.coordinator = coordinator
        self.telemetry = telemetry
        self.events: asyncio.Queue[PageEvent] = asyncio.Queue()
        self._timer: asyncio.TimerHandle | None = None
        self.unloaded = False

    def post(self, event: PageEvent) -> None:
        self.events.put_nowait(event)

    def start(self) -> bool:
        """Arm the coordinator and schedule the display timer."""
        if not self.coordinator.arm():
            return False

        delay_ms = self.coordinator.config.trigger_rule.time_delay_ms
        if delay_ms is not None:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(delay_ms / 1000, self._on_timer)
        return True

    async def run(self) -> TriggerState:
        """Process events until unload. Returns the final trigger state."""
        self.start()
        while True:
            event = await self.events.get()
            try:
                if event.type == PageEventType.UNLOAD:
                    self._unload()
                    break
                self.handle(event)
            except Exception as e:
                logger.error("Error handling %s event: %s", event.type.value, e)
            finally:
                self.events.task_done()
        return self.coordinator.current_state

    def handle(self, event: PageEvent) -> None:
        data = event.data
        if event.type == PageEventType.SCROLL:
            if "percentage" in data:
                self.coordinator.on_scroll(float(data["percentage"]))
            else:
                self.coordinator.on_scroll_position(
                    float(data["position"]),
                    float(data["document_height"]),
                    float(data["viewport_height"]),
                )
        elif event.type == PageEventType.MOUSE_LEAVE:
            self.coordinator.on_exit_intent(float(data.get("cursor_y", 0)))
        elif event.type == PageEventType.DISMISS:
            self.coordinator.dismiss(data.get("reason", "close_button"))
        elif event.type == PageEventType.PRODUCT_CLICK:
            self.coordinator.on_product_click(str(data["product_id"]))

    def _on_timer(self) -> None:
        self._timer = None
        if self.unloaded:
            return
        self.coordinator.on_timer_fired()

    def _unload(self) -> None:
        self.unloaded = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.telemetry is not None:
            self.telemetry.flush()
        logger.debug("Page unloaded in state %s", self.coordinator.current_state.value)
