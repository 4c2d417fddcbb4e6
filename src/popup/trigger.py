"""Trigger coordinator — the per-visitor popup display state machine.

States: IDLE -> ARMED -> ELIGIBLE -> DISPLAYED -> CLOSED

- arm(): one frequency-gate check; a rejected gate leaves the machine IDLE
  for the rest of the page load. With both conditions absent the popup
  displays as soon as it is armed.
- ARMED: scroll and time conditions are tracked as two flags (a flag starts
  satisfied when its rule field is absent). Both flags set, or an exit-intent
  signal with exit intent enabled, moves ARMED -> ELIGIBLE -> DISPLAYED in one
  step. Signals arriving after that are ignored.
- dismiss(): DISPLAYED -> CLOSED with a close reason.

The coordinator is driven by named signals and never touches a browser,
a timer or the network directly; PageSession feeds it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Protocol

from src.common.models import (
    CloseReason,
    DisplayState,
    PopupConfig,
    TelemetryEvent,
    TelemetryEventType,
)

from .frequency_store import FrequencyStore, to_epoch_ms

logger = logging.getLogger(__name__)


class TriggerState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    ELIGIBLE = "eligible"
    DISPLAYED = "displayed"
    CLOSED = "closed"


class TriggerTransitionError(RuntimeError):
    pass


class EventSink(Protocol):
    def send(self, event: TelemetryEvent) -> None: ...


@dataclass
class StateTransition:
    previous: TriggerState
    next_state: TriggerState
    at: datetime
    context: dict[str, Any] = field(default_factory=dict)


def scroll_percentage(position: float, document_height: float, viewport_height: float) -> float:
    """Scroll depth in percent; a page that cannot scroll counts as fully read."""
    scrollable = document_height - viewport_height
    if scrollable <= 0:
        return 100.0
    return max(0.0, min(position / scrollable * 100, 100.0))


def _utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


class TriggerCoordinator:
    """Decides when one popup is displayed to one visitor.

    Usage:
        coordinator = TriggerCoordinator(config, KeyValueFrequencyStore(storage))
        if coordinator.arm():
            coordinator.on_scroll(35)
            coordinator.on_timer_fired()   # -> DISPLAYED
    """

    _ALLOWED = {
        TriggerState.IDLE: {TriggerState.ARMED},
        TriggerState.ARMED: {TriggerState.ELIGIBLE},
        TriggerState.ELIGIBLE: {TriggerState.DISPLAYED},
        TriggerState.DISPLAYED: {TriggerState.CLOSED},
        TriggerState.CLOSED: set(),
    }

    def __init__(
        self,
        config: PopupConfig,
        store: FrequencyStore,
        session_id: str = "",
        url: str = "",
        telemetry: EventSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self.store = store
        self.session_id = session_id
        self.url = url
        self.telemetry = telemetry
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        rule = config.trigger_rule
        self.scroll_satisfied = rule.scroll_percentage is None
        self.time_satisfied = rule.time_delay_ms is None

        self.current_state = TriggerState.IDLE
        self.transitions: list[StateTransition] = []
        self.gate_checked = False
        self.gate_rejection: str | None = None
        self.displayed_at: datetime | None = None
        self.close_reason: CloseReason | None = None

    @property
    def popup_id(self) -> str:
        return self.config.id

    @property
    def is_armed(self) -> bool:
        return self.current_state == TriggerState.ARMED

    # --- Arming ---

    def arm(self) -> bool:
        """Run the frequency gate and arm. Returns False if the gate rejects."""
        if self.gate_checked:
            raise TriggerTransitionError(f"Popup {self.popup_id} gate already checked")
        self.gate_checked = True

        now = _utc(self._clock())
        self.gate_rejection = self.check_gate(self._read_state(), now)
        if self.gate_rejection:
            logger.info("Popup %s not armed: %s", self.popup_id, self.gate_rejection)
            return False

        self._transition(TriggerState.ARMED, now)
        # A rule with neither scroll nor time condition displays on arming
        self._maybe_display("immediate")
        return True

    def check_gate(self, state: DisplayState, now: datetime) -> str | None:
        """Reason the popup may not be armed, or None when it may."""
        targeting = self.config.targeting
        if state.display_count >= targeting.max_displays_per_user:
            return f"display limit reached ({state.display_count}/{targeting.max_displays_per_user})"
        if state.last_shown_at is not None:
            elapsed_ms = (now - _utc(state.last_shown_at)).total_seconds() * 1000
            if elapsed_ms < targeting.cooldown_period_ms:
                return f"cooling down ({elapsed_ms:.0f}ms of {targeting.cooldown_period_ms}ms)"
        return None

    def _read_state(self) -> DisplayState:
        try:
            return self.store.get(self.popup_id)
        except Exception as e:
            logger.warning(
                "Display state unreadable for popup %s, treating as never shown: %s",
                self.popup_id, e,
            )
            return DisplayState()

    # --- Signals ---

    def on_scroll(self, percentage: float) -> bool:
        """Scroll depth signal. Returns True if this signal displayed the popup."""
        if not self.is_armed or self.scroll_satisfied:
            return False
        threshold = self.config.trigger_rule.scroll_percentage
        if threshold is not None and percentage >= threshold:
            self.scroll_satisfied = True
            logger.debug("Popup %s scroll condition met at %.1f%%", self.popup_id, percentage)
        return self._maybe_display("scroll")

    def on_scroll_position(
        self, position: float, document_height: float, viewport_height: float
    ) -> bool:
        return self.on_scroll(scroll_percentage(position, document_height, viewport_height))

    def on_timer_fired(self) -> bool:
        if not self.is_armed or self.time_satisfied:
            return False
        self.time_satisfied = True
        logger.debug("Popup %s time condition met", self.popup_id)
        return self._maybe_display("timer")

    def on_exit_intent(self, cursor_y: float = 0) -> bool:
        """Mouse left through the top edge. Bypasses the scroll/time conditions."""
        if not self.is_armed or not self.config.trigger_rule.exit_intent:
            return False
        if cursor_y > 0:
            return False
        return self._display("exit_intent")

    def dismiss(self, reason: CloseReason | str = CloseReason.CLOSE_BUTTON) -> None:
        reason = CloseReason(reason)
        if self.current_state != TriggerState.DISPLAYED:
            raise TriggerTransitionError(
                f"Cannot dismiss popup {self.popup_id} in state {self.current_state.value}"
            )
        now = _utc(self._clock())
        self.close_reason = reason
        self._transition(TriggerState.CLOSED, now, {"reason": reason.value})

        event_type = (
            TelemetryEventType.POPUP_CTA_CLICKED
            if reason == CloseReason.CTA_CLICK
            else TelemetryEventType.POPUP_CLOSED
        )
        self._emit(event_type, now, {"reason": reason.value})

    def on_product_click(self, product_id: str) -> bool:
        if self.current_state != TriggerState.DISPLAYED:
            logger.debug("Ignoring product click on popup %s in state %s",
                          self.popup_id, self.current_state.value)
            return False
        self._emit(TelemetryEventType.PRODUCT_CLICKED, _utc(self._clock()),
                   {"product_id": product_id})
        return True

    # --- Internals ---

    def _maybe_display(self, trigger: str) -> bool:
        if self.scroll_satisfied and self.time_satisfied:
            return self._display(trigger)
        return False

    def _display(self, trigger: str) -> bool:
        now = _utc(self._clock())
        self._transition(TriggerState.ELIGIBLE, now, {"trigger": trigger})
        self._transition(TriggerState.DISPLAYED, now, {"trigger": trigger})
        self.displayed_at = now

        try:
            self.store.record_display(self.popup_id, now)
        except Exception as e:
            logger.error("Failed to record display of popup %s: %s", self.popup_id, e)

        logger.info("Displayed popup %s (trigger=%s)", self.popup_id, trigger)
        self._emit(TelemetryEventType.POPUP_DISPLAYED, now, {"trigger": trigger})
        return True

    def _transition(
        self, target: TriggerState, at: datetime, context: dict[str, Any] | None = None
    ) -> None:
        if target not in self._ALLOWED[self.current_state]:
            raise TriggerTransitionError(
                f"Illegal transition from {self.current_state.name} to {target.name}"
            )
        self.transitions.append(StateTransition(self.current_state, target, at, context or {}))
        self.current_state = target

    def _emit(self, event_type: TelemetryEventType, at: datetime, data: dict) -> None:
        if self.telemetry is None or not self.config.behavior.tracking_enabled:
            return
        event = TelemetryEvent(
            event_type=event_type,
            popup_id=self.popup_id,
            session_id=self.session_id,
            timestamp=to_epoch_ms(at),
            url=self.url,
            data=data,
        )
        try:
            self.telemetry.send(event)
        except Exception as e:
            logger.warning("Telemetry %s for popup %s dropped: %s",
                           event_type.value, self.popup_id, e)
