# Smart popup — policy, display gating and trigger state machine
"""
Popup modules:
- policy: archetype, trigger rule, copy and targeting from intent
- frequency_store: per-visitor display counters over key/value storage
- trigger: Idle -> Armed -> Eligible -> Displayed -> Closed state machine
- telemetry: fire-and-forget event delivery
- session: asyncio driver for one page load
"""

from .frequency_store import FrequencyStore, JsonFileStorage, KeyValueFrequencyStore
from .policy import PopupPolicyEngine
from .session import PageEvent, PageSession
from .telemetry import BufferedSink, TelemetryClient
from .trigger import TriggerCoordinator, TriggerState, TriggerTransitionError

__all__ = [
    "PopupPolicyEngine",
    "FrequencyStore",
    "KeyValueFrequencyStore",
    "JsonFileStorage",
    "TriggerCoordinator",
    "TriggerState",
    "TriggerTransitionError",
    "TelemetryClient",
    "BufferedSink",
    "PageSession",
    "PageEvent",
]
