"""Popup telemetry — fire-and-forget delivery of trigger events.

Events are POSTed from a small background thread pool so that a slow or
unreachable analytics endpoint never stalls trigger evaluation. Delivery
failures are logged and dropped.

Usage:
    telemetry = TelemetryClient.from_settings(settings.tracking)
    coordinator = TriggerCoordinator(config, store, telemetry=telemetry)
    ...
    telemetry.flush()   # on page unload
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor

import httpx

from src.common.config import TrackingSettings
from src.common.models import TelemetryEvent

logger = logging.getLogger(__name__)


class TelemetryClient:
    """Sends TelemetryEvents to the analytics collaborator.

    ``send`` posts one event immediately; ``buffer`` holds behavioral events
    until ``flush`` posts them as one batch.
    """

    def __init__(
        self,
        endpoint: str,
        enabled: bool = True,
        timeout: float = 10.0,
        max_workers: int = 2,
        client: httpx.Client | None = None,
    ):
        self.endpoint = endpoint
        self.enabled = enabled and bool(endpoint)
        self._client = client or httpx.Client(timeout=timeout)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="telemetry"
        )
        self._buffer: list[TelemetryEvent] = []
        self._lock = threading.Lock()
        self.sent_count = 0
        self.failed_count = 0

    @classmethod
    def from_settings(cls, tracking: TrackingSettings, **kwargs) -> TelemetryClient:
        return cls(
            endpoint=tracking.endpoint,
            enabled=tracking.enabled,
            timeout=tracking.request_timeout,
            max_workers=tracking.max_workers,
            **kwargs,
        )

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._buffer)

    def send(self, event: TelemetryEvent) -> Future | None:
        """Queue one event for delivery. Never raises for delivery problems."""
        if not self.enabled:
            logger.debug("Tracking disabled, dropping %s", event.event_type.value)
            return None
        return self._submit(event.model_dump(mode="json"), 1)

    def buffer(self, event: TelemetryEvent) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._buffer.append(event)

    def flush(self) -> Future | None:
        """Send everything buffered as one batch."""
        with self._lock:
            events, self._buffer = self._buffer, []
        if not events or not self.enabled:
            return None
        payload = {"events": [e.model_dump(mode="json") for e in events]}
        return self._submit(payload, len(events))

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        self._client.close()

    def __enter__(self) -> TelemetryClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _submit(self, payload: dict, count: int) -> Future | None:
        try:
            return self._executor.submit(self._post, payload, count)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning("Telemetry not sent: %s", e)
            return None

    def _post(self, payload: dict, count: int) -> bool:
        try:
            response = self._client.post(self.endpoint, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Analytics API error: %s", e.response.status_code)
        except httpx.HTTPError as e:
            logger.warning("Analytics endpoint not reachable at %s: %s", self.endpoint, e)
        else:
            with self._lock:
                self.sent_count += count
            return True

        with self._lock:
            self.failed_count += count
        return False


class BufferedSink:
    """Event sink that holds events in the client's buffer until flush()."""

    def __init__(self, client: TelemetryClient):
        self.client = client

    def send(self, event: TelemetryEvent) -> None:
        self.client.buffer(event)
