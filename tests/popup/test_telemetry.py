"""Tests for the fire-and-forget telemetry client."""

from unittest.mock import MagicMock

import httpx
import pytest

from src.common.config import TrackingSettings
from src.common.models import TelemetryEvent, TelemetryEventType
from src.popup.telemetry import BufferedSink, TelemetryClient

ENDPOINT = "http://analytics.test/track"


def _event(event_type=TelemetryEventType.POPUP_DISPLAYED, **data) -> TelemetryEvent:
    return TelemetryEvent(
        event_type=event_type,
        popup_id="popup-1",
        session_id="sess-1",
        timestamp=1_772_366_400_000,
        url="https://blog.example.com/p",
        data=data,
    )


@pytest.fixture
def http() -> MagicMock:
    client = MagicMock(spec=httpx.Client)
    client.post.return_value = MagicMock(spec=httpx.Response)
    return client


@pytest.fixture
def telemetry(http):
    client = TelemetryClient(ENDPOINT, client=http)
    yield client
    client.close()


class TestSend:
    def test_posts_event_json(self, telemetry, http):
        assert telemetry.send(_event(trigger="timer")).result() is True

        http.post.assert_called_once()
        args, kwargs = http.post.call_args
        assert args[0] == ENDPOINT
        assert kwargs["json"]["event_type"] == "popup_displayed"
        assert kwargs["json"]["data"] == {"trigger": "timer"}
        assert telemetry.sent_count == 1

    def test_disabled_drops(self, http):
        client = TelemetryClient(ENDPOINT, enabled=False, client=http)
        assert client.send(_event()) is None
        client.close()
        http.post.assert_not_called()

    def test_empty_endpoint_disables(self, http):
        client = TelemetryClient("", client=http)
        assert client.enabled is False
        client.close()

    def test_http_error_swallowed(self, telemetry, http):
        request = httpx.Request("POST", ENDPOINT)
        response = httpx.Response(500, request=request)
        http.post.return_value.raise_for_status.side_effect = httpx.HTTPStatusError(
            "server error", request=request, response=response
        )

        assert telemetry.send(_event()).result() is False
        assert telemetry.failed_count == 1

    def test_unreachable_swallowed(self, telemetry, http):
        http.post.side_effect = httpx.ConnectError("refused")
        assert telemetry.send(_event()).result() is False
        assert telemetry.failed_count == 1

    def test_send_after_close(self, http):
        client = TelemetryClient(ENDPOINT, client=http)
        client.close()
        assert client.send(_event()) is None


class TestBuffer:
    def test_flush_posts_one_batch(self, telemetry, http):
        telemetry.buffer(_event())
        telemetry.buffer(_event(TelemetryEventType.POPUP_CLOSED, reason="close_button"))
        assert telemetry.pending == 2

        assert telemetry.flush().result() is True

        payload = http.post.call_args.kwargs["json"]
        assert [e["event_type"] for e in payload["events"]] == ["popup_displayed", "popup_closed"]
        assert telemetry.pending == 0
        assert telemetry.sent_count == 2

    def test_flush_empty_is_noop(self, telemetry, http):
        assert telemetry.flush() is None
        http.post.assert_not_called()

    def test_disabled_does_not_buffer(self, http):
        client = TelemetryClient(ENDPOINT, enabled=False, client=http)
        client.buffer(_event())
        assert client.pending == 0
        client.close()

    def test_buffered_sink(self, telemetry, http):
        sink = BufferedSink(telemetry)
        sink.send(_event())
        assert telemetry.pending == 1
        http.post.assert_not_called()


class TestSettings:
    def test_from_settings(self, http):
        tracking = TrackingSettings(endpoint=ENDPOINT, enabled=False, max_workers=1)
        with TelemetryClient.from_settings(tracking, client=http) as client:
            assert client.endpoint == ENDPOINT
            assert client.enabled is False
        http.close.assert_called_once()
