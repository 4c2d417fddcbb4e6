"""HTTP client for the remote content-analysis collaborator.

A failed or slow analysis request is never fatal: after retries the client
returns the degraded response (no keywords, intent 0, category "general",
no popup), so popup suppression is the default outcome.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import requests
from pydantic import ValidationError

from src.common.config import Settings
from src.common.models import AnalysisRequest, AnalysisResponse

logger = logging.getLogger(__name__)


class AnalysisClient:
    """POSTs ``{url, title, content}`` and parses the analysis response.

    Features:
    - Automatic retries with exponential backoff (5xx, 429, network errors)
    - No retry on other 4xx client errors
    - Degraded fallback instead of exceptions
    """

    BACKOFF_BASE = 2.0

    def __init__(
        self,
        api_url: str,
        timeout: float = 10.0,
        max_retries: int = 3,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_url = api_url
        self.timeout = timeout
        self.max_retries = max(max_retries, 1)
        self._session = session or requests.Session()
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> AnalysisClient:
        return cls(
            api_url=settings.analysis.api_url,
            timeout=settings.tracking.request_timeout,
            max_retries=settings.tracking.max_retries,
        )

    def analyze(self, request: AnalysisRequest) -> AnalysisResponse:
        """Request analysis; returns the degraded response on any failure."""
        if not self.api_url:
            logger.warning("No analysis API configured, using degraded result")
            return AnalysisResponse.degraded()

        try:
            resp = self._post(request.model_dump())
            return AnalysisResponse.model_validate(resp.json())
        except requests.RequestException as exc:
            logger.warning("Analysis request failed for %s: %s", request.url, exc)
        except (ValueError, ValidationError) as exc:
            logger.warning("Invalid analysis response for %s: %s", request.url, exc)
        return AnalysisResponse.degraded()

    def _post(self, payload: dict) -> requests.Response:
        last_exc: requests.RequestException | None = None
        for attempt in range(self.max_retries):
            try:
                resp = self._session.post(self.api_url, json=payload, timeout=self.timeout)
                resp.raise_for_status()
                return resp
            except requests.RequestException as exc:
                last_exc = exc
                if (
                    isinstance(exc, requests.HTTPError)
                    and exc.response is not None
                    and 400 <= exc.response.status_code < 500
                    and exc.response.status_code != 429
                ):
                    raise

                if attempt + 1 < self.max_retries:
                    wait_time = self.BACKOFF_BASE ** attempt
                    logger.warning(
                        "Analysis request failed (attempt %d/%d): %s, retrying in %.1fs",
                        attempt + 1, self.max_retries, exc, wait_time,
                    )
                    self._sleep(wait_time)

        raise last_exc  # type: ignore[misc]

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> AnalysisClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
