"""Affiliate tracking links — UTM-tagged URLs and short codes for
recommended products.

Usage:
    builder = TrackingLinkBuilder(campaign="site-1")
    url = builder.build(product.affiliate_url, content="auto_link")
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Callable
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

SHORT_CODE_BYTES = 6


@dataclass
class UTMParams:
    """UTM tracking parameters for click attribution."""
    source: str = "intent_engine"
    medium: str = "affiliate"
    campaign: str = ""
    content: str = ""
    term: str = ""

    def to_dict(self) -> dict[str, str]:
        params = {"utm_source": self.source, "utm_medium": self.medium}
        if self.campaign:
            params["utm_campaign"] = self.campaign
        if self.content:
            params["utm_content"] = self.content
        if self.term:
            params["utm_term"] = self.term
        return params


@dataclass
class TrackingLink:
    product_id: str
    original_url: str
    tracked_url: str
    short_code: str

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "original_url": self.original_url,
            "tracked_url": self.tracked_url,
            "short_code": self.short_code,
        }


def _new_short_code() -> str:
    return secrets.token_urlsafe(SHORT_CODE_BYTES)


class TrackingLinkBuilder:
    """Adds UTM parameters to affiliate URLs, keeping existing query params."""

    def __init__(
        self,
        campaign: str = "",
        source: str = "intent_engine",
        short_code_factory: Callable[[], str] = _new_short_code,
    ):
        self.campaign = campaign
        self.source = source
        self._short_code_factory = short_code_factory

    def build(self, url: str, content: str = "", term: str = "") -> str:
        utm = UTMParams(source=self.source, campaign=self.campaign, content=content, term=term)
        parsed = urlparse(url)
        query = dict(parse_qsl(parsed.query, keep_blank_values=True))
        query.update(utm.to_dict())
        return urlunparse(parsed._replace(query=urlencode(query)))

    def link_for(self, product_id: str, affiliate_url: str, content: str = "auto_link") -> TrackingLink:
        return TrackingLink(
            product_id=product_id,
            original_url=affiliate_url,
            tracked_url=self.build(affiliate_url, content=content),
            short_code=self._short_code_factory(),
        )
