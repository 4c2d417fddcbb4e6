"""Weighted merge of the content, user-history and session recommendation lists."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Generic, Hashable, Iterable, Sequence, TypeVar

logger = logging.getLogger(__name__)

CONTENT_WEIGHT = 0.5
HISTORY_WEIGHT = 0.3
SESSION_WEIGHT = 0.2

T = TypeVar("T")


@dataclass
class CombinedEntry(Generic[T]):
    item: T
    score: float = 0.0
    sources: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"score": round(self.score, 4), "sources": list(self.sources)}


class RecommendationCombiner:
    """Merges up to three ranked source lists into one de-duplicated ranking.

    Each source that contains an item adds its weight once, so an item in
    all three lists scores 1.0. Order is accumulated score descending, with
    ties resolved by first appearance (content list merged first).

    Usage:
        combiner = RecommendationCombiner()
        ranked = combiner.combine(content, history, session, key=lambda p: p.id)
    """

    def __init__(
        self,
        content_weight: float = CONTENT_WEIGHT,
        history_weight: float = HISTORY_WEIGHT,
        session_weight: float = SESSION_WEIGHT,
    ):
        self.weights = {
            "content": content_weight,
            "history": history_weight,
            "session": session_weight,
        }

    def score(
        self,
        content: Sequence[T] = (),
        history: Sequence[T] = (),
        session: Sequence[T] = (),
        key=None,
    ) -> list[CombinedEntry[T]]:
        """Combined entries in rank order."""
        key = key or _default_key
        merged: dict[Hashable, CombinedEntry[T]] = {}

        for source, items in (("content", content), ("history", history), ("session", session)):
            weight = self.weights[source]
            seen: set[Hashable] = set()
            for item in items:
                item_key = key(item)
                if item_key in seen:
                    continue
                seen.add(item_key)

                entry = merged.get(item_key)
                if entry is None:
                    entry = merged[item_key] = CombinedEntry(item=item)
                entry.score += weight
                entry.sources.append(source)

        # dicts keep insertion order and sort() is stable: ties stay first-seen
        entries = list(merged.values())
        entries.sort(key=lambda e: e.score, reverse=True)
        logger.debug(
            "Combined %d/%d/%d source items into %d",
            len(content), len(history), len(session), len(entries),
        )
        return entries

    def combine(
        self,
        content: Sequence[T] = (),
        history: Sequence[T] = (),
        session: Sequence[T] = (),
        key=None,
    ) -> list[T]:
        return [e.item for e in self.score(content, history, session, key=key)]


def _default_key(item) -> Hashable:
    return getattr(item, "id", item)


def dedupe(items: Iterable[T], key=_default_key) -> list[T]:
    """First occurrence of each key, order preserved."""
    seen: set[Hashable] = set()
    out: list[T] = []
    for item in items:
        k = key(item)
        if k not in seen:
            seen.add(k)
            out.append(item)
    return out
