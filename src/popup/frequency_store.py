"""Per-visitor popup display counters.

The trigger layer only needs two operations: read the DisplayState once
before arming, and record a display. Backings are any string key/value
mapping; the persisted keys are

    popup_{id}_last_shown   epoch milliseconds
    popup_{id}_count        display count
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import MutableMapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Protocol

from src.common.models import DisplayState

logger = logging.getLogger(__name__)


class FrequencyStore(Protocol):
    def get(self, popup_id: str) -> DisplayState: ...

    def record_display(self, popup_id: str, now: datetime) -> DisplayState: ...


def last_shown_key(popup_id: str) -> str:
    return f"popup_{popup_id}_last_shown"


def count_key(popup_id: str) -> str:
    return f"popup_{popup_id}_count"


def to_epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class KeyValueFrequencyStore:
    """FrequencyStore over any MutableMapping[str, str].

    Reads always go to the backing mapping, so a store shared across page
    loads never serves stale counters. Count only ever increases.
    """

    def __init__(self, backing: MutableMapping[str, str] | None = None):
        self.backing: MutableMapping[str, str] = backing if backing is not None else {}

    def get(self, popup_id: str) -> DisplayState:
        raw_count = self.backing.get(count_key(popup_id))
        raw_last = self.backing.get(last_shown_key(popup_id))

        count = _parse_int(raw_count, count_key(popup_id))
        last = _parse_int(raw_last, last_shown_key(popup_id))
        return DisplayState(
            display_count=max(count or 0, 0),
            last_shown_at=from_epoch_ms(last) if last is not None else None,
        )

    def record_display(self, popup_id: str, now: datetime) -> DisplayState:
        state = self.get(popup_id)
        updated = DisplayState(display_count=state.display_count + 1, last_shown_at=now)
        self.backing[count_key(popup_id)] = str(updated.display_count)
        self.backing[last_shown_key(popup_id)] = str(to_epoch_ms(now))
        logger.debug("Recorded display %d for popup %s", updated.display_count, popup_id)
        return updated


def _parse_int(raw: str | None, key: str) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed frequency value %s=%r", key, raw)
        return None


class JsonFileStorage(MutableMapping):
    """A JSON object on disk exposed as a string mapping.

    Every access re-reads the file; every write rewrites it atomically.

    Usage:
        store = KeyValueFrequencyStore(JsonFileStorage(Path("data/visitor.json")))
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Frequency file {self.path} does not hold a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def __getitem__(self, key: str) -> str:
        return self._load()[key]

    def __setitem__(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = str(value)
        self._save(data)

    def __delitem__(self, key: str) -> None:
        data = self._load()
        del data[key]
        self._save(data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._load())

    def __len__(self) -> int:
        return len(self._load())
