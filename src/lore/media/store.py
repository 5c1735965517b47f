# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

# URL segment -> stored category
CATEGORIES = {
    "movie": "MOVIE",
    "tv-series": "TV",
    "anime": "ANIME",
    "manga": "MANGA",
    "books": "BOOK",
    "comics": "COMIC",
}

_INT_ID = re.compile(r"[+-]?[0-9]+")


def stable_item_id(raw: Any) -> int:
    """Fold an external catalog id into a positive integer.

    Numbers and integer strings (JSON bodies and query strings alike) are
    parsed the same way. Other strings (e.g. Google Books volume ids) use the
    31-multiplier rolling hash so the same id always maps to the same item.
    Zero and negative results are rejected.
    """
    if isinstance(raw, bool):
        raise ValueError("id must be a number or a string")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float) and raw.is_integer():
        value = int(raw)
    elif isinstance(raw, str):
        s = raw.strip()
        if not s:
            raise ValueError("id must not be empty")
        if _INT_ID.fullmatch(s):
            value = int(s)
        else:
            h = 0
            for ch in s:
                h = (h * 31 + ord(ch)) & 0xFFFFFFFF
            if h >= 0x80000000:
                h -= 0x100000000
            value = abs(h)
    else:
        raise ValueError("id must be a number or a string")
    if value <= 0:
        raise ValueError("id must be positive")
    return value


@dataclass(frozen=True)
class MediaItem:
    owner_id: str
    id: int
    title: str
    category: str
    poster: Optional[str] = None
    release_date: Optional[str] = None
    genres: Tuple[str, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self, rating: Optional[float] = None) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "title": self.title,
            "poster": self.poster,
            "releaseDate": self.release_date,
            "category": self.category,
            "genres": list(self.genres),
            "rating": rating,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Rating:
    owner_id: str
    item_id: int
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {"ownerId": self.owner_id, "movieId": self.item_id, "value": self.value}


class MediaStore:
    """In-memory catalogue keyed by (owner id, item id)."""

    def __init__(self) -> None:
        self._items: Dict[Tuple[str, int], MediaItem] = {}
        self._ratings: Dict[Tuple[str, int], Rating] = {}
        self._order: Dict[Tuple[str, int], int] = {}
        self._lock = threading.Lock()
        self._seq = 0

    def add(self, item: MediaItem) -> Tuple[MediaItem, bool]:
        """Store ``item`` unless the owner already has that id; returns (item, already_existed)."""
        key = (item.owner_id, item.id)
        with self._lock:
            existing = self._items.get(key)
            if existing is not None:
                return existing, True
            self._seq += 1
            self._items[key] = item
            self._order[key] = self._seq
            return item, False

    def get(self, owner_id: str, item_id: int) -> Optional[MediaItem]:
        with self._lock:
            return self._items.get((owner_id, item_id))

    def list_items(self, owner_id: str, category: Optional[str] = None) -> List[MediaItem]:
        # Newest first.
        with self._lock:
            keyed = [
                (self._order[key], it)
                for key, it in self._items.items()
                if key[0] == owner_id and (category is None or it.category == category)
            ]
        keyed.sort(key=lambda pair: pair[0], reverse=True)
        return [it for _, it in keyed]

    def delete(self, owner_id: str, item_id: int) -> bool:
        key = (owner_id, item_id)
        with self._lock:
            self._ratings.pop(key, None)
            self._order.pop(key, None)
            return self._items.pop(key, None) is not None

    def upsert_rating(self, owner_id: str, item_id: int, value: float) -> Rating:
        key = (owner_id, item_id)
        with self._lock:
            if key not in self._items:
                raise KeyError(item_id)
            rating = Rating(owner_id=owner_id, item_id=item_id, value=value)
            self._ratings[key] = rating
            return rating

    def rating_for(self, owner_id: str, item_id: int) -> Optional[Rating]:
        with self._lock:
            return self._ratings.get((owner_id, item_id))
