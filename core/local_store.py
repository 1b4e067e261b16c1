"""
Client-local persistence for saved searches and favorite listings.

Storage is a flat string key/value store holding JSON documents, the same
shape the browser client kept in localStorage. Corrupt or unreadable data
never raises: readers fall back to the default value and log a warning.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Protocol

from .models import FilterCriteria, normalize_tags


logger = logging.getLogger(__name__)


# =============================================================================
# Storage Keys
# =============================================================================

SAVED_SEARCHES_KEY = "propersearch_saved_searches_v1"
LAST_SAVED_ID_KEY = "properSearch:lastSavedId"
FAVORITES_KEY = "propersearch_favorites_v1"


Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Key/Value Stores
# =============================================================================


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store, used by tests and as the default web store."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """
    Store backed by a single JSON object on disk.

    The whole file is rewritten on every change.
    """

    def __init__(self, path: str | Path):
        """
        Initialise store.

        Args:
            path: JSON file; created on first write
        """
        self._path = Path(path)
        self._data: dict[str, str] = {}
        if self._path.exists():
            self._load_from_file()

    def _load_from_file(self) -> None:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            # Start fresh
            logger.warning("Could not load local store %s: %s", self._path, e)
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring local store %s: expected a JSON object", self._path)
            return
        self._data = {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save_to_file(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save_to_file()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._save_to_file()


def load_json(store: KeyValueStore, key: str, default: Any) -> Any:
    """Parse a stored JSON value; missing or corrupt data yields default."""
    raw = store.get(key)
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning("Corrupt value under %r, using default: %s", key, e)
        return default


def dump_json(store: KeyValueStore, key: str, value: Any) -> None:
    store.set(key, json.dumps(value))


# =============================================================================
# Saved Searches
# =============================================================================


@dataclass(frozen=True)
class SavedSearch:
    id: str
    name: str
    created_at: str
    query: str = ""
    criteria: FilterCriteria = field(default_factory=FilterCriteria)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "query": self.query,
            "filters": self.criteria.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Optional["SavedSearch"]:
        """Parse one stored entry; entries without an id are dropped."""
        if not isinstance(data, dict) or not data.get("id"):
            return None
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            created_at=str(data.get("createdAt") or ""),
            query=str(data.get("query") or ""),
            criteria=FilterCriteria.from_dict(data.get("filters")),
        )


def _same_name(a: str, b: str) -> bool:
    return a.strip().casefold() == b.strip().casefold()


class SavedSearchRepository:
    """
    Named searches, newest first, plus the last-used id for auto-restore.

    Saving overwrites in this order of priority:
    1) the currently selected search, if it still exists
    2) a search with the same name (case-insensitive)
    3) otherwise a new entry is prepended
    An overwrite keeps the original id and created_at.
    """

    def __init__(self, store: KeyValueStore, clock: Clock = _utcnow):
        self._store = store
        self._clock = clock

    def list(self) -> list[SavedSearch]:
        raw = load_json(self._store, SAVED_SEARCHES_KEY, [])
        if not isinstance(raw, list):
            logger.warning("Saved searches are not a list, ignoring")
            return []
        items = (SavedSearch.from_dict(entry) for entry in raw)
        return [s for s in items if s is not None]

    def get(self, search_id: str) -> Optional[SavedSearch]:
        return next((s for s in self.list() if s.id == search_id), None)

    def default_name(self) -> str:
        return f"Search {self._clock().strftime('%b %d %H:%M')}"

    def save(
        self,
        name: str,
        query: str = "",
        criteria: Optional[FilterCriteria] = None,
        selected_id: Optional[str] = None,
    ) -> SavedSearch:
        """
        Save the current search.

        Args:
            name: Display name; blank becomes "Search <Mon DD HH:MM>"
            query: Free-text query
            criteria: Applied filter criteria
            selected_id: Currently selected saved search, if any

        Returns:
            The stored SavedSearch (also recorded as last used)
        """
        name = (name or "").strip() or self.default_name()
        searches = self.list()
        new_item = SavedSearch(
            id=uuid.uuid4().hex,
            name=name,
            created_at=self._clock().isoformat(),
            query=query or "",
            criteria=criteria or FilterCriteria(),
        )

        existing = None
        if selected_id:
            existing = next((s for s in searches if s.id == selected_id), None)
        if existing is None:
            existing = next((s for s in searches if _same_name(s.name, name)), None)

        if existing is not None:
            saved = replace(new_item, id=existing.id, created_at=existing.created_at)
            searches = [saved if s.id == existing.id else s for s in searches]
        else:
            saved = new_item
            searches = [saved] + searches

        dump_json(self._store, SAVED_SEARCHES_KEY, [s.to_dict() for s in searches])
        self.set_last_id(saved.id)
        return saved

    def delete(self, search_id: str) -> bool:
        searches = self.list()
        remaining = [s for s in searches if s.id != search_id]
        if len(remaining) == len(searches):
            return False
        dump_json(self._store, SAVED_SEARCHES_KEY, [s.to_dict() for s in remaining])
        if self.last_id() == search_id:
            self.clear_last_id()
        return True

    def last_id(self) -> Optional[str]:
        return self._store.get(LAST_SAVED_ID_KEY) or None

    def set_last_id(self, search_id: str) -> None:
        self._store.set(LAST_SAVED_ID_KEY, search_id)

    def clear_last_id(self) -> None:
        self._store.remove(LAST_SAVED_ID_KEY)

    def restore_last(self) -> Optional[SavedSearch]:
        """The last used search, or None if unset or since deleted."""
        last = self.last_id()
        return self.get(last) if last else None


# =============================================================================
# Favorites
# =============================================================================


@dataclass(frozen=True)
class Favorite:
    listing_id: str
    tags: tuple[str, ...] = ()
    saved_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"tags": list(self.tags), "savedAt": self.saved_at}


class FavoritesRepository:
    """Favorite listings with user tags, keyed by listing id. Last write wins."""

    def __init__(self, store: KeyValueStore, clock: Clock = _utcnow):
        self._store = store
        self._clock = clock

    def _load(self) -> dict[str, Favorite]:
        raw = load_json(self._store, FAVORITES_KEY, {})
        if not isinstance(raw, dict):
            logger.warning("Favorites are not an object, ignoring")
            return {}
        favorites = {}
        for listing_id, entry in raw.items():
            if not isinstance(entry, dict):
                continue
            favorites[str(listing_id)] = Favorite(
                listing_id=str(listing_id),
                tags=normalize_tags(entry.get("tags") or ()),
                saved_at=str(entry.get("savedAt") or ""),
            )
        return favorites

    def _persist(self, favorites: dict[str, Favorite]) -> None:
        dump_json(self._store, FAVORITES_KEY, {k: f.to_dict() for k, f in favorites.items()})

    def get(self, listing_id: str) -> Optional[Favorite]:
        return self._load().get(listing_id)

    def all(self) -> list[Favorite]:
        """Favorites, most recently saved first."""
        return sorted(self._load().values(), key=lambda f: f.saved_at, reverse=True)

    def is_favorite(self, listing_id: str) -> bool:
        return listing_id in self._load()

    def save(self, listing_id: str, tags: Iterable[str] = ()) -> Favorite:
        favorites = self._load()
        favorite = Favorite(
            listing_id=listing_id,
            tags=normalize_tags(list(tags)),
            saved_at=self._clock().isoformat(),
        )
        favorites[listing_id] = favorite
        self._persist(favorites)
        return favorite

    def set_tags(self, listing_id: str, tags: Iterable[str]) -> Optional[Favorite]:
        """Replace the tags of an existing favorite; None if not a favorite."""
        favorites = self._load()
        if listing_id not in favorites:
            return None
        favorite = replace(favorites[listing_id], tags=normalize_tags(list(tags)))
        favorites[listing_id] = favorite
        self._persist(favorites)
        return favorite

    def toggle(self, listing_id: str) -> bool:
        """Add or remove a favorite. Returns True if it is now a favorite."""
        if self.remove(listing_id):
            return False
        self.save(listing_id)
        return True

    def remove(self, listing_id: str) -> bool:
        favorites = self._load()
        if favorites.pop(listing_id, None) is None:
            return False
        self._persist(favorites)
        return True
