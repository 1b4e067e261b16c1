"""
Tests for client-local persistence

Verifies:
- Saved-search overwrite priority: selected id, then name, then new
- Overwrites keep id and createdAt
- Corrupt stored data never raises
- JSON file store survives a reload
- Favorites toggle, tags and ordering
"""

import json
import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.local_store import (
    FAVORITES_KEY,
    LAST_SAVED_ID_KEY,
    SAVED_SEARCHES_KEY,
    FavoritesRepository,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    SavedSearchRepository,
)
from core.models import FilterCriteria


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def clock():
    """Clock advancing one minute per call."""
    state = {"now": datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc)}

    def _now():
        current = state["now"]
        state["now"] = current + timedelta(minutes=1)
        return current
    return _now


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def searches(store, clock):
    return SavedSearchRepository(store, clock=clock)


@pytest.fixture
def favorites(store, clock):
    return FavoritesRepository(store, clock=clock)


# =============================================================================
# Test: Saved searches
# =============================================================================

class TestSavedSearches:
    """Save, overwrite, delete and restore."""

    def test_new_search_prepended(self, searches):
        first = searches.save("Houston 3bd", "houston", FilterCriteria(min_beds=3))
        second = searches.save("Katy", "katy")

        assert [s.id for s in searches.list()] == [second.id, first.id]
        assert searches.last_id() == second.id

    def test_blank_name_gets_default(self, searches):
        saved = searches.save("   ")

        assert saved.name == "Search Mar 05 14:30"

    def test_same_name_overwrites_case_insensitive(self, searches):
        original = searches.save("Houston", "houston")

        updated = searches.save("HOUSTON ", "houston heights", FilterCriteria(vacant=True))

        assert len(searches.list()) == 1
        assert updated.id == original.id
        assert updated.created_at == original.created_at
        assert updated.query == "houston heights"
        assert updated.criteria.vacant

    def test_selected_id_wins_over_name(self, searches):
        selected = searches.save("Selected")
        other = searches.save("Other")

        saved = searches.save("Other", "new query", selected_id=selected.id)

        assert saved.id == selected.id
        assert saved.name == "Other"
        assert searches.get(other.id).query == ""

    def test_missing_selected_id_falls_back_to_name(self, searches):
        existing = searches.save("Katy")

        saved = searches.save("Katy", selected_id="deleted")

        assert saved.id == existing.id

    def test_stored_format(self, searches, store):
        searches.save("Houston", "houston", FilterCriteria(max_price=300000, high_equity=True))

        entry = json.loads(store.get(SAVED_SEARCHES_KEY))[0]

        assert set(entry) == {"id", "name", "createdAt", "query", "filters"}
        assert entry["filters"]["maxPrice"] == 300000
        assert entry["filters"]["highEquity"] is True

    def test_delete_clears_last_id(self, searches, store):
        saved = searches.save("Houston")

        assert searches.delete(saved.id)
        assert searches.list() == []
        assert store.get(LAST_SAVED_ID_KEY) is None
        assert not searches.delete(saved.id)

    def test_restore_last(self, searches):
        saved = searches.save("Houston", "houston")

        assert searches.restore_last() == saved

    def test_restore_last_when_deleted_elsewhere(self, store, searches):
        searches.save("Houston")
        store.set(SAVED_SEARCHES_KEY, "[]")

        assert searches.restore_last() is None

    @pytest.mark.parametrize("raw", ["{not json", '{"a": 1}', '[{"name": "no id"}, 5]'])
    def test_corrupt_data_reads_as_empty(self, raw):
        repo = SavedSearchRepository(InMemoryKeyValueStore({SAVED_SEARCHES_KEY: raw}))

        assert repo.list() == []


# =============================================================================
# Test: Favorites
# =============================================================================

class TestFavorites:
    """Favorites keyed by listing id."""

    def test_toggle(self, favorites):
        assert favorites.toggle("L1") is True
        assert favorites.is_favorite("L1")
        assert favorites.toggle("L1") is False
        assert not favorites.is_favorite("L1")

    def test_tags_normalised(self, favorites):
        favorites.save("L1", ["High Equity", "follow up", "high-equity"])

        assert favorites.get("L1").tags == ("highEquity", "follow up")

    def test_set_tags(self, favorites):
        favorites.save("L1", ["vacant"])

        updated = favorites.set_tags("L1", ["absentee"])

        assert updated.tags == ("absentee",)
        assert favorites.set_tags("missing", ["x"]) is None

    def test_all_newest_first(self, favorites):
        favorites.save("L1")
        favorites.save("L2")

        assert [f.listing_id for f in favorites.all()] == ["L2", "L1"]

    def test_remove(self, favorites):
        favorites.save("L1")

        assert favorites.remove("L1")
        assert not favorites.remove("L1")

    def test_stored_format(self, favorites, store):
        favorites.save("L1", ["vacant"])

        assert json.loads(store.get(FAVORITES_KEY)) == {
            "L1": {"tags": ["vacant"], "savedAt": "2024-03-05T14:30:00+00:00"}
        }

    def test_corrupt_favorites_read_as_empty(self):
        repo = FavoritesRepository(InMemoryKeyValueStore({FAVORITES_KEY: "[1, 2]"}))

        assert repo.all() == []

    @pytest.mark.parametrize("tags", ["5", "true", '{"a": 1}'])
    def test_non_list_tags_read_as_no_tags(self, tags):
        raw = '{"L1": {"tags": ' + tags + ', "savedAt": "2024-03-05T14:30:00+00:00"}}'
        repo = FavoritesRepository(InMemoryKeyValueStore({FAVORITES_KEY: raw}))

        favorites = repo.all()

        assert [f.listing_id for f in favorites] == ["L1"]
        assert favorites[0].tags == ()


# =============================================================================
# Test: JSON file store
# =============================================================================

class TestJsonFileStore:
    """On-disk key/value store."""

    def test_persists_across_instances(self, tmp_path, clock):
        path = tmp_path / "store" / "local.json"
        SavedSearchRepository(JsonFileKeyValueStore(path), clock=clock).save("Houston", "houston")

        reloaded = SavedSearchRepository(JsonFileKeyValueStore(path))

        assert [s.name for s in reloaded.list()] == ["Houston"]
        assert reloaded.restore_last().query == "houston"

    def test_unreadable_file_starts_empty(self, tmp_path):
        path = tmp_path / "local.json"
        path.write_text("not json", encoding="utf-8")

        store = JsonFileKeyValueStore(path)

        assert store.get(SAVED_SEARCHES_KEY) is None

    def test_remove(self, tmp_path):
        path = tmp_path / "local.json"
        store = JsonFileKeyValueStore(path)
        store.set("k", "v")
        store.remove("k")

        assert json.loads(path.read_text(encoding="utf-8")) == {}
