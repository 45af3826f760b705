"""Client-side map view and filter state.

The viewport (``mapState``) lives in durable storage and survives restarts.
The search text (``searchQuery``) and selected tags (``selectedTags``) live in
session storage and are removed once they become empty. Filtering happens
entirely on the client over the marker list already fetched from the API.
"""
import json
import logging
import random
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from config import CONTINENT_ZOOM, DEFAULT_MAP_STATE, MARKER_FOCUS_ZOOM, TAG_LABELS

logger = logging.getLogger(__name__)

MAP_STATE_KEY = "mapState"
SEARCH_QUERY_KEY = "searchQuery"
SELECTED_TAGS_KEY = "selectedTags"


class JsonFileStorage(MutableMapping):
    """Durable key/value storage kept in a single JSON file.

    An unreadable or missing file behaves like empty storage; every write
    rewrites the whole file.
    """

    def __init__(self, path):
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, data: Dict[str, Any]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def __getitem__(self, key):
        return self._load()[key]

    def __setitem__(self, key, value):
        data = self._load()
        data[key] = value
        self._dump(data)

    def __delitem__(self, key):
        data = self._load()
        del data[key]
        self._dump(data)

    def __iter__(self):
        return iter(self._load())

    def __len__(self):
        return len(self._load())


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_map_state(raw) -> Optional[Dict[str, float]]:
    """Return ``{lat, lng, zoom}`` when ``raw`` has that shape, else None.

    ``raw`` may be the JSON string as stored or an already decoded dict.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if not isinstance(raw, dict):
        return None
    if not all(_is_number(raw.get(key)) for key in ("lat", "lng", "zoom")):
        return None
    return {"lat": raw["lat"], "lng": raw["lng"], "zoom": raw["zoom"]}


class ViewportStore:
    """Remembers where the map was looking."""

    def __init__(self, storage: MutableMapping, default: Optional[Dict[str, float]] = None):
        self.storage = storage
        self.default = dict(default or DEFAULT_MAP_STATE)

    def has_saved_state(self) -> bool:
        return parse_map_state(self.storage.get(MAP_STATE_KEY)) is not None

    def load(self) -> Dict[str, float]:
        state = parse_map_state(self.storage.get(MAP_STATE_KEY))
        if state is None:
            return dict(self.default)
        return state

    def save(self, lat: float, lng: float, zoom: float) -> Dict[str, float]:
        state = {"lat": lat, "lng": lng, "zoom": zoom}
        self.storage[MAP_STATE_KEY] = json.dumps(state)
        return state

    def focus_marker(self, marker: Dict[str, Any]) -> Dict[str, float]:
        """Center on a single marker, zoomed in."""
        return self.save(marker["latitude"], marker["longitude"], MARKER_FOCUS_ZOOM)

    def choose_continent(self, continent: Dict[str, Any], rng: random.Random = None) -> Dict[str, float]:
        """Start somewhere random inside the chosen continent."""
        rng = rng or random
        lat = continent["lat"] + (rng.random() - 0.5) * 2 * continent["lat_range"]
        lng = continent["lng"] + (rng.random() - 0.5) * 2 * continent["lng_range"]
        return self.save(lat, lng, CONTINENT_ZOOM)


class FilterState:
    """Search text and tag selection for the current session."""

    def __init__(self, session: MutableMapping):
        self.session = session

    @property
    def search_query(self) -> str:
        value = self.session.get(SEARCH_QUERY_KEY)
        return value if isinstance(value, str) else ""

    def set_search_query(self, query: Optional[str]):
        query = query or ""
        if query:
            self.session[SEARCH_QUERY_KEY] = query
        else:
            self.session.pop(SEARCH_QUERY_KEY, None)

    @property
    def selected_tags(self) -> List[str]:
        value = self.session.get(SELECTED_TAGS_KEY)
        if not isinstance(value, (list, tuple)):
            return []
        # Drop anything outside the vocabulary, e.g. from an older session
        return [tag for tag in value if tag in TAG_LABELS]

    def set_selected_tags(self, tags: Iterable[str]):
        tags = list(dict.fromkeys(tag for tag in tags if tag in TAG_LABELS))
        if tags:
            self.session[SELECTED_TAGS_KEY] = tags
        else:
            self.session.pop(SELECTED_TAGS_KEY, None)

    def toggle_tag(self, tag: str):
        tags = self.selected_tags
        if tag in tags:
            tags.remove(tag)
        else:
            tags.append(tag)
        self.set_selected_tags(tags)

    def clear(self):
        self.set_search_query("")
        self.set_selected_tags([])

    def apply(self, markers: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return filter_markers(markers, self.search_query, self.selected_tags)


def filter_markers(markers: List[Dict[str, Any]], query: str = "", tags: Iterable[str] = ()) -> List[Dict[str, Any]]:
    """Markers whose name contains ``query`` and that carry every tag in ``tags``."""
    query = (query or "").strip().lower()
    required = set(tags)

    matches = []
    for marker in markers:
        if query and query not in marker.get("name", "").lower():
            continue
        if not required.issubset(marker.get("tags") or []):
            continue
        matches.append(marker)
    return matches


def deletable_markers(markers: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Markers without posts. Only these can be deleted."""
    return [marker for marker in markers if not marker.get("post_ids")]
