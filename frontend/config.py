import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Backend API configuration
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
REQUEST_TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT_SECONDS", "10"))

# Streamlit configuration
PAGE_TITLE = "GoodMap"
PAGE_ICON = "🗺️"
LAYOUT = "wide"

# Durable client state (the browser's localStorage equivalent)
STATE_FILE = Path(os.getenv("GOODMAP_STATE_FILE", Path.home() / ".goodmap" / "state.json"))

# Map defaults
DEFAULT_MAP_STATE = {"lat": 37.5665, "lng": 126.978, "zoom": 13}
MARKER_FOCUS_ZOOM = 15
CONTINENT_ZOOM = 7

CONTINENTS = [
    {"name": "North America", "lat": 40, "lng": -100, "lat_range": 15, "lng_range": 20},
    {"name": "South America", "lat": -15, "lng": -60, "lat_range": 10, "lng_range": 10},
    {"name": "Europe", "lat": 50, "lng": 10, "lat_range": 10, "lng_range": 20},
    {"name": "Asia", "lat": 30, "lng": 100, "lat_range": 20, "lng_range": 30},
    {"name": "Africa", "lat": 0, "lng": 20, "lat_range": 15, "lng_range": 15},
    {"name": "Oceania", "lat": -25, "lng": 135, "lat_range": 10, "lng_range": 20},
]

# Tag vocabulary, in display order
TAG_LABELS = {
    "restaurant": "Restaurant",
    "accommodation": "Accommodation",
    "tourism_view": "Tourism/View",
    "cafe": "Cafe",
    "shopping": "Shopping",
    "incident": "Incident",
    "other": "Other",
}

# Colors and styling
PRIMARY_COLOR = "#1f77b4"
MARKER_COLOR = [31, 119, 180, 200]
SELECTED_MARKER_COLOR = [214, 39, 40, 220]

# Admin console
ADMIN_PAGE_SIZE = 10

# Deep links (``/?marker=<id>``), the form sitemap entries use
MARKER_QUERY_PARAM = "marker"
