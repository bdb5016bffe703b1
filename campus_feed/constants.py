"""
Constants for the campus feed.
"""

from pathlib import Path

MODULE_ROOT = Path(__file__).parent

PROMPTS_DIR = MODULE_ROOT / "prompts"

SETTINGS_PATH = MODULE_ROOT / "data" / "settings.yaml"

DB_NAME = "campus_feed.db"

# Closed tag vocabulary the tagger may choose from
VALID_TAGS = [
    "Urgent",
    "Academic",
    "Social",
    "Career",
    "Arts & Culture",
    "Dining",
    "Technology",
]

FALLBACK_TAG = "General"

DEFAULT_SOURCE = "UC"

MISSING_VALUE_SENTINEL = "N/A"

# Titles left behind by broken scrapes; rows carrying them are swept
PLACEHOLDER_TITLES = {"", "N/A", "null", "undefined", "Ver actividadesarrow_forward"}

SOURCE_LINK_PREFIX = "Full article: "

MAX_INTEREST_TAG_LENGTH = 30

# Article text shorter than this is not worth summarizing
MIN_SUMMARY_SOURCE_CHARS = 200

MAX_INTEREST_SUGGESTIONS = 15

FALLBACK_INTEREST_SUGGESTIONS = ["Coding", "Sports", "Music", "Networking", "Workshops"]

FALLBACK_IMAGES = [
    "https://images.unsplash.com/photo-1541339907198-e08756dedf3f?w=600&auto=format&fit=crop&q=60",
    "https://images.unsplash.com/photo-1523050854058-8df90110c9f1?w=600&auto=format&fit=crop&q=60",
    "https://images.unsplash.com/photo-1562774053-701939374585?w=600&auto=format&fit=crop&q=60",
    "https://images.unsplash.com/photo-1590402494682-cd3fb53b1f70?w=600&auto=format&fit=crop&q=60",
    "https://images.unsplash.com/photo-1523580494863-6f3031224c94?w=600&auto=format&fit=crop&q=60",
]
