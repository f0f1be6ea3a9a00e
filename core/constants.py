"""
Core Module - Constants.

============================================================
RESPONSIBILITY
============================================================
Static reference data shared by sources, normalizers and feeds.

- Island coordinates for forecast lookups
- Surf break catalogue and tide stations
- Island keyword lists for venue detection
- Default cache TTLs per domain

============================================================
"""

from typing import Dict, List, Tuple


SYSTEM_NAME = "island-pulse"
SYSTEM_VERSION = "1.0.0"
DEFAULT_USER_AGENT = "IslandPulse/1.0 (contact@islandpulse.example)"


# ============================================================
# ISLANDS
# ============================================================

# island -> (lat, lon)
ISLAND_COORDINATES: Dict[str, Tuple[float, float]] = {
    "oahu": (21.4389, -158.0001),
    "maui": (20.7984, -156.3319),
    "hawaii": (19.5429, -155.6659),
    "kauai": (22.0964, -159.5261),
    "molokai": (21.1444, -157.0226),
    "lanai": (20.7984, -156.9292),
}

# Islands surveyed when no island is requested
MAIN_SURF_ISLANDS: List[str] = ["oahu", "maui", "hawaii", "kauai"]

ISLAND_KEYWORDS: Dict[str, List[str]] = {
    "oahu": ["honolulu", "waikiki", "pearl city", "kaneohe", "kailua", "hawaii kai",
             "wahiawa", "laie", "haleiwa", "oahu"],
    "maui": ["maui", "lahaina", "kihei", "wailea", "makawao", "hana", "kahului",
             "paia", "upcountry"],
    "hawaii": ["big island", "hilo", "kona", "waimea", "volcano", "pahoa",
               "captain cook", "naalehu", "hawaii"],
    "kauai": ["kauai", "lihue", "poipu", "princeville", "kapaa", "hanapepe",
              "waimea", "hanalei"],
    "molokai": ["molokai", "kaunakakai", "halawa"],
    "lanai": ["lanai", "lanai city"],
}


# ============================================================
# SURF & TIDES
# ============================================================

# (spot_id, name, lat, lon, island)
SURF_SPOTS: List[Tuple[str, str, float, float, str]] = [
    ("5842041f4e65fad6a7708876", "Pipeline", 21.6611, -158.0525, "oahu"),
    ("5842041f4e65fad6a7708884", "Sunset Beach", 21.6783, -158.0408, "oahu"),
    ("5842041f4e65fad6a7708888", "Waikiki", 21.2661, -157.8222, "oahu"),
    ("5842041f4e65fad6a770887c", "Ala Moana Bowls", 21.2905, -157.8444, "oahu"),
    ("5842041f4e65fad6a7708879", "Diamond Head", 21.2620, -157.8151, "oahu"),
    ("5842041f4e65fad6a770888b", "Makaha", 21.4692, -158.2197, "oahu"),
    ("5842041f4e65fad6a77088a2", "Ho'okipa", 20.9333, -156.3500, "maui"),
    ("5842041f4e65fad6a77088a5", "Honolua Bay", 21.0158, -156.6394, "maui"),
    ("5842041f4e65fad6a77088a8", "Lahaina", 20.8783, -156.6825, "maui"),
    ("5842041f4e65fad6a77088ab", "Kihei", 20.7614, -156.4497, "maui"),
    ("5842041f4e65fad6a77088ae", "Banyan's", 19.6197, -155.9969, "hawaii"),
    ("5842041f4e65fad6a77088b1", "Lyman's", 19.7297, -155.0897, "hawaii"),
    ("5842041f4e65fad6a77088b4", "Honoli'i", 19.7736, -155.0931, "hawaii"),
    ("5842041f4e65fad6a77088b7", "Hanalei Bay", 22.2097, -159.4997, "kauai"),
    ("5842041f4e65fad6a77088ba", "Poipu", 21.8744, -159.4653, "kauai"),
    ("5842041f4e65fad6a77088bd", "Pakala", 21.9189, -159.6467, "kauai"),
]

# NOAA CO-OPS stations; Lanai borrows Kahului
TIDE_STATIONS: Dict[str, str] = {
    "oahu": "1612340",     # Honolulu Harbor
    "maui": "1615680",     # Kahului Harbor
    "hawaii": "1617760",   # Hilo Bay
    "kauai": "1611400",    # Nawiliwili Bay
    "molokai": "1612480",  # Kaunakakai
    "lanai": "1615680",
}


# ============================================================
# CACHE TTLS (seconds)
# ============================================================

WEATHER_CACHE_TTL_SECONDS = 15 * 60
SURF_CACHE_TTL_SECONDS = 30 * 60
TIDES_CACHE_TTL_SECONDS = 30 * 60
NEWS_CACHE_TTL_SECONDS = 15 * 60
EVENTS_CACHE_TTL_SECONDS = 60 * 60

DEFAULT_SOURCE_TIMEOUT_SECONDS = 10.0
