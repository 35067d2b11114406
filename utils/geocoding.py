import json
import logging
import time
from config import (
    CACHE_DIR,
    GEOCODER_USER_AGENT,
    GEOCODING_CACHE_EXPIRATION_DAYS,
    GEOCODING_CACHE_FILE,
)
from datetime import UTC, datetime
from dateutil.parser import parse as parse_date
from geopy.exc import GeocoderTimedOut, GeocoderUnavailable
from geopy.geocoders import Nominatim
from pathlib import Path

logger = logging.getLogger(__name__)


class GeocodingCache:
    """File-based cache for reverse geocoding results with rate limiting and expiration"""

    def __init__(
        self, cache_file: Path = CACHE_DIR / GEOCODING_CACHE_FILE, expiration_days: int = GEOCODING_CACHE_EXPIRATION_DAYS
    ):
        self.cache_file = cache_file
        self.expiration_days = expiration_days
        self.last_api_call = 0
        self.min_api_interval = 1.0
        self.cache_data = self._load_cache()
        self.session_hits = 0
        self.session_misses = 0

    def _load_cache(self) -> dict:
        """Load cache from file with proper structure"""
        if self.cache_file.exists():
            try:
                with open(self.cache_file) as f:
                    data = json.load(f)
                if 'metadata' in data and 'entries' in data:
                    return data
                logger.warning("Unrecognized geocoding cache layout, starting fresh")
            except (json.JSONDecodeError, FileNotFoundError):
                logger.warning("Could not load geocoding cache, starting fresh")

        return {
            'metadata': {
                'version': '1.0',
                'created': datetime.now(UTC).isoformat(),
                'last_updated': datetime.now(UTC).isoformat(),
                'total_entries': 0,
                'expiration_days': self.expiration_days,
            },
            'entries': {},
        }

    def _generate_cache_key(self, latitude: float, longitude: float) -> str:
        return f"reverse_{latitude:.6f}_{longitude:.6f}"

    def _is_expired(self, entry: dict) -> bool:
        """Check if cache entry has expired"""
        try:
            entry_time = parse_date(entry['timestamp'])
            age_days = (datetime.now(UTC) - entry_time).days
            return age_days > self.expiration_days
        except (KeyError, TypeError, ValueError):
            return True

    def get(self, coordinates: tuple[float, float]) -> str | None:
        """Get cached place name for coordinates"""
        key = self._generate_cache_key(*coordinates)
        entry = self.cache_data['entries'].get(key)

        if entry and not self._is_expired(entry):
            self.session_hits += 1
            return entry.get('response', {}).get('name')

        self.session_misses += 1

        if entry:
            del self.cache_data['entries'][key]
            self.cache_data['metadata']['total_entries'] -= 1

        return None

    def set(self, coordinates: tuple[float, float], name: str, full_response: dict | None = None):
        """Cache a place name for coordinates"""
        key = self._generate_cache_key(*coordinates)

        entry = {
            'timestamp': datetime.now(UTC).isoformat(),
            'query': {'latitude': coordinates[0], 'longitude': coordinates[1]},
            'response': {'name': name, 'address': full_response or {}},
        }

        if key not in self.cache_data['entries']:
            self.cache_data['metadata']['total_entries'] += 1

        self.cache_data['entries'][key] = entry
        self.cache_data['metadata']['last_updated'] = datetime.now(UTC).isoformat()
        self._save_cache()

    def enforce_rate_limit(self):
        """Enforce rate limiting for API calls (1 request per second)"""
        time_since_last = time.time() - self.last_api_call

        if time_since_last < self.min_api_interval:
            sleep_time = self.min_api_interval - time_since_last
            logger.debug(f"Rate limiting: sleeping {sleep_time:.2f} seconds")
            time.sleep(sleep_time)

        self.last_api_call = time.time()

    def _save_cache(self):
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.cache_file, 'w') as f:
            json.dump(self.cache_data, f, indent=2)


class ClusterNamer:
    """Name photo clusters after the place at their centroid"""

    def __init__(self, geocoder=None, cache: GeocodingCache | None = None):
        self.geocoder = geocoder or Nominatim(user_agent=GEOCODER_USER_AGENT)
        self.cache = cache or GeocodingCache()

    def place_name(self, lat: float, lon: float) -> str | None:
        """Reverse geocode a point into 'Place, City' (or the closest available)"""
        coordinates = (round(lat, 6), round(lon, 6))

        cached_name = self.cache.get(coordinates)
        if cached_name:
            return cached_name

        try:
            self.cache.enforce_rate_limit()

            location = self.geocoder.reverse(coordinates, exactly_one=True, language='en')
            if location and location.raw.get('address'):
                address = location.raw['address']
                place = (
                    address.get('tourism')
                    or address.get('attraction')
                    or address.get('amenity')
                    or address.get('neighbourhood')
                    or address.get('suburb')
                )
                city = address.get('city') or address.get('town') or address.get('village') or address.get('municipality')

                parts = [part for part in (place, city) if part]
                if parts:
                    name = ', '.join(parts)
                    self.cache.set(coordinates, name, address)
                    return name

        except (GeocoderTimedOut, GeocoderUnavailable) as e:
            logger.warning(f"Geocoding failed for {lat}, {lon}: {e}")

        return None

    def name_clusters(self, clusters) -> int:
        """Set interestPointName on clusters that have none. Returns the number named."""
        named = 0
        for cluster in clusters:
            if cluster.interest_point_name or cluster.position is None:
                continue
            name = self.place_name(cluster.position.latitude, cluster.position.longitude)
            if name:
                cluster.interest_point_name = name
                named += 1
        return named
