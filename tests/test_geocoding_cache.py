import json
import pytest
from core.models import Photo, PhotoCluster, Position
from datetime import UTC, datetime, timedelta
from geopy.exc import GeocoderTimedOut
from unittest.mock import Mock, patch
from utils.geocoding import ClusterNamer, GeocodingCache


class TestGeocodingCache:
    """Test suite for GeocodingCache class"""

    @pytest.fixture
    def cache_file(self, tmp_path):
        """Create temporary cache file path"""
        return tmp_path / "test_cache.json"

    @pytest.fixture
    def cache(self, cache_file):
        """Create cache instance with temporary file"""
        return GeocodingCache(cache_file=cache_file, expiration_days=30)

    def test_init_empty_cache(self, cache, cache_file):
        """Test initialization with empty cache"""
        assert cache.cache_file == cache_file
        assert cache.expiration_days == 30
        assert cache.session_hits == 0
        assert cache.session_misses == 0
        assert cache.cache_data['metadata']['version'] == '1.0'
        assert cache.cache_data['metadata']['total_entries'] == 0

    def test_load_existing_cache(self, cache_file):
        """Test loading existing cache file"""
        existing_data = {
            'metadata': {'version': '1.0', 'total_entries': 1},
            'entries': {
                'reverse_32.366800_-86.300000': {
                    'timestamp': datetime.now(UTC).isoformat(),
                    'response': {'name': 'State Capitol, Montgomery'},
                }
            },
        }
        with open(cache_file, 'w') as f:
            json.dump(existing_data, f)

        cache = GeocodingCache(cache_file=cache_file)

        assert cache.get((32.3668, -86.3)) == 'State Capitol, Montgomery'

    def test_unrecognized_cache_starts_fresh(self, cache_file):
        """Test that a cache file in another layout is ignored"""
        with open(cache_file, 'w') as f:
            json.dump({'32.3668,-86.3': 'Montgomery'}, f)

        cache = GeocodingCache(cache_file=cache_file)

        assert cache.cache_data['entries'] == {}

    def test_corrupt_cache_starts_fresh(self, cache_file):
        cache_file.write_text('{broken')
        assert GeocodingCache(cache_file=cache_file).cache_data['entries'] == {}

    def test_generate_cache_key(self, cache):
        """Test cache key generation"""
        assert cache._generate_cache_key(37.7749, -122.4194) == 'reverse_37.774900_-122.419400'

    def test_is_expired(self, cache):
        """Test expiration checking"""
        # Fresh entry
        assert not cache._is_expired({'timestamp': datetime.now(UTC).isoformat()})

        # Old entry
        old_time = datetime.now(UTC) - timedelta(days=31)
        assert cache._is_expired({'timestamp': old_time.isoformat()})

        # Invalid timestamp
        assert cache._is_expired({'timestamp': 'invalid-date'})
        assert cache._is_expired({})

    def test_get_set(self, cache):
        """Test cache get/set"""
        coords = (32.3668, -86.3)

        # Initial miss
        assert cache.get(coords) is None
        assert cache.session_misses == 1

        cache.set(coords, 'Montgomery', {'city': 'Montgomery'})

        # Cache hit
        assert cache.get(coords) == 'Montgomery'
        assert cache.session_hits == 1
        assert cache.cache_data['metadata']['total_entries'] == 1

        # Verify cache was saved
        with open(cache.cache_file) as f:
            saved = json.load(f)
        assert saved['entries']['reverse_32.366800_-86.300000']['response']['address'] == {'city': 'Montgomery'}

    def test_expired_entry_is_dropped(self, cache):
        coords = (32.3668, -86.3)
        cache.set(coords, 'Montgomery')
        key = cache._generate_cache_key(*coords)
        cache.cache_data['entries'][key]['timestamp'] = (datetime.now(UTC) - timedelta(days=60)).isoformat()

        assert cache.get(coords) is None
        assert key not in cache.cache_data['entries']
        assert cache.cache_data['metadata']['total_entries'] == 0

    @patch('utils.geocoding.time.sleep')
    def test_enforce_rate_limit(self, mock_sleep, cache):
        """Test that back-to-back calls sleep"""
        cache.enforce_rate_limit()
        cache.enforce_rate_limit()

        assert mock_sleep.call_count == 1


class TestClusterNamer:
    """Test suite for reverse geocoded cluster names"""

    @pytest.fixture
    def cache(self, tmp_path):
        cache = GeocodingCache(cache_file=tmp_path / "cache.json")
        cache.enforce_rate_limit = Mock()
        return cache

    def location(self, address):
        location = Mock()
        location.raw = {'address': address}
        return location

    def cluster(self, cluster_id, lat, lng, name=None):
        photo = Photo(id=f"{cluster_id}.jpg", url=f"{cluster_id}.jpg", position=Position(lat, lng), date='2025-01-01T00:00:00Z')
        return PhotoCluster(id=cluster_id, photos=[photo], position=Position(lat, lng), interest_point_name=name)

    def test_place_name(self, cache):
        geocoder = Mock()
        geocoder.reverse.return_value = self.location({'tourism': 'State Capitol', 'city': 'Montgomery'})
        namer = ClusterNamer(geocoder=geocoder, cache=cache)

        assert namer.place_name(32.3668, -86.3) == 'State Capitol, Montgomery'
        # Second lookup comes from the cache
        assert namer.place_name(32.3668, -86.3) == 'State Capitol, Montgomery'
        geocoder.reverse.assert_called_once()

    def test_place_name_city_only(self, cache):
        geocoder = Mock()
        geocoder.reverse.return_value = self.location({'town': 'Selma', 'country': 'United States'})

        assert ClusterNamer(geocoder=geocoder, cache=cache).place_name(32.4, -87.0) == 'Selma'

    def test_place_name_without_usable_address(self, cache):
        geocoder = Mock()
        geocoder.reverse.return_value = self.location({'country': 'United States'})

        assert ClusterNamer(geocoder=geocoder, cache=cache).place_name(32.4, -87.0) is None

    def test_geocoder_timeout(self, cache):
        geocoder = Mock()
        geocoder.reverse.side_effect = GeocoderTimedOut('timed out')

        assert ClusterNamer(geocoder=geocoder, cache=cache).place_name(32.4, -87.0) is None

    def test_name_clusters_keeps_existing_names(self, cache):
        geocoder = Mock()
        geocoder.reverse.return_value = self.location({'amenity': 'Museum', 'city': 'Birmingham'})
        clusters = [self.cluster('cluster-1', 33.5, -86.8), self.cluster('cluster-2', 32.3, -86.3, name='Home')]

        named = ClusterNamer(geocoder=geocoder, cache=cache).name_clusters(clusters)

        assert named == 1
        assert clusters[0].interest_point_name == 'Museum, Birmingham'
        assert clusters[1].interest_point_name == 'Home'
