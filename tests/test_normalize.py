import pytest
from core.metadata import ExifTag
from core.normalize import humanize_name, normalize_coordinate, normalize_date_time, parse_iso_date


def gps_tags(lat, lng, lat_ref='N', lng_ref='E'):
    return (
        ExifTag(value=None, description=str(lat)),
        ExifTag(value=None, description=str(lng)),
        ExifTag(value=[lat_ref], description=lat_ref),
        ExifTag(value=[lng_ref], description=lng_ref),
    )


class TestNormalizeCoordinate:
    """Test suite for GPS tag normalization"""

    def test_northern_eastern_hemisphere(self):
        assert normalize_coordinate(*gps_tags(10, 20)) == {'lat': 10.0, 'lng': 20.0}

    def test_western_hemisphere_negates_longitude(self):
        assert normalize_coordinate(*gps_tags(10, 20, lng_ref='W')) == {'lat': 10.0, 'lng': -20.0}

    def test_southern_hemisphere_negates_latitude(self):
        result = normalize_coordinate(*gps_tags(10, 20, lat_ref='S'))
        assert result['lat'] == -10.0
        assert result['lng'] == 20.0

    def test_already_negative_value_is_kept(self):
        """A decoder that already signs the value must not be flipped back"""
        assert normalize_coordinate(*gps_tags(-10, -20, lat_ref='S', lng_ref='W')) == {'lat': -10.0, 'lng': -20.0}

    def test_missing_latitude(self):
        _, lng, lat_ref, lng_ref = gps_tags(10, 20)
        assert normalize_coordinate(None, lng, lat_ref, lng_ref) is None

    def test_missing_reference_tags(self):
        lat, lng, _, _ = gps_tags(10, 20)
        assert normalize_coordinate(lat, lng) == {'lat': 10.0, 'lng': 20.0}

    @pytest.mark.parametrize('bad_value', ['not-a-number', 'nan', 'inf', ''])
    def test_unparseable_description(self, bad_value):
        assert normalize_coordinate(*gps_tags(bad_value, 20)) is None

    def test_out_of_range_values_are_not_validated(self):
        assert normalize_coordinate(*gps_tags(95, 200)) == {'lat': 95.0, 'lng': 200.0}

    def test_plain_values(self):
        assert normalize_coordinate('10.5', '20.25', 'N', 'W') == {'lat': 10.5, 'lng': -20.25}


class TestNormalizeDateTime:
    """Test suite for EXIF date conversion"""

    def test_exif_to_iso(self):
        assert normalize_date_time("2024:07:04 10:30:00") == "2024-07-04T10:30:00Z"

    def test_local_time_is_relabeled_not_converted(self):
        assert normalize_date_time("2024:12:31 23:59:59") == "2024-12-31T23:59:59Z"

    def test_missing_time(self):
        assert normalize_date_time("2024:07:04") is None

    def test_empty(self):
        assert normalize_date_time("") is None
        assert normalize_date_time(None) is None


class TestHelpers:
    def test_humanize_name(self):
        assert humanize_name('usa_2025') == 'Usa 2025'
        assert humanize_name('alabama') == 'Alabama'
        assert humanize_name('') == ''

    def test_parse_iso_date(self):
        parsed = parse_iso_date('2024-07-04T10:30:00Z')
        assert (parsed.year, parsed.month, parsed.day, parsed.hour) == (2024, 7, 4, 10)
        assert parse_iso_date('garbage') is None
        assert parse_iso_date(None) is None
