import json
import pytest
from core.metadata import MetadataExtractor, load_metadata, read_exif_tags
from core.report import FAILED, SKIPPED
from types import SimpleNamespace
from unittest.mock import patch


def raw_tag(values, printable=''):
    """Stand-in for an exifread IfdTag"""
    return SimpleNamespace(values=values, printable=printable)


def gps_exif(lat_dms, lng_dms, lat_ref='N', lng_ref='W', date='2025:01:03 10:00:00'):
    return {
        'GPS GPSLatitude': raw_tag(lat_dms),
        'GPS GPSLongitude': raw_tag(lng_dms),
        'GPS GPSLatitudeRef': raw_tag(lat_ref, lat_ref),
        'GPS GPSLongitudeRef': raw_tag(lng_ref, lng_ref),
        'EXIF DateTimeOriginal': raw_tag(date, date),
    }


class TestReadExifTags:
    def test_gps_rationals_become_decimal_degrees(self, tmp_path):
        image = tmp_path / 'IMG_0001.jpg'
        image.write_bytes(b'')

        with patch('core.metadata.exifread.process_file', return_value=gps_exif([32, 30, 0], [86, 15, 0])):
            tags = read_exif_tags(image)

        assert float(tags['GPSLatitude'].description) == pytest.approx(32.5)
        assert float(tags['GPSLongitude'].description) == pytest.approx(86.25)
        assert tags['GPSLongitudeRef'].description == 'W'
        assert tags['DateTimeOriginal'].description == '2025:01:03 10:00:00'
        assert 'DateTime' not in tags


class TestMetadataExtractor:
    """Test suite for per-directory metadata sidecars"""

    @pytest.fixture
    def photo_dir(self, tmp_path):
        photo_dir = tmp_path / 'data' / 'usa_2025' / 'alabama'
        photo_dir.mkdir(parents=True)
        for name in ('IMG_0002.jpg', 'IMG_0001.JPG', 'VID_0001.mp4', 'notes.txt'):
            (photo_dir / name).write_bytes(b'')
        return photo_dir

    def test_extract_directory(self, photo_dir):
        with patch('core.metadata.exifread.process_file', return_value=gps_exif([32, 30, 0], [86, 15, 0])):
            records = MetadataExtractor().extract_directory(photo_dir)

        assert list(records) == ['IMG_0001.JPG', 'IMG_0002.jpg', 'VID_0001.mp4']
        with open(photo_dir / 'alabama-metadata.json') as f:
            sidecar = json.load(f)

        assert sidecar['IMG_0002.jpg']['coordinates']['lat'] == pytest.approx(32.5)
        assert sidecar['IMG_0002.jpg']['coordinates']['lng'] == pytest.approx(-86.25)
        assert sidecar['IMG_0002.jpg']['dateTime'] == '2025:01:03 10:00:00'
        assert sidecar['IMG_0002.jpg']['type'] == 'image'
        assert sidecar['VID_0001.mp4'] == {'filename': 'VID_0001.mp4', 'coordinates': None, 'dateTime': None, 'type': 'video'}
        assert 'notes.txt' not in sidecar

    def test_image_without_exif(self, photo_dir):
        with patch('core.metadata.exifread.process_file', return_value={}):
            records = MetadataExtractor().extract_directory(photo_dir)

        assert records['IMG_0001.JPG'].coordinates is None
        assert records['IMG_0001.JPG'].date_time is None
        assert not records['IMG_0001.JPG'].is_valid

    def test_falls_back_to_image_date_time(self, photo_dir):
        tags = gps_exif([32, 30, 0], [86, 15, 0])
        del tags['EXIF DateTimeOriginal']
        tags['Image DateTime'] = raw_tag('2025:01:05 08:00:00', '2025:01:05 08:00:00')

        with patch('core.metadata.exifread.process_file', return_value=tags):
            records = MetadataExtractor().extract_directory(photo_dir)

        assert records['IMG_0001.JPG'].date_time == '2025:01:05 08:00:00'

    def test_decode_failure_is_logged_and_skipped(self, photo_dir, caplog):
        def process_file(f, details=False):
            if f.name.endswith('IMG_0001.JPG'):
                raise ValueError('corrupt EXIF block')
            return gps_exif([32, 30, 0], [86, 15, 0])

        extractor = MetadataExtractor()
        with patch('core.metadata.exifread.process_file', side_effect=process_file):
            records = extractor.extract_directory(photo_dir)

        assert 'IMG_0001.JPG' not in records
        assert 'IMG_0002.jpg' in records
        assert 'Error processing file IMG_0001.JPG' in caplog.text
        assert [r.unit for r in extractor.report.by_status(FAILED)] == [str(photo_dir / 'IMG_0001.JPG')]

    def test_directory_without_media_writes_nothing(self, tmp_path):
        empty_dir = tmp_path / 'empty'
        empty_dir.mkdir()
        (empty_dir / 'readme.txt').write_text('')

        assert MetadataExtractor().extract_directory(empty_dir) == {}
        assert not (empty_dir / 'empty-metadata.json').exists()

    def test_extract_all_recurses(self, photo_dir):
        root = photo_dir.parent.parent
        nested = photo_dir / 'day_2'
        nested.mkdir()
        (nested / 'IMG_0100.jpg').write_bytes(b'')

        with patch('core.metadata.exifread.process_file', return_value={}):
            MetadataExtractor().extract_all(root)

        assert (photo_dir / 'alabama-metadata.json').exists()
        assert (nested / 'day_2-metadata.json').exists()
        assert not (root / 'data-metadata.json').exists()

    def test_extract_all_single_travel(self, photo_dir):
        root = photo_dir.parent.parent
        other = root / 'france_2024' / 'paris'
        other.mkdir(parents=True)
        (other / 'IMG_0200.jpg').write_bytes(b'')

        with patch('core.metadata.exifread.process_file', return_value={}):
            MetadataExtractor().extract_all(root, only='france_2024')

        assert (other / 'paris-metadata.json').exists()
        assert not (photo_dir / 'alabama-metadata.json').exists()

    def test_extract_all_missing_travel(self, tmp_path):
        extractor = MetadataExtractor()

        report = extractor.extract_all(tmp_path, only='nowhere')

        assert [r.status for r in report.results] == [SKIPPED]

    def test_dry_run(self, photo_dir):
        with patch('core.metadata.exifread.process_file', return_value={}):
            records = MetadataExtractor(dry_run=True).extract_directory(photo_dir)

        assert len(records) == 3
        assert not (photo_dir / 'alabama-metadata.json').exists()


class TestLoadMetadata:
    def test_drops_malformed_entries(self, tmp_path):
        sidecar = tmp_path / 'alabama-metadata.json'
        sidecar.write_text(
            json.dumps(
                {
                    'IMG_0001.jpg': {'filename': 'IMG_0001.jpg', 'coordinates': None, 'dateTime': None, 'type': 'image'},
                    'broken.jpg': {'dateTime': '2025:01:01 10:00:00'},
                    'worse.jpg': 'nonsense',
                }
            )
        )

        assert list(load_metadata(sidecar)) == ['IMG_0001.jpg']
