"""Test data fixtures for travel drafts tests"""

import json
from pathlib import Path


class TestDataFixtures:
    """Centralized test data fixtures"""

    @staticmethod
    def photo_record(filename, lat=None, lng=None, date_time=None, type='image'):
        """Build a metadata sidecar entry"""
        return {
            'filename': filename,
            'coordinates': {'lat': lat, 'lng': lng} if lat is not None and lng is not None else None,
            'dateTime': date_time,
            'type': type,
        }

    @classmethod
    def get_test_metadata(cls):
        """Two photos near each other, one far away, one without GPS and one video"""
        return {
            'IMG_0001.jpg': cls.photo_record('IMG_0001.jpg', 32.3668, -86.3000, '2025:01:03 10:00:00'),
            'IMG_0002.jpg': cls.photo_record('IMG_0002.jpg', 32.3670, -86.3002, '2025:01:03 10:15:00'),
            'IMG_0003.jpg': cls.photo_record('IMG_0003.jpg', 33.5186, -86.8104, '2025:01:04 09:00:00'),
            'IMG_0004.jpg': cls.photo_record('IMG_0004.jpg', None, None, '2025:01:04 12:00:00'),
            'VID_0001.mp4': cls.photo_record('VID_0001.mp4', type='video'),
        }

    @staticmethod
    def photo(photo_id, lat, lng, date, url=None, cloudinary=None):
        photo = {
            'id': photo_id,
            'url': url or f"data/usa_2025/alabama/{photo_id}",
            'position': {'latitude': lat, 'longitude': lng},
            'date': date,
            'description': '',
        }
        if cloudinary:
            photo['cloudinary'] = cloudinary
        return photo

    @classmethod
    def get_test_itinerary(cls):
        """Itinerary document with three photos in two clusters"""
        return {
            'id': 'alabama',
            'name': 'Alabama',
            'route': {
                'start': {'latitude': 32.0, 'longitude': -86.0},
                'end': {'latitude': 33.0, 'longitude': -87.0},
                'path': [
                    {'latitude': 32.0, 'longitude': -86.0, 'date': '2025-01-03T10:00:00Z'},
                    {'latitude': 33.0, 'longitude': -87.0, 'date': '2025-01-04T09:00:00Z'},
                ],
            },
            'startDate': '2025-01-03T10:00:00Z',
            'endDate': '2025-01-04T09:00:00Z',
            'photoClusters': [
                {
                    'id': 'cluster-1',
                    'photos': [
                        cls.photo('IMG_0001.jpg', 32.0, -86.0, '2025-01-03T10:00:00Z'),
                        cls.photo('IMG_0002.jpg', 32.001, -86.001, '2025-01-03T10:15:00Z'),
                    ],
                    'position': {'latitude': 32.0005, 'longitude': -86.0005},
                },
                {
                    'id': 'cluster-2',
                    'photos': [cls.photo('IMG_0003.jpg', 33.0, -87.0, '2025-01-04T09:00:00Z')],
                    'position': {'latitude': 33.0, 'longitude': -87.0},
                },
            ],
            'independentPhotos': [],
            'description': 'Auto-generated itinerary for alabama',
        }

    @staticmethod
    def upload_result(filename, folder='usa_2025/alabama'):
        stem = Path(filename).stem
        base = 'https://res.cloudinary.com/demo/image/upload'
        return {
            'original_filename': filename,
            'original_size_mb': '2.50',
            'public_id': f"{folder}/{stem}",
            'secure_url': f"{base}/v1/{folder}/{stem}.jpg",
            'optimized_url': f"{base}/c_limit,w_800/{folder}/{stem}.jpg",
            'thumbnail_url': f"{base}/c_limit,w_400/{folder}/{stem}.jpg",
            'cloudinary_size_kb': 512,
        }

    @classmethod
    def create_photo_tree(cls, root: Path, travel='usa_2025', itinerary='alabama', metadata=None):
        """Create root/<travel>/<itinerary>/ with placeholder images and a metadata sidecar"""
        itinerary_dir = root / travel / itinerary
        itinerary_dir.mkdir(parents=True, exist_ok=True)

        metadata = metadata if metadata is not None else cls.get_test_metadata()
        for filename in metadata:
            (itinerary_dir / filename).write_bytes(b'')

        with open(itinerary_dir / f"{itinerary}-metadata.json", 'w') as f:
            json.dump(metadata, f, indent=2)

        return itinerary_dir
