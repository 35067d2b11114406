from decouple import Csv, config
from pathlib import Path

# Directory paths
CACHE_DIR = Path(config('CACHE_DIR', default='data'))

# File names
METADATA_FILE_SUFFIX = '-metadata.json'
TRAVEL_FILE = 'travel.json'
INDEX_FILE = 'index.json'
UPLOAD_RESULTS_FILE = 'cloudinary-upload-results.json'
GEOCODING_CACHE_FILE = 'geocoding_cache.json'
VALIDATION_REPORT_FILE = 'validation_report.md'

# Media types
IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png')
VIDEO_EXTENSIONS = ('.mp4',)
MEDIA_EXTENSIONS = IMAGE_EXTENSIONS + VIDEO_EXTENSIONS
UPLOAD_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.webp')

# Index writer lock
INDEX_LOCK_TIMEOUT_SECONDS = config('INDEX_LOCK_TIMEOUT_SECONDS', default=30, cast=float)

# Clustering constants
CLUSTER_DISTANCE_THRESHOLD = config('CLUSTER_DISTANCE_THRESHOLD', default=0.005, cast=float)  # ~500m in degrees

# Cluster naming (reverse geocoding)
NAME_CLUSTERS = config('NAME_CLUSTERS', default=False, cast=bool)
GEOCODER_USER_AGENT = config('GEOCODER_USER_AGENT', default='travel-drafts/1.0')
GEOCODING_CACHE_EXPIRATION_DAYS = 30

# Cloudinary credentials
CLOUDINARY_CLOUD_NAME = config('CLOUDINARY_CLOUD_NAME', default='')
CLOUDINARY_API_KEY = config('CLOUDINARY_API_KEY', default='')
CLOUDINARY_API_SECRET = config('CLOUDINARY_API_SECRET', default='')

# Upload constants
UPLOAD_TIMEOUT_SECONDS = config('UPLOAD_TIMEOUT_SECONDS', default=60, cast=int)
MAX_UPLOAD_FILE_SIZE_MB = config('MAX_UPLOAD_FILE_SIZE_MB', default=10, cast=int)  # Free tier limit
FILE_TOO_LARGE_MARKERS = config('FILE_TOO_LARGE_MARKERS', default='File size too large', cast=Csv())

UPLOAD_OPTIONS = {
    'resource_type': 'image',
    'quality': 'auto:good',
    'fetch_format': 'auto',
    'eager': [
        {'width': 800, 'height': 600, 'crop': 'limit', 'quality': 'auto:good'},
        {'width': 400, 'height': 300, 'crop': 'limit', 'quality': 'auto:eco'},
    ],
}

AGGRESSIVE_UPLOAD_OPTIONS = {
    'resource_type': 'image',
    'quality': 'auto:low',
    'fetch_format': 'auto',
    'transformation': [
        {'width': 2000, 'height': 1500, 'crop': 'limit'},
        {'quality': 'auto:low'},
    ],
    'eager': [
        {'width': 800, 'height': 600, 'crop': 'limit', 'quality': 'auto:eco'},
        {'width': 400, 'height': 300, 'crop': 'limit', 'quality': 'auto:eco'},
    ],
}

MAX_COMPRESSION_UPLOAD_OPTIONS = {
    'resource_type': 'image',
    'quality': '30',
    'transformation': [
        {'width': 1500, 'height': 1200, 'crop': 'limit'},
        {'quality': '30'},
    ],
}

# Validation constants
MIN_VALID_LATITUDE = -90.0
MAX_VALID_LATITUDE = 90.0
MIN_VALID_LONGITUDE = -180.0
MAX_VALID_LONGITUDE = 180.0

# Pipeline step definitions
PIPELINE_STEPS = [
    {
        'name': 'extract-metadata',
        'description': 'Extract EXIF metadata into per-directory sidecar files',
    },
    {
        'name': 'generate-drafts',
        'description': 'Generate itinerary and travel drafts from photo metadata',
        'dependencies': ['extract-metadata'],
    },
    {
        'name': 'update-index',
        'description': 'Rebuild the travel index from travel documents',
        'dependencies': ['generate-drafts'],
    },
]
