import exifread
import json
import logging
from config import MEDIA_EXTENSIONS, METADATA_FILE_SUFFIX, VIDEO_EXTENSIONS
from core.models import PhotoRecord
from core.normalize import normalize_coordinate
from core.report import RunReport, UnitResult
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# exifread key -> tag name handed to the normalizer
EXIF_TAG_NAMES = {
    'GPS GPSLatitude': 'GPSLatitude',
    'GPS GPSLongitude': 'GPSLongitude',
    'GPS GPSLatitudeRef': 'GPSLatitudeRef',
    'GPS GPSLongitudeRef': 'GPSLongitudeRef',
    'EXIF DateTimeOriginal': 'DateTimeOriginal',
    'Image DateTime': 'DateTime',
}


@dataclass
class ExifTag:
    """A decoded tag: the raw value plus a human-readable description"""

    value: Any
    description: str


def _ratio_to_float(ratio) -> float:
    try:
        return float(ratio)
    except TypeError:
        # exifread < 3 exposes num/den without __float__
        return ratio.num / ratio.den


def _dms_to_decimal(values) -> float:
    """Convert [degrees, minutes, seconds] rationals to decimal degrees"""
    parts = [_ratio_to_float(v) for v in values]
    parts.extend([0.0] * (3 - len(parts)))
    degrees, minutes, seconds = parts[:3]
    return degrees + minutes / 60.0 + seconds / 3600.0


def read_exif_tags(path: Path) -> dict[str, ExifTag]:
    """Decode the EXIF tags the pipeline needs from an image file"""
    with open(path, 'rb') as f:
        raw_tags = exifread.process_file(f, details=False)

    tags = {}
    for exif_key, name in EXIF_TAG_NAMES.items():
        raw = raw_tags.get(exif_key)
        if raw is None:
            continue

        if name in ('GPSLatitude', 'GPSLongitude'):
            description = str(_dms_to_decimal(raw.values))
        else:
            description = str(raw.printable).strip()

        tags[name] = ExifTag(value=raw.values, description=description)

    return tags


class MetadataExtractor:
    """Produce per-directory metadata sidecars from image EXIF data"""

    def __init__(self, report: RunReport | None = None, dry_run: bool = False):
        self.report = report or RunReport('extract-metadata')
        self.dry_run = dry_run

    def build_record(self, path: Path) -> PhotoRecord:
        """Build the metadata record for a single media file"""
        if path.suffix.lower() in VIDEO_EXTENSIONS:
            return PhotoRecord(filename=path.name, type='video')

        tags = read_exif_tags(path)
        coordinates = normalize_coordinate(
            tags.get('GPSLatitude'),
            tags.get('GPSLongitude'),
            tags.get('GPSLatitudeRef'),
            tags.get('GPSLongitudeRef'),
        )

        date_tag = tags.get('DateTimeOriginal') or tags.get('DateTime')
        date_time = date_tag.description if date_tag else None

        return PhotoRecord(filename=path.name, coordinates=coordinates, date_time=date_time, type='image')

    def extract_directory(self, directory: Path) -> dict[str, PhotoRecord]:
        """Extract metadata for the media files directly inside a directory and write its sidecar"""
        records = {}

        media_files = sorted(
            item for item in directory.iterdir() if item.is_file() and item.suffix.lower() in MEDIA_EXTENSIONS
        )

        for media_file in media_files:
            try:
                records[media_file.name] = self.build_record(media_file)
                self.report.add(UnitResult.success(str(media_file)))
            except Exception as e:
                logger.error(f"Error processing file {media_file.name}: {e}")
                self.report.add(UnitResult.failed(str(media_file), str(e)))

        if records:
            output_file = directory / f"{directory.name}{METADATA_FILE_SUFFIX}"
            if self.dry_run:
                logger.info(f"DRY RUN: Would write {len(records)} records to {output_file}")
            else:
                with open(output_file, 'w') as f:
                    json.dump({name: record.to_dict() for name, record in records.items()}, f, indent=2)
                logger.info(f"Created metadata file: {output_file}")

        return records

    def extract_tree(self, directory: Path) -> None:
        """Extract metadata for a directory and, recursively, all of its subdirectories"""
        self.extract_directory(directory)

        for subdirectory in sorted(item for item in directory.iterdir() if item.is_dir()):
            self.extract_tree(subdirectory)

    def extract_all(self, root: Path, only: str | None = None) -> RunReport:
        """Walk the data root (or a single travel directory under it) and write every sidecar"""
        if only:
            target = root / only
            if not target.is_dir():
                logger.warning(f"Directory not found: {target}")
                self.report.add(UnitResult.skipped(str(target), 'directory not found'))
                return self.report
            self.extract_tree(target)
        else:
            self.extract_tree(root)

        return self.report


def load_metadata(metadata_file: Path) -> dict[str, PhotoRecord]:
    """Read a metadata sidecar, dropping entries that cannot be parsed"""
    with open(metadata_file) as f:
        data = json.load(f)

    records = {}
    for name, entry in data.items():
        try:
            records[name] = PhotoRecord.from_dict(entry)
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed metadata entry '{name}' in {metadata_file.name}: {e}")

    return records
