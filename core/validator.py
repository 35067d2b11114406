import json
import logging
from config import (
    INDEX_FILE,
    MAX_VALID_LATITUDE,
    MAX_VALID_LONGITUDE,
    MIN_VALID_LATITUDE,
    MIN_VALID_LONGITUDE,
    TRAVEL_FILE,
)
from core.models import Itinerary, Travel, TravelIndex
from core.normalize import parse_iso_date
from datetime import UTC, datetime
from pathlib import Path
from utils.jsonio import read_json

logger = logging.getLogger(__name__)


class DataValidator:
    """Check generated travel documents against the invariants the front end relies on"""

    def __init__(self, root: Path):
        self.root = root
        self.validation_results = {
            'index_validation': {},
            'travel_validation': {},
            'errors': [],
            'warnings': [],
            'summary': {},
        }

    def is_valid_coordinate(self, lat: float, lon: float) -> bool:
        """Validate coordinate ranges"""
        return MIN_VALID_LATITUDE <= lat <= MAX_VALID_LATITUDE and MIN_VALID_LONGITUDE <= lon <= MAX_VALID_LONGITUDE

    def is_ordered(self, start: str | None, end: str | None) -> bool:
        """True when both dates parse and start <= end, or when end is absent"""
        if not end:
            return True
        start_dt, end_dt = parse_iso_date(start), parse_iso_date(end)
        return start_dt is not None and end_dt is not None and start_dt <= end_dt

    def _error(self, message: str) -> None:
        self.validation_results['errors'].append(message)

    def _warning(self, message: str) -> None:
        self.validation_results['warnings'].append(message)

    def validate_itinerary(self, itinerary: Itinerary, label: str) -> bool:
        errors_before = len(self.validation_results['errors'])

        if not self.is_ordered(itinerary.start_date, itinerary.end_date):
            self._error(f"{label}: startDate {itinerary.start_date} is after endDate {itinerary.end_date}")

        seen_ids = set()
        for photo in itinerary.all_photos():
            if photo.id in seen_ids:
                self._error(f"{label}: photo {photo.id} appears more than once")
            seen_ids.add(photo.id)

            if parse_iso_date(photo.date) is None:
                self._error(f"{label}: photo {photo.id} has an invalid date '{photo.date}'")
            if not self.is_valid_coordinate(photo.position.latitude, photo.position.longitude):
                self._warning(
                    f"{label}: photo {photo.id} has out-of-range position "
                    f"{photo.position.latitude}, {photo.position.longitude}"
                )

        for cluster in itinerary.photo_clusters:
            if not cluster.photos:
                self._error(f"{label}: cluster {cluster.id} has no photos")

        expected_ids = [f"cluster-{i}" for i in range(1, len(itinerary.photo_clusters) + 1)]
        if [c.id for c in itinerary.photo_clusters] != expected_ids:
            self._warning(f"{label}: cluster ids are not sequential (expected after a prune)")

        if itinerary.independent_photos:
            self._warning(f"{label}: has {len(itinerary.independent_photos)} independent photos")

        return len(self.validation_results['errors']) == errors_before

    def validate_travel_directory(self, travel_dir: Path) -> bool:
        """Validate a travel document and every itinerary it references"""
        result = {'valid': True, 'itineraries': 0}
        self.validation_results['travel_validation'][travel_dir.name] = result

        try:
            travel = Travel.from_dict(read_json(travel_dir / TRAVEL_FILE))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            self._error(f"{travel_dir.name}/{TRAVEL_FILE}: unreadable ({e})")
            result['valid'] = False
            return False

        if not self.is_ordered(travel.start_date, travel.end_date):
            self._error(f"{travel_dir.name}: startDate {travel.start_date} is after endDate {travel.end_date}")
            result['valid'] = False

        for item in travel.itineraries:
            if isinstance(item, Itinerary):
                itinerary = item
            else:
                itinerary_file = travel_dir / item / f"{item}.json"
                if not itinerary_file.exists():
                    self._error(f"{travel_dir.name}: referenced itinerary {item} has no {itinerary_file.name}")
                    result['valid'] = False
                    continue
                try:
                    itinerary = Itinerary.from_dict(read_json(itinerary_file))
                except (json.JSONDecodeError, KeyError, TypeError) as e:
                    self._error(f"{travel_dir.name}/{item}: unreadable itinerary ({e})")
                    result['valid'] = False
                    continue

            result['itineraries'] += 1
            if not self.validate_itinerary(itinerary, f"{travel_dir.name}/{itinerary.id}"):
                result['valid'] = False

        return result['valid']

    def validate_index(self) -> bool:
        """Validate index.json: parseable, unique ids, and file references that resolve"""
        index_file = self.root / INDEX_FILE
        result = {'exists': index_file.exists(), 'valid': False, 'travel_count': 0}
        self.validation_results['index_validation'] = result

        if not result['exists']:
            self._warning(f"{INDEX_FILE} not found")
            return False

        try:
            index = TravelIndex.from_dict(read_json(index_file))
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            self._error(f"{INDEX_FILE}: unreadable ({e})")
            return False

        result['travel_count'] = len(index.travels)
        valid = True

        ids = [entry.id for entry in index.travels]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            self._error(f"{INDEX_FILE}: duplicate travel ids {duplicates}")
            valid = False

        for entry in index.travels:
            # file is "<url root>/<travel>/travel.json"
            relative_parts = entry.file.split('/')[1:]
            if not self.root.joinpath(*relative_parts).exists():
                self._error(f"{INDEX_FILE}: entry {entry.id} points to missing file {entry.file}")
                valid = False

        result['valid'] = valid
        return valid

    def run_full_validation(self) -> bool:
        """Run complete validation suite"""
        logger.info("Running full data validation suite...")

        index_valid = self.validate_index()

        travels_valid = True
        for travel_dir in sorted(item for item in self.root.iterdir() if item.is_dir()):
            if (travel_dir / TRAVEL_FILE).exists() and not self.validate_travel_directory(travel_dir):
                travels_valid = False

        self.validation_results['summary'] = {
            'index_validation': index_valid,
            'travel_validation': travels_valid,
            'overall_valid': index_valid and travels_valid,
            'total_errors': len(self.validation_results['errors']),
            'total_warnings': len(self.validation_results['warnings']),
        }

        return self.validation_results['summary']['overall_valid']

    def generate_validation_report(self) -> str:
        """Generate markdown validation report"""
        summary = self.validation_results['summary']
        lines = [
            "# Data Validation Report",
            "",
            f"**Generated:** {datetime.now(UTC).strftime('%Y-%m-%d %H:%M:%S UTC')}",
            "",
            "## Summary",
            "",
            f"**Overall Status:** {'VALID' if summary.get('overall_valid', False) else 'INVALID'}",
            f"- **Errors:** {summary.get('total_errors', 0)}",
            f"- **Warnings:** {summary.get('total_warnings', 0)}",
            "",
        ]

        for section_name, section_key in (('Index Validation', 'index_validation'), ('Travel Validation', 'travel_validation')):
            status = "PASS" if summary.get(section_key, False) else "FAIL"
            lines.extend([f"### {section_name}", f"**Status:** {status}", ""])

        if self.validation_results['errors']:
            lines.extend(["## Errors", ""])
            for error in self.validation_results['errors'][:20]:
                lines.append(f"- {error}")
            lines.append("")

        if self.validation_results['warnings']:
            lines.extend(["## Warnings", ""])
            for warning in self.validation_results['warnings'][:20]:
                lines.append(f"- {warning}")
            lines.append("")

        return '\n'.join(lines)
