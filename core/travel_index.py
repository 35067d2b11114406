import json
import logging
from config import IMAGE_EXTENSIONS, INDEX_FILE, INDEX_LOCK_TIMEOUT_SECONDS, TRAVEL_FILE
from contextlib import nullcontext
from core.models import Itinerary, Travel, TravelIndex, TravelIndexEntry
from core.normalize import humanize_name
from core.report import RunReport, UnitResult
from filelock import FileLock
from pathlib import Path
from utils.jsonio import read_json, write_json

logger = logging.getLogger(__name__)


class TravelIndexStore:
    """
    Sole writer of a data root's index.json

    Every change is a read-modify-write of the whole document, held under a lock file next
    to the index so that concurrent processes (one per travel, say) serialize their
    updates. The file is replaced atomically, so the index on disk is always a complete
    document.
    """

    def __init__(self, root: Path, dry_run: bool = False, lock_timeout: float = INDEX_LOCK_TIMEOUT_SECONDS):
        self.root = root
        self.index_file = root / INDEX_FILE
        self.lock_file = root / f"{INDEX_FILE}.lock"
        self.url_root = root.resolve().name
        self.dry_run = dry_run
        self.lock_timeout = lock_timeout

    def _lock(self):
        # Dry runs never write, so they must not create the lock file either
        if self.dry_run:
            return nullcontext()
        return FileLock(self.lock_file, timeout=self.lock_timeout)

    def load(self) -> TravelIndex:
        """Read the current index, treating a missing or corrupt file as empty"""
        if not self.index_file.exists():
            return TravelIndex()

        try:
            return TravelIndex.from_dict(read_json(self.index_file))
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Could not parse existing index {self.index_file}, rebuilding it: {e}")
            return TravelIndex()

    def save(self, index: TravelIndex) -> None:
        if self.dry_run:
            logger.info(f"DRY RUN: Would write {len(index.travels)} travels to {self.index_file}")
            return
        write_json(self.index_file, index.to_dict())
        logger.info(f"Updated travel index file: {self.index_file}")

    def relative_url(self, *parts: str) -> str:
        return '/'.join((self.url_root,) + parts)

    def cover_photo_from_directory(self, travel_dir: Path, travel: Travel) -> str | None:
        """First image file in the first referenced itinerary directory"""
        itinerary_ids = travel.itinerary_ids
        if not itinerary_ids:
            return None

        itinerary_dir = travel_dir / itinerary_ids[0]
        if not itinerary_dir.is_dir():
            return None

        for item in sorted(itinerary_dir.iterdir()):
            if item.is_file() and item.suffix.lower() in IMAGE_EXTENSIONS:
                return self.relative_url(travel_dir.name, itinerary_ids[0], item.name)

        return None

    @staticmethod
    def cover_photo_from_itineraries(itineraries: list[Itinerary]) -> str | None:
        """First cluster photo of the first itinerary, else its first independent photo"""
        if not itineraries:
            return None

        first = itineraries[0]
        for cluster in first.photo_clusters:
            if cluster.photos:
                return cluster.photos[0].url
        if first.independent_photos:
            return first.independent_photos[0].url
        return None

    def build_entry(self, travel: Travel, travel_dir_name: str, cover_photo_url: str | None) -> TravelIndexEntry:
        name = travel.name or humanize_name(travel_dir_name)
        return TravelIndexEntry(
            id=travel.id or travel_dir_name,
            name=name,
            start_date=travel.start_date,
            end_date=travel.end_date,
            description=travel.description or f"Travel to {name}",
            file=self.relative_url(travel_dir_name, TRAVEL_FILE),
            cover_photo_url=cover_photo_url,
        )

    def entry_from_directory(self, travel_dir: Path) -> TravelIndexEntry:
        travel = Travel.from_dict(read_json(travel_dir / TRAVEL_FILE))
        return self.build_entry(travel, travel_dir.name, self.cover_photo_from_directory(travel_dir, travel))

    def rebuild(self) -> RunReport:
        """Scan every travel directory under the root and replace the index with the result"""
        report = RunReport('update-index')
        index = TravelIndex()

        for travel_dir in sorted(item for item in self.root.iterdir() if item.is_dir()):
            if not (travel_dir / TRAVEL_FILE).exists():
                continue
            try:
                index.upsert(self.entry_from_directory(travel_dir))
                report.add(UnitResult.success(travel_dir.name))
            except Exception as e:
                logger.error(f"Error reading {TRAVEL_FILE} for {travel_dir.name}: {e}")
                report.add(UnitResult.failed(travel_dir.name, str(e)))

        with self._lock():
            previous = self.load()
            index.extra = previous.extra
            previous_entries = {entry.id: entry for entry in previous.travels}
            for entry in index.travels:
                if entry.id in previous_entries:
                    entry.extra = {**previous_entries[entry.id].extra, **entry.extra}
            self.save(index)

        logger.info(f"Total travels found: {len(index.travels)}")
        return report

    def refresh(self, travel_id: str) -> UnitResult:
        """Re-read one travel directory and upsert its entry"""
        travel_dir = self.root / travel_id
        if not (travel_dir / TRAVEL_FILE).exists():
            logger.warning(f"No {TRAVEL_FILE} found in {travel_dir}")
            return UnitResult.skipped(travel_id, f"no {TRAVEL_FILE}")

        try:
            entry = self.entry_from_directory(travel_dir)
        except Exception as e:
            logger.error(f"Error reading {TRAVEL_FILE} for {travel_id}: {e}")
            return UnitResult.failed(travel_id, str(e))

        return self._upsert_entry(entry)

    def upsert(self, travel: Travel, travel_file: Path, itineraries: list[Itinerary] | None = None) -> UnitResult:
        """
        Add or replace the index entry for an already built travel

        Args:
            travel: The travel document
            travel_file: Path of the travel document on disk
            itineraries: The travel's itineraries; defaults to the ones embedded in the travel
        """
        if itineraries is None:
            itineraries = [item for item in travel.itineraries if isinstance(item, Itinerary)]

        travel_dir_name = travel_file.parent.name
        entry = self.build_entry(travel, travel_dir_name, self.cover_photo_from_itineraries(itineraries))
        entry.file = self.relative_url(*travel_file.resolve().relative_to(self.root.resolve()).parts)
        return self._upsert_entry(entry)

    def _upsert_entry(self, entry: TravelIndexEntry) -> UnitResult:
        with self._lock():
            index = self.load()
            replaced = index.upsert(entry)
            self.save(index)

        logger.info(f"{'Updated' if replaced else 'Added'} travel '{entry.id}' in index")
        return UnitResult.success(entry.id, entry)
