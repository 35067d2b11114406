import json
import logging
from config import UPLOAD_RESULTS_FILE
from core.models import Itinerary, Photo, UploadResult
from core.report import RunReport, UnitResult
from pathlib import Path
from utils.jsonio import read_json, write_json

logger = logging.getLogger(__name__)


def load_upload_results(manifest_file: Path) -> dict[str, UploadResult]:
    """Read an upload manifest into a lookup by original filename, dropping unparseable entries"""
    entries = read_json(manifest_file)
    if not isinstance(entries, list):
        raise ValueError(f"{manifest_file.name} must contain a list of upload results")

    results = {}
    for i, entry in enumerate(entries):
        try:
            result = UploadResult.from_dict(entry)
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping unparseable upload result #{i} in {manifest_file}: {e}")
            continue
        results[result.original_filename] = result

    return results


class CloudinaryBackfill:
    """Point itinerary photos at their uploaded Cloudinary assets, and drop the ones never uploaded"""

    def __init__(self, report: RunReport | None = None, dry_run: bool = False):
        self.report = report or RunReport('backfill-cloudinary')
        self.dry_run = dry_run

    def _write(self, path: Path, itinerary: Itinerary) -> None:
        if self.dry_run:
            logger.info(f"DRY RUN: Would write {path}")
            return
        write_json(path, itinerary.to_dict())

    @staticmethod
    def apply_upload_results(photos: list[Photo], upload_results: dict[str, UploadResult]) -> int:
        """Attach the remote asset to each matched photo and use its public id as url"""
        updated = 0
        for photo in photos:
            upload_result = upload_results.get(photo.id)
            if upload_result is None:
                logger.info(f"    No Cloudinary data found for {photo.id}")
                continue

            photo.cloudinary = upload_result.to_asset()
            # The front end builds the delivery url (with transformations) from the public id
            photo.url = upload_result.public_id
            updated += 1
            logger.debug(f"    Updated {photo.id} -> {upload_result.public_id}")
        return updated

    def backfill_itinerary(self, itinerary_dir: Path) -> UnitResult:
        """Rewrite one itinerary document with the results of its upload manifest"""
        unit = str(itinerary_dir)
        manifest_file = itinerary_dir / UPLOAD_RESULTS_FILE
        itinerary_file = itinerary_dir / f"{itinerary_dir.name}.json"

        if not manifest_file.exists():
            logger.info(f"  No {UPLOAD_RESULTS_FILE} found in {itinerary_dir}")
            return UnitResult.skipped(unit, f"no {UPLOAD_RESULTS_FILE}")

        if not itinerary_file.exists():
            logger.info(f"  No {itinerary_file.name} found in {itinerary_dir}")
            return UnitResult.skipped(unit, f"no {itinerary_file.name}")

        try:
            upload_results = load_upload_results(manifest_file)
            itinerary = Itinerary.from_dict(read_json(itinerary_file))
        except (json.JSONDecodeError, ValueError, KeyError, TypeError) as e:
            logger.error(f"  Error processing {itinerary_dir}: {e}")
            return UnitResult.failed(unit, str(e))

        logger.info(f"  Found {len(upload_results)} Cloudinary uploads for {itinerary_dir.name}")

        updated = 0
        for cluster in itinerary.photo_clusters:
            updated += self.apply_upload_results(cluster.photos, upload_results)
        updated += self.apply_upload_results(itinerary.independent_photos, upload_results)

        if updated > 0:
            self._write(itinerary_file, itinerary)
            logger.info(f"  Updated {updated} photos in {itinerary_file.name}")
        else:
            logger.info(f"  No photos updated in {itinerary_file.name}")

        return UnitResult.success(unit, updated)

    def backfill_all(self, root: Path, only: str | None = None) -> RunReport:
        """Backfill every itinerary directory of every travel (or of a single travel)"""
        travel_dirs = sorted(item for item in root.iterdir() if item.is_dir())
        logger.info(f"Found travel directories: {', '.join(d.name for d in travel_dirs)}")

        for travel_dir in travel_dirs:
            if only and travel_dir.name != only:
                continue

            logger.info(f"Processing travel: {travel_dir.name}")
            itinerary_dirs = sorted(item for item in travel_dir.iterdir() if item.is_dir())
            if not itinerary_dirs:
                logger.info(f"  No itinerary directories found in {travel_dir.name}")
                continue

            for itinerary_dir in itinerary_dirs:
                self.report.add(self.backfill_itinerary(itinerary_dir))

        return self.report

    def prune_unbackfilled(self, itinerary_file: Path) -> UnitResult:
        """
        Remove photos without a Cloudinary asset, then clusters left empty

        Used after a partial or failed upload to discard references to photos that never
        reached the remote store. The file is rewritten only if a photo was removed.
        """
        unit = str(itinerary_file)
        if not itinerary_file.exists():
            logger.error(f"File not found: {itinerary_file}")
            return UnitResult.skipped(unit, 'file not found')

        try:
            itinerary = Itinerary.from_dict(read_json(itinerary_file))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.error(f"Error processing file {itinerary_file}: {e}")
            return UnitResult.failed(unit, str(e))

        removed = 0
        for cluster in itinerary.photo_clusters:
            kept = [photo for photo in cluster.photos if photo.cloudinary]
            if len(kept) < len(cluster.photos):
                removed_here = len(cluster.photos) - len(kept)
                removed += removed_here
                logger.info(f"    Removed {removed_here} photo(s) from cluster: {cluster.interest_point_name or cluster.id}")
            cluster.photos = kept
        itinerary.photo_clusters = [cluster for cluster in itinerary.photo_clusters if cluster.photos]

        kept_independent = [photo for photo in itinerary.independent_photos if photo.cloudinary]
        if len(kept_independent) < len(itinerary.independent_photos):
            removed_here = len(itinerary.independent_photos) - len(kept_independent)
            removed += removed_here
            logger.info(f"    Removed {removed_here} independent photo(s)")
        itinerary.independent_photos = kept_independent

        if removed > 0:
            self._write(itinerary_file, itinerary)
            logger.info(f"Cleaned {removed} photo(s) from {itinerary_file.name}")
        else:
            logger.info(f"No photos to clean in {itinerary_file.name}")

        return UnitResult.success(unit, removed)
