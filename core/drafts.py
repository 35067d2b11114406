import logging
from config import METADATA_FILE_SUFFIX, TRAVEL_FILE
from core.clustering import PhotoClusterer, generate_route_path, valid_photos
from core.metadata import load_metadata
from core.models import Itinerary, PhotoRecord, Route, Travel
from core.normalize import humanize_name, parse_iso_date
from core.report import RunReport, UnitResult
from core.travel_index import TravelIndexStore
from dataclasses import dataclass, replace
from pathlib import Path
from utils.jsonio import write_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathContext:
    """Identity of a node in the data tree, handed down instead of re-derived from path strings"""

    root: Path
    url_root: str
    travel_id: str | None = None
    itinerary_id: str | None = None

    @classmethod
    def for_root(cls, root: Path) -> 'PathContext':
        return cls(root=root, url_root=root.resolve().name)

    def travel(self, travel_id: str) -> 'PathContext':
        return replace(self, travel_id=travel_id, itinerary_id=None)

    def itinerary(self, itinerary_id: str) -> 'PathContext':
        return replace(self, itinerary_id=itinerary_id)

    @property
    def travel_dir(self) -> Path:
        return self.root / self.travel_id

    @property
    def itinerary_dir(self) -> Path:
        return self.travel_dir / self.itinerary_id

    @property
    def metadata_file(self) -> Path:
        return self.itinerary_dir / f"{self.itinerary_id}{METADATA_FILE_SUFFIX}"

    @property
    def itinerary_file(self) -> Path:
        return self.itinerary_dir / f"{self.itinerary_id}.json"

    @property
    def travel_file(self) -> Path:
        return self.travel_dir / TRAVEL_FILE

    def photo_url(self, photo_id: str) -> str:
        return f"{self.url_root}/{self.travel_id}/{self.itinerary_id}/{photo_id}"


class DraftBuilder:
    """Generate itinerary and travel drafts from metadata sidecars"""

    def __init__(
        self,
        clusterer: PhotoClusterer | None = None,
        cluster_namer=None,
        report: RunReport | None = None,
        dry_run: bool = False,
    ):
        self.clusterer = clusterer or PhotoClusterer()
        self.cluster_namer = cluster_namer
        self.report = report or RunReport('generate-drafts')
        self.dry_run = dry_run

    def _write(self, path: Path, data: dict) -> None:
        if self.dry_run:
            logger.info(f"DRY RUN: Would write {path}")
            return
        write_json(path, data)

    def build_itinerary(self, records: dict[str, PhotoRecord], context: PathContext) -> UnitResult:
        """Build and persist the itinerary of one leaf directory; skipped if it has no usable photo"""
        photos = valid_photos(records)
        if not photos:
            return UnitResult.skipped(context.itinerary_id, 'no geotagged and timestamped photos')

        first, last = photos[0], photos[-1]

        clusters, independent_photos = self.clusterer.cluster(records)
        for photo in [p for c in clusters for p in c.photos] + independent_photos:
            photo.url = context.photo_url(photo.id)

        if self.cluster_namer:
            self.cluster_namer.name_clusters(clusters)

        itinerary = Itinerary(
            id=context.itinerary_id,
            name=humanize_name(context.itinerary_id),
            route=Route(start=first.position, end=last.position, path=generate_route_path(clusters)),
            start_date=first.date,
            end_date=last.date,
            photo_clusters=clusters,
            independent_photos=independent_photos,
            description=f"Auto-generated itinerary for {context.itinerary_id}",
        )

        self._write(context.itinerary_file, itinerary.to_dict())
        logger.info(f"Created itinerary draft: {context.itinerary_file}")
        return UnitResult.success(context.itinerary_id, itinerary)

    def build_itinerary_from_directory(self, context: PathContext) -> UnitResult:
        if not context.metadata_file.exists():
            return UnitResult.skipped(context.itinerary_id, f"no {context.metadata_file.name}")

        try:
            records = load_metadata(context.metadata_file)
            return self.build_itinerary(records, context)
        except Exception as e:
            logger.error(f"Error generating itinerary draft for {context.itinerary_dir}: {e}")
            return UnitResult.failed(context.itinerary_id, str(e))

    @staticmethod
    def aggregate_dates(itineraries: list[Itinerary]) -> tuple[str | None, str | None]:
        """Travel span: earliest itinerary start and latest itinerary end (a missing end counts as its start)"""
        first = None
        last = None

        for itinerary in itineraries:
            if first is None or parse_iso_date(itinerary.start_date) < parse_iso_date(first.start_date):
                first = itinerary

            end = itinerary.end_date or itinerary.start_date
            if last is None or parse_iso_date(end) > parse_iso_date(last.end_date or last.start_date):
                last = itinerary

        start_date = first.start_date if first else None
        end_date = (last.end_date or last.start_date) if last else None
        return start_date, end_date

    def build_travel(self, context: PathContext, index_store: TravelIndexStore | None = None) -> UnitResult:
        """Build every itinerary under a travel directory and persist the travel document"""
        subdirectories = sorted(item.name for item in context.travel_dir.iterdir() if item.is_dir())
        if not subdirectories:
            return UnitResult.skipped(context.travel_id, 'no itinerary directories')

        itineraries = []
        for name in subdirectories:
            result = self.report.add(self.build_itinerary_from_directory(context.itinerary(name)))
            if result.ok:
                itineraries.append(result.value)
            else:
                logger.info(f"Skipping itinerary {context.travel_id}/{name}: {result.reason}")

        if not itineraries:
            return UnitResult.skipped(context.travel_id, 'no itineraries produced')

        start_date, end_date = self.aggregate_dates(itineraries)

        travel = Travel(
            id=context.travel_id,
            name=humanize_name(context.travel_id),
            start_date=start_date,
            end_date=end_date,
            itineraries=[itinerary.id for itinerary in itineraries],
            description=f"Auto-generated travel document for {context.travel_id}",
        )

        self._write(context.travel_file, travel.to_dict())
        logger.info(f"Created travel draft: {context.travel_file}")

        if index_store:
            self.report.add(index_store.upsert(travel, context.travel_file, itineraries))

        return UnitResult.success(context.travel_id, travel)

    def build_all(self, root: Path, only: str | None = None, index_store: TravelIndexStore | None = None) -> RunReport:
        """Generate drafts for every travel directory under the root, or just one"""
        context = PathContext.for_root(root)

        if only:
            travel_ids = [only] if (root / only).is_dir() else []
            if not travel_ids:
                logger.warning(f"Travel directory not found: {root / only}")
                self.report.add(UnitResult.skipped(only, 'directory not found'))
        else:
            travel_ids = sorted(item.name for item in root.iterdir() if item.is_dir())

        for travel_id in travel_ids:
            try:
                result = self.build_travel(context.travel(travel_id), index_store)
            except Exception as e:
                logger.error(f"Error generating travel draft for {travel_id}: {e}")
                result = UnitResult.failed(travel_id, str(e))
            self.report.add(result)

        return self.report
