import logging
import math
from config import CLUSTER_DISTANCE_THRESHOLD
from core.models import Photo, PhotoCluster, PhotoRecord, Position, RoutePoint
from core.normalize import normalize_date_time, parse_iso_date

logger = logging.getLogger(__name__)


def degree_distance(a: Position, b: Position) -> float:
    """Euclidean distance in degree space (not a geodesic distance)"""
    return math.sqrt((a.latitude - b.latitude) ** 2 + (a.longitude - b.longitude) ** 2)


def valid_photos(records: dict[str, PhotoRecord] | list[PhotoRecord]) -> list[Photo]:
    """Map geotagged and timestamped records to photos, sorted by capture time"""
    if isinstance(records, dict):
        records = list(records.values())

    photos = []
    for record in records:
        if not record.is_valid:
            continue
        date = normalize_date_time(record.date_time)
        if date is None or parse_iso_date(date) is None:
            logger.warning(f"Skipping {record.filename}: unparseable date '{record.date_time}'")
            continue
        try:
            position = Position(latitude=float(record.coordinates['lat']), longitude=float(record.coordinates['lng']))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping {record.filename}: malformed coordinates {record.coordinates!r} ({e})")
            continue
        photos.append(Photo(id=record.filename, url=record.filename, position=position, date=date))

    photos.sort(key=lambda p: parse_iso_date(p.date))
    return photos


class PhotoClusterer:
    """Group time-ordered photos into stops by sequential proximity"""

    def __init__(self, max_distance: float = CLUSTER_DISTANCE_THRESHOLD):
        self.max_distance = max_distance

    def cluster(self, records) -> tuple[list[PhotoCluster], list[Photo]]:
        """
        Greedy sequential clustering

        Each photo is compared with the last photo added to the current cluster (not the
        centroid). Every photo lands in exactly one cluster, so the independent photo list
        is always empty.

        Returns:
            tuple: (clusters, independent_photos)
        """
        photos = valid_photos(records)
        if not photos:
            return [], []

        clusters = []
        current = self._new_cluster(1, photos[0])

        for photo in photos[1:]:
            last_photo = current.photos[-1]
            if degree_distance(photo.position, last_photo.position) <= self.max_distance:
                current.add_photo(photo)
            else:
                clusters.append(current)
                current = self._new_cluster(len(clusters) + 1, photo)

        clusters.append(current)

        logger.debug(f"Grouped {len(photos)} photos into {len(clusters)} clusters")
        return clusters, []

    def _new_cluster(self, number: int, photo: Photo) -> PhotoCluster:
        return PhotoCluster(
            id=f"cluster-{number}",
            photos=[photo],
            position=Position(latitude=photo.position.latitude, longitude=photo.position.longitude),
        )


def generate_route_path(clusters: list[PhotoCluster]) -> list[RoutePoint]:
    """One route point per cluster, taken from the cluster's first photo"""
    path = []
    for cluster in clusters:
        if not cluster.photos:
            continue
        first_photo = cluster.photos[0]
        path.append(
            RoutePoint(
                latitude=first_photo.position.latitude,
                longitude=first_photo.position.longitude,
                date=first_photo.date,
            )
        )
    return path
