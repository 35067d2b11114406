"""Typed documents for the travel data pipeline.

Every document keeps the camelCase keys the static front end reads. JSON keys
that a document does not know about are kept in ``extra`` and written back
unchanged, so hand edits made to generated files survive a backfill or prune.
"""

from dataclasses import dataclass, field
from typing import Any


def _split_extra(data: dict, known_keys: tuple[str, ...]) -> dict:
    """Return the keys of ``data`` that are not part of the fixed schema"""
    return {key: value for key, value in data.items() if key not in known_keys}


@dataclass
class Position:
    _KEYS = ('latitude', 'longitude')

    latitude: float
    longitude: float
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'Position':
        return cls(latitude=data['latitude'], longitude=data['longitude'], extra=_split_extra(data, cls._KEYS))

    def to_dict(self) -> dict:
        result = {'latitude': self.latitude, 'longitude': self.longitude}
        result.update(self.extra)
        return result


@dataclass
class RoutePoint:
    _KEYS = ('latitude', 'longitude', 'date')

    latitude: float
    longitude: float
    date: str | None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'RoutePoint':
        return cls(
            latitude=data['latitude'],
            longitude=data['longitude'],
            date=data.get('date'),
            extra=_split_extra(data, cls._KEYS),
        )

    def to_dict(self) -> dict:
        result = {'latitude': self.latitude, 'longitude': self.longitude, 'date': self.date}
        result.update(self.extra)
        return result


@dataclass
class PhotoRecord:
    """One entry of a ``<dir>-metadata.json`` sidecar"""

    filename: str
    coordinates: dict | None = None  # {'lat': float, 'lng': float}
    date_time: str | None = None  # EXIF format, YYYY:MM:DD HH:MM:SS
    type: str = 'image'

    @property
    def is_valid(self) -> bool:
        """Geotagged and timestamped"""
        return bool(self.coordinates) and bool(self.date_time)

    @classmethod
    def from_dict(cls, data: dict) -> 'PhotoRecord':
        return cls(
            filename=data['filename'],
            coordinates=data.get('coordinates'),
            date_time=data.get('dateTime'),
            type=data.get('type', 'image'),
        )

    def to_dict(self) -> dict:
        return {
            'filename': self.filename,
            'coordinates': self.coordinates,
            'dateTime': self.date_time,
            'type': self.type,
        }


@dataclass
class CloudinaryAsset:
    secure_url: str
    optimized_url: str
    thumbnail_url: str
    public_id: str

    @classmethod
    def from_dict(cls, data: dict) -> 'CloudinaryAsset':
        return cls(
            secure_url=data['secure_url'],
            optimized_url=data['optimized_url'],
            thumbnail_url=data['thumbnail_url'],
            public_id=data['public_id'],
        )

    def to_dict(self) -> dict:
        return {
            'secure_url': self.secure_url,
            'optimized_url': self.optimized_url,
            'thumbnail_url': self.thumbnail_url,
            'public_id': self.public_id,
        }


@dataclass
class Photo:
    _KEYS = ('id', 'url', 'position', 'date', 'description', 'cloudinary')

    id: str
    url: str
    position: Position
    date: str
    description: str = ''
    cloudinary: CloudinaryAsset | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'Photo':
        cloudinary = data.get('cloudinary')
        return cls(
            id=data['id'],
            url=data.get('url', data['id']),
            position=Position.from_dict(data['position']),
            date=data['date'],
            description=data.get('description', ''),
            cloudinary=CloudinaryAsset.from_dict(cloudinary) if cloudinary else None,
            extra=_split_extra(data, cls._KEYS),
        )

    def to_dict(self) -> dict:
        result = {
            'id': self.id,
            'url': self.url,
            'position': self.position.to_dict(),
            'date': self.date,
            'description': self.description,
        }
        if self.cloudinary:
            result['cloudinary'] = self.cloudinary.to_dict()
        result.update(self.extra)
        return result


@dataclass
class PhotoCluster:
    _KEYS = ('id', 'photos', 'position', 'interestPointName', 'description')

    id: str
    photos: list[Photo]
    position: Position | None = None
    interest_point_name: str | None = None
    description: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def add_photo(self, photo: Photo) -> None:
        """Append a photo and move the centroid to the mean of all members"""
        self.photos.append(photo)
        self.position = Position(
            latitude=sum(p.position.latitude for p in self.photos) / len(self.photos),
            longitude=sum(p.position.longitude for p in self.photos) / len(self.photos),
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'PhotoCluster':
        position = data.get('position')
        return cls(
            id=data['id'],
            photos=[Photo.from_dict(p) for p in data.get('photos', [])],
            position=Position.from_dict(position) if position else None,
            interest_point_name=data.get('interestPointName'),
            description=data.get('description'),
            extra=_split_extra(data, cls._KEYS),
        )

    def to_dict(self) -> dict:
        result = {'id': self.id, 'photos': [p.to_dict() for p in self.photos]}
        if self.position:
            result['position'] = self.position.to_dict()
        if self.interest_point_name is not None:
            result['interestPointName'] = self.interest_point_name
        if self.description is not None:
            result['description'] = self.description
        result.update(self.extra)
        return result


@dataclass
class Route:
    _KEYS = ('start', 'end', 'path')

    start: Position
    end: Position
    path: list[RoutePoint] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'Route':
        return cls(
            start=Position.from_dict(data['start']),
            end=Position.from_dict(data['end']),
            path=[RoutePoint.from_dict(p) for p in data.get('path') or []],
            extra=_split_extra(data, cls._KEYS),
        )

    def to_dict(self) -> dict:
        result = {
            'start': self.start.to_dict(),
            'end': self.end.to_dict(),
            'path': [p.to_dict() for p in self.path],
        }
        result.update(self.extra)
        return result


@dataclass
class Itinerary:
    _KEYS = ('id', 'name', 'route', 'startDate', 'endDate', 'photoClusters', 'independentPhotos', 'description')

    id: str
    name: str | None
    route: Route
    start_date: str
    end_date: str | None
    photo_clusters: list[PhotoCluster] = field(default_factory=list)
    # Outlier detection is not implemented; kept for schema compatibility and always empty when generated
    independent_photos: list[Photo] = field(default_factory=list)
    description: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def all_photos(self) -> list[Photo]:
        photos = [photo for cluster in self.photo_clusters for photo in cluster.photos]
        photos.extend(self.independent_photos)
        return photos

    @classmethod
    def from_dict(cls, data: dict) -> 'Itinerary':
        return cls(
            id=data['id'],
            name=data.get('name'),
            route=Route.from_dict(data['route']),
            start_date=data['startDate'],
            end_date=data.get('endDate'),
            photo_clusters=[PhotoCluster.from_dict(c) for c in data.get('photoClusters') or []],
            independent_photos=[Photo.from_dict(p) for p in data.get('independentPhotos') or []],
            description=data.get('description'),
            extra=_split_extra(data, cls._KEYS),
        )

    def to_dict(self) -> dict:
        result = {
            'id': self.id,
            'name': self.name,
            'route': self.route.to_dict(),
            'startDate': self.start_date,
            'endDate': self.end_date,
            'photoClusters': [c.to_dict() for c in self.photo_clusters],
            'independentPhotos': [p.to_dict() for p in self.independent_photos],
            'description': self.description,
        }
        result.update(self.extra)
        return result


@dataclass
class Travel:
    _KEYS = ('id', 'name', 'startDate', 'endDate', 'itineraries', 'description')

    id: str
    name: str | None
    start_date: str | None
    end_date: str | None
    # Child directory names, or embedded itineraries in single-itinerary documents
    itineraries: list[str | Itinerary] = field(default_factory=list)
    description: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def itinerary_ids(self) -> list[str]:
        return [item if isinstance(item, str) else item.id for item in self.itineraries]

    @classmethod
    def from_dict(cls, data: dict) -> 'Travel':
        itineraries = [
            item if isinstance(item, str) else Itinerary.from_dict(item) for item in data.get('itineraries') or []
        ]
        return cls(
            id=data['id'],
            name=data.get('name'),
            start_date=data.get('startDate'),
            end_date=data.get('endDate'),
            itineraries=itineraries,
            description=data.get('description'),
            extra=_split_extra(data, cls._KEYS),
        )

    def to_dict(self) -> dict:
        result = {
            'id': self.id,
            'name': self.name,
            'startDate': self.start_date,
            'endDate': self.end_date,
            'itineraries': [item if isinstance(item, str) else item.to_dict() for item in self.itineraries],
            'description': self.description,
        }
        result.update(self.extra)
        return result


@dataclass
class TravelIndexEntry:
    _KEYS = ('id', 'name', 'startDate', 'endDate', 'description', 'file', 'coverPhotoUrl')

    id: str
    name: str | None
    start_date: str | None
    end_date: str | None
    description: str | None
    file: str
    cover_photo_url: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'TravelIndexEntry':
        return cls(
            id=data['id'],
            name=data.get('name'),
            start_date=data.get('startDate'),
            end_date=data.get('endDate'),
            description=data.get('description'),
            file=data['file'],
            cover_photo_url=data.get('coverPhotoUrl'),
            extra=_split_extra(data, cls._KEYS),
        )

    def to_dict(self) -> dict:
        result = {
            'id': self.id,
            'name': self.name,
            'startDate': self.start_date,
            'endDate': self.end_date,
            'description': self.description,
            'file': self.file,
            'coverPhotoUrl': self.cover_photo_url,
        }
        result.update(self.extra)
        return result


@dataclass
class TravelIndex:
    _KEYS = ('travels',)

    travels: list[TravelIndexEntry] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def upsert(self, entry: TravelIndexEntry) -> bool:
        """
        Replace the entry with the same id in place, or append it. Returns True if replaced.

        Hand-added keys of the replaced entry are carried over unless the new entry sets them.
        """
        for i, existing in enumerate(self.travels):
            if existing.id == entry.id:
                entry.extra = {**existing.extra, **entry.extra}
                self.travels[i] = entry
                return True
        self.travels.append(entry)
        return False

    @classmethod
    def from_dict(cls, data: dict) -> 'TravelIndex':
        return cls(
            travels=[TravelIndexEntry.from_dict(t) for t in data.get('travels', [])],
            extra=_split_extra(data, cls._KEYS),
        )

    def to_dict(self) -> dict:
        result = {'travels': [t.to_dict() for t in self.travels]}
        result.update(self.extra)
        return result


@dataclass
class UploadResult:
    original_filename: str
    secure_url: str
    optimized_url: str
    thumbnail_url: str
    public_id: str
    original_size_mb: str | None = None
    cloudinary_size_kb: int | None = None
    note: str | None = None

    def to_asset(self) -> CloudinaryAsset:
        return CloudinaryAsset(
            secure_url=self.secure_url,
            optimized_url=self.optimized_url,
            thumbnail_url=self.thumbnail_url,
            public_id=self.public_id,
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'UploadResult':
        return cls(
            original_filename=data['original_filename'],
            secure_url=data['secure_url'],
            optimized_url=data.get('optimized_url') or data['secure_url'],
            thumbnail_url=data.get('thumbnail_url') or data['secure_url'],
            public_id=data['public_id'],
            original_size_mb=data.get('original_size_mb'),
            cloudinary_size_kb=data.get('cloudinary_size_kb'),
            note=data.get('note'),
        )

    def to_dict(self) -> dict:
        result = {
            'original_filename': self.original_filename,
            'original_size_mb': self.original_size_mb,
            'public_id': self.public_id,
            'secure_url': self.secure_url,
            'optimized_url': self.optimized_url,
            'thumbnail_url': self.thumbnail_url,
            'cloudinary_size_kb': self.cloudinary_size_kb,
        }
        if self.note:
            result['note'] = self.note
        return result
