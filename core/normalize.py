import logging
import math
from datetime import datetime
from dateutil.parser import parse as parse_date

logger = logging.getLogger(__name__)


def _tag_description(tag) -> str | None:
    """Return the human-readable description of an EXIF tag, or the tag itself if it is a plain value"""
    if tag is None:
        return None
    description = getattr(tag, 'description', tag)
    return None if description is None else str(description)


def _tag_value(tag) -> str:
    """Return the raw value of a reference tag as a string ('' when absent)"""
    if tag is None:
        return ''
    value = getattr(tag, 'value', tag)
    if isinstance(value, list | tuple):
        return ''.join(str(v) for v in value)
    return str(value)


def _parse_finite(text: str | None) -> float | None:
    try:
        number = float(text)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def normalize_coordinate(tag_latitude, tag_longitude, lat_ref=None, lng_ref=None) -> dict | None:
    """
    Convert GPS tags into signed decimal degrees

    The decimal value is read from each tag's description. Longitude is negated when the
    reference names the western hemisphere and latitude when it names the southern one,
    unless the value is already negative. Ranges are not validated.

    Returns:
        dict: {'lat': float, 'lng': float}, or None if a tag is missing or unparseable
    """
    if tag_latitude is None or tag_longitude is None:
        return None

    lat = _parse_finite(_tag_description(tag_latitude))
    lng = _parse_finite(_tag_description(tag_longitude))

    if lat is None or lng is None:
        logger.warning("GPS data found but could not be parsed from description")
        return None

    if 'W' in _tag_value(lng_ref).upper() and lng > 0:
        lng = -lng

    if 'S' in _tag_value(lat_ref).upper() and lat > 0:
        lat = -lat

    return {'lat': lat, 'lng': lng}


def normalize_date_time(exif_date_time: str | None) -> str | None:
    """
    Convert an EXIF timestamp (YYYY:MM:DD HH:MM:SS) to YYYY-MM-DDTHH:MM:SSZ

    The trailing Z is a label only: the camera's local time is kept as-is.
    """
    if not exif_date_time:
        return None

    parts = exif_date_time.strip().split(' ')
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None

    date_part, time_part = parts[0], parts[1]
    return f"{date_part.replace(':', '-')}T{time_part}Z"


def parse_iso_date(iso_date: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp for ordering comparisons"""
    if not iso_date:
        return None
    try:
        return parse_date(iso_date)
    except (ValueError, OverflowError) as e:
        logger.warning(f"Failed to parse date '{iso_date}': {e}")
        return None


def humanize_name(directory_name: str) -> str:
    """Turn a directory name like 'usa_2025' into a display name like 'Usa 2025'"""
    name = directory_name.replace('_', ' ')
    return name[:1].upper() + name[1:]
