"""
Geographic helpers for donation pickup points.

Points are persisted as the text ``"(longitude,latitude)"``. Records whose
location does not match the pattern are skipped by callers rather than
crashing a page.
"""
import re
from dataclasses import dataclass
from enum import Enum
from math import radians, sin, cos, sqrt, atan2
from typing import Optional

from flask_babel import lazy_gettext as _l

_NUMBER = r'[-+]?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?'
POINT_PATTERN = re.compile(r'^\(\s*(' + _NUMBER + r')\s*,\s*(' + _NUMBER + r')\s*\)$')

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    @property
    def is_origin(self) -> bool:
        return self.lat == 0 and self.lng == 0

    def is_valid(self) -> bool:
        return -90 <= self.lat <= 90 and -180 <= self.lng <= 180


ORIGIN = GeoPoint(0.0, 0.0)


def _format_coordinate(value: float) -> str:
    # -0.0 + 0.0 == 0.0, so the sentinel never renders as "(-0,0)"
    text = repr(float(value) + 0.0)
    if text.endswith('.0'):
        text = text[:-2]
    return text


def format_point(point: Optional[GeoPoint]) -> str:
    """Serialize a point as ``"(lng,lat)"``; ``None`` becomes the origin sentinel."""
    if point is None:
        point = ORIGIN
    return f'({_format_coordinate(point.lng)},{_format_coordinate(point.lat)})'


def parse_point(text: Optional[str]) -> Optional[GeoPoint]:
    """Parse ``"(lng,lat)"`` into a GeoPoint, or None when malformed or out of range."""
    if not text:
        return None
    match = POINT_PATTERN.match(text.strip())
    if not match:
        return None
    lng, lat = float(match.group(1)), float(match.group(2))
    point = GeoPoint(lat=lat, lng=lng)
    if not point.is_valid():
        return None
    return point


def coerce_point(lat, lng) -> Optional[GeoPoint]:
    """Build a point from loosely typed form values; None if either is missing or invalid."""
    if lat in (None, '') or lng in (None, ''):
        return None
    try:
        point = GeoPoint(lat=float(lat), lng=float(lng))
    except (TypeError, ValueError):
        return None
    return point if point.is_valid() else None


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points using the Haversine formula."""
    lat1, lng1, lat2, lng2 = map(radians, (a.lat, a.lng, b.lat, b.lng))
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    return EARTH_RADIUS_KM * 2 * atan2(sqrt(h), sqrt(1 - h))


# ========== Browser geolocation outcome ==========

class LocationState(str, Enum):
    REQUESTING = 'requesting'
    RESOLVED = 'resolved'
    FAILED = 'failed'
    TIMED_OUT = 'timed_out'


class LocationFailure(str, Enum):
    PERMISSION_DENIED = 'permission_denied'
    POSITION_UNAVAILABLE = 'position_unavailable'
    UNSUPPORTED = 'unsupported'
    INVALID = 'invalid'


_FAILURE_MESSAGES = {
    LocationFailure.PERMISSION_DENIED: _l('Location access was denied. Please enter your address manually.'),
    LocationFailure.POSITION_UNAVAILABLE: _l('Location information is unavailable. Please enter your address manually.'),
    LocationFailure.UNSUPPORTED: _l('Geolocation is not supported by your browser. Please enter your address manually.'),
    LocationFailure.INVALID: _l('Unable to get your location. Please enter your address manually.'),
}
_TIMEOUT_MESSAGE = _l('Location request timed out. Please enter your address manually.')


class LocationLookup:
    """
    One geolocation attempt: REQUESTING -> RESOLVED(point) | FAILED(reason) | TIMED_OUT.

    Only the first outcome counts; a position that arrives after the
    timeout fired is ignored, mirroring how the browser clears its timer.
    """

    def __init__(self):
        self.state = LocationState.REQUESTING
        self.point = None
        self.failure = None

    @property
    def settled(self) -> bool:
        return self.state is not LocationState.REQUESTING

    def resolve(self, point: Optional[GeoPoint]) -> bool:
        if self.settled:
            return False
        if point is None or not point.is_valid():
            return self.fail(LocationFailure.INVALID)
        self.state = LocationState.RESOLVED
        self.point = point
        return True

    def fail(self, failure) -> bool:
        if self.settled:
            return False
        try:
            self.failure = LocationFailure(failure)
        except ValueError:
            self.failure = LocationFailure.INVALID
        self.state = LocationState.FAILED
        return True

    def time_out(self) -> bool:
        if self.settled:
            return False
        self.state = LocationState.TIMED_OUT
        return True

    @property
    def message(self):
        """Fallback hint for the pickup address field, None when resolved or still pending."""
        if self.state is LocationState.FAILED:
            return _FAILURE_MESSAGES[self.failure]
        if self.state is LocationState.TIMED_OUT:
            return _TIMEOUT_MESSAGE
        return None

    @classmethod
    def from_form(cls, state, lat=None, lng=None, failure=None):
        """Rebuild the outcome the browser reported through hidden form fields."""
        lookup = cls()
        if state == LocationState.RESOLVED.value:
            lookup.resolve(coerce_point(lat, lng))
        elif state == LocationState.FAILED.value:
            lookup.fail(failure)
        elif state == LocationState.TIMED_OUT.value:
            lookup.time_out()
        return lookup

    def __repr__(self):
        return f'<LocationLookup {self.state.value} {self.point or self.failure or ""}>'
