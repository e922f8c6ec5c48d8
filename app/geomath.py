"""Great-circle distance and map framing helpers."""
import math

from schemas import MapBounds, MapCenter

EARTH_RADIUS_KM = 6373.0

# empirical fit of extent (km) to map zoom level
ZOOM_FACTOR   = 35.936
ZOOM_OFFSET   = 150.0
ZOOM_EXPONENT = -0.243


def distance(a, b) -> float:
    """Haversine distance in km between two (lat, lng) pairs given in degrees."""
    lat1, lon1 = math.radians(a[0]), math.radians(a[1])
    lat2, lon2 = math.radians(b[0]), math.radians(b[1])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def time_diff_seconds(a, b) -> float:
    """Signed b - a in seconds; 0 when either timestamp is missing."""
    if a is None or b is None:
        return 0
    return (b - a).total_seconds()


def bounds_of(points) -> MapBounds:
    """points: objects with latitude/longitude. Empty input gives all-zero bounds."""
    if not points:
        return MapBounds()

    lats = [p.latitude for p in points]
    lngs = [p.longitude for p in points]
    return MapBounds(min_lat=min(lats), max_lat=max(lats), min_lng=min(lngs), max_lng=max(lngs))


def center_of(bounds: MapBounds) -> MapCenter:
    return MapCenter(
        lat=(bounds.min_lat + bounds.max_lat) / 2,
        lng=(bounds.min_lng + bounds.max_lng) / 2,
    )


def zoom_for(bounds: MapBounds) -> float:
    nw = (bounds.max_lat, bounds.min_lng)
    ne = (bounds.max_lat, bounds.max_lng)
    sw = (bounds.min_lat, bounds.min_lng)

    extx = distance(nw, ne)
    exty = distance(nw, sw)
    ext = math.sqrt(extx ** 2 + exty ** 2)

    return ZOOM_FACTOR * (ext + ZOOM_OFFSET) ** ZOOM_EXPONENT
