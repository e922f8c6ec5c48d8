"""
In-memory records passed between the Traccar client, the analyzers and the API.

Field names are snake_case in Python; ``to_dict`` renders the camelCase shape
Traccar uses so the JSON served by the API looks like the upstream payloads.
"""
import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from timeutils import to_dt, to_iso


@dataclass
class Position:
    """A GPS fix. total_distance is filled in by the route analyzer (km)."""

    id: int
    device_id: int
    fix_time: dt.datetime
    latitude: float
    longitude: float
    altitude: float = 0.0
    speed: float = 0.0
    attributes: Dict[str, Any] = field(default_factory=dict)
    total_distance: float = 0.0

    @classmethod
    def from_traccar(cls, p: dict) -> "Position":
        return cls(
            id=int(p["id"]),
            device_id=int(p["deviceId"]),
            fix_time=to_dt(p["fixTime"]),
            latitude=float(p["latitude"]),
            longitude=float(p["longitude"]),
            altitude=float(p.get("altitude") or 0.0),
            speed=float(p.get("speed") or 0.0),
            attributes=p.get("attributes") or {},
            total_distance=float(p.get("totalDistance") or 0.0),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "deviceId": self.device_id,
            "fixTime": to_iso(self.fix_time),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
            "speed": self.speed,
            "totalDistance": self.total_distance,
            "attributes": self.attributes,
        }


@dataclass
class StandstillPeriod:
    device_id: int
    von: dt.datetime
    bis: dt.datetime
    period: float
    country: str
    address: str
    latitude: float
    longitude: float
    key: str

    def to_dict(self) -> dict:
        return {
            "deviceId": self.device_id,
            "von": to_iso(self.von),
            "bis": to_iso(self.bis),
            "period": self.period,
            "country": self.country,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "key": self.key,
        }


@dataclass(frozen=True)
class GeofenceEvent:
    id: int
    type: str
    geofence_id: Optional[int]
    server_time: Optional[dt.datetime]
    device_id: Optional[int] = None

    @classmethod
    def from_traccar(cls, e: dict) -> "GeofenceEvent":
        # Traccar's event report carries eventTime; serverTime wins when present
        return cls(
            id=int(e.get("id") or 0),
            type=e.get("type", ""),
            geofence_id=e.get("geofenceId"),
            server_time=to_dt(e.get("serverTime") or e.get("eventTime")),
            device_id=e.get("deviceId"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "geofenceId": self.geofence_id,
            "serverTime": to_iso(self.server_time) if self.server_time else None,
            "deviceId": self.device_id,
        }


@dataclass(frozen=True)
class FarthestStandstill:
    key: str
    distance: float
    address: str
    country: str


@dataclass(frozen=True)
class Travel:
    title: str
    von: dt.datetime
    bis: dt.datetime
    distance: float
    farthest_standstill: FarthestStandstill

    def to_dict(self) -> dict:
        fs = self.farthest_standstill
        return {
            "title": self.title,
            "von": to_iso(self.von),
            "bis": to_iso(self.bis),
            "distance": self.distance,
            "farthestStandstill": {
                "key": fs.key,
                "distance": fs.distance,
                "address": fs.address,
                "country": fs.country,
            },
        }


@dataclass(frozen=True)
class MapBounds:
    min_lat: float = 0.0
    max_lat: float = 0.0
    min_lng: float = 0.0
    max_lng: float = 0.0

    def to_dict(self) -> dict:
        return {"minLat": self.min_lat, "maxLat": self.max_lat,
                "minLng": self.min_lng, "maxLng": self.max_lng}


@dataclass(frozen=True)
class MapCenter:
    lat: float = 0.0
    lng: float = 0.0

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}
