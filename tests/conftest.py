"""Global test configuration and fixtures."""

import datetime as dt
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="traveldiary-tests-")
os.environ["LOG_DIR"] = os.path.join(_TMP, "logs")
os.environ["REPORT_DIR"] = os.path.join(_TMP, "reports")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP, 'app.db')}"
os.environ["GOOGLE_MAPS_API_KEY"] = ""
os.environ.pop("REDIS_URL", None)

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import init_models
from schemas import Position, StandstillPeriod, GeofenceEvent

UTC = dt.timezone.utc
T0 = dt.datetime(2024, 5, 1, 0, 0, tzinfo=UTC)

HOME = (48.0, 11.0)
# ~300 km due north of HOME with R = 6373 km
DEST = (48.0 + 300.0 / 111.2304, 11.0)


class FakeGeocoder:
    """Deterministic geocoder: address derived from rounded coordinates."""

    def __init__(self, country="Croatia", fail=False):
        self.country = country
        self.fail = fail
        self.calls = []

    async def geocode(self, lat, lng):
        self.calls.append((lat, lng))
        if self.fail:
            raise RuntimeError("geocoder down")
        return {"country": self.country, "address": f"Place {lat:.2f} {lng:.2f}"}


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder()


@pytest.fixture
def make_position():
    counter = {"id": 0}

    def _make(hours, lat, lng, device_id=7, source_id=None):
        counter["id"] += 1
        return Position(
            id=source_id if source_id is not None else counter["id"],
            device_id=device_id,
            fix_time=T0 + dt.timedelta(hours=hours),
            latitude=lat,
            longitude=lng,
        )

    return _make


@pytest.fixture
def trip_trace(make_position):
    """
    48 hourly fixes: drive HOME → DEST (h0-h10), stand at DEST (h10-h30),
    drive back (h31-h47).
    """
    def lat_at(h):
        if h <= 10:
            return HOME[0] + (DEST[0] - HOME[0]) * h / 10
        if h <= 30:
            return DEST[0]
        return DEST[0] - (DEST[0] - HOME[0]) * (h - 30) / 17

    return [make_position(h, lat_at(h), HOME[1]) for h in range(48)]


@pytest.fixture
def make_standstill():
    def _make(lat, lng, von_hours=0, bis_hours=20, period=2, address="Somewhere", country="Italy",
              key=None, device_id=7):
        return StandstillPeriod(
            device_id=device_id,
            von=T0 + dt.timedelta(hours=von_hours),
            bis=T0 + dt.timedelta(hours=bis_hours),
            period=period,
            country=country,
            address=address,
            latitude=lat,
            longitude=lng,
            key=key or f"k{lat}{lng}",
        )

    return _make


@pytest.fixture
def make_event():
    def _make(type_, hours, geofence_id=1, event_id=0):
        return GeofenceEvent(
            id=event_id,
            type=type_,
            geofence_id=geofence_id,
            server_time=T0 + dt.timedelta(hours=hours),
        )

    return _make


@pytest_asyncio.fixture
async def db():
    """Session on a fresh in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with Session() as session:
        yield session
    await engine.dispose()
