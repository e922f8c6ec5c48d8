from typing import List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

import models
from schemas import Position, StandstillPeriod
from timeutils import to_dt
from logging_config import get_logger

logger = get_logger("route_cache", "route_cache.log")


def _to_position(row: models.RoutePosition) -> Position:
    return Position(
        id=row.id,
        device_id=row.device_id,
        fix_time=to_dt(row.fix_time),
        latitude=row.latitude,
        longitude=row.longitude,
        altitude=row.altitude,
        speed=row.speed,
        attributes=row.attributes or {},
        total_distance=row.total_distance,
    )


def _to_standstill(row: models.StandstillPeriod) -> StandstillPeriod:
    return StandstillPeriod(
        device_id=row.device_id,
        von=to_dt(row.von),
        bis=to_dt(row.bis),
        period=row.period,
        country=row.country,
        address=row.address,
        latitude=row.latitude,
        longitude=row.longitude,
        key=row.key,
    )


class RouteCache:
    """
    Per-device store of analyzed positions and standstill periods.
    Works on an injected session; one writer per device is assumed
    (see route_service.device_lock).
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def has_cached_data(self, device_id: int) -> bool:
        count = await self.db.scalar(
            select(func.count()).select_from(models.RoutePosition)
            .where(models.RoutePosition.device_id == device_id)
        )
        return bool(count)

    async def get_route_positions(self, device_id: int, start=None, end=None) -> List[Position]:
        q = select(models.RoutePosition).where(models.RoutePosition.device_id == device_id)
        if start is not None:
            q = q.where(models.RoutePosition.fix_time >= to_dt(start))
        if end is not None:
            q = q.where(models.RoutePosition.fix_time <= to_dt(end))
        q = q.order_by(models.RoutePosition.fix_time.asc(), models.RoutePosition.id.asc())

        rows = (await self.db.execute(q)).scalars().all()
        return [_to_position(r) for r in rows]

    async def get_last_position(self, device_id: int) -> Optional[Position]:
        row = (await self.db.execute(
            select(models.RoutePosition)
            .where(models.RoutePosition.device_id == device_id)
            .order_by(models.RoutePosition.fix_time.desc(), models.RoutePosition.id.desc())
            .limit(1)
        )).scalar_one_or_none()
        return _to_position(row) if row else None

    async def get_standstills(self, device_id: int) -> List[StandstillPeriod]:
        rows = (await self.db.execute(
            select(models.StandstillPeriod)
            .where(models.StandstillPeriod.device_id == device_id)
            .order_by(models.StandstillPeriod.von.asc())
        )).scalars().all()
        return [_to_standstill(r) for r in rows]

    async def upsert_positions(self, positions: List[Position], device_id: int) -> None:
        if not positions:
            return

        stmt = sqlite_insert(models.RoutePosition.__table__)
        stmt = stmt.on_conflict_do_update(
            index_elements=["device_id", "id"],
            set_={
                "fix_time": stmt.excluded.fix_time,
                "latitude": stmt.excluded.latitude,
                "longitude": stmt.excluded.longitude,
                "altitude": stmt.excluded.altitude,
                "speed": stmt.excluded.speed,
                "total_distance": stmt.excluded.total_distance,
                "attributes": stmt.excluded.attributes,
            },
        )
        await self.db.execute(stmt, [
            {
                "device_id": device_id,
                "id": p.id,
                "fix_time": to_dt(p.fix_time),
                "latitude": p.latitude,
                "longitude": p.longitude,
                "altitude": p.altitude,
                "speed": p.speed,
                "total_distance": p.total_distance,
                "attributes": p.attributes or {},
            }
            for p in positions
        ])
        await self.db.commit()
        logger.info(f"Upserted {len(positions)} positions for device {device_id}")

    async def upsert_standstills(self, periods: List[StandstillPeriod], device_id: int) -> None:
        if not periods:
            return

        stmt = sqlite_insert(models.StandstillPeriod.__table__)
        stmt = stmt.on_conflict_do_update(
            index_elements=["device_id", "key"],
            set_={
                "von": stmt.excluded.von,
                "bis": stmt.excluded.bis,
                "period": stmt.excluded.period,
                "country": stmt.excluded.country,
                "address": stmt.excluded.address,
                "latitude": stmt.excluded.latitude,
                "longitude": stmt.excluded.longitude,
            },
        )
        await self.db.execute(stmt, [
            {
                "device_id": device_id,
                "von": to_dt(p.von),
                "bis": to_dt(p.bis),
                "period": p.period,
                "country": p.country,
                "address": p.address,
                "latitude": p.latitude,
                "longitude": p.longitude,
                "key": p.key,
            }
            for p in periods
        ])
        await self.db.commit()
        logger.info(f"Upserted {len(periods)} standstills for device {device_id}")

    async def clear(self, device_id: int) -> None:
        await self.db.execute(delete(models.RoutePosition).where(models.RoutePosition.device_id == device_id))
        await self.db.execute(delete(models.StandstillPeriod).where(models.StandstillPeriod.device_id == device_id))
        await self.db.commit()
        logger.info(f"Cache cleared for device {device_id}")
