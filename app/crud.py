from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from models import TravelPatch, StandstillAdjustment, ManualPOI
from timeutils import to_iso
from logging_config import get_logger

logger = get_logger("crud", "crud.log")


def _iso_or_none(v):
    return to_iso(v) if v else None


# ---------------------------------------------------
#                TRAVEL PATCHES
# ---------------------------------------------------
async def get_travel_patches(db: AsyncSession):
    rows = await db.execute(select(TravelPatch).order_by(TravelPatch.address_key.asc()))
    return rows.scalars().all()


async def get_travel_patch(db: AsyncSession, address_key: str):
    rows = await db.execute(select(TravelPatch).where(TravelPatch.address_key == address_key))
    return rows.scalar_one_or_none()


async def upsert_travel_patch(db: AsyncSession, address_key: str, title=None, from_date=None,
                              to_date=None, exclude=False):
    row = await get_travel_patch(db, address_key)
    if row:
        row.title     = title or None
        row.from_date = _iso_or_none(from_date)
        row.to_date   = _iso_or_none(to_date)
        row.exclude   = bool(exclude)
    else:
        row = TravelPatch(address_key=address_key, title=title or None,
                          from_date=_iso_or_none(from_date), to_date=_iso_or_none(to_date),
                          exclude=bool(exclude))
        db.add(row)
    await db.commit()
    logger.info(f"Saved travel patch '{address_key}' exclude={bool(exclude)}")
    return row


async def delete_travel_patch(db: AsyncSession, address_key: str) -> bool:
    result = await db.execute(delete(TravelPatch).where(TravelPatch.address_key == address_key))
    await db.commit()
    return result.rowcount > 0


async def load_patch_map(db: AsyncSession) -> dict:
    """
    address_key -> {title?, from?, to?, exclude?} with empty fields left out;
    patches carrying nothing are skipped.
    """
    patches = {}
    rows = await get_travel_patches(db)
    for row in rows:
        entry = {}
        if row.title:
            entry["title"] = row.title
        if row.from_date:
            entry["from"] = row.from_date
        if row.to_date:
            entry["to"] = row.to_date
        if row.exclude:
            entry["exclude"] = True
        if entry:
            patches[row.address_key] = entry

    logger.info(f"Loaded {len(rows)} travel patches from database")
    return patches


def travel_patch_dict(row: TravelPatch) -> dict:
    return {
        "id": row.id,
        "addressKey": row.address_key,
        "title": row.title,
        "fromDate": row.from_date,
        "toDate": row.to_date,
        "exclude": bool(row.exclude),
    }


# ---------------------------------------------------
#                STANDSTILL ADJUSTMENTS
# ---------------------------------------------------
async def get_standstill_adjustment(db: AsyncSession, standstill_key: str):
    rows = await db.execute(
        select(StandstillAdjustment).where(StandstillAdjustment.standstill_key == standstill_key)
    )
    return rows.scalar_one_or_none()


async def get_standstill_adjustments(db: AsyncSession) -> dict:
    rows = await db.execute(select(StandstillAdjustment))
    return {r.standstill_key: r for r in rows.scalars().all()}


async def upsert_standstill_adjustment(db: AsyncSession, standstill_key: str,
                                       start_minutes: int = 0, end_minutes: int = 0):
    row = await get_standstill_adjustment(db, standstill_key)
    if row:
        row.start_adjustment_minutes = int(start_minutes or 0)
        row.end_adjustment_minutes   = int(end_minutes or 0)
    else:
        row = StandstillAdjustment(standstill_key=standstill_key,
                                   start_adjustment_minutes=int(start_minutes or 0),
                                   end_adjustment_minutes=int(end_minutes or 0))
        db.add(row)
    await db.commit()
    return row


async def delete_standstill_adjustment(db: AsyncSession, standstill_key: str) -> bool:
    result = await db.execute(
        delete(StandstillAdjustment).where(StandstillAdjustment.standstill_key == standstill_key)
    )
    await db.commit()
    return result.rowcount > 0


def adjustment_dict(row) -> dict:
    return {
        "standstill_key": row.standstill_key,
        "start_adjustment_minutes": row.start_adjustment_minutes or 0,
        "end_adjustment_minutes": row.end_adjustment_minutes or 0,
    }


# ---------------------------------------------------
#                MANUAL POIS
# ---------------------------------------------------
async def get_manual_pois(db: AsyncSession, device_id: int = None):
    q = select(ManualPOI)
    if device_id is not None:
        q = q.where(ManualPOI.device_id == device_id)
    rows = await db.execute(q.order_by(ManualPOI.timestamp.desc()))
    return rows.scalars().all()


async def upsert_manual_poi(db: AsyncSession, poi_key: str, latitude: float, longitude: float,
                            timestamp, device_id: int, address=None, country=None) -> int:
    rows = await db.execute(select(ManualPOI).where(ManualPOI.poi_key == poi_key))
    row = rows.scalar_one_or_none()
    values = dict(latitude=float(latitude), longitude=float(longitude), timestamp=to_iso(timestamp),
                  device_id=int(device_id), address=address, country=country)
    if row:
        for k, v in values.items():
            setattr(row, k, v)
    else:
        row = ManualPOI(poi_key=poi_key, **values)
        db.add(row)
    await db.commit()
    await db.refresh(row)
    logger.info(f"Saved manual POI '{poi_key}' id={row.id}")
    return row.id


async def delete_manual_poi(db: AsyncSession, poi_id: int) -> bool:
    row = await db.get(ManualPOI, poi_id)
    if not row:
        return False
    await db.delete(row)
    await db.commit()
    return True


def manual_poi_dict(row: ManualPOI) -> dict:
    return {
        "id": row.id,
        "poi_key": row.poi_key,
        "latitude": row.latitude,
        "longitude": row.longitude,
        "timestamp": row.timestamp,
        "device_id": row.device_id,
        "address": row.address,
        "country": row.country,
    }
