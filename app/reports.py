import os
import datetime as dt

import pandas as pd
import pytz
from sqlalchemy import select

import config
from models import TravelPatch, StandstillAdjustment
from timeutils import to_dt

LOCAL_TZ = pytz.timezone(config.REPORT_TIMEZONE)

TRAVEL_COLUMNS = ["title", "von", "bis", "days", "distance_km", "country", "address", "key"]


def _local(v):
    return to_dt(v).astimezone(LOCAL_TZ).strftime("%Y-%m-%d %H:%M")


def travels_to_df(travels) -> pd.DataFrame:
    """One row per travel, times in REPORT_TIMEZONE, newest first."""
    if not travels:
        return pd.DataFrame(columns=TRAVEL_COLUMNS)

    rows = []
    for t in travels:
        fs = t.farthest_standstill
        rows.append({
            "title": t.title,
            "von": _local(t.von),
            "bis": _local(t.bis),
            "days": round((to_dt(t.bis) - to_dt(t.von)).total_seconds() / 86400.0, 1),
            "distance_km": round(t.distance, 1),
            "country": fs.country,
            "address": fs.address,
            "key": fs.key,
        })
    df = pd.DataFrame(rows, columns=TRAVEL_COLUMNS)
    df.sort_values("von", ascending=False, inplace=True)
    return df


def write_csv(df: pd.DataFrame, filename: str, report_dir: str = None) -> str:
    report_dir = report_dir or config.REPORT_DIR
    os.makedirs(report_dir, exist_ok=True)
    path = os.path.join(report_dir, filename)
    df.to_csv(path, index=False)
    return path


async def export_travel_patches(db, report_dir: str = None) -> str:
    rows = (await db.execute(select(TravelPatch).order_by(TravelPatch.address_key))).scalars().all()
    df = pd.DataFrame(
        [{"address_key": r.address_key, "title": r.title, "from_date": r.from_date,
          "to_date": r.to_date, "exclude": bool(r.exclude)} for r in rows],
        columns=["address_key", "title", "from_date", "to_date", "exclude"],
    )
    return write_csv(df, "travel_patches.csv", report_dir)


async def export_standstill_adjustments(db, report_dir: str = None) -> str:
    rows = (await db.execute(select(StandstillAdjustment))).scalars().all()
    df = pd.DataFrame(
        [{"standstill_key": r.standstill_key,
          "start_adjustment_minutes": r.start_adjustment_minutes or 0,
          "end_adjustment_minutes": r.end_adjustment_minutes or 0} for r in rows],
        columns=["standstill_key", "start_adjustment_minutes", "end_adjustment_minutes"],
    )
    stamp = dt.datetime.now(LOCAL_TZ).strftime("%Y-%m-%dT%H-%M-%S")
    return write_csv(df, f"timings-export-{stamp}.csv", report_dir)
