import datetime as dt
import math
from dataclasses import replace
from typing import List

from schemas import StandstillPeriod
from timeutils import to_dt

MERGE_DISTANCE_DEG = 0.005                 # centroids closer than this are one place
WINDOW_SLACK = dt.timedelta(hours=8)       # stands may straddle the requested window

COUNTRY_NAMES = {
    "Austria": "Österreich",
    "Albania": "Albanien",
    "Croatia": "Kroatien",
    "France": "Frankreich",
    "Germany": "Deutschland",
    "Greece": "Griechenland",
    "Italy": "Italien",
    "Slovenia": "Slowenien",
    "Switzerland": "Schweiz",
}


def clean_merge(periods: List[StandstillPeriod]) -> List[StandstillPeriod]:
    """
    Fold stands at (almost) the same place into the earliest one: its period
    becomes the sum, the later ones drop out. Input records are not modified.
    """
    merged = [replace(p) for p in periods]

    for i in range(len(merged)):
        for j in range(i + 1, len(merged)):
            a, b = merged[i], merged[j]
            diff = math.sqrt((a.latitude - b.latitude) ** 2 + (a.longitude - b.longitude) ** 2)
            if diff < MERGE_DISTANCE_DEG and a.period > 0 and b.period > 0:
                a.period += b.period
                b.period = 0

    return [p for p in merged if p.period > 0]


def filter_by_window(periods: List[StandstillPeriod], start, end) -> List[StandstillPeriod]:
    """Keep stands with von >= start - 8h and bis <= end + 8h (both inclusive)."""
    lower = to_dt(start) - WINDOW_SLACK
    upper = to_dt(end) + WINDOW_SLACK
    return [p for p in periods if to_dt(p.von) >= lower and to_dt(p.bis) <= upper]


def translate_country_name(name: str) -> str:
    return COUNTRY_NAMES.get(name, name)


def clean(periods: List[StandstillPeriod], start, end) -> List[StandstillPeriod]:
    """Window filter, then merge; what the map shows for [start, end]."""
    return clean_merge(filter_by_window(periods, start, end))


def apply_adjustment(period: StandstillPeriod, adjustment) -> StandstillPeriod:
    """
    Shift von/bis by a user's StandstillAdjustment (minutes). adjustment may be
    an ORM row, a dict or None.
    """
    if adjustment is None:
        return period

    if isinstance(adjustment, dict):
        start_min = adjustment.get("start_adjustment_minutes") or 0
        end_min = adjustment.get("end_adjustment_minutes") or 0
    else:
        start_min = adjustment.start_adjustment_minutes or 0
        end_min = adjustment.end_adjustment_minutes or 0

    return replace(
        period,
        von=to_dt(period.von) + dt.timedelta(minutes=start_min),
        bis=to_dt(period.bis) + dt.timedelta(minutes=end_min),
    )
