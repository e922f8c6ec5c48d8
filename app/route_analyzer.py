# app/route_analyzer.py
import math
from dataclasses import replace
from typing import List, Optional, Tuple

from geomath import distance, time_diff_seconds
from geocoder import placeholder
from schemas import Position, StandstillPeriod
from logging_config import get_logger

logger = get_logger("route_analyzer", "route_analyzer.log")


# ----- thresholds (tweakable) -----
MOVING_DISTANCE_KM = 0.1      # a step shorter than this counts as standing still
STAND_PERIOD_HOURS = 12       # minimum stand length to become a StandstillPeriod


# =====================================================================
# Helpers
# =====================================================================
def _num_str(x: float) -> str:
    # integral floats render without ".0" so keys stay stable across clients
    s = repr(float(x))
    return s[:-2] if s.endswith(".0") else s


def make_key(lat: float, lng: float) -> str:
    """
    Natural identifier of a standstill location: the first 7 characters of each
    centroid coordinate, dots removed, minus signs written as "M".
    """
    raw = f"marker{_num_str(lat)[:7]}{_num_str(lng)[:7]}"
    return raw.replace(".", "").replace("-", "M")


def period_units(seconds: float) -> int:
    """Stand length in tens of hours, rounded half up."""
    return int(math.floor(seconds / 3600.0 / 10.0 + 0.5))


async def _locate(geocoder, lat: float, lng: float) -> dict:
    if geocoder is None:
        return placeholder(lat, lng)
    try:
        return await geocoder.geocode(lat, lng)
    except Exception as e:
        # one bad lookup must not cost the whole scan
        logger.exception(f"Geocoder failed for {lat:.6f},{lng:.6f}: {e}")
        return placeholder(lat, lng)


# =====================================================================
# Route scan: cumulative distance + standstill detection
# =====================================================================
async def analyze(
    positions: List[Position],
    stand_period_hours: float = STAND_PERIOD_HOURS,
    geocoder=None,
    carry_over_distance: Optional[float] = None,
) -> Tuple[List[Position], List[StandstillPeriod]]:
    """
    Single forward scan over time-ordered fixes of one device.

    Returns copies of the positions stamped with total_distance (km, offset by
    carry_over_distance when extending a cached route) and the standstill
    periods longer than stand_period_hours.
    """
    if not positions:
        return [], []

    route = [replace(p, total_distance=0.0) for p in positions]
    standstills: List[StandstillPeriod] = []

    total = 0.0
    samples = []            # (lat, lng) of stationary fixes since the stand began
    stop: Optional[Position] = None
    standstill = False

    for i in range(len(route) - 1):
        cur, nxt = route[i], route[i + 1]
        d = distance((cur.latitude, cur.longitude), (nxt.latitude, nxt.longitude))
        total += d
        nxt.total_distance = total

        if d < MOVING_DISTANCE_KM:
            if not standstill:
                standstill = True
                stop = cur
            samples.append((cur.latitude, cur.longitude))
            continue

        # moving
        if not standstill:
            continue

        standstill = False
        elapsed = time_diff_seconds(stop.fix_time, cur.fix_time)

        if elapsed > stand_period_hours * 3600.0:
            plat = sum(s[0] for s in samples) / len(samples)
            plng = sum(s[1] for s in samples) / len(samples)
            location = await _locate(geocoder, plat, plng)

            period = StandstillPeriod(
                device_id=cur.device_id,
                von=stop.fix_time,
                bis=cur.fix_time,
                period=period_units(elapsed),
                country=location["country"],
                address=location["address"],
                latitude=plat,
                longitude=plng,
                key=make_key(plat, plng),
            )
            standstills.append(period)
            logger.info(
                f"[stand] device={period.device_id} {period.von} → {period.bis} "
                f"({elapsed / 3600:.1f}h) at {period.address}"
            )

        samples = []

    route[-1].total_distance = total

    if carry_over_distance:
        for p in route:
            p.total_distance += carry_over_distance

    logger.info(
        f"Analyzed {len(route)} positions: {total:.1f} km, {len(standstills)} standstills"
    )
    return route, standstills
