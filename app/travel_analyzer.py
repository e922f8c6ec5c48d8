# app/travel_analyzer.py
import datetime as dt
from dataclasses import dataclass
from typing import List, Optional

import config
from geomath import distance
from patch_matcher import PatchMatcher
from schemas import GeofenceEvent, StandstillPeriod, Travel, FarthestStandstill
from standstill_cleaner import filter_by_window
from timeutils import to_dt, now_utc
from logging_config import get_logger

logger = get_logger("travel_analyzer", "travel.log")

GEOFENCE_ENTER = "geofenceEnter"
GEOFENCE_EXIT = "geofenceExit"

MIN_FARTHEST_KM = 1.0   # a travel whose farthest stand is this close never left home


@dataclass(frozen=True)
class TravelSettings:
    home_geofence_id: int = config.HOME_GEOFENCE_ID
    event_min_gap: float = config.EVENT_MIN_GAP      # seconds
    min_days: float = config.MIN_DAYS
    max_days: float = config.MAX_DAYS
    home_latitude: float = config.HOME_LATITUDE
    home_longitude: float = config.HOME_LONGITUDE


class TravelAnalyzer:
    """
    Detects travels (excursions away from the home geofence) from geofence
    events and standstill periods of one device, then applies user patches.

    Pure with respect to its inputs: nothing is persisted here.
    """

    def __init__(self, settings: TravelSettings = None, patches: dict = None):
        self.settings = settings or TravelSettings()
        self.matcher = PatchMatcher(patches or {})

    # =====================================================================
    # Event validation
    # =====================================================================
    def _gap_seconds(self, earlier: GeofenceEvent, later: GeofenceEvent) -> float:
        if earlier.server_time is None or later.server_time is None:
            return float("inf")
        return (later.server_time - earlier.server_time).total_seconds()

    def _is_exit_valid(self, events: List[GeofenceEvent], index: int) -> bool:
        if index <= 0:
            return True

        # a repeated exit supersedes the earlier one even inside event_min_gap,
        # so of two back-to-back exits the earlier is the one dropped
        if events[index - 1].type == GEOFENCE_EXIT:
            return True

        gap = self._gap_seconds(events[index - 1], events[index])
        if gap < self.settings.event_min_gap:
            logger.info(
                f"skip exit {index} at {events[index].server_time}, "
                f"too close to {events[index - 1].server_time}"
            )
            return False
        return True

    def _is_return_valid(self, events: List[GeofenceEvent], index: int) -> bool:
        if index >= len(events) - 1:
            return True

        gap = self._gap_seconds(events[index], events[index + 1])
        if gap < self.settings.event_min_gap:
            logger.info(
                f"skip return {index} at {events[index].server_time}, "
                f"too close to {events[index + 1].server_time}"
            )
            return False
        return True

    # =====================================================================
    # Farthest standstill
    # =====================================================================
    def _find_farthest(self, periods: List[StandstillPeriod]):
        home = (self.settings.home_latitude, self.settings.home_longitude)
        best, best_distance = None, None

        for p in periods:
            d = distance(home, (p.latitude, p.longitude))
            if best is None or d > best_distance:
                best, best_distance = p, d

        return best, best_distance

    def title_for_address(self, address: str) -> Optional[str]:
        return self.matcher.lookup(address).get("title")

    # =====================================================================
    # Build one travel
    # =====================================================================
    def _create_travel(self, exit_time, enter_time, standstills) -> Optional[Travel]:
        s = self.settings
        duration_days = (enter_time - exit_time).total_seconds() / 86400.0

        logger.info(f"Evaluating travel: {exit_time} → {enter_time} ({duration_days:.1f} days)")

        if duration_days <= s.min_days or duration_days >= s.max_days:
            logger.info(f"Travel duration {duration_days:.1f} days outside ({s.min_days}, {s.max_days})")
            return None

        candidates = filter_by_window(standstills, exit_time, enter_time)
        farthest, farthest_km = self._find_farthest(candidates)

        if farthest is None or farthest_km <= MIN_FARTHEST_KM:
            logger.info(f"No valid farthest standstill (distance: {farthest_km or 0} km)")
            return None

        travel_key = farthest.address
        logger.info(f"Farthest standstill: {travel_key} ({farthest_km:.1f} km)")

        patch = self.matcher.lookup(travel_key)
        if patch.get("exclude"):
            logger.info(f"Travel '{travel_key}' excluded by patch")
            return None

        von, bis = exit_time, enter_time
        if patch.get("from"):
            logger.info(f"Patching FROM: {von} → {patch['from']}")
            von = to_dt(patch["from"])
        if patch.get("to"):
            logger.info(f"Patching TO: {bis} → {patch['to']}")
            bis = to_dt(patch["to"])

        return Travel(
            title=patch.get("title") or travel_key,
            von=von,
            bis=bis,
            distance=farthest_km,
            farthest_standstill=FarthestStandstill(
                key=farthest.key,
                distance=farthest_km,
                address=farthest.address,
                country=farthest.country,
            ),
        )

    # =====================================================================
    # Main entry
    # =====================================================================
    def analyze_travels(
        self,
        events: List[GeofenceEvent],
        standstills: List[StandstillPeriod],
        now: Optional[dt.datetime] = None,
    ) -> List[Travel]:
        """
        Two-state scan (home / travelling) over home-geofence exit/enter events.
        An unfinished travel at the end of the stream closes at `now`.
        """
        home_events = [
            e for e in events
            if e.geofence_id == self.settings.home_geofence_id
            and e.type in (GEOFENCE_ENTER, GEOFENCE_EXIT)
            and e.server_time is not None
        ]

        travels: List[Travel] = []
        in_travel = False
        exit_time = None

        for i, event in enumerate(home_events):
            if event.type == GEOFENCE_EXIT:
                if not self._is_exit_valid(home_events, i):
                    continue
                exit_time = event.server_time
                in_travel = True

            elif event.type == GEOFENCE_ENTER and in_travel:
                if not self._is_return_valid(home_events, i):
                    continue

                travel = self._create_travel(exit_time, event.server_time, standstills)
                if travel:
                    travels.append(travel)

                in_travel = False
                exit_time = None

        if in_travel:
            end = to_dt(now) if now else now_utc()
            logger.info(f"Still in travel, exit: {exit_time}, now: {end}")
            travel = self._create_travel(exit_time, end, standstills)
            if travel:
                travels.append(travel)

        logger.info(f"Detected {len(travels)} travels")
        return travels


def analyze_travels(events, standstills, settings: TravelSettings = None, patches: dict = None, now=None):
    """Functional entry point: TravelAnalyzer(settings, patches).analyze_travels(...)."""
    return TravelAnalyzer(settings, patches).analyze_travels(events, standstills, now=now)
