"""Trace → standstills → cleaned map markers → travels, without the HTTP layer."""

import pytest

from route_analyzer import analyze
from standstill_cleaner import clean
from travel_analyzer import GEOFENCE_ENTER, GEOFENCE_EXIT, TravelAnalyzer, TravelSettings
from conftest import HOME


@pytest.mark.asyncio
async def test_round_trip_becomes_one_travel(trip_trace, make_event, fake_geocoder):
    route, standstills = await analyze(trip_trace, 12, fake_geocoder)

    assert route[-1].total_distance == pytest.approx(600.0, abs=5.0)
    assert len(clean(standstills, route[0].fix_time, route[-1].fix_time)) == 1

    settings = TravelSettings(home_geofence_id=1, event_min_gap=60, min_days=2, max_days=170,
                              home_latitude=HOME[0], home_longitude=HOME[1])
    events = [make_event(GEOFENCE_EXIT, -12), make_event(GEOFENCE_ENTER, 60)]
    travels = TravelAnalyzer(settings).analyze_travels(events, standstills)

    assert len(travels) == 1
    assert travels[0].distance == pytest.approx(300.0, abs=1.0)
    assert travels[0].farthest_standstill.key == standstills[0].key
