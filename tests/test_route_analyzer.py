import pytest

from geomath import distance
from route_analyzer import analyze, make_key, period_units
from conftest import DEST, FakeGeocoder


def _stationary_run(make_position, hours, lat=45.0, lng=14.0, start=0):
    """Drive in, stand for `hours` hourly fixes, drive off."""
    trace = [make_position(start - 1, lat - 0.5, lng)]
    trace += [make_position(start + h, lat, lng) for h in range(hours + 1)]
    trace.append(make_position(start + hours + 1, lat + 0.5, lng))
    return trace


class TestDistance:
    @pytest.mark.asyncio
    async def test_empty_input(self):
        assert await analyze([]) == ([], [])

    @pytest.mark.asyncio
    async def test_running_total(self, trip_trace):
        route, _ = await analyze(trip_trace)

        assert route[0].total_distance == 0
        expected = 0.0
        for prev, cur in zip(route, route[1:]):
            expected += distance((prev.latitude, prev.longitude), (cur.latitude, cur.longitude))
            assert cur.total_distance == pytest.approx(expected)
            assert cur.total_distance >= prev.total_distance
        assert route[-1].total_distance == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_input_not_modified(self, trip_trace):
        await analyze(trip_trace)
        assert all(p.total_distance == 0 for p in trip_trace)

    @pytest.mark.asyncio
    async def test_carry_over_offsets_every_position(self, trip_trace):
        fresh, _ = await analyze(trip_trace)
        extended, _ = await analyze(trip_trace, carry_over_distance=1000.0)

        assert extended[0].total_distance == pytest.approx(1000.0)
        for a, b in zip(fresh, extended):
            assert b.total_distance == pytest.approx(a.total_distance + 1000.0)


class TestStandstills:
    @pytest.mark.asyncio
    async def test_long_stand_becomes_period(self, trip_trace, fake_geocoder):
        _, standstills = await analyze(trip_trace, 12, fake_geocoder)

        assert len(standstills) == 1
        s = standstills[0]
        assert s.von == trip_trace[10].fix_time
        assert s.bis == trip_trace[30].fix_time
        assert s.latitude == pytest.approx(DEST[0])
        assert s.longitude == pytest.approx(DEST[1])
        assert s.period == 2            # 20 h in tens of hours
        assert s.country == "Croatia"
        assert s.device_id == 7
        assert fake_geocoder.calls == [(s.latitude, s.longitude)]

    @pytest.mark.asyncio
    async def test_short_stand_is_ignored(self, make_position, fake_geocoder):
        _, standstills = await analyze(_stationary_run(make_position, 6), 12, fake_geocoder)
        assert standstills == []
        assert fake_geocoder.calls == []

    @pytest.mark.asyncio
    async def test_threshold_is_configurable(self, make_position):
        _, standstills = await analyze(_stationary_run(make_position, 6), 5)
        assert len(standstills) == 1

    @pytest.mark.asyncio
    async def test_stand_at_end_of_batch_is_not_closed(self, make_position):
        trace = [make_position(0, 44.5, 14.0)] + [make_position(h, 45.0, 14.0) for h in range(1, 30)]
        _, standstills = await analyze(trace, 12)
        assert standstills == []

    @pytest.mark.asyncio
    async def test_two_stands(self, make_position):
        trace = _stationary_run(make_position, 14, lat=45.0, start=0)
        trace += _stationary_run(make_position, 14, lat=47.0, start=20)
        _, standstills = await analyze(trace, 12)
        assert [round(s.latitude) for s in standstills] == [45, 47]

    @pytest.mark.asyncio
    async def test_geocoder_failure_keeps_record(self, trip_trace):
        _, standstills = await analyze(trip_trace, 12, FakeGeocoder(fail=True))

        assert len(standstills) == 1
        s = standstills[0]
        assert s.country == "Unknown"
        assert s.address == f"{s.latitude:.6f}, {s.longitude:.6f}"

    @pytest.mark.asyncio
    async def test_no_geocoder_gives_placeholder(self, trip_trace):
        _, standstills = await analyze(trip_trace, 12)
        assert standstills[0].country == "Unknown"


class TestKey:
    def test_deterministic(self):
        assert make_key(45.123456789, 14.987654321) == make_key(45.123456789, 14.987654321)

    def test_format(self):
        assert make_key(45.123456789, 14.987654321) == "marker451234149876"

    def test_negative_coordinates(self):
        assert make_key(-33.8688197, -151.2092955) == "markerM33868M15120"

    def test_integral_coordinates(self):
        assert make_key(45.0, 14.0) == "marker4514"

    def test_period_units_rounds_half_up(self):
        assert period_units(20 * 3600) == 2
        assert period_units(15 * 3600) == 2
        assert period_units(14 * 3600) == 1
