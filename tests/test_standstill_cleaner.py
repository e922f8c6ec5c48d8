import datetime as dt

from standstill_cleaner import (
    apply_adjustment,
    clean,
    clean_merge,
    filter_by_window,
    translate_country_name,
)
from conftest import T0


class TestCleanMerge:
    def test_nearby_stands_fold_into_first(self, make_standstill):
        first = make_standstill(45.0, 14.0, 0, 20, period=2, key="a")
        second = make_standstill(45.001, 14.001, 100, 130, period=3, key="b")

        merged = clean_merge([first, second])

        assert len(merged) == 1
        assert merged[0].key == "a"
        assert merged[0].period == 5

    def test_input_untouched(self, make_standstill):
        first = make_standstill(45.0, 14.0, period=2)
        second = make_standstill(45.001, 14.0, period=3)
        clean_merge([first, second])
        assert (first.period, second.period) == (2, 3)

    def test_distant_stands_kept(self, make_standstill):
        periods = [make_standstill(45.0, 14.0), make_standstill(45.1, 14.0)]
        assert len(clean_merge(periods)) == 2

    def test_just_outside_merge_distance(self, make_standstill):
        periods = [make_standstill(45.0, 14.0, period=1), make_standstill(45.01, 14.0, period=1)]
        assert [p.period for p in clean_merge(periods)] == [1, 1]

    def test_chain_merge_is_idempotent(self, make_standstill):
        # A-B and B-C are within merge distance, A-C is not
        chain = [
            make_standstill(45.0, 14.0, period=1, key="a"),
            make_standstill(45.004, 14.0, period=1, key="b"),
            make_standstill(45.008, 14.0, period=1, key="c"),
        ]
        once = clean_merge(chain)

        assert [(p.key, p.period) for p in once] == [("a", 2), ("c", 1)]
        assert clean_merge(once) == once

    def test_zero_period_dropped(self, make_standstill):
        periods = [make_standstill(45.0, 14.0, period=0), make_standstill(46.0, 14.0, period=1)]
        assert [p.latitude for p in clean_merge(periods)] == [46.0]

    def test_zero_period_does_not_absorb_neighbour(self, make_standstill):
        periods = [make_standstill(45.0, 14.0, period=0), make_standstill(45.001, 14.0, period=2)]
        merged = clean_merge(periods)
        assert len(merged) == 1
        assert merged[0].period == 2

    def test_three_way_merge(self, make_standstill):
        periods = [
            make_standstill(45.0, 14.0, period=1),
            make_standstill(45.002, 14.0, period=1),
            make_standstill(45.004, 14.0, period=1),
        ]
        merged = clean_merge(periods)
        assert len(merged) == 1
        assert merged[0].period == 3

    def test_empty(self):
        assert clean_merge([]) == []


class TestWindow:
    def test_slack_is_inclusive(self, make_standstill):
        start, end = T0 + dt.timedelta(hours=8), T0 + dt.timedelta(hours=100)
        on_edge = make_standstill(45.0, 14.0, von_hours=0, bis_hours=108)
        assert filter_by_window([on_edge], start, end) == [on_edge]

    def test_outside_window(self, make_standstill):
        start, end = T0 + dt.timedelta(hours=9), T0 + dt.timedelta(hours=100)
        too_early = make_standstill(45.0, 14.0, von_hours=0, bis_hours=20)
        too_late = make_standstill(46.0, 14.0, von_hours=90, bis_hours=109)
        assert filter_by_window([too_early, too_late], start, end) == []

    def test_accepts_iso_strings(self, make_standstill):
        inside = make_standstill(45.0, 14.0, von_hours=10, bis_hours=30)
        assert filter_by_window([inside], "2024-05-01T00:00:00Z", "2024-05-03T00:00:00Z") == [inside]

    def test_clean_filters_then_merges(self, make_standstill):
        periods = [
            make_standstill(45.0, 14.0, von_hours=0, bis_hours=20, period=2),
            make_standstill(45.001, 14.0, von_hours=40, bis_hours=60, period=2),
            make_standstill(50.0, 10.0, von_hours=500, bis_hours=520, period=2),
        ]
        cleaned = clean(periods, T0, T0 + dt.timedelta(hours=100))
        assert len(cleaned) == 1
        assert cleaned[0].period == 4


class TestCountryNames:
    def test_known(self):
        assert translate_country_name("Croatia") == "Kroatien"
        assert translate_country_name("Switzerland") == "Schweiz"

    def test_unknown_passes_through(self):
        assert translate_country_name("Norway") == "Norway"


class TestAdjustment:
    def test_none_is_identity(self, make_standstill):
        s = make_standstill(45.0, 14.0)
        assert apply_adjustment(s, None) is s

    def test_dict_shifts_both_ends(self, make_standstill):
        s = make_standstill(45.0, 14.0, von_hours=0, bis_hours=20)
        adjusted = apply_adjustment(s, {"start_adjustment_minutes": -30, "end_adjustment_minutes": 45})

        assert adjusted.von == T0 - dt.timedelta(minutes=30)
        assert adjusted.bis == T0 + dt.timedelta(hours=20, minutes=45)
        assert s.von == T0

    def test_missing_values_default_to_zero(self, make_standstill):
        s = make_standstill(45.0, 14.0)
        adjusted = apply_adjustment(s, {"start_adjustment_minutes": None})
        assert (adjusted.von, adjusted.bis) == (s.von, s.bis)
