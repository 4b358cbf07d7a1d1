"""
tests/test_filters.py

Unit tests for the filter engine: membership filters, time windows,
order preservation and idempotence.
"""

import pandas as pd
import pytest

from netbench_dashboard.filters import apply_filters, filter_options, window_cutoff
from netbench_dashboard.models import FilterCriteria, TimeWindow, empty_frame


def _regions(df):
    return df['region'].tolist()


class TestWindowCutoff:
    def test_bounded_windows(self, now):
        assert window_cutoff(TimeWindow.LAST_72_HOURS, now) == now - pd.Timedelta(hours=72)
        assert window_cutoff(TimeWindow.LAST_7_DAYS, now) == now - pd.Timedelta(days=7)
        assert window_cutoff(TimeWindow.LAST_30_DAYS, now) == now - pd.Timedelta(days=30)

    def test_all_time_has_no_cutoff(self, now):
        assert window_cutoff(TimeWindow.ALL_TIME, now) is None


class TestApplyFilters:
    def test_empty_selection_means_no_restriction(self, sample_frame, now):
        result = apply_filters(sample_frame, FilterCriteria(window=TimeWindow.ALL_TIME), now=now)
        assert len(result) == len(sample_frame)

    def test_region_membership(self, sample_frame, now):
        criteria = FilterCriteria(regions=frozenset({'westeurope'}), window=TimeWindow.ALL_TIME)
        assert _regions(apply_filters(sample_frame, criteria, now=now)) == ['westeurope', 'westeurope']

    def test_source_and_destination_are_conjunctive(self, sample_frame, now):
        criteria = FilterCriteria(
            sources=frozenset({'az1'}),
            destinations=frozenset({'az2'}),
            window=TimeWindow.ALL_TIME,
        )
        result = apply_filters(sample_frame, criteria, now=now)
        assert list(zip(result['source'], result['destination'])) == [('az1', 'az2')]

    @pytest.mark.parametrize('window, expected', [
        (TimeWindow.LAST_72_HOURS, ['westeurope', 'westeurope']),
        (TimeWindow.LAST_7_DAYS, ['westeurope', 'westeurope', 'eastasia']),
        (TimeWindow.LAST_30_DAYS, ['westeurope', 'westeurope', 'eastasia']),
        (TimeWindow.ALL_TIME, ['westeurope', 'westeurope', 'eastasia', 'francecentral']),
    ])
    def test_time_windows(self, sample_frame, now, window, expected):
        assert _regions(apply_filters(sample_frame, FilterCriteria(window=window), now=now)) == expected

    def test_cutoff_is_inclusive(self, records, now):
        df = records(dict(timestamp=(now - pd.Timedelta(hours=72)).isoformat()))
        assert len(apply_filters(df, FilterCriteria(window=TimeWindow.LAST_72_HOURS), now=now)) == 1

    def test_undated_records_only_pass_all_time(self, records, now):
        df = records(dict(timestamp='garbage'))
        assert apply_filters(df, FilterCriteria(window=TimeWindow.LAST_30_DAYS), now=now).empty
        assert len(apply_filters(df, FilterCriteria(window=TimeWindow.ALL_TIME), now=now)) == 1

    def test_order_is_preserved(self, sample_frame, now):
        criteria = FilterCriteria(regions=frozenset({'eastasia', 'westeurope'}), window=TimeWindow.ALL_TIME)
        result = apply_filters(sample_frame, criteria, now=now)
        assert list(result.index) == sorted(result.index)

    @pytest.mark.parametrize('criteria', [
        FilterCriteria(),
        FilterCriteria(regions=frozenset({'westeurope'}), window=TimeWindow.LAST_72_HOURS),
        FilterCriteria(sources=frozenset({'az2', 'az3'}), window=TimeWindow.ALL_TIME),
        FilterCriteria(destinations=frozenset({'nowhere'}), window=TimeWindow.LAST_30_DAYS),
    ])
    def test_idempotent(self, sample_frame, now, criteria):
        once = apply_filters(sample_frame, criteria, now=now)
        twice = apply_filters(once, criteria, now=now)
        pd.testing.assert_frame_equal(once, twice)

    def test_empty_frame(self, now):
        assert apply_filters(empty_frame(), FilterCriteria(), now=now).empty


class TestFilterCriteria:
    def test_from_selection_treats_none_as_empty(self):
        criteria = FilterCriteria.from_selection(None, ['az1'], None, '72h')
        assert criteria.regions == frozenset()
        assert criteria.sources == frozenset({'az1'})
        assert criteria.window is TimeWindow.LAST_72_HOURS

    def test_unknown_window_is_rejected(self):
        with pytest.raises(ValueError):
            FilterCriteria.from_selection(window='1y')


class TestFilterOptions:
    def test_sorted_distinct_values(self, sample_frame):
        options = filter_options(sample_frame)
        assert options['regions'] == ['eastasia', 'francecentral', 'westeurope']
        assert options['sources'] == ['az1', 'az2', 'az3']
        assert options['destinations'] == ['az1', 'az2', 'az3']

    def test_empty(self):
        assert filter_options(empty_frame()) == {'regions': [], 'sources': [], 'destinations': []}
