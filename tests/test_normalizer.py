"""
tests/test_normalizer.py

Unit tests for raw field parsing and record normalization. Malformed input
must always resolve to defaults, never raise.
"""

import math

import pandas as pd
import pytest

from netbench_dashboard.models import CANONICAL_COLUMNS, Quantity
from netbench_dashboard.normalizer import (
    BANDWIDTH, LATENCY, normalize_record, normalize_records, parse_quantity, parse_timestamp,
)


class TestParseQuantity:
    @pytest.mark.parametrize('text, expected', [
        ('12.3 Gb/sec', 12.3),
        ('500 Mb/s', 0.5),
        ('100 Mbps', 0.1),
        ('9.41 gbits/sec', 9.41),
    ])
    def test_bandwidth_units(self, text, expected):
        assert parse_quantity(text, BANDWIDTH).to_gbps() == pytest.approx(expected)

    @pytest.mark.parametrize('text, expected', [
        ('450 us', 450.0),
        ('2.5 ms', 2500.0),
        ('3 MS', 3000.0),
        ('87', 87.0),
    ])
    def test_latency_units(self, text, expected):
        assert parse_quantity(text, LATENCY).to_micros() == pytest.approx(expected)

    def test_unit_is_reported(self):
        assert parse_quantity('2 ms', LATENCY) == Quantity(2.0, 'ms')
        assert parse_quantity('2 us', LATENCY) == Quantity(2.0, 'us')
        assert parse_quantity('5 Mb/s', BANDWIDTH) == Quantity(5.0, 'Mb/s')

    def test_numbers_pass_through_unscaled(self):
        assert parse_quantity(7, LATENCY).to_micros() == 7.0
        assert parse_quantity(1500.5, BANDWIDTH).to_gbps() == 1500.5

    def test_first_numeric_run_wins(self):
        assert parse_quantity('latency: 1.2.3 us', LATENCY).value == pytest.approx(1.2)
        assert parse_quantity('avg 42 us (max 90 us)', LATENCY).value == 42.0

    @pytest.mark.parametrize('value', [None, '', 'n/a', 'Gb/sec', True, {'v': 1}, float('nan'), float('inf')])
    def test_unparsable_defaults_to_zero(self, value):
        assert parse_quantity(value, LATENCY).to_micros() == 0.0


class TestParseTimestamp:
    def test_iso_string_is_utc(self):
        ts = parse_timestamp('2024-06-15T10:00:00Z')
        assert ts == pd.Timestamp('2024-06-15T10:00:00Z')
        assert str(ts.tz) == 'UTC'

    def test_offset_is_converted_to_utc(self):
        assert parse_timestamp('2024-06-15T12:00:00+02:00') == pd.Timestamp('2024-06-15T10:00:00Z')

    @pytest.mark.parametrize('value', [None, '', '   ', 'not a date', True, ['2024-01-01']])
    def test_invalid_is_nat(self, value):
        assert parse_timestamp(value) is pd.NaT


class TestNormalizeRecord:
    def test_full_record(self, raw_record):
        raw = raw_record(latency='2 ms', bandwidth='900 Mb/s')
        record = normalize_record(raw)

        assert record.region == 'westeurope'
        assert record.source == 'az1'
        assert record.destination == 'az2'
        assert record.latency_us == pytest.approx(2000.0)
        assert record.bandwidth_gbps == pytest.approx(0.9)
        assert record.timestamp == pd.Timestamp('2024-06-15T10:00:00Z')
        assert record.raw is raw

    def test_missing_fields_use_defaults(self):
        record = normalize_record({})
        assert record.region == 'unknown'
        assert record.source == 'unknown'
        assert record.destination == 'unknown'
        assert record.latency_us == 0.0
        assert record.bandwidth_gbps == 0.0
        assert record.timestamp is pd.NaT

    def test_non_mapping_input_never_raises(self):
        record = normalize_record('garbage')
        assert record.region == 'unknown'
        assert record.raw == 'garbage'

    def test_intra_zone_flag(self, raw_record):
        assert normalize_record(raw_record(source='az2', destination='az2')).is_intra_zone
        assert not normalize_record(raw_record(source='az1', destination='az2')).is_intra_zone


class TestNormalizeRecords:
    def test_empty_input_gives_typed_empty_frame(self):
        df = normalize_records([])
        assert df.empty
        assert list(df.columns) == CANONICAL_COLUMNS
        assert str(df['timestamp'].dtype) == 'datetime64[ns, UTC]'

    def test_batch_is_element_wise(self, raw_record):
        raws = [raw_record(latency='1 ms'), raw_record(latency='garbage', timestamp='bad')]
        df = normalize_records(raws)

        assert len(df) == 2
        assert df['latency_us'].tolist() == [1000.0, 0.0]
        assert df['timestamp'].isna().tolist() == [False, True]
        assert df['raw'].iloc[0] is raws[0]

    def test_values_are_floats(self, raw_record):
        df = normalize_records([raw_record(latency=5, bandwidth=3)])
        assert df['latency_us'].dtype == float
        assert not math.isnan(df['bandwidth_gbps'].iloc[0])
