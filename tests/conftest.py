"""Shared fixtures: raw entity builders and canonical frames."""

import pandas as pd
import pytest

from netbench_dashboard.normalizer import normalize_records

NOW = pd.Timestamp('2024-06-15T12:00:00Z')


@pytest.fixture()
def now() -> pd.Timestamp:
    return NOW


@pytest.fixture()
def raw_record():
    """Factory for one raw telemetry entity with overridable fields."""
    def _make(region='westeurope', source='az1', destination='az2',
              latency='100 us', bandwidth='10.00 Gb/sec',
              timestamp='2024-06-15T10:00:00Z', **extra):
        record = {
            'PartitionKey': 'test-partition',
            'RowKey': region,
            'Source': source,
            'Destination': destination,
            'Bandwidth': bandwidth,
            'Latency': latency,
            'Timestamp': timestamp,
        }
        record.update(extra)
        return record
    return _make


@pytest.fixture()
def records(raw_record):
    """Factory building a canonical DataFrame from field overrides."""
    def _make(*overrides):
        return normalize_records([raw_record(**o) for o in overrides])
    return _make


@pytest.fixture()
def sample_frame(records):
    return records(
        dict(region='westeurope', source='az1', destination='az1', latency='40 us',
             bandwidth='25 Gb/sec', timestamp='2024-06-15T11:30:00Z'),
        dict(region='westeurope', source='az1', destination='az2', latency='600 us',
             bandwidth='12 Gb/sec', timestamp='2024-06-14T08:00:00Z'),
        dict(region='eastasia', source='az2', destination='az1', latency='1.5 ms',
             bandwidth='800 Mb/s', timestamp='2024-06-10T08:00:00Z'),
        dict(region='francecentral', source='az3', destination='az3', latency='700 us',
             bandwidth='20 Gb/sec', timestamp='2024-05-01T00:00:00Z'),
    )
