"""
Record normalization for the Network Benchmark Dashboard

Turns raw telemetry entities (free-form strings such as "12.3 Gb/sec" or
"450 us") into canonical records with numeric bandwidth in Gb/s and latency
in microseconds. Normalization never raises: unparsable fields resolve to
documented defaults so the dashboard always has something to render.
"""

import logging
import math
import re
from numbers import Real
from typing import Any, Iterable, Mapping

import pandas as pd

from netbench_dashboard.models import (
    CANONICAL_COLUMNS, UNKNOWN, CanonicalRecord, Quantity, empty_frame,
)

logger = logging.getLogger(__name__)

# First decimal-number run: digits with at most one decimal point
_NUMBER_RE = re.compile(r'\d*\.?\d+')

BANDWIDTH = 'bandwidth'
LATENCY = 'latency'


def parse_quantity(value: Any, kind: str) -> Quantity:
    """Parse a raw bandwidth or latency field into a value-plus-unit pair.

    Strings use the first numeric run and a case-insensitive unit marker:
    "mb" marks Mb/s bandwidth, "ms" marks millisecond latency. Numbers are
    taken as already canonical. Anything else yields zero.
    """
    if isinstance(value, bool) or value is None:
        return Quantity(0.0)

    if isinstance(value, Real):
        number = float(value)
        return Quantity(number if math.isfinite(number) else 0.0)

    if not isinstance(value, str):
        return Quantity(0.0)

    match = _NUMBER_RE.search(value)
    if not match:
        return Quantity(0.0)

    number = float(match.group(0))
    text = value.lower()
    if kind == BANDWIDTH:
        return Quantity(number, 'Mb/s' if 'mb' in text else 'Gb/s')
    if kind == LATENCY:
        return Quantity(number, 'ms' if 'ms' in text else 'us')
    return Quantity(number)


def parse_timestamp(value: Any) -> pd.Timestamp:
    """Parse an ISO-8601 timestamp to UTC, returning ``pd.NaT`` when invalid."""
    if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
        return pd.NaT
    try:
        if isinstance(value, Real):
            # Epoch milliseconds
            ts = pd.to_datetime(value, unit='ms', utc=True, errors='coerce')
        else:
            ts = pd.to_datetime(value, utc=True, errors='coerce')
    except (ValueError, TypeError, OverflowError, KeyError):
        return pd.NaT
    if ts is None or not isinstance(ts, pd.Timestamp):
        return pd.NaT
    return ts


def _text_field(raw: Mapping, key: str) -> str:
    value = raw.get(key)
    if value is None or value == '':
        return UNKNOWN
    return str(value)


def normalize_record(raw: Any) -> CanonicalRecord:
    """Normalize one raw entity. Never raises."""
    fields = raw if isinstance(raw, Mapping) else {}

    bandwidth = parse_quantity(fields.get('Bandwidth'), BANDWIDTH)
    latency = parse_quantity(fields.get('Latency'), LATENCY)

    return CanonicalRecord(
        timestamp=parse_timestamp(fields.get('Timestamp')),
        region=_text_field(fields, 'RowKey'),
        source=_text_field(fields, 'Source'),
        destination=_text_field(fields, 'Destination'),
        bandwidth_gbps=bandwidth.to_gbps(),
        latency_us=latency.to_micros(),
        raw=raw,
    )


def normalize_records(raw_records: Iterable[Any]) -> pd.DataFrame:
    """Normalize a batch of raw entities into a canonical DataFrame."""
    records = [normalize_record(raw) for raw in (raw_records or [])]
    if not records:
        return empty_frame()

    df = pd.DataFrame([r.as_row() for r in records], columns=CANONICAL_COLUMNS)
    df['timestamp'] = pd.to_datetime(df['timestamp'], utc=True)
    df['bandwidth_gbps'] = df['bandwidth_gbps'].astype(float)
    df['latency_us'] = df['latency_us'].astype(float)

    invalid_ts = int(df['timestamp'].isna().sum())
    if invalid_ts:
        logger.warning(f"{invalid_ts} of {len(df)} records have an unparsable timestamp")
    logger.info(f"Normalized {len(df)} telemetry records")
    return df
