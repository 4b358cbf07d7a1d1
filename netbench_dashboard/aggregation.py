"""
Aggregation engine for the Network Benchmark Dashboard

Computes per-region statistics and time-bucketed latency series (per region and
per ordered AZ pair) from a filtered view. Every function is a pure transform of
its input DataFrame; nothing is cached between calls.
"""

import logging
from typing import Callable, Dict, List

import numpy as np
import pandas as pd

from netbench_dashboard.models import (
    RegionStats, SeriesPoint, SeriesSet, TimeSeries, TimeWindow,
)
from netbench_dashboard.regions import format_region_name

logger = logging.getLogger(__name__)

SORT_ORDERS = ('alphabetical', 'asc', 'desc')

# Half-open latency ranges in microseconds
LATENCY_RANGES = [
    ('< 100 μs', 0, 100),
    ('100-500 μs', 100, 500),
    ('500-1000 μs', 500, 1000),
    ('1000-5000 μs', 1000, 5000),
    ('> 5000 μs', 5000, np.inf),
]

NEWEST_FIRST_COLUMNS = ['timestamp', 'region', 'source', 'destination']


def round_half_up(value):
    """Round to the nearest integer with halves rounded up (not to even)."""
    return np.floor(np.asarray(value, dtype=float) + 0.5)


def az_pair_label(source: str, destination: str) -> str:
    return f"{source} → {destination}"


def sort_newest_first(df: pd.DataFrame) -> pd.DataFrame:
    """Order records by timestamp descending; ties fall back to region, source, destination."""
    if df.empty:
        return df
    return df.sort_values(
        NEWEST_FIRST_COLUMNS,
        ascending=[False, True, True, True],
        na_position='last',
        kind='mergesort',
    )


def calculate_region_stats(df: pd.DataFrame) -> Dict[str, RegionStats]:
    """Mean latency and bandwidth per region, keyed by region in lexicographic order."""
    if df.empty:
        return {}

    grouped = df.groupby('region', sort=True).agg(
        count=('latency_us', 'size'),
        total_latency=('latency_us', 'sum'),
        total_bandwidth=('bandwidth_gbps', 'sum'),
    )

    stats = {}
    for region, row in grouped.iterrows():
        count = int(row['count'])
        stats[region] = RegionStats(
            region=region,
            count=count,
            avg_latency_us=float(row['total_latency']) / count,
            avg_bandwidth_gbps=float(row['total_bandwidth']) / count,
        )
    return stats


def sort_region_stats(stats: Dict[str, RegionStats], order: str = 'alphabetical') -> List[RegionStats]:
    """Order region stats for the latency bar chart.

    ``alphabetical`` sorts by display name, ``asc``/``desc`` by mean latency.
    Ties always fall back to the region key.
    """
    values = list(stats.values())
    if order == 'asc':
        return sorted(values, key=lambda s: (s.avg_latency_us, s.region))
    if order == 'desc':
        return sorted(values, key=lambda s: (-s.avg_latency_us, s.region))
    return sorted(values, key=lambda s: (format_region_name(s.region), s.region))


def bucket_timestamps(timestamps: pd.Series, window: TimeWindow) -> pd.Series:
    """Truncate UTC timestamps to hours for the 72h window, to days otherwise."""
    return timestamps.dt.floor(window.bucket_freq)


def _build_series_set(df: pd.DataFrame, keys: pd.Series, window: TimeWindow,
                      label_for: Callable[[str], str],
                      finalize: Callable = None) -> SeriesSet:
    """Group latency by (key, bucket) and emit one sparse series per key."""
    dated = df['timestamp'].notna().to_numpy()
    if not dated.any():
        return SeriesSet()

    frame = pd.DataFrame({
        'key': keys.to_numpy()[dated],
        'bucket': bucket_timestamps(df['timestamp'][dated], window).reset_index(drop=True),
        'latency': df['latency_us'].to_numpy()[dated],
    })

    means = frame.groupby(['key', 'bucket'], sort=True)['latency'].mean()
    if finalize is not None:
        means = pd.Series(finalize(means.to_numpy()), index=means.index)

    buckets = tuple(pd.DatetimeIndex(frame['bucket'].unique()).sort_values())

    series = []
    ordered_keys = sorted(frame['key'].unique(), key=lambda k: (label_for(k), k))
    for key in ordered_keys:
        per_bucket = means.xs(key, level='key')
        points = tuple(
            SeriesPoint(bucket_start=bucket, value=float(value))
            for bucket, value in per_bucket.items()
        )
        series.append(TimeSeries(key=key, label=label_for(key), points=points, span_gaps=True))

    return SeriesSet(buckets=buckets, series=tuple(series))


def calculate_latency_evolution_by_region(df: pd.DataFrame, window: TimeWindow) -> SeriesSet:
    """Average latency per time bucket for each region."""
    if df.empty:
        return SeriesSet()
    return _build_series_set(df, df['region'], window, format_region_name)


def calculate_latency_evolution_by_az_pair(df: pd.DataFrame, window: TimeWindow) -> SeriesSet:
    """Average latency per time bucket for each directed source → destination pair.

    Averages are rounded to whole microseconds.
    """
    if df.empty:
        return SeriesSet()
    pairs = pd.Series(
        [az_pair_label(s, d) for s, d in zip(df['source'], df['destination'])],
        index=df.index,
    )
    return _build_series_set(df, pairs, window, lambda key: key, finalize=round_half_up)


def calculate_latency_distribution(df: pd.DataFrame) -> Dict[str, int]:
    """Count records in each latency range, in range order."""
    labels = [label for label, _, _ in LATENCY_RANGES]
    if df.empty:
        return {label: 0 for label in labels}

    edges = [low for _, low, _ in LATENCY_RANGES] + [np.inf]
    binned = pd.cut(df['latency_us'], bins=edges, right=False, labels=labels)
    counts = binned.value_counts(sort=False)
    return {label: int(counts.get(label, 0)) for label in labels}


def calculate_daily_overview(df: pd.DataFrame) -> pd.DataFrame:
    """Mean bandwidth and latency per UTC day across all records."""
    columns = ['day', 'avg_bandwidth_gbps', 'avg_latency_us']
    dated = df[df['timestamp'].notna()] if not df.empty else df
    if dated.empty:
        return pd.DataFrame(columns=columns)

    daily = dated.groupby(dated['timestamp'].dt.floor('D'), sort=True).agg(
        avg_bandwidth_gbps=('bandwidth_gbps', 'mean'),
        avg_latency_us=('latency_us', 'mean'),
    )
    daily['avg_bandwidth_gbps'] = daily['avg_bandwidth_gbps'].round(2)
    daily['avg_latency_us'] = round_half_up(daily['avg_latency_us'])
    daily.index.name = 'day'
    return daily.reset_index()[columns]


def latest_records(df: pd.DataFrame, limit: int = 100) -> pd.DataFrame:
    """Most recent ``limit`` records, newest first."""
    return sort_newest_first(df).head(limit)
