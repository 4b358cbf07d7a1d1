"""CSV export of the filtered view."""

from typing import Optional

import pandas as pd

from netbench_dashboard.aggregation import round_half_up

EXPORT_HEADERS = ['Timestamp', 'Region', 'Source', 'Destination', 'Bandwidth (Gb/s)', 'Latency (μs)']


def export_filename(now: Optional[pd.Timestamp] = None) -> str:
    now = now if now is not None else pd.Timestamp.now(tz='UTC')
    return f"network-benchmark-{now.strftime('%Y-%m-%d')}.csv"


def format_export_timestamp(ts) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. ``2024-06-15T10:00:00.000Z``."""
    if pd.isna(ts):
        return ''
    return ts.strftime('%Y-%m-%dT%H:%M:%S.') + f"{ts.microsecond // 1000:03d}Z"


def to_export_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Project canonical records onto the fixed export columns and formats."""
    if df.empty:
        return pd.DataFrame(columns=EXPORT_HEADERS)

    timestamps = df['timestamp'].map(format_export_timestamp)
    return pd.DataFrame({
        'Timestamp': timestamps.to_numpy(),
        'Region': df['region'].to_numpy(),
        'Source': df['source'].to_numpy(),
        'Destination': df['destination'].to_numpy(),
        'Bandwidth (Gb/s)': [f"{v:.2f}" for v in df['bandwidth_gbps']],
        'Latency (μs)': round_half_up(df['latency_us']).astype(int),
    })


def to_csv(df: pd.DataFrame) -> str:
    """Render the filtered view as comma-separated text with a header row."""
    return to_export_frame(df).to_csv(index=False, lineterminator='\n')
