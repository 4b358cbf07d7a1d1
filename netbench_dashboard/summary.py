"""Scalar dashboard metrics derived from the filtered view."""

import pandas as pd

from netbench_dashboard.anomaly import DEFAULT_THRESHOLDS, AnomalyThresholds, count_anomalies
from netbench_dashboard.models import Summary


def summarize(df: pd.DataFrame, thresholds: AnomalyThresholds = DEFAULT_THRESHOLDS) -> Summary:
    """Record count, distinct regions, mean latency and anomaly count."""
    if df.empty:
        return Summary()

    return Summary(
        count=len(df),
        distinct_regions=int(df['region'].nunique()),
        avg_latency_us=float(df['latency_us'].mean()),
        anomaly_count=count_anomalies(df, thresholds),
    )
