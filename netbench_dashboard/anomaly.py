"""
Anomaly classification for the Network Benchmark Dashboard

Flags TCP one-way latency samples that exceed a fixed threshold. The threshold
depends on direction: intra-zone pairs (source == destination) are held to a
tighter limit than inter-zone pairs.
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np
import pandas as pd

from netbench_dashboard.aggregation import sort_newest_first
from netbench_dashboard.models import Anomaly

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnomalyThresholds:
    """Latency limits in microseconds. A sample is anomalous when strictly above its limit."""
    intra_zone_us: float = 500.0
    inter_zone_us: float = 1000.0
    critical_us: float = 5000.0
    limit: int = 50


DEFAULT_THRESHOLDS = AnomalyThresholds()


def latency_thresholds(df: pd.DataFrame, thresholds: AnomalyThresholds = DEFAULT_THRESHOLDS) -> pd.Series:
    """Per-record latency limit chosen from the record's direction."""
    intra = (df['source'] == df['destination']).to_numpy()
    return pd.Series(
        np.where(intra, thresholds.intra_zone_us, thresholds.inter_zone_us),
        index=df.index,
        dtype=float,
    )


def anomaly_mask(df: pd.DataFrame, thresholds: AnomalyThresholds = DEFAULT_THRESHOLDS) -> pd.Series:
    if df.empty:
        return pd.Series(False, index=df.index, dtype=bool)
    return df['latency_us'] > latency_thresholds(df, thresholds)


def count_anomalies(df: pd.DataFrame, thresholds: AnomalyThresholds = DEFAULT_THRESHOLDS) -> int:
    """Number of anomalous records over the whole view (not clipped to the list limit)."""
    return int(anomaly_mask(df, thresholds).sum())


def severity_for(latency_us: float, thresholds: AnomalyThresholds = DEFAULT_THRESHOLDS) -> str:
    return 'critical' if latency_us > thresholds.critical_us else 'warning'


def detect_anomalies(df: pd.DataFrame, thresholds: AnomalyThresholds = DEFAULT_THRESHOLDS) -> List[Anomaly]:
    """Anomalous records, newest first, clipped to ``thresholds.limit`` entries."""
    if df.empty:
        return []

    limits = latency_thresholds(df, thresholds)
    flagged = df[df['latency_us'] > limits]
    if flagged.empty:
        return []

    recent = sort_newest_first(flagged).head(thresholds.limit)
    anomalies = [
        Anomaly(
            timestamp=row.timestamp,
            region=row.region,
            source=row.source,
            destination=row.destination,
            bandwidth_gbps=float(row.bandwidth_gbps),
            latency_us=float(row.latency_us),
            threshold_us=float(limits.loc[index]),
            severity=severity_for(row.latency_us, thresholds),
        )
        for index, row in zip(recent.index, recent.itertuples(index=False))
    ]
    logger.debug(f"{len(flagged)} anomalous records, returning {len(anomalies)}")
    return anomalies
