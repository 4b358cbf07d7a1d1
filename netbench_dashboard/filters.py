"""
Filter engine for the Network Benchmark Dashboard

Applies region/source/destination membership filters and a time-window cutoff
to the canonical record set.
"""

import logging
from typing import Dict, List, Optional

import pandas as pd

from netbench_dashboard.models import FilterCriteria, TimeWindow

logger = logging.getLogger(__name__)


def utc_now() -> pd.Timestamp:
    return pd.Timestamp.now(tz='UTC')


def window_cutoff(window: TimeWindow, now: Optional[pd.Timestamp] = None) -> Optional[pd.Timestamp]:
    """Earliest timestamp kept by ``window``, or ``None`` when unbounded."""
    length = window.length
    if length is None:
        return None
    now = now if now is not None else utc_now()
    return now - length


def apply_filters(df: pd.DataFrame, criteria: FilterCriteria,
                  now: Optional[pd.Timestamp] = None) -> pd.DataFrame:
    """Apply filters to the canonical DataFrame. Relative order is preserved.

    Empty selections mean 'show all' for that dimension. Records with an
    unparsable timestamp never pass a bounded time window.
    """
    if df.empty:
        return df

    mask = pd.Series(True, index=df.index)

    if criteria.regions:
        mask &= df['region'].isin(criteria.regions)

    if criteria.sources:
        mask &= df['source'].isin(criteria.sources)

    if criteria.destinations:
        mask &= df['destination'].isin(criteria.destinations)

    cutoff = window_cutoff(criteria.window, now)
    if cutoff is not None:
        # NaT compares False, so undated records drop out here
        mask &= df['timestamp'] >= cutoff

    filtered = df[mask]
    logger.debug(f"Filtered {len(df)} records down to {len(filtered)} with {criteria}")
    return filtered


def filter_options(df: pd.DataFrame) -> Dict[str, List[str]]:
    """Sorted distinct values for populating the filter controls."""
    if df.empty:
        return {'regions': [], 'sources': [], 'destinations': []}
    return {
        'regions': sorted(df['region'].unique()),
        'sources': sorted(df['source'].unique()),
        'destinations': sorted(df['destination'].unique()),
    }
