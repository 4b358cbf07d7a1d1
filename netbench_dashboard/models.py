"""
Data model for the Network Benchmark Dashboard

Canonical record types, filter criteria and the derived structures handed to
the presentation layer. Derived structures are plain frozen snapshots; they are
rebuilt from the filtered view on every recomputation.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

import pandas as pd

# Column order of the canonical DataFrame
CANONICAL_COLUMNS = [
    'timestamp', 'region', 'source', 'destination',
    'bandwidth_gbps', 'latency_us', 'raw',
]

UNKNOWN = 'unknown'


@dataclass(frozen=True)
class Quantity:
    """A measured value together with the unit it was reported in."""
    value: float
    unit: Optional[str] = None

    def to_gbps(self) -> float:
        if self.unit == 'Mb/s':
            return self.value / 1000
        return self.value

    def to_micros(self) -> float:
        if self.unit == 'ms':
            return self.value * 1000
        return self.value


@dataclass(frozen=True)
class CanonicalRecord:
    """One normalized telemetry sample. ``timestamp`` is ``pd.NaT`` when unparsable."""
    timestamp: pd.Timestamp
    region: str
    source: str
    destination: str
    bandwidth_gbps: float
    latency_us: float
    raw: Any = field(default=None, compare=False, repr=False)

    @property
    def is_intra_zone(self) -> bool:
        return self.source == self.destination

    def as_row(self) -> Dict:
        return {
            'timestamp': self.timestamp,
            'region': self.region,
            'source': self.source,
            'destination': self.destination,
            'bandwidth_gbps': self.bandwidth_gbps,
            'latency_us': self.latency_us,
            'raw': self.raw,
        }


class TimeWindow(Enum):
    LAST_72_HOURS = '72h'
    LAST_7_DAYS = '7d'
    LAST_30_DAYS = '30d'
    ALL_TIME = 'all'

    @property
    def length(self) -> Optional[timedelta]:
        return _WINDOW_LENGTHS.get(self)

    @property
    def bucket_freq(self) -> str:
        """Pandas frequency used to bucket series for this window."""
        return 'h' if self is TimeWindow.LAST_72_HOURS else 'D'

    @property
    def label(self) -> str:
        return _WINDOW_LABELS[self]

    @classmethod
    def parse(cls, value) -> 'TimeWindow':
        if isinstance(value, cls):
            return value
        return cls(value)


_WINDOW_LENGTHS = {
    TimeWindow.LAST_72_HOURS: timedelta(hours=72),
    TimeWindow.LAST_7_DAYS: timedelta(days=7),
    TimeWindow.LAST_30_DAYS: timedelta(days=30),
}

_WINDOW_LABELS = {
    TimeWindow.LAST_72_HOURS: 'Last 72 hours',
    TimeWindow.LAST_7_DAYS: 'Last 7 days',
    TimeWindow.LAST_30_DAYS: 'Last 30 days',
    TimeWindow.ALL_TIME: 'All time',
}


@dataclass(frozen=True)
class FilterCriteria:
    """Active filters. Empty selections mean 'no restriction' for that dimension."""
    regions: FrozenSet[str] = frozenset()
    sources: FrozenSet[str] = frozenset()
    destinations: FrozenSet[str] = frozenset()
    window: TimeWindow = TimeWindow.LAST_7_DAYS

    @classmethod
    def from_selection(cls, regions: Optional[Iterable[str]] = None,
                       sources: Optional[Iterable[str]] = None,
                       destinations: Optional[Iterable[str]] = None,
                       window='7d') -> 'FilterCriteria':
        """Build criteria from raw control values (``None`` is treated as empty)."""
        return cls(
            regions=frozenset(regions or ()),
            sources=frozenset(sources or ()),
            destinations=frozenset(destinations or ()),
            window=TimeWindow.parse(window or TimeWindow.LAST_7_DAYS),
        )


@dataclass(frozen=True)
class RegionStats:
    region: str
    count: int
    avg_latency_us: float
    avg_bandwidth_gbps: float


@dataclass(frozen=True)
class SeriesPoint:
    bucket_start: pd.Timestamp
    value: float


@dataclass(frozen=True)
class TimeSeries:
    """A sparse, time-ordered series for one grouping key."""
    key: str
    label: str
    points: Tuple[SeriesPoint, ...]
    span_gaps: bool = True

    @property
    def x(self) -> List[pd.Timestamp]:
        return [p.bucket_start for p in self.points]

    @property
    def y(self) -> List[float]:
        return [p.value for p in self.points]


@dataclass(frozen=True)
class SeriesSet:
    """All series of one chart plus the union of their bucket starts."""
    buckets: Tuple[pd.Timestamp, ...] = ()
    series: Tuple[TimeSeries, ...] = ()

    def triples(self) -> List[Tuple[pd.Timestamp, str, float]]:
        """Flatten into ``(bucket_start, series_key, value)`` ordered by time then key."""
        rows = [(p.bucket_start, s.key, p.value) for s in self.series for p in s.points]
        return sorted(rows, key=lambda row: (row[0], row[1]))

    def __len__(self):
        return len(self.series)


@dataclass(frozen=True)
class Anomaly:
    timestamp: pd.Timestamp
    region: str
    source: str
    destination: str
    bandwidth_gbps: float
    latency_us: float
    threshold_us: float
    severity: str


@dataclass(frozen=True)
class Summary:
    count: int = 0
    distinct_regions: int = 0
    avg_latency_us: float = 0.0
    anomaly_count: int = 0

    def as_dict(self) -> Dict:
        return {
            'count': self.count,
            'distinctRegions': self.distinct_regions,
            'avgLatency': self.avg_latency_us,
            'anomalyCount': self.anomaly_count,
        }


def empty_frame() -> pd.DataFrame:
    """An empty canonical DataFrame with the expected dtypes."""
    return pd.DataFrame({
        'timestamp': pd.Series([], dtype='datetime64[ns, UTC]'),
        'region': pd.Series([], dtype=object),
        'source': pd.Series([], dtype=object),
        'destination': pd.Series([], dtype=object),
        'bandwidth_gbps': pd.Series([], dtype=float),
        'latency_us': pd.Series([], dtype=float),
        'raw': pd.Series([], dtype=object),
    })
