"""
Dashboard context

Owns the canonical record set and the active filter criteria, and produces
read-only snapshots of every derived view. Refreshes replace the record set
wholesale and are guarded against reentry; a background scheduler drives the
periodic refresh and can be stopped on shutdown.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

import pandas as pd

from netbench_dashboard.aggregation import (
    calculate_daily_overview, calculate_latency_distribution, calculate_latency_evolution_by_az_pair,
    calculate_latency_evolution_by_region, calculate_region_stats, latest_records,
    sort_region_stats,
)
from netbench_dashboard.anomaly import DEFAULT_THRESHOLDS, AnomalyThresholds, detect_anomalies
from netbench_dashboard.data_processor import TelemetryDataProcessor
from netbench_dashboard.errors import timed_computation
from netbench_dashboard.filters import apply_filters, filter_options
from netbench_dashboard.models import (
    Anomaly, FilterCriteria, RegionStats, SeriesSet, Summary, TimeWindow, empty_frame,
)
from netbench_dashboard.summary import summarize

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class DashboardSnapshot:
    """Every derived view for one filter state, computed together."""
    criteria: FilterCriteria
    filtered: pd.DataFrame
    region_stats: Dict[str, RegionStats]
    region_series: SeriesSet
    pair_series: SeriesSet
    anomalies: List[Anomaly]
    summary: Summary
    latency_distribution: Dict[str, int]
    daily: pd.DataFrame
    latest: pd.DataFrame

    def sorted_region_stats(self, order: str = 'alphabetical') -> List[RegionStats]:
        return sort_region_stats(self.region_stats, order)


class DashboardContext:
    """Explicit owner of dashboard state, replacing a global dashboard instance."""

    def __init__(self, processor: TelemetryDataProcessor,
                 thresholds: AnomalyThresholds = DEFAULT_THRESHOLDS,
                 default_window: TimeWindow = TimeWindow.LAST_7_DAYS):
        self.processor = processor
        self.thresholds = thresholds
        self.default_window = default_window
        self.records = empty_frame()
        self.criteria = FilterCriteria(window=default_window)
        self.warning: Optional[str] = None
        self.last_refresh: Optional[pd.Timestamp] = None
        self.is_loading = False
        self._refresh_lock = threading.Lock()

    def refresh(self) -> bool:
        """Reload and renormalize the record set.

        Returns False without doing anything when a refresh is already running.
        """
        if not self._refresh_lock.acquire(blocking=False):
            logger.warning("Refresh already in progress, skipping")
            return False
        try:
            self.is_loading = True
            result = self.processor.load()
            # Swap references; readers never see a half-built frame
            self.records = result.records
            self.warning = result.warning
            self.last_refresh = pd.Timestamp.now(tz='UTC')
            logger.info(f"Refreshed {len(result.records)} records from {result.source} source")
            return True
        finally:
            self.is_loading = False
            self._refresh_lock.release()

    def set_criteria(self, criteria: FilterCriteria) -> FilterCriteria:
        self.criteria = criteria
        return criteria

    def clear_filters(self) -> FilterCriteria:
        """Drop all selections and restore the default time window."""
        return self.set_criteria(FilterCriteria(window=self.default_window))

    def filter_options(self) -> Dict[str, List[str]]:
        return filter_options(self.records)

    @timed_computation
    def snapshot(self, criteria: Optional[FilterCriteria] = None,
                 now: Optional[pd.Timestamp] = None) -> DashboardSnapshot:
        """Recompute every derived view from the current record set."""
        criteria = criteria if criteria is not None else self.criteria
        records = self.records
        filtered = apply_filters(records, criteria, now=now)

        return DashboardSnapshot(
            criteria=criteria,
            filtered=filtered,
            region_stats=calculate_region_stats(filtered),
            region_series=calculate_latency_evolution_by_region(filtered, criteria.window),
            pair_series=calculate_latency_evolution_by_az_pair(filtered, criteria.window),
            anomalies=detect_anomalies(filtered, self.thresholds),
            summary=summarize(filtered, self.thresholds),
            latency_distribution=calculate_latency_distribution(filtered),
            daily=calculate_daily_overview(filtered),
            latest=latest_records(filtered),
        )


class RefreshScheduler:
    """Runs ``context.refresh`` every ``interval`` seconds on a daemon thread."""

    def __init__(self, context: DashboardContext, interval: float = 300.0):
        self.context = context
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self):
        while not self._stop_event.wait(self.interval):
            try:
                self.context.refresh()
            except Exception as e:
                logger.error(f"Scheduled refresh failed: {e}")

    def start(self) -> 'RefreshScheduler':
        if self.running:
            return self
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name='netbench-refresh', daemon=True)
        self._thread.start()
        logger.info(f"Scheduled telemetry refresh every {self.interval:.0f}s")
        return self

    def stop(self, timeout: Optional[float] = None):
        """Cancel the schedule. A refresh already running is allowed to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Telemetry refresh schedule stopped")
