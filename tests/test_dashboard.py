"""
tests/test_dashboard.py

Tests for the presentation helpers and CLI wiring. No server is started.
"""

import threading

import pandas as pd

from netbench_dashboard.aggregation import calculate_latency_evolution_by_az_pair
from netbench_dashboard.anomaly import detect_anomalies
from netbench_dashboard.config import DashboardSettings
from netbench_dashboard.context import DashboardContext, RefreshScheduler
from netbench_dashboard.dashboard import (
    DashboardApp, anomaly_rows, build_data_source, build_latency_figure, build_series_figure,
    parse_args, record_rows,
)
from netbench_dashboard.data_processor import (
    ApiDataSource, DirectoryDataSource, LoadResult, TelemetryDataProcessor, generate_mock_records,
)
from netbench_dashboard.models import RegionStats, TimeWindow
from netbench_dashboard.normalizer import normalize_records


class TestFigures:
    def test_series_figure_has_one_trace_per_series(self, sample_frame):
        series_set = calculate_latency_evolution_by_az_pair(sample_frame, TimeWindow.ALL_TIME)
        fig = build_series_figure(series_set, 'AZ pairs', TimeWindow.ALL_TIME)

        assert [trace.name for trace in fig.data] == [s.label for s in series_set.series]
        assert all(trace.connectgaps for trace in fig.data)

    def test_latency_figure_keeps_given_order(self):
        stats = [RegionStats('westeurope', 1, 300.0, 1.0), RegionStats('eastasia', 1, 100.0, 1.0)]
        fig = build_latency_figure(stats)
        assert list(fig.data[0].x) == ['West Europe', 'East Asia']


class TestRows:
    def test_anomaly_rows(self, records):
        df = records(dict(latency='6 ms', bandwidth='1.5 Gb/sec', region='eastasia'))
        (row,) = anomaly_rows(detect_anomalies(df))

        assert row['region'] == 'East Asia'
        assert row['latency'] == '6000 μs'
        assert row['bandwidth'] == '1.50 Gb/s'
        assert row['severity'] == 'critical'

    def test_record_rows_handle_invalid_dates(self, records):
        (row,) = record_rows(records(dict(timestamp='bad')))
        assert row['timestamp'] == 'Invalid Date'


class TestWiring:
    def test_parse_args_overrides_settings(self):
        settings = parse_args(['--api-url', 'http://x/api', '--port', '9000', '--refresh-interval', '60'],
                              DashboardSettings())
        assert settings.api_url == 'http://x/api'
        assert settings.port == 9000
        assert settings.refresh_interval == 60.0

    def test_build_data_source(self, tmp_path):
        assert isinstance(build_data_source(DashboardSettings(api_url='http://x')), ApiDataSource)
        assert isinstance(build_data_source(DashboardSettings(data_dir=str(tmp_path))), DirectoryDataSource)
        assert build_data_source(DashboardSettings()) is None
        assert build_data_source(DashboardSettings(api_url='http://x', use_mock_data=True)) is None

    def test_render_dashboard_outputs(self):
        now = pd.Timestamp.now(tz='UTC')
        processor = TelemetryDataProcessor(None, fallback=lambda: generate_mock_records(now=now, days=3, seed=5))
        context = DashboardContext(processor)
        context.refresh()
        dashboard = DashboardApp(context, DashboardSettings())

        outputs = dashboard.render_dashboard([], [], [], '72h', 'desc')

        assert len(outputs) == 9
        latency_fig, evolution_fig, pairs_fig = outputs[1], outputs[2], outputs[3]
        assert len(latency_fig.data[0].x) == 5
        assert len(evolution_fig.data) == 5
        assert len(pairs_fig.data) == 9
        assert len(outputs[5].data) == 2
        assert len(outputs[8]) == 100

    def test_invalid_window_renders_nothing(self):
        dashboard = DashboardApp(DashboardContext(TelemetryDataProcessor(None)), DashboardSettings())
        assert dashboard.render_dashboard([], [], [], '1y', 'alphabetical') is None
        assert dashboard.export_view([], [], [], '1y') is None


class GrowingProcessor:
    """Returns one more record on every load."""

    def __init__(self, raw_record):
        self.raw_record = raw_record
        self.loads = 0
        self.loaded = threading.Event()

    def load(self):
        self.loads += 1
        raws = [self.raw_record(timestamp=pd.Timestamp.now(tz='UTC').isoformat()) for _ in range(self.loads)]
        if self.loads > 1:
            self.loaded.set()
        return LoadResult(records=normalize_records(raws), source='live')


class TestScheduledRefresh:
    def test_render_reflects_scheduled_refresh(self, raw_record):
        processor = GrowingProcessor(raw_record)
        context = DashboardContext(processor)
        context.refresh()
        dashboard = DashboardApp(context, DashboardSettings(refresh_interval=0.01))

        token = dashboard.refresh_token()
        assert len(dashboard.render_dashboard([], [], [], '72h', 'alphabetical')[8]) == 1

        scheduler = RefreshScheduler(context, interval=0.01).start()
        try:
            assert processor.loaded.wait(timeout=5)
        finally:
            scheduler.stop(timeout=5)

        assert dashboard.refresh_token() != token
        assert len(dashboard.render_dashboard([], [], [], '72h', 'alphabetical')[8]) == processor.loads

    def test_token_and_banner_track_loading(self, sample_frame):
        seen = {}

        class ObservedProcessor:
            def load(self):
                seen['token'] = dashboard.refresh_token()
                seen['banner'] = dashboard.warning_banner().children
                return LoadResult(records=sample_frame, source='mock', warning='Using test data - boom')

        context = DashboardContext(ObservedProcessor())
        dashboard = DashboardApp(context, DashboardSettings())
        assert dashboard.refresh_token() == 'never'

        context.refresh()

        assert seen['token'] == 'never:loading'
        assert seen['banner'] == 'Refreshing telemetry data...'
        assert not dashboard.refresh_token().endswith(':loading')
        assert dashboard.warning_banner().children == 'Using test data - boom'

    def test_poll_interval_is_capped(self):
        context = DashboardContext(TelemetryDataProcessor(None))
        assert DashboardApp(context, DashboardSettings(refresh_interval=300)).poll_interval_ms() == 5000
        assert DashboardApp(context, DashboardSettings(refresh_interval=1)).poll_interval_ms() == 1000
