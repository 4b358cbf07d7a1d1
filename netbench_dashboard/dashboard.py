#!/usr/bin/env python3
"""
Interactive Dashboard for Network Benchmark Telemetry

A Plotly Dash application for reviewing latency/bandwidth benchmark results
between availability zones, with region/AZ filters, time-bucketed latency
series and a list of abnormal results.
"""

import argparse
import sys
import logging
from typing import Dict, List, Optional

import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots
import dash
from dash import ctx, dcc, html, Input, Output, State, dash_table
from dash.exceptions import PreventUpdate

from netbench_dashboard.aggregation import round_half_up
from netbench_dashboard.config import DashboardSettings
from netbench_dashboard.context import DashboardContext, DashboardSnapshot, RefreshScheduler
from netbench_dashboard.data_processor import (
    ApiDataSource, DirectoryDataSource, TelemetryDataProcessor,
)
from netbench_dashboard.errors import ConfigurationError, safe_computation
from netbench_dashboard.export import export_filename, to_csv
from netbench_dashboard.models import (
    Anomaly, FilterCriteria, RegionStats, SeriesSet, Summary, TimeWindow,
)
from netbench_dashboard.regions import format_region_name

logger = logging.getLogger(__name__)

SERIES_COLORS = [
    'rgba(255, 99, 132, 1)',   # Red
    'rgba(54, 162, 235, 1)',   # Blue
    'rgba(255, 206, 86, 1)',   # Yellow
    'rgba(75, 192, 192, 1)',   # Teal
    'rgba(153, 102, 255, 1)',  # Purple
    'rgba(255, 159, 64, 1)',   # Orange
    'rgba(199, 199, 199, 1)',  # Grey
    'rgba(83, 102, 255, 1)',   # Indigo
    'rgba(255, 99, 255, 1)',   # Magenta
    'rgba(99, 255, 132, 1)',   # Green
    'rgba(255, 206, 132, 1)',  # Light Orange
    'rgba(132, 99, 255, 1)',   # Violet
]

# Browser poll for finished background refreshes
POLL_INTERVAL_MS = 5000

TIME_AXIS_FORMATS = {
    TimeWindow.LAST_72_HOURS: '%b %d %H:%M',
    TimeWindow.LAST_7_DAYS: '%b %d',
    TimeWindow.LAST_30_DAYS: '%b %d',
    TimeWindow.ALL_TIME: '%b %d',
}

TABLE_COLUMNS = [
    {'name': 'Timestamp', 'id': 'timestamp'},
    {'name': 'Region', 'id': 'region'},
    {'name': 'Source', 'id': 'source'},
    {'name': 'Destination', 'id': 'destination'},
    {'name': 'Bandwidth', 'id': 'bandwidth'},
    {'name': 'Latency', 'id': 'latency'},
]

CARD_STYLE = {
    'flex': '1',
    'padding': '16px',
    'margin': '0 8px',
    'background': '#21262d',
    'border': '1px solid #30363d',
    'border-radius': '6px',
    'text-align': 'center',
}


def apply_dark_theme(fig):
    """Apply the dark panel theme used across all charts."""
    fig.update_layout(
        paper_bgcolor='#21262d',
        plot_bgcolor='#21262d',
        font=dict(color='#ffffff', family='Inter, sans-serif'),
        xaxis=dict(gridcolor='#333333', linecolor='#666666', tickcolor='#666666', color='#ffffff'),
        yaxis=dict(gridcolor='#333333', linecolor='#666666', tickcolor='#666666', color='#ffffff'),
        legend=dict(
            bgcolor='rgba(33, 38, 45, 0.9)',
            bordercolor='#666666',
            borderwidth=1,
            font=dict(color='#ffffff')
        ),
        hoverlabel=dict(bgcolor='#21262d', bordercolor='#666666', font_color='#ffffff'),
    )
    return fig


def series_color(index: int, alpha: Optional[float] = None) -> str:
    color = SERIES_COLORS[index % len(SERIES_COLORS)]
    if alpha is not None:
        color = color.replace('1)', f'{alpha})')
    return color


def format_timestamp(ts) -> str:
    if pd.isna(ts):
        return 'Invalid Date'
    return ts.strftime('%Y-%m-%d %H:%M:%S UTC')


def build_latency_figure(stats: List[RegionStats]) -> go.Figure:
    """Bar chart of mean latency per region, in the order given."""
    fig = go.Figure(go.Bar(
        x=[format_region_name(s.region) for s in stats],
        y=[s.avg_latency_us for s in stats],
        name='Average Latency (μs)',
        marker=dict(color='rgba(255, 185, 0, 0.6)', line=dict(color='rgba(255, 185, 0, 1)', width=1)),
        hovertemplate='%{x}<br>%{y:.0f} μs<extra></extra>',
    ))
    fig.update_layout(showlegend=False, yaxis=dict(title='Latency (μs)', rangemode='tozero'))
    return apply_dark_theme(fig)


def build_series_figure(series_set: SeriesSet, title: str, window: TimeWindow,
                        marker_size: int = 6) -> go.Figure:
    """One line per series; gaps between known buckets are connected."""
    fig = go.Figure()
    for index, series in enumerate(series_set.series):
        fig.add_trace(go.Scatter(
            x=series.x,
            y=series.y,
            name=series.label,
            mode='lines+markers',
            connectgaps=series.span_gaps,
            line=dict(color=series_color(index), shape='spline', smoothing=0.1),
            marker=dict(size=marker_size),
        ))
    fig.update_layout(
        title=title,
        legend=dict(orientation='h', y=1.1),
        yaxis=dict(title='Latency (μs)', rangemode='tozero'),
        xaxis=dict(title='Date', type='date', tickformat=TIME_AXIS_FORMATS[window]),
    )
    return apply_dark_theme(fig)


def build_distribution_figure(distribution: Dict[str, int]) -> go.Figure:
    fig = go.Figure(go.Bar(
        x=list(distribution.keys()),
        y=list(distribution.values()),
        marker=dict(color=[series_color(i, 0.6) for i in range(len(distribution))]),
    ))
    fig.update_layout(showlegend=False, title='Latency Distribution', yaxis=dict(title='Tests'))
    return apply_dark_theme(fig)


def build_daily_figure(daily: pd.DataFrame) -> go.Figure:
    """Daily mean bandwidth (left axis) and latency (right axis)."""
    fig = make_subplots(specs=[[{'secondary_y': True}]])
    fig.add_trace(go.Scatter(
        x=daily['day'], y=daily['avg_bandwidth_gbps'], name='Average Bandwidth (Gb/s)',
        mode='lines+markers', line=dict(color=series_color(1)),
    ), secondary_y=False)
    fig.add_trace(go.Scatter(
        x=daily['day'], y=daily['avg_latency_us'], name='Average Latency (μs)',
        mode='lines+markers', line=dict(color=series_color(2)),
    ), secondary_y=True)
    fig.update_layout(title='Daily Overview', legend=dict(orientation='h', y=1.1))
    fig.update_yaxes(title_text='Bandwidth (Gb/s)', rangemode='tozero', secondary_y=False)
    fig.update_yaxes(title_text='Latency (μs)', rangemode='tozero', secondary_y=True)
    return apply_dark_theme(fig)


def anomaly_rows(anomalies: List[Anomaly]) -> List[Dict]:
    return [
        {
            'timestamp': format_timestamp(a.timestamp),
            'region': format_region_name(a.region),
            'source': a.source,
            'destination': a.destination,
            'bandwidth': f"{a.bandwidth_gbps:.2f} Gb/s",
            'latency': f"{int(round_half_up(a.latency_us))} μs",
            'severity': a.severity,
        }
        for a in anomalies
    ]


def record_rows(df: pd.DataFrame) -> List[Dict]:
    return [
        {
            'timestamp': format_timestamp(row.timestamp),
            'region': format_region_name(row.region),
            'source': row.source,
            'destination': row.destination,
            'bandwidth': f"{row.bandwidth_gbps:.2f} Gb/s",
            'latency': f"{int(round_half_up(row.latency_us))} μs",
        }
        for row in df.itertuples(index=False)
    ]


def summary_cards(summary: Summary) -> html.Div:
    cards = [
        ('Total Tests', f"{summary.count:,}"),
        ('Regions', str(summary.distinct_regions)),
        ('Average Latency', f"{int(round_half_up(summary.avg_latency_us))} μs"),
        ('Abnormal Results', str(summary.anomaly_count)),
    ]
    return html.Div([
        html.Div([
            html.P(title, style={'color': '#8b949e', 'margin': '0 0 6px 0'}),
            html.H2(value, style={'color': '#f0f6fc', 'margin': '0'}),
        ], style=CARD_STYLE)
        for title, value in cards
    ], style={'display': 'flex', 'margin-bottom': '20px'})


class DashboardApp:
    """Main Dash application for interactive telemetry visualization."""

    def __init__(self, context: DashboardContext, settings: DashboardSettings):
        self.context = context
        self.settings = settings
        self.app = dash.Dash(__name__, title='Network Benchmark Dashboard')
        self.setup_layout()
        self.setup_callbacks()

    def get_filter_options(self) -> Dict[str, List[Dict]]:
        """Dropdown options for the region/source/destination filters."""
        options = self.context.filter_options()
        result = {
            'regions': [{'label': format_region_name(r), 'value': r} for r in options['regions']],
            'sources': [{'label': s, 'value': s} for s in options['sources']],
            'destinations': [{'label': d, 'value': d} for d in options['destinations']],
        }
        logger.debug(f"Filter options: {options}")
        return result

    def _dropdown(self, component_id: str, placeholder: str, options: List[Dict]):
        return html.Div([
            dcc.Dropdown(id=component_id, options=options, value=[], multi=True, placeholder=placeholder),
        ], style={'flex': '1', 'margin-right': '10px', 'min-width': '200px'})

    def setup_layout(self):
        """Setup the main dashboard layout."""
        filter_options = self.get_filter_options()
        table_style = dict(
            style_table={'overflowX': 'auto'},
            style_header={'backgroundColor': '#161b22', 'color': '#f0f6fc', 'fontWeight': 'bold'},
            style_cell={'backgroundColor': '#21262d', 'color': '#f0f6fc', 'border': '1px solid #30363d'},
        )

        self.app.layout = html.Div(children=[
            html.H1("Network Benchmark Dashboard", style={'color': '#f0f6fc'}),
            html.Div(id='warning-banner'),

            # Filters
            html.Div([
                self._dropdown('region-filter', 'All regions', filter_options['regions']),
                self._dropdown('source-filter', 'All sources', filter_options['sources']),
                self._dropdown('destination-filter', 'All destinations', filter_options['destinations']),
                dcc.RadioItems(
                    id='time-filter',
                    options=[{'label': w.label, 'value': w.value} for w in TimeWindow],
                    value=self.settings.default_window.value,
                    inline=True,
                    style={'color': '#f0f6fc'},
                ),
                html.Button('Clear Filters', id='clear-filters-button', n_clicks=0),
                html.Button('Export CSV', id='export-button', n_clicks=0),
                dcc.Download(id='export-download'),
            ], style={'display': 'flex', 'flex-wrap': 'wrap', 'align-items': 'center', 'margin-bottom': '20px'}),

            html.Div(id='summary-cards'),

            html.Div([
                dcc.RadioItems(
                    id='latency-sort-order',
                    options=[
                        {'label': 'A-Z', 'value': 'alphabetical'},
                        {'label': 'Lowest first', 'value': 'asc'},
                        {'label': 'Highest first', 'value': 'desc'},
                    ],
                    value='alphabetical',
                    inline=True,
                    style={'color': '#f0f6fc'},
                ),
                dcc.Graph(id='latency-chart'),
            ], className='chart-container'),
            html.Div([dcc.Graph(id='latency-evolution-chart')], className='chart-container'),
            html.Div([dcc.Graph(id='latency-az-pairs-chart')], className='chart-container'),
            html.Div([dcc.Graph(id='latency-distribution-chart')], className='chart-container'),
            html.Div([dcc.Graph(id='daily-overview-chart')], className='chart-container'),

            html.H3("Abnormal Results", style={'color': '#f0f6fc'}),
            html.P(
                f"Intra-zone latency above {self.settings.thresholds.intra_zone_us:.0f} μs or "
                f"inter-zone latency above {self.settings.thresholds.inter_zone_us:.0f} μs",
                style={'color': '#8b949e'},
            ),
            html.Div("No abnormal results for the current filters.", id='no-abnormal-results',
                     style={'display': 'none', 'color': '#2da44e'}),
            dash_table.DataTable(
                id='abnormal-results-table',
                columns=TABLE_COLUMNS + [{'name': 'Severity', 'id': 'severity'}],
                data=[],
                style_data_conditional=[
                    {'if': {'filter_query': '{severity} = "critical"'}, 'color': '#f85149', 'fontWeight': 'bold'},
                    {'if': {'filter_query': '{severity} = "warning"'}, 'color': '#d29922'},
                ],
                **table_style,
            ),

            html.H3("Latest Results", style={'color': '#f0f6fc'}),
            dash_table.DataTable(id='data-table', columns=TABLE_COLUMNS, data=[], page_size=25, **table_style),

            dcc.Store(id='rendered-refresh'),
            dcc.Interval(id='refresh-poll', interval=self.poll_interval_ms(), n_intervals=0),
        ], style={'background': '#0d1117', 'padding': '20px', 'font-family': 'Inter, sans-serif'})

    def poll_interval_ms(self) -> int:
        return max(1, min(POLL_INTERVAL_MS, int(self.settings.refresh_interval * 1000)))

    def refresh_token(self) -> str:
        """Identifies the loaded record set; changes when a refresh starts and when it lands."""
        last = self.context.last_refresh
        token = last.isoformat() if last is not None else 'never'
        if self.context.is_loading:
            token += ':loading'
        return token

    def warning_banner(self) -> html.Div:
        message = self.context.warning
        if self.context.is_loading:
            message = "Refreshing telemetry data..."
        if not message:
            return html.Div()
        return html.Div(message, style={
            'color': '#d29922',
            'padding': '8px 12px',
            'margin-bottom': '12px',
            'border': '1px solid #d29922',
            'border-radius': '4px',
        })

    @safe_computation(default_return=None)
    def render_dashboard(self, regions, sources, destinations, window, sort_order: str):
        """Recompute the snapshot from raw control values and build every callback output."""
        criteria = FilterCriteria.from_selection(regions, sources, destinations, window)
        logger.info(f"Recomputing dashboard with filters: {criteria}")
        self.context.set_criteria(criteria)
        snapshot: DashboardSnapshot = self.context.snapshot(criteria)
        window = criteria.window

        no_results_style = {'display': 'none', 'color': '#2da44e'}
        if not snapshot.anomalies:
            no_results_style = {'display': 'block', 'color': '#2da44e'}

        return (
            summary_cards(snapshot.summary),
            build_latency_figure(snapshot.sorted_region_stats(sort_order)),
            build_series_figure(snapshot.region_series, 'Latency Evolution by Region Over Time', window),
            build_series_figure(snapshot.pair_series,
                                'Detailed Latency Evolution by AZ Pairs (with Traffic Direction)',
                                window, marker_size=4),
            build_distribution_figure(snapshot.latency_distribution),
            build_daily_figure(snapshot.daily),
            anomaly_rows(snapshot.anomalies),
            no_results_style,
            record_rows(snapshot.latest),
        )

    def _empty_outputs(self):
        empty = apply_dark_theme(go.Figure())
        return (
            html.Div("Error rendering dashboard", style={'color': '#f85149'}),
            empty, empty, empty, empty, empty, [], {'display': 'none'}, [],
        )

    @safe_computation(default_return=None)
    def export_view(self, regions, sources, destinations, window):
        """CSV download payload for the filtered view."""
        criteria = FilterCriteria.from_selection(regions, sources, destinations, window)
        snapshot = self.context.snapshot(criteria)
        logger.info(f"Exporting {len(snapshot.filtered)} records")
        return dcc.send_string(to_csv(snapshot.filtered), export_filename())

    def setup_callbacks(self):
        """Setup all dashboard callbacks."""

        @self.app.callback(
            [Output('rendered-refresh', 'data'),
             Output('region-filter', 'options'),
             Output('source-filter', 'options'),
             Output('destination-filter', 'options'),
             Output('warning-banner', 'children')],
            [Input('refresh-poll', 'n_intervals')],
            [State('rendered-refresh', 'data')],
        )
        def sync_refresh(n_intervals, rendered_token):
            token = self.refresh_token()
            if token == rendered_token:
                raise PreventUpdate
            options = self.get_filter_options()
            return token, options['regions'], options['sources'], options['destinations'], self.warning_banner()

        @self.app.callback(
            [Output('summary-cards', 'children'),
             Output('latency-chart', 'figure'),
             Output('latency-evolution-chart', 'figure'),
             Output('latency-az-pairs-chart', 'figure'),
             Output('latency-distribution-chart', 'figure'),
             Output('daily-overview-chart', 'figure'),
             Output('abnormal-results-table', 'data'),
             Output('no-abnormal-results', 'style'),
             Output('data-table', 'data')],
            [Input('region-filter', 'value'),
             Input('source-filter', 'value'),
             Input('destination-filter', 'value'),
             Input('time-filter', 'value'),
             Input('latency-sort-order', 'value'),
             Input('rendered-refresh', 'data')],
        )
        def update_dashboard(regions, sources, destinations, window, sort_order, refresh_token):
            # Wait for the reload to land before recomputing
            if ctx.triggered_id == 'rendered-refresh' and self.context.is_loading:
                raise PreventUpdate
            outputs = self.render_dashboard(regions, sources, destinations, window, sort_order or 'alphabetical')
            return outputs if outputs is not None else self._empty_outputs()

        @self.app.callback(
            [Output('region-filter', 'value'),
             Output('source-filter', 'value'),
             Output('destination-filter', 'value'),
             Output('time-filter', 'value')],
            [Input('clear-filters-button', 'n_clicks')],
            prevent_initial_call=True
        )
        def clear_filters(n_clicks):
            criteria = self.context.clear_filters()
            return [], [], [], criteria.window.value

        @self.app.callback(
            Output('export-download', 'data'),
            [Input('export-button', 'n_clicks')],
            [State('region-filter', 'value'),
             State('source-filter', 'value'),
             State('destination-filter', 'value'),
             State('time-filter', 'value')],
            prevent_initial_call=True
        )
        def export_data(n_clicks, regions, sources, destinations, window):
            payload = self.export_view(regions, sources, destinations, window)
            if payload is None:
                raise PreventUpdate
            return payload

    def run(self, host='127.0.0.1', port=8050, debug=False):
        """Run the dashboard server."""
        logger.info(f"Starting dashboard at http://{host}:{port}")
        self.app.run(host=host, port=port, debug=debug)


def build_data_source(settings: DashboardSettings):
    """Pick the upstream source from settings; ``None`` means synthetic data only."""
    if settings.use_mock_data:
        return None
    if settings.api_url:
        return ApiDataSource(
            settings.api_url,
            timeout=settings.request_timeout,
            retries=settings.request_retries,
            max_results=settings.max_results,
        )
    if settings.data_dir:
        return DirectoryDataSource(settings.data_dir, max_results=settings.max_results)
    return None


def parse_args(argv=None, settings: Optional[DashboardSettings] = None):
    settings = settings or DashboardSettings()
    parser = argparse.ArgumentParser(description="Network Benchmark Telemetry Dashboard")
    parser.add_argument("--api-url", default=settings.api_url, help="Benchmark data API returning a JSON array of entities")
    parser.add_argument("--dir", default=settings.data_dir, help="Directory containing exported JSON/CSV telemetry files")
    parser.add_argument("--mock", action="store_true", default=settings.use_mock_data, help="Use synthetic data only")
    parser.add_argument("--max-results", type=int, default=settings.max_results, help="Maximum number of records to load")
    parser.add_argument("--refresh-interval", type=float, default=settings.refresh_interval,
                        help="Seconds between data refreshes (default: 300)")
    parser.add_argument("--host", default=settings.host, help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to bind to (default: 8050)")
    parser.add_argument("--debug", action="store_true", default=settings.debug, help="Enable debug mode (can cause reloading issues)")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: INFO)")
    args = parser.parse_args(argv)

    settings.api_url = args.api_url or ''
    settings.data_dir = args.dir
    settings.use_mock_data = args.mock
    settings.max_results = args.max_results
    settings.refresh_interval = args.refresh_interval
    settings.host = args.host
    settings.port = args.port
    settings.debug = args.debug
    settings.log_level = args.log_level
    return settings


def main(argv=None):
    """Main entry point."""
    try:
        settings = parse_args(argv, DashboardSettings.from_env())
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Invalid configuration: {e}")
        return 1

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO),
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    processor = TelemetryDataProcessor(build_data_source(settings))
    context = DashboardContext(processor, thresholds=settings.thresholds,
                               default_window=settings.default_window)
    context.refresh()

    scheduler = RefreshScheduler(context, interval=settings.refresh_interval).start()
    try:
        dashboard = DashboardApp(context, settings)
        dashboard.run(host=settings.host, port=settings.port, debug=settings.debug)
    finally:
        scheduler.stop(timeout=5)

    return 0


if __name__ == "__main__":
    sys.exit(main())
