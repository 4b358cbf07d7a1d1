"""
Configuration

Settings are read from environment variables; command line flags in
``dashboard.main`` override them.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from netbench_dashboard.anomaly import AnomalyThresholds
from netbench_dashboard.errors import ConfigurationError
from netbench_dashboard.models import TimeWindow


def _env_number(env: Mapping, name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a {cast.__name__}, got {raw!r}")


@dataclass
class DashboardSettings:
    api_url: str = ''
    data_dir: Optional[str] = None
    max_results: int = 200000
    request_timeout: float = 30.0
    request_retries: int = 3
    refresh_interval: float = 300.0
    thresholds: AnomalyThresholds = field(default_factory=AnomalyThresholds)
    default_window: TimeWindow = TimeWindow.LAST_7_DAYS
    use_mock_data: bool = False
    host: str = '127.0.0.1'
    port: int = 8050
    debug: bool = False
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, env: Optional[Mapping] = None) -> 'DashboardSettings':
        env = os.environ if env is None else env

        window = env.get('NETBENCH_DEFAULT_WINDOW', TimeWindow.LAST_7_DAYS.value)
        try:
            default_window = TimeWindow.parse(window)
        except ValueError:
            raise ConfigurationError(f"NETBENCH_DEFAULT_WINDOW must be one of 72h, 7d, 30d, all; got {window!r}")

        thresholds = AnomalyThresholds(
            intra_zone_us=_env_number(env, 'NETBENCH_INTRA_ZONE_THRESHOLD_US', 500.0, float),
            inter_zone_us=_env_number(env, 'NETBENCH_INTER_ZONE_THRESHOLD_US', 1000.0, float),
            critical_us=_env_number(env, 'NETBENCH_CRITICAL_LATENCY_US', 5000.0, float),
            limit=_env_number(env, 'NETBENCH_ANOMALY_LIMIT', 50, int),
        )

        return cls(
            api_url=env.get('NETBENCH_API_URL', ''),
            data_dir=env.get('NETBENCH_DATA_DIR') or None,
            max_results=_env_number(env, 'NETBENCH_MAX_RESULTS', 200000, int),
            request_timeout=_env_number(env, 'NETBENCH_REQUEST_TIMEOUT', 30.0, float),
            request_retries=_env_number(env, 'NETBENCH_REQUEST_RETRIES', 3, int),
            refresh_interval=_env_number(env, 'NETBENCH_REFRESH_INTERVAL', 300.0, float),
            thresholds=thresholds,
            default_window=default_window,
            use_mock_data=env.get('NETBENCH_USE_MOCK_DATA', '').lower() in ('1', 'true', 'yes'),
            host=env.get('NETBENCH_HOST', '127.0.0.1'),
            port=_env_number(env, 'NETBENCH_PORT', 8050, int),
            log_level=env.get('LOG_LEVEL', 'INFO'),
        )
