"""
Data retrieval for the Network Benchmark Dashboard

Fetches raw telemetry entities from the benchmark API or from a directory of
exported JSON/CSV files, normalizes them, and falls back to a synthetic
dataset when retrieval fails so the dashboard always has something to render.
"""

import json
import logging
import string
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

import numpy as np
import pandas as pd
import requests
from requests.exceptions import RequestException, Timeout

from netbench_dashboard.errors import RetrievalError
from netbench_dashboard.normalizer import normalize_records

logger = logging.getLogger(__name__)

RAW_FIELDS = ['PartitionKey', 'RowKey', 'Source', 'Destination', 'Bandwidth', 'Latency', 'Timestamp']

MOCK_REGIONS = ['francecentral', 'westeurope', 'northeurope', 'centralus', 'eastasia']
MOCK_ZONES = ['az1', 'az2', 'az3']


class ApiDataSource:
    """Fetches raw entities from the benchmark HTTP API (a JSON array of entities)."""

    def __init__(self, url: str, timeout: float = 30.0, retries: int = 3,
                 backoff_factor: float = 1.5, max_results: int = 200000):
        self.url = url
        self.timeout = timeout
        self.retries = max(1, retries)
        self.backoff_factor = backoff_factor
        self.max_results = max_results

    def __repr__(self):
        return f"ApiDataSource({self.url!r})"

    def _fetch_once(self) -> List[Dict]:
        resp = requests.get(self.url, timeout=self.timeout)
        resp.raise_for_status()
        payload = resp.json()
        if isinstance(payload, dict):
            # Table-storage style envelope
            payload = payload.get('value', payload.get('records', []))
        if not isinstance(payload, list):
            raise RetrievalError(f"Unexpected payload type from {self.url}: {type(payload).__name__}")
        return payload

    def fetch(self) -> List[Dict]:
        last_exc = None
        backoff = 1.0
        for attempt in range(1, self.retries + 1):
            try:
                logger.info(f"Fetching telemetry from {self.url} (attempt {attempt})")
                records = self._fetch_once()
                if len(records) > self.max_results:
                    logger.info(f"Reached maximum limit of {self.max_results} entities")
                    records = records[:self.max_results]
                return records
            except Timeout as e:
                last_exc = e
                logger.warning(f"Telemetry request timeout (attempt {attempt}): {e}")
            except (RequestException, ValueError, RetrievalError) as e:
                last_exc = e
                logger.warning(f"Telemetry request error (attempt {attempt}): {e}")
            if attempt < self.retries:
                time.sleep(backoff)
                backoff *= self.backoff_factor
        raise RetrievalError(f"API unavailable: {last_exc}")


class DirectoryDataSource:
    """Loads raw entities from exported ``*.json`` and ``*.csv`` files under a directory."""

    def __init__(self, results_dir, max_results: int = 200000):
        self.results_dir = Path(results_dir)
        self.max_results = max_results

    def __repr__(self):
        return f"DirectoryDataSource({str(self.results_dir)!r})"

    def discover_files(self) -> Dict[str, List[Path]]:
        """Discover export files, sorted for a stable load order."""
        return {
            'json': sorted(self.results_dir.rglob('*.json')),
            'csv': sorted(self.results_dir.rglob('*.csv')),
        }

    def _process_single_json_file(self, file_path: Path) -> List[Dict]:
        with open(file_path, 'r') as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get('value', data.get('records', []))
        if not isinstance(data, list):
            logger.warning(f"Skipping {file_path}: expected a list of entities")
            return []
        return [item for item in data if isinstance(item, dict)]

    def _process_single_csv_file(self, file_path: Path) -> List[Dict]:
        df = pd.read_csv(file_path, dtype=str, keep_default_na=False)
        missing = set(RAW_FIELDS[1:]) - set(df.columns)
        if missing:
            logger.warning(f"Skipping {file_path}: missing columns {sorted(missing)}")
            return []
        return df.to_dict('records')

    def fetch(self) -> List[Dict]:
        if not self.results_dir.is_dir():
            raise RetrievalError(f"Directory '{self.results_dir}' does not exist")

        files = self.discover_files()
        tasks = [(self._process_single_json_file, p) for p in files['json']]
        tasks += [(self._process_single_csv_file, p) for p in files['csv']]
        if not tasks:
            return []

        logger.info(f"Loading {len(tasks)} export files using threading...")
        results: Dict[Path, List[Dict]] = {}
        max_workers = min(len(tasks), 8)  # Cap at 8 threads

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_file = {executor.submit(func, path): path for func, path in tasks}
            for future in as_completed(future_to_file):
                file_path = future_to_file[future]
                try:
                    results[file_path] = future.result()
                    logger.debug(f"Processed export file: {file_path} ({len(results[file_path])} records)")
                except (OSError, ValueError) as e:
                    logger.error(f"Error processing export file {file_path}: {e}")

        # Reassemble in discovery order so repeated loads are identical
        records = []
        for _, file_path in tasks:
            records.extend(results.get(file_path, []))
        return records[:self.max_results]


def generate_mock_records(now: Optional[pd.Timestamp] = None, days: int = 30,
                          seed: Optional[int] = None) -> List[Dict]:
    """Synthetic raw entities covering the last ``days`` days every 6 hours.

    Intra-zone pairs get high bandwidth and low latency; inter-zone pairs vary.
    """
    rng = np.random.default_rng(seed)
    now = now if now is not None else pd.Timestamp.now(tz='UTC')
    today = now.floor('D')
    alphabet = np.array(list(string.ascii_lowercase + string.digits))

    records = []
    for day in range(days):
        for hour in range(0, 24, 6):
            timestamp = (today - pd.Timedelta(days=day) + pd.Timedelta(hours=hour)).isoformat()
            for region in MOCK_REGIONS:
                for source in MOCK_ZONES:
                    for destination in MOCK_ZONES:
                        same_az = source == destination
                        base_bandwidth = 25 if same_az else rng.random() * 20 + 5
                        base_latency = 10 if same_az else rng.random() * 500 + 50
                        bandwidth = base_bandwidth + (rng.random() - 0.5) * 5
                        latency = max(1, int(np.floor(base_latency + (rng.random() - 0.5) * 100 + 0.5)))
                        records.append({
                            'PartitionKey': 'test-' + ''.join(rng.choice(alphabet, 9)),
                            'RowKey': region,
                            'Source': source,
                            'Destination': destination,
                            'Bandwidth': f"{bandwidth:.2f} Gb/sec",
                            'Latency': f"{latency} us",
                            'Timestamp': timestamp,
                        })
    return records


@dataclass
class LoadResult:
    records: pd.DataFrame
    source: str
    warning: Optional[str] = None


class TelemetryDataProcessor:
    """Retrieves raw telemetry, normalizes it, and substitutes synthetic data on failure."""

    def __init__(self, source=None, fallback: Callable[[], List[Dict]] = generate_mock_records):
        self.source = source
        self.fallback = fallback

    def _load_fallback(self, warning: Optional[str]) -> LoadResult:
        raw = self.fallback()
        return LoadResult(records=normalize_records(raw), source='mock', warning=warning)

    def load(self) -> LoadResult:
        """Fetch and normalize. Never raises for retrieval failures."""
        if self.source is None:
            logger.info("No telemetry source configured, using mock data")
            return self._load_fallback(None)

        try:
            raw = self.source.fetch()
        except RetrievalError as e:
            logger.error(f"Retrieval from {self.source!r} failed: {e}")
            logger.warning("Using mock data as fallback")
            return self._load_fallback(f"Using test data - {e}")

        if not raw:
            logger.warning(f"No data returned from {self.source!r}, using mock data as fallback")
            return self._load_fallback("Using test data - no records returned")

        logger.info(f"Retrieved {len(raw)} records from {self.source!r}")
        return LoadResult(records=normalize_records(raw), source='live')
