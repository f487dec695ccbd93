"""
Remote data acquisition: pre-signed CSV downloads and dataset SQL queries.

Both sources are fetched once per run. Nothing here retries; a failed
request aborts the run with a ``DataAcquisitionError`` that names the source.
"""

import io
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union
from urllib.parse import parse_qs, urlparse

import pandas as pd
import requests

logger = logging.getLogger(__name__)

SIGNATURE_PARAMS = ('X-Amz-Signature', 'X-Amz-Expires', 'Signature', 'Expires')


class DataAcquisitionError(Exception):
    """Raised when a remote dataset cannot be retrieved or parsed."""


class SignedUrlExpiredError(DataAcquisitionError):
    """Raised when a pre-signed URL is rejected, typically because it expired."""


def _is_signed_url(url: str) -> bool:
    query = parse_qs(urlparse(url).query)
    return any(param in query for param in SIGNATURE_PARAMS)


def _redact(url: str) -> str:
    """Drop the query string so signatures never reach the logs."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


def _parse_csv(text: str, source: str) -> pd.DataFrame:
    if not text or not text.strip():
        raise DataAcquisitionError(f"Empty response body from {source}")
    try:
        df = pd.read_csv(io.StringIO(text))
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise DataAcquisitionError(f"Malformed CSV returned by {source}: {e}") from e
    if df.empty:
        raise DataAcquisitionError(f"No rows returned by {source}")
    return df


def fetch_csv(url: str,
              timeout: float = 30,
              cache_path: Optional[Union[str, Path]] = None,
              session: Optional[requests.Session] = None) -> pd.DataFrame:
    """
    Download a CSV over HTTPS and parse it into a DataFrame.

    Args:
        url: Plain or pre-signed URL
        timeout: Request timeout in seconds
        cache_path: If given, the downloaded body is written here, and an
            expired signed URL falls back to this copy
        session: Optional requests session (defaults to the module API)

    Returns:
        Parsed DataFrame
    """
    start_time = time.time()
    source = _redact(url)
    logger.info(f"Fetching CSV from {source}")
    http = session or requests

    try:
        resp = http.get(url, timeout=timeout)
        if resp.status_code == 403 and _is_signed_url(url):
            raise SignedUrlExpiredError(
                f"Pre-signed URL for {source} was rejected (HTTP 403); it has likely expired"
            )
        resp.raise_for_status()
    except SignedUrlExpiredError:
        if cache_path is not None and Path(cache_path).exists():
            logger.warning(f"Signed URL expired, reading cached copy from {cache_path}")
            return pd.read_csv(cache_path)
        raise
    except requests.RequestException as e:
        raise DataAcquisitionError(f"Failed to fetch {source}: {e}") from e

    df = _parse_csv(resp.text, source)

    if cache_path is not None:
        cache_path = Path(cache_path)
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        cache_path.write_text(resp.text, encoding='utf-8')
        logger.info(f"Cached download to {cache_path}")

    elapsed_time = time.time() - start_time
    logger.info(f"Fetched {df.shape[0]} rows x {df.shape[1]} columns in {elapsed_time:.2f} seconds")
    return df


class DatasetQueryClient:
    """Client for a hosted dataset service that answers SQL queries with CSV."""

    def __init__(self,
                 token: str,
                 base_url: str = 'https://api.data.world/v0',
                 timeout: float = 30,
                 session: Optional[requests.Session] = None):
        self.token = token
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session

    def query(self, dataset_key: str, sql: str) -> pd.DataFrame:
        """
        Run a SQL query against a hosted dataset.

        Args:
            dataset_key: ``owner/dataset-id``
            sql: Literal query string

        Returns:
            Result table as a DataFrame
        """
        parts = dataset_key.strip('/').split('/')
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"dataset_key must look like 'owner/dataset-id', got: {dataset_key!r}")
        if not self.token:
            raise DataAcquisitionError(
                "No dataset service token configured; set dataset_service.token or DW_AUTH_TOKEN"
            )

        owner, dataset_id = parts
        endpoint = f"{self.base_url}/sql/{owner}/{dataset_id}"
        headers = {'Authorization': f"Bearer {self.token}", 'Accept': 'text/csv'}
        start_time = time.time()
        logger.info(f"Querying {dataset_key}: {sql}")
        http = self.session or requests

        try:
            resp = http.post(endpoint, headers=headers, data={'query': sql}, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise DataAcquisitionError(f"Query against {dataset_key} failed: {e}") from e

        df = _parse_csv(resp.text, dataset_key)
        elapsed_time = time.time() - start_time
        logger.info(f"Query returned {len(df)} rows in {elapsed_time:.2f} seconds")
        return df


def load_dataset(source_cfg: Dict[str, Any], service_cfg: Optional[Dict[str, Any]] = None) -> pd.DataFrame:
    """Load a dataset described by a ``source`` config block."""
    source_type = source_cfg.get('type', 'local')
    service_cfg = service_cfg or {}

    if source_type == 'csv_url':
        return fetch_csv(
            source_cfg['url'],
            timeout=service_cfg.get('timeout_sec', 30),
            cache_path=source_cfg.get('cache_path'),
        )

    if source_type == 'query':
        client = DatasetQueryClient(
            token=service_cfg.get('token', ''),
            base_url=service_cfg.get('base_url', 'https://api.data.world/v0'),
            timeout=service_cfg.get('timeout_sec', 30),
        )
        return client.query(source_cfg['dataset_key'], source_cfg['sql'])

    if source_type == 'local':
        path = Path(source_cfg['path'])
        logger.info(f"Loading local dataset from {path}")
        return pd.read_csv(path)

    raise ValueError(f"Unknown data source type: {source_type}")
