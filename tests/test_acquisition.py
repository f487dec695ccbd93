"""
Test suite for remote dataset acquisition.
"""

import pytest
import pandas as pd
import requests
from unittest.mock import Mock, patch

from clinical_eda.data_acquisition import (
    DataAcquisitionError,
    DatasetQueryClient,
    SignedUrlExpiredError,
    fetch_csv,
    load_dataset,
)

CSV_BODY = "Age,Gender,Polyuria,class\n40,Male,Yes,Positive\n35,Female,No,Negative\n"
SIGNED_URL = "https://bucket.s3.amazonaws.com/data.csv?X-Amz-Expires=3600&X-Amz-Signature=abc123"


def _response(status=200, text=CSV_BODY):
    resp = Mock()
    resp.status_code = status
    resp.text = text
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    else:
        resp.raise_for_status.return_value = None
    return resp


class TestFetchCsv:
    """Test CSV download over HTTPS."""

    @patch('clinical_eda.data_acquisition.remote_sources.requests.get')
    def test_parses_body(self, mock_get):
        mock_get.return_value = _response()

        df = fetch_csv("https://example.org/data.csv", timeout=5)

        assert df.shape == (2, 4)
        assert list(df.columns) == ['Age', 'Gender', 'Polyuria', 'class']
        mock_get.assert_called_once_with("https://example.org/data.csv", timeout=5)

    @patch('clinical_eda.data_acquisition.remote_sources.requests.get')
    def test_expired_signed_url(self, mock_get):
        mock_get.return_value = _response(status=403, text="AccessDenied")

        with pytest.raises(SignedUrlExpiredError, match="expired"):
            fetch_csv(SIGNED_URL)

    @patch('clinical_eda.data_acquisition.remote_sources.requests.get')
    def test_expired_signed_url_uses_cache(self, mock_get, temp_directory):
        cache = temp_directory / "cached.csv"
        cache.write_text(CSV_BODY, encoding="utf-8")
        mock_get.return_value = _response(status=403, text="AccessDenied")

        df = fetch_csv(SIGNED_URL, cache_path=cache)

        assert len(df) == 2

    @patch('clinical_eda.data_acquisition.remote_sources.requests.get')
    def test_forbidden_plain_url_is_generic_error(self, mock_get):
        mock_get.return_value = _response(status=403)

        with pytest.raises(DataAcquisitionError) as excinfo:
            fetch_csv("https://example.org/data.csv")
        assert not isinstance(excinfo.value, SignedUrlExpiredError)

    @patch('clinical_eda.data_acquisition.remote_sources.requests.get')
    def test_network_error_wrapped(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(DataAcquisitionError, match="Failed to fetch"):
            fetch_csv("https://example.org/data.csv")

    @patch('clinical_eda.data_acquisition.remote_sources.requests.get')
    def test_error_message_hides_signature(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(DataAcquisitionError) as excinfo:
            fetch_csv(SIGNED_URL)
        assert "abc123" not in str(excinfo.value)

    @patch('clinical_eda.data_acquisition.remote_sources.requests.get')
    def test_empty_body(self, mock_get):
        mock_get.return_value = _response(text="   ")

        with pytest.raises(DataAcquisitionError, match="Empty"):
            fetch_csv("https://example.org/data.csv")

    @patch('clinical_eda.data_acquisition.remote_sources.requests.get')
    def test_writes_cache(self, mock_get, temp_directory):
        mock_get.return_value = _response()
        cache = temp_directory / "raw" / "data.csv"

        fetch_csv("https://example.org/data.csv", cache_path=cache)

        assert cache.exists()
        assert pd.read_csv(cache).shape == (2, 4)


class TestDatasetQueryClient:
    """Test SQL queries against the hosted dataset service."""

    def test_posts_query(self):
        session = Mock()
        session.post.return_value = _response(text="cancer_type,race,gender,year,survival_rate\nLung,White,Male,2010,17.5\n")
        client = DatasetQueryClient(token="secret", base_url="https://api.example.org/v0/", session=session)

        df = client.query("owner/cancer-stats", "SELECT * FROM survival")

        assert len(df) == 1
        args, kwargs = session.post.call_args
        assert args[0] == "https://api.example.org/v0/sql/owner/cancer-stats"
        assert kwargs['headers']['Authorization'] == "Bearer secret"
        assert kwargs['headers']['Accept'] == "text/csv"
        assert kwargs['data'] == {'query': "SELECT * FROM survival"}

    def test_bad_dataset_key(self):
        client = DatasetQueryClient(token="secret", session=Mock())
        with pytest.raises(ValueError, match="owner/dataset-id"):
            client.query("no-owner", "SELECT 1")

    def test_missing_token(self):
        session = Mock()
        client = DatasetQueryClient(token="", session=session)
        with pytest.raises(DataAcquisitionError, match="token"):
            client.query("owner/data", "SELECT 1")
        session.post.assert_not_called()

    def test_http_error_wrapped(self):
        session = Mock()
        session.post.return_value = _response(status=401, text="Unauthorized")
        client = DatasetQueryClient(token="bad", session=session)
        with pytest.raises(DataAcquisitionError, match="owner/data"):
            client.query("owner/data", "SELECT 1")


class TestLoadDataset:
    """Test source dispatch."""

    def test_local(self, temp_directory):
        path = temp_directory / "local.csv"
        path.write_text(CSV_BODY, encoding="utf-8")

        df = load_dataset({'type': 'local', 'path': str(path)})

        assert len(df) == 2

    @patch('clinical_eda.data_acquisition.remote_sources.fetch_csv')
    def test_csv_url(self, mock_fetch):
        mock_fetch.return_value = pd.DataFrame({'a': [1]})

        load_dataset({'type': 'csv_url', 'url': 'https://example.org/x.csv'}, {'timeout_sec': 7})

        mock_fetch.assert_called_once_with('https://example.org/x.csv', timeout=7, cache_path=None)

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown data source type"):
            load_dataset({'type': 'ftp'})
