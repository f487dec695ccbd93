"""Remote and local dataset loading."""

from .remote_sources import (
    DataAcquisitionError,
    SignedUrlExpiredError,
    DatasetQueryClient,
    fetch_csv,
    load_dataset,
)

__all__ = [
    'DataAcquisitionError',
    'SignedUrlExpiredError',
    'DatasetQueryClient',
    'fetch_csv',
    'load_dataset',
]
