"""Services package."""

from fintrack.services.exchange import (
    CurrencyConverter,
    HttpRateProvider,
    RateCache,
    RateProviderError,
    RateProviderInterface,
)
from fintrack.services.remote import (
    GoogleDriveMirror,
    InMemoryRemoteMirror,
    RemoteAuthError,
    RemoteMirrorError,
    RemoteMirrorInterface,
    RemoteNotFoundError,
)
from fintrack.services.storage import (
    InMemoryBackend,
    KeyValueBackend,
    SQLiteBackend,
    StorageConnectionError,
    StorageError,
    StoreNotReadyError,
    TableStore,
)

__all__ = [
    # Exchange services
    "CurrencyConverter",
    "HttpRateProvider",
    "RateCache",
    "RateProviderError",
    "RateProviderInterface",
    # Remote mirror services
    "GoogleDriveMirror",
    "InMemoryRemoteMirror",
    "RemoteAuthError",
    "RemoteMirrorError",
    "RemoteMirrorInterface",
    "RemoteNotFoundError",
    # Storage services
    "InMemoryBackend",
    "KeyValueBackend",
    "SQLiteBackend",
    "StorageConnectionError",
    "StorageError",
    "StoreNotReadyError",
    "TableStore",
]
