"""Remote mirror services package."""

from fintrack.services.remote.interface import (
    RemoteAuthError,
    RemoteMirrorError,
    RemoteMirrorInterface,
    RemoteNotFoundError,
)
from fintrack.services.remote.google_drive import GoogleDriveMirror
from fintrack.services.remote.memory import InMemoryRemoteMirror

__all__ = [
    # Interface
    "RemoteMirrorInterface",
    # Exceptions
    "RemoteAuthError",
    "RemoteMirrorError",
    "RemoteNotFoundError",
    # Implementations
    "GoogleDriveMirror",
    "InMemoryRemoteMirror",
]
