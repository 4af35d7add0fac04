"""Adapters for the remote workflow store."""

from canvas.adapters.base import ROOT_FOLDER, RemoteStore
from canvas.adapters.http_store import HttpRemoteStore
from canvas.adapters.memory_store import MemoryRemoteStore

__all__ = [
    "ROOT_FOLDER",
    "RemoteStore",
    "HttpRemoteStore",
    "MemoryRemoteStore",
]
