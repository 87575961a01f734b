"""Adapters — bindings between the installer and the host filesystem.

Public re-exports for convenient access.
"""

from lxguest.adapters.base import Adapter, ExecutionContext
from lxguest.adapters.filesystem import FilesystemAdapter
from lxguest.adapters.mock import MockAdapter

__all__ = [
    "Adapter",
    "ExecutionContext",
    "FilesystemAdapter",
    "MockAdapter",
]
