"""
IPFS Launchpad - add, read, download, publish and resolve content on an IPFS node
"""

from ipfs_launchpad.errors import (
    APIError,
    FilesystemError,
    LaunchpadError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from ipfs_launchpad.ipfs_client import IPFSClient
from ipfs_launchpad.workflow import run_workflow

__version__ = "1.0.0"

__all__ = [
    "APIError",
    "FilesystemError",
    "IPFSClient",
    "LaunchpadError",
    "NotFoundError",
    "TransportError",
    "ValidationError",
    "run_workflow",
]
