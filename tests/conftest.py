"""
Shared fixtures
"""

import pytest

from ipfs_launchpad.ipfs_client import IPFSClient
from tests.helpers import API_URL, FakeIPFSNode


@pytest.fixture
def node() -> FakeIPFSNode:
    return FakeIPFSNode()


@pytest.fixture
def client(node) -> IPFSClient:
    return IPFSClient(api_url=API_URL, timeout=5, session=node)
