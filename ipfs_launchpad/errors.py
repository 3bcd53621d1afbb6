"""
Exceptions raised while talking to an IPFS node
"""

from typing import Optional


class LaunchpadError(Exception):
    """Base exception for all launchpad errors"""


class TransportError(LaunchpadError):
    """The node could not be reached (connection refused, DNS, timeout)"""


class NotFoundError(LaunchpadError):
    """A CID or IPNS record could not be found or has expired"""


class ValidationError(LaunchpadError):
    """The node refused to publish because the path did not resolve"""


class FilesystemError(LaunchpadError):
    """Downloaded content could not be written locally"""


class APIError(LaunchpadError):
    """The node answered with an error or a response we cannot read"""

    def __init__(self, message: str, status_code: Optional[int] = None, node_message: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.node_message = node_message
