"""
Runtime settings read from the environment (and a local .env file)
"""

import os
import re
from typing import NamedTuple, Optional

from dotenv import load_dotenv

DEFAULT_API_ADDRESS = "localhost:5001"
DEFAULT_API_URL = "http://localhost:5001"
DEFAULT_TIMEOUT = 30.0
DEFAULT_OUTPUT = "launchpad-download.txt"
DEFAULT_LOG_DIR = "logs"

# /ip4/127.0.0.1/tcp/5001, /dns/node.local/tcp/5001, ...
_MULTIADDR = re.compile(r"^/(ip4|ip6|dns|dns4|dns6)/([^/]+)/tcp/(\d+)(?:/(http|https))?/?$")


def normalize_api_url(address: str) -> str:
    """Turn host:port or a /ip4/.../tcp/... multiaddr into an http(s) base URL"""
    address = address.strip().rstrip("/")
    match = _MULTIADDR.match(address)
    if match:
        protocol, host, port, scheme = match.groups()
        if protocol == "ip6":
            host = f"[{host}]"
        return f"{scheme or 'http'}://{host}:{port}"
    if "://" not in address:
        return f"http://{address}"
    return address


class Settings(NamedTuple):
    """Settings shared by the CLI and the workflow"""

    api_url: str
    timeout: Optional[float]
    key: str
    output: str
    log_dir: str


def parse_timeout(value: str) -> Optional[float]:
    """Parse a timeout in seconds; 0 or a negative value disables it"""
    seconds = float(value)
    return seconds if seconds > 0 else None


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Load settings, letting real environment variables win over the .env file"""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    timeout_raw = os.getenv("IPFS_TIMEOUT", str(DEFAULT_TIMEOUT))
    try:
        timeout = parse_timeout(timeout_raw)
    except ValueError as e:
        raise ValueError(f"IPFS_TIMEOUT must be a number of seconds, got {timeout_raw!r}") from e

    return Settings(
        api_url=normalize_api_url(os.getenv("IPFS_API_URL", DEFAULT_API_ADDRESS)),
        timeout=timeout,
        key=os.getenv("IPFS_KEY", ""),
        output=os.getenv("LAUNCHPAD_OUTPUT", DEFAULT_OUTPUT),
        log_dir=os.getenv("LAUNCHPAD_LOG_DIR", DEFAULT_LOG_DIR),
    )
