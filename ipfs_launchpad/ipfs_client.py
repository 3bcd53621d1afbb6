#!/usr/bin/env python3
"""
IPFS HTTP API client - thin wrapper over the node's /api/v0 RPC endpoints
"""

import io
import logging
import shutil
import tarfile
from datetime import timedelta
from http import HTTPStatus
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, NamedTuple, Optional, Union

import orjson
import requests

from ipfs_launchpad.config import DEFAULT_API_URL, DEFAULT_TIMEOUT, normalize_api_url
from ipfs_launchpad.durations import format_duration
from ipfs_launchpad.errors import (
    APIError,
    FilesystemError,
    NotFoundError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)

IPFS_PREFIX = "/ipfs/"

# Fragments of node error messages that mean "this content or record does not exist"
NOT_FOUND_MARKERS = (
    "not found",
    "no link named",
    "could not resolve name",
    "invalid path",
    "invalid cid",
    "expired",
)


class AddResult(NamedTuple):
    """Entry returned by /api/v0/add"""

    name: str
    cid: str
    size: int


class PublishResult(NamedTuple):
    """Entry returned by /api/v0/name/publish"""

    name: str
    value: str


class KeyInfo(NamedTuple):
    """Key pair known to the node"""

    name: str
    id: str


def ipfs_path(cid: str) -> str:
    """Canonical /ipfs/<cid> path, leaving existing /ipfs/ and /ipns/ paths alone"""
    if cid.startswith(IPFS_PREFIX) or cid.startswith("/ipns/"):
        return cid
    return f"{IPFS_PREFIX}{cid}"


def strip_ipfs_prefix(path: str) -> str:
    """Turn /ipfs/<cid> back into <cid>"""
    return path[len(IPFS_PREFIX):] if path.startswith(IPFS_PREFIX) else path


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _is_not_found(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in NOT_FOUND_MARKERS)


class IPFSClient:
    """Talks to a running IPFS node over its HTTP RPC API"""

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = normalize_api_url(api_url)
        self.timeout = timeout
        self.session = session or requests.Session()

    def __enter__(self) -> "IPFSClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def _post(
        self,
        operation: str,
        params: Optional[Dict[str, str]] = None,
        files: Optional[Dict[str, Any]] = None,
        fetches_content: bool = False,
    ) -> requests.Response:
        """POST to /api/v0/<operation> and map failures onto our error types

        fetches_content marks cat/get: the node keeps searching the network for
        content it does not have, so a read timeout there means "not found".
        """
        url = f"{self.api_url}/api/v0/{operation}"
        logger.debug(f"POST {url} params={params}")
        try:
            response = self.session.post(url, params=params, files=files, timeout=self.timeout)
        except requests.ReadTimeout as e:
            if fetches_content:
                arg = (params or {}).get("arg", "")
                logger.warning(f"{arg} not retrievable within {self.timeout}s ({operation})")
                raise NotFoundError(f"{arg} not retrievable within {self.timeout}s ({operation})") from e
            logger.error(f"IPFS node at {self.api_url} did not answer {operation} in time: {e}")
            raise TransportError(f"IPFS node at {self.api_url} did not answer {operation} in time: {e}") from e
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.error(f"Could not reach IPFS node at {self.api_url} for {operation}: {e}")
            raise TransportError(f"Could not reach IPFS node at {self.api_url} ({operation}): {e}") from e
        except requests.RequestException as e:
            logger.error(f"Request to {operation} failed: {e}")
            raise TransportError(f"Request to {operation} failed: {e}") from e

        self._raise_for_status(operation, response)
        return response

    def _raise_for_status(self, operation: str, response: requests.Response) -> None:
        if response.ok:
            return

        node_message = response.text.strip()
        try:
            payload = orjson.loads(response.content)
            if isinstance(payload, dict) and payload.get("Message"):
                node_message = str(payload["Message"])
        except orjson.JSONDecodeError:
            pass

        detail = f"{operation} failed ({response.status_code}): {node_message}"
        logger.error(detail)
        if response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR and _is_not_found(node_message):
            raise NotFoundError(detail)
        raise APIError(detail, status_code=response.status_code, node_message=node_message)

    def _json(self, operation: str, response: requests.Response) -> Any:
        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise APIError(f"{operation} returned invalid JSON: {response.text[:200]!r}") from e

    def add_bytes(self, data: bytes, filename: str = "file", pin: bool = True) -> AddResult:
        """Add raw bytes to the node and return the root entry"""
        response = self._post("add", params={"pin": _flag(pin)}, files={"file": (filename, data)})

        # add answers with one JSON object per line, the last one is the root
        lines = [line for line in response.content.splitlines() if line.strip()]
        if not lines:
            raise APIError("add returned an empty response")
        try:
            entry = orjson.loads(lines[-1])
            result = AddResult(name=entry.get("Name", filename), cid=entry["Hash"], size=int(entry.get("Size", 0)))
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise APIError(f"add returned an unexpected response: {lines[-1][:200]!r}") from e

        logger.info(f"Added {result.name} ({len(data)} bytes): {result.cid}")
        return result

    def add_str(self, text: str, pin: bool = True) -> str:
        """Add text to the node and return its CID"""
        return self.add_bytes(text.encode("utf-8"), pin=pin).cid

    def cat(self, cid: str) -> bytes:
        """Fetch the full content behind a CID"""
        path = ipfs_path(cid)
        response = self._post("cat", params={"arg": path}, fetches_content=True)
        logger.info(f"Read {len(response.content)} bytes from {path}")
        return response.content

    def cat_text(self, cid: str, encoding: str = "utf-8") -> str:
        data = self.cat(cid)
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as e:
            raise APIError(f"Content of {cid} is not valid {encoding} text") from e

    def get(self, cid: str, output_path: Union[str, Path]) -> Path:
        """Download a CID and write it at output_path (file or directory tree)"""
        path = ipfs_path(cid)
        target = Path(output_path)
        response = self._post("get", params={"arg": path}, fetches_content=True)

        try:
            written = _extract_archive(io.BytesIO(response.content), target)
        except tarfile.TarError as e:
            raise APIError(f"get returned an unreadable archive for {path}: {e}") from e
        except OSError as e:
            logger.error(f"Could not write {path} to {target}: {e}")
            raise FilesystemError(f"Could not write {path} to {target}: {e}") from e

        if not written:
            raise APIError(f"get returned an empty archive for {path}")
        logger.info(f"Downloaded {path} to {target} ({written} entries)")
        return target

    def publish(
        self,
        cid: str,
        key: str = "",
        lifetime: timedelta = timedelta(hours=24),
        ttl: timedelta = timedelta(0),
        resolve: bool = True,
        allow_offline: bool = False,
    ) -> PublishResult:
        """Point the IPNS name of key at cid

        A zero ttl is left out of the request so the node's default applies.
        An empty key publishes under the node's own identity.
        """
        path = ipfs_path(cid)
        params = {"arg": path, "resolve": _flag(resolve)}
        if key:
            params["key"] = key
        if lifetime:
            params["lifetime"] = format_duration(lifetime)
        if ttl > timedelta(0):
            params["ttl"] = format_duration(ttl)
        if allow_offline:
            params["allow-offline"] = "true"

        try:
            response = self._post("name/publish", params=params)
        except NotFoundError as e:
            if resolve:
                raise ValidationError(f"Refusing to publish {path}: it does not resolve ({e})") from e
            raise
        except APIError as e:
            if resolve and "resolv" in (e.node_message or "").lower():
                raise ValidationError(f"Refusing to publish {path}: {e.node_message}") from e
            raise

        payload = self._json("name/publish", response)
        try:
            result = PublishResult(name=payload["Name"], value=payload["Value"])
        except (KeyError, TypeError) as e:
            raise APIError(f"name/publish returned an unexpected response: {payload!r}") from e

        logger.info(f"Published {result.value} under /ipns/{result.name}")
        return result

    def resolve(self, key: str = "", nocache: bool = False) -> str:
        """Look up the CID currently published under key"""
        params = {"recursive": "true"}
        if key:
            params["arg"] = key
        if nocache:
            params["nocache"] = "true"

        response = self._post("name/resolve", params=params)
        payload = self._json("name/resolve", response)
        resolved = payload.get("Path") if isinstance(payload, dict) else None
        if not resolved:
            raise NotFoundError(f"name/resolve returned no path for {key or 'self'}")

        logger.info(f"Resolved {key or 'self'} to {resolved}")
        return strip_ipfs_prefix(resolved)

    def key_list(self) -> List[KeyInfo]:
        """List the key pairs known to the node (like `ipfs key list -l`)"""
        response = self._post("key/list", params={"l": "true"})
        payload = self._json("key/list", response)
        try:
            return [KeyInfo(name=key["Name"], id=key["Id"]) for key in payload.get("Keys") or []]
        except (KeyError, TypeError, AttributeError) as e:
            raise APIError(f"key/list returned an unexpected response: {payload!r}") from e

    def version(self) -> Dict[str, Any]:
        """Node version information, handy as a connectivity check"""
        payload = self._json("version", self._post("version"))
        if not isinstance(payload, dict):
            raise APIError(f"version returned an unexpected response: {payload!r}")
        return payload


def _member_destination(name: str, target: Path) -> Path:
    """Map an archive entry onto the target, the archive root becoming target itself"""
    parts = PurePosixPath(name).parts
    if not parts or PurePosixPath(name).is_absolute() or ".." in parts:
        raise FilesystemError(f"Refusing to write archive entry outside {target}: {name!r}")
    return target.joinpath(*parts[1:])


def _extract_archive(stream: io.BytesIO, target: Path) -> int:
    """Write the entries of a tar stream under target, returns the number written"""
    written = 0
    with tarfile.open(fileobj=stream, mode="r|") as archive:
        for member in archive:
            destination = _member_destination(member.name, target)
            if member.isdir():
                destination.mkdir(parents=True, exist_ok=True)
            elif member.isfile():
                destination.parent.mkdir(parents=True, exist_ok=True)
                source = archive.extractfile(member)
                with open(destination, "wb") as f:
                    shutil.copyfileobj(source, f)
            else:
                logger.warning(f"Skipping unsupported archive entry: {member.name}")
                continue
            written += 1
    return written
