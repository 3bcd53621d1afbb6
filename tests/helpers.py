"""
Test helpers: canned node responses and an in-memory stand-in for an IPFS node's HTTP API
"""

import hashlib
import io
import tarfile
from typing import Dict, List, Optional, Tuple

import orjson
import requests

API_URL = "http://ipfs.test:5001"
SELF_ID = "12D3KooWSelfPeerIdentity"
LAUNCHPAD_KEY_ID = "k51qzi5uqu5dlaunchpadkey"


def make_response(status_code: int, body: bytes) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = body
    return response


def json_response(payload, status_code: int = 200) -> requests.Response:
    return make_response(status_code, orjson.dumps(payload))


def error_response(message: str, status_code: int = 500) -> requests.Response:
    return json_response({"Message": message, "Code": 0, "Type": "error"}, status_code)


def fake_cid(data: bytes) -> str:
    return "Qm" + hashlib.sha256(data).hexdigest()[:44]


def tar_bytes(entries: List[Tuple[str, Optional[bytes]]]) -> bytes:
    """Build a tar archive; an entry with None content is a directory"""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as archive:
        for name, content in entries:
            info = tarfile.TarInfo(name)
            if content is None:
                info.type = tarfile.DIRTYPE
                archive.addfile(info)
            else:
                info.size = len(content)
                archive.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


class FakeIPFSNode:
    """Answers session.post() calls the way a node's /api/v0 endpoints do"""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.keys: Dict[str, str] = {"self": SELF_ID, "launchpad": LAUNCHPAD_KEY_ID}
        self.records: Dict[str, str] = {}
        self.calls: List[Tuple[str, dict]] = []
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def post(self, url: str, params=None, files=None, timeout=None) -> requests.Response:
        operation = url.split("/api/v0/", 1)[1]
        params = dict(params or {})
        self.calls.append((operation, params))
        handler = getattr(self, "handle_" + operation.replace("/", "_"), None)
        if handler is None:
            return make_response(404, b"404 page not found")
        return handler(params, files)

    def operations(self) -> List[str]:
        return [operation for operation, _ in self.calls]

    def _cid_from_path(self, path: str) -> str:
        return path[len("/ipfs/"):] if path.startswith("/ipfs/") else path

    def handle_add(self, params, files):
        filename, data = files["file"]
        cid = fake_cid(data)
        self.blobs[cid] = data
        return json_response({"Name": filename, "Hash": cid, "Size": str(len(data))})

    def handle_cat(self, params, files):
        cid = self._cid_from_path(params["arg"])
        if cid not in self.blobs:
            return error_response(f"block was not found locally (offline): ipld: could not find {cid}")
        return make_response(200, self.blobs[cid])

    def handle_get(self, params, files):
        cid = self._cid_from_path(params["arg"])
        if cid not in self.blobs:
            return error_response(f"block was not found locally (offline): ipld: could not find {cid}")
        return make_response(200, tar_bytes([(cid, self.blobs[cid])]))

    def handle_name_publish(self, params, files):
        path = params["arg"]
        if params.get("resolve") == "true" and self._cid_from_path(path) not in self.blobs:
            return error_response(f"could not resolve path {path!r}")
        key = params.get("key", "self")
        if key in self.keys:
            key_id = self.keys[key]
        elif key in self.keys.values():
            key_id = key
        else:
            return error_response(f"no key by the given name or PeerID was found: {key}")
        self.records[key_id] = path
        return json_response({"Name": key_id, "Value": path})

    def handle_name_resolve(self, params, files):
        name = params.get("arg", SELF_ID)
        key_id = self.keys.get(name, name)
        if key_id not in self.records:
            return error_response(f"could not resolve name: /ipns/{name}")
        return json_response({"Path": self.records[key_id]})

    def handle_key_list(self, params, files):
        return json_response({"Keys": [{"Name": name, "Id": key_id} for name, key_id in self.keys.items()]})

    def handle_version(self, params, files):
        return json_response({"Version": "0.24.0", "Commit": "", "Repo": "15", "System": "amd64/linux", "Golang": "go1.21.3"})

