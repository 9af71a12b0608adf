import json
from typing import Dict, List, Optional
from urllib.parse import unquote

import pytest
import requests

from sharecrypto.encoding import b64
from sharecrypto.kem import generate_keypair
from sharing import ClientConfig, KeyDirectoryClient, UploadTransport

API_BASE = "http://backend.test"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeBackend:
    """
    Stands in for requests.Session: serves /keys/<id> from a dict of public
    keys and records every upload.
    """

    def __init__(self, public_keys: Dict[str, bytes]):
        self.public_keys = dict(public_keys)
        self.lookups: List[str] = []
        self.uploads: List[dict] = []
        self.upload_response = FakeResponse(201, {"id": "file-7f3a"})
        self.fail_lookup_with: Optional[Exception] = None
        self.fail_upload_with: Optional[Exception] = None

    def get(self, url, timeout=None):
        assert url.startswith(API_BASE + "/keys/")
        recipient_id = unquote(url[len(API_BASE + "/keys/"):])
        self.lookups.append(recipient_id)
        if self.fail_lookup_with is not None:
            raise self.fail_lookup_with
        if recipient_id not in self.public_keys:
            return FakeResponse(404, {"error": "not found"})
        return FakeResponse(200, {"publicKey": b64(self.public_keys[recipient_id])})

    def post(self, url, data=None, files=None, timeout=None):
        assert url == API_BASE + "/files/upload"
        if self.fail_upload_with is not None:
            raise self.fail_upload_with
        self.uploads.append({"data": data, "files": files})
        return self.upload_response


@pytest.fixture(scope="session")
def keypairs():
    """ML-KEM key pairs for the usual cast, generated once per test run."""
    return {name: generate_keypair() for name in ("alice", "bob", "carol")}


@pytest.fixture
def config():
    return ClientConfig(api_base=API_BASE, request_timeout=5.0)


@pytest.fixture
def backend(keypairs):
    return FakeBackend({name: pair[0] for name, pair in keypairs.items()})


@pytest.fixture
def directory(config, backend):
    return KeyDirectoryClient(config, session=backend)


@pytest.fixture
def transport(config, backend):
    return UploadTransport(config, session=backend)


@pytest.fixture
def connection_error():
    return requests.exceptions.ConnectionError("connection refused")
