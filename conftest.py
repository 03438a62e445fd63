"""
Shared fixtures: a fake One Mail API served through httpx.MockTransport and
a NodeRegistry loaded from this repository's node_packages/.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import pytest

from onemail.config import settings
from onemail.credentials import service as credential_service
from onemail.workflows.engine.nodes.registry import NodeRegistry

PACKAGES_DIR = Path(__file__).parent / "node_packages"
IMPORT_PATH = "/api/bizfly/mail/automations/import-subscribe-manual"


class FakeOneMailAPI:
    """In-memory stand-in for the three One Mail endpoints the node uses."""

    def __init__(self):
        self.automations: List[Dict[str, Any]] = [
            {"uuid": "u1", "name": "A"},
            {"uuid": "u2", "name": "B"},
        ]
        self.fields: List[Dict[str, Any]] = [
            {"key": "k1", "label": "First", "type": "number"},
        ]
        self.import_response: Dict[str, Any] = {"success": True, "message": "Imported"}
        self.fail_fields_with: Optional[int] = None
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path == "/api/bizfly/mail/automations":
            return httpx.Response(200, json={"data": self.automations})
        if request.method == "GET" and path == "/api/bizfly/mail/fields":
            if self.fail_fields_with:
                return httpx.Response(self.fail_fields_with, json={"message": "unavailable"})
            return httpx.Response(200, json={"data": self.fields})
        if request.method == "POST" and path == IMPORT_PATH:
            return httpx.Response(200, json=self.import_response)
        return httpx.Response(404, json={"message": "not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @property
    def imports(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.calls("POST", IMPORT_PATH)]


@pytest.fixture
def onemail_api() -> FakeOneMailAPI:
    return FakeOneMailAPI()


@pytest.fixture
def api_credentials() -> Dict[str, Any]:
    return {"oneMailApi": {"api_key": "secret-key"}}


@pytest.fixture
def registry():
    NodeRegistry.reload_all(PACKAGES_DIR)
    yield NodeRegistry


@pytest.fixture(autouse=True)
def isolated_credentials(monkeypatch):
    monkeypatch.setattr(settings, "ONEMAIL_API_KEY", None)
    credential_service.clear_credentials()
    yield
    credential_service.clear_credentials()
