"""
Shared test fixtures: an in-memory network port and real-disk capabilities.
"""

import json
import sys
from pathlib import Path

import pytest
from requests.structures import CaseInsensitiveDict

# Add the src directory to the path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from fetchoraw.core.config import Capabilities
from fetchoraw.utils.file_manager import LocalFileSystem


class FakeResponse:
    def __init__(self, body=b"", status_code=200, content_type=None, json_data=None):
        if json_data is not None:
            body = json.dumps(json_data).encode("utf-8")
        self.content = body
        self.status_code = status_code
        self.headers = CaseInsensitiveDict()
        if content_type:
            self.headers["Content-Type"] = content_type

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        return json.loads(self.content.decode("utf-8"))


class FakeNetwork:
    """Serves canned responses per URL and records every request."""

    def __init__(self, routes=None, default=None):
        self.routes = dict(routes or {})
        self.default = default
        self.calls = []

    def fetch(self, url, fetch_options=None):
        self.calls.append((url, fetch_options))
        response = self.routes.get(url, self.default)
        if response is None:
            return FakeResponse(status_code=404)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def capabilities(network):
    return Capabilities(network=network, filesystem=LocalFileSystem())
