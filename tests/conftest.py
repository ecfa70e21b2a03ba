"""
Shared fixtures: a fake requests.Session and canned HTTP responses.
"""

import json
from unittest.mock import Mock

import pytest
import requests


@pytest.fixture
def http_response():
    """Factory for requests.Response stand-ins."""
    def make(status=200, body=None, content=None):
        response = Mock(spec=requests.Response)
        response.status_code = status
        if content is None:
            content = json.dumps(body).encode("utf-8") if body is not None else b""
        response.content = content
        return response
    return make


@pytest.fixture
def session():
    """A requests.Session whose request() is a Mock."""
    fake = Mock(spec=requests.Session)
    fake.request = Mock()
    return fake


@pytest.fixture
def client(session):
    """NetworkClient over the fake session that records delays instead of sleeping."""
    from voxrefine.network import NetworkClient

    delays = []
    network = NetworkClient(session=session, sleep=delays.append)
    network.delays = delays
    return network


@pytest.fixture
def pcm():
    """Half a second of silence as 24 kHz PCM16."""
    return b"\x00\x00" * 12000
