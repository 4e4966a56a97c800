"""
Shared fixtures: a running mock EPP server and settings pointing at it.
"""

import os
import sys

import pytest

HERE = os.path.dirname(__file__)
sys.path.insert(0, HERE)

from mock_server import MockEPPServer  # noqa: E402
from pdt_epp.models import ConnectionConfig, Credentials  # noqa: E402


@pytest.fixture
def mock_server():
    server = MockEPPServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def config(mock_server):
    return ConnectionConfig(
        host=mock_server.host,
        port=mock_server.port,
        use_tls=False,
        timeout=5,
    )


@pytest.fixture
def credentials():
    return Credentials(client_id="registrar1", password="secret123")
