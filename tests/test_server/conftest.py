"""Fixtures for HTTP tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from gridmind.server.app import create_app


@pytest.fixture
def app(test_settings, store, registry):
    return create_app(test_settings, store=store, registry=registry)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
