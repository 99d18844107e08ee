"""
Pytest fixtures for btcgraph tests. Neo4j and Bitcoin Core are replaced by
the in-memory fakes in fakes.py.
"""

import pytest

from fakes import FakeGraphStore, FakeNode


@pytest.fixture
def store():
    return FakeGraphStore()


@pytest.fixture
def node():
    return FakeNode()


@pytest.fixture
def client(store, node):
    """FastAPI TestClient running the app lifespan against the fakes."""
    from fastapi.testclient import TestClient

    from btcgraph.api.server import create_app

    with TestClient(create_app(store=store, node=node)) as test_client:
        yield test_client
