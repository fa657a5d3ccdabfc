"""
Shared fixtures for the layergraph tests.

No server and no fixture DB files required; every graph is synthetic and
built by tests/graph_fixtures.py.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from graph_fixtures import GraphBuilder, layered_app  # noqa: E402


@pytest.fixture
def builder() -> GraphBuilder:
    return GraphBuilder()


@pytest.fixture
def layered():
    return layered_app()


@pytest.fixture
def layered_store(layered):
    return layered.store()
