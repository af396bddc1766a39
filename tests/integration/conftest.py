"""
Integration test conftest -- isolated stores and FastAPI TestClient.
"""
import os
import sys
import pytest
from unittest.mock import patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

# Force SQLite and the in-memory store for integration tests
os.environ["DATABASE_URL"] = ""
os.environ["STORE_BACKEND"] = "memory"

from starlette.testclient import TestClient


@pytest.fixture(scope="session")
def client():
    """Create a TestClient for the FastAPI app."""
    with patch("pi_dashboard.config.STORE_BACKEND", "memory"):
        from pi_dashboard.main import app
        with TestClient(app, raise_server_exceptions=False) as c:
            yield c


@pytest.fixture(autouse=True)
def fresh_stores():
    """Every test starts from empty boards."""
    from pi_dashboard.dependencies import reset_stores
    with patch("pi_dashboard.config.STORE_BACKEND", "memory"):
        reset_stores()
        yield
        reset_stores()


@pytest.fixture
def as_unit():
    """Header factory for the calling unit."""
    def _headers(unit_id):
        return {"X-Unit-Id": unit_id}
    return _headers
