"""
Root conftest.py -- shared fixtures for all test levels.
"""
import os
import sys
import pytest

# Ensure pi_dashboard is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Force SQLite for testing (never hit production PostgreSQL)
os.environ["DATABASE_URL"] = ""
os.environ["STORE_BACKEND"] = "memory"


@pytest.fixture(scope="session")
def app():
    """Create the FastAPI app instance for testing."""
    # Must import after env vars are set
    from pi_dashboard.main import app as fastapi_app
    return fastapi_app


@pytest.fixture
def store():
    """Fresh in-memory accomplishment store."""
    from pi_dashboard.store import MemoryStore
    return MemoryStore("accomplishment")


@pytest.fixture
def target_store():
    from pi_dashboard.store import MemoryStore
    return MemoryStore("target")
