"""
Global test configuration and fixtures for Retro Board

This module provides shared test fixtures and configuration that can be used
across all test modules. It includes database setup, client fixtures, and
common test utilities.
"""

import os
import tempfile
from pathlib import Path

# Point the application engine at a throwaway file before anything imports it
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_retroboard.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from retroboard.client.api import RetroApiClient
from retroboard.client.storage import LocalStorage
from retroboard.core.config import ClientSettings
from retroboard.db.init_db import init_database
from retroboard.db.session import create_db_engine, get_db
from retroboard.main import app
from tests.utils.factories import SessionFactory


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def test_engine():
    """Create a test database for each test function"""
    db_fd, db_path = tempfile.mkstemp(suffix=".db")
    engine = create_db_engine(f"sqlite:///{db_path}")
    init_database(bind=engine)

    yield engine

    engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Provide database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def override_get_db(session_factory):
    """Override database dependency for testing; one session per request"""
    def _override():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()
    return _override


# ============================================================================
# Application Client Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def reset_limiter():
    """Clear the limiter's in-memory counters around every test."""
    if hasattr(app.state, "limiter") and hasattr(app.state.limiter, "_storage"):
        app.state.limiter._storage.storage.clear()
    yield
    if hasattr(app.state, "limiter") and hasattr(app.state.limiter, "_storage"):
        app.state.limiter._storage.storage.clear()


@pytest.fixture(scope="function")
def client(session_factory):
    """Create FastAPI test client"""
    app.dependency_overrides[get_db] = override_get_db(session_factory)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def api_client(client):
    """Board API client talking to the app in-process"""
    return RetroApiClient(http_client=client)


@pytest.fixture(scope="function")
def client_settings(temp_directory):
    return ClientSettings(
        storage_path=temp_directory / "storage.json",
        autosave_delay=0.05,
        poll_interval=0.05,
    )


@pytest.fixture(scope="function")
def local_storage(client_settings):
    return LocalStorage(client_settings.storage_path)


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def created_session(client):
    """A fresh session created through the API, admin token included"""
    response = client.post("/api/sessions", json={"name": "Sprint 1"})
    assert response.status_code == 201
    return response.json()


@pytest.fixture(scope="function")
def expired_session(db_session):
    return SessionFactory.create_expired(db_session)


# ============================================================================
# Cleanup and Utilities
# ============================================================================

@pytest.fixture(scope="function", autouse=True)
def cleanup_test_files():
    """Automatically clean up test files after each test"""
    yield

    for test_file in Path(".").glob("test_*.db"):
        try:
            test_file.unlink()
        except FileNotFoundError:
            pass


@pytest.fixture(scope="function")
def temp_directory():
    """Provide temporary directory for test file operations"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


# ============================================================================
# Test Markers and Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers and settings"""
    config.addinivalue_line(
        "markers", "critical: mark test as critical path functionality"
    )
    config.addinivalue_line(
        "markers", "security: mark test as security-related"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on file location"""
    for item in items:
        path = str(item.path)
        if "integration" in path:
            item.add_marker(pytest.mark.integration)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
        if "security" in path:
            item.add_marker(pytest.mark.security)
