# Pytest configuration for backend API tests.
# Forces a local SQLite DB and a throwaway storage root, disables Redis, and wires JWT secrets for deterministic runs.
import os
import shutil
import tempfile
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

# Test-time environment: local SQLite DB, Redis disabled, predictable JWT secret, temp bucket storage
_STORAGE_DIR = tempfile.mkdtemp(prefix="keyat-storage-")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("KEYAT_JWT_SECRET", "test-secret")
os.environ.setdefault("KEYAT_STORAGE_ROOT", _STORAGE_DIR)
os.environ.setdefault("KEYAT_MAX_UPLOAD_BYTES", str(64 * 1024))

import sys
# Ensure the repo root is on sys.path so 'keyat' resolves when running pytest from anywhere
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from keyat.main import app  # noqa: E402
from keyat.db import Base, engine  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_db() -> Iterator[None]:
    """
    Session-level database bootstrap using a local SQLite file.

    Drops and recreates schema once per test session to ensure a clean slate.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    shutil.rmtree(_STORAGE_DIR, ignore_errors=True)


@pytest.fixture(autouse=True)
def _clean_db() -> Iterator[None]:
    """
    Function-level isolation: drop and recreate schema before each test.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def client() -> Iterator[TestClient]:
    """
    FastAPI TestClient bound to the application for HTTP-level tests.
    """
    with TestClient(app) as c:
        yield c
