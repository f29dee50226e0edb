import os
import pytest
from fastapi.testclient import TestClient

# Set test environment variables BEFORE any imports of the application
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SESSION_LOCK_BACKEND"] = "local"
os.environ["AUTO_CREATE_TABLES"] = "true"

from sessionlens.main import app
from sessionlens.database import Base, SessionLocal, engine
from sessionlens.models import SessionRecording


@pytest.fixture(autouse=True)
def clean_database():
    """Every test starts from an empty session table."""
    Base.metadata.create_all(bind=engine)
    yield
    db = SessionLocal()
    try:
        db.query(SessionRecording).delete()
        db.commit()
    finally:
        db.close()


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
