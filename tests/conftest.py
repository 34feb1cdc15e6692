import os
import sys
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure project root is on sys.path so tests can import main.py
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from database.db import get_db, init_db
from main import app
from services.stores import EventStore


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_event(db):
    """Insert an event directly through the store and return it."""
    store = EventStore(db)

    def _make(**overrides):
        fields = {
            "title": "Science Fair",
            "description": "Annual science fair",
            "category": "academic",
            "location": "Gym",
            "date": date.today() + timedelta(days=7),
            "organizer_id": "teacher-1",
            "is_public": True,
            "requires_approval": False,
        }
        fields.update(overrides)
        event = store.add_event(**fields)
        store.commit()
        store.refresh(event)
        return event

    return _make
