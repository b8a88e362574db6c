"""Shared fixtures: an in-memory SQLite store with one resident profile."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.database import Base
from app.services.record_store import SqlRecordStore, PROFILES_TABLE
from app.services.session_provider import HostIdentity
import app.models  # noqa


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return SqlRecordStore(db)


@pytest.fixture
def host(store):
    profile = store.insert(PROFILES_TABLE, {
        "full_name": "Farid Ismail",
        "address": "No. 12, Jalan Ukay Perdana 3",
        "created_at": datetime.utcnow(),
    })
    return HostIdentity(id=profile.id, name=profile.full_name, address=profile.address)
