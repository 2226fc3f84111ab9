# backend/tests/integration/conftest.py
"""
File-backed SQLite shared by threads, each with its own session.
"""

from datetime import time

import pytest
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker

from venuebook.database import Base, build_engine
from venuebook.models import Field


@pytest.fixture
def file_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}")

    @event.listens_for(engine, "connect")
    def _wal(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(file_engine):
    return sessionmaker(bind=file_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def race_field(session_factory) -> Field:
    with session_factory() as db:
        field = Field(
            name="Lapangan Utama",
            open_time=time(8, 0),
            close_time=time(22, 0),
            price_per_hour=100_000,
        )
        db.add(field)
        db.commit()
        return field
