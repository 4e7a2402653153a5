"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database. The store commits, so a
rollback-per-test wrapper would not isolate anything; a new engine does.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chessfam.core.clock import utcnow
from chessfam.core.database import Base
from chessfam.models import Tournament, User


@pytest.fixture
def test_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(**fields):
        counter["n"] += 1
        fields.setdefault("name", f"Player {counter['n']}")
        fields.setdefault("email", f"player{counter['n']}@example.com")
        user = User(**fields)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def organizer(make_user):
    return make_user(name="Olga Organizer", email="organizer@example.com")


@pytest.fixture
def make_tournament(db_session, organizer):
    def _make_tournament(**fields):
        fields.setdefault("name", "Spring Open")
        fields.setdefault("organizer_id", organizer.id)
        fields.setdefault("start_date", utcnow() + timedelta(days=30))
        fields.setdefault("status", "upcoming")
        fields.setdefault("approval_status", "approved")
        fields.setdefault("entry_fee", Decimal("0"))
        fields.setdefault("current_participants", 0)
        tournament = Tournament(**fields)
        db_session.add(tournament)
        db_session.commit()
        db_session.refresh(tournament)
        return tournament

    return _make_tournament
