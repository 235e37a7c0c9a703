"""
Pytest configuration and shared fixtures.
"""

from datetime import date
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from caredesk.database import Base, get_db
from caredesk.domain.linking.service import reset_linking_config
from caredesk.domain.patterns.details import generate_pattern_details_from_content
from caredesk.main import app
from caredesk.models import CareUser, ServicePattern, ServiceRecord, Staff, UserTimePattern


@pytest.fixture
def db_session(tmp_path) -> Session:
    """A fresh SQLite database file per test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'caredesk.db'}", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def client(db_session) -> TestClient:
    """API client bound to the test database."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def linking_defaults():
    """Linking config is process-wide; start every test from the defaults."""
    reset_linking_config()
    yield
    reset_linking_config()


@pytest.fixture
def make_user(db_session):
    def _make(name: str = "田中太郎", **kwargs) -> CareUser:
        user = CareUser(name=name, **kwargs)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_staff(db_session):
    def _make(name: str = "山田花子", **kwargs) -> Staff:
        staff = Staff(name=name, **kwargs)
        db_session.add(staff)
        db_session.commit()
        return staff

    return _make


@pytest.fixture
def make_pattern(db_session):
    def _make(name: str = "食事介助パターン", content: str = "食事介助") -> ServicePattern:
        pattern = ServicePattern(
            pattern_name=name, pattern_details=generate_pattern_details_from_content(content)
        )
        db_session.add(pattern)
        db_session.commit()
        return pattern

    return _make


@pytest.fixture
def make_record(db_session):
    def _make(
        user_name: str = "田中太郎",
        service_date: date = date(2024, 4, 1),
        start_time: str = "09:00",
        end_time: str = "09:30",
        service_content: Optional[str] = "食事介助",
        pattern: Optional[ServicePattern] = None,
        **kwargs,
    ) -> ServiceRecord:
        record = ServiceRecord(
            user_name=user_name,
            service_date=service_date,
            start_time=start_time,
            end_time=end_time,
            duration_minutes=kwargs.pop("duration_minutes", 30),
            service_content=service_content,
            pattern_id=pattern.id if pattern else None,
            is_pattern_assigned=pattern is not None,
            **kwargs,
        )
        db_session.add(record)
        db_session.commit()
        return record

    return _make


@pytest.fixture
def make_slot(db_session):
    def _make(
        user: CareUser, pattern: ServicePattern, day_of_week: int = 1, start: str = "09:00", end: str = "09:30"
    ) -> UserTimePattern:
        slot = UserTimePattern(
            user_id=user.id,
            pattern_id=pattern.id,
            pattern_name=pattern.pattern_name,
            pattern_details=pattern.pattern_details,
            start_time=start,
            end_time=end,
            day_of_week=day_of_week,
        )
        db_session.add(slot)
        db_session.commit()
        return slot

    return _make
