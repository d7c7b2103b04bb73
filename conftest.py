"""
Shared test fixtures: in-memory SQLite database, seed helpers, an admin
token and a TestClient wired to the eligibility router.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db import Base, get_db, session_scope
from utils.crud_user import create_user
from utils.auth_utils import create_token
from eligibility.config import EngineSettings
from eligibility.models import (
    University,
    Student,
    StudentTest,
    CoApplicant,
    Lead,
    LeadUniversity,
)
from eligibility.logic.config_store import onboard_lender
from eligibility.logic.runner import recompute_lead
from eligibility.logic.trigger import RecomputeQueue
from eligibility import routes

# University 80 (rank 50 -> A), student 79, co-applicant 80 (100 of 125 raw) -> overall 80
STRONG_STUDENT = {
    "highest_qualification": "bachelors",
    "tenth_percentage": 85,
    "twelfth_percentage": 80,
    "bachelors_percentage": 70,
    "pin_code_tier": "tier1",
}
STRONG_TESTS = [("ielts", 7.0)]
SALARIED_CO_APPLICANT = {
    "relationship": "sibling",
    "employment_type": "salaried",
    "monthly_salary": 80000,
    "employment_duration_years": 6,
}


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Seeder:
    """Writes collaborator rows the engine reads. Every helper commits."""

    def __init__(self, db):
        self.db = db
        self._clock = datetime(2025, 1, 1)

    def _tick(self) -> datetime:
        self._clock += timedelta(minutes=1)
        return self._clock

    def university(self, name="Test University", global_rank=50, country="UK") -> str:
        university = University(name=name, global_rank=global_rank, country=country)
        self.db.add(university)
        self.db.commit()
        return university.id

    def lender(self, name, config=None, **fields) -> str:
        lender = onboard_lender(self.db, name=name, config=config, **fields)
        lender.created_at = self._tick()
        self.db.commit()
        return lender.id

    def lead(
        self,
        universities=None,
        student=STRONG_STUDENT,
        tests=STRONG_TESTS,
        co_applicant=SALARIED_CO_APPLICANT,
        **fields
    ) -> str:
        student_row = Student(**student) if student is not None else None
        co_row = CoApplicant(**co_applicant) if co_applicant is not None else None
        self.db.add_all([row for row in (student_row, co_row) if row is not None])
        self.db.flush()

        values = {
            "loan_amount": 2000000,
            "study_destination": "UK",
            "loan_type": "unsecured",
            "intake_month": 9,
            "intake_year": 2026,
            "status": "new",
            "created_at": self._tick(),
        }
        values.update(fields)
        lead = Lead(
            student_id=student_row.id if student_row else None,
            co_applicant_id=co_row.id if co_row else None,
            **values
        )
        self.db.add(lead)
        self.db.flush()

        if student_row is not None:
            for test_type, score in tests or []:
                self.db.add(StudentTest(student_id=student_row.id, test_type=test_type, score=score))

        if universities is None:
            universities = [self.university()]
        for position, university in enumerate(universities):
            if isinstance(university, dict):
                link = LeadUniversity(lead_id=lead.id, custom_university_name=university["custom"], position=position)
            else:
                link = LeadUniversity(lead_id=lead.id, university_id=university, position=position)
            self.db.add(link)

        self.db.commit()
        return lead.id

    def user(self, role="admin", email=None) -> str:
        user = create_user(self.db, email=email or f"{role}@example.com", full_name=role.title(), role=role)
        self.db.commit()
        return user.id


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def settings():
    return EngineSettings(batch_delay_seconds=0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def queue(session_factory, settings, clock):
    return RecomputeQueue(
        lambda lead_id: recompute_lead(lead_id, session_factory, settings),
        debounce_seconds=settings.debounce_seconds,
        clock=clock,
    )


@pytest.fixture
def admin_headers(seed):
    user_id = seed.user(role="admin")
    return {"Authorization": f"Bearer {create_token(user_id)}"}


@pytest.fixture
def partner_headers(seed):
    user_id = seed.user(role="partner")
    return {"Authorization": f"Bearer {create_token(user_id)}"}


@pytest.fixture
def client(session_factory, settings, queue):
    app = FastAPI()
    app.include_router(routes.router)
    app.dependency_overrides[get_db] = lambda: session_scope(session_factory)
    app.dependency_overrides[routes.get_session_factory] = lambda: session_factory
    app.dependency_overrides[routes.get_engine_settings] = lambda: settings
    app.dependency_overrides[routes.get_recompute_queue] = lambda: queue
    return TestClient(app)
