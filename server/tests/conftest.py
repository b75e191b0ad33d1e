import os
from datetime import timedelta

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-session-tokens-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import testmate.models  # noqa: F401
from testmate.database import Base, get_db, utcnow
from testmate.deps import get_clock
from testmate.models import AccountRole, Question
from testmate.services import one_time_tokens
from testmate.services.credentials import CredentialStore
from testmate.services.mailer import Mailer


class FakeClock:
    def __init__(self, now=None):
        self.now = now or utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingMailer(Mailer):
    def __init__(self):
        super().__init__("test@testmate.local")
        self.sent = []

    def send(self, to, subject, html):
        self.sent.append((to, subject, html))

    def subjects(self):
        return [subject for _, subject, _ in self.sent]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def make_account(db):
    """Create a verified account directly in the store."""
    store = CredentialStore(db)

    def _make(email="student@example.com", role=AccountRole.STUDENT, password="secret123",
              phone="PRN001", work="CSE", year_of_study="First Year", verified=True):
        account = store.register(
            name=email.split("@")[0], email=email, phone=phone, work=work,
            password=password, role=role, year_of_study=year_of_study,
        )
        account.verified = verified
        db.commit()
        return account

    return _make


@pytest.fixture
def make_question(db):
    def _make(subject_name="CS101", answer="A", choices=("A", "B", "C", "D"), topic="basics"):
        question = Question(
            topic=topic, question=f"Pick {answer}", subject_name=subject_name, choices=[],
        )
        for choice in choices:
            question.add_choice(choice)
        question.set_answer(answer)
        db.add(question)
        db.commit()
        return question

    return _make


@pytest.fixture
def client(session_factory, clock, mailer, monkeypatch):
    from testmate.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(one_time_tokens, "generate_otp", lambda length: "1234")
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.state.mailer = mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Sign up and verify through the API, then log in. Returns (user, auth headers)."""

    def _register(email="student@example.com", role="Student", password="secret123",
                  phone="PRN001", work="CSE", year_of_study="First Year"):
        response = client.post("/signup", json={
            "name": email.split("@")[0], "email": email, "phone": phone, "work": work,
            "password": password, "role": role, "year_of_study": year_of_study,
        })
        assert response.status_code == 201, response.json()
        user = response.json()["user"]
        response = client.post("/verify-email", json={"user_id": user["id"], "otp": "1234"})
        assert response.status_code == 200, response.json()
        response = client.post("/login", json={"email": email, "password": password, "role": role})
        assert response.status_code == 201, response.json()
        return response.json()["user"], {"Authorization": f"Bearer {response.json()['token']}"}

    return _register
