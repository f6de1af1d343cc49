"""Shared fixtures: a throwaway SQLite database per test and an API client.

Settings are read once at import, so the environment is pinned here before
anything from qrstudio is imported.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DEBUG"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from qrstudio.core.security import create_access_token, hash_password
from qrstudio.db.base import Base
from qrstudio.db.session import build_engine, get_db
from qrstudio.main import app
import qrstudio.models  # noqa: F401
from qrstudio.models.profile import Profile

PASSWORD = "secret123"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture()
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path/'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture()
def client(session_factory):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(role="editor", email=None, name=None, plan="free", is_active=True, **extra):
        counter["n"] += 1
        n = counter["n"]
        user = Profile(
            name=name or f"User {n}",
            email=email or f"user{n}@example.com",
            hashed_password=PASSWORD_HASH,
            role=role,
            plan=plan,
            is_active=is_active,
            **extra,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def auth_header():
    def _header(user):
        token = create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _header
