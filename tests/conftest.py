"""
Shared fixtures: an in-memory database, the seeded catalog and an authenticated learner
"""
import os

# Must be set before terve modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEED_CATALOG"] = "false"
os.environ["REDIS_URL"] = "redis://127.0.0.1:1/0"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from terve.auth import create_access_token, get_password_hash
from terve.db import engine
from terve.main import app
from terve.middleware.rate_limit import limiter
from terve.models import User
from terve.seed import seed_catalog
from terve.services.cache import cache


@pytest.fixture(autouse=True)
def database():
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def clean_state():
    limiter.reset()
    cache._memory_cache.clear()
    yield


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


@pytest.fixture
def catalog(session):
    return seed_catalog(session)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def learner(session):
    user = User(email="liisa@example.com", name="Liisa", hashed_password=get_password_hash("salasana"))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def other_learner(session):
    user = User(email="matti@example.com", name="Matti", hashed_password=get_password_hash("salasana"))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def auth_headers(learner):
    return {"Authorization": f"Bearer {create_access_token(str(learner.id))}"}
