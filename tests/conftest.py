import os

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('BCRYPT_ROUNDS', '4')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from backend.auth import jwt_handler  # noqa: E402
from backend.auth.rate_limit import auth_rate_limiter  # noqa: E402
from backend.core import config  # noqa: E402
from backend.database import Base, get_db  # noqa: E402
from backend.main import app  # noqa: E402


@pytest.fixture
def portal_db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db_calls(portal_db):
    """Records every time a request asked for a database session."""
    calls = []

    def override_get_db():
        calls.append(True)
        yield portal_db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield calls
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def client(db_calls):
    auth_rate_limiter.reset()
    try:
        yield TestClient(app)
    finally:
        auth_rate_limiter.reset()


@pytest.fixture
def session_headers():
    def build(email: str, role: str) -> dict:
        token = jwt_handler.create_access_token(subject=email, role=role)
        return {'Cookie': f'{config.SESSION_COOKIE_NAME}={token}'}

    return build
