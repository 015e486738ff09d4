"""Pytest configuration for ClarityTracking tests

WHAT: Shared fixtures for model, service and HTTP endpoint tests
WHY: Every test gets an isolated in-memory database and real RS256 session
     tokens signed by a throwaway key pair
REFERENCES:
    - clarity/main.py: FastAPI application
    - clarity/database.py: Engine factory and get_db
    - clarity/deps.py: Session verification
"""

import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from clarity.tests.tokens import PUBLIC_KEY_PEM, TEST_CLERK_ID, make_session_token

# Set test environment before anything imports clarity.settings
os.environ.pop("SKIP_ENV_VALIDATION", None)
os.environ["CLERK_JWT_KEY"] = PUBLIC_KEY_PEM
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
# Must be URL-safe base64-encoded 32-byte string
os.environ.setdefault("TOKEN_ENCRYPTION_KEY", "MDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDA=")
os.environ.setdefault("CLERK_SECRET_KEY", "sk_test_clarity")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_stripe")
os.environ.setdefault("CLERK_PUBLISHABLE_KEY", "pk_test_clarity")
os.environ.setdefault("POSTHOG_KEY", "phc_test")
os.environ.setdefault("POSTHOG_HOST", "https://us.i.posthog.com")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ADMIN_SECRET_KEY", "test-admin-secret")


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def test_db_engine():
    """Create in-memory test database engine (foreign keys on)."""
    from clarity.database import create_db_engine
    from clarity.models import Base

    engine = create_db_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    """Create test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)

    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


# ============================================================================
# Application & Client Fixtures
# ============================================================================

@pytest.fixture
def app(test_db_session):
    """Create FastAPI test application."""
    from clarity.database import get_db
    from clarity.main import create_app

    test_app = create_app()

    def override_get_db():
        yield test_db_session

    test_app.dependency_overrides[get_db] = override_get_db
    return test_app


@pytest.fixture
def client(app) -> TestClient:
    """Create TestClient for HTTP testing."""
    return TestClient(app)


# ============================================================================
# Authentication Fixtures
# ============================================================================

@pytest.fixture
def session_token():
    return make_session_token()


@pytest.fixture
def auth_headers(session_token):
    """Standard auth headers for requests."""
    return {"Authorization": f"Bearer {session_token}"}


# ============================================================================
# Model Fixtures
# ============================================================================

@pytest.fixture
def test_user(test_db_session):
    """Registered user matching the default session token."""
    from clarity.models import User

    user = User(clerk_id=TEST_CLERK_ID, email="owner@store.com", name="Store Owner")
    test_db_session.add(user)
    test_db_session.commit()
    test_db_session.refresh(user)
    return user


@pytest.fixture
def other_user(test_db_session):
    from clarity.models import User

    user = User(clerk_id="user_2otherTEST", email="other@store.com")
    test_db_session.add(user)
    test_db_session.commit()
    test_db_session.refresh(user)
    return user


@pytest.fixture
def test_website(test_db_session, test_user):
    """Website owned by test_user."""
    from clarity.models import Website

    website = Website(user_id=test_user.id, url="https://shop.example.com", name="Example Shop")
    test_db_session.add(website)
    test_db_session.commit()
    test_db_session.refresh(website)
    return website
