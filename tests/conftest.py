"""
Pytest configuration and fixtures for the trust core tests
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from ledtech.api.dependencies import SecurityServices
from ledtech.app import create_app
from ledtech.security.audit import AuditLogger
from ledtech.security.crypto import hash_password
from ledtech.security.csrf import CSRFGuard
from ledtech.security.directory import InMemoryUserDirectory, UserRecord
from ledtech.security.guard import RequestGuard
from ledtech.security.permissions import Role
from ledtech.security.sessions import SessionManager
from ledtech.security.stores import MemoryStore
from ledtech.security.tokens import TokenService

# Configure logging for tests
logging.basicConfig(level=logging.DEBUG)

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256-signing"
TEST_ROUNDS = 4
TEST_PASSWORD = "Str0ng!Passw0rd"


class FakeClock:
    """Controllable clock for expiry tests."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_request(
    method: str = "GET",
    path: str = "/api/test",
    headers: Optional[Dict[str, str]] = None,
    cookies: Optional[Dict[str, str]] = None,
    client: Optional[Tuple[str, int]] = ("10.0.0.1", 50000),
) -> Request:
    """Build a bare Starlette request."""
    raw_headers: List[Tuple[bytes, bytes]] = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or {}).items()
    ]
    if cookies:
        cookie = "; ".join(f"{k}={v}" for k, v in cookies.items())
        raw_headers.append((b"cookie", cookie.encode("latin-1")))

    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "root_path": "",
        "scheme": "http",
        "query_string": b"",
        "headers": raw_headers,
        "client": client,
        "server": ("testserver", 80),
    }
    return Request(scope)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def token_service():
    return TokenService(secret_key=TEST_SECRET)


@pytest.fixture(scope="session")
def password_hash():
    """Hash once per run; bcrypt is slow even at low cost."""
    return hash_password(TEST_PASSWORD, rounds=TEST_ROUNDS)


@pytest.fixture
def directory(password_hash):
    """Directory with one active user per role plus a deactivated account."""
    users = InMemoryUserDirectory()
    for role in Role:
        users.add_user(
            UserRecord(
                id=f"user_{role.value}",
                email=f"{role.value}@ledtech.com",
                name=f"{role.value.title()} User",
                role=role,
                password_hash=password_hash,
            )
        )
    users.add_user(
        UserRecord(
            id="user_inactive",
            email="inactive@ledtech.com",
            name="Inactive User",
            role=Role.EDITOR,
            is_active=False,
            password_hash=password_hash,
        )
    )
    return users


@pytest.fixture
def services(token_service, directory, clock):
    """Trust core wired with in-memory stores and a fake clock."""
    audit = AuditLogger(clock=clock)
    return SecurityServices(
        tokens=token_service,
        sessions=SessionManager(token_service, store=MemoryStore(), clock=clock),
        csrf=CSRFGuard(store=MemoryStore(), clock=clock),
        audit=audit,
        directory=directory,
        guard=RequestGuard(token_service, directory, audit),
        password_rounds=TEST_ROUNDS,
        cookie_secure=False,
    )


@pytest.fixture
def app(services):
    return create_app(services, run_maintenance=False)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def request_factory():
    return make_request


@pytest.fixture
def user_password():
    """Plain text password shared by every fixture user."""
    return TEST_PASSWORD
