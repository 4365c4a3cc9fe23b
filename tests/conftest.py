# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - FakeSupabase: a scripted stand-in for the Supabase query builder
# - An app factory wired to fake services, plus signed test tokens
# =============================================================================

import os
import time
from collections import defaultdict, deque
from typing import Any
from unittest.mock import MagicMock

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from supabase import PostgrestAPIError

from app.auth.session import SessionManager
from app.config import Settings
from app.dependencies import ServiceContainer
from lib.supabase_client import NOT_FOUND_CODE

JWT_SECRET = "test-jwt-secret"
USER_ID = "11111111-1111-1111-1111-111111111111"
ADMIN_ID = "22222222-2222-2222-2222-222222222222"
OTHER_ID = "33333333-3333-3333-3333-333333333333"


# =============================================================================
# Fake Supabase
# =============================================================================

def pg_error(message: str = "database error", code: str = "XX000") -> PostgrestAPIError:
    """A PostgREST error as raised by `.execute()`."""
    return PostgrestAPIError({"message": message, "code": code, "hint": None, "details": None})


def not_found() -> PostgrestAPIError:
    """What `.single()` raises when no row matches."""
    return pg_error("JSON object requested, multiple (or no) rows returned", NOT_FOUND_CODE)


class FakeQuery:
    """
    One query chain. Builder methods record themselves and return self;
    `execute()` pops the next scripted outcome for the table.
    """

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.calls: list[tuple[str, tuple, dict]] = []

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)

        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return method

    @property
    def operation(self) -> str:
        for name, _, _ in self.calls:
            if name in ("insert", "update", "upsert", "delete"):
                return name
        return "select"

    def payload(self) -> Any:
        for name, args, _ in self.calls:
            if name in ("insert", "update", "upsert"):
                return args[0]
        return None

    def filters(self) -> dict[str, Any]:
        return {args[0]: args[1] for name, args, _ in self.calls if name == "eq"}

    def execute(self):
        self.db.executed.append(self)
        outcome = self.db.next_outcome(self.table)
        if isinstance(outcome, BaseException):
            raise outcome
        return MagicMock(data=outcome)


class FakeSupabase:
    """
    Scripted Supabase client.

    Usage:
        db = FakeSupabase()
        db.respond("tasks", [{"id": "t1", ...}])   # first execute on tasks
        db.respond("tasks", pg_error("boom"))     # second execute raises
        ...
        assert db.queries_on("tasks", "insert")
    """

    def __init__(self):
        self.responses: dict[str, deque] = defaultdict(deque)
        self.queries: list[FakeQuery] = []
        self.executed: list[FakeQuery] = []
        self.auth = MagicMock()
        self.postgrest = MagicMock()

    def respond(self, table: str, *outcomes: Any) -> "FakeSupabase":
        self.responses[table].extend(outcomes)
        return self

    def next_outcome(self, table: str) -> Any:
        queue = self.responses[table]
        return queue.popleft() if queue else []

    def table(self, name: str) -> FakeQuery:
        query = FakeQuery(self, name)
        self.queries.append(query)
        return query

    def queries_on(self, table: str, operation: str | None = None) -> list[FakeQuery]:
        return [
            q for q in self.executed
            if q.table == table and (operation is None or q.operation == operation)
        ]


# =============================================================================
# Tokens & App
# =============================================================================

def make_token(user_id: str = USER_ID, email: str = "user@example.com", expires_in: int = 3600, **claims) -> str:
    """HS256 access token signed with the test secret."""
    now = int(time.time())
    payload = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
        **claims,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


def auth_headers(user_id: str = USER_ID) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Supabase Auth should not be called", request=request)


@pytest.fixture
def settings():
    return Settings(
        SUPABASE_URL="https://test-project.supabase.co",
        SUPABASE_ANON_KEY="test-anon-key",
        SUPABASE_SERVICE_KEY="test-service-key",
        SUPABASE_JWT_SECRET=JWT_SECRET,
        OPENAI_API_KEY="test-openai-key",
        ENVIRONMENT="development",
    )


@pytest.fixture
def db():
    """User-scoped fake client."""
    return FakeSupabase()


@pytest.fixture
def admin_db():
    """Elevated-privilege fake client."""
    return FakeSupabase()


@pytest.fixture
def auth_transport():
    """
    Swappable handler for calls the session manager makes to Supabase Auth.

    Tests set `auth_transport.handler = ...`; the default fails loudly.
    """
    holder = MagicMock()
    holder.handler = unreachable
    return holder


@pytest.fixture
def services(settings, db, admin_db, auth_transport):
    """ServiceContainer wired to fakes."""
    transport = httpx.MockTransport(lambda request: auth_transport.handler(request))
    supabase = MagicMock()
    supabase.for_user.return_value = db
    supabase.admin = admin_db
    supabase.has_admin = True

    assistant = MagicMock()
    assistant.configured = True

    cms = MagicMock()
    cms.configured = True

    return ServiceContainer(
        settings=settings,
        supabase=supabase,
        sessions=SessionManager(settings, http=httpx.AsyncClient(transport=transport)),
        cms=cms,
        assistant=assistant,
    )


@pytest.fixture
def client(services):
    """TestClient over an app using the fake services."""
    from app.main import create_app

    with TestClient(create_app(services=services), follow_redirects=False) as test_client:
        yield test_client


# =============================================================================
# Sample Rows
# =============================================================================

def profile_row(user_id: str = USER_ID, **overrides) -> dict[str, Any]:
    row = {
        "id": user_id,
        "business_name": "Acme Fitness",
        "business_category": "Fitness",
        "target_audience": None,
        "persona": None,
        "monthly_goal_short": 8,
        "monthly_goal_long": 2,
        "role": "user",
        "tier": "pro",
        "has_unlimited_free": False,
        "created_at": "2024-01-15T10:00:00+00:00",
        "updated_at": "2024-01-15T10:00:00+00:00",
        "social_links": [],
    }
    row.update(overrides)
    return row


def task_row(task_id: str = "task-1", user_id: str = USER_ID, **overrides) -> dict[str, Any]:
    row = {
        "id": task_id,
        "user_id": user_id,
        "title": "3 hooks that sell",
        "niche": "Marketing",
        "format": "Kratka Forma",
        "status": "idea",
        "is_admin_case_study": False,
        "created_at": "2024-01-15T10:00:00+00:00",
        "inspiration_links": [],
        "category": None,
    }
    row.update(overrides)
    return row


@pytest.fixture
def sample_profile_row():
    return profile_row()


@pytest.fixture
def sample_task_row():
    return task_row()
