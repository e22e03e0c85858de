"""
Pytest configuration and fixtures for the image studio API.

The Supabase client is replaced by an in-memory fake that implements the same
execute_query / execute_rpc surface the repositories use, plus storage and auth.
"""
import os
import copy
import re
import time
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

import jwt
import pytest
from fastapi.testclient import TestClient

# Set testing environment variables before importing the app
os.environ["ENVIRONMENT"] = "test"
os.environ["SUPABASE_URL"] = "https://test.supabase.co"
os.environ["SUPABASE_ANON_KEY"] = "test-anon-key"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-service-role-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-key-for-testing-only-0123456789"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PERSIST_GENERATED_IMAGES"] = "false"
os.environ["GENERATION_CREDIT_COST"] = "5"
os.environ["PUBLIC_APP_URL"] = "https://studio.example.com"

from main import app
from database import get_database
from middleware.rate_limiting import limiter
from routers.generations import get_fal_service
from utils.exceptions import DatabaseError, ExternalServiceError

TEST_JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]
STORAGE_PUBLIC_BASE = "https://test.supabase.co/storage/v1/object/public"

TABLE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "generation_history": {"settings": {}},
    "favorites": {"collection_id": None},
    "collections": {"description": None, "updated_at": None},
    "prompt_library": {
        "description": None,
        "style": None,
        "is_public": False,
        "example_image_url": None,
        "likes_count": 0,
    },
    "payment_requests": {
        "status": "pending",
        "transaction_id": None,
        "payment_screenshot_url": None,
        "approved_by": None,
        "approved_at": None,
        "updated_at": None,
    },
}


def _matches(value: Any, expected: Any) -> bool:
    return value == expected or str(value) == str(expected)


def _ilike(pattern: str) -> re.Pattern:
    """Postgres ILIKE: % and _ are wildcards unless backslash-escaped."""
    regex = []
    chars = iter(pattern)
    for char in chars:
        if char == "\\":
            regex.append(re.escape(next(chars, "\\")))
        elif char == "%":
            regex.append(".*")
        elif char == "_":
            regex.append(".")
        else:
            regex.append(re.escape(char))
    return re.compile("".join(regex), re.IGNORECASE | re.DOTALL)


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    def upload(self, path: str, file_data: bytes, file_options: Optional[Dict[str, Any]] = None):
        if self.storage.fail_uploads:
            raise RuntimeError("storage unavailable")
        self.storage.objects[(self.name, path)] = (file_data, dict(file_options or {}))
        return SimpleNamespace(path=path)

    def get_public_url(self, path: str) -> str:
        return f"{STORAGE_PUBLIC_BASE}/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.objects: Dict[tuple, tuple] = {}
        self.fail_uploads = False

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)


class FakeAuthError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FakeAuth:
    """Enough of supabase-py's auth client for the auth router."""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.refresh_tokens: Dict[str, str] = {}
        self.confirm_email = False
        self.sign_up_calls: List[Dict[str, Any]] = []

    def _session(self, user) -> SimpleNamespace:
        refresh = f"refresh-{uuid4().hex}"
        self.refresh_tokens[refresh] = user.email
        return SimpleNamespace(
            access_token=make_access_token(user.id, user.email, user.user_metadata.get("display_name")),
            refresh_token=refresh,
            expires_in=3600,
            user=user
        )

    def sign_up(self, credentials: Dict[str, Any]):
        self.sign_up_calls.append(credentials)
        email = credentials["email"]
        if email in self.users:
            raise FakeAuthError("User already registered")
        user = SimpleNamespace(
            id=str(uuid4()),
            email=email,
            user_metadata=dict(credentials.get("options", {}).get("data") or {}),
            created_at=datetime.now(timezone.utc).isoformat()
        )
        self.users[email] = {"password": credentials["password"], "user": user}
        session = None if self.confirm_email else self._session(user)
        return SimpleNamespace(user=user, session=session)

    def sign_in_with_password(self, credentials: Dict[str, Any]):
        record = self.users.get(credentials["email"])
        if not record or record["password"] != credentials["password"]:
            raise FakeAuthError("Invalid login credentials")
        user = record["user"]
        return SimpleNamespace(user=user, session=self._session(user))

    def refresh_session(self, refresh_token: Optional[str] = None):
        email = self.refresh_tokens.pop(refresh_token or "", None)
        if email is None:
            raise FakeAuthError("Invalid Refresh Token: Refresh Token Not Found")
        user = self.users[email]["user"]
        return SimpleNamespace(user=user, session=self._session(user))


class FakeAdminAuth:
    def __init__(self):
        self.signed_out: List[str] = []

    def sign_out(self, jwt_token: str, scope: str = "global"):
        self.signed_out.append(jwt_token)


class FakeSupabaseClient:
    """
    In-memory stand-in for database.SupabaseClient.

    Tables are lists of dicts; inserted rows get an id and an increasing created_at.
    RPCs mirror the stored procedures the repositories call.
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.rpc_calls: List[tuple] = []
        self.rpc_overrides: Dict[str, Callable[[Dict[str, Any]], Any]] = {}
        self.failing_tables: set = set()
        self.storage = FakeStorage()
        self.auth = FakeAuth()
        self.admin_auth = FakeAdminAuth()
        self._tick = 0
        self._epoch = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def _now(self) -> str:
        self._tick += 1
        return (self._epoch + timedelta(seconds=self._tick)).isoformat()

    def seed(self, table: str, **row) -> Dict[str, Any]:
        """Insert a row directly and return it."""
        return self.execute_query(table, "insert", data=row, single=True)

    def credits_of(self, user_id: str) -> int:
        for row in self.tables["user_credits"]:
            if str(row["user_id"]) == str(user_id):
                return row["credits"]
        return 0

    def set_credits(self, user_id: str, credits: int) -> None:
        for row in self.tables["user_credits"]:
            if str(row["user_id"]) == str(user_id):
                row["credits"] = credits
                return
        self.tables["user_credits"].append({"user_id": str(user_id), "credits": credits})

    def _select(self, table, filters=None, in_filters=None, ilike=None, not_null=None):
        rows = []
        for row in self.tables[table]:
            if any(not _matches(row.get(k), v) for k, v in (filters or {}).items()):
                continue
            if any(str(row.get(k)) not in {str(x) for x in values} for k, values in (in_filters or {}).items()):
                continue
            if any(not _ilike(p).fullmatch(str(row.get(k) or "")) for k, p in (ilike or {}).items()):
                continue
            if any(row.get(c) is None for c in (not_null or [])):
                continue
            rows.append(row)
        return rows

    def execute_query(self, table: str, operation: str, data=None, filters=None, single=False,
                      order_by=None, limit=None, offset=None, in_filters=None, ilike=None,
                      not_null=None, use_service_key=True, columns="*"):
        if operation not in ("select", "insert", "update", "delete"):
            raise ValueError(f"Unsupported operation: {operation}")
        if operation in ("insert", "update") and not data:
            raise ValueError(f"Data required for {operation} operation")
        if table in self.failing_tables:
            raise DatabaseError(f"Database {operation} on {table} failed", operation=operation, table=table)

        if operation == "insert":
            items = data if isinstance(data, list) else [data]
            result = []
            for item in items:
                row = copy.deepcopy(TABLE_DEFAULTS.get(table, {}))
                row.update(copy.deepcopy(item))
                row.setdefault("id", str(uuid4()))
                row.setdefault("created_at", self._now())
                self.tables[table].append(row)
                result.append(row)
        elif operation == "update":
            result = self._select(table, filters, in_filters, ilike, not_null)
            for row in result:
                row.update(copy.deepcopy(data))
        elif operation == "delete":
            result = self._select(table, filters, in_filters, ilike, not_null)
            ids = {id(row) for row in result}
            self.tables[table] = [row for row in self.tables[table] if id(row) not in ids]
        else:
            result = self._select(table, filters, in_filters, ilike, not_null)
            if order_by:
                column, _, direction = order_by.partition(":")
                result = sorted(
                    result,
                    key=lambda r: (r.get(column) is not None, r.get(column) if r.get(column) is not None else 0),
                    reverse=direction.lower() == "desc"
                )
            if offset is not None and limit:
                result = result[offset:offset + limit]
            elif limit:
                result = result[:limit]

        rows = copy.deepcopy(result)
        if single:
            return rows[0] if rows else None
        return rows

    async def execute_query_async(self, table: str, operation: str, timeout: float = 10.0, **kwargs):
        return self.execute_query(table, operation, **kwargs)

    def execute_rpc(self, function_name: str, params: Optional[Dict[str, Any]] = None):
        params = params or {}
        self.rpc_calls.append((function_name, params))
        if function_name in self.rpc_overrides:
            return self.rpc_overrides[function_name](params)

        if function_name == "deduct_credits":
            balance = self.credits_of(params["_user_id"])
            if balance < params["_amount"]:
                return None
            self.set_credits(params["_user_id"], balance - params["_amount"])
            return balance - params["_amount"]
        if function_name == "add_credits":
            balance = self.credits_of(params["_user_id"]) + params["_amount"]
            self.set_credits(params["_user_id"], balance)
            return balance
        if function_name == "has_role":
            return bool(self._select("user_roles", {"user_id": params["_user_id"], "role": params["_role"]}))
        if function_name == "approve_payment_and_add_credits":
            matches = self._select("payment_requests", {"id": params["_payment_id"], "status": "pending"})
            if not matches:
                raise DatabaseError("Payment request not found or not pending", operation="rpc")
            payment = matches[0]
            now = self._now()
            payment.update({
                "status": "approved",
                "approved_by": params["_admin_id"],
                "approved_at": now,
                "updated_at": now,
            })
            self.set_credits(payment["user_id"], self.credits_of(payment["user_id"]) + payment["credits_requested"])
            return True
        raise DatabaseError(f"RPC {function_name} failed: unknown function", operation="rpc", table=function_name)

    async def execute_rpc_async(self, function_name: str, params: Optional[Dict[str, Any]] = None,
                                timeout: float = 10.0):
        return self.execute_rpc(function_name, params)


class FakeFALService:
    """Records calls and returns canned image URLs; set `error` to make calls fail."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None
        self.fail_after: Optional[int] = None
        self.images_returned: Optional[int] = None

    def _urls(self, count: int) -> List[str]:
        if self.fail_after is not None and len(self.calls) > self.fail_after:
            raise ExternalServiceError("FAL request failed", service_name="fal")
        if self.error is not None:
            raise self.error
        count = count if self.images_returned is None else self.images_returned
        return [f"https://fal.media/files/{uuid4().hex}.png" for _ in range(count)]

    async def generate(self, prompt: str, num_images: int = 1) -> List[str]:
        self.calls.append(("generate", prompt, None, num_images))
        return self._urls(num_images)

    async def edit(self, prompt: str, image_urls: List[str], num_images: int = 1) -> List[str]:
        self.calls.append(("edit", prompt, list(image_urls), num_images))
        return self._urls(num_images)


def make_access_token(user_id: str, email: Optional[str] = None, display_name: Optional[str] = None,
                      expires_in: int = 3600, secret: str = TEST_JWT_SECRET, audience: str = "authenticated",
                      algorithm: str = "HS256", **extra) -> str:
    """Supabase-shaped access token."""
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": "authenticated",
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        "user_metadata": {"display_name": display_name} if display_name else {},
        "app_metadata": {"provider": "email"},
    }
    payload.update(extra)
    return jwt.encode(payload, secret, algorithm=algorithm)


@pytest.fixture
def fake_db():
    return FakeSupabaseClient()


@pytest.fixture
def fake_fal():
    return FakeFALService()


@pytest.fixture
def client(fake_db, fake_fal):
    """Test client with the database and FAL overridden; lifespan is not run."""
    async def override_database():
        return fake_db

    app.dependency_overrides[get_database] = override_database
    app.dependency_overrides[get_fal_service] = lambda: fake_fal
    limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.reset()


@pytest.fixture
def user_id():
    return str(uuid4())


@pytest.fixture
def other_user_id():
    return str(uuid4())


@pytest.fixture
def auth_headers(user_id):
    token = make_access_token(user_id, "artist@example.com", "Artist")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(other_user_id):
    token = make_access_token(other_user_id, "other@example.com", "Other")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_id(fake_db):
    admin = str(uuid4())
    fake_db.seed("user_roles", user_id=admin, role="admin")
    fake_db.seed("profiles", id=admin, email="admin@example.com", display_name="Admin")
    return admin


@pytest.fixture
def admin_headers(admin_id):
    return {"Authorization": f"Bearer {make_access_token(admin_id, 'admin@example.com', 'Admin')}"}


@pytest.fixture
def seed_generation(fake_db, user_id):
    """Factory inserting generation_history rows for the test user."""
    def _seed(prompt: str = "a lighthouse at dusk", owner: Optional[str] = None, **fields) -> Dict[str, Any]:
        row = {
            "user_id": owner or user_id,
            "prompt": prompt,
            "image_data": fields.pop("image_data", f"https://fal.media/files/{uuid4().hex}.png"),
            "generation_type": fields.pop("generation_type", "text-to-image"),
            "settings": fields.pop("settings", {"aspect_ratio": "1:1", "style": "photorealistic"}),
        }
        row.update(fields)
        return fake_db.seed("generation_history", **row)
    return _seed


# Custom markers for test categorization
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "auth: mark test as authentication related")
    config.addinivalue_line("markers", "credits: mark test as credit accounting related")
    config.addinivalue_line("markers", "generation: mark test as generation related")
    config.addinivalue_line("markers", "library: mark test as history, favorites, collections or prompts related")
    config.addinivalue_line("markers", "payments: mark test as payment and admin related")
    config.addinivalue_line("markers", "integration: mark test as exercising the HTTP surface")
    config.addinivalue_line("markers", "unit: mark test as unit test")
