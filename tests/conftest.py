"""Pytest configuration and fixtures.

``FakeSupabase`` stands in for ``supabase.AsyncClient``: it implements the
auth calls and the postgrest query-builder chain the application uses,
backed by in-memory dicts.
"""

import asyncio
import copy
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from postgrest.exceptions import APIError
from supabase import AuthApiError

from hdtn_connect.core.dependencies import (
    get_assistant_service, get_session_controller, get_supabase_client
)
from hdtn_connect.main import app
from hdtn_connect.modules.assistant.service import AssistantService
from hdtn_connect.modules.auth.service import SessionController
from hdtn_connect.modules.profiles.service import ProfileService


def api_error(code: str, message: str) -> APIError:
    return APIError({"code": code, "message": message, "hint": None, "details": None})


class FakeQuery:
    def __init__(self, store: "FakeSupabase", table: str):
        self.store = store
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.filters: List[tuple] = []
        self.row_limit: Optional[int] = None

    def select(self, *columns: str) -> "FakeQuery":
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self.op, self.payload = "update", payload
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append((column, value))
        return self

    def limit(self, size: int) -> "FakeQuery":
        self.row_limit = size
        return self

    def _matches(self, row: Dict[str, Any]) -> bool:
        return all(row.get(column) == value for column, value in self.filters)

    async def execute(self) -> SimpleNamespace:
        call_error = self.store.call_errors.pop(len(self.store.calls), None)
        self.store.calls.append((self.table, self.op))
        if self.op == "select" and self.store.select_gate is not None:
            await self.store.select_gate.wait()
        if self.store.error is not None:
            raise self.store.error
        if call_error is not None:
            raise call_error
        if self.op in self.store.op_errors:
            raise self.store.op_errors[self.op]
        if self.table in self.store.missing_tables:
            raise api_error("PGRST205", f"Could not find the table 'public.{self.table}' in the schema cache")

        rows = self.store.tables.setdefault(self.table, {})
        if self.op == "select":
            data = [copy.deepcopy(r) for r in rows.values() if self._matches(r)]
            if self.row_limit is not None:
                data = data[:self.row_limit]
            return SimpleNamespace(data=data, count=None)
        if self.op == "insert":
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            for row in new_rows:
                if row["id"] in rows:
                    raise api_error("23505", 'duplicate key value violates unique constraint "profiles_pkey"')
            for row in new_rows:
                rows[row["id"]] = copy.deepcopy(row)
            return SimpleNamespace(data=copy.deepcopy(new_rows), count=None)
        data = []
        for row in rows.values():
            if self._matches(row):
                row.update(copy.deepcopy(self.payload))
                data.append(copy.deepcopy(row))
        return SimpleNamespace(data=data, count=None)


class FakeRpc:
    def __init__(self, store: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.store = store
        self.name = name
        self.params = params

    async def execute(self) -> SimpleNamespace:
        self.store.calls.append((self.name, "rpc"))
        raise api_error("PGRST202", f"Could not find the function public.{self.name}(sql) in the schema cache")


class FakeSubscription:
    def __init__(self, auth: "FakeAuth", key: str):
        self.auth = auth
        self.key = key
        self.unsubscribe_calls = 0

    def unsubscribe(self):
        self.unsubscribe_calls += 1
        self.auth.subscribers.pop(self.key, None)


class FakeAuth:
    def __init__(self):
        self.accounts: Dict[str, tuple] = {}
        self.session: Optional[SimpleNamespace] = None
        self.subscribers: Dict[str, Callable] = {}
        self.subscriptions: List[FakeSubscription] = []
        self.confirm_email = False
        self.tokens: Dict[str, SimpleNamespace] = {}

    def create_user(self, email: str, password: str = "secret1", metadata: Optional[Dict[str, Any]] = None):
        user = SimpleNamespace(id=str(uuid4()), email=email, user_metadata=metadata or {})
        self.accounts[email] = (user, password)
        return user

    def _notify(self, event: str, session: Optional[SimpleNamespace]):
        for callback in list(self.subscribers.values()):
            callback(event, session)

    def _start_session(self, user: SimpleNamespace) -> SimpleNamespace:
        self.session = SimpleNamespace(access_token=uuid4().hex, user=user)
        self.tokens[self.session.access_token] = user
        self._notify("SIGNED_IN", self.session)
        return self.session

    def on_auth_state_change(self, callback: Callable) -> FakeSubscription:
        key = uuid4().hex
        self.subscribers[key] = callback
        subscription = FakeSubscription(self, key)
        self.subscriptions.append(subscription)
        return subscription

    async def get_session(self):
        return self.session

    async def get_user(self, jwt: str):
        user = self.tokens.get(jwt)
        if user is None:
            raise AuthApiError("invalid JWT: unable to parse or verify signature", 403, "bad_jwt")
        return SimpleNamespace(user=user)

    async def sign_up(self, credentials: Dict[str, Any]):
        email = credentials["email"]
        if email in self.accounts:
            raise AuthApiError("User already registered", 422, "user_already_exists")
        metadata = credentials.get("options", {}).get("data") or {}
        user = self.create_user(email, credentials["password"], metadata)
        if self.confirm_email:
            return SimpleNamespace(user=user, session=None)
        return SimpleNamespace(user=user, session=self._start_session(user))

    async def sign_in_with_password(self, credentials: Dict[str, Any]):
        account = self.accounts.get(credentials["email"])
        if account is None or account[1] != credentials["password"]:
            raise AuthApiError("Invalid login credentials", 400, "invalid_credentials")
        user = account[0]
        return SimpleNamespace(user=user, session=self._start_session(user))

    async def sign_out(self):
        self.session = None
        self._notify("SIGNED_OUT", None)

    def refresh(self):
        self.session = SimpleNamespace(access_token=uuid4().hex, user=self.session.user)
        self.tokens[self.session.access_token] = self.session.user
        self._notify("TOKEN_REFRESHED", self.session)


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.missing_tables: set = set()
        self.error: Optional[Exception] = None
        self.op_errors: Dict[str, Exception] = {}
        # Keyed by the zero-based index of the execute() call to fail
        self.call_errors: Dict[int, Exception] = {}
        self.select_gate: Optional[asyncio.Event] = None
        self.calls: List[tuple] = []
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params)

    def profile_rows(self) -> List[Dict[str, Any]]:
        return list(self.tables.get("profiles", {}).values())


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def profile_service(supabase: FakeSupabase) -> ProfileService:
    return ProfileService(supabase)


@pytest.fixture
async def controller(supabase: FakeSupabase):
    controller = SessionController(supabase)
    await controller.start()
    yield controller
    await controller.settle()
    controller.close()


@pytest.fixture
async def assistant():
    # No key: every call degrades to the unavailable answer
    service = AssistantService(None, "gemini-2.5-flash")
    yield service
    await service.aclose()


@pytest.fixture
async def client(supabase: FakeSupabase, controller: SessionController, assistant: AssistantService):
    app.dependency_overrides[get_supabase_client] = lambda: supabase
    app.dependency_overrides[get_session_controller] = lambda: controller
    app.dependency_overrides[get_assistant_service] = lambda: assistant
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
