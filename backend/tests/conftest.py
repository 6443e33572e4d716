import json
import itertools
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from firebase_admin import auth
from google.api_core.exceptions import AlreadyExists

from openlearnhub.config import Settings
from openlearnhub.main import app
from openlearnhub.services.identity_service import IdentityGateway
from openlearnhub.services.llm_client import CompletionClient
from openlearnhub.services.quiz_result_service import QuizResultStore
from openlearnhub.services.token_service import SessionTokenService
from openlearnhub.services.youtube_service import VideoSearchService

JWT_SECRET = "test-signing-secret-that-is-long-enough-for-hs256"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


# ── Firestore stand-in ───────────────────────────────────────────────────────

class FakeSnapshot:
    def __init__(self, doc_id: str, data: Optional[Dict[str, Any]]):
        self.id = doc_id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, store: "FakeFirestore", collection: str, doc_id: str):
        self._store = store
        self._collection = collection
        self.id = doc_id

    def _docs(self) -> Dict[str, Dict[str, Any]]:
        return self._store.data.setdefault(self._collection, {})

    async def get(self):
        return FakeSnapshot(self.id, self._docs().get(self.id))

    async def set(self, data: Dict[str, Any]):
        self._store.check_write(self._collection)
        self._docs()[self.id] = dict(data)

    async def create(self, data: Dict[str, Any]):
        self._store.check_write(self._collection)
        if self.id in self._docs():
            raise AlreadyExists(f"Document already exists: {self._collection}/{self.id}")
        self._docs()[self.id] = dict(data)


class FakeQuery:
    def __init__(self, store: "FakeFirestore", collection: str, filters=None, limit: Optional[int] = None):
        self._store = store
        self._collection = collection
        self._filters = filters or []
        self._limit = limit

    def where(self, filter):
        assert filter.op_string == "=="
        return FakeQuery(self._store, self._collection, self._filters + [filter], self._limit)

    def limit(self, count: int):
        return FakeQuery(self._store, self._collection, self._filters, count)

    async def get(self) -> List[FakeSnapshot]:
        docs = self._store.data.get(self._collection, {})
        matches = [
            FakeSnapshot(doc_id, data)
            for doc_id, data in docs.items()
            if all(data.get(f.field_path) == f.value for f in self._filters)
        ]
        return matches[: self._limit] if self._limit is not None else matches


class FakeCollection(FakeQuery):
    def document(self, doc_id: str) -> FakeDocument:
        return FakeDocument(self._store, self._collection, doc_id)

    async def add(self, data: Dict[str, Any]):
        self._store.check_write(self._collection)
        doc_id = f"auto-{next(self._store.ids)}"
        self._store.data.setdefault(self._collection, {})[doc_id] = dict(data)
        return None, self.document(doc_id)


class FakeFirestore:
    def __init__(self):
        self.data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.failing_collections: set = set()
        self.ids = itertools.count(1)

    def check_write(self, collection: str) -> None:
        if collection in self.failing_collections:
            raise RuntimeError(f"write to {collection} unavailable")

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)


# ── Firebase Auth stand-in ───────────────────────────────────────────────────

class FakeAuth:
    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.id_tokens: Dict[str, Dict[str, Any]] = {}
        self.deleted: List[str] = []
        self._ids = itertools.count(1)

    def create_user(self, email=None, password=None, display_name=None, app=None):
        if any(u["email"] == email for u in self.users.values()):
            raise auth.EmailAlreadyExistsError(
                "The user with the provided email already exists (EMAIL_EXISTS).", None, None
            )
        uid = f"uid-{next(self._ids)}"
        self.users[uid] = {"email": email, "display_name": display_name}
        return SimpleNamespace(uid=uid)

    def delete_user(self, uid, app=None):
        self.users.pop(uid, None)
        self.deleted.append(uid)

    def verify_id_token(self, id_token, app=None):
        if id_token not in self.id_tokens:
            raise auth.InvalidIdTokenError("Could not verify token signature.")
        return self.id_tokens[id_token]


# ── HTTP stubs ───────────────────────────────────────────────────────────────

def completion_payload(content: Any) -> Dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class CompletionStub:
    """Programmable OpenRouter endpoint backed by httpx.MockTransport."""

    def __init__(self):
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json=completion_payload("ok")
        )
        self.requests: List[httpx.Request] = []

    def reply_with(self, content: Any, status_code: int = 200) -> None:
        self.handler = lambda request: httpx.Response(status_code, json=completion_payload(content))

    def reply_json(self, payload: Any, status_code: int = 200) -> None:
        self.handler = lambda request: httpx.Response(status_code, json=payload)

    def fail_transport(self) -> None:
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)
        self.handler = handler

    def last_body(self) -> Dict[str, Any]:
        return json.loads(self.requests[-1].content)

    def transport(self) -> httpx.MockTransport:
        def dispatch(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.handler(request)
        return httpx.MockTransport(dispatch)


# ── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture
def settings():
    return Settings(
        firebase_credentials={"type": "service_account"},
        openrouter_api_key="test-openrouter-key",
        jwt_secret=JWT_SECRET,
        youtube_api_key="test-youtube-key",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tokens(clock):
    return SessionTokenService(JWT_SECRET, clock=clock)


@pytest.fixture
def firestore_db():
    return FakeFirestore()


@pytest.fixture
def fake_auth():
    return FakeAuth()


@pytest.fixture
def identity(firestore_db, fake_auth):
    return IdentityGateway(firebase_app=None, db=firestore_db, auth_api=fake_auth)


@pytest.fixture
def completion_stub():
    return CompletionStub()


@pytest.fixture
def completion(completion_stub):
    return CompletionClient(api_key="test-openrouter-key", transport=completion_stub.transport())


@pytest.fixture
def client(settings, tokens, identity, completion, firestore_db):
    app.state.settings = settings
    app.state.token_service = tokens
    app.state.identity_gateway = identity
    app.state.completion_client = completion
    app.state.quiz_result_store = QuizResultStore(firestore_db)
    app.state.video_search = VideoSearchService(api_key=None)
    # Not used as a context manager so the lifespan (real Firebase) never runs.
    return TestClient(app)
