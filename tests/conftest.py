"""
Shared fixtures: fresh in-memory database per test, in-memory fakes for
object storage and inference, and an HTTP client wired to both.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("FAL_KEY", "test-key")

from typing import Dict, Iterable, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from jewelshot.main import app
from jewelshot.api.deps import get_inference_client, get_object_store
from jewelshot.db import init_db, drop_db, async_session_maker, engine
from jewelshot.services import create_user
from jewelshot.services.errors import InferenceError
from jewelshot.services.fal_service import GenerationResult
from jewelshot.services.view_cache import get_view_cache

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 512
PASSWORD = "Sparkle123"


class FakeObjectStore:
    """Records objects in a dict keyed by (bucket, path)."""

    def __init__(self):
        self.objects: Dict[Tuple[str, str], bytes] = {}

    async def put_object(self, bucket: str, path: str, data: bytes, content_type: str) -> None:
        self.objects[(bucket, path)] = data

    async def delete_objects(self, bucket: str, paths: Iterable[str]) -> None:
        for p in paths:
            self.objects.pop((bucket, p), None)

    async def object_size(self, bucket: str, path: str) -> int:
        return len(self.objects.get((bucket, path), b""))

    def public_url(self, bucket: str, path: str) -> str:
        return f"http://storage.test/{bucket}/{path}"

    def paths(self, bucket: str = "images") -> List[str]:
        return [p for b, p in self.objects if b == bucket]


class FakeInferenceClient:
    """Returns one canned image per call; ``fail`` makes generation raise."""

    model = "fal-ai/flux-pro/v1.1-ultra"

    def __init__(self):
        self.calls: List[dict] = []
        self.fail: Optional[str] = None

    async def generate_image(self, **kwargs) -> GenerationResult:
        self.calls.append(kwargs)
        if self.fail:
            raise InferenceError(self.fail)
        return GenerationResult.model_validate({
            "images": [{
                "url": "https://fal.media/files/result.png",
                "width": 768,
                "height": 1344,
                "content_type": "image/png",
            }],
            "timings": {"inference": 4.2},
            "seed": kwargs.get("seed") or 1234,
            "has_nsfw_concepts": [False],
        })

    async def download_image(self, url: str) -> bytes:
        return PNG_BYTES

    async def close(self) -> None:
        pass


@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Create a fresh database for each test"""
    get_view_cache().clear()
    await init_db()
    yield
    await drop_db()
    # The in-memory connection belongs to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session():
    """Get a database session"""
    async with async_session_maker() as session:
        yield session


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def inference() -> FakeInferenceClient:
    return FakeInferenceClient()


@pytest_asyncio.fixture
async def client(object_store: FakeObjectStore, inference: FakeInferenceClient):
    """Create an async test client with fake external services"""
    app.dependency_overrides[get_object_store] = lambda: object_store
    app.dependency_overrides[get_inference_client] = lambda: inference
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def user(db_session):
    """A registered user with the default signup credits"""
    created = await create_user(db_session, email="maker@example.com", password=PASSWORD, full_name="Ada Maker")
    # Detach so tests calling ``expire_all()`` can still read ``user.id`` without async lazy-loading
    db_session.expunge(created)
    return created


@pytest_asyncio.fixture
async def auth_headers(client: AsyncClient, user):
    """Bearer headers for ``user``"""
    response = await client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
    assert response.status_code == 200
    token = response.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}
