"""
Shared pytest fixtures and configuration for all tests
"""
import io
import os
from typing import AsyncGenerator

# Settings are read at import time; point them at throwaway resources first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./roomwise_test.db")
os.environ.setdefault("STORAGE_PATH", "./roomwise_test_storage")
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from roomwise.database.models import Base, Project, Room
from roomwise.services.api_cost import TokenUsage
from roomwise.services.auth_service import auth_service
from roomwise.services.chatgpt_service import ChatCompletionResult
from roomwise.services.google_ai_service import GeneratedImage
from roomwise.services.job_queue import InMemoryJobQueue
from roomwise.services.retry import RetryPolicy
from roomwise.services.storage_service import LocalObjectStorage

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


def make_image_bytes(color: str = "red", fmt: str = "JPEG") -> bytes:
    img = Image.new("RGB", (32, 32), color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


class FakeChatClient:
    """Stands in for ChatCompletionClient; replies are consumed in order (an Exception is raised)"""

    provider = "openai"

    def __init__(self, replies=None, model: str = "gpt-4o"):
        self.model = model
        self.replies = list(replies or [])
        self.calls = []
        self.configured = True

    async def complete_json(self, system_prompt, user_text, image_urls=(), max_tokens=2000, **kwargs):
        self.calls.append({"system_prompt": system_prompt, "user_text": user_text, "image_urls": list(image_urls)})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return ChatCompletionResult(
            content=reply,
            usage=TokenUsage(input_tokens=1000, output_tokens=500, total_tokens=1500),
            model=self.model,
        )


class FakeImageClient:
    provider = "google"

    def __init__(self, replies=None, model: str = "gemini-2.5-flash-image"):
        self.model = model
        self.replies = list(replies or [])
        self.calls = []
        self.configured = True

    async def generate_image(self, parts, temperature=0.4):
        self.calls.append(parts)
        reply = self.replies.pop(0) if self.replies else None
        if isinstance(reply, Exception):
            raise reply
        return GeneratedImage(data=make_image_bytes("blue", "PNG"), mime_type="image/png", usage=TokenUsage())


class FakeFetcher:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.urls = []

    async def fetch(self, url):
        from roomwise.core.exceptions import StorageError

        self.urls.append(url)
        if self.fail:
            raise StorageError("Failed to fetch image: HTTP 404")
        return make_image_bytes(), "image/jpeg"


class FakeSearchClient:
    provider = "serpapi"
    model = "google_shopping"

    def __init__(self, results=None, sellers=None, configured: bool = True):
        self.results = results or {}
        self.sellers = sellers or []
        self.configured = configured
        self.queries = []

    async def search(self, query):
        self.queries.append(query)
        result = self.results.get(query, [])
        if isinstance(result, Exception):
            raise result
        return result

    async def product_sellers(self, product_api_url):
        return self.sellers


@pytest.fixture
async def test_engine(tmp_path):
    """Create an async engine backed by a fresh SQLite file"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(root=str(tmp_path / "storage"), public_base_url="http://testserver")


@pytest.fixture
def queue():
    return InMemoryJobQueue()


@pytest.fixture
def no_wait_retry():
    """Retry policy without backoff delays"""
    return RetryPolicy(max_retries=2, base_delay=0.0, max_delay=0.0)


@pytest.fixture
def auth_headers():
    def _headers(user_id: str = USER_ID):
        token = auth_service.create_access_token({"sub": user_id})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_project(db_session):
    async def _make(user_id: str = USER_ID, **fields) -> Project:
        project = Project(user_id=user_id, name=fields.pop("name", "Apartment"), **fields)
        db_session.add(project)
        await db_session.commit()
        await db_session.refresh(project)
        return project

    return _make


@pytest.fixture
def make_room(db_session, storage):
    async def _make(project: Project, photo_count: int = 1, **fields) -> Room:
        photos = []
        for _ in range(photo_count):
            storage_id = await storage.store(make_image_bytes(), "image/jpeg")
            photos.append(
                {"storage_id": storage_id, "url": await storage.get_url(storage_id), "uploaded_at": "2026-01-01T00:00:00"}
            )
        room = Room(
            project_id=project.id,
            name=fields.pop("name", "Living room"),
            type=fields.pop("type", "living_room"),
            photos=photos,
            **fields,
        )
        db_session.add(room)
        await db_session.commit()
        await db_session.refresh(room)
        return room

    return _make


@pytest.fixture
def scene_analysis_json():
    return (
        '{"furniture": [{"item": "sofa", "location": "left wall", "condition": "worn", "style": "modern"}],'
        ' "lighting": {"natural": "abundant", "artificial": ["ceiling lamp"], "assessment": "Bright"},'
        ' "colors": {"dominant": ["white"], "accents": ["green"], "palette": "neutral"},'
        ' "layout": {"flow": "open", "focalPoint": "window", "issues": []},'
        ' "style": {"detected": "Scandinavian", "confidence": 0.8, "elements": ["light wood"]},'
        ' "photoDescriptions": ["Sofa and window"]}'
    )


@pytest.fixture
def quick_wins_json():
    items = ",".join(
        f'{{"id": "qw-{i}", "title": "Modern table lamp {i}", "description": "Add a lamp",'
        f' "category": "lighting", "estimatedCost": {{"min": 20, "max": 60, "currency": "USD"}},'
        f' "impact": "high", "difficulty": "diy", "reasoning": "Dark corner",'
        f' "visualizationPrompt": "add a lamp", "suggestedPhotoIndex": {i}}}'
        for i in range(5)
    )
    return f'{{"items": [{items}], "summary": "Brighten the room"}}'
