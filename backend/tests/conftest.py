# 공용 픽스처: 인메모리 Motor DB + 인증 우회 + ASGI 클라이언트
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient

from app.core.config import settings
from app.core.deps import CurrentUser, get_current_user
from app.db.init import get_db
from app.main import app
from app.services.cache import AppCaches
from app.services.llm_openai import RandomIngredientPicker

BASE_TIME = datetime(2024, 11, 1, 12, 0, tzinfo=timezone.utc)


class FakeAuth:
    """테스트 중에 요청자 uid 를 바꿀 수 있게"""

    def __init__(self, uid: str = "alice"):
        self.uid = uid

    def __call__(self) -> CurrentUser:
        return CurrentUser(uid=self.uid, email=f"{self.uid}@example.com")


@pytest.fixture
def db():
    return AsyncMongoMockClient()["recipes_test"]


@pytest.fixture
def auth():
    return FakeAuth()


@pytest.fixture
async def client(db, auth):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_current_user] = auth
    app.state.caches = AppCaches.from_settings(settings)
    app.state.ingredient_picker = RandomIngredientPicker()

    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def anon_client(db):
    # 인증 의존성을 덮어쓰지 않은 클라이언트
    app.dependency_overrides[get_db] = lambda: db
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def make_recipe(i: int, **overrides):
    # i 가 작을수록 최신
    doc = {
        "title": f"Recipe {i}",
        "tags": [],
        "ingredients": [],
        "searchableFields": [f"recipe {i}"],
        "difficulty": "Easy",
        "isExternal": True,
        "isDiscoverable": False,
        "createdAt": BASE_TIME - timedelta(hours=i),
    }
    doc.update(overrides)
    return doc
