# app/main.py
# FastAPI 앱 초기화 및 라우터 설정
# 라우터는 각 기능별로 분리하여 관리

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes_ai import router as ai_router                      # AI 생성/가져오기
from app.api.routes_collections import router as collections_router    # 컬렉션
from app.api.routes_community import router as community_router        # 커뮤니티 검색/좋아요
from app.api.routes_discover import router as discover_router          # 외부 카탈로그 검색
from app.api.routes_user_recipes import router as user_recipes_router  # 내 레시피 CRUD
from app.api.routes_users import router as users_router                # 프로필
from app.core.config import settings
from app.core.errors import install_error_handlers
from app.core.firebase import init_firebase
from app.db.indexes import ensure_indexes
from app.db.init import close_db, connect_with_retry, db_status
from app.services.cache import AppCaches
from app.services.llm_openai import RandomIngredientPicker

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

app = FastAPI(title="Recipes - API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# 앱 인스턴스 단위 상태 (재시작/테스트 시 새로 만든다)
app.state.caches = AppCaches.from_settings(settings)
app.state.ingredient_picker = RandomIngredientPicker()


if settings.is_development:
    @app.middleware("http")
    async def request_log(request: Request, call_next):
        log.info("%s %s", request.method, request.url.path)
        return await call_next(request)


# 앱 시작/종료 이벤트 핸들러
@app.on_event("startup")
async def on_startup() -> None:
    # 1) DB (몽고가 늦게 뜨면 재시도) → 2) 인덱스
    db = await connect_with_retry()
    if db is not None:
        try:
            await ensure_indexes(db)
            log.info("[startup] indexes ensured")
        except Exception as e:
            log.error("[startup] ensure_indexes failed: %s", e)

    # 3) Firebase (없으면 인증 라우트는 401)
    try:
        init_firebase()
    except Exception as e:
        log.error("[startup] firebase init failed: %s", e)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await close_db()


@app.get("/")
async def root():
    return {"status": "ok", "message": "Recipe API is running"}


@app.get("/health")
async def health():
    return {"status": "ok", "db": await db_status()}


# prefix 는 각 라우터 파일에서 정의
app.include_router(discover_router)
app.include_router(community_router)
app.include_router(user_recipes_router)
app.include_router(collections_router)
app.include_router(users_router)
app.include_router(ai_router)
