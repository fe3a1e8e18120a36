# app/db/init.py
# Mongo 연결 (motor). startup 에서 connect_with_retry, 라우터는 Depends(get_db)

from __future__ import annotations
from typing import Optional
import asyncio
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.config import settings

log = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


async def init_db() -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is not None:
        return _db

    client = AsyncIOMotorClient(settings.MONGO_URI, serverSelectionTimeoutMS=5000)
    db = client[settings.MONGO_DB]
    try:
        # 준비 안 됐으면 여기서 예외
        await db.command("ping")
    except Exception:
        client.close()
        raise
    _client, _db = client, db
    return _db


async def connect_with_retry(attempts: int = 20, delay: float = 1.0) -> Optional[AsyncIOMotorDatabase]:
    """컨테이너 기동 순서 때문에 몽고가 늦게 뜨는 경우. 끝내 실패하면 None"""
    for i in range(attempts):
        try:
            db = await init_db()
            log.info("[db] ready (%s)", settings.MONGO_DB)
            return db
        except Exception as e:
            log.warning("[db] init retry %d/%d: %s", i + 1, attempts, e)
            await asyncio.sleep(delay)
    log.error("[db] init failed after %d retries", attempts)
    return None


def get_db() -> AsyncIOMotorDatabase:
    if _db is None:
        raise RuntimeError("MongoDB is not initialized yet.")
    return _db


async def db_status() -> str:
    # /health 용
    try:
        await get_db().command("ping")
        return "ok"
    except Exception as e:
        return f"error: {e}"


async def close_db() -> None:
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
