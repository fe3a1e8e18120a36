# app/api/routes_discover.py
# 외부 카탈로그 레시피 검색 (토큰 any-of + 난이도 + 페이지/랜덤)

from __future__ import annotations
from typing import Optional
import logging

from fastapi import APIRouter, Depends

from app.core.deps import CurrentUser, get_current_user
from app.core.errors import server_error
from app.db.init import get_db
from app.services.recipes import clean_catalog_descriptions
from app.services.search.engine import (
    DISCOVER_SURFACE, SearchFailed, SearchParams, SearchResponse, run_search,
)

log = logging.getLogger(__name__)

router = APIRouter(prefix="/discover", tags=["discover"])


@router.get("/search", response_model=SearchResponse)
async def search_recipes(
    query: Optional[str] = None,
    tag: Optional[str] = None,
    difficulty: Optional[str] = None,
    random: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    user: CurrentUser = Depends(get_current_user),
    db=Depends(get_db),
):
    params = SearchParams.from_request(
        DISCOVER_SURFACE,
        query=query, tag=tag, difficulty=difficulty,
        random=random, page=page, limit=limit,
    )
    try:
        result = await run_search(db["recipes"], DISCOVER_SURFACE, params, decorate=clean_catalog_descriptions)
    except SearchFailed as e:
        raise server_error(DISCOVER_SURFACE.failure_message, str(e.cause))

    log.info(
        "discover search uid=%s tokens=%s status=%s total=%d",
        user.uid, result.tokens, result.status.value, result.pagination.total,
    )
    return result.to_response()
