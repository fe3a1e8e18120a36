# app/api/routes_community.py
# 커뮤니티(공유된 AI/소셜 레시피) 검색 + 좋아요/저장/공유 카운터

from __future__ import annotations
from functools import partial
from typing import Optional
import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core.deps import CurrentUser, get_current_user
from app.core.errors import conflict, not_found, server_error
from app.db.init import get_db
from app.services.notifications import check_and_send_milestone_notification
from app.services.search.community import CommunityDecorator, exclude_for_requester
from app.services.search.engine import (
    COMMUNITY_SURFACE, SearchFailed, SearchParams, SearchResponse, run_search,
)
from app.services.utils import to_object_id, utcnow

log = logging.getLogger(__name__)

router = APIRouter(prefix="/community", tags=["community"])

# 카운터 종류 → (멤버십 컬렉션, 카운터 필드, 마일스톤 키)
LIKES = ("recipeLikes", "likeCount", "likes")
SAVES = ("recipeSaves", "saveCount", "saves")


@router.get("/recipes", response_model=SearchResponse)
async def community_recipes(
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
        COMMUNITY_SURFACE,
        query=query, tag=tag, difficulty=difficulty,
        random=random, page=page, limit=limit,
    )
    try:
        result = await run_search(
            db["recipes"],
            COMMUNITY_SURFACE,
            params,
            post_filter=partial(exclude_for_requester, requester_uid=user.uid),
            decorate=CommunityDecorator(db, user.uid),
        )
    except SearchFailed as e:
        raise server_error(COMMUNITY_SURFACE.failure_message, str(e.cause))

    log.info(
        "community search uid=%s tokens=%s status=%s fetched=%d returned=%d",
        user.uid, result.tokens, result.status.value, result.fetched, len(result.recipes),
    )
    return result.to_response()


async def _load_recipe(db, recipe_id: str) -> dict:
    oid = to_object_id(recipe_id)
    recipe = await db["recipes"].find_one({"_id": oid}) if oid else None
    if not recipe:
        raise not_found("Recipe not found")
    return recipe


async def _bump(db, oid, field: str, delta: int) -> dict:
    # $inc 는 원자적. 감소는 0 이상일 때만
    filt = {"_id": oid}
    if delta < 0:
        filt[field] = {"$gt": 0}
    updated = await db["recipes"].find_one_and_update(
        filt,
        {"$inc": {field: delta}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        # 이미 0 인 경우
        updated = await db["recipes"].find_one({"_id": oid})
    return updated or {}


async def _add_member(db, kind, recipe_id: str, user: CurrentUser, background: BackgroundTasks, already: str) -> dict:
    members, field, metric = kind
    recipe = await _load_recipe(db, recipe_id)
    if await db[members].find_one({"userId": user.uid, "recipeId": recipe_id}):
        raise conflict(already)
    try:
        # 동시 요청은 unique 인덱스가 막는다
        await db[members].insert_one({"userId": user.uid, "recipeId": recipe_id, "createdAt": utcnow()})
    except DuplicateKeyError:
        raise conflict(already)

    updated = await _bump(db, recipe["_id"], field, 1)
    count = updated.get(field, 0)
    if recipe.get("userId") and recipe.get("userId") != user.uid:
        background.add_task(
            check_and_send_milestone_notification,
            db, recipe["userId"], recipe_id, recipe.get("title") or "", metric, count,
        )
    return {"recipeId": recipe_id, field: count}


async def _remove_member(db, kind, recipe_id: str, user: CurrentUser, missing: str) -> dict:
    members, field, _ = kind
    recipe = await _load_recipe(db, recipe_id)
    res = await db[members].delete_one({"userId": user.uid, "recipeId": recipe_id})
    if res.deleted_count == 0:
        raise not_found(missing)
    updated = await _bump(db, recipe["_id"], field, -1)
    return {"recipeId": recipe_id, field: updated.get(field, 0)}


@router.post("/recipes/{recipe_id}/like")
async def like_recipe(recipe_id: str, background: BackgroundTasks,
                      user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    out = await _add_member(db, LIKES, recipe_id, user, background, "Recipe already liked")
    return {**out, "isLiked": True}


@router.delete("/recipes/{recipe_id}/like")
async def unlike_recipe(recipe_id: str, user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    out = await _remove_member(db, LIKES, recipe_id, user, "Like not found")
    return {**out, "isLiked": False}


@router.post("/recipes/{recipe_id}/save")
async def save_recipe(recipe_id: str, background: BackgroundTasks,
                      user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    out = await _add_member(db, SAVES, recipe_id, user, background, "Recipe already saved")
    return {**out, "isSaved": True}


@router.delete("/recipes/{recipe_id}/save")
async def unsave_recipe(recipe_id: str, user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    out = await _remove_member(db, SAVES, recipe_id, user, "Save not found")
    return {**out, "isSaved": False}


@router.post("/recipes/{recipe_id}/share")
async def share_recipe(recipe_id: str, background: BackgroundTasks,
                       user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    recipe = await _load_recipe(db, recipe_id)
    updated = await _bump(db, recipe["_id"], "shareCount", 1)
    count = updated.get("shareCount", 0)
    if recipe.get("userId") and recipe.get("userId") != user.uid:
        background.add_task(
            check_and_send_milestone_notification,
            db, recipe["userId"], recipe_id, recipe.get("title") or "", "shares", count,
        )
    return {"recipeId": recipe_id, "shareCount": count}
