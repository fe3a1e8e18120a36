# app/api/routes_user_recipes.py
# 내 레시피 CRUD (소유자만 접근) + AI 결과 저장

from __future__ import annotations
from typing import Any, Dict, List
import logging

from fastapi import APIRouter, Depends
from pymongo import ReturnDocument

from app.core.deps import CurrentUser, get_current_user
from app.core.errors import bad_request, forbidden, not_found
from app.db.init import get_db
from app.db.models.schemas import FavoriteIn, RecipeIn, RecipeUpdateIn, SaveFromAiIn
from app.services.recipes import build_update, new_recipe_doc
from app.services.utils import serialize_doc, to_object_id

log = logging.getLogger(__name__)

router = APIRouter(prefix="/user/recipes", tags=["user-recipes"])

LIST_LIMIT = 1000


async def _owned(db, recipe_id: str, user: CurrentUser, action: str) -> Dict[str, Any]:
    oid = to_object_id(recipe_id)
    doc = await db["recipes"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise not_found("Recipe not found")
    if doc.get("userId") != user.uid:
        raise forbidden(f"Not authorized to {action} this recipe")
    return doc


@router.get("")
async def list_my_recipes(user: CurrentUser = Depends(get_current_user), db=Depends(get_db)) -> List[Dict[str, Any]]:
    cur = db["recipes"].find({"userId": user.uid}).sort("createdAt", -1)
    return [serialize_doc(d) for d in await cur.to_list(length=LIST_LIMIT)]


# /{recipe_id} 보다 먼저 등록
@router.get("/favorites")
async def list_favorites(user: CurrentUser = Depends(get_current_user), db=Depends(get_db)) -> List[Dict[str, Any]]:
    cur = db["recipes"].find({"userId": user.uid, "isFavorite": True}).sort("updatedAt", -1)
    return [serialize_doc(d) for d in await cur.to_list(length=LIST_LIMIT)]


@router.get("/{recipe_id}")
async def get_my_recipe(recipe_id: str, user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    return serialize_doc(await _owned(db, recipe_id, user, "access"))


@router.post("", status_code=201)
async def create_recipe(body: RecipeIn, user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    if not body.title:
        raise bad_request("Title is required")
    # 직접 작성한 레시피는 커뮤니티 비공개
    doc = new_recipe_doc(user.uid, body.model_dump(), discoverable=False)
    res = await db["recipes"].insert_one(doc)
    doc["_id"] = res.inserted_id
    return serialize_doc(doc)


@router.put("/{recipe_id}")
async def update_recipe(recipe_id: str, body: RecipeUpdateIn,
                        user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    existing = await _owned(db, recipe_id, user, "update")
    update = build_update(existing, body.model_dump(exclude_unset=True))
    updated = await db["recipes"].find_one_and_update(
        {"_id": existing["_id"]},
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_doc(updated)


@router.delete("/{recipe_id}")
async def delete_recipe(recipe_id: str, user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    existing = await _owned(db, recipe_id, user, "delete")
    await db["recipes"].delete_one({"_id": existing["_id"]})
    # 좋아요/저장 멤버십 정리
    await db["recipeLikes"].delete_many({"recipeId": recipe_id})
    await db["recipeSaves"].delete_many({"recipeId": recipe_id})
    return {"message": "Recipe deleted successfully"}


@router.put("/{recipe_id}/favorite")
async def set_favorite(recipe_id: str, body: FavoriteIn,
                       user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    if body.isFavorite is None:
        raise bad_request("isFavorite field is required")
    existing = await _owned(db, recipe_id, user, "update")
    updated = await db["recipes"].find_one_and_update(
        {"_id": existing["_id"]},
        {"$set": build_update(existing, {"isFavorite": body.isFavorite})},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_doc(updated)


@router.post("/save-from-ai", status_code=201)
async def save_from_ai(body: SaveFromAiIn, user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    if not body.recipe:
        raise bad_request("Recipe data is required")
    recipe = RecipeIn.model_validate({"source": "ai-generated", **body.recipe})
    if not recipe.title:
        raise bad_request("Recipe title is required")

    data = recipe.model_dump()
    # 가져오기(소셜/웹) 가 아니면 AI 생성으로 본다
    if data.get("aiGenerated") is None:
        data["aiGenerated"] = not data.get("sourcePlatform")
    doc = new_recipe_doc(user.uid, data)
    res = await db["recipes"].insert_one(doc)
    doc["_id"] = res.inserted_id
    log.info("saved AI recipe uid=%s discoverable=%s", user.uid, doc["isDiscoverable"])
    return serialize_doc(doc)
