# app/api/routes_collections.py
# 사용자 컬렉션 (레시피 묶음) CRUD

from __future__ import annotations
from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Depends
from pymongo import ReturnDocument

from app.core.deps import CurrentUser, get_current_user
from app.core.errors import bad_request, conflict, not_found
from app.db.init import get_db
from app.db.models.schemas import CollectionIcon, CollectionIn, CollectionRecipeIn
from app.services.utils import serialize_doc, to_object_id, utcnow

log = logging.getLogger(__name__)

router = APIRouter(prefix="/collections", tags=["collections"])


def _icon(icon: Optional[CollectionIcon]) -> Optional[Dict[str, Any]]:
    # codePoint 없는 아이콘은 버린다
    if icon is None or not icon.codePoint:
        return None
    return {"codePoint": icon.codePoint, "fontFamily": icon.fontFamily or None, "fontPackage": icon.fontPackage or None}


async def _mine(db, collection_id: str, user: CurrentUser) -> Dict[str, Any]:
    oid = to_object_id(collection_id)
    doc = await db["collections"].find_one({"_id": oid, "userId": user.uid}) if oid else None
    if not doc:
        raise not_found("Collection not found")
    return doc


@router.get("")
async def list_collections(user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    cur = db["collections"].find({"userId": user.uid}).sort("createdAt", -1)
    return [serialize_doc(d) for d in await cur.to_list(length=500)]


@router.get("/{collection_id}")
async def get_collection(collection_id: str, user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    return serialize_doc(await _mine(db, collection_id, user))


@router.post("", status_code=201)
async def create_collection(body: CollectionIn, user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    if not body.name:
        raise bad_request("Collection name is required")
    now = utcnow()
    doc: Dict[str, Any] = {
        "userId": user.uid,
        "name": body.name,
        "color": body.color,
        "recipes": body.recipes or [],
        "createdAt": now,
        "updatedAt": now,
    }
    icon = _icon(body.icon)
    if icon:
        doc["icon"] = icon
    res = await db["collections"].insert_one(doc)
    doc["_id"] = res.inserted_id
    return serialize_doc(doc)


@router.put("/{collection_id}")
async def update_collection(collection_id: str, body: CollectionIn,
                            user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    existing = await _mine(db, collection_id, user)
    changes = body.model_dump(exclude_unset=True, exclude={"icon"})
    icon = _icon(body.icon)
    if icon:
        changes["icon"] = icon
    changes["updatedAt"] = utcnow()
    updated = await db["collections"].find_one_and_update(
        {"_id": existing["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER,
    )
    return serialize_doc(updated)


@router.delete("/{collection_id}")
async def delete_collection(collection_id: str, user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    existing = await _mine(db, collection_id, user)
    await db["collections"].delete_one({"_id": existing["_id"]})
    return {"message": "Collection deleted successfully"}


@router.post("/{collection_id}/recipes")
async def add_recipe(collection_id: str, body: CollectionRecipeIn,
                     user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    if not body.recipe:
        raise bad_request("Recipe data is required")
    existing = await _mine(db, collection_id, user)
    recipes = existing.get("recipes") or []
    if any(r.get("id") == body.recipe.get("id") for r in recipes):
        raise conflict("Recipe already in collection")
    await db["collections"].update_one(
        {"_id": existing["_id"]},
        {"$push": {"recipes": body.recipe}, "$set": {"updatedAt": utcnow()}},
    )
    return {"message": "Recipe added to collection successfully"}


@router.delete("/{collection_id}/recipes/{recipe_id}")
async def remove_recipe(collection_id: str, recipe_id: str,
                        user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    existing = await _mine(db, collection_id, user)
    recipes = [r for r in existing.get("recipes") or [] if r.get("id") != recipe_id]
    await db["collections"].update_one(
        {"_id": existing["_id"]},
        {"$set": {"recipes": recipes, "updatedAt": utcnow()}},
    )
    return {"message": "Recipe removed from collection successfully"}
