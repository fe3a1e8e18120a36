# app/api/routes_users.py
# 내 프로필 (커뮤니티 공개 여부, FCM 토큰 포함)

from __future__ import annotations
import logging

from fastapi import APIRouter, Depends
from pymongo import ReturnDocument

from app.core.deps import CurrentUser, get_current_user
from app.core.errors import not_found
from app.db.init import get_db
from app.db.models.schemas import ProfileIn
from app.services.utils import utcnow

log = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _profile_out(doc: dict) -> dict:
    out = {k: v for k, v in doc.items() if k != "_id"}
    out["uid"] = doc["_id"]
    return out


@router.get("/profile")
async def get_profile(user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    doc = await db["users"].find_one({"_id": user.uid})
    if not doc:
        raise not_found("User not found")
    return _profile_out(doc)


@router.put("/profile")
async def update_profile(body: ProfileIn, user: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    changes = body.model_dump(exclude_unset=True)
    changes["updatedAt"] = utcnow()
    doc = await db["users"].find_one_and_update(
        {"_id": user.uid},
        {"$set": changes, "$setOnInsert": {"createdAt": utcnow()}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    log.info("profile updated uid=%s fields=%s", user.uid, sorted(changes))
    return _profile_out(doc)
