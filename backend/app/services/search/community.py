# app/services/search/community.py
# 커뮤니티 결과 꾸미기: 작성자 표시(공개 설정 존중) + 내 좋아요 여부

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
import asyncio
import logging

from app.services.search.tokens import chunked

log = logging.getLogger(__name__)


def exclude_for_requester(docs: List[Dict[str, Any]], requester_uid: str) -> List[Dict[str, Any]]:
    # 외부 카탈로그/작성자 없음/내 레시피 제외 (상류 필터와 중복이어도 다시 확인)
    return [
        d for d in docs
        if d.get("isExternal") is not True
        and d.get("userId")
        and d.get("userId") != requester_uid
    ]


async def _fetch_profile(db, uid: str) -> Tuple[str, Optional[Dict[str, Any]]]:
    try:
        user = await db["users"].find_one(
            {"_id": uid},
            {"displayName": 1, "photoURL": 1, "showProfileInCommunity": 1},
        )
    except Exception:
        # 작성자 한 명 실패는 전체 요청을 막지 않는다
        log.exception("Error fetching user profile for %s", uid)
        return uid, None
    if not user:
        return uid, None

    show = user.get("showProfileInCommunity") is not False  # 기본 공개
    return uid, {
        "displayName": (user.get("displayName") or None) if show else None,
        "photoURL": (user.get("photoURL") or None) if show else None,
        "showProfile": show,
    }


async def fetch_owner_profiles(db, owner_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    results = await asyncio.gather(*(_fetch_profile(db, uid) for uid in owner_ids))
    return {uid: profile for uid, profile in results if profile is not None}


async def fetch_liked_ids(db, uid: str, recipe_ids: List[str]) -> Set[str]:
    liked: Set[str] = set()
    for batch in chunked(recipe_ids):
        cur = db["recipeLikes"].find({"userId": uid, "recipeId": {"$in": batch}}, {"recipeId": 1})
        rows = await cur.to_list(length=len(batch))
        liked.update(r["recipeId"] for r in rows if r.get("recipeId"))
    return liked


class CommunityDecorator:
    """run_search(decorate=...) 에 넘기는 콜백"""

    def __init__(self, db, requester_uid: str):
        self.db = db
        self.requester_uid = requester_uid

    async def __call__(self, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not docs:
            return []

        owner_ids = list(dict.fromkeys(d["userId"] for d in docs if d.get("userId")))
        recipe_ids = [d["id"] for d in docs if d.get("id")]

        profiles = await fetch_owner_profiles(self.db, owner_ids)
        liked = await fetch_liked_ids(self.db, self.requester_uid, recipe_ids)

        out: List[Dict[str, Any]] = []
        for d in docs:
            profile = profiles.get(d.get("userId")) or {}
            out.append({
                **d,
                "sharedByUserId": d.get("userId"),
                "sharedByDisplayName": profile.get("displayName"),
                "sharedByPhotoUrl": profile.get("photoURL"),
                "likeCount": d.get("likeCount") or 0,
                "saveCount": d.get("saveCount") or 0,
                "isLiked": d.get("id") in liked,
            })
        return out
