# app/services/recipes.py
# 레시피 문서 생성/수정 규칙 (검색 토큰, 공개 여부, 카운터 기본값)

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional

from app.services.search.tokens import build_searchable_fields, normalize_difficulty
from app.services.utils import clean_recipe_description, utcnow

SOCIAL_PLATFORMS = ("instagram", "tiktok", "youtube")
SEARCH_SOURCE_FIELDS = ("title", "ingredients", "tags")


def should_be_discoverable(recipe: Mapping[str, Any]) -> bool:
    """
    커뮤니티 검색 노출 여부
    - 외부 카탈로그 X
    - AI 생성 / 소셜 가져오기 O
    - 직접 작성(userId 만 있고 출처 없음) X
    """
    if recipe.get("isExternal") is True:
        return False
    if recipe.get("aiGenerated") is True:
        return True
    if recipe.get("sourcePlatform") in SOCIAL_PLATFORMS:
        return True
    if recipe.get("userId") and not recipe.get("aiGenerated") and not recipe.get("sourcePlatform"):
        return False
    return bool(recipe.get("userId"))


def new_recipe_doc(uid: str, data: Mapping[str, Any], *, discoverable: Optional[bool] = None) -> Dict[str, Any]:
    now = utcnow()
    doc: Dict[str, Any] = {
        "userId": uid,
        "title": data.get("title"),
        "cuisineType": data.get("cuisineType") or "",
        "description": data.get("description") or "",
        "ingredients": list(data.get("ingredients") or []),
        "instructions": list(data.get("instructions") or []),
        "imageUrl": data.get("imageUrl"),
        "cookingTime": data.get("cookingTime") or "",
        "difficulty": normalize_difficulty(data.get("difficulty")) or "",
        "servings": data.get("servings") or "",
        "tags": list(data.get("tags") or []),
        "source": data.get("source"),
        "sourcePlatform": data.get("sourcePlatform"),
        "sourceUrl": data.get("sourceUrl"),
        "author": data.get("author"),
        "instagram": data.get("instagram"),
        "nutrition": data.get("nutrition"),
        "aiGenerated": bool(data.get("aiGenerated")),
        "isExternal": False,
        "isFavorite": False,
        "likeCount": 0,
        "saveCount": 0,
        "shareCount": 0,
        "createdAt": now,
        "updatedAt": now,
    }
    doc["searchableFields"] = build_searchable_fields(doc["title"], doc["ingredients"], doc["tags"])
    doc["isDiscoverable"] = should_be_discoverable(doc) if discoverable is None else discoverable
    return doc


def build_update(existing: Mapping[str, Any], changes: Mapping[str, Any]) -> Dict[str, Any]:
    """$set 문서. title/ingredients/tags 중 하나라도 바뀌면 searchableFields 재생성"""
    update: Dict[str, Any] = dict(changes)
    if "difficulty" in update:
        update["difficulty"] = normalize_difficulty(update["difficulty"]) or ""
    if "isFavorite" in update:
        update["isFavorite"] = bool(update["isFavorite"])

    if any(k in update for k in SEARCH_SOURCE_FIELDS):
        merged = {k: update.get(k, existing.get(k)) for k in SEARCH_SOURCE_FIELDS}
        update["searchableFields"] = build_searchable_fields(merged["title"], merged["ingredients"], merged["tags"])

    update["updatedAt"] = utcnow()
    return update


async def clean_catalog_descriptions(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """discover 결과 꾸미기: 외부 카탈로그 설명문에서 추천 문구 꼬리 제거. 사용자 글은 그대로"""
    for doc in docs:
        if doc.get("isExternal") is True and isinstance(doc.get("description"), str):
            doc["description"] = clean_recipe_description(doc["description"])
    return docs
