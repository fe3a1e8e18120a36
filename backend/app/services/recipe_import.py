# app/services/recipe_import.py
# 링크 가져오기: 본문 수집 → 길이 컷 → LLM 파싱 → (비면) 제목으로 보완 → 출처/이미지 부착

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse
import logging
import time
import uuid

from app.services import llm_openai
from app.services.cache import AppCaches
from app.services.image_search import fetch_image, is_placeholder_url
from app.services.social import Platform, detect_platform, fetch_social, fetch_web_text

log = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 10000
INGREDIENTS_UNAVAILABLE = "Ingredients not available"
INSTRUCTIONS_UNAVAILABLE = "Instructions not available"


class ImportContentEmpty(Exception):
    pass


def truncate_content(content: Optional[str], max_length: int = MAX_CONTENT_CHARS) -> Optional[str]:
    """문장/줄 경계에서 자른다. 경계가 80% 이전이면 그냥 자르고 '...'"""
    if not content or len(content) <= max_length:
        return content
    log.info("Content too long (%d chars), truncating to %d", len(content), max_length)
    cut = content[:max_length]
    point = max(cut.rfind("."), cut.rfind("\n"))
    if point > max_length * 0.8:
        return cut[:point + 1]
    return cut + "..."


def extract_site_name(url: str) -> str:
    host = urlparse(url).hostname if url else None
    if not host:
        return "Web"
    name = host[4:] if host.startswith("www.") else host
    name = name.split(".")[0]
    return name[:1].upper() + name[1:] if name else "Web"


def _non_empty_list(value: Any) -> List[str]:
    return list(value) if isinstance(value, list) and value else []


async def fill_missing_details(title: str, ingredients: List[str], instructions: List[str]) -> Tuple[List[str], List[str]]:
    if ingredients and instructions:
        return ingredients, instructions

    log.info("Missing recipe details, generating from title %r", title)
    try:
        generated = await llm_openai.complete_from_title(title)
        if not ingredients:
            ingredients = _non_empty_list(generated.get("ingredients"))
        if not instructions:
            instructions = _non_empty_list(generated.get("instructions"))
    except Exception as e:
        log.error("Error generating recipe details from title: %s", e)

    return ingredients or [INGREDIENTS_UNAVAILABLE], instructions or [INSTRUCTIONS_UNAVAILABLE]


def build_source(platform: Platform, social: Optional[Dict[str, Any]], url: str) -> str:
    social = social or {}
    if platform is Platform.INSTAGRAM:
        return f"Instagram: @{social.get('username')}"
    if platform is Platform.TIKTOK:
        return f"TikTok: @{(social.get('author') or {}).get('username')}"
    if platform is Platform.YOUTUBE:
        return f"YouTube: {social.get('channelTitle')}"
    return extract_site_name(url).upper()


def _author(social: Optional[Dict[str, Any]]) -> Optional[str]:
    if not social:
        return None
    return social.get("username") or (social.get("author") or {}).get("username") or social.get("channelTitle")


def _platform_block(platform: Platform, social: Dict[str, Any]) -> Dict[str, Any]:
    if platform is Platform.INSTAGRAM:
        return {"instagram": {"shortcode": social.get("shortcode"), "username": social.get("username")}}
    if platform is Platform.TIKTOK:
        author = social.get("author") or {}
        return {"tiktok": {"videoId": social.get("videoId"), "username": author.get("username"), "nickname": author.get("nickname")}}
    if platform is Platform.YOUTUBE:
        keys = ("videoId", "channelTitle", "channelId", "thumbnailUrl", "duration", "viewCount", "likeCount", "commentCount")
        return {"youtube": {k: social.get(k) for k in keys}}
    return {}


async def _collect_content(url: str, platform: Platform, caches: AppCaches) -> Tuple[str, Optional[Dict[str, Any]]]:
    if platform is Platform.WEB:
        return await fetch_web_text(url), None

    key = f"{platform.value}_{url}"
    social = caches.social.get(key)
    if social is None:
        social = await fetch_social(platform, url)
        caches.social.set(key, social)
    text = social.get("caption") if platform is Platform.INSTAGRAM else social.get("description")
    return text or "", social


async def _parse(content: str, platform: Platform, caches: AppCaches) -> Dict[str, Any]:
    # 같은 본문(앞 100자)이면 LLM 재호출 안 함
    key = f"content_{content[:100]}"
    cached = caches.ai.get(key)
    if cached is not None:
        return cached
    parsed = await llm_openai.parse_recipe(truncate_content(content) or "", platform.is_social)
    if not parsed or not parsed.get("title"):
        raise ValueError("Unable to parse recipe from URL")
    caches.ai.set(key, parsed)
    return parsed


async def import_recipe(url: str, caches: AppCaches) -> Tuple[Dict[str, Any], bool]:
    """(레시피, fromCache) 반환"""
    t0 = time.perf_counter()
    cached = caches.recipes.get(url)
    if cached is not None:
        log.info("Recipe found in cache for %s", url)
        return cached, True

    platform = detect_platform(url)
    content, social = await _collect_content(url, platform, caches)
    if not content:
        raise ImportContentEmpty("No content extracted from URL")

    parsed = await _parse(content, platform, caches)
    title = parsed.get("title") or "Imported Recipe"
    ingredients, instructions = await fill_missing_details(
        title,
        _non_empty_list(parsed.get("ingredients")),
        _non_empty_list(parsed.get("instructions")),
    )

    social = social or {}
    image = social.get("imageUrl") or social.get("coverUrl") or social.get("thumbnailUrl")
    if not image:
        image = await fetch_image(title or "recipe", cache=caches.images, validation_cache=caches.image_checks)
    if is_placeholder_url(image):
        image = None

    recipe: Dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "title": title,
        "ingredients": ingredients,
        "instructions": instructions,
        "description": parsed.get("description") or "Imported recipe",
        "imageUrl": image or None,
        "cookingTime": parsed.get("cookingTime") or "30 minutes",
        "difficulty": parsed.get("difficulty") or "medium",
        "servings": parsed.get("servings") or "4",
        "source": build_source(platform, social, url),
        "sourceUrl": url,
        "sourcePlatform": platform.value,
        "author": _author(social),
        "tags": parsed.get("tags") or [],
        "nutrition": parsed.get("nutrition") or None,
        "createdAt": datetime.now(timezone.utc).isoformat(),
        **_platform_block(platform, social),
    }

    caches.recipes.set(url, recipe)
    caches.generated.extend([recipe])
    log.info("Recipe import completed %r in %.0fms", title, (time.perf_counter() - t0) * 1000)
    return recipe, False
