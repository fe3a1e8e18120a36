# app/api/routes_ai.py
# AI 레시피: 생성 / 링크 가져오기 / 대화 / 추천 / 스트리밍 / 이미지 검색 / 캐시 관리

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import asyncio
import logging
import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.core.config import settings
from app.core.deps import get_caches
from app.core.errors import bad_request, server_error, service_unavailable
from app.db.models.schemas import ChatIn, GenerateIn, ImportIn, SuggestIn
from app.services import llm_openai
from app.services.cache import AppCaches
from app.services.image_search import fetch_image, is_placeholder_url
from app.services.llm_openai import LLMNotReady
from app.services.recipe_import import import_recipe

log = logging.getLogger(__name__)

router = APIRouter(prefix="/ai/recipes", tags=["ai"])

LLM_NOT_READY = "AI features are not configured on this server."


def _to_generated(raw: Dict[str, Any], cuisine_type: str, image_url: Optional[str]) -> Dict[str, Any]:
    return {
        "id": str(uuid.uuid4()),
        "title": raw.get("title") or "Generated Recipe",
        "cuisineType": raw.get("cuisineType") or cuisine_type,
        "description": raw.get("description") or "Enjoy your generated recipe!",
        "ingredients": raw.get("ingredients") if isinstance(raw.get("ingredients"), list) else [],
        "instructions": raw.get("instructions") if isinstance(raw.get("instructions"), list) else [],
        "imageUrl": image_url or None,
        "cookingTime": raw.get("cookingTime") or "30 minutes",
        "difficulty": raw.get("difficulty") or "medium",
        "servings": raw.get("servings") or "4",
        "tags": raw.get("tags") or [],
        "nutrition": raw.get("nutrition") or None,
        "aiGenerated": True,
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }


async def _image_for(raw: Dict[str, Any], cuisine_type: str, caches: AppCaches) -> Optional[str]:
    title = raw.get("title") or "Generated Recipe"
    query = title if title != "Generated Recipe" else f"{cuisine_type or 'delicious'} food dish"
    url = await fetch_image(query, cache=caches.images, validation_cache=caches.image_checks)
    return None if is_placeholder_url(url) else url


@router.post("/generate")
async def generate(body: GenerateIn, request: Request, caches: AppCaches = Depends(get_caches)) -> List[Dict[str, Any]]:
    randomize = body.random or (not body.ingredients and not body.cuisineType)
    picked = request.app.state.ingredient_picker.pick() if randomize else None
    log.info("Generating recipes ingredients=%s cuisine=%r random=%s", body.ingredients, body.cuisineType, randomize)

    try:
        raws = await llm_openai.generate_recipes(body.ingredients, body.dietaryRestrictions, body.cuisineType, picked)
    except LLMNotReady:
        raise service_unavailable(LLM_NOT_READY)
    except Exception as e:
        log.exception("Error generating recipes")
        raise server_error("We couldn't generate recipes right now. Please try again shortly.", str(e))

    images = await asyncio.gather(*(_image_for(r, body.cuisineType, caches) for r in raws))
    recipes = [_to_generated(r, body.cuisineType, img) for r, img in zip(raws, images)]
    caches.generated.extend(recipes)
    log.info("Generated %d recipes", len(recipes))
    return recipes


@router.get("")
async def list_generated(page: Optional[str] = None, limit: Optional[str] = None,
                         caches: AppCaches = Depends(get_caches)):
    def _int(v: Optional[str], default: int) -> int:
        try:
            n = int(v) if v is not None else 0
        except ValueError:
            n = 0
        return n if n > 0 else default

    return caches.generated.page(_int(page, 1), _int(limit, 10))


@router.post("/import")
async def import_from_url(body: ImportIn, caches: AppCaches = Depends(get_caches)):
    if not body.url:
        raise bad_request("URL is required")
    try:
        recipe, from_cache = await import_recipe(body.url, caches)
    except LLMNotReady:
        raise service_unavailable(LLM_NOT_READY)
    except Exception as e:
        log.exception("Error importing recipe from %s", body.url)
        raise server_error(
            "We couldn't import that link right now. Please try another link or try again shortly.",
            str(e),
        )
    return {**recipe, "fromCache": from_cache}


@router.post("/chat")
async def chat(body: ChatIn):
    if not body.message:
        raise bad_request("Message is required")
    try:
        rsp = await llm_openai.chat_completion(
            llm_openai.build_chat_messages(body.message, body.conversationHistory), max_tokens=4000,
        )
    except LLMNotReady:
        raise service_unavailable(LLM_NOT_READY)
    except Exception as e:
        log.exception("Error in chat completion")
        raise server_error("We couldn't process your message right now. Please try again shortly.", str(e))
    return {"reply": rsp["content"], "usage": rsp["usage"], "model": rsp["model"]}


@router.post("/stream")
async def stream(body: ChatIn):
    if not body.message:
        raise bad_request("Message is required")
    return StreamingResponse(
        llm_openai.stream_chat(body.message),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.post("/suggest")
async def suggest(body: SuggestIn):
    if not body.ingredients and not body.preferences:
        raise bad_request("Please provide ingredients or preferences")
    try:
        rsp = await llm_openai.chat_completion(
            llm_openai.build_suggest_messages(body.ingredients, body.preferences), max_tokens=3000,
        )
    except LLMNotReady:
        raise service_unavailable(LLM_NOT_READY)
    except Exception as e:
        log.exception("Error generating suggestions")
        raise server_error("We couldn't generate suggestions right now. Please try again shortly.", str(e))
    return {"suggestions": rsp["content"], "usage": rsp["usage"], "model": rsp["model"]}


@router.get("/search-image")
async def search_image(query: Optional[str] = None, start: Optional[str] = None,
                       caches: AppCaches = Depends(get_caches)):
    if not query:
        raise bad_request("Query parameter is required")
    try:
        start_at = int(start) if start else 1
    except ValueError:
        start_at = 1

    url = await fetch_image(query, start_at, cache=caches.images, validation_cache=caches.image_checks)
    out: Dict[str, Any] = {"imageUrl": url, "query": query, "start": start_at}
    if not url:
        out["message"] = "No image found for the given query"
    return out


@router.post("/cache/clear")
async def clear_cache(caches: AppCaches = Depends(get_caches)):
    caches.clear()
    return {"message": "Cache cleared successfully"}


@router.get("/cache/status")
async def cache_status(caches: AppCaches = Depends(get_caches)):
    return caches.status(settings)
