# app/services/llm_openai.py
# 레시피 생성/파싱/대화 (OpenAI Chat Completions + structured outputs)
# - JSON 스키마 strict 모드로만 구조화 응답을 받는다
# - 키 미설정이면 LLMNotReady → 라우터에서 503

from __future__ import annotations
import json
import logging
import random
import time
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from openai import AsyncOpenAI

from app.core.config import settings

log = logging.getLogger(__name__)


class LLMNotReady(Exception):
    # 패키지/키 없음
    pass


class LLMEmptyResponse(Exception):
    pass


def _client() -> AsyncOpenAI:
    if not settings.OPENAI_API_KEY:
        raise LLMNotReady("OPENAI_API_KEY not set")
    return AsyncOpenAI(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL or None,
        timeout=settings.OPENAI_TIMEOUT,
        max_retries=settings.OPENAI_MAX_RETRIES,
    )


# ------------------------------
# JSON 스키마
# ------------------------------

_STR = {"type": "string"}
_STR_LIST = {"type": "array", "items": {"type": "string"}}

NUTRITION_KEYS = ["calories", "protein", "carbs", "fat", "fiber", "sugar", "sodium", "iron"]

NUTRITION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "calories": {"type": "string", "description": "Calorie count per serving"},
        "protein": {"type": "string", "description": "Protein content (e.g., '25g')"},
        "carbs": {"type": "string", "description": "Carbohydrate content (e.g., '40g')"},
        "fat": {"type": "string", "description": "Fat content (e.g., '12g')"},
        "fiber": {"type": "string", "description": "Fiber content (e.g., '5g')"},
        "sugar": {"type": "string", "description": "Sugar content (e.g., '8g')"},
        "sodium": {"type": "string", "description": "Sodium content (e.g., '600mg')"},
        "iron": {"type": "string", "description": "Iron as percent daily value"},
    },
    "required": NUTRITION_KEYS,
    "additionalProperties": False,
}

_RECIPE_PROPS: Dict[str, Any] = {
    "title": {"type": "string", "description": "The name of the recipe"},
    "description": {"type": "string", "description": "A brief description of the recipe"},
    "ingredients": {**_STR_LIST, "description": "List of ingredients needed"},
    "instructions": {**_STR_LIST, "description": "Step-by-step cooking instructions"},
    "cookingTime": {"type": "string", "description": "Total cooking time (e.g., '30 minutes')"},
    "difficulty": {"type": "string", "description": "Difficulty level: easy, medium, or hard"},
    "servings": {"type": "string", "description": "Number of servings"},
    "tags": {**_STR_LIST, "description": "Tags for categorizing the recipe"},
    "nutrition": NUTRITION_SCHEMA,
}

GENERATION_SCHEMA: Dict[str, Any] = {
    "name": "recipe_generation",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "recipes": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        **_RECIPE_PROPS,
                        "cuisineType": {"type": "string", "description": "The cuisine type (e.g., Italian, Mexican, Asian)"},
                    },
                    "required": ["title", "cuisineType", "description", "ingredients", "instructions",
                                 "cookingTime", "difficulty", "servings", "tags", "nutrition"],
                    "additionalProperties": False,
                },
            }
        },
        "required": ["recipes"],
        "additionalProperties": False,
    },
}

IMPORT_SCHEMA: Dict[str, Any] = {
    "name": "recipe_import",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": _RECIPE_PROPS,
        "required": ["title", "ingredients", "instructions", "description", "tags",
                     "cookingTime", "difficulty", "servings", "nutrition"],
        "additionalProperties": False,
    },
}

FROM_TITLE_SCHEMA: Dict[str, Any] = {
    "name": "recipe_generation_fallback",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "ingredients": {**_STR_LIST, "minItems": 3, "description": "List of ingredients needed for this recipe"},
            "instructions": {**_STR_LIST, "minItems": 3, "description": "Step-by-step cooking instructions"},
        },
        "required": ["ingredients", "instructions"],
        "additionalProperties": False,
    },
}

# ------------------------------
# 프롬프트
# ------------------------------

GENERATE_SYSTEM = (
    "You are a professional chef and recipe creator. Generate creative, delicious, "
    "and practical recipes with accurate nutritional information."
)
PARSE_SOCIAL_SYSTEM = "You are an expert recipe analyzer. Extract the recipe from this social media post."
PARSE_WEB_SYSTEM = "You are an expert recipe analyzer. Extract the recipe from this text."
FROM_TITLE_SYSTEM = (
    "You are an expert chef. Generate a complete recipe based on the recipe title provided. "
    "Create realistic ingredients and step-by-step cooking instructions."
)
CHAT_SYSTEM = (
    "You are a helpful culinary assistant specializing in recipes, cooking techniques, "
    "ingredient substitutions, and meal planning. Provide practical, creative, and detailed "
    "advice to help users with their cooking questions."
)
STREAM_SYSTEM = "You are a helpful culinary assistant. Provide detailed, step-by-step cooking advice."
SUGGEST_SYSTEM = (
    "You are a creative chef who suggests interesting recipe ideas based on available "
    "ingredients and user preferences. Provide 3-5 recipe suggestions with brief descriptions."
)

# 랜덤 생성 모드에서 고르는 재료 풀
INGREDIENT_POOL: List[str] = [
    "chicken", "beef", "pork", "salmon", "shrimp", "tofu", "eggs", "lentils",
    "chickpeas", "black beans", "rice", "quinoa", "pasta", "potatoes", "sweet potatoes",
    "spinach", "broccoli", "cauliflower", "mushrooms", "zucchini", "eggplant",
    "bell peppers", "tomatoes", "carrots", "cabbage", "corn", "avocado",
    "lemon", "coconut milk", "feta cheese", "parmesan", "greek yogurt",
    "ginger", "garlic", "basil", "cilantro", "apples", "bananas", "oats", "pumpkin",
]


class RandomIngredientPicker:
    """풀을 다 쓸 때까지 같은 재료를 다시 고르지 않는다"""

    def __init__(self, pool: Sequence[str] = INGREDIENT_POOL, rng: Optional[random.Random] = None):
        if not pool:
            raise ValueError("ingredient pool is empty")
        self.pool = list(pool)
        self.used: List[str] = []
        self._rng = rng or random.Random()

    def pick(self) -> str:
        available = [i for i in self.pool if i not in self.used]
        if not available:
            self.used = []
            available = list(self.pool)
        choice = self._rng.choice(available)
        self.used.append(choice)
        return choice


def _content_of(resp: Any) -> str:
    try:
        text = resp.choices[0].message.content
    except (AttributeError, IndexError):
        text = None
    if not text:
        raise LLMEmptyResponse("OpenAI returned empty content")
    return text


def _usage_of(resp: Any) -> Optional[Dict[str, Any]]:
    usage = getattr(resp, "usage", None)
    if usage is None:
        return None
    return usage.model_dump() if hasattr(usage, "model_dump") else dict(usage)


async def _structured(messages: List[Dict[str, str]], schema: Dict[str, Any], max_tokens: int, label: str) -> Dict[str, Any]:
    client = _client()
    t0 = time.perf_counter()
    resp = await client.chat.completions.create(
        model=settings.OPENAI_MODEL,
        messages=messages,
        reasoning_effort="low",
        response_format={"type": "json_schema", "json_schema": schema},
        max_completion_tokens=max_tokens,
    )
    log.info("%s took %.0fms", label, (time.perf_counter() - t0) * 1000)
    return json.loads(_content_of(resp))


async def generate_recipes(
    ingredients: List[str],
    dietary_restrictions: List[str],
    cuisine_type: str,
    random_ingredient: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """재료/식단/요리 종류 → 레시피 3개 (LLM 원본 dict)"""
    used = random_ingredient if random_ingredient else ", ".join(ingredients)
    prompt = (
        "Generate three recipes with these requirements:\n"
        f"- Ingredients: {used}\n"
        f"- Dietary restrictions: {', '.join(dietary_restrictions) or 'None'}\n"
        f"- Cuisine type: {cuisine_type or 'Any'}"
    )
    obj = await _structured(
        [{"role": "developer", "content": GENERATE_SYSTEM}, {"role": "user", "content": prompt}],
        GENERATION_SCHEMA,
        16000,
        "recipe generation",
    )
    recipes = obj.get("recipes") or []
    return [r for r in recipes if isinstance(r, dict)]


async def parse_recipe(content: str, social: bool) -> Dict[str, Any]:
    system = PARSE_SOCIAL_SYSTEM if social else PARSE_WEB_SYSTEM
    return await _structured(
        [{"role": "developer", "content": system}, {"role": "user", "content": content}],
        IMPORT_SCHEMA,
        6000,
        "recipe parsing",
    )


async def complete_from_title(title: str) -> Dict[str, Any]:
    prompt = (
        f"Generate a complete recipe for: {title}\n\n"
        "Provide a list of ingredients and step-by-step cooking instructions."
    )
    return await _structured(
        [{"role": "developer", "content": FROM_TITLE_SYSTEM}, {"role": "user", "content": prompt}],
        FROM_TITLE_SCHEMA,
        4000,
        "recipe completion from title",
    )


async def chat_completion(messages: List[Dict[str, Any]], max_tokens: int = 8000) -> Dict[str, Any]:
    client = _client()
    t0 = time.perf_counter()
    resp = await client.chat.completions.create(
        model=settings.OPENAI_MODEL,
        messages=messages,
        max_completion_tokens=max_tokens,
    )
    log.info("chat completion took %.0fms", (time.perf_counter() - t0) * 1000)
    choice = resp.choices[0]
    return {
        "content": choice.message.content,
        "role": choice.message.role,
        "finishReason": choice.finish_reason,
        "usage": _usage_of(resp),
        "model": resp.model,
    }


def build_chat_messages(message: str, history: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    return [{"role": "developer", "content": CHAT_SYSTEM}, *(history or []), {"role": "user", "content": message}]


def build_suggest_messages(ingredients: List[str], preferences: str) -> List[Dict[str, Any]]:
    lines = ["Suggest some recipe ideas based on:"]
    lines.append(f"Available ingredients: {', '.join(ingredients)}" if ingredients else "")
    lines.append(f"Preferences: {preferences}" if preferences else "")
    return [{"role": "developer", "content": SUGGEST_SYSTEM}, {"role": "user", "content": "\n".join(lines)}]


def sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


async def stream_chat(message: str) -> AsyncIterator[str]:
    """SSE 이벤트 문자열을 흘려보낸다. 실패 시 error 이벤트 하나로 끝"""
    try:
        client = _client()
        stream = await client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=[{"role": "developer", "content": STREAM_SYSTEM}, {"role": "user", "content": message}],
            max_completion_tokens=5000,
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            content = choice.delta.content if choice.delta else None
            if content:
                yield sse({"content": content})
            if choice.finish_reason:
                yield sse({"done": True, "finish_reason": choice.finish_reason})
                break
    except Exception as e:
        log.exception("streaming completion failed: %s", e)
        yield sse({"error": "Streaming failed"})
