# app/services/cache.py
# 인메모리 TTL 캐시. 앱 인스턴스마다 생성해서 app.state 에 둔다

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Tuple
import time


class TTLCache:
    """
    get/set/evict_expired/clear.
    - 엔트리는 저장 시각 기준 ttl(초) 지나면 만료
    - 꽉 차면 가장 오래된 엔트리부터 밀어낸다
    """

    def __init__(self, max_size: int = 1000, ttl: float = 3600, clock: Callable[[], float] = time.monotonic):
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._data: Dict[Hashable, Tuple[Any, float]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: Hashable, default: Any = None, count: bool = True) -> Any:
        entry = self._data.get(key)
        if entry is None:
            if count:
                self.misses += 1
            return default
        value, stored_at = entry
        if self._clock() - stored_at > self.ttl:
            del self._data[key]
            if count:
                self.misses += 1
            return default
        if count:
            self.hits += 1
        return value

    def set(self, key: Hashable, value: Any) -> None:
        if key not in self._data and len(self._data) >= self.max_size:
            self.evict_expired()
            if len(self._data) >= self.max_size:
                oldest = min(self._data.items(), key=lambda kv: kv[1][1])[0]
                del self._data[oldest]
        self._data[key] = (value, self._clock())

    def evict_expired(self) -> int:
        now = self._clock()
        expired = [k for k, (_, ts) in self._data.items() if now - ts > self.ttl]
        for k in expired:
            del self._data[k]
        return len(expired)

    def clear(self) -> None:
        self._data.clear()

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "size": len(self._data),
            "maxSize": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "hitRate": f"{(self.hits / total * 100):.2f}%" if total else "0%",
        }


@dataclass
class AppCaches:
    social: TTLCache      # 소셜 메타데이터 (url 단위)
    ai: TTLCache          # LLM 파싱 결과 (본문 앞부분 단위)
    images: TTLCache      # 이미지 검색 결과 (query_start)
    recipes: TTLCache     # 가져오기 완료된 레시피 (url 단위)
    image_checks: TTLCache  # 이미지 링크 검증 결과 (url 단위, 실패도 저장)
    generated: "GeneratedStore"

    @classmethod
    def from_settings(cls, s) -> "AppCaches":
        return cls(
            social=TTLCache(s.CACHE_MAX_SIZE, s.CACHE_TTL_SOCIAL),
            ai=TTLCache(s.CACHE_MAX_SIZE, s.CACHE_TTL_AI),
            images=TTLCache(s.CACHE_MAX_SIZE, s.CACHE_TTL_IMAGES),
            recipes=TTLCache(s.CACHE_MAX_SIZE, s.CACHE_TTL_RECIPES),
            image_checks=TTLCache(s.CACHE_MAX_SIZE, s.CACHE_TTL_IMAGE_CHECKS),
            generated=GeneratedStore(s.CACHE_MAX_SIZE),
        )

    def clear(self) -> None:
        # 생성 레시피 목록은 캐시가 아니라서 유지
        for c in (self.social, self.ai, self.images, self.recipes, self.image_checks):
            c.clear()

    def status(self, s) -> Dict[str, Any]:
        return {
            "aiCache": self.ai.stats(),
            "recipeCache": self.recipes.stats(),
            "imageCache": self.images.stats(),
            "socialCache": self.social.stats(),
            "imageCheckCache": self.image_checks.stats(),
            "cacheDurations": {
                "socialMedia": f"{s.CACHE_TTL_SOCIAL / 3600:g} hours",
                "aiGenerated": f"{s.CACHE_TTL_AI / 86400:g} days",
                "images": f"{s.CACHE_TTL_IMAGES / 86400:g} days",
                "recipes": f"{s.CACHE_TTL_RECIPES / 86400:g} days",
                "imageChecks": f"{s.CACHE_TTL_IMAGE_CHECKS / 3600:g} hours",
            },
        }


class GeneratedStore:
    """생성/가져오기 된 레시피 임시 목록 (상한 초과 시 오래된 것부터 버림)"""

    def __init__(self, max_size: int = 1000):
        self.max_size = max_size
        self._items: list = []

    def __len__(self) -> int:
        return len(self._items)

    def extend(self, recipes) -> None:
        self._items.extend(recipes)
        overflow = len(self._items) - self.max_size
        if overflow > 0:
            del self._items[:overflow]

    def page(self, page: int, limit: int) -> Dict[str, Any]:
        start = (page - 1) * limit
        end = start + limit
        total = len(self._items)
        return {
            "recipes": self._items[start:end],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "totalPages": -(-total // limit),
                "hasNextPage": end < total,
                "hasPrevPage": page > 1,
            },
        }

    def clear(self) -> None:
        self._items.clear()
