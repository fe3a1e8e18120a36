# app/services/search/engine.py
# 필터 + 페이지네이션 공용 엔진 (discover / community 두 화면이 같이 쓴다)
#
# 흐름: 토큰 추출 → 필터 → count → fetch(정렬/폴백/랜덤 표본) → 화면별 후처리 → 메타
# fetch 결과는 태그된 결과(FetchOutcome)로 돌려준다:
#   ORDERED            createdAt desc 정렬 성공
#   FALLBACK_UNORDERED 정렬 실패 → 같은 limit/offset 무정렬 조회 (200 유지)
#   SAMPLED            랜덤 모드 표본 조회
#   FAILED             복구 불가 → 호출자가 500 으로 노출

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging
import random
import re

from pydantic import BaseModel, Field

from app.services.search.pagination import (
    Pagination, build_pagination, daily_index, fisher_yates_shuffle,
)
from app.services.search.tokens import (
    MAX_ANY_OF_VALUES, build_search_tokens, normalize_difficulty,
)
from app.services.utils import serialize_doc

log = logging.getLogger(__name__)

RANDOM_SAMPLE_MAX = 500
SORT_FIELD = "createdAt"

Docs = List[Dict[str, Any]]
PostFilter = Callable[[Docs], Docs]
Decorator = Callable[[Docs], Awaitable[Docs]]


class Partition(str, Enum):
    EXTERNAL = "external"     # 외부 카탈로그 레시피
    COMMUNITY = "community"   # 사용자 공유(AI 생성/소셜 가져오기) 레시피


PARTITION_FILTERS: Dict[Partition, Dict[str, Any]] = {
    Partition.EXTERNAL: {"isExternal": True},
    Partition.COMMUNITY: {"isDiscoverable": True, "isExternal": {"$ne": True}},
}


@dataclass(frozen=True)
class SurfacePolicy:
    name: str
    partition: Partition
    default_limit: int
    max_limit: int
    # 랜덤 + limit>1 일 때: True 면 셔플된 표본 전체(클라이언트 캐시 페이징), False 면 page 슬라이스
    random_full_sample: bool
    failure_message: str


DISCOVER_SURFACE = SurfacePolicy(
    name="discover",
    partition=Partition.EXTERNAL,
    default_limit=10,
    max_limit=100,
    random_full_sample=False,
    failure_message="We couldn't search recipes right now. Please try again shortly.",
)

COMMUNITY_SURFACE = SurfacePolicy(
    name="community",
    partition=Partition.COMMUNITY,
    default_limit=12,
    max_limit=500,
    random_full_sample=True,
    failure_message="We couldn't load community recipes right now. Please try again shortly.",
)


_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def _parse_int(raw: Any) -> Optional[int]:
    # parseInt 처럼 앞쪽 정수만: " 3 " → 3, "2abc" → 2, "3.5" → 3, "abc" → None
    if raw is None:
        return None
    if isinstance(raw, int):
        return raw
    m = _LEADING_INT_RE.match(str(raw))
    return int(m.group(1)) if m else None


@dataclass
class SearchParams:
    query: Optional[str] = None
    tag: Optional[str] = None
    difficulty: Optional[str] = None
    page: int = 1
    limit: int = 10
    randomize: bool = False

    @classmethod
    def from_request(
        cls,
        policy: SurfacePolicy,
        *,
        query: Optional[str] = None,
        tag: Optional[str] = None,
        difficulty: Optional[str] = None,
        random: Optional[str] = None,
        page: Any = None,
        limit: Any = None,
    ) -> "SearchParams":
        p = _parse_int(page)
        lim = _parse_int(limit)
        if lim is None or lim < 1:
            lim = policy.default_limit
        return cls(
            query=query,
            tag=tag,
            difficulty=difficulty,
            page=p if p and p > 0 else 1,
            limit=min(lim, policy.max_limit),
            randomize=(random == "true"),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def build_filter(partition: Partition, tokens: List[str], difficulty: Optional[str]) -> Dict[str, Any]:
    filt: Dict[str, Any] = dict(PARTITION_FILTERS[partition])
    if tokens:
        filt["searchableFields"] = {"$in": list(tokens[:MAX_ANY_OF_VALUES])}
    level = normalize_difficulty(difficulty)
    if level:
        filt["difficulty"] = level
    return filt


class FetchStatus(str, Enum):
    ORDERED = "ordered"
    FALLBACK_UNORDERED = "fallback_unordered"
    SAMPLED = "sampled"
    FAILED = "failed"


@dataclass
class FetchOutcome:
    status: FetchStatus
    docs: Docs = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status is not FetchStatus.FAILED


class SearchFailed(Exception):
    """count 실패 또는 fetch FAILED: 라우터에서 500"""

    def __init__(self, stage: str, cause: Optional[BaseException] = None):
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause


async def fetch_recipes(col, filt: Dict[str, Any], params: SearchParams, total: int) -> FetchOutcome:
    if params.randomize:
        # 랜덤 표본: limit/offset 무시, 최대 500. 실패 시 폴백 없음
        size = min(RANDOM_SAMPLE_MAX, total)
        if size <= 0:
            return FetchOutcome(FetchStatus.SAMPLED, [])
        try:
            docs = await col.find(filt).limit(size).to_list(length=size)
        except Exception as e:
            log.exception("random sample fetch failed")
            return FetchOutcome(FetchStatus.FAILED, [], e)
        return FetchOutcome(FetchStatus.SAMPLED, docs)

    try:
        cur = col.find(filt).sort(SORT_FIELD, -1).skip(params.offset).limit(params.limit)
        docs = await cur.to_list(length=params.limit)
        return FetchOutcome(FetchStatus.ORDERED, docs)
    except Exception as order_err:
        log.warning("Falling back to un-ordered fetch due to %s sort error: %s", SORT_FIELD, order_err)
        try:
            cur = col.find(filt).skip(params.offset).limit(params.limit)
            docs = await cur.to_list(length=params.limit)
        except Exception as e:
            log.exception("un-ordered fallback fetch failed")
            return FetchOutcome(FetchStatus.FAILED, [], e)
        return FetchOutcome(FetchStatus.FALLBACK_UNORDERED, docs, order_err)


def pick_random(
    docs: Docs,
    policy: SurfacePolicy,
    params: SearchParams,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> Docs:
    if not docs:
        return []
    if params.limit == 1:
        # 오늘의 레시피: 같은 날 같은 결과
        return [docs[daily_index(len(docs), today)]]
    shuffled = fisher_yates_shuffle(docs, rng)
    if policy.random_full_sample:
        return shuffled
    return shuffled[params.offset:params.offset + params.limit]


class SearchResponse(BaseModel):
    recipes: List[Dict[str, Any]] = Field(default_factory=list)
    pagination: Pagination


@dataclass
class SearchResult:
    recipes: Docs
    pagination: Pagination
    status: FetchStatus
    tokens: List[str]
    fetched: int

    def to_response(self) -> SearchResponse:
        return SearchResponse(recipes=self.recipes, pagination=self.pagination)


async def run_search(
    col,
    policy: SurfacePolicy,
    params: SearchParams,
    *,
    post_filter: Optional[PostFilter] = None,
    decorate: Optional[Decorator] = None,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> SearchResult:
    tokens = build_search_tokens(params.query, params.tag)
    filt = build_filter(policy.partition, tokens, params.difficulty)

    try:
        total = await col.count_documents(filt)
    except Exception as e:
        log.exception("%s count query failed", policy.name)
        raise SearchFailed("count", e)

    outcome = await fetch_recipes(col, filt, params, total)
    if not outcome.ok:
        raise SearchFailed("fetch", outcome.error)

    docs = [serialize_doc(d) for d in outcome.docs]
    fetched = len(docs)
    if post_filter is not None:
        docs = post_filter(docs)
    if params.randomize:
        docs = pick_random(docs, policy, params, today, rng)
    if decorate is not None:
        docs = await decorate(docs)

    return SearchResult(
        recipes=docs,
        pagination=build_pagination(total, params.page, params.limit),
        status=outcome.status,
        tokens=tokens,
        fetched=fetched,
    )
