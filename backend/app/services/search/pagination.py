# app/services/search/pagination.py
# 페이지 메타, 오늘의 레시피 인덱스, 셔플

from __future__ import annotations
from datetime import date
from typing import List, Optional, Sequence, TypeVar
import math
import random

from pydantic import BaseModel

T = TypeVar("T")


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int
    hasNextPage: bool
    hasPrevPage: bool


def build_pagination(total: int, page: int, limit: int) -> Pagination:
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return Pagination(
        total=total,
        page=page,
        limit=limit,
        totalPages=total_pages,
        hasNextPage=page < total_pages,
        hasPrevPage=page > 1,
    )


def daily_index(sample_size: int, today: Optional[date] = None) -> int:
    """
    (연도*365 + 연중일수) mod 표본크기.
    같은 날엔 모든 호출자에게 같은 인덱스, 날짜가 바뀌면 달라진다 (상태 저장 없음).
    """
    if sample_size <= 0:
        raise ValueError("sample_size must be positive")
    today = today or date.today()
    day_of_year = today.timetuple().tm_yday
    return (today.year * 365 + day_of_year) % sample_size


def fisher_yates_shuffle(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    # 입력은 건드리지 않고 균등 셔플된 새 리스트 반환
    rng = rng or random.Random()
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out
