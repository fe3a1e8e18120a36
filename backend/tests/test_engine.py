"""공용 검색 엔진: 필터, 정렬/폴백, 랜덤 표본, 페이지 메타"""

from __future__ import annotations

import random
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.search.engine import (
    COMMUNITY_SURFACE,
    DISCOVER_SURFACE,
    FetchStatus,
    Partition,
    SearchFailed,
    SearchParams,
    build_filter,
    fetch_recipes,
    run_search,
)

from conftest import make_recipe


class FakeCursor:
    """find() 체인을 흉내. sort 가 실패하도록 만들 수 있다"""

    def __init__(self, docs, fail_sort=False, fail_fetch=False):
        self.docs = list(docs)
        self.fail_sort = fail_sort
        self.fail_fetch = fail_fetch
        self.sorted = False
        self._skip = 0
        self._limit = None

    def sort(self, *_):
        self.sorted = True
        return self

    def skip(self, n):
        self._skip = n
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def to_list(self, length=None):
        if self.fail_fetch or (self.sorted and self.fail_sort):
            raise RuntimeError("index missing for createdAt")
        end = None if self._limit is None else self._skip + self._limit
        return self.docs[self._skip:end]


def fake_collection(docs, total=None, **cursor_kw):
    col = MagicMock()
    col.count_documents = AsyncMock(return_value=len(docs) if total is None else total)
    col.cursors = []

    def _find(*_a, **_k):
        cur = FakeCursor(docs, **cursor_kw)
        col.cursors.append(cur)
        return cur

    col.find = MagicMock(side_effect=_find)
    return col


class TestSearchParams:
    def test_defaults(self) -> None:
        p = SearchParams.from_request(DISCOVER_SURFACE)
        assert (p.page, p.limit, p.randomize) == (1, 10, False)

    def test_lenient_parsing(self) -> None:
        p = SearchParams.from_request(COMMUNITY_SURFACE, page="abc", limit="-4", random="TRUE")
        assert (p.page, p.limit, p.randomize) == (1, 12, False)

    @pytest.mark.parametrize("surface,cap", [(DISCOVER_SURFACE, 100), (COMMUNITY_SURFACE, 500)])
    def test_limit_capped(self, surface, cap) -> None:
        assert SearchParams.from_request(surface, limit="100000").limit == cap

    def test_offset(self) -> None:
        assert SearchParams.from_request(DISCOVER_SURFACE, page="3", limit="10").offset == 20

    @pytest.mark.parametrize("page,limit,expected", [
        ("2abc", "3.5", (2, 3)),
        (" 4 ", "+7", (4, 7)),
        ("1e3", "12px", (1, 12)),
        ("-2", "0", (1, 10)),
    ])
    def test_leading_integer_like_parseint(self, page, limit, expected) -> None:
        p = SearchParams.from_request(DISCOVER_SURFACE, page=page, limit=limit)
        assert (p.page, p.limit) == expected


class TestBuildFilter:
    def test_external_partition_with_tokens_and_difficulty(self) -> None:
        filt = build_filter(Partition.EXTERNAL, ["holiday", "christmas"], "HARD")
        assert filt == {
            "isExternal": True,
            "searchableFields": {"$in": ["holiday", "christmas"]},
            "difficulty": "Hard",
        }

    def test_community_partition_without_tokens(self) -> None:
        filt = build_filter(Partition.COMMUNITY, [], None)
        assert filt == {"isDiscoverable": True, "isExternal": {"$ne": True}}

    def test_tokens_capped(self) -> None:
        filt = build_filter(Partition.EXTERNAL, [str(i) for i in range(14)], None)
        assert len(filt["searchableFields"]["$in"]) == 10


class TestFetch:
    async def test_ordered(self) -> None:
        col = fake_collection([{"_id": i} for i in range(5)])
        outcome = await fetch_recipes(col, {}, SearchParams(limit=2, page=2), 5)
        assert outcome.status is FetchStatus.ORDERED
        assert [d["_id"] for d in outcome.docs] == [2, 3]

    async def test_sort_failure_falls_back_with_same_window(self) -> None:
        col = fake_collection([{"_id": i} for i in range(5)], fail_sort=True)
        outcome = await fetch_recipes(col, {}, SearchParams(limit=2, page=2), 5)
        assert outcome.status is FetchStatus.FALLBACK_UNORDERED
        assert outcome.ok
        assert [d["_id"] for d in outcome.docs] == [2, 3]
        assert outcome.error is not None

    async def test_both_fail(self) -> None:
        col = fake_collection([{"_id": 1}], fail_fetch=True)
        outcome = await fetch_recipes(col, {}, SearchParams(), 1)
        assert outcome.status is FetchStatus.FAILED
        assert not outcome.ok

    async def test_random_sample_has_no_fallback(self) -> None:
        col = fake_collection([{"_id": 1}], fail_fetch=True)
        outcome = await fetch_recipes(col, {}, SearchParams(randomize=True), 1)
        assert outcome.status is FetchStatus.FAILED

    async def test_random_sample_empty_skips_query(self) -> None:
        col = fake_collection([])
        outcome = await fetch_recipes(col, {}, SearchParams(randomize=True), 0)
        assert outcome.status is FetchStatus.SAMPLED
        assert outcome.docs == []
        col.find.assert_not_called()


class TestRunSearchAgainstStore:
    async def test_second_page_of_fifteen(self, db) -> None:
        await db["recipes"].insert_many([make_recipe(i) for i in range(1, 16)])
        params = SearchParams.from_request(DISCOVER_SURFACE, page="2", limit="10", random="false")

        result = await run_search(db["recipes"], DISCOVER_SURFACE, params)

        assert [r["title"] for r in result.recipes] == [f"Recipe {i}" for i in range(11, 16)]
        assert result.status is FetchStatus.ORDERED
        p = result.pagination
        assert (p.total, p.totalPages, p.hasNextPage, p.hasPrevPage) == (15, 2, False, True)
        assert all("_id" not in r and isinstance(r["id"], str) for r in result.recipes)

    async def test_tag_matches_any_token(self, db) -> None:
        await db["recipes"].insert_many([
            make_recipe(1, title="Roast", searchableFields=["holiday", "roast"]),
            make_recipe(2, title="Cookies", searchableFields=["christmas", "cookies"]),
            make_recipe(3, title="Salad", searchableFields=["salad"]),
            make_recipe(4, title="Private", isExternal=False, searchableFields=["holiday"]),
        ])
        params = SearchParams.from_request(DISCOVER_SURFACE, tag="holiday, christmas")

        result = await run_search(db["recipes"], DISCOVER_SURFACE, params)

        assert result.tokens[:2] == ["holiday", "christmas"]
        assert [r["title"] for r in result.recipes] == ["Roast", "Cookies"]
        assert result.pagination.total == 2

    async def test_difficulty_filter(self, db) -> None:
        await db["recipes"].insert_many([
            make_recipe(1, difficulty="Hard"),
            make_recipe(2, difficulty="Easy"),
        ])
        params = SearchParams.from_request(DISCOVER_SURFACE, difficulty="hard")
        result = await run_search(db["recipes"], DISCOVER_SURFACE, params)
        assert [r["title"] for r in result.recipes] == ["Recipe 1"]

    async def test_count_failure_raises(self) -> None:
        col = fake_collection([])
        col.count_documents = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(SearchFailed) as exc:
            await run_search(col, DISCOVER_SURFACE, SearchParams())
        assert exc.value.stage == "count"

    async def test_fetch_failure_raises(self) -> None:
        col = fake_collection([{"_id": 1}], fail_fetch=True)
        with pytest.raises(SearchFailed) as exc:
            await run_search(col, DISCOVER_SURFACE, SearchParams())
        assert exc.value.stage == "fetch"


class TestRandom:
    DOCS = [{"_id": i, "title": f"r{i}"} for i in range(30)]

    async def test_daily_pick_is_stable(self) -> None:
        col = fake_collection(self.DOCS)
        params = SearchParams(limit=1, randomize=True)
        day = date(2024, 6, 1)
        first = await run_search(col, DISCOVER_SURFACE, params, today=day)
        second = await run_search(col, DISCOVER_SURFACE, params, today=day)
        assert len(first.recipes) == 1
        assert first.recipes == second.recipes
        assert first.status is FetchStatus.SAMPLED

    async def test_discover_slices_shuffled_sample(self) -> None:
        col = fake_collection(self.DOCS)
        params = SearchParams(limit=10, page=2, randomize=True)
        result = await run_search(col, DISCOVER_SURFACE, params, rng=random.Random(3))
        assert len(result.recipes) == 10
        assert result.pagination.total == 30

    async def test_community_returns_full_shuffled_sample(self) -> None:
        col = fake_collection(self.DOCS)
        params = SearchParams(limit=12, page=1, randomize=True)
        result = await run_search(col, COMMUNITY_SURFACE, params, rng=random.Random(3))
        assert len(result.recipes) == 30
        assert sorted(r["id"] for r in result.recipes) == sorted(str(i) for i in range(30))

    async def test_sample_limited_to_500(self) -> None:
        col = fake_collection([], total=1200)
        await run_search(col, COMMUNITY_SURFACE, SearchParams(limit=12, randomize=True))
        assert col.find.call_count == 1
        assert col.cursors[0]._limit == 500


async def test_post_filter_and_decorator_applied_in_order() -> None:
    col = fake_collection([{"_id": i} for i in range(4)])
    seen = {}

    async def decorate(docs):
        seen["ids"] = [d["id"] for d in docs]
        return [{**d, "decorated": True} for d in docs]

    result = await run_search(
        col, COMMUNITY_SURFACE, SearchParams(limit=12),
        post_filter=lambda docs: [d for d in docs if d["id"] != "2"],
        decorate=decorate,
    )
    assert seen["ids"] == ["0", "1", "3"]
    assert all(r["decorated"] for r in result.recipes)
    assert result.fetched == 4
