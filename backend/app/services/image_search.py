# app/services/image_search.py
# 레시피 제목 → 대표 이미지 URL (Google Custom Search, 이미지 타입)
# 후보 링크는 실제로 열리는 이미지인지 확인(HEAD → Range GET) 후에만 반환/캐시

from __future__ import annotations
from typing import Optional
import logging
import time

import httpx

from app.core.config import settings
from app.services.cache import TTLCache

log = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
RETRY_START = 4  # 첫 페이지가 전부 placeholder면 다음 묶음부터
SEARCH_TIMEOUT = 10.0
VALIDATE_TIMEOUT = 8.0

# 핫링크 막는 CDN 이 많아서 모바일 사파리처럼 요청
IMAGE_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_6 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.6 Mobile/15E148 Safari/604.1"
    ),
    "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
}


def is_placeholder_url(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    return "placeholder.com" in url or "via.placeholder.com" in url


def _is_image_response(resp: httpx.Response) -> bool:
    return resp.status_code < 400 and resp.headers.get("content-type", "").startswith("image/")


async def _check_image(url: str, client: httpx.AsyncClient) -> bool:
    try:
        resp = await client.head(url, headers=IMAGE_HEADERS, timeout=VALIDATE_TIMEOUT, follow_redirects=True)
        if resp.status_code < 400:
            return _is_image_response(resp)
    except httpx.HTTPError as e:
        log.debug("HEAD failed for %s: %s", url, e)

    # HEAD 를 막는 서버가 있어서 앞 1KB 만 GET
    try:
        resp = await client.get(
            url,
            headers={**IMAGE_HEADERS, "Range": "bytes=0-1023"},
            timeout=VALIDATE_TIMEOUT,
            follow_redirects=True,
        )
        return _is_image_response(resp)
    except httpx.HTTPError as e:
        log.info("Image validation failed for %s: %s", url, e)
        return False


async def validate_image_url(
    url: Optional[str],
    *,
    cache: Optional[TTLCache] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """200~399 + image/* content-type 이면 True. 결과(실패 포함)는 url 단위로 캐시"""
    if not url or is_placeholder_url(url):
        return False

    if cache is not None:
        cached = cache.get(url)
        if cached is not None:
            return cached

    if client is None:
        async with httpx.AsyncClient() as cli:
            valid = await _check_image(url, cli)
    else:
        valid = await _check_image(url, client)

    if cache is not None:
        cache.set(url, valid)
    return valid


async def fetch_image(
    query: Optional[str],
    start: int = 1,
    *,
    cache: Optional[TTLCache] = None,
    validation_cache: Optional[TTLCache] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[str]:
    """
    실패(키 없음/429/403/400/타임아웃)는 로그만 남기고 None.
    placeholder 나 열리지 않는 이미지는 반환/캐시하지 않는다.
    """
    if not query:
        log.info("No query provided for image search")
        return None
    if client is None:
        async with httpx.AsyncClient() as cli:
            return await _search(query, start, cache, validation_cache, cli)
    return await _search(query, start, cache, validation_cache, client)


async def _search(
    query: str,
    start: int,
    cache: Optional[TTLCache],
    validation_cache: Optional[TTLCache],
    client: httpx.AsyncClient,
) -> Optional[str]:
    normalized = query.strip().lower()
    cache_key = f"{normalized}_{start}"

    if cache is not None:
        cached = cache.get(cache_key)
        if cached and not is_placeholder_url(cached):
            return cached

    if not settings.GOOGLE_API_KEY or not settings.GOOGLE_CX:
        log.error("Google Custom Search API not configured")
        return None

    params = {
        "key": settings.GOOGLE_API_KEY,
        "cx": settings.GOOGLE_CX,
        "q": normalized,
        "searchType": "image",
        "num": 3,
        "safe": "active",
        "start": start,
    }

    t0 = time.perf_counter()
    try:
        resp = await client.get(GOOGLE_SEARCH_URL, params=params, timeout=SEARCH_TIMEOUT)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        if status == 429:
            log.error("Google API rate limit exceeded")
        elif status == 403:
            log.error("Google API access forbidden. Check API key and quota")
        elif status == 400:
            log.error("Google API bad request: %s", e.response.text[:200])
        else:
            log.error("Google API error (%s)", status)
        return None
    except httpx.TimeoutException:
        log.error("Google API request timeout for %r", normalized)
        return None
    except Exception as e:
        log.error("Error fetching image from Google: %s", e)
        return None
    finally:
        log.info("image search %r start=%s took %.0fms", normalized, start, (time.perf_counter() - t0) * 1000)

    items = data.get("items") or []
    if not items:
        log.info("No images found for query: %s", normalized)
        return None

    for item in items:
        url = item.get("link")
        if not url or is_placeholder_url(url):
            continue
        if await validate_image_url(url, cache=validation_cache, client=client):
            if cache is not None:
                cache.set(cache_key, url)
            return url
        log.info("Skipped invalid image from search results: %s", url)

    if start == 1:
        log.info("No usable image on the first page, trying next page")
        return await _search(query, RETRY_START, cache, validation_cache, client)
    return None
