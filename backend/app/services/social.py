# app/services/social.py
# 링크 → 플랫폼 판별 + 메타데이터(캡션/설명, 이미지, 작성자) 조회
# 스크래핑 자체는 하지 않는다: YouTube Data API / RapidAPI 공급자에 위임

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Optional
import logging
import re

import httpx

from app.core.config import settings

log = logging.getLogger(__name__)

TIMEOUT = 10.0
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

YOUTUBE_VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"
INSTAGRAM_HOST = "rocketapi-for-developers.p.rapidapi.com"
TIKTOK_HOST = "tiktok-api23.p.rapidapi.com"
TEXT_FROM_WEBSITE = "https://textfrom.website/"


class Platform(str, Enum):
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"
    WEB = "web"

    @property
    def is_social(self) -> bool:
        return self is not Platform.WEB


class SocialFetchError(Exception):
    pass


def detect_platform(url: str) -> Platform:
    if "instagram.com/p/" in url or "instagram.com/reel/" in url:
        return Platform.INSTAGRAM
    if re.search(r"tiktok\.com", url, re.I):
        return Platform.TIKTOK
    if "youtube.com/" in url or "youtu.be/" in url:
        return Platform.YOUTUBE
    return Platform.WEB


# ------------------------------
# ID 추출
# ------------------------------

_YT_PATTERNS = [
    re.compile(r"[?&]v=([A-Za-z0-9_-]{11})", re.I),
    re.compile(r"youtu\.be/([A-Za-z0-9_-]{11})", re.I),
    re.compile(r"/shorts/([A-Za-z0-9_-]{11})", re.I),
    re.compile(r"/embed/([A-Za-z0-9_-]{11})", re.I),
    re.compile(r"/v/([A-Za-z0-9_-]{11})", re.I),
    re.compile(r"/watch/([A-Za-z0-9_-]{11})", re.I),
    re.compile(r"youtube\.com/([A-Za-z0-9_-]{11})", re.I),
    re.compile(r"video_id[=:]([A-Za-z0-9_-]{11})", re.I),
]

_IG_PATTERNS = [
    re.compile(r"/(?:p|reel|reels|tv)/([A-Za-z0-9_-]+)", re.I),
    re.compile(r"instagram\.com/([A-Za-z0-9_-]{11})", re.I),
    re.compile(r"shortcode[=:]([A-Za-z0-9_-]+)", re.I),
]

_TIKTOK_RE = re.compile(r"(?:https?://)?(?:[\w-]+\.)?tiktok\.com/@[^/]+/video/(\d+)(?:[/?].*)?$", re.I)


def _first_match(patterns, text: str) -> Optional[str]:
    for rx in patterns:
        m = rx.search(text)
        if m:
            return m.group(1)
    return None


def extract_youtube_video_id(url: str) -> Optional[str]:
    return _first_match(_YT_PATTERNS, url)


def extract_instagram_shortcode(url: str) -> Optional[str]:
    return _first_match(_IG_PATTERNS, url)


def extract_tiktok_video_id(url: str) -> Optional[str]:
    m = _TIKTOK_RE.search(url)
    return m.group(1) if m else None


# ------------------------------
# 공급자 호출
# ------------------------------

async def fetch_youtube(url: str, client: httpx.AsyncClient) -> Dict[str, Any]:
    video_id = extract_youtube_video_id(url)
    if not video_id:
        raise SocialFetchError("Could not extract video ID from YouTube URL")

    resp = await client.get(YOUTUBE_VIDEOS_URL, params={
        "part": "snippet,contentDetails,statistics",
        "id": video_id,
        "key": settings.YOUTUBE_API_KEY,
    })
    resp.raise_for_status()
    items = (resp.json() or {}).get("items") or []
    if not items:
        raise SocialFetchError("No video found with the given ID")

    video = items[0]
    snippet = video.get("snippet") or {}
    thumbs = snippet.get("thumbnails") or {}
    stats = video.get("statistics") or {}
    return {
        "videoId": video_id,
        "title": snippet.get("title"),
        "description": snippet.get("description") or "",
        "channelTitle": snippet.get("channelTitle"),
        "channelId": snippet.get("channelId"),
        "thumbnailUrl": (thumbs.get("maxres") or {}).get("url") or (thumbs.get("high") or {}).get("url"),
        "publishedAt": snippet.get("publishedAt"),
        "duration": (video.get("contentDetails") or {}).get("duration"),
        "viewCount": stats.get("viewCount"),
        "likeCount": stats.get("likeCount"),
        "commentCount": stats.get("commentCount"),
    }


async def fetch_instagram(url: str, client: httpx.AsyncClient) -> Dict[str, Any]:
    shortcode = extract_instagram_shortcode(url)
    if not shortcode:
        raise SocialFetchError("Could not extract shortcode from Instagram URL")

    resp = await client.post(
        f"https://{INSTAGRAM_HOST}/instagram/media/get_info_by_shortcode",
        headers={"X-RapidAPI-Key": settings.RAPID_API_KEY or "", "X-RapidAPI-Host": INSTAGRAM_HOST},
        json={"shortcode": shortcode},
    )
    resp.raise_for_status()
    data = resp.json() or {}
    inner = data.get("response") or {}
    if inner.get("status_code") != 200:
        raise SocialFetchError(f"Failed to fetch Instagram media info: {data.get('message') or 'Unknown error'}")

    items = (inner.get("body") or {}).get("items") or []
    if not items:
        raise SocialFetchError("No media found for this shortcode")

    media = items[0]
    # 캐러셀(8)이면 첫 장
    source = media["carousel_media"][0] if media.get("media_type") == 8 and media.get("carousel_media") else media
    candidates = (source.get("image_versions2") or {}).get("candidates") or []
    return {
        "shortcode": shortcode,
        "caption": (media.get("caption") or {}).get("text") or "",
        "username": (media.get("user") or {}).get("username") or "",
        "imageUrl": candidates[0].get("url") if candidates else None,
    }


async def _resolve_tiktok(url: str, client: httpx.AsyncClient) -> str:
    # vm.tiktok.com / 단축 링크 → 최종 URL
    try:
        resp = await client.get(url, headers={"User-Agent": USER_AGENT}, follow_redirects=True)
        return str(resp.url)
    except httpx.HTTPError as e:
        log.info("Could not resolve TikTok link %s: %s", url, e)
        return url


async def fetch_tiktok(url: str, client: httpx.AsyncClient) -> Dict[str, Any]:
    video_id = extract_tiktok_video_id(url)
    if not video_id:
        video_id = extract_tiktok_video_id(await _resolve_tiktok(url, client))
    if not video_id:
        raise SocialFetchError("Invalid or unsupported TikTok URL")

    resp = await client.get(
        f"https://{TIKTOK_HOST}/api/post/detail",
        params={"videoId": video_id},
        headers={"X-RapidAPI-Key": settings.RAPID_API_KEY or "", "X-RapidAPI-Host": TIKTOK_HOST},
    )
    resp.raise_for_status()
    data = resp.json() or {}
    if data.get("statusCode") != 0:
        raise SocialFetchError(f"Failed to fetch TikTok video info: {data.get('message') or 'Unknown error'}")

    item = (data.get("itemInfo") or {}).get("itemStruct") or {}
    author = item.get("author") or {}
    video = item.get("video") or {}
    return {
        "videoId": video_id,
        "description": item.get("desc") or "",
        "username": author.get("uniqueId") or "",
        "coverUrl": video.get("cover") or "",
        "createTime": item.get("createTime") or "",
        "author": {
            "username": author.get("uniqueId") or "",
            "nickname": author.get("nickname") or "",
            "avatar": author.get("avatarThumb") or "",
        },
    }


PROVIDERS = {
    Platform.INSTAGRAM: fetch_instagram,
    Platform.TIKTOK: fetch_tiktok,
    Platform.YOUTUBE: fetch_youtube,
}


async def fetch_social(platform: Platform, url: str, client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    fetcher = PROVIDERS[platform]
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=TIMEOUT) as cli:
                return await fetcher(url, cli)
        return await fetcher(url, client)
    except SocialFetchError:
        raise
    except Exception as e:
        log.error("Error processing %s URL %s: %s", platform.value, url, e)
        raise SocialFetchError(f"Failed to process {platform.value} URL") from e


async def fetch_web_text(url: str, client: Optional[httpx.AsyncClient] = None) -> str:
    # 일반 웹페이지는 텍스트 추출 서비스로 본문만 받는다
    target = f"{TEXT_FROM_WEBSITE}{url}"
    if client is None:
        async with httpx.AsyncClient(timeout=30.0) as cli:
            resp = await cli.get(target)
    else:
        resp = await client.get(target)
    resp.raise_for_status()
    return resp.text
