# 공용 의존성/헬퍼 (Bearer 토큰 → 사용자, 캐시 핸들)
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import logging

from fastapi import Request
from firebase_admin import auth as fb_auth
from starlette.concurrency import run_in_threadpool

from app.core.errors import unauthorized
from app.core.firebase import verify_id_token

log = logging.getLogger(__name__)

BEARER = "Bearer "


@dataclass(frozen=True)
class CurrentUser:
    uid: str
    email: Optional[str] = None
    email_verified: bool = False
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


async def get_current_user(request: Request) -> CurrentUser:
    # Authorization: Bearer <idToken> 만 허용
    header = request.headers.get("Authorization") or ""
    if not header.startswith(BEARER):
        raise unauthorized("No valid authentication token provided")
    token = header[len(BEARER):].strip()
    if not token:
        raise unauthorized("No valid authentication token provided")

    try:
        # firebase-admin 검증은 동기 호출(공개키 fetch 포함) → 스레드풀
        decoded = await run_in_threadpool(verify_id_token, token)
    except fb_auth.ExpiredIdTokenError:
        raise unauthorized("Authentication token has expired")
    except fb_auth.RevokedIdTokenError:
        raise unauthorized("Authentication token has been revoked")
    except fb_auth.InvalidIdTokenError:
        raise unauthorized("Invalid authentication token")
    except Exception as e:
        log.warning("Authentication error: %s", e)
        raise unauthorized("Authentication failed")

    return CurrentUser(
        uid=decoded["uid"],
        email=decoded.get("email"),
        email_verified=bool(decoded.get("email_verified", False)),
        display_name=decoded.get("name"),
        photo_url=decoded.get("picture"),
    )


def get_caches(request: Request):
    # main.on_startup 에서 app.state.caches 를 만든다
    return request.app.state.caches
