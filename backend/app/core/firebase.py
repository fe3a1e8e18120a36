# app/core/firebase.py
# Firebase Admin 초기화: 토큰 검증(auth)과 푸시(messaging)에만 사용

from __future__ import annotations
import json
import logging
import os
from typing import Any, Dict

import firebase_admin
from firebase_admin import auth, credentials, messaging

from app.core.config import settings

log = logging.getLogger(__name__)


class FirebaseNotReady(Exception):
    # 서비스 계정 미설정/초기화 실패
    pass


def init_firebase() -> bool:
    """앱 시작 시 1회. 이미 초기화돼 있으면 그대로 True"""
    if firebase_admin._apps:
        return True

    raw = settings.FIREBASE_SERVICE_ACCOUNT
    if not raw:
        log.warning("FIREBASE_SERVICE_ACCOUNT not set; authenticated routes will reject requests")
        return False

    # JSON 문자열 또는 파일 경로 둘 다 허용
    if os.path.isfile(raw):
        cred = credentials.Certificate(raw)
    else:
        cred = credentials.Certificate(json.loads(raw))

    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    firebase_admin.initialize_app(cred, options)
    log.info("Firebase Admin initialized")
    return True


def verify_id_token(id_token: str) -> Dict[str, Any]:
    if not firebase_admin._apps:
        raise FirebaseNotReady("firebase-admin is not initialized")
    return auth.verify_id_token(id_token, check_revoked=True)


def send_push(message: messaging.Message) -> str:
    if not firebase_admin._apps:
        raise FirebaseNotReady("firebase-admin is not initialized")
    return messaging.send(message)
