# 환경변수 로딩 (.env)
from __future__ import annotations
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "development"                      # development | production
    MONGO_URI: str = "mongodb://localhost:27017"  # 필요 시 prod/staging로 분리
    MONGO_DB: str = "recipes"
    CORS_ORIGINS: List[str] = ["*"]

    # Firebase (토큰 검증 + FCM 푸시)
    FIREBASE_SERVICE_ACCOUNT: Optional[str] = None   # JSON 문자열 또는 파일 경로
    FIREBASE_PROJECT_ID: Optional[str] = None

    # OpenAI
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_MODEL: str = "gpt-5-nano"
    OPENAI_TIMEOUT: float = 120.0
    OPENAI_MAX_RETRIES: int = 3

    # 외부 API
    GOOGLE_API_KEY: Optional[str] = None
    GOOGLE_CX: Optional[str] = None
    YOUTUBE_API_KEY: Optional[str] = None
    RAPID_API_KEY: Optional[str] = None

    # 캐시 상한/TTL (초)
    CACHE_MAX_SIZE: int = 1000
    CACHE_TTL_SOCIAL: int = 24 * 60 * 60
    CACHE_TTL_AI: int = 7 * 24 * 60 * 60
    CACHE_TTL_IMAGES: int = 30 * 24 * 60 * 60
    CACHE_TTL_RECIPES: int = 7 * 24 * 60 * 60
    CACHE_TTL_IMAGE_CHECKS: int = 24 * 60 * 60   # 이미지 링크 검증 결과

    @property
    def is_development(self) -> bool:
        return self.ENV.lower() != "production"

settings = Settings()
