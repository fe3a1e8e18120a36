# app/db/models/schemas.py
# 요청 바디 모델 (모바일 클라이언트와 같은 camelCase 필드명)
# 필수값 누락은 라우터에서 400 메시지로 직접 처리 → 여기서는 대부분 optional
from __future__ import annotations
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_list(v: Any) -> List[Any]:
    # 배열이 아니면 빈 배열 (클라이언트가 문자열/null 보내는 경우)
    return v if isinstance(v, list) else []


class RecipeIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    cuisineType: str = ""
    description: str = ""
    ingredients: List[str] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    imageUrl: Optional[str] = None
    cookingTime: str = ""
    difficulty: str = ""
    servings: str = ""
    tags: List[str] = Field(default_factory=list)
    source: str = "user-created"
    sourcePlatform: Optional[str] = None
    sourceUrl: Optional[str] = None
    author: Optional[str] = None
    instagram: Optional[Dict[str, Any]] = None
    nutrition: Optional[Dict[str, Any]] = None
    aiGenerated: Optional[bool] = None

    @field_validator("ingredients", "instructions", "tags", mode="before")
    @classmethod
    def _lists(cls, v):
        return _as_list(v)


# # 부분 수정: 보낸 필드만 반영 (model_dump(exclude_unset=True))
class RecipeUpdateIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    cuisineType: Optional[str] = None
    description: Optional[str] = None
    ingredients: Optional[List[str]] = None
    instructions: Optional[List[str]] = None
    imageUrl: Optional[str] = None
    cookingTime: Optional[str] = None
    difficulty: Optional[str] = None
    servings: Optional[str] = None
    tags: Optional[List[str]] = None
    isFavorite: Optional[bool] = None

    @field_validator("ingredients", "instructions", "tags", mode="before")
    @classmethod
    def _lists(cls, v):
        return _as_list(v)


class FavoriteIn(BaseModel):
    isFavorite: Optional[bool] = None


class SaveFromAiIn(BaseModel):
    recipe: Optional[Dict[str, Any]] = None


class CollectionIcon(BaseModel):
    codePoint: Optional[int] = None
    fontFamily: Optional[str] = None
    fontPackage: Optional[str] = None


class CollectionIn(BaseModel):
    name: Optional[str] = None
    color: Optional[Any] = None
    icon: Optional[CollectionIcon] = None
    recipes: Optional[List[Dict[str, Any]]] = None


class CollectionRecipeIn(BaseModel):
    recipe: Optional[Dict[str, Any]] = None


class ProfileIn(BaseModel):
    displayName: Optional[str] = None
    email: Optional[str] = None
    photoURL: Optional[str] = None
    showProfileInCommunity: Optional[bool] = None
    fcmToken: Optional[str] = None


# # AI
class GenerateIn(BaseModel):
    ingredients: List[str] = Field(default_factory=list)
    dietaryRestrictions: List[str] = Field(default_factory=list)
    cuisineType: str = ""
    random: bool = False


class ImportIn(BaseModel):
    url: Optional[str] = None


class ChatIn(BaseModel):
    message: Optional[str] = None
    conversationHistory: List[Dict[str, Any]] = Field(default_factory=list)


class SuggestIn(BaseModel):
    ingredients: List[str] = Field(default_factory=list)
    preferences: str = ""
