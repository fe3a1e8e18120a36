# app/services/search/tokens.py
# 검색어/태그 → 토큰 추출 (searchableFields 에 대한 any-of 매칭용)
# - 스토어의 any-of($in) 연산자는 값 10개 제한 → 앞쪽 토큰일수록 사용자 의도에 가깝게 정렬
# - 쓰기 시점의 searchableFields 생성도 여기서 한다 (검색/저장 정규화 규칙 일치)

from __future__ import annotations
from typing import Any, Iterable, Iterator, List, Optional, Sequence, TypeVar
import logging
import re

log = logging.getLogger(__name__)

# 스토어 제약 (비즈니스 규칙 아님). 제한 없는 백엔드라면 이 값만 바꾼다.
MAX_ANY_OF_VALUES = 10

MIN_WORD_LEN = 3  # 개별 단어는 2글자 초과만

_WS_RE = re.compile(r"\s+")
_WORD_SPLIT_RE = re.compile(r"[\s-]+")
_EDGE_PUNCT_RE = re.compile(r"^[^\w]+|[^\w]+$")

T = TypeVar("T")


def gather_tokens(value: Any) -> List[str]:
    """콤마 단위 구(phrase) 추출: 소문자, trim, 내부 공백 1칸, 빈 구 제거"""
    if not value or not isinstance(value, str):
        return []
    out: List[str] = []
    for chunk in value.lower().split(","):
        phrase = _WS_RE.sub(" ", chunk.strip())
        if phrase:
            out.append(phrase)
    return out


def generate_variations(phrase: str) -> List[str]:
    # 원문 + 하이픈→공백 + 공백→하이픈 (원문과 다를 때만, 순서 유지)
    variations = [phrase]
    space_version = phrase.replace("-", " ")
    if space_version not in variations:
        variations.append(space_version)
    hyphen_version = _WS_RE.sub("-", phrase)
    if hyphen_version not in variations:
        variations.append(hyphen_version)
    return variations


def _split_words(phrase: str) -> List[str]:
    return [w for w in _WORD_SPLIT_RE.split(phrase) if w]


def build_search_tokens(query: Any, tag: Any, limit: int = MAX_ANY_OF_VALUES) -> List[str]:
    """
    query, tag → 최대 limit 개의 고유 토큰.
    1) 구 그대로  2) 하이픈/공백 변형  3) 개별 단어(3글자 이상)
    query 의 구가 tag 의 구보다 앞선다.
    """
    phrases = gather_tokens(query) + gather_tokens(tag)

    tokens: List[str] = []
    seen = set()

    def _add(tok: str) -> bool:
        # 추가 여유가 없으면 False
        if len(tokens) >= limit:
            return False
        if tok not in seen:
            seen.add(tok)
            tokens.append(tok)
        return True

    # 1) 구 그대로
    for phrase in phrases:
        if not _add(phrase):
            break

    # 2) 하이픈/공백 변형
    for phrase in phrases:
        if len(tokens) >= limit:
            break
        hyphen_version = _WS_RE.sub("-", phrase)
        if hyphen_version != phrase:
            _add(hyphen_version)
        space_version = phrase.replace("-", " ")
        if space_version != phrase:
            _add(space_version)

    # 3) 개별 단어
    for phrase in phrases:
        if len(tokens) >= limit:
            break
        for word in _split_words(phrase):
            if len(word) >= MIN_WORD_LEN:
                if not _add(word):
                    break

    if len(tokens) > limit:
        log.warning("any-of supports up to %d values; capped (had %d)", limit, len(tokens))
        tokens = tokens[:limit]
    return tokens


def normalize_difficulty(value: Optional[str]) -> Optional[str]:
    # "easy" / "EASY" / "Easy" → "Easy"
    if not value or not isinstance(value, str):
        return None
    v = value.strip()
    if not v:
        return None
    return v[0].upper() + v[1:].lower()


def _clean_word(word: str) -> str:
    return _EDGE_PUNCT_RE.sub("", word)


def build_searchable_fields(
    title: Optional[str],
    ingredients: Optional[Iterable[Any]],
    tags: Optional[Iterable[Any]],
) -> List[str]:
    """
    쓰기 시점 토큰 집합. title/ingredients/tags 가 바뀔 때마다 반드시 다시 만들어 덮어쓴다.
    - 소문자, 하이픈 → 공백
    - 구 전체 + 3글자 이상 단어 (앞뒤 구두점 제거)
    """
    sources: List[str] = []
    if isinstance(title, str):
        sources.append(title)
    for group in (ingredients, tags):
        for item in group or []:
            if isinstance(item, str):
                sources.append(item)

    fields = set()
    for text in sources:
        phrase = _WS_RE.sub(" ", text.lower().replace("-", " ")).strip()
        if not phrase:
            continue
        fields.add(phrase)
        for word in phrase.split(" "):
            word = _clean_word(word)
            if len(word) >= MIN_WORD_LEN:
                fields.add(word)
    return sorted(fields)


def chunked(items: Sequence[T], size: int = MAX_ANY_OF_VALUES) -> Iterator[List[T]]:
    # id 멤버십 조회는 ceil(n/size) 번으로 나눠서
    for i in range(0, len(items), size):
        yield list(items[i:i + size])
