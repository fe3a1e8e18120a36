# app/services/utils.py
# 문서 직렬화/시간/설명문 정리 유틸

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional
import re

from bson import ObjectId


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def serialize_doc(doc: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Mongo 문서 → API dict.
    _id(ObjectId)를 문자열 'id'로 바꿔 넣고 _id 는 뺀다.
    """
    out = {k: v for k, v in doc.items() if k != "_id"}
    if "_id" in doc:
        out["id"] = str(doc["_id"])
    return out


def to_object_id(value: str) -> Optional[ObjectId]:
    # 잘못된 id 는 None (라우터에서 404 처리)
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


_HTML_TAG_RE = re.compile(r"<[^>]*>")

# 외부 카탈로그 설명문 끝에 붙는 "비슷한 레시피" 류 문구. 가장 먼저 등장한 위치부터 잘라낸다
_TAIL_PATTERNS = [
    re.compile(r"\btry\s+(?:this|these|the|other|more|similar)\s+(?:similar\s+)?(?:recipes?|dish(?:es)?|variations?|versions?)\b", re.I),
    re.compile(r"\busers?\s+who\s+(?:liked|loved|enjoyed|tried)\s+(?:this\s+)?(?:recipe|dish)?\s+(?:also\s+)?(?:liked|loved|enjoyed|tried)", re.I),
    re.compile(r"\b(?:similar|related|other)\s+(?:recipes?|dishes?)\s+(?:include|are|you\s+might\s+also\s+like)", re.I),
    re.compile(r"\byou\s+might\s+(?:also\s+)?(?:like|enjoy|try)", re.I),
    re.compile(r"\bcheck\s+out\s+(?:these|this|other|similar|related)\s+(?:recipes?|dish(?:es)?)\b", re.I),
    re.compile(r"\bif\s+you\s+like\s+this\s+(?:recipe|dish),?\s+(?:you'll|you\s+will|you\s+might|try|check|see|take\s+a\s+look)", re.I),
]


def clean_recipe_description(description: Any) -> str:
    if not description or not isinstance(description, str):
        return description if isinstance(description, str) else ""

    cleaned = _HTML_TAG_RE.sub("", description)

    cut = -1
    for rx in _TAIL_PATTERNS:
        m = rx.search(cleaned)
        if m and (cut == -1 or m.start() < cut):
            cut = m.start()
    if cut != -1:
        cleaned = cleaned[:cut].strip()

    cleaned = cleaned.rstrip()
    return re.sub(r"[.,;:]+$", "", cleaned)
