# app/db/indexes.py
# 컬렉션 인덱스 생성
# 앱 스타트업에서 한 번 ensure_indexes(db)를 await로 호출한다.

from __future__ import annotations

# 레시피 검색용 인덱스 (토큰 any-of + 파티션별 최신순)
async def ensure_recipe_indexes(db):
    col = db["recipes"]
    await col.create_index("searchableFields")
    await col.create_index([("isExternal", 1), ("createdAt", -1)])
    await col.create_index([("isDiscoverable", 1), ("createdAt", -1)])
    await col.create_index("difficulty")
    await col.create_index([("userId", 1), ("createdAt", -1)])

async def ensure_indexes(db):
    await ensure_recipe_indexes(db)

    # 좋아요/저장은 사용자-레시피 쌍당 1건
    await db["recipeLikes"].create_index([("userId", 1), ("recipeId", 1)], unique=True)
    await db["recipeSaves"].create_index([("userId", 1), ("recipeId", 1)], unique=True)
    await db["recipeLikes"].create_index("recipeId")
    await db["recipeSaves"].create_index("recipeId")

    # 컬렉션(폴더)은 사용자별 조회
    await db["collections"].create_index([("userId", 1), ("createdAt", -1)])
