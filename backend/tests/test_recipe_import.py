"""링크 가져오기: 플랫폼 판별, 본문 컷, 출처 표기, 파이프라인"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from app.core.config import settings
from app.services import recipe_import
from app.services.cache import AppCaches
from app.services.recipe_import import (
    INGREDIENTS_UNAVAILABLE,
    INSTRUCTIONS_UNAVAILABLE,
    build_source,
    extract_site_name,
    fill_missing_details,
    import_recipe,
    truncate_content,
)
from app.services.social import (
    Platform,
    detect_platform,
    extract_instagram_shortcode,
    extract_tiktok_video_id,
    extract_youtube_video_id,
)


@pytest.mark.parametrize("url,platform", [
    ("https://www.instagram.com/p/Cxyz123/", Platform.INSTAGRAM),
    ("https://instagram.com/reel/Cxyz123", Platform.INSTAGRAM),
    ("https://vm.TikTok.com/ZMabc/", Platform.TIKTOK),
    ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", Platform.YOUTUBE),
    ("https://youtu.be/dQw4w9WgXcQ", Platform.YOUTUBE),
    ("https://www.allrecipes.com/recipe/1/pie", Platform.WEB),
])
def test_detect_platform(url, platform) -> None:
    assert detect_platform(url) is platform


@pytest.mark.parametrize("url", [
    "https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=3",
    "https://youtu.be/dQw4w9WgXcQ",
    "https://youtube.com/shorts/dQw4w9WgXcQ",
])
def test_youtube_ids(url) -> None:
    assert extract_youtube_video_id(url) == "dQw4w9WgXcQ"


def test_instagram_and_tiktok_ids() -> None:
    assert extract_instagram_shortcode("https://www.instagram.com/reels/C1a-B_2/?igsh=x") == "C1a-B_2"
    assert extract_tiktok_video_id("https://www.tiktok.com/@chef/video/7301234567890?lang=en") == "7301234567890"
    assert extract_tiktok_video_id("https://vm.tiktok.com/ZMabc/") is None


class TestTruncate:
    def test_short_untouched(self) -> None:
        assert truncate_content("abc", 10) == "abc"

    def test_cuts_at_late_sentence_boundary(self) -> None:
        text = "a" * 90 + ". " + "b" * 50
        assert truncate_content(text, 100) == "a" * 90 + "."

    def test_early_boundary_appends_ellipsis(self) -> None:
        text = "a" * 10 + "." + "b" * 200
        out = truncate_content(text, 100)
        assert out == text[:100] + "..."


def test_site_name() -> None:
    assert extract_site_name("https://www.allrecipes.com/recipe/1") == "Allrecipes"
    assert extract_site_name("not a url") == "Web"


@pytest.mark.parametrize("platform,social,expected", [
    (Platform.INSTAGRAM, {"username": "chef"}, "Instagram: @chef"),
    (Platform.TIKTOK, {"author": {"username": "tok"}}, "TikTok: @tok"),
    (Platform.YOUTUBE, {"channelTitle": "Cooks"}, "YouTube: Cooks"),
    (Platform.WEB, None, "BBCGOODFOOD"),
])
def test_build_source(platform, social, expected) -> None:
    assert build_source(platform, social, "https://www.bbcgoodfood.com/r") == expected


class TestFillMissing:
    async def test_complete_recipe_skips_llm(self) -> None:
        with patch.object(recipe_import.llm_openai, "complete_from_title", new=AsyncMock()) as gen:
            out = await fill_missing_details("Pie", ["flour"], ["bake"])
        assert out == (["flour"], ["bake"])
        gen.assert_not_awaited()

    async def test_fills_only_missing_side(self) -> None:
        gen = AsyncMock(return_value={"ingredients": ["x", "y", "z"], "instructions": ["1", "2", "3"]})
        with patch.object(recipe_import.llm_openai, "complete_from_title", new=gen):
            out = await fill_missing_details("Pie", ["flour"], [])
        assert out == (["flour"], ["1", "2", "3"])

    async def test_failure_uses_placeholders(self) -> None:
        gen = AsyncMock(side_effect=RuntimeError("llm down"))
        with patch.object(recipe_import.llm_openai, "complete_from_title", new=gen):
            out = await fill_missing_details("Pie", [], [])
        assert out == ([INGREDIENTS_UNAVAILABLE], [INSTRUCTIONS_UNAVAILABLE])


class TestImportPipeline:
    PARSED = {
        "title": "Reel Tacos",
        "ingredients": ["tortillas"],
        "instructions": ["warm"],
        "description": "Good",
        "tags": ["mexican"],
        "cookingTime": "",
        "difficulty": "easy",
        "servings": "",
        "nutrition": {},
    }

    async def test_instagram_import_then_cache_hit(self) -> None:
        caches = AppCaches.from_settings(settings)
        social = {"shortcode": "C1", "caption": "Tacos recipe...", "username": "chef", "imageUrl": "http://img/1.jpg"}
        url = "https://www.instagram.com/p/C1/"

        with patch.object(recipe_import, "fetch_social", new=AsyncMock(return_value=social)) as fetch, \
             patch.object(recipe_import.llm_openai, "parse_recipe", new=AsyncMock(return_value=dict(self.PARSED))) as parse:
            recipe, from_cache = await import_recipe(url, caches)
            again, again_cached = await import_recipe(url, caches)

        assert from_cache is False and again_cached is True
        assert again["id"] == recipe["id"]
        fetch.assert_awaited_once()
        parse.assert_awaited_once()
        assert parse.await_args.args[1] is True
        assert recipe["source"] == "Instagram: @chef"
        assert recipe["sourcePlatform"] == "instagram"
        assert recipe["imageUrl"] == "http://img/1.jpg"
        assert recipe["cookingTime"] == "30 minutes"
        assert recipe["servings"] == "4"
        assert recipe["instagram"] == {"shortcode": "C1", "username": "chef"}
        assert len(caches.generated) == 1

    async def test_web_import_fetches_image(self) -> None:
        caches = AppCaches.from_settings(settings)
        with patch.object(recipe_import, "fetch_web_text", new=AsyncMock(return_value="Some page text")), \
             patch.object(recipe_import.llm_openai, "parse_recipe", new=AsyncMock(return_value=dict(self.PARSED))), \
             patch.object(recipe_import, "fetch_image", new=AsyncMock(return_value="https://via.placeholder.com/1")):
            recipe, _ = await import_recipe("https://www.seriouseats.com/tacos", caches)

        assert recipe["source"] == "SERIOUSEATS"
        assert recipe["imageUrl"] is None
        assert recipe["author"] is None

    async def test_empty_content(self) -> None:
        caches = AppCaches.from_settings(settings)
        with patch.object(recipe_import, "fetch_web_text", new=AsyncMock(return_value="")):
            with pytest.raises(recipe_import.ImportContentEmpty):
                await import_recipe("https://example.com/x", caches)
