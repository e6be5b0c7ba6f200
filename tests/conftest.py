from __future__ import annotations

import os
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from stylist.wardrobe.schemas import Garment

# ============================================================
# Environment (runs first)
# ============================================================
TEST_ENV = {
    "APP_ENV": os.getenv("APP_ENV", "ci"),
    "DEBUG": os.getenv("DEBUG", "False"),
    "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
    "OPENROUTER_API_KEY": os.getenv("OPENROUTER_API_KEY", "test_openrouter_key"),
    "JUDGE_TIMEOUT": "5",
    "JUDGE_MAX_ATTEMPTS": "1",
}


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    os.environ.update(TEST_ENV)

    from stylist.config import get_settings
    from stylist.outfit.service import get_outfit_service

    get_settings.cache_clear()
    get_outfit_service.cache_clear()

    yield

    get_settings.cache_clear()
    get_outfit_service.cache_clear()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    from stylist.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def mock_outfit_service() -> Generator[AsyncMock, None, None]:
    from stylist.main import app
    from stylist.outfit.service import OutfitGenerationService, get_outfit_service

    mock_service: AsyncMock = AsyncMock(spec=OutfitGenerationService)
    app.dependency_overrides[get_outfit_service] = lambda: mock_service
    yield mock_service
    app.dependency_overrides.clear()


# ============================================================
# Wardrobe fixtures
# ============================================================


@pytest.fixture
def make_garment() -> Callable[..., Garment]:
    """Garment factory: casual, all-season, solid unless overridden."""
    counter = {"n": 0}

    def _make(category: str = "top", **overrides: Any) -> Garment:
        counter["n"] += 1
        data: dict[str, Any] = {
            "id": f"{category}-{counter['n']}",
            "category": category,
            "primary_color": "black",
            "style_bucket": "casual",
            "material": "cotton",
            "fit": "regular",
            "pattern": "solid",
            "seasonality": "all_season",
            "formality": "casual",
        }
        data.update(overrides)
        return Garment.model_validate(data)

    return _make


@pytest.fixture
def small_wardrobe(make_garment: Callable[..., Garment]) -> list[Garment]:
    """Six items: 2 tops, 2 bottoms, 2 shoes (loose mode)."""
    return [
        make_garment("top", id="t1", primary_color="white"),
        make_garment("top", id="t2", primary_color="navy", style_bucket="minimalist"),
        make_garment("bottom", id="b1", primary_color="blue"),
        make_garment("bottom", id="b2", primary_color="khaki"),
        make_garment("shoes", id="s1", primary_color="white"),
        make_garment("shoes", id="s2", primary_color="brown", formality="smart_casual"),
    ]


@pytest.fixture
def judge_response() -> Callable[..., dict[str, Any]]:
    """Builds an OpenAI-style chat completion payload."""

    def _build(content: str | None, total_tokens: int = 0) -> dict[str, Any]:
        return {
            "choices": [{"message": {"content": content}}],
            "usage": {"total_tokens": total_tokens},
        }

    return _build
