"""
Next-day outfit pre-generation

Runs the normal pipeline against a forecast and shapes the outcome into the
daily queue entry the nightly job stores. Storage itself is the caller's.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta, timezone

from stylist.outfit.schemas import (
    GenerationRequest,
    QueueEntry,
    QueueMetadata,
    StylePreferences,
    WeatherContext,
)
from stylist.outfit.service import OutfitGenerationService, get_outfit_service
from stylist.wardrobe.schemas import Garment

logger = logging.getLogger(__name__)

PREGENERATED_OUTFIT_COUNT = 6


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PreGenerationService:
    def __init__(
        self,
        generation_service: OutfitGenerationService | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._generation_service = generation_service or get_outfit_service()
        self._clock = clock or _utcnow

    async def pre_generate_for_user(
        self,
        user_id: str,
        wardrobe: Sequence[Garment],
        forecast_weather: WeatherContext,
        preferences: StylePreferences | None = None,
        recently_worn_ids: Iterable[str] = (),
    ) -> QueueEntry:
        result = await self._generation_service.generate(
            GenerationRequest(
                user_id=user_id,
                wardrobe=list(wardrobe),
                weather=forecast_weather,
                preferences=preferences,
                recently_worn_ids=set(recently_worn_ids),
                target_count=PREGENERATED_OUTFIT_COUNT,
            )
        )

        if not result.is_success:
            reason = result.error.message if result.error else "No outfits generated"
            logger.warning("Pre-generation failed for user: %s (%s)", user_id, reason)
            return QueueEntry(success=False, user_id=user_id, error=reason)

        now = self._clock()
        return QueueEntry(
            success=True,
            user_id=user_id,
            date=(now + timedelta(days=1)).date(),
            outfits=[outfit.to_record() for outfit in result.outfits],
            weather_context={
                "temp_f": forecast_weather.temp_f,
                "condition": forecast_weather.condition,
                "description": forecast_weather.description,
            },
            generated_at=now,
            metadata=QueueMetadata(
                candidates_generated=result.candidates_generated,
                latency_ms=result.latency_ms,
                tokens_used=result.tokens_used,
                estimated_cost=result.estimated_cost,
            ),
        )
