"""
Outfit pipeline schemas

- WeatherContext / StylePreferences / GenerationConfig: caller-supplied context
- OutfitCandidate / ScoredOutfit: pipeline products
- JudgmentRecord / JudgmentResponse: external judge output
- GenerationRequest / GenerationResult: pipeline entry and exit
"""

import logging
import math
from datetime import date as date_type
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)

from stylist.common.schemas import BaseSchema, FrozenSchema
from stylist.wardrobe.schemas import Category, Garment, LenientStyleBucket, Seasonality

logger = logging.getLogger(__name__)

# Temperature bands (°F)
COLD_BELOW_F = 50
COOL_BELOW_F = 65
MILD_BELOW_F = 75
HOT_FROM_F = 85

RAINY_CONDITIONS = frozenset({"rainy", "rain", "drizzle", "showers", "thunderstorm"})
SNOWY_CONDITIONS = frozenset({"snowy", "snow", "sleet", "blizzard"})

MAX_SCORE = 100
MIN_VIBE_SCORE = -5
MAX_VIBE_SCORE = 5
MAX_VIBES = 3
DEFAULT_JUSTIFICATION = "A well-coordinated outfit."


def clamp_score(value: float) -> int:
    return int(max(0, min(MAX_SCORE, round(value))))


class RuleMode(str, Enum):
    """Rule strictness, chosen from wardrobe size."""
    DISABLED = "disabled"   # < 5 items, nothing is generated
    LOOSE = "loose"         # 5-9 items
    NORMAL = "normal"       # 10-19 items
    STRICT = "strict"       # 20+ items, forced variety


# ============================================================
# Caller context
# ============================================================

class WeatherContext(FrozenSchema):
    """Raw weather readings. Every derived flag is computed, never stored."""
    temp_f: float = Field(
        ...,
        validation_alias=AliasChoices("temp_f", "tempF", "temperature"),
        description="Temperature in °F",
    )
    condition: str = Field(default="sunny", description="sunny, rainy, snowy, cloudy ...")
    humidity: float = Field(default=50.0)
    wind_mph: float = Field(default=5.0)
    description: str = Field(default="Clear")

    @field_validator("condition", mode="before")
    @classmethod
    def normalize_condition(cls, value: Any) -> Any:
        if value is None:
            return "sunny"
        return str(value).strip().lower()

    @property
    def is_cold(self) -> bool:
        return self.temp_f < COLD_BELOW_F

    @property
    def is_cool(self) -> bool:
        return COLD_BELOW_F <= self.temp_f < COOL_BELOW_F

    @property
    def is_mild(self) -> bool:
        return COOL_BELOW_F <= self.temp_f < MILD_BELOW_F

    @property
    def is_warm(self) -> bool:
        return MILD_BELOW_F <= self.temp_f < HOT_FROM_F

    @property
    def is_hot(self) -> bool:
        return self.temp_f >= HOT_FROM_F

    @property
    def is_rainy(self) -> bool:
        return self.condition in RAINY_CONDITIONS

    @property
    def is_snowy(self) -> bool:
        return self.condition in SNOWY_CONDITIONS

    @property
    def needs_jacket(self) -> bool:
        return self.is_cold or self.is_cool or self.is_rainy

    @property
    def appropriate_season(self) -> Seasonality:
        if self.is_cold or self.is_snowy:
            return Seasonality.WINTER
        if self.is_hot:
            return Seasonality.SUMMER
        return Seasonality.ALL_SEASON

    def to_prompt_description(self) -> str:
        return f"Weather: {round(self.temp_f)}°F, {self.description}"


class StylePreferences(FrozenSchema):
    style_goal: str | None = Field(default=None, description="Free-text style goal")
    avoid_colors: tuple[str, ...] = Field(default=())
    preferred_styles: tuple[LenientStyleBucket, ...] = Field(default=())
    boldness_level: int = Field(default=3, ge=1, le=5, description="1 conservative - 5 bold")
    occasion: str | None = Field(default=None, description="work, date, casual ...")
    time_of_day: str | None = Field(default=None, description="morning, afternoon, evening")

    @field_validator("avoid_colors", mode="before")
    @classmethod
    def drop_blank_colors(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(",")
        return tuple(c.strip() for c in value if c and c.strip())


class GenerationConfig(FrozenSchema):
    """Candidate generation bounds and switches.

    ``seed`` makes the shuffle and accessory coin flips reproducible.
    """
    max_candidates: int = Field(default=50, ge=1)
    max_anchors: int = Field(default=5, ge=1)
    prioritize_unworn: bool = Field(default=True)
    enable_outerwear: bool = Field(default=False)
    enable_accessories: bool = Field(default=False)
    seed: int | None = Field(default=None)

    @classmethod
    def for_wardrobe(
        cls,
        wardrobe_size: int,
        weather: WeatherContext | None = None,
        seed: int | None = None,
    ) -> "GenerationConfig":
        if wardrobe_size < 10:
            max_candidates, max_anchors = 20, 3
        elif wardrobe_size < 25:
            max_candidates, max_anchors = 35, 5
        elif wardrobe_size < 50:
            max_candidates, max_anchors = 50, 7
        else:
            max_candidates, max_anchors = 75, 7

        return cls(
            max_candidates=max_candidates,
            max_anchors=max_anchors,
            prioritize_unworn=True,
            enable_outerwear=weather.needs_jacket if weather else False,
            enable_accessories=wardrobe_size > 15,
            seed=seed,
        )


# ============================================================
# Candidates and scored outfits
# ============================================================

_SLOT_CATEGORIES = {
    "top": Category.TOP,
    "bottom": Category.BOTTOM,
    "shoes": Category.SHOES,
    "outerwear": Category.OUTERWEAR,
    "accessory": Category.ACCESSORY,
}


class OutfitCandidate(FrozenSchema):
    top: Garment
    bottom: Garment
    shoes: Garment
    outerwear: Garment | None = None
    accessory: Garment | None = None
    rule_score: int = Field(default=MAX_SCORE, ge=0, le=MAX_SCORE)

    @model_validator(mode="after")
    def check_slot_categories(self) -> "OutfitCandidate":
        for slot, category in _SLOT_CATEGORIES.items():
            garment = getattr(self, slot)
            if garment is not None and garment.category != category:
                raise ValueError(
                    f"{slot} slot requires a {category.value}, got {garment.category.value}"
                )
        return self

    @property
    def garments(self) -> list[Garment]:
        slots = (self.top, self.bottom, self.shoes, self.outerwear, self.accessory)
        return [g for g in slots if g is not None]

    @property
    def id_tuple(self) -> tuple[str | None, ...]:
        return (
            self.top.id,
            self.bottom.id,
            self.shoes.id,
            self.outerwear.id if self.outerwear else None,
            self.accessory.id if self.accessory else None,
        )

    @property
    def candidate_id(self) -> str:
        return "_".join(g.id for g in self.garments)

    def with_score(self, score: float) -> "OutfitCandidate":
        return self.model_copy(update={"rule_score": clamp_score(score)})


class CandidateBatch(BaseSchema):
    """Rule-filtered candidates plus how many were generated before filtering."""
    candidates: list[OutfitCandidate] = Field(default_factory=list)
    generated: int = Field(default=0, ge=0)


class ScoredOutfit(FrozenSchema):
    id: str = Field(..., description="candidate id + generation timestamp")
    candidate: OutfitCandidate
    score: int = Field(..., ge=0, le=MAX_SCORE)
    why_it_works: str = Field(default=DEFAULT_JUSTIFICATION)
    styling_tip: str | None = Field(default=None)
    vibes: tuple[str, ...] = Field(default=())

    @property
    def top(self) -> Garment:
        return self.candidate.top

    @property
    def bottom(self) -> Garment:
        return self.candidate.bottom

    @property
    def shoes(self) -> Garment:
        return self.candidate.shoes

    @property
    def outerwear(self) -> Garment | None:
        return self.candidate.outerwear

    @property
    def accessory(self) -> Garment | None:
        return self.candidate.accessory

    def to_record(self) -> dict[str, Any]:
        """Flat record keyed by garment ids, as the caller persists it."""
        return {
            "id": self.id,
            "top_id": self.top.id,
            "bottom_id": self.bottom.id,
            "shoes_id": self.shoes.id,
            "outerwear_id": self.outerwear.id if self.outerwear else None,
            "accessory_id": self.accessory.id if self.accessory else None,
            "score": self.score,
            "why_it_works": self.why_it_works,
            "styling_tip": self.styling_tip,
            "vibes": list(self.vibes),
        }


# ============================================================
# Judge output
# ============================================================

class JudgmentRecord(BaseSchema):
    index: int = Field(..., ge=0, description="Index into the candidate list sent")
    vibe_score: int = Field(default=0, ge=MIN_VIBE_SCORE, le=MAX_VIBE_SCORE)
    why_it_works: str = Field(default=DEFAULT_JUSTIFICATION)
    styling_tip: str | None = Field(default=None)
    vibes: list[str] = Field(default_factory=list)

    @field_validator("index", mode="before")
    @classmethod
    def coerce_index(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return int(value.strip())
        return value

    @field_validator("vibe_score", mode="before")
    @classmethod
    def clamp_vibe_score(cls, value: Any) -> int:
        try:
            score = float(value)
        except (TypeError, ValueError):
            return 0
        if not math.isfinite(score):
            return 0
        return max(MIN_VIBE_SCORE, min(MAX_VIBE_SCORE, round(score)))

    @field_validator("why_it_works", mode="before")
    @classmethod
    def default_justification(cls, value: Any) -> Any:
        if value is None or not str(value).strip():
            return DEFAULT_JUSTIFICATION
        return str(value).strip()

    @field_validator("styling_tip", mode="before")
    @classmethod
    def blank_tip_to_none(cls, value: Any) -> Any:
        if value is None or not str(value).strip():
            return None
        return str(value).strip()

    @field_validator("vibes", mode="before")
    @classmethod
    def normalize_vibes(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, list | tuple):
            return []
        vibes = [str(v).strip() for v in value if v is not None and str(v).strip()]
        return vibes[:MAX_VIBES]


class JudgmentResponse(BaseSchema):
    records: list[JudgmentRecord] = Field(default_factory=list)
    tokens_used: int = Field(default=0)
    latency_ms: int = Field(default=0)
    used_fallback: bool = Field(default=False)


# ============================================================
# Pipeline entry / exit
# ============================================================

class GenerationRequest(BaseSchema):
    user_id: str | None = Field(default=None, description="Caller's user id, for logging")
    wardrobe: list[Garment] = Field(default_factory=list)
    weather: WeatherContext | None = Field(default=None)
    preferences: StylePreferences | None = Field(default=None)
    recently_worn_ids: set[str] = Field(default_factory=set)
    target_count: int | None = Field(default=None, ge=1, description="Outfits to return")
    seed: int | None = Field(default=None)

    @field_validator("weather", "preferences", mode="wrap")
    @classmethod
    def drop_malformed_context(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        # optional context: unknown rather than a rejected request
        try:
            return handler(value)
        except ValidationError as err:
            logger.warning(
                "Ignoring malformed %s (%d errors)", info.field_name, err.error_count()
            )
            return None


class GenerationErrorKind(str, Enum):
    INSUFFICIENT_INPUT = "insufficient_input"
    NO_VIABLE_COMBINATIONS = "no_viable_combinations"


class GenerationError(BaseSchema):
    kind: GenerationErrorKind
    message: str


class GenerationResult(BaseSchema):
    outfits: list[ScoredOutfit] = Field(default_factory=list)
    rule_mode: RuleMode | None = Field(default=None)
    candidates_generated: int = Field(default=0)
    candidates_after_rules: int = Field(default=0)
    latency_ms: int = Field(default=0)
    tokens_used: int = Field(default=0)
    estimated_cost: float = Field(default=0.0)
    error: GenerationError | None = Field(default=None)

    @property
    def is_success(self) -> bool:
        return self.error is None and bool(self.outfits)

    @classmethod
    def failure(
        cls, kind: GenerationErrorKind, message: str, **metadata: Any
    ) -> "GenerationResult":
        return cls(error=GenerationError(kind=kind, message=message), **metadata)


# ============================================================
# Next-day queue
# ============================================================

class QueueMetadata(BaseSchema):
    candidates_generated: int = Field(default=0)
    latency_ms: int = Field(default=0)
    tokens_used: int = Field(default=0)
    estimated_cost: float = Field(default=0.0)


class QueueEntry(BaseSchema):
    """One user's pre-generated outfits for the next day, as the caller stores it."""
    success: bool
    user_id: str
    date: date_type | None = Field(default=None)
    outfits: list[dict[str, Any]] = Field(default_factory=list)
    weather_context: dict[str, Any] | None = Field(default=None)
    generated_at: datetime | None = Field(default=None)
    metadata: QueueMetadata | None = Field(default=None)
    error: str | None = Field(default=None)


# ============================================================
# HTTP payloads
# ============================================================

class OutfitRecord(BaseSchema):
    id: str
    top_id: str
    bottom_id: str
    shoes_id: str
    outerwear_id: str | None = None
    accessory_id: str | None = None
    score: int
    why_it_works: str
    styling_tip: str | None = None
    vibes: list[str] = Field(default_factory=list)


class GenerateOutfitsResponse(BaseSchema):
    outfits: list[OutfitRecord] = Field(default_factory=list)
    rule_mode: RuleMode | None = Field(default=None)
    candidates_generated: int = Field(default=0)
    candidates_after_rules: int = Field(default=0)
    latency_ms: int = Field(default=0)
    tokens_used: int = Field(default=0)
    estimated_cost: float = Field(default=0.0)

    @classmethod
    def from_result(cls, result: GenerationResult) -> "GenerateOutfitsResponse":
        return cls(
            outfits=[OutfitRecord.model_validate(o.to_record()) for o in result.outfits],
            rule_mode=result.rule_mode,
            candidates_generated=result.candidates_generated,
            candidates_after_rules=result.candidates_after_rules,
            latency_ms=result.latency_ms,
            tokens_used=result.tokens_used,
            estimated_cost=result.estimated_cost,
        )
