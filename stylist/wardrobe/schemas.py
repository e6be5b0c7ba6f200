"""
Wardrobe schemas

Garment snapshots and the closed vocabularies they are described with.
Snapshots are immutable for the duration of one generation call; only
wear tracking derives new ones.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import AliasChoices, BeforeValidator, Field, field_validator

from stylist.common.schemas import FrozenSchema

EMBEDDING_DIM = 512
VINTAGE_CONFIDENCE = 0.6


# ============================================================
# Vocabularies
# ============================================================

class Category(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"
    SHOES = "shoes"
    OUTERWEAR = "outerwear"
    ACCESSORY = "accessory"


class StyleBucket(str, Enum):
    CASUAL = "casual"
    SMART_CASUAL = "smart_casual"
    BUSINESS_CASUAL = "business_casual"
    FORMAL = "formal"
    STREETWEAR = "streetwear"
    ATHLEISURE = "athleisure"
    BOHEMIAN = "bohemian"
    MINIMALIST = "minimalist"
    EDGY = "edgy"
    PREPPY = "preppy"


class Material(str, Enum):
    COTTON = "cotton"
    LINEN = "linen"
    SILK = "silk"
    WOOL = "wool"
    DENIM = "denim"
    LEATHER = "leather"
    SYNTHETIC = "synthetic"
    KNIT = "knit"
    FLEECE = "fleece"
    CASHMERE = "cashmere"
    VELVET = "velvet"
    CORDUROY = "corduroy"
    UNKNOWN = "unknown"


class Fit(str, Enum):
    OVERSIZED = "oversized"
    RELAXED = "relaxed"
    REGULAR = "regular"
    SLIM = "slim"
    CROPPED = "cropped"
    BAGGY = "baggy"
    TAILORED = "tailored"


class Pattern(str, Enum):
    SOLID = "solid"
    STRIPED = "striped"
    PLAID = "plaid"
    FLORAL = "floral"
    GEOMETRIC = "geometric"
    ABSTRACT = "abstract"
    ANIMAL_PRINT = "animal_print"
    POLKA_DOT = "polka_dot"
    GRAPHIC = "graphic"


class Seasonality(str, Enum):
    SUMMER = "summer"
    WINTER = "winter"
    SPRING_FALL = "spring_fall"
    ALL_SEASON = "all_season"


class Formality(str, Enum):
    """Five-step ordinal scale, least to most formal."""
    VERY_CASUAL = "very_casual"     # loungewear, sweats
    CASUAL = "casual"               # jeans, t-shirts
    SMART_CASUAL = "smart_casual"   # chinos, nice tops
    BUSINESS = "business"           # dress pants, blazers
    FORMAL = "formal"               # suits

    @property
    def level(self) -> int:
        return _FORMALITY_ORDER.index(self)

    def distance(self, other: "Formality") -> int:
        return abs(self.level - other.level)


_FORMALITY_ORDER = list(Formality)


def _lenient(enum_cls: type[Enum], default: Enum):
    """Map unknown vocabulary values to a default instead of failing."""

    def coerce(value: Any) -> Any:
        if isinstance(value, enum_cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower().replace(" ", "_").replace("-", "_")
            try:
                return enum_cls(normalized)
            except ValueError:
                return default
        return default if value is None else value

    return coerce


LenientStyleBucket = Annotated[
    StyleBucket, BeforeValidator(_lenient(StyleBucket, StyleBucket.CASUAL))
]
LenientMaterial = Annotated[
    Material, BeforeValidator(_lenient(Material, Material.UNKNOWN))
]
LenientFit = Annotated[Fit, BeforeValidator(_lenient(Fit, Fit.REGULAR))]
LenientPattern = Annotated[Pattern, BeforeValidator(_lenient(Pattern, Pattern.SOLID))]
LenientSeasonality = Annotated[
    Seasonality, BeforeValidator(_lenient(Seasonality, Seasonality.ALL_SEASON))
]
LenientFormality = Annotated[
    Formality, BeforeValidator(_lenient(Formality, Formality.CASUAL))
]


# ============================================================
# Garment
# ============================================================

class Garment(FrozenSchema):
    id: str = Field(..., min_length=1, description="Opaque unique garment id")
    user_id: str | None = Field(default=None, description="Owner id")
    category: Category = Field(..., description="Exactly one wardrobe category")
    subcategory: str | None = Field(default=None, description="e.g. t-shirt, chinos")
    item_name: str | None = Field(default=None, description="User-facing name")
    style_bucket: LenientStyleBucket = Field(default=StyleBucket.CASUAL)
    primary_color: str = Field(default="neutral")
    secondary_color: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "secondary_color", "secondaryColor", "color_secondary"
        ),
    )
    material: LenientMaterial = Field(default=Material.UNKNOWN)
    fit: LenientFit = Field(default=Fit.REGULAR)
    pattern: LenientPattern = Field(default=Pattern.SOLID)
    seasonality: LenientSeasonality = Field(default=Seasonality.ALL_SEASON)
    formality: LenientFormality = Field(default=Formality.CASUAL)
    times_worn: int = Field(default=0, ge=0, description="Wear count")
    last_worn: datetime | None = Field(default=None)
    tags: tuple[str, ...] = Field(default=(), description="Free-form tags, de-duplicated")

    # Caption / vision output, already attached by generation time
    dense_caption: str | None = Field(default=None)
    vibe_scores: dict[str, float] = Field(default_factory=dict)
    era_detected: str | None = Field(default=None)
    era_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    embedding: tuple[float, ...] | None = Field(default=None)

    @field_validator("primary_color", mode="before")
    @classmethod
    def default_color(cls, value: Any) -> Any:
        return value or "neutral"

    @field_validator("tags", mode="before")
    @classmethod
    def dedupe_tags(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = (value,)
        seen: dict[str, None] = {}
        for tag in value:
            seen.setdefault(str(tag), None)
        return tuple(seen)

    @field_validator("vibe_scores")
    @classmethod
    def check_vibe_range(cls, value: dict[str, float]) -> dict[str, float]:
        for vibe, confidence in value.items():
            if not 0.0 <= confidence <= 1.0:
                raise ValueError(f"vibe score for {vibe!r} must be within [0, 1]")
        return value

    @field_validator("embedding")
    @classmethod
    def check_embedding_dim(
        cls, value: tuple[float, ...] | None
    ) -> tuple[float, ...] | None:
        if value is not None and len(value) != EMBEDDING_DIM:
            raise ValueError(f"embedding must have {EMBEDDING_DIM} dimensions")
        return value

    @property
    def has_analysis(self) -> bool:
        return self.dense_caption is not None

    @property
    def is_vintage(self) -> bool:
        return (
            self.era_detected is not None
            and self.era_detected not in ("modern", "unknown")
            and (self.era_confidence or 0.0) > VINTAGE_CONFIDENCE
        )

    @property
    def primary_vibe(self) -> str | None:
        top = self.top_vibes(1)
        return top[0] if top else None

    def top_vibes(self, n: int = 3) -> list[str]:
        ranked = sorted(self.vibe_scores.items(), key=lambda kv: kv[1], reverse=True)
        return [name for name, _ in ranked[:n]]
