import pytest
from pydantic import ValidationError

from stylist.wardrobe.schemas import (
    EMBEDDING_DIM,
    Category,
    Fit,
    Formality,
    Garment,
    Material,
    Pattern,
    Seasonality,
    StyleBucket,
)


class TestGarmentParsing:
    def test_storage_payload(self):
        # Given
        payload = {
            "id": "g1",
            "user_id": "u1",
            "category": "top",
            "primary_color": "navy",
            "color_secondary": "white",
            "style_bucket": "preppy",
            "material": "linen",
            "fit": "relaxed",
            "pattern": "striped",
            "seasonality": "summer",
            "formality": "smart_casual",
            "times_worn": 4,
            "last_worn": "2025-05-01T09:30:00Z",
            "tags": ["breathable", "breathable", "weekend"],
        }

        # When
        garment = Garment.model_validate(payload)

        # Then
        assert garment.category == Category.TOP
        assert garment.secondary_color == "white"
        assert garment.style_bucket == StyleBucket.PREPPY
        assert garment.material == Material.LINEN
        assert garment.seasonality == Seasonality.SUMMER
        assert garment.times_worn == 4
        assert garment.last_worn.year == 2025
        assert garment.tags == ("breathable", "weekend")

    def test_camel_case_payload(self):
        garment = Garment.model_validate(
            {"id": "g2", "category": "shoes", "primaryColor": "white", "timesWorn": 2}
        )

        assert garment.primary_color == "white"
        assert garment.times_worn == 2

    def test_unknown_vocabulary_falls_back_to_defaults(self):
        garment = Garment.model_validate(
            {
                "id": "g3",
                "category": "bottom",
                "style_bucket": "cottagecore",
                "material": "hemp",
                "fit": "flowy",
                "pattern": "tie-dye",
                "seasonality": "monsoon",
                "formality": "black tie",
            }
        )

        assert garment.style_bucket == StyleBucket.CASUAL
        assert garment.material == Material.UNKNOWN
        assert garment.fit == Fit.REGULAR
        assert garment.pattern == Pattern.SOLID
        assert garment.seasonality == Seasonality.ALL_SEASON
        assert garment.formality == Formality.CASUAL

    def test_vocabulary_is_normalized(self):
        garment = Garment.model_validate(
            {"id": "g4", "category": "top", "formality": "Smart Casual", "pattern": "polka-dot"}
        )

        assert garment.formality == Formality.SMART_CASUAL
        assert garment.pattern == Pattern.POLKA_DOT

    def test_single_tag_string_kept_whole(self):
        garment = Garment.model_validate({"id": "g10", "category": "shoes", "tags": "sandal"})

        assert garment.tags == ("sandal",)

    def test_missing_color_is_neutral(self):
        garment = Garment.model_validate({"id": "g5", "category": "top", "primary_color": None})

        assert garment.primary_color == "neutral"

    @pytest.mark.parametrize("category", ["hat", None, ""])
    def test_category_is_strict(self, category):
        with pytest.raises(ValidationError):
            Garment.model_validate({"id": "g6", "category": category})

    def test_wear_count_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            Garment.model_validate({"id": "g7", "category": "top", "times_worn": -1})

    def test_vibe_scores_must_be_probabilities(self):
        with pytest.raises(ValidationError, match="within"):
            Garment.model_validate({"id": "g8", "category": "top", "vibe_scores": {"edgy": 1.4}})

    def test_embedding_dimension_checked(self):
        Garment.model_validate({"id": "g9", "category": "top", "embedding": [0.0] * EMBEDDING_DIM})

        with pytest.raises(ValidationError, match="dimensions"):
            Garment.model_validate({"id": "g9", "category": "top", "embedding": [0.0] * 3})

    def test_snapshot_is_immutable(self, make_garment):
        garment = make_garment("top")

        with pytest.raises(ValidationError):
            garment.times_worn = 5


class TestFormality:
    def test_levels_are_ordinal(self):
        assert [f.level for f in Formality] == [0, 1, 2, 3, 4]

    def test_distance_is_symmetric(self):
        assert Formality.CASUAL.distance(Formality.FORMAL) == 3
        assert Formality.FORMAL.distance(Formality.CASUAL) == 3


class TestVibeHelpers:
    def test_top_vibes_ranked(self, make_garment):
        garment = make_garment("top", vibe_scores={"edgy": 0.3, "romantic": 0.8, "minimal": 0.5})

        assert garment.top_vibes(2) == ["romantic", "minimal"]
        assert garment.primary_vibe == "romantic"

    def test_no_vibes(self, make_garment):
        garment = make_garment("top")

        assert garment.primary_vibe is None
        assert garment.top_vibes() == []
        assert not garment.has_analysis

    @pytest.mark.parametrize(
        "era, confidence, expected",
        [
            ("1970s", 0.9, True),
            ("1970s", 0.6, False),
            ("modern", 0.95, False),
            ("unknown", 0.95, False),
            (None, None, False),
        ],
    )
    def test_is_vintage(self, make_garment, era, confidence, expected):
        garment = make_garment("top", era_detected=era, era_confidence=confidence)

        assert garment.is_vintage is expected
