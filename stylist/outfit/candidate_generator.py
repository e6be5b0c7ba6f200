"""
Anchor-based candidate generator

Instead of the tops x bottoms x shoes cross-product, outfits are grown from a
handful of anchor tops:
1. pick weather-appropriate, varied anchor tops
2. keep only bottoms compatible with each anchor (formality, color)
3. keep only shoes compatible with each top-bottom pair
4. optionally layer outerwear / an accessory
5. hand the bounded batch to the rules engine
"""

import logging
import math
import random
from collections.abc import Iterable, Iterator, Sequence
from itertools import islice

from stylist.outfit.rules import (
    appropriate_for_weather,
    colors_clash,
    colors_harmonize,
    occasion_to_formality,
)
from stylist.outfit.rules_engine import RulesEngine
from stylist.outfit.schemas import (
    CandidateBatch,
    GenerationConfig,
    OutfitCandidate,
    StylePreferences,
    WeatherContext,
)
from stylist.wardrobe.schemas import Category, Garment

logger = logging.getLogger(__name__)

MAX_BOTTOMS_PER_ANCHOR = 10
MAX_SHOES_PER_PAIR = 5
MAX_FORMALITY_GAP = 2
OCCASION_FORMALITY_GAP = 1
ACCESSORY_PROBABILITY = 0.5


def partition_by_category(wardrobe: Iterable[Garment]) -> dict[Category, list[Garment]]:
    groups: dict[Category, list[Garment]] = {category: [] for category in Category}
    for garment in wardrobe:
        groups[garment.category].append(garment)
    return groups


class CandidateGenerator:
    """Produces bounded, de-duplicated, rule-filtered outfit candidates.

    Holds no state between calls; all randomness comes from a ``random.Random``
    seeded by ``GenerationConfig.seed``.
    """

    def generate_candidates(
        self,
        wardrobe: Sequence[Garment],
        weather: WeatherContext | None,
        rules_engine: RulesEngine,
        config: GenerationConfig,
        preferences: StylePreferences | None = None,
    ) -> list[OutfitCandidate]:
        return self.build_batch(
            wardrobe, weather, rules_engine, config, preferences
        ).candidates

    def build_batch(
        self,
        wardrobe: Sequence[Garment],
        weather: WeatherContext | None,
        rules_engine: RulesEngine,
        config: GenerationConfig,
        preferences: StylePreferences | None = None,
    ) -> CandidateBatch:
        rng = random.Random(config.seed)
        raw = list(
            islice(
                self.iter_candidates(wardrobe, weather, config, preferences, rng),
                config.max_candidates,
            )
        )
        filtered = rules_engine.filter_candidates(raw)

        logger.info(
            "Generated %d candidates, %d survived rules", len(raw), len(filtered)
        )
        return CandidateBatch(candidates=filtered, generated=len(raw))

    def iter_candidates(
        self,
        wardrobe: Sequence[Garment],
        weather: WeatherContext | None,
        config: GenerationConfig,
        preferences: StylePreferences | None = None,
        rng: random.Random | None = None,
    ) -> Iterator[OutfitCandidate]:
        """Lazily yield unfiltered candidates; the caller bounds the stream."""
        rng = rng or random.Random(config.seed)
        groups = partition_by_category(wardrobe)
        tops = groups[Category.TOP]
        bottoms = groups[Category.BOTTOM]
        shoes = groups[Category.SHOES]
        outerwear = groups[Category.OUTERWEAR]
        accessories = groups[Category.ACCESSORY]

        if not tops or not bottoms or not shoes:
            logger.debug("Wardrobe lacks a top, bottom or shoes; nothing to generate")
            return

        anchors = self._select_anchors(tops, weather, preferences, config, rng)
        if not anchors:
            anchors = tops[: config.max_anchors]

        seen: set[tuple[str, str, str]] = set()

        for anchor in anchors:
            for bottom in self._find_compatible_bottoms(
                anchor, bottoms, weather, preferences
            ):
                for shoe in self._find_compatible_shoes(anchor, bottom, shoes, weather):
                    key = (anchor.id, bottom.id, shoe.id)
                    if key in seen:
                        continue
                    seen.add(key)

                    selected_outerwear = None
                    if (
                        config.enable_outerwear
                        and weather is not None
                        and weather.needs_jacket
                        and outerwear
                    ):
                        selected_outerwear = self._select_outerwear(
                            anchor, outerwear, weather
                        )

                    selected_accessory = None
                    if (
                        config.enable_accessories
                        and accessories
                        and rng.random() > ACCESSORY_PROBABILITY
                    ):
                        selected_accessory = self._select_accessory(
                            anchor, accessories, rng
                        )

                    yield OutfitCandidate(
                        top=anchor,
                        bottom=bottom,
                        shoes=shoe,
                        outerwear=selected_outerwear,
                        accessory=selected_accessory,
                    )

    def _select_anchors(
        self,
        tops: list[Garment],
        weather: WeatherContext | None,
        preferences: StylePreferences | None,
        config: GenerationConfig,
        rng: random.Random,
    ) -> list[Garment]:
        pool = list(tops)

        if weather is not None:
            pool = [t for t in pool if appropriate_for_weather(t, weather)] or list(tops)

        if preferences is not None and preferences.occasion:
            target = occasion_to_formality(preferences.occasion)
            pool = [
                t for t in pool if t.formality.distance(target) <= OCCASION_FORMALITY_GAP
            ]

        if config.prioritize_unworn:
            # least worn first, never-worn before anything with a date
            pool.sort(
                key=lambda g: (
                    g.times_worn,
                    g.last_worn is not None,
                    g.last_worn.timestamp() if g.last_worn else 0.0,
                )
            )
        else:
            rng.shuffle(pool)

        return self._ensure_style_variety(pool, config.max_anchors)

    @staticmethod
    def _ensure_style_variety(items: list[Garment], count: int) -> list[Garment]:
        if len(items) <= count:
            return items

        selected: list[Garment] = []
        used_styles = set()
        used_colors = set()

        for item in items:
            if len(selected) >= count:
                break
            if item.style_bucket not in used_styles or item.primary_color not in used_colors:
                selected.append(item)
                used_styles.add(item.style_bucket)
                used_colors.add(item.primary_color)

        chosen = {id(item) for item in selected}
        for item in items:
            if len(selected) >= count:
                break
            if id(item) not in chosen:
                selected.append(item)

        return selected

    @staticmethod
    def _find_compatible_bottoms(
        anchor: Garment,
        bottoms: list[Garment],
        weather: WeatherContext | None,
        preferences: StylePreferences | None,
    ) -> list[Garment]:
        compatible = [
            b
            for b in bottoms
            if (weather is None or appropriate_for_weather(b, weather))
            and b.formality.distance(anchor.formality) <= MAX_FORMALITY_GAP
            and not colors_clash(anchor.primary_color, b.primary_color)
        ]

        if preferences is not None and preferences.avoid_colors:
            avoided = [c.lower() for c in preferences.avoid_colors]
            compatible = [
                b
                for b in compatible
                if not any(c in b.primary_color.lower() for c in avoided)
            ]

        def score(bottom: Garment) -> int:
            value = -bottom.times_worn
            if colors_harmonize(anchor.primary_color, bottom.primary_color):
                value += 10
            if bottom.style_bucket == anchor.style_bucket:
                value += 5
            return value

        compatible.sort(key=score, reverse=True)
        return compatible[:MAX_BOTTOMS_PER_ANCHOR]

    @staticmethod
    def _find_compatible_shoes(
        top: Garment,
        bottom: Garment,
        shoes: list[Garment],
        weather: WeatherContext | None,
    ) -> list[Garment]:
        # half rounds up
        outfit_level = math.floor((top.formality.level + bottom.formality.level) / 2 + 0.5)

        compatible = [
            s
            for s in shoes
            if (weather is None or appropriate_for_weather(s, weather))
            and abs(s.formality.level - outfit_level) <= MAX_FORMALITY_GAP
        ]
        compatible.sort(key=lambda s: (abs(s.formality.level - outfit_level), s.times_worn))
        return compatible[:MAX_SHOES_PER_PAIR]

    @staticmethod
    def _select_outerwear(
        top: Garment,
        outerwear: list[Garment],
        weather: WeatherContext | None,
    ) -> Garment | None:
        compatible = [
            o
            for o in outerwear
            if (weather is None or appropriate_for_weather(o, weather))
            and o.formality.distance(top.formality) <= MAX_FORMALITY_GAP
        ]
        if not compatible:
            return None

        # first best wins ties
        return max(
            compatible, key=lambda o: colors_harmonize(top.primary_color, o.primary_color)
        )

    @staticmethod
    def _select_accessory(
        top: Garment,
        accessories: list[Garment],
        rng: random.Random,
    ) -> Garment:
        complementary = [
            a for a in accessories if colors_harmonize(top.primary_color, a.primary_color)
        ]
        return rng.choice(complementary or accessories)
