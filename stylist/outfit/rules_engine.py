import logging
from collections.abc import Iterable

from stylist.outfit.rules import (
    appropriate_for_weather,
    colors_clash,
    colors_harmonize,
    formalities_compatible,
    patterns_compatible,
)
from stylist.outfit.schemas import MAX_SCORE, OutfitCandidate, RuleMode, WeatherContext

logger = logging.getLogger(__name__)

MIN_WARDROBE_SIZE = 5
DEFAULT_RECENT_DAYS = 3

CLASH_PENALTY = 20
HARMONY_BONUS = 5
FORMALITY_PENALTY = 15
PATTERN_PENALTY = 10
SHOES_FORMALITY_GAP = 2
SHOES_FORMALITY_PENALTY = 10
RECENTLY_WORN_PENALTY = 15
OUTERWEAR_BONUS = 10


class RulesEngine:
    """Mode-dependent hard filter and soft scorer for outfit candidates.

    Stateless apart from its construction arguments, so one engine can be
    shared by any number of evaluations. ``max_recent_days`` is informational:
    the caller computes ``recently_worn_ids`` for that window.
    """

    def __init__(
        self,
        mode: RuleMode,
        weather: WeatherContext | None = None,
        recently_worn_ids: Iterable[str] = (),
        max_recent_days: int = DEFAULT_RECENT_DAYS,
    ) -> None:
        self.mode = mode
        self.weather = weather
        self.recently_worn_ids = frozenset(recently_worn_ids)
        self.max_recent_days = max_recent_days

    @staticmethod
    def get_mode_for_wardrobe_size(item_count: int) -> RuleMode:
        if item_count < MIN_WARDROBE_SIZE:
            return RuleMode.DISABLED
        if item_count < 10:
            return RuleMode.LOOSE
        if item_count < 20:
            return RuleMode.NORMAL
        return RuleMode.STRICT

    def filter_candidate(self, candidate: OutfitCandidate) -> OutfitCandidate | None:
        """Score one candidate, or return None when it must be excluded."""
        if self.mode == RuleMode.DISABLED:
            return None

        strict = self.mode == RuleMode.STRICT
        top, bottom, shoes = candidate.top, candidate.bottom, candidate.shoes

        # hard rules
        if self.weather is not None and not all(
            appropriate_for_weather(g, self.weather) for g in (top, bottom, shoes)
        ):
            return None

        if strict and (
            top.id in self.recently_worn_ids or bottom.id in self.recently_worn_ids
        ):
            return None

        # soft rules
        score = MAX_SCORE

        if colors_clash(top.primary_color, bottom.primary_color):
            if strict:
                return None
            score -= CLASH_PENALTY
        elif colors_harmonize(top.primary_color, bottom.primary_color):
            score += HARMONY_BONUS

        if not formalities_compatible(top.formality, bottom.formality, self.mode):
            if strict:
                return None
            score -= FORMALITY_PENALTY

        if not patterns_compatible(top.pattern, bottom.pattern, self.mode):
            if strict:
                return None
            score -= PATTERN_PENALTY

        if shoes.formality.distance(top.formality) > SHOES_FORMALITY_GAP:
            score -= SHOES_FORMALITY_PENALTY

        if not strict:
            if top.id in self.recently_worn_ids:
                score -= RECENTLY_WORN_PENALTY
            if bottom.id in self.recently_worn_ids:
                score -= RECENTLY_WORN_PENALTY

        if (
            self.weather is not None
            and self.weather.needs_jacket
            and candidate.outerwear is not None
        ):
            score += OUTERWEAR_BONUS

        return candidate.with_score(score)

    def filter_candidates(
        self, candidates: Iterable[OutfitCandidate]
    ) -> list[OutfitCandidate]:
        """Drop rejects and sort survivors by rule score, highest first."""
        candidates = list(candidates)
        survivors = [
            scored
            for scored in (self.filter_candidate(c) for c in candidates)
            if scored is not None
        ]
        survivors.sort(key=lambda c: c.rule_score, reverse=True)

        logger.debug(
            "Rules (%s) kept %d of %d candidates",
            self.mode.value,
            len(survivors),
            len(candidates),
        )
        return survivors
