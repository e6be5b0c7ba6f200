import logging
import time
from collections.abc import Callable, Sequence

from stylist.outfit.schemas import (
    JudgmentRecord,
    OutfitCandidate,
    ScoredOutfit,
    clamp_score,
)

logger = logging.getLogger(__name__)

BACKFILL_JUSTIFICATION = "A well-coordinated combination."
VIBE_WEIGHT = 2
# kept unconditionally by the diversity pass
GUARANTEED_TOP_PICKS = 3


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class ResultAssembler:
    """Merges rule scores with judge records into the final outfit list."""

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or _epoch_millis

    def assemble(
        self,
        candidates: Sequence[OutfitCandidate],
        records: Sequence[JudgmentRecord],
        target_count: int,
    ) -> list[ScoredOutfit]:
        scored = self.build_scored_outfits(candidates, records, target_count)
        return self.enforce_diversity(scored, target_count)

    def build_scored_outfits(
        self,
        candidates: Sequence[OutfitCandidate],
        records: Sequence[JudgmentRecord],
        target_count: int,
    ) -> list[ScoredOutfit]:
        outfits: list[ScoredOutfit] = []
        used: set[int] = set()

        for record in records:
            if record.index >= len(candidates) or record.index in used:
                continue
            candidate = candidates[record.index]
            outfits.append(
                ScoredOutfit(
                    id=self._outfit_id(candidate),
                    candidate=candidate,
                    score=clamp_score(candidate.rule_score + VIBE_WEIGHT * record.vibe_score),
                    why_it_works=record.why_it_works,
                    styling_tip=record.styling_tip,
                    vibes=tuple(record.vibes),
                )
            )
            used.add(record.index)

        if len(outfits) < target_count:
            backfilled = 0
            for i, candidate in enumerate(candidates):
                if len(outfits) >= target_count:
                    break
                if i in used:
                    continue
                outfits.append(
                    ScoredOutfit(
                        id=self._outfit_id(candidate),
                        candidate=candidate,
                        score=candidate.rule_score,
                        why_it_works=BACKFILL_JUSTIFICATION,
                    )
                )
                used.add(i)
                backfilled += 1
            if backfilled:
                logger.debug("Backfilled %d outfits from rule scores", backfilled)

        # stable: ties keep judge order
        outfits.sort(key=lambda o: o.score, reverse=True)
        return outfits

    @staticmethod
    def enforce_diversity(
        outfits: Sequence[ScoredOutfit], target_count: int
    ) -> list[ScoredOutfit]:
        """Prefer outfits that add a new top, bottom, color pair or style.

        ``outfits`` must already be sorted by score. With three or fewer there
        is nothing to diversify and they come back unchanged (capped at
        ``target_count``).
        """
        if len(outfits) <= GUARANTEED_TOP_PICKS:
            return list(outfits[:target_count])

        selected: list[ScoredOutfit] = []
        used_tops: set[str] = set()
        used_bottoms: set[str] = set()
        used_color_pairs: set[tuple[str, str]] = set()
        used_styles = set()

        for outfit in outfits:
            if len(selected) >= target_count:
                break

            color_pair = (outfit.top.primary_color, outfit.bottom.primary_color)
            adds_variety = (
                outfit.top.id not in used_tops
                or outfit.bottom.id not in used_bottoms
                or color_pair not in used_color_pairs
                or outfit.top.style_bucket not in used_styles
            )
            if adds_variety or len(selected) < GUARANTEED_TOP_PICKS:
                selected.append(outfit)
                used_tops.add(outfit.top.id)
                used_bottoms.add(outfit.bottom.id)
                used_color_pairs.add(color_pair)
                used_styles.add(outfit.top.style_bucket)

        if len(selected) < target_count:
            chosen = {id(o) for o in selected}
            for outfit in outfits:
                if len(selected) >= target_count:
                    break
                if id(outfit) not in chosen:
                    selected.append(outfit)

        return selected

    def _outfit_id(self, candidate: OutfitCandidate) -> str:
        return f"{candidate.candidate_id}_{self._clock()}"
