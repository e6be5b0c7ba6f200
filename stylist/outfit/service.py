import logging
import time
from functools import lru_cache

from stylist.config import Settings, get_settings
from stylist.outfit.assembler import ResultAssembler
from stylist.outfit.candidate_generator import CandidateGenerator, partition_by_category
from stylist.outfit.judge import OutfitJudge
from stylist.outfit.rules_engine import MIN_WARDROBE_SIZE, RulesEngine
from stylist.outfit.schemas import (
    GenerationConfig,
    GenerationErrorKind,
    GenerationRequest,
    GenerationResult,
)
from stylist.wardrobe.schemas import Category

logger = logging.getLogger(__name__)

# blended input/output price of the judge model
COST_PER_TOKEN_USD = 0.0000006


class OutfitGenerationService:
    """Generator -> rules -> judge -> assembler, for one request at a time.

    Holds collaborators only; every call works on its own wardrobe snapshot,
    so one instance serves concurrent requests.
    """

    def __init__(
        self,
        generator: CandidateGenerator | None = None,
        judge: OutfitJudge | None = None,
        assembler: ResultAssembler | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._generator = generator or CandidateGenerator()
        self._judge = judge
        self._assembler = assembler or ResultAssembler()

    def _get_judge(self) -> OutfitJudge:
        if self._judge is None:
            self._judge = OutfitJudge(settings=self.settings)
        return self._judge

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        started = time.perf_counter()
        wardrobe = request.wardrobe
        target_count = request.target_count or self.settings.default_target_count

        logger.info(
            "Generating outfits for user: %s (%d items)", request.user_id, len(wardrobe)
        )

        groups = partition_by_category(wardrobe)
        if not all(groups[c] for c in (Category.TOP, Category.BOTTOM, Category.SHOES)):
            return GenerationResult.failure(
                GenerationErrorKind.INSUFFICIENT_INPUT,
                "Need at least 1 top, 1 bottom, and 1 pair of shoes to generate outfits.",
            )

        if len(wardrobe) < MIN_WARDROBE_SIZE:
            return GenerationResult.failure(
                GenerationErrorKind.INSUFFICIENT_INPUT,
                f"Add {MIN_WARDROBE_SIZE - len(wardrobe)} more items "
                "to unlock outfit generation.",
            )

        rule_mode = RulesEngine.get_mode_for_wardrobe_size(len(wardrobe))
        rules_engine = RulesEngine(
            mode=rule_mode,
            weather=request.weather,
            recently_worn_ids=request.recently_worn_ids,
        )
        config = GenerationConfig.for_wardrobe(
            len(wardrobe), weather=request.weather, seed=request.seed
        )

        batch = self._generator.build_batch(
            wardrobe, request.weather, rules_engine, config, request.preferences
        )
        if not batch.candidates:
            return GenerationResult.failure(
                GenerationErrorKind.NO_VIABLE_COMBINATIONS,
                "Could not generate any valid outfit combinations. Try adding more items.",
                rule_mode=rule_mode,
                candidates_generated=batch.generated,
                latency_ms=self._elapsed_ms(started),
            )

        judgment = await self._get_judge().score_outfits(
            batch.candidates,
            weather=request.weather,
            preferences=request.preferences,
            top_n=target_count,
        )
        outfits = self._assembler.assemble(batch.candidates, judgment.records, target_count)

        result = GenerationResult(
            outfits=outfits,
            rule_mode=rule_mode,
            candidates_generated=batch.generated,
            candidates_after_rules=len(batch.candidates),
            latency_ms=self._elapsed_ms(started),
            tokens_used=judgment.tokens_used,
            estimated_cost=judgment.tokens_used * COST_PER_TOKEN_USD,
        )
        logger.info(
            "Generated %d outfits for user: %s (mode=%s, candidates=%d/%d, "
            "tokens=%d, fallback=%s, %d ms)",
            len(outfits),
            request.user_id,
            rule_mode.value,
            result.candidates_after_rules,
            result.candidates_generated,
            result.tokens_used,
            judgment.used_fallback,
            result.latency_ms,
        )
        return result

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)


@lru_cache
def get_outfit_service() -> OutfitGenerationService:
    return OutfitGenerationService()
