import asyncio
import logging
import time
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from stylist.config import Settings, get_settings
from stylist.outfit.exceptions import LLMError, ParseError
from stylist.outfit.lenient_json import decode_json_array
from stylist.outfit.llm_client import LLMClient, OpenRouterClient
from stylist.outfit.schemas import (
    JudgmentRecord,
    JudgmentResponse,
    OutfitCandidate,
    StylePreferences,
    WeatherContext,
)
from stylist.wardrobe.formatter import GarmentFormatter, HybridFormatter

logger = logging.getLogger(__name__)

# hard ceiling on candidates sent, whatever the upstream bound
JUDGE_CANDIDATE_LIMIT = 20
FALLBACK_JUSTIFICATION = "A solid outfit choice."

BOLDNESS_LABELS = ("very conservative", "conservative", "balanced", "bold", "very bold")

SYSTEM_PROMPT = """You are a sharp, friendly personal stylist with editorial taste. Your job is to evaluate outfit combinations and explain why they work in a warm, confident tone.

Style Guidelines:
- Be specific about WHY pieces work together (colors, textures, silhouettes)
- Keep explanations under 25 words - punchy, not preachy
- Use fashion-forward but accessible language
- Sound like a stylish friend, not a robot
- Highlight unexpected combinations that work
- Reference trends when relevant (oversized silhouettes, quiet luxury, etc.)
{style_goal}
Output Format (CRITICAL - respond ONLY with valid JSON array):
[
  {{
    "index": 0,
    "vibe_score": 3,
    "why_it_works": "The structured blazer balances the relaxed denim perfectly.",
    "styling_tip": "Roll the sleeves for extra polish.",
    "vibes": ["effortless", "polished"]
  }}
]

Rules:
- vibe_score: -5 (avoid) to +5 (chef's kiss)
- why_it_works: 15-25 words max
- styling_tip: optional, 10 words max
- vibes: 1-3 single-word descriptors"""


class OutfitJudge:
    """Re-scores rule-filtered candidates with an external text-generation judge.

    Never raises for judge problems: a failed call, a timeout or unreadable
    output all produce a rule-order fallback.
    """

    def __init__(
        self,
        llm_client: LLMClient | None = None,
        formatter: GarmentFormatter | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.llm_client = llm_client or OpenRouterClient(self.settings)
        self.formatter: GarmentFormatter = formatter or HybridFormatter()

    async def score_outfits(
        self,
        candidates: Sequence[OutfitCandidate],
        weather: WeatherContext | None = None,
        preferences: StylePreferences | None = None,
        top_n: int = 6,
    ) -> JudgmentResponse:
        if not candidates:
            return JudgmentResponse()

        started = time.perf_counter()
        to_score = list(candidates[:JUDGE_CANDIDATE_LIMIT])

        messages = [
            {"role": "system", "content": self._build_system_prompt(preferences)},
            {
                "role": "user",
                "content": self._build_user_prompt(to_score, weather, preferences, top_n),
            },
        ]

        try:
            response = await asyncio.wait_for(
                self.llm_client.chat_completion(
                    messages=messages,
                    temperature=self.settings.judge_temperature,
                    max_tokens=self.settings.judge_max_tokens,
                ),
                timeout=self.settings.judge_timeout * self.settings.judge_max_attempts,
            )
            records = self._parse_response(response, len(to_score), top_n)

        except (LLMError, ParseError, asyncio.TimeoutError) as e:
            logger.warning("Judge unavailable, using rule order: %s", e or type(e).__name__)
            return self._fallback(to_score, top_n, started)

        tokens_used = self._tokens_used(response)
        latency_ms = self._elapsed_ms(started)
        logger.info(
            "Judge returned %d records (%d tokens, %d ms)",
            len(records),
            tokens_used,
            latency_ms,
        )
        return JudgmentResponse(
            records=records, tokens_used=tokens_used, latency_ms=latency_ms
        )

    def describe_candidate(self, candidate: OutfitCandidate) -> str:
        lines = [
            f"Top: {self.formatter.format(candidate.top)}",
            f"Bottom: {self.formatter.format(candidate.bottom)}",
            f"Shoes: {self.formatter.format(candidate.shoes)}",
        ]
        if candidate.outerwear is not None:
            lines.append(f"Outerwear: {self.formatter.format(candidate.outerwear)}")
        if candidate.accessory is not None:
            lines.append(f"Accessory: {self.formatter.format(candidate.accessory)}")
        return "\n".join(lines)

    @staticmethod
    def _build_system_prompt(preferences: StylePreferences | None) -> str:
        style_goal = ""
        if preferences is not None and preferences.style_goal:
            style_goal = f"\nUser's style goal: {preferences.style_goal}\n"
        return SYSTEM_PROMPT.format(style_goal=style_goal)

    def _build_user_prompt(
        self,
        candidates: list[OutfitCandidate],
        weather: WeatherContext | None,
        preferences: StylePreferences | None,
        top_n: int,
    ) -> str:
        lines = []

        if weather is not None:
            lines.append(f"CONTEXT: {weather.to_prompt_description()}")
        if preferences is not None:
            if preferences.occasion:
                lines.append(f"OCCASION: {preferences.occasion}")
            if preferences.time_of_day:
                lines.append(f"TIME OF DAY: {preferences.time_of_day}")
            lines.append(
                f"STYLE PREFERENCE: {BOLDNESS_LABELS[preferences.boldness_level - 1]}"
            )
            if preferences.preferred_styles:
                styles = ", ".join(
                    s.value.replace("_", " ") for s in preferences.preferred_styles
                )
                lines.append(f"PREFERRED STYLES: {styles}")
        lines.append("")

        lines.append("OUTFIT OPTIONS:")
        for i, candidate in enumerate(candidates):
            lines.append(f"[{i}] {self.describe_candidate(candidate)}")
            lines.append("---")

        lines.append("")
        lines.append(
            f"Select the TOP {top_n} outfits. Return ONLY a JSON array, no other text."
        )

        return "\n".join(lines)

    @staticmethod
    def _parse_response(
        response: dict[str, Any], max_index: int, limit: int
    ) -> list[JudgmentRecord]:
        try:
            content = response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ParseError(f"Unexpected judge response shape: {e}") from e
        if not isinstance(content, str):
            raise ParseError("Judge response has no text content")

        records = []
        for item in decode_json_array(content):
            if not isinstance(item, dict):
                continue
            try:
                record = JudgmentRecord.model_validate(item)
            except ValidationError as e:
                logger.debug("Skipping unusable judge record %s: %s", item, e)
                continue
            if record.index < max_index:
                records.append(record)
        return records[:limit]

    @staticmethod
    def _tokens_used(response: dict[str, Any]) -> int:
        usage = response.get("usage") or {}
        tokens = usage.get("total_tokens", 0) if isinstance(usage, dict) else 0
        return tokens if isinstance(tokens, int) else 0

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)

    def _fallback(
        self, candidates: list[OutfitCandidate], top_n: int, started: float
    ) -> JudgmentResponse:
        records = [
            JudgmentRecord(index=i, vibe_score=0, why_it_works=FALLBACK_JUSTIFICATION)
            for i in range(min(top_n, len(candidates)))
        ]
        return JudgmentResponse(
            records=records,
            latency_ms=self._elapsed_ms(started),
            used_fallback=True,
        )
