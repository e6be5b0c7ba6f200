import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from stylist.outfit.exceptions import LLMError
from stylist.outfit.judge import (
    FALLBACK_JUSTIFICATION,
    JUDGE_CANDIDATE_LIMIT,
    OutfitJudge,
)
from stylist.outfit.llm_client import LLMClient
from stylist.outfit.schemas import OutfitCandidate, StylePreferences, WeatherContext


@pytest.fixture
def mock_settings():
    settings = MagicMock()
    settings.judge_temperature = 0.7
    settings.judge_max_tokens = 1500
    settings.judge_timeout = 5
    settings.judge_max_attempts = 1
    return settings


@pytest.fixture
def mock_llm():
    return AsyncMock(spec=LLMClient)


@pytest.fixture
def judge(mock_llm, mock_settings):
    return OutfitJudge(llm_client=mock_llm, settings=mock_settings)


@pytest.fixture
def candidates(make_garment):
    return [
        OutfitCandidate(
            top=make_garment("top", id=f"t{i}", primary_color="white"),
            bottom=make_garment("bottom", id=f"b{i}", primary_color="blue"),
            shoes=make_garment("shoes", id=f"s{i}"),
        )
        for i in range(4)
    ]


class TestScoreOutfits:

    @pytest.mark.asyncio
    async def test_parses_clean_records(self, judge, mock_llm, candidates, judge_response):
        # Given
        mock_llm.chat_completion.return_value = judge_response(
            '[{"index": 2, "vibe_score": 4, "why_it_works": "Crisp white over denim.",'
            ' "styling_tip": "Tuck the front.", "vibes": ["fresh", "easy"]}]',
            total_tokens=812,
        )

        # When
        response = await judge.score_outfits(candidates, top_n=3)

        # Then
        assert not response.used_fallback
        assert response.tokens_used == 812
        assert len(response.records) == 1
        record = response.records[0]
        assert record.index == 2
        assert record.vibe_score == 4
        assert record.styling_tip == "Tuck the front."
        assert record.vibes == ["fresh", "easy"]

    @pytest.mark.asyncio
    async def test_fenced_output_with_trailing_comma(self, judge, mock_llm, candidates, judge_response):
        mock_llm.chat_completion.return_value = judge_response(
            '```json\n[{"index": 0, "vibe_score": 1, "why_it_works": "Clean lines."},\n]\n```'
        )

        response = await judge.score_outfits(candidates)

        assert [r.index for r in response.records] == [0]
        assert response.records[0].why_it_works == "Clean lines."

    @pytest.mark.asyncio
    async def test_out_of_range_and_unusable_records_discarded(
        self, judge, mock_llm, candidates, judge_response
    ):
        # Given
        mock_llm.chat_completion.return_value = judge_response(
            '[{"index": 9, "why_it_works": "Nope"}, {"index": -1}, {"why_it_works": "no index"},'
            ' "stray", {"index": "1", "vibe_score": 12, "why_it_works": ""}]'
        )

        # When
        response = await judge.score_outfits(candidates)

        # Then
        assert len(response.records) == 1
        record = response.records[0]
        assert record.index == 1
        assert record.vibe_score == 5
        assert record.why_it_works

    @pytest.mark.asyncio
    async def test_non_finite_vibe_scores_are_neutral(
        self, judge, mock_llm, candidates, judge_response
    ):
        # Given: json.loads accepts Infinity and overflows 1e999 to inf
        mock_llm.chat_completion.return_value = judge_response(
            '[{"index": 0, "vibe_score": Infinity, "why_it_works": "x"},'
            ' {"index": 1, "vibe_score": -1e999, "why_it_works": "y"},'
            ' {"index": 2, "vibe_score": NaN, "why_it_works": "z"}]'
        )

        # When
        response = await judge.score_outfits(candidates)

        # Then
        assert not response.used_fallback
        assert [(r.index, r.vibe_score) for r in response.records] == [(0, 0), (1, 0), (2, 0)]

    @pytest.mark.asyncio
    async def test_records_capped_at_top_n(self, judge, mock_llm, candidates, judge_response):
        mock_llm.chat_completion.return_value = judge_response(
            '[{"index": 3, "why_it_works": "a"}, {"index": 1, "why_it_works": "b"},'
            ' {"index": 0, "why_it_works": "c"}, {"index": 2, "why_it_works": "d"}]'
        )

        response = await judge.score_outfits(candidates, top_n=2)

        assert [r.index for r in response.records] == [3, 1]

    @pytest.mark.asyncio
    async def test_regex_recovery(self, judge, mock_llm, candidates, judge_response):
        mock_llm.chat_completion.return_value = judge_response(
            'Top picks: {"index": 3, "why_it_works": "Effortless weekend look." and more'
        )

        response = await judge.score_outfits(candidates)

        assert [(r.index, r.vibe_score) for r in response.records] == [(3, 0)]
        assert not response.used_fallback

    @pytest.mark.asyncio
    async def test_empty_candidates_skip_the_call(self, judge, mock_llm):
        response = await judge.score_outfits([])

        assert response.records == []
        mock_llm.chat_completion.assert_not_called()


class TestFallback:

    @pytest.mark.asyncio
    async def test_llm_error_falls_back_to_input_order(self, judge, mock_llm, candidates):
        # Given
        mock_llm.chat_completion.side_effect = LLMError("OPENROUTER_API_KEY is not configured")

        # When
        response = await judge.score_outfits(candidates, top_n=3)

        # Then
        assert response.used_fallback
        assert [r.index for r in response.records] == [0, 1, 2]
        assert all(r.vibe_score == 0 for r in response.records)
        assert all(r.why_it_works == FALLBACK_JUSTIFICATION for r in response.records)

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, judge, mock_llm, mock_settings, candidates):
        # Given: the endpoint never answers within the budget
        mock_settings.judge_timeout = 0.01

        async def hang(**kwargs):
            await asyncio.sleep(1)

        mock_llm.chat_completion.side_effect = hang

        # When
        response = await judge.score_outfits(candidates, top_n=6)

        # Then
        assert response.used_fallback
        assert len(response.records) == len(candidates)

    @pytest.mark.asyncio
    async def test_garbage_output_falls_back(self, judge, mock_llm, candidates, judge_response):
        mock_llm.chat_completion.return_value = judge_response("I'd rather not say.")

        response = await judge.score_outfits(candidates, top_n=2)

        assert response.used_fallback
        assert [r.index for r in response.records] == [0, 1]

    @pytest.mark.asyncio
    async def test_deeply_nested_output_falls_back(
        self, judge, mock_llm, candidates, judge_response
    ):
        # Given: nesting deep enough to exhaust the decoder's recursion limit
        mock_llm.chat_completion.return_value = judge_response("[" * 100000 + "]" * 100000)

        # When
        response = await judge.score_outfits(candidates, top_n=2)

        # Then
        assert response.used_fallback
        assert [r.index for r in response.records] == [0, 1]

    @pytest.mark.asyncio
    async def test_missing_content_falls_back(self, judge, mock_llm, candidates, judge_response):
        mock_llm.chat_completion.return_value = judge_response(None)

        response = await judge.score_outfits(candidates, top_n=1)

        assert response.used_fallback
        assert len(response.records) == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, judge, mock_llm, candidates):
        # Given
        mock_llm.chat_completion.side_effect = asyncio.CancelledError()

        # When / Then
        with pytest.raises(asyncio.CancelledError):
            await judge.score_outfits(candidates)


class TestPrompt:

    @pytest.mark.asyncio
    async def test_at_most_twenty_candidates_sent(
        self, judge, mock_llm, make_garment, judge_response
    ):
        # Given
        many = [
            OutfitCandidate(
                top=make_garment("top"), bottom=make_garment("bottom"), shoes=make_garment("shoes")
            )
            for _ in range(JUDGE_CANDIDATE_LIMIT + 5)
        ]
        mock_llm.chat_completion.return_value = judge_response('[{"index": 24, "why_it_works": "x"}]')

        # When
        response = await judge.score_outfits(many)

        # Then
        user_prompt = mock_llm.chat_completion.call_args.kwargs["messages"][1]["content"]
        assert f"[{JUDGE_CANDIDATE_LIMIT - 1}]" in user_prompt
        assert f"[{JUDGE_CANDIDATE_LIMIT}]" not in user_prompt
        assert response.records == []

    @pytest.mark.asyncio
    async def test_context_and_budget(self, judge, mock_llm, candidates, judge_response):
        # Given
        mock_llm.chat_completion.return_value = judge_response("[]")
        weather = WeatherContext(temp_f=71.6, condition="sunny", description="Clear skies")
        preferences = StylePreferences(
            style_goal="quiet luxury",
            occasion="date",
            boldness_level=4,
            preferred_styles=["minimalist", "smart casual"],
        )

        # When
        await judge.score_outfits(candidates, weather=weather, preferences=preferences, top_n=3)

        # Then
        kwargs = mock_llm.chat_completion.call_args.kwargs
        system_prompt = kwargs["messages"][0]["content"]
        user_prompt = kwargs["messages"][1]["content"]
        assert kwargs["max_tokens"] == 1500
        assert kwargs["temperature"] == 0.7
        assert "quiet luxury" in system_prompt
        assert "CONTEXT: Weather: 72°F, Clear skies" in user_prompt
        assert "OCCASION: date" in user_prompt
        assert "STYLE PREFERENCE: bold" in user_prompt
        assert "PREFERRED STYLES: minimalist, smart casual" in user_prompt
        assert "Select the TOP 3 outfits" in user_prompt

    def test_candidate_description_uses_caption_when_present(self, judge, make_garment):
        # Given
        candidate = OutfitCandidate(
            top=make_garment("top", dense_caption="cropped linen shirt", vibe_scores={"coastal": 0.9}),
            bottom=make_garment("bottom", primary_color="navy", material="denim"),
            shoes=make_garment("shoes", primary_color="white"),
            outerwear=make_garment("outerwear", primary_color="tan", material="leather"),
        )

        # When
        description = judge.describe_candidate(candidate)

        # Then
        lines = description.split("\n")
        assert lines[0] == "Top: cropped linen shirt, coastal vibe"
        assert lines[1].startswith("Bottom: bottom, navy, denim")
        assert lines[3].startswith("Outerwear: outerwear, tan, leather")
