"""
Lenient JSON array decoding for model output

Model output is not guaranteed to be valid JSON, so decoding runs through
progressively more permissive layers:
1. strict   - fence stripping + outermost [...] span + json.loads
2. repaired - the same span after cumulative repair passes
              (trailing commas, unquoted keys, single quotes, bareword values)
3. regex    - pull {index, why_it_works} pairs out of whatever is left

Every layer is a plain function so it can be tested on its own.
"""

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from stylist.outfit.exceptions import ParseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)\s*```")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_UNQUOTED_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_SINGLE_QUOTED_RE = re.compile(r"(?<=[\[{,:])(\s*)'([^']*)'(?=\s*[,}\]:])")
_BAREWORD_VALUE_RE = re.compile(
    r":\s*([A-Za-z][A-Za-z0-9 ]*[A-Za-z0-9]|[A-Za-z])\s*(?=[,}\]])"
)
_JSON_LITERALS = frozenset({"true", "false", "null"})
_RECORD_RE = re.compile(
    r"\{\s*[\"']?index[\"']?\s*:\s*(\d+)[^}]*?[\"']?why_it_works[\"']?\s*:\s*\"([^\"]+)\"[^}]*\}?"
)


# ============================================================
# Pre-processing
# ============================================================

def strip_code_fences(text: str) -> str:
    text = text.strip()
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1)
    if "```" in text:
        # unterminated fence
        lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
        return "\n".join(lines)
    return text


def extract_array_span(text: str) -> str:
    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text


# ============================================================
# Repair passes (applied cumulatively, in order)
# ============================================================

def remove_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def quote_unquoted_keys(text: str) -> str:
    return _UNQUOTED_KEY_RE.sub(r'\1"\2":', text)


def normalize_single_quotes(text: str) -> str:
    return _SINGLE_QUOTED_RE.sub(r'\1"\2"', text)


def quote_bareword_values(text: str) -> str:
    def replace(match: re.Match[str]) -> str:
        value = match.group(1)
        if value in _JSON_LITERALS:
            return f":{value}"
        return f':"{value}"'

    return _BAREWORD_VALUE_RE.sub(replace, text)


REPAIR_PASSES: tuple[tuple[str, Callable[[str], str]], ...] = (
    ("trailing_commas", remove_trailing_commas),
    ("unquoted_keys", quote_unquoted_keys),
    ("single_quotes", normalize_single_quotes),
    ("bareword_values", quote_bareword_values),
)


# ============================================================
# Decoding layers
# ============================================================

def _load_array(text: str) -> list[Any]:
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise ParseError(f"Invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise ParseError(f"Expected a JSON array, got {type(data).__name__}")
    return data


def parse_strict(text: str) -> list[Any]:
    return _load_array(text)


def parse_repaired(text: str) -> list[Any]:
    repaired = text
    for name, repair in REPAIR_PASSES:
        repaired = repair(repaired)
        try:
            data = _load_array(repaired)
        except ParseError:
            continue
        logger.debug("Recovered judge output after repair pass: %s", name)
        return data
    raise ParseError("JSON still invalid after all repair passes")


def extract_records_by_regex(text: str) -> list[dict[str, Any]]:
    records = [
        {"index": int(match.group(1)), "why_it_works": match.group(2)}
        for match in _RECORD_RE.finditer(text)
    ]
    if not records:
        raise ParseError("No records found in malformed output")
    return records


def decode_json_array(text: str) -> list[Any]:
    """Decode a JSON array embedded in free text.

    Raises:
        ParseError: every layer failed
    """
    unfenced = strip_code_fences(text)
    span = extract_array_span(unfenced)

    for layer in (parse_strict, parse_repaired):
        try:
            return layer(span)
        except ParseError as e:
            logger.debug("%s failed: %s", layer.__name__, e)

    logger.debug("Falling back to regex record extraction")
    return extract_records_by_regex(unfenced)
