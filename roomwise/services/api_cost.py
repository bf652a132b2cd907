"""
Cost estimation for external API calls.

Pure functions: token-billed models are priced per million input/output tokens,
per-call providers (image generation, shopping search) per unit. Prices can be
overridden from settings; unknown models cost 0 so telemetry never blocks a job.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from roomwise.core.config import settings

USD_PRECISION = 6


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


def round_usd(value: float) -> float:
    return round(value, USD_PRECISION)


def parse_price(value: Optional[Any], fallback: float) -> float:
    """Parse a configured price; empty, non-numeric or negative values use the fallback."""
    if value is None or value == "":
        return fallback
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return fallback
    if parsed != parsed or parsed in (float("inf"), float("-inf")) or parsed < 0:
        return fallback
    return parsed


def token_pricing() -> Dict[str, Dict[str, Dict[str, float]]]:
    """USD per 1M tokens, keyed by provider then model"""
    return {
        "openai": {
            "gpt-4o": {
                "input": parse_price(settings.openai_gpt4o_input_per_1m_usd, 2.5),
                "output": parse_price(settings.openai_gpt4o_output_per_1m_usd, 10.0),
            },
            "gpt-4o-mini": {
                "input": parse_price(settings.openai_gpt4o_mini_input_per_1m_usd, 0.15),
                "output": parse_price(settings.openai_gpt4o_mini_output_per_1m_usd, 0.6),
            },
        },
    }


def unit_pricing() -> Dict[str, Dict[str, float]]:
    """USD per call/image, keyed by provider then model"""
    image_price = parse_price(settings.google_image_per_image_usd, 0.039)
    return {
        "google": {
            "gemini-2.5-flash-image": image_price,
            "gemini-2.5-flash-image-preview": image_price,
        },
        "serpapi": {
            "google_shopping": parse_price(settings.serpapi_per_search_usd, 0.0),
        },
    }


def normalize_openai_usage(usage: Any) -> TokenUsage:
    """Map an OpenAI usage object or dict (prompt/completion tokens) onto TokenUsage."""
    if usage is None:
        return TokenUsage()

    def _read(name: str) -> Optional[int]:
        if isinstance(usage, dict):
            return usage.get(name)
        return getattr(usage, name, None)

    input_tokens = _read("prompt_tokens") or 0
    output_tokens = _read("completion_tokens") or 0
    total_tokens = _read("total_tokens")
    if total_tokens is None:
        total_tokens = input_tokens + output_tokens
    return TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens, total_tokens=total_tokens)


def normalize_gemini_usage(usage_metadata: Any) -> TokenUsage:
    """Map Gemini usage_metadata (prompt/candidates token counts) onto TokenUsage."""
    if usage_metadata is None:
        return TokenUsage()
    input_tokens = getattr(usage_metadata, "prompt_token_count", None) or 0
    output_tokens = getattr(usage_metadata, "candidates_token_count", None) or 0
    total_tokens = getattr(usage_metadata, "total_token_count", None)
    if total_tokens is None:
        total_tokens = input_tokens + output_tokens
    return TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens, total_tokens=total_tokens)


def estimate_cost(provider: str, model: str, usage: Optional[TokenUsage] = None, units: int = 1) -> float:
    """
    Estimated USD cost of one call.

    Token-priced models use ``usage``; unit-priced models use ``units``.
    Anything not in the price tables yields 0.
    """
    token_prices = token_pricing().get(provider, {}).get(model)
    if token_prices is not None:
        if usage is None:
            return 0.0
        input_cost = (usage.input_tokens / 1_000_000) * token_prices["input"]
        output_cost = (usage.output_tokens / 1_000_000) * token_prices["output"]
        return round_usd(input_cost + output_cost)

    unit_price = unit_pricing().get(provider, {}).get(model)
    if unit_price is not None and units > 0:
        return round_usd(unit_price * units)

    return 0.0
