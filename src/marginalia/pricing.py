"""Per-model token pricing.

Prices are dollars per one million tokens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_PER_TOKENS = 1_000_000


@dataclass(frozen=True, slots=True)
class ModelPricing:
    """Dollar price per million input and output tokens."""

    per_input_token: float
    per_output_token: float


MODEL_PRICING: dict[str, ModelPricing] = {
    "gpt-4o": ModelPricing(2.5, 10.0),
    "gpt-4o-mini": ModelPricing(0.15, 0.6),
    "o1": ModelPricing(15.0, 60.0),
    "o1-mini": ModelPricing(1.1, 4.4),
    "o3-mini": ModelPricing(1.1, 4.4),
    "claude-sonnet-4-20250514": ModelPricing(3.0, 15.0),
    "claude-3-5-haiku-20241022": ModelPricing(0.8, 4.0),
    "claude-opus-4-20250514": ModelPricing(15.0, 75.0),
}


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Return the dollar cost of a completion.

    Unknown models cost nothing (and are logged) so that saving a session
    never fails over a missing price.
    """
    pricing = MODEL_PRICING.get(model)
    if pricing is None:
        logger.warning("No pricing for model %r; recording cost 0", model)
        return 0.0
    return (
        input_tokens * pricing.per_input_token
        + output_tokens * pricing.per_output_token
    ) / _PER_TOKENS
