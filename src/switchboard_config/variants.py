"""Reasoning/thinking presets derived from a provider's classification tag."""

from .schema import ReasoningEffortVariant
from .schema import ThinkingBudget
from .schema import ThinkingVariant
from .schema import Variant

CLAUDE_TAG = "claude"

THINKING_BUDGETS: dict[str, int] = {
    "default": 10000,
    "high": 50000,
    "max": 128000,
}

REASONING_EFFORTS: dict[str, str] = {
    "default": "low",
    "minimal": "minimal",
    "low": "low",
    "medium": "medium",
    "high": "high",
}


def is_claude_tag(tag: str | None) -> bool:
    return tag is not None and tag.strip().lower() == CLAUDE_TAG


def build_variants(tag: str | None) -> dict[str, Variant]:
    """Build the variant table for a classification tag.

    Claude-tagged providers get thinking-budget variants. Every other tag,
    including unknown ones and None, gets the reasoning-effort table.

    Args:
        tag: Provider classification tag (compared case-insensitively)

    Returns:
        New mapping of variant name -> Variant

    Examples:
        >>> sorted(build_variants("Claude"))
        ['default', 'high', 'max']
        >>> build_variants(None)["default"].reasoning_effort
        'low'
    """
    if is_claude_tag(tag):
        return {
            name: ThinkingVariant(thinking=ThinkingBudget(budget_tokens=budget))
            for name, budget in THINKING_BUDGETS.items()
        }
    return {name: ReasoningEffortVariant(reasoning_effort=effort) for name, effort in REASONING_EFFORTS.items()}
