from dataclasses import dataclass
from typing import Callable

from claudetheus.models import TokenCounts, UsageRecord

_PER_MILLION = 1_000_000


@dataclass(frozen=True, slots=True)
class PricingEntry:
    """
    PricingEntry holds the USD rates per one million tokens
    for a model family.
    """

    input: "float"
    output: "float"
    cache_creation: "float"
    cache_read: "float"


MODEL_PRICING: "dict[str, PricingEntry]" = {
    "claude-3-opus": PricingEntry(
        input=15.0, output=75.0, cache_creation=18.75, cache_read=1.50
    ),
    "claude-3-sonnet": PricingEntry(
        input=3.0, output=15.0, cache_creation=3.75, cache_read=0.30
    ),
    "claude-3-5-sonnet": PricingEntry(
        input=3.0, output=15.0, cache_creation=3.75, cache_read=0.30
    ),
    "claude-sonnet-4": PricingEntry(
        input=3.0, output=15.0, cache_creation=3.75, cache_read=0.30
    ),
    "claude-sonnet-4-5": PricingEntry(
        input=3.0, output=15.0, cache_creation=3.75, cache_read=0.30
    ),
    "claude-3-haiku": PricingEntry(
        input=0.25, output=1.25, cache_creation=0.30, cache_read=0.03
    ),
}

# unknown families are priced like this one, never as free
DEFAULT_FAMILY = "claude-3-5-sonnet"


def _has_any(*markers: "str") -> "Callable[[str], bool]":
    return lambda name: any(m in name for m in markers)


def _sonnet_with(*markers: "str") -> "Callable[[str], bool]":
    return lambda name: "sonnet" in name and any(m in name for m in markers)


def _is_sonnet_4(name: "str") -> "bool":
    if "sonnet" not in name:
        return False
    if any(m in name for m in ("sonnet-4", "sonnet_4", "sonnet.4")):
        return True
    return "4" in name and "3" not in name


# evaluated top-down, first match wins
NORMALIZATION_RULES: "list[tuple[Callable[[str], bool], str]]" = [
    (_has_any("opus"), "claude-3-opus"),
    (_sonnet_with("4.5", "4-5", "4_5"), "claude-sonnet-4-5"),
    (_is_sonnet_4, "claude-sonnet-4"),
    (_sonnet_with("3.5", "3-5", "3_5"), "claude-3-5-sonnet"),
    (_has_any("sonnet"), "claude-3-sonnet"),
    (_has_any("haiku"), "claude-3-haiku"),
]


def normalize_model_name(model: "str") -> "str":
    """
    maps a loosely formatted model identifier to its pricing
    family. Unmatched names come back lower-cased.
    """
    name = model.lower()
    for predicate, family in NORMALIZATION_RULES:
        if predicate(name):
            return family
    return name


def pricing_for(model: "str") -> "PricingEntry":
    family = normalize_model_name(model)
    return MODEL_PRICING.get(family, MODEL_PRICING[DEFAULT_FAMILY])


def calculate_cost(tokens: "TokenCounts", model: "str") -> "float":
    """
    computes the USD cost of a token vector under the model's
    family rates.
    """
    pricing = pricing_for(model)
    return (
        tokens.input_tokens * pricing.input
        + tokens.output_tokens * pricing.output
        + tokens.cache_creation_tokens * pricing.cache_creation
        + tokens.cache_read_tokens * pricing.cache_read
    ) / _PER_MILLION


def record_cost(record: "UsageRecord") -> "float":
    """
    returns the stored cost of a record when the log carried one,
    otherwise derives it from the token counts.
    """
    if record.cost is not None:
        return record.cost
    return calculate_cost(record.tokens, record.model)


def cache_savings(tokens: "TokenCounts", model: "str") -> "float":
    """
    amount saved by serving cache reads instead of
    regular input tokens.
    """
    if not tokens.cache_read_tokens:
        return 0.0
    pricing = pricing_for(model)
    saved_per_token = pricing.input - pricing.cache_read
    return saved_per_token * tokens.cache_read_tokens / _PER_MILLION
