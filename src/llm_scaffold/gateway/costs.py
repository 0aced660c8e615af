"""Per-provider cost tracking from reported token usage.

Costs are an estimate from a static price table, not a billing-grade ledger.
A model missing from the table is charged at its provider's ``default`` entry
and the record is marked as estimated. Providers missing from the table (the
local server, for instance) cost nothing.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

from ..events import EventType, emit_event
from .types import UsageInfo

logger = logging.getLogger(__name__)

CURRENCY = "USD"

# Key in a provider's price table used for models without their own entry
DEFAULT_PRICE_KEY = "default"


@dataclass(frozen=True)
class ModelPrice:
    """USD price per token."""

    input: float
    output: float


def _per_million(input_usd: float, output_usd: float) -> ModelPrice:
    return ModelPrice(input=input_usd / 1_000_000, output=output_usd / 1_000_000)


# provider -> model -> price
DEFAULT_PRICING: Dict[str, Dict[str, ModelPrice]] = {
    "anthropic": {
        "claude-opus-4": _per_million(15, 75),
        "claude-sonnet-4": _per_million(3, 15),
        "claude-haiku-4": _per_million(0.25, 1.25),
        DEFAULT_PRICE_KEY: _per_million(3, 15),
    },
    "openai": {
        "gpt-4": _per_million(30, 60),
        "gpt-4-turbo": _per_million(10, 30),
        "gpt-3.5-turbo": _per_million(0.5, 1.5),
        DEFAULT_PRICE_KEY: _per_million(10, 30),
    },
    "google": {
        "gemini-pro": _per_million(0.5, 1.5),
        "gemini-ultra": _per_million(7, 21),
        DEFAULT_PRICE_KEY: _per_million(0.5, 1.5),
    },
    "local": {
        DEFAULT_PRICE_KEY: ModelPrice(input=0.0, output=0.0),
    },
}

FREE = ModelPrice(input=0.0, output=0.0)


@dataclass
class CostEntry:
    """Running totals for one provider."""

    tokens: int = 0
    cost_usd: float = 0.0
    calls: int = 0
    estimated_calls: int = 0


class CostTracker:
    """Accumulates token usage and USD cost per provider.

    Owned by a ProviderManager; create a new tracker to start from zero.
    Updates to a provider's entry are serialized with a lock so concurrent
    completions never lose an increment.

    Args:
        pricing: provider -> model -> ModelPrice table. Defaults to
            DEFAULT_PRICING.
        enabled: When False, record() computes the cost but stores nothing.
    """

    def __init__(
        self,
        pricing: Optional[Mapping[str, Mapping[str, ModelPrice]]] = None,
        enabled: bool = True,
    ):
        self._pricing = pricing if pricing is not None else DEFAULT_PRICING
        self.enabled = enabled
        self._entries: Dict[str, CostEntry] = {}
        self._lock = threading.Lock()

    def get_price(self, provider: str, model: Optional[str]) -> Tuple[ModelPrice, bool]:
        """Look up the price for a model.

        Returns:
            (price, estimated) where estimated is True when the model had no
            entry of its own.
        """
        provider_prices = self._pricing.get(provider)
        if not provider_prices:
            return FREE, True
        if model and model in provider_prices:
            return provider_prices[model], False
        return provider_prices.get(DEFAULT_PRICE_KEY, FREE), True

    def calculate_cost(self, provider: str, model: Optional[str], usage: UsageInfo) -> float:
        price, _ = self.get_price(provider, model)
        return usage.input_tokens * price.input + usage.output_tokens * price.output

    def record(self, provider: str, model: Optional[str], usage: UsageInfo) -> float:
        """Add one completion's usage to the provider's running totals.

        Returns:
            The cost of this completion in USD.
        """
        price, estimated = self.get_price(provider, model)
        cost = usage.input_tokens * price.input + usage.output_tokens * price.output

        if not self.enabled:
            return cost

        if estimated and provider in self._pricing:
            logger.debug("No price for %s/%s, using provider default", provider, model)

        with self._lock:
            entry = self._entries.setdefault(provider, CostEntry())
            entry.tokens += usage.total_tokens
            entry.cost_usd += cost
            entry.calls += 1
            if estimated:
                entry.estimated_calls += 1
            totals = {"tokens": entry.tokens, "cost_usd": entry.cost_usd}

        emit_event(
            EventType.COST_RECORDED,
            {"model": model, "cost_usd": cost, "estimated": estimated, **totals},
            provider=provider,
        )
        return cost

    def snapshot(self) -> Dict[str, Dict[str, float]]:
        """Return a copy of the running totals: {provider: {tokens, cost}}."""
        with self._lock:
            return {
                provider: {"tokens": entry.tokens, "cost": entry.cost_usd}
                for provider, entry in self._entries.items()
            }

    def get_cost_summary(self) -> Dict[str, Dict[str, object]]:
        """Return {provider: {tokens, cost (4-decimal string), currency}}."""
        return {
            provider: {
                "tokens": totals["tokens"],
                "cost": f"{totals['cost']:.4f}",
                "currency": CURRENCY,
            }
            for provider, totals in self.snapshot().items()
        }

    def total_cost(self) -> float:
        return sum(totals["cost"] for totals in self.snapshot().values())
