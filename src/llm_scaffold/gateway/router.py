"""Provider selection for the gateway.

ProviderRouter.select() is a pure function of (request, options, registered
providers, static config): no I/O and no randomness, so the same inputs
always produce the same RouteDecision.

Selection order (first match wins):
1. Explicit ``options.provider``
2. ``metadata.complexity == "simple"`` -> rule ``simple-queries``
3. ``metadata.complexity == "complex"`` -> rule ``complex-reasoning``;
   ``metadata.useCase == "embeddings"`` -> rule ``embeddings``
4. The configured strategy (cost / latency / quality / default)
"""

from typing import Dict, List, Mapping, Optional, Tuple

from .base import BaseProvider
from .errors import ConfigurationError
from .types import CompletionOptions, CompletionRequest, RouteDecision

# Routing rule keys
RULE_SIMPLE = "simple-queries"
RULE_COMPLEX = "complex-reasoning"
RULE_EMBEDDINGS = "embeddings"

# Strategy preference orders. Local is free and has no network hop.
STRATEGY_PREFERENCES: Dict[str, List[str]] = {
    "cost-optimized": ["local", "anthropic", "openai", "google"],
    "latency-optimized": ["local", "anthropic", "google", "openai"],
    "quality-optimized": ["anthropic", "openai", "google"],
}


class ProviderRouter:
    """Selects exactly one provider for a request.

    Args:
        strategy: One of cost-optimized, latency-optimized,
            quality-optimized, default.
        rules: Mapping of task signal to model identifier, either
            "provider/model" or a bare model name.
        default_provider: Provider used by the default strategy.
    """

    def __init__(
        self,
        strategy: str = "default",
        rules: Optional[Mapping[str, str]] = None,
        default_provider: Optional[str] = None,
    ):
        self.strategy = strategy
        self.rules = dict(rules or {})
        self.default_provider = default_provider

    def select(
        self,
        request: CompletionRequest,
        options: Optional[CompletionOptions],
        providers: Mapping[str, BaseProvider],
    ) -> RouteDecision:
        """Pick the provider (and possibly the model) for a request.

        An explicit provider is returned as given, registered or not; the
        caller is responsible for rejecting unknown names.

        Raises:
            ConfigurationError: If no provider is registered at all.
        """
        if options is not None and options.provider:
            return RouteDecision(provider=options.provider, model=None, reason="explicit")

        for rule in self._matching_rules(request.metadata or {}):
            resolved = self.resolve_model(self.rules.get(rule), providers)
            if resolved is not None:
                provider_name, model = resolved
                return RouteDecision(provider=provider_name, model=model, reason=f"rule:{rule}")

        return self._apply_strategy(providers)

    def _matching_rules(self, metadata: Mapping[str, object]) -> List[str]:
        rules = []
        complexity = metadata.get("complexity")
        if complexity == "simple":
            rules.append(RULE_SIMPLE)
        elif complexity == "complex":
            rules.append(RULE_COMPLEX)
        use_case = metadata.get("useCase", metadata.get("use_case"))
        if use_case == "embeddings":
            rules.append(RULE_EMBEDDINGS)
        return rules

    @staticmethod
    def resolve_model(
        model_string: Optional[str],
        providers: Mapping[str, BaseProvider],
    ) -> Optional[Tuple[str, str]]:
        """Resolve a rule's model string to (provider name, model).

        "provider/model" resolves by prefix; a bare name resolves to the
        first registered provider serving that model. Returns None when
        nothing matches.
        """
        if not model_string:
            return None

        if "/" in model_string:
            provider_name, model = model_string.split("/", 1)
            if provider_name in providers:
                return provider_name, model
            return None

        for name, provider in providers.items():
            if provider.has_model(model_string):
                return name, model_string
        return None

    def _apply_strategy(self, providers: Mapping[str, BaseProvider]) -> RouteDecision:
        preferences = STRATEGY_PREFERENCES.get(self.strategy)
        if preferences is not None:
            for name in preferences:
                provider = providers.get(name)
                if provider is None or not provider.is_available():
                    continue
                if self.strategy == "quality-optimized":
                    model = provider.largest_model
                else:
                    model = provider.smallest_model
                return RouteDecision(
                    provider=name, model=model or None, reason=f"strategy:{self.strategy}"
                )

        return RouteDecision(
            provider=self.get_default_provider(providers), model=None, reason="default"
        )

    def get_default_provider(self, providers: Mapping[str, BaseProvider]) -> str:
        """Configured default provider if registered, else the first registered."""
        if self.default_provider and self.default_provider in providers:
            return self.default_provider
        if not providers:
            raise ConfigurationError("No providers registered")
        return next(iter(providers))
