"""Provider manager: routing, normalization, fallback and cost tracking.

The ProviderManager is the single entry point callers need:

    manager = initialize_providers()
    response = await manager.complete(
        CompletionRequest(messages=[Message(role="user", content="Hello")]),
        CompletionOptions(provider="openai"),
    )

Control flow per call:
    router.select -> normalizer.to_vendor_request -> adapter.complete
    -> normalizer.to_response -> cost_tracker.record
On an adapter failure the fallback controller retries the next provider.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..events import EventType, emit_event
from ..unified_config import RoutingConfig, UnifiedConfig, get_config
from .base import BaseProvider
from .costs import CostTracker
from .errors import AdapterFailure, InvalidRequestError, ProviderNotFoundError
from .fallback import FallbackController
from .normalizer import get_normalizer
from .providers import PROVIDER_CLASSES
from .router import ProviderRouter
from .types import (
    CompletionOptions,
    CompletionRequest,
    CompletionResponse,
    RouteDecision,
)

logger = logging.getLogger(__name__)


class ProviderManager:
    """Routes completion requests across registered provider adapters.

    Args:
        routing: Strategy, rules and fallback settings.
        default_provider: Provider used when nothing else picks one.
            Defaults to the first registered provider.
        cost_tracker: Accumulator for usage and cost. Each manager gets its
            own tracker unless one is passed in.
        providers: Adapters to register up front, in order.
    """

    def __init__(
        self,
        routing: Optional[RoutingConfig] = None,
        default_provider: Optional[str] = None,
        cost_tracker: Optional[CostTracker] = None,
        providers: Optional[Iterable[BaseProvider]] = None,
    ):
        self.routing = routing or RoutingConfig()
        self._providers: Dict[str, BaseProvider] = {}
        self.router = ProviderRouter(
            strategy=self.routing.strategy,
            rules=self.routing.rules,
            default_provider=default_provider,
        )
        self.fallback = FallbackController(
            order=self.routing.fallback.order,
            enabled=self.routing.fallback.enabled,
        )
        self.cost_tracker = cost_tracker if cost_tracker is not None else CostTracker()

        for provider in providers or []:
            self.register(provider)

    # -------------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: UnifiedConfig,
        cost_tracker: Optional[CostTracker] = None,
    ) -> "ProviderManager":
        """Build a manager with one adapter per enabled provider.

        A provider without a credential is still registered; it reports
        unavailable and fails at call time.
        """
        manager = cls(
            routing=config.routing,
            cost_tracker=cost_tracker
            or CostTracker(enabled=config.monitoring.track_costs),
        )

        for name, provider_config in config.providers.items():
            if not provider_config.enabled:
                continue
            provider_cls = PROVIDER_CLASSES.get(name)
            if provider_cls is None:
                logger.warning("Unknown provider '%s' in configuration, skipping", name)
                continue
            manager.register(
                provider_cls(
                    name=name,
                    api_key=provider_config.api_key,
                    default_model=provider_config.default_model,
                    models=provider_config.models or None,
                    timeout=provider_config.timeout_seconds,
                    base_url=provider_config.base_url,
                )
            )

        if config.default_provider in manager.providers:
            manager.set_default_provider(config.default_provider)
        else:
            logger.warning(
                "Default provider '%s' is not registered, using first available",
                config.default_provider,
            )
        return manager

    def register(self, provider: BaseProvider) -> None:
        """Register an adapter under its name (replacing any previous one)."""
        self._providers[provider.name] = provider
        emit_event(
            EventType.PROVIDER_REGISTERED,
            {"available": provider.is_available(), "models": list(provider.supported_models)},
            provider=provider.name,
        )
        if self.router.default_provider is None:
            self.router.default_provider = provider.name

    @property
    def providers(self) -> Dict[str, BaseProvider]:
        return dict(self._providers)

    @property
    def default_provider(self) -> Optional[str]:
        return self.router.default_provider

    def get_provider(self, name: str) -> BaseProvider:
        """Return a registered adapter.

        Raises:
            ProviderNotFoundError: If no adapter is registered under ``name``.
        """
        provider = self._providers.get(name)
        if provider is None:
            raise ProviderNotFoundError(name)
        return provider

    def set_default_provider(self, name: str) -> None:
        if name not in self._providers:
            raise ProviderNotFoundError(name)
        self.router.default_provider = name
        logger.info("Default provider set to: %s", name)

    def list_providers(self) -> List[Dict[str, Any]]:
        return [provider.describe() for provider in self._providers.values()]

    # -------------------------------------------------------------------------
    # Completion
    # -------------------------------------------------------------------------

    def select_provider(
        self,
        request: CompletionRequest,
        options: Optional[CompletionOptions] = None,
    ) -> RouteDecision:
        return self.router.select(request, options, self._providers)

    async def complete(
        self,
        request: CompletionRequest,
        options: Optional[CompletionOptions] = None,
    ) -> CompletionResponse:
        """Route, normalize and execute a completion with fallback.

        Raises:
            InvalidRequestError: If the request has no user or assistant message.
            ProviderNotFoundError: If the selected provider is not registered.
            AllProvidersFailedError: If the primary and every fallback failed.
            AdapterFailure: The primary's error when fallback is disabled.
        """
        options = options or CompletionOptions()
        if not request.messages:
            raise InvalidRequestError("Completion request has no messages")
        # System turns can be lifted out of the history, leaving nothing to send
        if all(message.role == "system" for message in request.messages):
            raise InvalidRequestError("Completion request has no user or assistant messages")

        decision = self.select_provider(request, options)
        self.get_provider(decision.provider)

        emit_event(
            EventType.PROVIDER_SELECTED,
            {"reason": decision.reason, "model": decision.model},
            provider=decision.provider,
        )

        async def attempt(name: str) -> CompletionResponse:
            route = decision if name == decision.provider else None
            return await self._attempt(name, request, route)

        return await self.fallback.run(
            primary=decision.provider,
            attempt=attempt,
            registered=list(self._providers),
            enable_fallback=options.enable_fallback,
        )

    async def _attempt(
        self,
        name: str,
        request: CompletionRequest,
        decision: Optional[RouteDecision],
    ) -> CompletionResponse:
        """One attempt against one adapter.

        Anything the adapter raises surfaces as AdapterFailure. Errors in
        normalization or cost recording propagate unchanged.
        """
        adapter = self._providers[name]
        normalizer = get_normalizer(adapter.kind)
        model = self._resolve_model(adapter, request, decision)

        vendor_request = normalizer.to_vendor_request(request, model)
        try:
            raw = await adapter.complete(vendor_request)
        except AdapterFailure:
            raise
        except Exception as e:
            raise AdapterFailure(f"Unexpected error from {name}: {e}", provider=name) from e
        response = normalizer.to_response(raw, provider=name, requested_model=model)

        self.cost_tracker.record(name, model, response.usage)
        emit_event(
            EventType.COMPLETION_SUCCEEDED,
            {
                "model": response.model,
                "finish_reason": response.finish_reason,
                "total_tokens": response.usage.total_tokens,
            },
            provider=name,
        )
        return response

    @staticmethod
    def _resolve_model(
        adapter: BaseProvider,
        request: CompletionRequest,
        decision: Optional[RouteDecision],
    ) -> str:
        """Model to send to ``adapter``.

        - fallback candidate: the requested model if the adapter serves it,
          else the adapter's default;
        - routed by rule/strategy: the requested model if the adapter serves
          it, else the routed model;
        - explicit/default route: the requested model as given, else the
          adapter's default.
        """
        if decision is None:
            if adapter.has_model(request.model):
                return request.model
            return adapter.default_model

        if decision.model:
            if adapter.has_model(request.model):
                return request.model
            return decision.model

        return request.model or adapter.default_model

    def get_cost_summary(self) -> Dict[str, Dict[str, Any]]:
        """Return {provider: {tokens, cost (4-decimal string), currency}}."""
        return self.cost_tracker.get_cost_summary()


def initialize_providers(config: Optional[UnifiedConfig] = None) -> ProviderManager:
    """Build a ProviderManager from the effective configuration."""
    return ProviderManager.from_config(config or get_config())
