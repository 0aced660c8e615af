"""Fallback controller for the provider gateway.

State machine per top-level call:

    SELECTING -> ATTEMPTING(primary) -> SUCCESS
                                     -> ATTEMPTING(next) -> ... -> SUCCESS
                                                              -> ALL_FAILED

Candidates are tried one at a time in the configured order. Each provider is
attempted at most once per call and a fallback attempt never starts a
fallback of its own. Only AdapterFailure starts the fallback chain; any other
exception propagates unchanged.
"""

from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from ..events import EventType, emit_event
from .errors import AdapterFailure, AllProvidersFailedError
from .types import CompletionResponse

# Single attempt against a named provider, with no fallback of its own
AttemptFn = Callable[[str], Awaitable[CompletionResponse]]


class FallbackController:
    """Runs a primary attempt and, on failure, the fallback chain.

    Args:
        order: Provider names in fallback priority order.
        enabled: Global switch; a call can only disable fallback further.
    """

    def __init__(self, order: Optional[Sequence[str]] = None, enabled: bool = True):
        self.order = list(order or [])
        self.enabled = enabled

    def candidates(self, failed: str, registered: Sequence[str]) -> List[str]:
        """Fallback candidates after ``failed``, skipping unregistered names."""
        seen = {failed}
        result = []
        for name in self.order:
            if name in seen or name not in registered:
                continue
            seen.add(name)
            result.append(name)
        return result

    async def run(
        self,
        primary: str,
        attempt: AttemptFn,
        registered: Sequence[str],
        enable_fallback: bool = True,
    ) -> CompletionResponse:
        """Attempt ``primary`` then each fallback candidate until one succeeds.

        Raises:
            AdapterFailure: The primary's own failure when fallback is disabled.
            Exception: Anything that is not an AdapterFailure, unchanged.
            AllProvidersFailedError: When every candidate failed.
        """
        try:
            return await attempt(primary)
        except AdapterFailure as e:
            self._log_failure(primary, e)
            if not (self.enabled and enable_fallback):
                raise
            last_error: AdapterFailure = e

        attempted = [primary]
        errors: Dict[str, str] = {primary: str(last_error)}

        for name in self.candidates(primary, registered):
            emit_event(
                EventType.FALLBACK_ATTEMPT,
                {"failed_provider": attempted[-1], "attempt": len(attempted)},
                provider=name,
            )
            attempted.append(name)
            try:
                return await attempt(name)
            except AdapterFailure as e:
                self._log_failure(name, e)
                errors[name] = str(e)
                last_error = e

        emit_event(
            EventType.FALLBACK_EXHAUSTED,
            {"attempted": list(attempted), "errors": dict(errors)},
            provider=attempted[-1],
        )
        raise AllProvidersFailedError(
            last_provider=attempted[-1],
            attempted=attempted,
            errors=errors,
        ) from last_error

    @staticmethod
    def _log_failure(provider: str, error: Exception) -> None:
        emit_event(
            EventType.PROVIDER_FAILED,
            {"error": str(error), "error_type": type(error).__name__},
            provider=provider,
        )
