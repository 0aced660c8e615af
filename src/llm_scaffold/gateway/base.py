"""Base provider protocol for the gateway layer.

Every vendor adapter subclasses BaseProvider. Adapters only move vendor-shaped
payloads over the wire; translation to and from the uniform shape lives in
``normalizer``.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional


class ProviderKind(str, Enum):
    """Wire-format family an adapter speaks, used to pick a normalizer."""

    ANTHROPIC = "anthropic"  # system prompt as a dedicated parameter
    OPENAI = "openai"  # system prompt prepended as a message
    GOOGLE = "google"  # chat-history contents with user/model roles
    GENERIC = "generic"


class BaseProvider(ABC):
    """Abstract vendor adapter.

    Attributes:
        name: Unique registry key for the adapter.
        kind: Wire-format family, see ProviderKind.
        supported_models: Models this adapter serves, most capable first.
        default_model: Model used when a request does not name one.
    """

    kind: ProviderKind = ProviderKind.GENERIC
    supported_models: List[str] = []
    default_model: str = ""

    def __init__(
        self,
        name: str,
        api_key: Optional[str] = None,
        default_model: Optional[str] = None,
        models: Optional[List[str]] = None,
        timeout: float = 120.0,
    ):
        self.name = name
        self._api_key = api_key or None
        if default_model:
            self.default_model = default_model
        # Copy so instances never share the class-level list
        self.supported_models = list(models) if models else list(type(self).supported_models)
        self.timeout = timeout

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key

    def is_available(self) -> bool:
        """Return True iff a credential is configured."""
        return bool(self._api_key)

    def has_model(self, model: Optional[str]) -> bool:
        return bool(model) and (model in self.supported_models or model == self.default_model)

    @property
    def largest_model(self) -> str:
        """Most capable supported model."""
        return self.supported_models[0] if self.supported_models else self.default_model

    @property
    def smallest_model(self) -> str:
        """Cheapest/fastest supported model."""
        return self.supported_models[-1] if self.supported_models else self.default_model

    @abstractmethod
    async def complete(self, vendor_request: Dict[str, Any]) -> Dict[str, Any]:
        """Send a vendor-shaped request and return the raw vendor response.

        Raises:
            AdapterFailure: On any transport or vendor error.
        """

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "available": self.is_available(),
            "default_model": self.default_model,
            "models": list(self.supported_models),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
