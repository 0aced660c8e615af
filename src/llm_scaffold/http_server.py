"""HTTP server for the llm-scaffold provider gateway.

Stateless apart from the process-wide ProviderManager (and its cost
ledger), which is built lazily from the effective configuration.

Usage:
    pip install "llm-scaffold[http]"
    uvicorn llm_scaffold.http_server:app

Or programmatically:
    from llm_scaffold.http_server import app
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
"""

import os
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from llm_scaffold.config import configure_logging
from llm_scaffold.gateway.errors import (
    AllProvidersFailedError,
    GatewayError,
    InvalidRequestError,
    ProviderNotFoundError,
)
from llm_scaffold.gateway.manager import ProviderManager, initialize_providers
from llm_scaffold.gateway.types import CompletionOptions, CompletionRequest
from llm_scaffold.unified_config import get_config


security = HTTPBearer(auto_error=False)

_manager: Optional[ProviderManager] = None


def get_api_token() -> Optional[str]:
    """Get the configured API token from environment.

    Returns None if no token is configured, meaning auth is optional.
    """
    token = os.environ.get("LLM_SCAFFOLD_API_TOKEN")
    return token if token else None


async def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> None:
    """Verify the Bearer token if LLM_SCAFFOLD_API_TOKEN is configured.

    Raises:
        HTTPException: 401 if token is required but missing/invalid
    """
    api_token = get_api_token()
    if api_token is None:
        return

    if credentials is None or credentials.credentials != api_token:
        raise HTTPException(
            status_code=401,
            detail="Invalid or missing API token. Provide Authorization: Bearer <token>",
        )


auth_dependency = Depends(verify_token)


def get_manager() -> ProviderManager:
    """Return the process-wide ProviderManager, building it on first use."""
    global _manager
    if _manager is None:
        config = get_config()
        configure_logging(config.monitoring.log_level)
        _manager = initialize_providers(config)
    return _manager


def reset_manager() -> None:
    """Drop the process-wide manager (a new one starts with an empty ledger)."""
    global _manager
    _manager = None


app = FastAPI(
    title="LLM Scaffold",
    description="Provider routing gateway for LLM-backed apps",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


class MessageBody(BaseModel):
    role: str = Field(..., pattern="^(user|assistant|system)$")
    content: str


class CompleteRequestBody(BaseModel):
    """Request body for a completion."""

    messages: List[MessageBody] = Field(..., description="Conversation turns, oldest first")
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, ge=1)
    tools: Optional[List[Dict[str, Any]]] = None
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Routing hints such as complexity and useCase"
    )
    provider: Optional[str] = Field(default=None, description="Explicit provider override")
    enable_fallback: bool = True


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", service="llm-scaffold")


@app.post("/v1/complete", tags=["Completion"], dependencies=[auth_dependency])
async def complete(
    body: CompleteRequestBody,
    manager: ProviderManager = Depends(get_manager),
) -> Dict[str, Any]:
    """Route a completion through the provider gateway."""
    request = CompletionRequest.from_dict(body.model_dump(exclude={"provider", "enable_fallback"}))
    options = CompletionOptions(provider=body.provider, enable_fallback=body.enable_fallback)

    try:
        response = await manager.complete(request, options)
    except ProviderNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except AllProvidersFailedError as e:
        raise HTTPException(
            status_code=502,
            detail={"message": e.message, "attempted": e.attempted, "errors": e.errors},
        )
    except GatewayError as e:
        raise HTTPException(status_code=502, detail=e.message)

    return response.to_dict()


@app.get("/v1/providers", tags=["Providers"], dependencies=[auth_dependency])
async def list_providers(manager: ProviderManager = Depends(get_manager)) -> Dict[str, Any]:
    """List registered providers and their availability."""
    return {"default": manager.default_provider, "providers": manager.list_providers()}


@app.get("/v1/costs", tags=["Costs"], dependencies=[auth_dependency])
async def cost_summary(manager: ProviderManager = Depends(get_manager)) -> Dict[str, Any]:
    """Running token and USD totals per provider since process start."""
    return manager.get_cost_summary()
