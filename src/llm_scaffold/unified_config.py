"""Unified YAML configuration for llm-scaffold.

Configuration Priority: Environment Variables > YAML > Defaults

Example YAML configuration (llm_scaffold.yaml):

    scaffold:
      default_provider: anthropic
      providers:
        anthropic:
          enabled: true
          default_model: claude-sonnet-4
        local:
          enabled: false
          base_url: http://localhost:11434
      routing:
        strategy: cost-optimized
        rules:
          simple-queries: anthropic/claude-haiku-4
          complex-reasoning: claude-opus-4
          embeddings: openai/text-embedding-3-small
        fallback:
          enabled: true
          order: [anthropic, openai, google]
      monitoring:
        track_costs: true
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .config import (
    DEFAULT_PROVIDER,
    LOCAL_BASE_URL,
    PROVIDER_KEY_ENV_VARS,
    PROVIDER_NAMES,
    get_api_key,
)


RoutingStrategy = Literal[
    "cost-optimized", "latency-optimized", "quality-optimized", "default"
]

TRUE_VALUES = ("true", "1", "yes")


# =============================================================================
# Sub-configuration Models
# =============================================================================


class ProviderConfig(BaseModel):
    """Configuration for a single provider adapter."""

    enabled: bool = True
    api_key: Optional[str] = None
    default_model: Optional[str] = None
    models: List[str] = Field(default_factory=list)
    base_url: Optional[str] = None
    timeout_seconds: float = Field(default=120.0, ge=1.0, le=3600.0)


class FallbackConfig(BaseModel):
    """Configuration for provider fallback behavior."""

    enabled: bool = True
    order: List[str] = Field(
        default_factory=lambda: ["anthropic", "openai", "google", "local"]
    )


class RoutingConfig(BaseModel):
    """Configuration for provider selection."""

    strategy: RoutingStrategy = "default"
    # task signal -> model ("provider/model" or bare model name)
    rules: Dict[str, str] = Field(default_factory=dict)
    fallback: FallbackConfig = Field(default_factory=FallbackConfig)

    @property
    def fallback_order(self) -> List[str]:
        return self.fallback.order

    @property
    def fallback_enabled(self) -> bool:
        return self.fallback.enabled


class MonitoringConfig(BaseModel):
    """Configuration for cost tracking and logging."""

    track_costs: bool = True
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = v.upper()
        if level == "WARN":
            level = "WARNING"
        if level not in valid_levels:
            raise ValueError(f"invalid log level '{v}', must be one of {valid_levels}")
        return level


class AgentSettings(BaseModel):
    """Configuration for agent plan/act/reflect behavior."""

    reflection_enabled: bool = False
    # Unset leaves each agent class on its own threshold
    quality_threshold: Optional[int] = Field(default=None, ge=0, le=10)


# =============================================================================
# Main Unified Configuration
# =============================================================================


class UnifiedConfig(BaseModel):
    """Unified configuration for llm-scaffold."""

    default_provider: str = Field(default=DEFAULT_PROVIDER)
    providers: Dict[str, ProviderConfig] = Field(default_factory=dict)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    agents: AgentSettings = Field(default_factory=AgentSettings)

    @model_validator(mode="after")
    def ensure_default_providers(self) -> "UnifiedConfig":
        """Ensure all standard providers exist with defaults."""
        for name in PROVIDER_NAMES:
            if name not in self.providers:
                if name == "local":
                    # Local server must be opted into explicitly
                    self.providers[name] = ProviderConfig(enabled=False, base_url=LOCAL_BASE_URL)
                else:
                    self.providers[name] = ProviderConfig()
        return self

    def enabled_providers(self) -> List[str]:
        return [name for name, cfg in self.providers.items() if cfg.enabled]

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string (credentials excluded)."""
        config_dict = {"scaffold": self.to_dict(include_secrets=False)}
        return yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    def to_dict(self, include_secrets: bool = True) -> Dict[str, Any]:
        data = self.model_dump(exclude_none=True)
        if not include_secrets:
            for provider in data.get("providers", {}).values():
                provider.pop("api_key", None)
        return data


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute environment variables in configuration values.

    Supports ${VAR_NAME} syntax.
    """
    if isinstance(value, str):
        pattern = r"\$\{([^}]+)\}"
        for var_name in re.findall(pattern, value):
            value = value.replace(f"${{{var_name}}}", os.getenv(var_name, ""))
        return value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def load_config(
    config_path: Optional[Path] = None,
    strict: bool = False,
) -> UnifiedConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file. If None, uses defaults.
        strict: If True, raise ValueError on validation errors. If False,
                fall back to defaults on errors.

    Returns:
        UnifiedConfig object

    Raises:
        ValueError: If strict=True and configuration is invalid
    """
    if config_path is None or not config_path.exists():
        return UnifiedConfig()

    try:
        with open(config_path, "r") as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            return UnifiedConfig()

        raw_config = _substitute_env_vars(raw_config)
        return UnifiedConfig(**(raw_config.get("scaffold") or {}))

    except yaml.YAMLError as e:
        if strict:
            raise ValueError(f"Invalid YAML: {e}")
        return UnifiedConfig()
    except Exception as e:
        if strict:
            raise ValueError(f"Configuration error: {e}")
        return UnifiedConfig()


def _find_config_file() -> Optional[Path]:
    """Find configuration file in standard locations.

    Search order:
    1. LLM_SCAFFOLD_CONFIG environment variable
    2. ./llm_scaffold.yaml (current directory)
    3. ~/.config/llm-scaffold/llm_scaffold.yaml
    """
    env_path = os.getenv("LLM_SCAFFOLD_CONFIG")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path

    cwd_path = Path.cwd() / "llm_scaffold.yaml"
    if cwd_path.exists():
        return cwd_path

    home_path = Path.home() / ".config" / "llm-scaffold" / "llm_scaffold.yaml"
    if home_path.exists():
        return home_path

    return None


def _env_flag(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if not value:
        return None
    return value.lower() in TRUE_VALUES


def _apply_env_overrides(config: UnifiedConfig) -> UnifiedConfig:
    """Apply environment variable overrides to configuration.

    Environment variables take precedence over YAML configuration.
    """
    config_dict = config.to_dict()
    providers = config_dict.setdefault("providers", {})

    # Credentials (always from env when set)
    for name in PROVIDER_KEY_ENV_VARS:
        key = get_api_key(name)
        if key:
            providers.setdefault(name, {})["api_key"] = key

    default_provider = os.getenv("LLM_SCAFFOLD_DEFAULT_PROVIDER")
    if default_provider:
        config_dict["default_provider"] = default_provider

    # Default model applies to whichever provider is the default
    default_model = os.getenv("LLM_SCAFFOLD_DEFAULT_MODEL")
    if default_model:
        target = config_dict.get("default_provider", DEFAULT_PROVIDER)
        providers.setdefault(target, {})["default_model"] = default_model

    strategy = os.getenv("LLM_SCAFFOLD_ROUTING_STRATEGY")
    if strategy:
        config_dict.setdefault("routing", {})["strategy"] = strategy

    fallback_order = os.getenv("LLM_SCAFFOLD_FALLBACK_ORDER")
    if fallback_order:
        order = [p.strip() for p in fallback_order.split(",") if p.strip()]
        config_dict.setdefault("routing", {}).setdefault("fallback", {})["order"] = order

    fallback_enabled = _env_flag("LLM_SCAFFOLD_FALLBACK_ENABLED")
    if fallback_enabled is not None:
        config_dict.setdefault("routing", {}).setdefault("fallback", {})["enabled"] = fallback_enabled

    track_costs = _env_flag("LLM_SCAFFOLD_TRACK_COSTS")
    if track_costs is not None:
        config_dict.setdefault("monitoring", {})["track_costs"] = track_costs

    log_level = os.getenv("LLM_SCAFFOLD_LOG_LEVEL")
    if log_level:
        config_dict.setdefault("monitoring", {})["log_level"] = log_level

    local_base_url = os.getenv("LLM_SCAFFOLD_LOCAL_BASE_URL")
    if local_base_url:
        local = providers.setdefault("local", {})
        local["base_url"] = local_base_url
        local["enabled"] = True

    reflection = _env_flag("LLM_SCAFFOLD_ENABLE_REFLECTION")
    if reflection is not None:
        config_dict.setdefault("agents", {})["reflection_enabled"] = reflection

    return UnifiedConfig(**config_dict)


def get_effective_config(config_path: Optional[Path] = None) -> UnifiedConfig:
    """Get the effective configuration with all overrides applied.

    Priority: Environment Variables > YAML > Defaults
    """
    if config_path is None:
        config_path = _find_config_file()

    config = load_config(config_path)
    return _apply_env_overrides(config)


# =============================================================================
# Global Configuration Instance
# =============================================================================

_global_config: Optional[UnifiedConfig] = None


def get_config() -> UnifiedConfig:
    """Get the global configuration instance.

    This function caches the configuration after first load.
    Use reload_config() to force a reload.
    """
    global _global_config
    if _global_config is None:
        _global_config = get_effective_config()
    return _global_config


def reload_config() -> UnifiedConfig:
    """Reload the global configuration from disk and environment."""
    global _global_config
    _global_config = get_effective_config()
    return _global_config
