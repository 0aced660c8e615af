"""Environment-level settings for llm-scaffold."""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


# Known provider adapters, in registration order
PROVIDER_NAMES = ["anthropic", "openai", "google", "local"]

# Provider API key environment variable names
PROVIDER_KEY_ENV_VARS = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "google": "GOOGLE_API_KEY",
}

DEFAULT_PROVIDER = "anthropic"

# Ollama's default listen address
LOCAL_BASE_URL = "http://localhost:11434"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_api_key(provider: str) -> Optional[str]:
    """Return the credential for a provider from the environment, if any."""
    env_var = PROVIDER_KEY_ENV_VARS.get(provider)
    if env_var:
        return os.environ.get(env_var) or None
    return None


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the package logger.

    Level resolution: explicit argument, then LLM_SCAFFOLD_LOG_LEVEL, then INFO.
    """
    level_name = (level or os.getenv("LLM_SCAFFOLD_LOG_LEVEL") or "INFO").upper()
    if level_name == "WARN":
        level_name = "WARNING"

    package_logger = logging.getLogger("llm_scaffold")
    package_logger.setLevel(getattr(logging, level_name, logging.INFO))

    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
