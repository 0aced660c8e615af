"""Agents built on the provider gateway."""

from .base import AgentExecutionError, BaseAgent, Task
from .reasoning import ReasoningAgent

__all__ = ["AgentExecutionError", "BaseAgent", "ReasoningAgent", "Task"]
