"""Base agent with a plan / act / reflect loop.

Subclasses override plan(), act() and optionally reflect():

    class MyAgent(BaseAgent):
        async def plan(self, task, context): ...
        async def act(self, plan, context): ...

Every model call goes through a ProviderManager, so agents inherit its
routing, fallback and cost tracking.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..gateway.types import (
    CompletionOptions,
    CompletionRequest,
    CompletionResponse,
    Message,
)

logger = logging.getLogger(__name__)

# Evaluation score used when the model's evaluation cannot be parsed
DEFAULT_EVALUATION_SCORE = 5


@runtime_checkable
class CompletionProvider(Protocol):
    """Anything that can run a completion (normally a ProviderManager)."""

    async def complete(
        self,
        request: CompletionRequest,
        options: Optional[CompletionOptions] = None,
    ) -> CompletionResponse:
        ...


@runtime_checkable
class MemoryProtocol(Protocol):
    """Retrieves memories relevant to a task."""

    async def retrieve(self, task: "Task", max_tokens: int = 10000) -> List[Dict[str, Any]]:
        ...


@dataclass
class Task:
    """A unit of work for an agent."""

    id: str
    description: str
    priority: str = "medium"  # low | medium | high
    metadata: Dict[str, Any] = field(default_factory=dict)


class AgentExecutionError(Exception):
    """Raised when an agent fails to execute a task."""

    def __init__(self, message: str, task_id: Optional[str] = None):
        super().__init__(message)
        self.task_id = task_id


def parse_json_object(content: str) -> Dict[str, Any]:
    """Parse the first JSON object in a model reply (code fences allowed).

    Raises:
        ValueError: If no JSON object can be decoded.
    """
    match = re.search(r"\{.*\}", content or "", re.DOTALL)
    if not match:
        raise ValueError("no JSON object in response")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("JSON value is not an object")
    return data


class BaseAgent:
    """Foundation for agents.

    Args:
        agent_id: Unique identifier.
        provider: Completion provider used for every model call.
        capabilities: Capability names advertised in the system prompt.
        memory: Optional memory used to enrich the context.
        reflection_enabled: Run reflect() after act(). Defaults to the
            ``agents.reflection_enabled`` configuration setting.
        options: Completion options applied to every call.
        quality_threshold: Evaluation score (0-10) below which reflect()
            calls improve(). Defaults to ``agents.quality_threshold`` when
            configured, else the class attribute.
    """

    quality_threshold: int = 7
    max_tokens: int = 4096

    def __init__(
        self,
        agent_id: str,
        provider: CompletionProvider,
        capabilities: Optional[List[str]] = None,
        memory: Optional[MemoryProtocol] = None,
        reflection_enabled: Optional[bool] = None,
        options: Optional[CompletionOptions] = None,
        quality_threshold: Optional[int] = None,
    ):
        self.id = agent_id
        self.provider = provider
        self.capabilities = list(capabilities or [])
        self.memory = memory
        self.options = options
        if reflection_enabled is None or quality_threshold is None:
            from ..unified_config import get_config

            settings = get_config().agents
            if reflection_enabled is None:
                reflection_enabled = settings.reflection_enabled
            if quality_threshold is None:
                quality_threshold = settings.quality_threshold
        self.reflection_enabled = reflection_enabled
        if quality_threshold is not None:
            self.quality_threshold = quality_threshold

        logger.info("Agent %s initialized with capabilities %s", self.id, self.capabilities)

    async def execute(self, task: Task, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run the plan / act / reflect cycle for a task.

        Raises:
            AgentExecutionError: Wrapping whatever failed inside the cycle.
        """
        logger.info("Agent %s executing task %s", self.id, task.id)

        try:
            full_context = await self.build_context(task, context or {})

            plan = await self.plan(task, full_context)
            logger.debug("Plan created: %s", plan)

            result = await self.act(plan, full_context)
            logger.debug("Execution complete for task %s", task.id)

            if self.should_reflect(result):
                improved = await self.reflect(result, task)
                logger.debug("Reflection complete for task %s", task.id)
                return improved

            return result

        except Exception as e:
            logger.error("Agent %s execution failed on task %s: %s", self.id, task.id, e)
            raise AgentExecutionError(
                f"Agent {self.id} failed to execute task", task_id=task.id
            ) from e

    async def plan(self, task: Task, context: Dict[str, Any]) -> Dict[str, Any]:
        """Default plan: the task description is the only step."""
        logger.warning("Agent %s using default plan method", self.id)
        return {"steps": [{"action": "complete", "description": task.description}]}

    async def act(self, plan: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """Default act: run each step sequentially."""
        logger.warning("Agent %s using default act method", self.id)

        results = []
        for step in plan.get("steps", []):
            results.append(await self.execute_step(step, context))

        return {"success": True, "results": results, "plan": plan}

    async def reflect(self, result: Dict[str, Any], task: Task) -> Dict[str, Any]:
        """Evaluate the result and improve it when below the quality threshold."""
        logger.info("Agent %s reflecting on result", self.id)

        evaluation = await self.evaluate(result, task)
        try:
            score = float(evaluation.get("score", DEFAULT_EVALUATION_SCORE))
        except (TypeError, ValueError):
            score = DEFAULT_EVALUATION_SCORE

        if score >= self.quality_threshold:
            logger.debug("Result meets quality threshold (score=%s)", score)
            return result

        logger.debug(
            "Result needs improvement (score=%s, threshold=%s)", score, self.quality_threshold
        )
        return await self.improve(result, evaluation, task)

    async def ask(self, prompt: str, max_tokens: Optional[int] = None) -> CompletionResponse:
        """Send a single user prompt through the provider."""
        request = CompletionRequest(
            messages=[Message(role="user", content=prompt)],
            max_tokens=max_tokens or self.max_tokens,
        )
        return await self.provider.complete(request, self.options)

    async def execute_step(self, step: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug("Executing step: %s", step.get("description"))

        response = await self.ask(self.build_step_prompt(step, context))
        return {
            "step": step.get("description"),
            "result": response.content,
            "tokens": response.usage.total_tokens,
        }

    async def build_context(self, task: Task, context: Dict[str, Any]) -> Dict[str, Any]:
        memories: List[Dict[str, Any]] = []
        if self.memory is not None:
            memories = await self.memory.retrieve(task, max_tokens=10000)

        return {
            "system_prompt": self.get_system_prompt(),
            "task": task,
            "memory": memories,
            "conversation_history": context.get("conversation_history", []),
            "feedback": context.get("feedback"),
        }

    def build_step_prompt(self, step: Dict[str, Any], context: Dict[str, Any]) -> str:
        prompt = f"{context['system_prompt']}\n\n"

        if context.get("feedback"):
            prompt += f"Previous Feedback: {json.dumps(context['feedback'])}\n\n"

        prompt += f"Task: {step.get('description')}\n\n"

        if context.get("memory"):
            prompt += "Relevant Context:\n"
            for memory in context["memory"]:
                prompt += f"- {memory.get('content', '')}\n"
            prompt += "\n"

        prompt += "Please provide a detailed response."
        return prompt

    async def evaluate(self, result: Dict[str, Any], task: Task) -> Dict[str, Any]:
        """Ask the model to score a result from 0 to 10."""
        evaluation_prompt = f"""Evaluate this result for the given task.

Task: {task.description}

Result: {json.dumps(result, default=str)}

Evaluate on:
1. Correctness: Are there any errors?
2. Completeness: Is anything missing?
3. Clarity: Is it easy to understand?

Provide a score from 0-10 and specific feedback.

Output JSON:
{{
  "score": 0-10,
  "correctness": "analysis",
  "completeness": "analysis",
  "clarity": "analysis",
  "suggestions": ["suggestion1", "suggestion2"]
}}"""

        response = await self.ask(evaluation_prompt, max_tokens=2048)
        try:
            evaluation = parse_json_object(response.content)
        except ValueError:
            logger.warning("Failed to parse evaluation JSON, using default score")
            return {"score": DEFAULT_EVALUATION_SCORE, "suggestions": []}

        evaluation.setdefault("suggestions", [])
        return evaluation

    async def improve(
        self,
        result: Dict[str, Any],
        evaluation: Dict[str, Any],
        task: Task,
    ) -> Dict[str, Any]:
        logger.info("Improving result based on evaluation")

        suggestions = ", ".join(str(s) for s in evaluation.get("suggestions", []))
        improvement_prompt = f"""Improve this result based on the evaluation.

Task: {task.description}

Current Result: {json.dumps(result, default=str)}

Evaluation:
- Score: {evaluation.get("score")}/10
- Suggestions: {suggestions}

Please provide an improved version that addresses these issues."""

        response = await self.ask(improvement_prompt)
        return {
            **result,
            "improved": True,
            "content": response.content,
            "evaluation_score": evaluation.get("score"),
        }

    def get_system_prompt(self) -> str:
        return (
            "You are a helpful AI agent with the following capabilities: "
            f"{', '.join(self.capabilities)}."
        )

    def should_reflect(self, result: Dict[str, Any]) -> bool:
        return self.reflection_enabled and not result.get("improved", False)

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities

    def get_status(self) -> Dict[str, Any]:
        return {"id": self.id, "capabilities": list(self.capabilities), "active": True}
