"""Reasoning agent: task decomposition plus chain-of-thought execution."""

import logging
import re
from typing import Any, Dict, List, Optional

from .base import BaseAgent, CompletionProvider, Task, parse_json_object

logger = logging.getLogger(__name__)

_REASONING_RE = re.compile(r"REASONING:\s*(.*?)(?=RESULT:|$)", re.IGNORECASE | re.DOTALL)
_RESULT_RE = re.compile(r"RESULT:\s*(.*)$", re.IGNORECASE | re.DOTALL)


class ReasoningAgent(BaseAgent):
    """Agent for complex, multi-step reasoning tasks.

    plan() asks the model to decompose the task into subtasks, act() works
    through them with a REASONING/RESULT prompt carrying previous results
    forward, and a final call synthesizes the answer.
    """

    quality_threshold = 8

    def __init__(
        self,
        agent_id: str,
        provider: CompletionProvider,
        capabilities: Optional[List[str]] = None,
        **kwargs: Any,
    ):
        super().__init__(
            agent_id,
            provider,
            capabilities=list(capabilities or []) + ["reasoning", "decomposition"],
            **kwargs,
        )

    async def plan(self, task: Task, context: Dict[str, Any]) -> Dict[str, Any]:
        logger.info("ReasoningAgent %s planning task %s", self.id, task.id)

        decomposition = await self.decompose_task(task)
        return {
            "approach": "decomposition",
            "subtasks": decomposition["tasks"],
            "strategy": decomposition.get("strategy", "direct"),
        }

    async def act(self, plan: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        logger.info("ReasoningAgent %s executing with chain-of-thought", self.id)

        results: List[Dict[str, Any]] = []
        for subtask in plan["subtasks"]:
            results.append(await self.execute_with_reasoning(subtask, results, context))

        final_answer = await self.synthesize_results(results, context["task"])
        return {
            "success": True,
            "subtask_results": results,
            "final_answer": final_answer,
            "plan": plan,
        }

    async def decompose_task(self, task: Task) -> Dict[str, Any]:
        prompt = f"""You are an expert task planner. Decompose this task into clear, executable subtasks.

Task: {task.description}

Requirements:
1. Break into 3-7 subtasks
2. Each subtask should be clear and actionable
3. Include dependencies (which must complete first)
4. Provide overall strategy

Output JSON:
{{
  "strategy": "high-level approach",
  "tasks": [
    {{
      "id": "task_1",
      "description": "what to do",
      "reasoning": "why this is needed",
      "dependencies": [],
      "complexity": "low|medium|high"
    }}
  ]
}}"""

        response = await self.ask(prompt, max_tokens=2048)
        try:
            decomposition = parse_json_object(response.content)
            if not isinstance(decomposition.get("tasks"), list) or not decomposition["tasks"]:
                raise ValueError("decomposition has no tasks")
            return decomposition
        except ValueError:
            logger.warning("Failed to parse decomposition, using simple plan")
            return {
                "strategy": "direct",
                "tasks": [
                    {
                        "id": "task_1",
                        "description": task.description,
                        "dependencies": [],
                        "complexity": "medium",
                    }
                ],
            }

    async def execute_with_reasoning(
        self,
        subtask: Dict[str, Any],
        previous_results: List[Dict[str, Any]],
        context: Dict[str, Any],
    ) -> Dict[str, Any]:
        logger.debug("Executing subtask with reasoning: %s", subtask.get("description"))

        prompt = self.build_reasoning_prompt(subtask, previous_results, context)
        response = await self.ask(prompt)
        return {
            "subtask": subtask.get("description"),
            "reasoning": self.extract_reasoning(response.content),
            "result": self.extract_result(response.content),
            "tokens": response.usage.total_tokens,
        }

    def build_reasoning_prompt(
        self,
        subtask: Dict[str, Any],
        previous_results: List[Dict[str, Any]],
        context: Dict[str, Any],
    ) -> str:
        prompt = f"{context['system_prompt']}\n\n"
        prompt += "Let's solve this step by step.\n\n"

        if previous_results:
            prompt += "Previous Steps:\n"
            for i, result in enumerate(previous_results, 1):
                prompt += f"{i}. {result['subtask']}: {result['result']}\n"
            prompt += "\n"

        prompt += f"Current Step: {subtask.get('description')}\n\n"

        if subtask.get("reasoning"):
            prompt += f"Why this step: {subtask['reasoning']}\n\n"

        prompt += """Please work through this methodically:
1. Analyze what's being asked
2. Consider what information or steps are needed
3. Work through the problem
4. State your conclusion

Format:
REASONING: [Your step-by-step thinking]
RESULT: [Your final answer for this step]"""
        return prompt

    @staticmethod
    def extract_reasoning(content: str) -> str:
        match = _REASONING_RE.search(content or "")
        return match.group(1).strip() if match else "No reasoning provided"

    @staticmethod
    def extract_result(content: str) -> str:
        match = _RESULT_RE.search(content or "")
        return match.group(1).strip() if match else content

    async def synthesize_results(self, results: List[Dict[str, Any]], task: Task) -> str:
        logger.info("Synthesizing final answer from %d subtask results", len(results))

        steps = "\n\n".join(
            f"{i}. {r['subtask']}\n   Reasoning: {r['reasoning']}\n   Result: {r['result']}"
            for i, r in enumerate(results, 1)
        )
        prompt = f"""Based on these step-by-step results, provide a comprehensive final answer.

Original Task: {task.description}

Steps Completed:
{steps}

Synthesize these into a clear, complete answer to the original task."""

        response = await self.ask(prompt)
        return response.content

    def get_system_prompt(self) -> str:
        return """You are an expert reasoning agent. You excel at:
- Breaking down complex problems
- Thinking step-by-step
- Identifying logical dependencies
- Synthesizing information

Always show your reasoning process clearly."""
