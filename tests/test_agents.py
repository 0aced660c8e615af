"""Tests for plan/act/reflect agents."""

import json
from unittest.mock import AsyncMock

import pytest

from llm_scaffold.agents import AgentExecutionError, BaseAgent, ReasoningAgent, Task
from llm_scaffold.agents.base import parse_json_object
from llm_scaffold.gateway.base import ProviderKind
from llm_scaffold.gateway.manager import ProviderManager
from llm_scaffold.gateway.types import CompletionResponse, UsageInfo
from llm_scaffold.unified_config import UnifiedConfig


def _response(content):
    return CompletionResponse(
        content=content,
        model="m",
        provider="p",
        usage=UsageInfo(input_tokens=3, output_tokens=2),
    )


def _provider(*contents):
    provider = AsyncMock()
    provider.complete.side_effect = [_response(c) for c in contents]
    return provider


TASK = Task(id="t1", description="Explain recursion")


class TestParseJsonObject:
    """Test JSON extraction from model replies."""

    def test_fenced_json(self):
        assert parse_json_object('Here:\n```json\n{"score": 9}\n```') == {"score": 9}

    def test_no_json(self):
        with pytest.raises(ValueError):
            parse_json_object("no braces here")

    def test_malformed_json(self):
        with pytest.raises(ValueError):
            parse_json_object("{not json}")


class TestBaseAgent:
    """Test the default plan/act cycle."""

    @pytest.mark.asyncio
    async def test_default_cycle_runs_one_step(self):
        provider = _provider("Recursion is a function calling itself.")
        agent = BaseAgent("a1", provider, capabilities=["writing"], reflection_enabled=False)

        result = await agent.execute(TASK)

        assert result["success"] is True
        assert result["results"][0]["result"] == "Recursion is a function calling itself."
        assert result["results"][0]["tokens"] == 5
        request = provider.complete.call_args.args[0]
        assert "writing" in request.messages[0].content
        assert "Explain recursion" in request.messages[0].content

    @pytest.mark.asyncio
    async def test_options_are_forwarded(self):
        from llm_scaffold.gateway.types import CompletionOptions

        provider = _provider("ok")
        options = CompletionOptions(provider="openai")
        agent = BaseAgent("a1", provider, reflection_enabled=False, options=options)

        await agent.execute(TASK)

        assert provider.complete.call_args.args[1] is options

    @pytest.mark.asyncio
    async def test_memory_is_added_to_prompt(self):
        provider = _provider("ok")
        memory = AsyncMock()
        memory.retrieve.return_value = [{"content": "User prefers Python examples"}]
        agent = BaseAgent("a1", provider, memory=memory, reflection_enabled=False)

        await agent.execute(TASK)

        memory.retrieve.assert_awaited_once()
        prompt = provider.complete.call_args.args[0].messages[0].content
        assert "User prefers Python examples" in prompt

    @pytest.mark.asyncio
    async def test_failure_is_wrapped(self):
        provider = AsyncMock()
        provider.complete.side_effect = RuntimeError("boom")
        agent = BaseAgent("a1", provider, reflection_enabled=False)

        with pytest.raises(AgentExecutionError) as exc_info:
            await agent.execute(TASK)

        assert exc_info.value.task_id == "t1"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_reflection_defaults_to_config(self):
        agent = BaseAgent("a1", AsyncMock())
        assert agent.reflection_enabled is False

    def test_status_and_capabilities(self):
        agent = BaseAgent("a1", AsyncMock(), capabilities=["search"], reflection_enabled=False)

        assert agent.has_capability("search")
        assert not agent.has_capability("code")
        assert agent.get_status() == {"id": "a1", "capabilities": ["search"], "active": True}


class TestReflection:
    """Test evaluate/improve behavior."""

    @pytest.mark.asyncio
    async def test_good_score_keeps_result(self):
        provider = _provider("draft", json.dumps({"score": 9, "suggestions": []}))
        agent = BaseAgent("a1", provider, reflection_enabled=True)

        result = await agent.execute(TASK)

        assert "improved" not in result
        assert provider.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_low_score_triggers_improvement(self):
        provider = _provider(
            "draft",
            json.dumps({"score": 3, "suggestions": ["add an example"]}),
            "better draft",
        )
        agent = BaseAgent("a1", provider, reflection_enabled=True)

        result = await agent.execute(TASK)

        assert result["improved"] is True
        assert result["content"] == "better draft"
        assert result["evaluation_score"] == 3
        improve_prompt = provider.complete.call_args.args[0].messages[0].content
        assert "add an example" in improve_prompt

    @pytest.mark.asyncio
    async def test_unparseable_evaluation_uses_default_score(self):
        provider = _provider("draft", "looks fine to me", "better draft")
        agent = BaseAgent("a1", provider, reflection_enabled=True)

        result = await agent.execute(TASK)

        # Default score 5 is below the threshold of 7
        assert result["improved"] is True
        assert result["evaluation_score"] == 5

    @pytest.mark.asyncio
    async def test_configured_threshold_skips_improvement(self, monkeypatch):
        monkeypatch.setattr(
            "llm_scaffold.unified_config._global_config",
            UnifiedConfig(agents={"quality_threshold": 3}),
        )
        provider = _provider("draft", json.dumps({"score": 5, "suggestions": []}))
        agent = BaseAgent("a1", provider, reflection_enabled=True)

        result = await agent.execute(TASK)

        assert agent.quality_threshold == 3
        assert "improved" not in result
        assert provider.complete.await_count == 2

    def test_argument_threshold_beats_config(self, monkeypatch):
        monkeypatch.setattr(
            "llm_scaffold.unified_config._global_config",
            UnifiedConfig(agents={"quality_threshold": 3}),
        )
        agent = BaseAgent("a1", AsyncMock(), reflection_enabled=False, quality_threshold=9)

        assert agent.quality_threshold == 9
        assert BaseAgent.quality_threshold == 7

    def test_unset_config_keeps_class_threshold(self):
        assert BaseAgent("a1", AsyncMock()).quality_threshold == 7
        assert ReasoningAgent("r1", AsyncMock()).quality_threshold == 8


class TestReasoningAgent:
    """Test decomposition and chain-of-thought execution."""

    @pytest.mark.asyncio
    async def test_decomposes_and_synthesizes(self):
        decomposition = {
            "strategy": "define then illustrate",
            "tasks": [
                {"id": "task_1", "description": "Define recursion"},
                {"id": "task_2", "description": "Give an example", "reasoning": "grounding"},
            ],
        }
        provider = _provider(
            json.dumps(decomposition),
            "REASONING: start simple\nRESULT: A function that calls itself",
            "REASONING: factorial is classic\nRESULT: factorial(n)",
            "Recursion is when a function calls itself, like factorial(n).",
        )
        agent = ReasoningAgent("r1", provider, reflection_enabled=False)

        result = await agent.execute(TASK)

        assert result["plan"]["strategy"] == "define then illustrate"
        assert [r["result"] for r in result["subtask_results"]] == [
            "A function that calls itself",
            "factorial(n)",
        ]
        assert result["subtask_results"][0]["reasoning"] == "start simple"
        assert result["final_answer"].startswith("Recursion is")

        second_step_prompt = provider.complete.call_args_list[2].args[0].messages[0].content
        assert "Define recursion: A function that calls itself" in second_step_prompt
        assert "Why this step: grounding" in second_step_prompt

    @pytest.mark.asyncio
    async def test_bad_decomposition_uses_single_task(self):
        provider = _provider("I can't produce JSON", "no markers here", "final")
        agent = ReasoningAgent("r1", provider, reflection_enabled=False)

        result = await agent.execute(TASK)

        assert result["plan"]["strategy"] == "direct"
        step = result["subtask_results"][0]
        assert step["subtask"] == "Explain recursion"
        assert step["reasoning"] == "No reasoning provided"
        assert step["result"] == "no markers here"

    def test_capabilities_include_reasoning(self):
        agent = ReasoningAgent("r1", AsyncMock(), capabilities=["math"], reflection_enabled=False)

        assert agent.capabilities == ["math", "reasoning", "decomposition"]
        assert agent.quality_threshold == 8


class TestAgentWithManager:
    """Test agents drive the gateway like any other caller."""

    @pytest.mark.asyncio
    async def test_agent_calls_are_costed(self, scripted_provider):
        manager = ProviderManager(providers=[scripted_provider("openai", kind=ProviderKind.OPENAI)])
        agent = BaseAgent("a1", manager, reflection_enabled=False)

        result = await agent.execute(TASK)

        assert result["results"][0]["result"] == "Hi from openai"
        assert manager.get_cost_summary()["openai"]["tokens"] == 15
