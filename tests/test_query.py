"""Tests for the AI query client: prompt assembly and error containment."""

import asyncio
import json

import httpx
from unittest.mock import AsyncMock, MagicMock

from qo.agent.config import Config
from qo.models.llm import LLMClient, LLMResponse
from qo.models.query import AIQueryClient, build_system_prompt


def _llm_returning(content="answer"):
    llm = MagicMock()
    llm.chat = AsyncMock(return_value=LLMResponse(content=content, model="deepseek-chat"))
    return llm


class TestSystemPrompt:
    def test_context_sits_between_persona_and_formatting(self):
        prompt = build_system_prompt("Provide detailed technical answer.")
        assert prompt == (
            "You are a Quantum Optics expert teaching through a terminal interface.\n"
            "Provide detailed technical answer.\n"
            "Format responses for monospace display with max 80 columns. Use unicode math symbols."
        )

    def test_empty_context_keeps_blank_line(self):
        lines = build_system_prompt("").split("\n")
        assert len(lines) == 3
        assert lines[1] == ""


class TestQuery:
    def test_forwards_prompt_and_sampling(self):
        llm = _llm_returning("Squeezed light has reduced noise in one quadrature.")
        ai = AIQueryClient(llm)

        out = asyncio.run(ai.query("what is squeezed light", "ctx"))

        assert out == "Squeezed light has reduced noise in one quadrature."
        _, kwargs = llm.chat.call_args
        assert kwargs["messages"] == [{"role": "user", "content": "what is squeezed light"}]
        assert "\nctx\n" in kwargs["system"]
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 1500

    def test_content_returned_verbatim(self):
        ai = AIQueryClient(_llm_returning("  [a†, a] = 1  \n"))
        assert asyncio.run(ai.query("commutator")) == "  [a†, a] = 1  \n"

    def test_exception_becomes_error_text(self):
        llm = MagicMock()
        llm.chat = AsyncMock(side_effect=RuntimeError("socket closed"))
        ai = AIQueryClient(llm)

        assert asyncio.run(ai.query("anything")) == "AI Error: socket closed"

    def test_exception_without_message_uses_type_name(self):
        llm = MagicMock()
        llm.chat = AsyncMock(side_effect=TimeoutError())
        ai = AIQueryClient(llm)

        assert asyncio.run(ai.query("anything")) == "AI Error: TimeoutError"

    def test_non_2xx_from_provider(self):
        http = httpx.AsyncClient(transport=httpx.MockTransport(
            lambda req: httpx.Response(500, text="upstream down")
        ))
        ai = AIQueryClient(LLMClient(api_key="sk", http_client=http))

        out = asyncio.run(ai.query("q"))

        assert out.startswith("AI Error: ")
        assert "HTTP 500" in out

    def test_malformed_payload(self):
        http = httpx.AsyncClient(transport=httpx.MockTransport(
            lambda req: httpx.Response(200, json={"unexpected": True})
        ))
        ai = AIQueryClient(LLMClient(api_key="sk", http_client=http))

        assert asyncio.run(ai.query("q")).startswith("AI Error: ")

    def test_missing_key(self):
        ai = AIQueryClient(LLMClient(api_key=None))
        out = asyncio.run(ai.query("q"))
        assert out.startswith("AI Error: ")
        assert "API key" in out

    def test_end_to_end_request_through_mock_transport(self):
        seen = []

        def handler(req):
            seen.append(json.loads(req.content))
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "g²(0) < 1 means antibunching."}}],
            })

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        ai = AIQueryClient(LLMClient(api_key="sk", http_client=http))

        out = asyncio.run(ai.query("what is antibunching", "Provide detailed technical answer."))

        assert out == "g²(0) < 1 means antibunching."
        assert seen[0]["messages"][0]["role"] == "system"
        assert seen[0]["messages"][1] == {"role": "user", "content": "what is antibunching"}


class TestFromConfig:
    def test_sampling_from_config(self):
        cfg = Config(data={"llm.temperature": 0.2, "llm.max_tokens": 300})
        ai = AIQueryClient.from_config(cfg, llm=_llm_returning())
        assert ai.temperature == 0.2
        assert ai.max_tokens == 300
