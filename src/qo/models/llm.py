"""
Unified async LLM client: DeepSeek (raw chat-completions POST), OpenAI, Anthropic.

Provides a consistent interface regardless of backend. Calls are single-shot
and non-streaming; failures surface as NetworkFailure / MalformedResponse so
callers decide how to present them.
"""

from dataclasses import dataclass, field
import logging

from qo.agent.errors import MalformedResponse, NetworkFailure, QOError
from qo.tools.http_client import request_json

logger = logging.getLogger("qo.llm")


@dataclass
class LLMResponse:
    """Standardized response from any LLM backend."""
    content: str
    model: str
    usage: dict = None
    raw: object = None


# Pricing per million tokens (USD)
MODEL_PRICING = {
    # DeepSeek
    "deepseek-chat": {"input": 0.27, "output": 1.10},
    "deepseek-reasoner": {"input": 0.55, "output": 2.19},
    # OpenAI
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    # Anthropic
    "claude-sonnet-4-5-20250929": {"input": 3.00, "output": 15.00},
    "claude-haiku-4-5-20251001": {"input": 0.80, "output": 4.00},
}


@dataclass
class UsageTracker:
    """Tracks cumulative token usage and cost across LLM calls."""
    calls: list = field(default_factory=list)

    @property
    def total_input_tokens(self) -> int:
        return sum(c.get("input", 0) for c in self.calls)

    @property
    def total_output_tokens(self) -> int:
        return sum(c.get("output", 0) for c in self.calls)

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    @property
    def total_cost(self) -> float:
        return sum(c.get("cost", 0.0) for c in self.calls)

    def record(self, model: str, usage: dict):
        """Record a single LLM call's usage."""
        if not usage:
            return
        cost = self._estimate_cost(model, usage)
        self.calls.append({
            "model": model,
            "input": usage.get("input", 0),
            "output": usage.get("output", 0),
            "cost": cost,
        })

    def _estimate_cost(self, model: str, usage: dict) -> float:
        pricing = MODEL_PRICING.get(model)
        if not pricing:
            return 0.0
        input_cost = (usage.get("input", 0) / 1_000_000) * pricing["input"]
        output_cost = (usage.get("output", 0) / 1_000_000) * pricing["output"]
        return input_cost + output_cost

    def summary(self) -> str:
        """Human-readable usage summary."""
        if not self.calls:
            return "No LLM calls made."
        models_used = sorted(set(c["model"] for c in self.calls))
        return (
            f"{len(self.calls)} LLM calls | "
            f"{self.total_input_tokens:,} in + {self.total_output_tokens:,} out tokens | "
            f"${self.total_cost:.4f} | "
            f"models: {', '.join(models_used)}"
        )

    def reset(self):
        self.calls.clear()


class LLMClient:
    """Unified LLM client supporting multiple providers."""

    DEFAULT_MODELS = {
        "deepseek": "deepseek-chat",
        "openai": "gpt-4o-mini",
        "anthropic": "claude-sonnet-4-5-20250929",
    }
    DEFAULT_ENDPOINT = "https://api.deepseek.com/v1/chat/completions"

    def __init__(self, provider: str = "deepseek", model: str = None,
                 api_key: str = None, endpoint: str = None, base_url: str = None,
                 timeout: float = None, http_client=None):
        self.provider = provider
        self.model = model or self.DEFAULT_MODELS.get(provider)
        self.api_key = api_key
        self.endpoint = endpoint or self.DEFAULT_ENDPOINT
        self.base_url = base_url
        self.timeout = timeout
        self._http = http_client
        self._client = None
        self.usage = UsageTracker()

    @classmethod
    def from_config(cls, config) -> "LLMClient":
        provider = str(config.get("llm.provider", "deepseek")).lower()
        model = config.get("llm.model")
        # The stock model id only makes sense for the stock provider
        if provider != "deepseek" and model == cls.DEFAULT_MODELS["deepseek"]:
            model = None
        return cls(
            provider=provider,
            model=model,
            api_key=config.llm_api_key(provider),
            endpoint=config.get("llm.endpoint"),
            base_url=config.get("llm.base_url"),
            timeout=config.http_timeout(),
        )

    def _get_client(self):
        """Lazily initialize the SDK client for openai/anthropic."""
        if self._client is not None:
            return self._client

        if self.provider == "anthropic":
            import anthropic
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key, timeout=self.timeout)

        elif self.provider == "openai":
            import openai
            self._client = openai.AsyncOpenAI(
                api_key=self.api_key, base_url=self.base_url, timeout=self.timeout,
            )

        else:
            raise ValueError(f"Provider {self.provider!r} has no SDK client")

        return self._client

    async def chat(self, system: str, messages: list[dict], temperature: float = 0.7,
                   max_tokens: int = 1500) -> LLMResponse:
        """Send one chat completion request and wait for the full answer."""
        if self.provider == "deepseek":
            resp = await self._chat_deepseek(system, messages, temperature, max_tokens)
        elif self.provider == "openai":
            resp = await self._chat_openai(self._get_client(), system, messages, temperature, max_tokens)
        elif self.provider == "anthropic":
            resp = await self._chat_anthropic(self._get_client(), system, messages, temperature, max_tokens)
        else:
            raise ValueError(f"Unknown provider: {self.provider}")

        if resp.usage:
            self.usage.record(resp.model, resp.usage)

        return resp

    async def _chat_deepseek(self, system, messages, temperature, max_tokens):
        if not self.api_key:
            raise QOError("API key not configured (set DEEPSEEK_API_KEY)")

        payload = {
            "model": self.model,
            "messages": [{"role": "system", "content": system}] + messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        logger.debug("POST %s model=%s", self.endpoint, self.model)
        data, error = await request_json(
            "POST",
            self.endpoint,
            json=payload,
            headers=headers,
            timeout=self.timeout,
            client=self._http,
        )
        if error:
            raise NetworkFailure(error)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise MalformedResponse(f"Unexpected response payload ({type(exc).__name__}: {exc})")
        if not isinstance(content, str):
            raise MalformedResponse("Completion content is not text")

        usage = None
        raw_usage = data.get("usage") if isinstance(data, dict) else None
        if isinstance(raw_usage, dict):
            usage = {
                "input": raw_usage.get("prompt_tokens", 0),
                "output": raw_usage.get("completion_tokens", 0),
            }
        return LLMResponse(content=content, model=self.model, usage=usage, raw=data)

    async def _chat_openai(self, client, system, messages, temperature, max_tokens):
        all_messages = [{"role": "system", "content": system}] + messages
        response = await client.chat.completions.create(
            model=self.model,
            messages=all_messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if not response.choices:
            raise MalformedResponse("Response contained no choices")
        usage = None
        if response.usage:
            usage = {"input": response.usage.prompt_tokens, "output": response.usage.completion_tokens}
        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=self.model,
            usage=usage,
            raw=response,
        )

    async def _chat_anthropic(self, client, system, messages, temperature, max_tokens):
        response = await client.messages.create(
            model=self.model,
            system=system,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        # Extract text parts only
        text_parts = [b.text for b in (response.content or []) if hasattr(b, "text")]
        return LLMResponse(
            content="\n".join(text_parts),
            model=self.model,
            usage={"input": response.usage.input_tokens, "output": response.usage.output_tokens},
            raw=response,
        )
