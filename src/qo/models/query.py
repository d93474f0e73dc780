"""
AI Query Client: one tutor-persona question in, plain text out.

Failures never cross this boundary. Whatever goes wrong (missing key,
transport error, non-2xx, odd payload) comes back as ``"AI Error: <reason>"``
so command handlers can return the result unchanged.
"""

import logging

from qo.models.llm import LLMClient

logger = logging.getLogger("qo.llm")

PERSONA = "You are a Quantum Optics expert teaching through a terminal interface."
FORMATTING = "Format responses for monospace display with max 80 columns. Use unicode math symbols."
ERROR_PREFIX = "AI Error: "


def build_system_prompt(context: str = "") -> str:
    """Persona preamble, caller context verbatim, formatting directive."""
    return f"{PERSONA}\n{context}\n{FORMATTING}"


def build_messages(prompt: str) -> list[dict]:
    return [{"role": "user", "content": prompt}]


class AIQueryClient:
    """Tutor front-end over an LLMClient with fixed sampling parameters."""

    def __init__(self, llm: LLMClient, temperature: float = 0.7, max_tokens: int = 1500):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_config(cls, config, llm: LLMClient | None = None) -> "AIQueryClient":
        return cls(
            llm or LLMClient.from_config(config),
            temperature=float(config.get("llm.temperature", 0.7)),
            max_tokens=int(config.get("llm.max_tokens", 1500)),
        )

    async def query(self, prompt: str, context: str = "") -> str:
        try:
            resp = await self.llm.chat(
                system=build_system_prompt(context),
                messages=build_messages(prompt),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as exc:
            # Every failure becomes inline text, never a raised fault
            reason = str(exc) or type(exc).__name__
            logger.warning("AI query failed: %s", reason)
            return f"{ERROR_PREFIX}{reason}"
        return resp.content
