"""LLM unified client: Claude/GPT provider abstraction."""
import logging
from collections.abc import Sequence
from typing import TypedDict

from repochat.config import settings
from repochat.exceptions import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a coding assistant. Answer questions about the user's repositories. "
    "When file contents are provided, ground your answer in them and cite file paths."
)

DESCRIBE_SYSTEM_PROMPT = (
    "You summarise source files. Reply with two or three sentences describing "
    "what the file does. No code, no preamble."
)


class HistoryEntry(TypedDict):
    role: str  # "user" | "assistant"
    content: str


class LLMClient:
    """Unified LLM client supporting Claude and OpenAI providers.

    Usage:
        client = LLMClient(provider="claude")
        reply = await client.complete(history, prompt)
    """

    def __init__(self, provider: str | None = None, api_key: str | None = None):
        self.provider = provider or settings.AI_PROVIDER

        if self.provider == "claude":
            self.model = "claude-sonnet-4-20250514"
            self.api_key = settings.ANTHROPIC_API_KEY if api_key is None else api_key
        elif self.provider == "openai":
            self.model = "gpt-4o"
            self.api_key = settings.OPENAI_API_KEY if api_key is None else api_key
        else:
            raise ValueError(f"Unsupported AI provider: {self.provider}")

    async def complete(
        self,
        history: Sequence[HistoryEntry],
        prompt: str,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> str:
        """Continue a conversation: prior ``history`` turns followed by ``prompt``.

        Raises ProviderError when the provider call fails. Without an API key a
        mock reply is returned.
        """
        messages = _normalise_history([*history, {"role": "user", "content": prompt}])

        if not self.api_key:
            logger.warning("No API key configured for %s, returning mock response", self.provider)
            return f"[Mock {self.provider} response] Based on your request: {prompt[:100]}..."

        try:
            if self.provider == "claude":
                return await self._complete_claude(system_prompt, messages, max_tokens, temperature)
            return await self._complete_openai(system_prompt, messages, max_tokens, temperature)
        except ProviderError:
            raise
        except Exception as exc:
            logger.warning("Completion request failed (%s): %s", self.provider, exc)
            raise ProviderError(f"Completion provider error: {exc}") from exc

    async def describe_file(self, file_path: str, content: str) -> str:
        """Short natural-language description of a source file."""
        return await self.complete(
            [],
            f"File: {file_path}\n\n{content}",
            system_prompt=DESCRIBE_SYSTEM_PROMPT,
            max_tokens=200,
            temperature=0.2,
        )

    # ── Claude (Anthropic) ──

    async def _complete_claude(
        self, system_prompt: str, messages: list[HistoryEntry], max_tokens: int, temperature: float
    ) -> str:
        import anthropic

        client = anthropic.AsyncAnthropic(api_key=self.api_key)
        try:
            message = await client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=messages,
            )
            return message.content[0].text
        finally:
            await client.close()

    # ── OpenAI ──

    async def _complete_openai(
        self, system_prompt: str, messages: list[HistoryEntry], max_tokens: int, temperature: float
    ) -> str:
        import openai

        client = openai.AsyncOpenAI(api_key=self.api_key)
        try:
            response = await client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "system", "content": system_prompt}, *messages],
            )
            return response.choices[0].message.content or ""
        finally:
            await client.close()


def _normalise_history(history: Sequence[HistoryEntry]) -> list[HistoryEntry]:
    """Drop empty turns and merge consecutive same-role turns.

    Anthropic rejects conversations that do not alternate roles or that start
    with an assistant turn.
    """
    merged: list[HistoryEntry] = []
    for entry in history:
        content = entry["content"].strip()
        if not content:
            continue
        if merged and merged[-1]["role"] == entry["role"]:
            merged[-1] = {"role": entry["role"], "content": merged[-1]["content"] + "\n\n" + content}
        else:
            merged.append({"role": entry["role"], "content": content})
    while merged and merged[0]["role"] != "user":
        merged.pop(0)
    return merged
