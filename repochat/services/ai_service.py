"""Stateless AI tools: free chat, code review, code suggestion and error fixing.

None of these touch the database or the vector index; each is one
``LLMClient.complete`` call with a task-specific system prompt.
"""
import logging

from repochat.integrations.ai.llm_client import LLMClient

logger = logging.getLogger(__name__)

_ANALYZE_SYSTEM_PROMPT = (
    "You are a senior code reviewer. Point out bugs, risky constructs and "
    "readability problems in the given code, then suggest concrete improvements."
)

_SUGGEST_SYSTEM_PROMPT = (
    "You write code from a description. Reply with the code first, then a short "
    "explanation of how it works."
)

_FIX_SYSTEM_PROMPT = (
    "You fix broken code. Explain the cause of the error in one or two sentences, "
    "then give the corrected code."
)


async def chat(llm: LLMClient, message: str, context: str | None = None) -> str:
    prompt = f"{context.strip()}\n\n{message}" if context and context.strip() else message
    return await llm.complete([], prompt)


async def analyze_code(llm: LLMClient, code: str) -> str:
    return await llm.complete(
        [], f"Analyze the following code:\n\n{code}", system_prompt=_ANALYZE_SYSTEM_PROMPT, temperature=0.3,
    )


async def suggest_code(llm: LLMClient, description: str) -> str:
    return await llm.complete(
        [], f"Write code for this description:\n\n{description}", system_prompt=_SUGGEST_SYSTEM_PROMPT,
    )


async def fix_code(llm: LLMClient, code: str, error: str) -> str:
    """Ask for a corrected version of ``code`` given the ``error`` it produced."""
    logger.debug("Requesting fix for %d chars of code", len(code))
    return await llm.complete(
        [],
        f"Fix the error in this code.\n\nCode:\n{code}\n\nError:\n{error}",
        system_prompt=_FIX_SYSTEM_PROMPT,
        temperature=0.2,
    )
