"""
Completion Backend

The engine talks to the text generator only through CompletionBackend.
OpenAICompletionBackend is the production adapter; tests substitute
their own object with the same async ``complete`` method.
"""

import asyncio
import logging
import re
from typing import Dict, List, Optional, Protocol

from openai import AsyncOpenAI

from socratic_math_tutor.config import EngineConfig
from socratic_math_tutor.errors import CompletionBackendError

logger = logging.getLogger(__name__)

ChatMessage = Dict[str, str]

# Models sometimes echo a speaker label before the question
ROLE_PREFIX_PATTERN = re.compile(r"^\s*(tutor|assistant|ai|teacher)\s*:\s*", re.IGNORECASE)


class CompletionBackend(Protocol):
    """Contract for anything that turns a chat request into tutor text."""

    async def complete(self, messages: List[ChatMessage], guidance: str) -> str:
        ...


def sanitize_reply(text: str) -> str:
    """Strip echoed role labels and surrounding quotes/whitespace."""
    cleaned = ROLE_PREFIX_PATTERN.sub("", text or "").strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in "\"'":
        cleaned = cleaned[1:-1].strip()
    return cleaned


class OpenAICompletionBackend:
    """CompletionBackend backed by the OpenAI chat completions API."""

    def __init__(self, config: Optional[EngineConfig] = None, client: Optional[AsyncOpenAI] = None):
        self.config = config or EngineConfig.from_env()
        if client is None:
            api_key = self.config.openai_api_key
            if not api_key:
                raise ValueError("OPENAI_API_KEY not found in environment variables")
            client = AsyncOpenAI(api_key=api_key)
        self.llm_client = client
        self.model = self.config.openai_model

    async def complete(self, messages: List[ChatMessage], guidance: str) -> str:
        """
        Request one tutor reply.

        Args:
            messages: System prompt plus conversation in chat roles
            guidance: Per-turn instructions, sent as a trailing system message

        Returns:
            Cleaned reply text

        Raises:
            CompletionBackendError: on timeout, API failure or empty content
        """
        request = list(messages)
        if guidance and not (request and request[-1].get("content") == guidance):
            request.append({"role": "system", "content": guidance})

        try:
            response = await asyncio.wait_for(
                self.llm_client.chat.completions.create(
                    model=self.model,
                    messages=request,
                    max_tokens=self.config.max_tokens,
                    temperature=self.config.temperature,
                    presence_penalty=self.config.presence_penalty,
                    frequency_penalty=self.config.frequency_penalty,
                ),
                timeout=self.config.completion_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise CompletionBackendError(
                f"Completion timed out after {self.config.completion_timeout_seconds}s", cause=e
            ) from e
        except Exception as e:
            raise CompletionBackendError(f"Completion request failed: {e}", cause=e) from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise CompletionBackendError("Completion response had no choices", cause=e) from e

        reply = sanitize_reply(content or "")
        if not reply:
            raise CompletionBackendError("Completion returned empty content")

        logger.debug(f"🤖 [CompletionBackend] {self.model} replied with {len(reply)} chars")
        return reply
