"""AI response generator for career-advice conversations.

Wraps the hosted chat model behind two entry points, a single-turn call and a
context-aware call that replays prior turns. Failures never escape: every
error path ends in a user-facing apology string.
"""
from __future__ import annotations

import time
from typing import Any, List, Optional, Sequence

import structlog
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage

from counselor.context import HistoryEntry, build_context_messages
from counselor.prompts.career_counselor import CAREER_COUNSELOR_PROMPT

logger = structlog.get_logger("career_chat.counselor")

APOLOGY_MESSAGE = (
    "I'm having trouble connecting right now. Please try again in a moment."
)
EMPTY_RESPONSE_MESSAGE = "I wasn't able to generate a response."


class EmptyGenerationError(Exception):
    """Raised internally when the model returns no usable text."""


def extract_text(response: Any) -> str:
    """Pull plain text out of a chat model response."""
    content = getattr(response, "content", response)
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts).strip()
    raise TypeError(f"Unexpected response content type: {type(content).__name__}")


class ResponseGenerator:
    """Career counselor reply generator over a LangChain chat model."""

    def __init__(
        self,
        *,
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        max_tokens: int = 500,
        api_key: Optional[str] = None,
        system_prompt: str = CAREER_COUNSELOR_PROMPT,
        llm: Optional[BaseChatModel] = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = api_key
        self.system_prompt = system_prompt
        self._llm = llm

    def _get_llm(self) -> BaseChatModel:
        # Built on first use so a missing key surfaces as a generation failure
        if self._llm is None:
            from langchain_openai import ChatOpenAI

            self._llm = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                api_key=self.api_key or None,
            )
        return self._llm

    async def _complete(self, messages: List[BaseMessage]) -> str:
        start = time.time()
        response = await self._get_llm().ainvoke(messages)
        text = extract_text(response)
        logger.info(
            "generation_completed",
            model=self.model,
            turns=len(messages),
            latency_ms=int((time.time() - start) * 1000),
            empty=not text,
        )
        if not text:
            raise EmptyGenerationError("model returned an empty reply")
        return text

    async def generate(self, user_message: str) -> str:
        """Answer a single message with no prior turns."""
        messages = build_context_messages([], user_message, self.system_prompt)
        try:
            return await self._complete(messages)
        except EmptyGenerationError:
            return EMPTY_RESPONSE_MESSAGE
        except Exception as e:
            logger.error("generation_failed", mode="single_turn", error=str(e))
            return APOLOGY_MESSAGE

    async def generate_with_context(
        self, user_message: str, history: Sequence[HistoryEntry]
    ) -> str:
        """Answer a message after replaying prior turns, oldest-first.

        Falls back to a single-turn answer when the contextual call fails.
        """
        messages = build_context_messages(history, user_message, self.system_prompt)
        try:
            return await self._complete(messages)
        except EmptyGenerationError:
            return EMPTY_RESPONSE_MESSAGE
        except Exception as e:
            logger.warning(
                "generation_failed", mode="contextual", error=str(e), fallback=True
            )
            return await self.generate(user_message)
