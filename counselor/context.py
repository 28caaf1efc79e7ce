"""Context-window construction for the chat model.

Turns persisted chat history into the message list sent to the model. Pure
functions only: nothing here talks to the provider or the database.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from counselor.prompts.career_counselor import CAREER_COUNSELOR_PROMPT


@dataclass(frozen=True)
class HistoryEntry:
    """One prior turn, oldest-first when in a list."""

    role: str
    content: str


def to_history(messages: Iterable[Any]) -> List[HistoryEntry]:
    """Adapt message-like objects (role/content attributes) to history entries."""
    entries = []
    for m in messages:
        role = getattr(m, "role", "")
        role = getattr(role, "value", role)
        entries.append(HistoryEntry(role=str(role), content=str(m.content)))
    return entries


def prior_turns(history: Sequence[HistoryEntry]) -> List[HistoryEntry]:
    """Everything before the last entry, which is the message being answered."""
    return list(history[:-1])


def build_context_messages(
    history: Sequence[HistoryEntry],
    user_message: str,
    system_prompt: Optional[str] = CAREER_COUNSELOR_PROMPT,
) -> List[BaseMessage]:
    """Build system prompt + prior turns + the new user turn.

    `history` ends with the message being answered; that entry is replaced by
    `user_message`. Entries with roles other than "user" or "assistant" are
    skipped.
    """
    messages: List[BaseMessage] = []
    if system_prompt:
        messages.append(SystemMessage(content=system_prompt))

    for entry in prior_turns(history):
        if entry.role == "user":
            messages.append(HumanMessage(content=entry.content))
        elif entry.role == "assistant":
            messages.append(AIMessage(content=entry.content))

    messages.append(HumanMessage(content=user_message))
    return messages
