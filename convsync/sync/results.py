"""Explicit fetch outcomes passed from a poll tick to its handler."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from convsync.conversation.models import Conversation


@dataclass(frozen=True)
class FetchSuccess:
    conversation: Conversation
    # Start order of the fetch that produced this snapshot
    issued: int = 0


@dataclass(frozen=True)
class FetchFailure:
    error: Exception


FetchResult = FetchSuccess | FetchFailure


async def fetch_result(
    fetch: Callable[[str], Awaitable[Conversation]],
    conversation_id: str,
    *,
    issued: int = 0,
) -> FetchResult:
    """Run one fetch and wrap its outcome instead of raising."""
    try:
        return FetchSuccess(await fetch(conversation_id), issued=issued)
    except Exception as e:
        return FetchFailure(e)
