"""Per-conversation history kept in a bounded, versioned window.

History lives in the ``state`` of an ``agent_sessions`` row as a
``SessionState``. Only the most recent ``max_messages`` entries are kept and
every stored entry carries the time it was captured.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, TypeVar

from pydantic import ValidationError

from ..llm.protocols import Message
from ..models import AgentSession, SessionState, utcnow
from ..storage.protocols import AgentDefinitionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_HISTORY_MESSAGES = 20


@dataclass
class Outcome(Generic[T]):
    """Result of a non-fatal operation."""

    ok: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: T | None = None) -> "Outcome[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "Outcome[T]":
        return cls(ok=False, error=error)


@dataclass(frozen=True)
class SessionHandle:
    """Identifies the session a turn belongs to."""

    session_id: str
    user_id: str
    agent_id: str
    conversation_id: str

    @classmethod
    def from_session(cls, session: AgentSession) -> "SessionHandle":
        return cls(
            session_id=session.id,
            user_id=session.user_id,
            agent_id=session.agent_id,
            conversation_id=session.conversation_id,
        )


def parse_state(state: dict[str, Any] | None) -> SessionState:
    """Read a stored state, dropping entries that no longer validate."""
    state = state or {}
    raw_messages = state.get("messages")
    if not isinstance(raw_messages, list):
        return SessionState()

    messages = []
    for raw in raw_messages:
        try:
            messages.append(Message.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Dropping unreadable history entry: {e.error_count()} errors")
    return SessionState(version=state.get("version", SessionState().version), messages=messages)


def window_messages(
    prior: list[Message], new: list[Message], max_messages: int = MAX_HISTORY_MESSAGES
) -> list[Message]:
    """
    Concatenate history and new turns, keep the newest ``max_messages`` and
    stamp every entry that has no capture time.
    """
    combined = [*prior, *new]
    if len(combined) > max_messages:
        combined = combined[-max_messages:]

    now = utcnow()
    return [
        message if message.timestamp else message.model_copy(update={"timestamp": now})
        for message in combined
    ]


class SessionManager:
    """
    Loads and saves conversation windows through the agent store.

    ``load``/``save``/``clear`` raise on failure. Call sites on the query
    path use the ``try_`` variants, which log the failure and return an
    ``Outcome`` instead.
    """

    def __init__(
        self,
        store: AgentDefinitionStore,
        max_messages: int = MAX_HISTORY_MESSAGES,
        timeout: float | None = None,
    ):
        """
        Initialize the manager.

        Args:
            store: Store holding the ``agent_sessions`` rows
            max_messages: Size of the persisted window
            timeout: Optional upper bound in seconds for each store call
        """
        self.store = store
        self.max_messages = max_messages
        self.timeout = timeout

    async def _bounded(self, call: Awaitable[T]) -> T:
        if self.timeout:
            return await asyncio.wait_for(call, timeout=self.timeout)
        return await call

    async def load(
        self, user_id: str, agent_id: str, conversation_id: str
    ) -> tuple[SessionHandle, list[Message]]:
        """Get or create the session and return its stored history."""
        session = await self._bounded(
            self.store.get_or_create_session(user_id, agent_id, conversation_id)
        )
        state = parse_state(session.state)
        logger.debug(
            f"Loaded {len(state.messages)} messages for conversation {conversation_id}"
        )
        return SessionHandle.from_session(session), state.messages

    async def save(
        self, handle: SessionHandle, prior: list[Message], new: list[Message]
    ) -> list[Message]:
        """Persist ``prior + new`` windowed to the newest entries."""
        window = window_messages(prior, new, self.max_messages)
        state = SessionState(messages=window)
        await self._bounded(
            self.store.update_session_state(
                handle.session_id, state.model_dump(mode="json", exclude_none=True)
            )
        )
        logger.debug(
            f"Saved {len(window)} messages for conversation {handle.conversation_id}"
        )
        return window

    async def find(
        self, user_id: str, agent_id: str, conversation_id: str
    ) -> SessionHandle | None:
        """Look up an existing session without creating one."""
        session = await self._bounded(
            self.store.find_session(user_id, agent_id, conversation_id)
        )
        return SessionHandle.from_session(session) if session is not None else None

    async def clear(self, handle: SessionHandle) -> None:
        """Reset the history to empty, keeping the session."""
        await self._bounded(
            self.store.update_session_state(
                handle.session_id, SessionState().model_dump(mode="json")
            )
        )
        logger.info(f"Cleared history for conversation {handle.conversation_id}")

    # -------------------------------------------------------------------------
    # Non-fatal variants
    # -------------------------------------------------------------------------

    async def try_load(
        self, user_id: str, agent_id: str, conversation_id: str
    ) -> Outcome[tuple[SessionHandle, list[Message]]]:
        try:
            return Outcome.success(await self.load(user_id, agent_id, conversation_id))
        except asyncio.TimeoutError:
            logger.warning(f"Session load timed out for conversation {conversation_id}")
            return Outcome.failure("timeout")
        except Exception as e:
            logger.warning(f"Session load failed for conversation {conversation_id}: {e}")
            return Outcome.failure(str(e))

    async def try_save(
        self, handle: SessionHandle, prior: list[Message], new: list[Message]
    ) -> Outcome[list[Message]]:
        try:
            return Outcome.success(await self.save(handle, prior, new))
        except asyncio.TimeoutError:
            logger.warning(
                f"Session save timed out for conversation {handle.conversation_id}"
            )
            return Outcome.failure("timeout")
        except Exception as e:
            logger.warning(
                f"Session save failed for conversation {handle.conversation_id}: {e}"
            )
            return Outcome.failure(str(e))

    async def try_find(
        self, user_id: str, agent_id: str, conversation_id: str
    ) -> Outcome[SessionHandle]:
        try:
            return Outcome.success(await self.find(user_id, agent_id, conversation_id))
        except asyncio.TimeoutError:
            logger.warning(f"Session lookup timed out for conversation {conversation_id}")
            return Outcome.failure("timeout")
        except Exception as e:
            logger.warning(f"Session lookup failed for conversation {conversation_id}: {e}")
            return Outcome.failure(str(e))

    async def try_clear(self, handle: SessionHandle) -> Outcome[None]:
        try:
            await self.clear(handle)
            return Outcome.success()
        except asyncio.TimeoutError:
            logger.warning(
                f"Session clear timed out for conversation {handle.conversation_id}"
            )
            return Outcome.failure("timeout")
        except Exception as e:
            logger.warning(
                f"Session clear failed for conversation {handle.conversation_id}: {e}"
            )
            return Outcome.failure(str(e))
