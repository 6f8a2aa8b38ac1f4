import asyncio
from enum import StrEnum
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from lspbridge.core.bridge.session import Session


class SessionPhase(StrEnum):
    """
    Lifecycle phase of a bridged session.

    A session starts `active` with both legs open, moves to `closing` as soon
    as either leg fails or closes (or the bridge stops), and ends `closed`
    once both legs are released and it has left the registry.
    """
    active = "active"
    closing = "closing"
    closed = "closed"


class SessionRegistry:
    """
    Live sessions of a BridgeServer, keyed by session id.

    The accept path adds entries and each session's teardown removes its own.
    Every mutation goes through an asyncio.Lock so that a bulk shutdown never
    iterates a half-updated mapping: `snapshot()` hands out a copy taken under
    the lock, and callers tear sessions down outside of it.
    """
    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sessions))

    def get(self, session_id: str) -> "Session | None":
        return self._sessions.get(session_id)

    async def add(self, session: "Session") -> None:
        async with self._lock:
            if session.id in self._sessions:
                raise KeyError(f"Session {session.id} is already registered")
            self._sessions[session.id] = session

    async def remove(self, session_id: str) -> "Session | None":
        async with self._lock:
            return self._sessions.pop(session_id, None)

    async def snapshot(self) -> list["Session"]:
        async with self._lock:
            return list(self._sessions.values())
