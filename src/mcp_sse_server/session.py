"""Session registry.

A session is created when a client opens the push stream and lives until
that stream ends. The registry is the only index of live sessions.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .errors import SessionExistsError

if TYPE_CHECKING:
    from .transport.channel import OutboundChannel

logger = logging.getLogger(__name__)


def generate_session_id() -> str:
    """Time-based fallback id used when the client does not supply one."""
    return f"client-{int(time.time() * 1000)}"


@dataclass
class Session:
    """A live push-stream session.

    Attributes:
        id: Opaque session identifier
        channel: The session's outbound channel
        initialized: Whether the client completed the handshake
        created_at: When the session was created
    """

    id: str
    channel: OutboundChannel
    initialized: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class SessionRegistry:
    """Thread-safe map of session id to live session.

    Operations are linearizable per key: once ``remove`` returns, ``get``
    for that id returns None.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, session_id: str, channel: OutboundChannel) -> Session:
        """Register a new session.

        Raises:
            SessionExistsError: If a session with this id is live
        """
        with self._lock:
            if session_id in self._sessions:
                raise SessionExistsError(session_id)
            session = Session(id=session_id, channel=channel)
            self._sessions[session_id] = session

        logger.info(f"Session created: {session_id}")
        return session

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Session | None:
        """Remove a session. Idempotent; returns the removed session if any."""
        with self._lock:
            session = self._sessions.pop(session_id, None)

        if session is not None:
            logger.info(f"Session removed: {session_id}")
        return session

    def discard(self, session: Session) -> bool:
        """Remove ``session`` only if it is still the live entry for its id."""
        with self._lock:
            if self._sessions.get(session.id) is not session:
                return False
            del self._sessions[session.id]

        logger.info(f"Session removed: {session.id}")
        return True

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def close_all(self) -> int:
        """Close every live session's channel. Returns how many were closed."""
        with self._lock:
            sessions = list(self._sessions.values())

        for session in sessions:
            session.channel.close()
        return len(sessions)
