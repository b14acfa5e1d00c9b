"""In-memory registry of live sessions keyed by opaque ids.

One `SessionController` exists per browser session. Nothing is persisted;
restarting the process drops every session.

Session end:
    - Explicit: `close` (the page sends it on `pagehide`).
    - Idle eviction: sessions untouched for longer than `ttl` seconds are closed
      by `sweep`, which runs on every `create`. Sessions still processing are
      kept until their removal settles.
    - Shutdown: `close_all`.
Closing a session releases its preview.
"""

import logging
import time
import uuid
from typing import Callable, Dict, Optional

from watermark_nuker.core.session_controller import SessionController
from watermark_nuker.core.session_types import SessionStatus


logger = logging.getLogger(__name__)


class SessionStore:
    """Create, look up, evict, and close session controllers.

    Args:
        factory: Callable receiving a session id and returning a new controller.
        ttl: Idle seconds before eviction; `None` disables eviction.
        clock: Monotonic time source (injected in tests).
    """

    def __init__(
        self,
        factory: Callable[[str], SessionController],
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = factory
        self._ttl = ttl
        self._clock = clock
        self._sessions: Dict[str, SessionController] = {}
        self._last_seen: Dict[str, float] = {}

    def create(self) -> str:
        self.sweep()
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = self._factory(session_id)
        self._last_seen[session_id] = self._clock()
        logger.info("Created session %s", session_id)
        return session_id

    def get(self, session_id: str) -> SessionController:
        """Return the controller for `session_id`; raise `KeyError` if unknown."""
        controller = self._sessions[session_id]
        self._last_seen[session_id] = self._clock()
        return controller

    def close(self, session_id: str) -> bool:
        controller = self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)
        if controller is None:
            return False
        controller.close()
        logger.info("Closed session %s", session_id)
        return True

    def sweep(self) -> int:
        """Close idle sessions and return how many were evicted."""
        if self._ttl is None:
            return 0

        now = self._clock()
        expired = [
            session_id
            for session_id, seen in self._last_seen.items()
            if now - seen > self._ttl
            and self._sessions[session_id].state.status != SessionStatus.PROCESSING
        ]
        for session_id in expired:
            logger.info("Evicting idle session %s", session_id)
            self.close(session_id)
        return len(expired)

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
