"""Resolution sessions."""

import threading
import uuid
from typing import Optional

from loadout.errors import SessionClosedError
from loadout.resolver.budget import BudgetTracker
from loadout.resolver.cache import SessionCache


class ResolutionSession:
    """Budget and loaded-tier cache for one conversational session.

    Sessions are independent of each other and may be used from different
    threads. Within one session, resolutions run one at a time.

    Usage:
        with engine.open_session(ceiling=4000) as session:
            plan = engine.resolve("connect to the staging RDS", candidates, session=session)
    """

    def __init__(self, ceiling: int, session_id: Optional[str] = None):
        self.session_id = session_id or uuid.uuid4().hex
        self.budget = BudgetTracker(ceiling)
        self.cache = SessionCache()
        self.lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError(f"Session {self.session_id} is closed")

    def close(self) -> None:
        """End the session and drop its cache.

        Waits for a resolution already running on this session to finish.
        """
        with self.lock:
            self._closed = True
            self.cache.clear()

    def __enter__(self) -> "ResolutionSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return (
            f"ResolutionSession(id={self.session_id!r}, {state}, "
            f"consumed={self.budget.consumed}/{self.budget.ceiling}, modules={len(self.cache)})"
        )
