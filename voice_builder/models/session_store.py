"""In-memory session registry with age-based eviction."""
import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from voice_builder.errors import SessionNotFound
from voice_builder.models.interview_state import InterviewSession

logger = logging.getLogger(__name__)


class SessionStore:
    """Maps session id to session.

    The map lock is held only for single lookups, inserts and removals; session
    data is guarded by each session's own lock.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._sessions: Dict[str, InterviewSession] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def add(self, session: InterviewSession) -> InterviewSession:
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> InterviewSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def find(self, session_id: str) -> Optional[InterviewSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def sweep_expired(self, max_age: float) -> List[str]:
        """Remove sessions started more than ``max_age`` seconds ago. Returns removed ids."""
        now = self._clock()
        removed = []
        for session_id in self.session_ids():
            session = self.find(session_id)
            if session is None or session.age(now) <= max_age:
                continue
            if self.remove(session_id):
                removed.append(session_id)
        if removed:
            logger.info("Swept %d expired session(s)", len(removed))
        return removed
