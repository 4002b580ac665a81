import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional

from quizroom.models import Session, utcnow


DEFAULT_TTL_SEC = 24 * 60 * 60


def _run_inline(fn, *args):
    return fn(*args)


class SessionStore:
    """Process-wide mapping of session code -> Session.

    The mapping is authoritative in memory. `save` snapshots it and hands the
    write to `spawn`, so callers never wait on (or see errors from) the
    backing store. Two saves can finish out of order; each writes a full
    snapshot, so the last one to finish wins.

    `lock` guards the mapping and the records in it. It is reentrant so a
    caller holding it for a whole operation can still use the accessors.
    """

    def __init__(self, backend, ttl_sec: int = DEFAULT_TTL_SEC,
                 clock: Callable[[], datetime] = utcnow,
                 spawn: Callable = _run_inline,
                 logger: Optional[logging.Logger] = None):
        self.backend = backend
        self.ttl_sec = ttl_sec
        self.clock = clock
        self.spawn = spawn
        self.logger = logger or logging.getLogger(__name__)
        self.lock = threading.RLock()
        self._sessions: Dict[str, Session] = {}

    def load(self) -> Dict[str, Session]:
        """Replace the live mapping with the persisted one, minus expired sessions."""
        try:
            raw = self.backend.read()
        except FileNotFoundError:
            raw = {}
        except Exception as exc:
            self.logger.warning(f"[store-load] backend={self.backend!r} unreadable, starting empty: {exc}")
            raw = {}

        sessions: Dict[str, Session] = {}
        for code, record in raw.items():
            try:
                sessions[code] = Session.from_dict(record)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                self.logger.warning(f"[store-load] code={code} skipped malformed record: {exc}")
        with self.lock:
            self._sessions = sessions
            self.prune()
            self.logger.info(f"[store-load] sessions={len(self._sessions)}")
            return dict(self._sessions)

    def prune(self, now: Optional[datetime] = None) -> List[str]:
        now = now or self.clock()
        with self.lock:
            expired = [code for code, s in self._sessions.items() if s.is_expired(now, self.ttl_sec)]
            for code in expired:
                del self._sessions[code]
        if expired:
            self.logger.info(f"[store-prune] dropped={len(expired)} codes={','.join(expired)}")
        return expired

    def save(self) -> None:
        snapshot = self.snapshot()
        self.spawn(self._write, snapshot)

    def flush(self) -> None:
        """Write the current snapshot before returning (used on shutdown)."""
        self._write(self.snapshot())

    def _write(self, snapshot) -> None:
        try:
            self.backend.write(snapshot)
        except Exception as exc:
            self.logger.error(f"[store-save-failed] backend={self.backend!r} sessions={len(snapshot)}: {exc}")

    def snapshot(self):
        with self.lock:
            return {code: s.to_dict() for code, s in self._sessions.items()}

    def get(self, code: str) -> Optional[Session]:
        with self.lock:
            return self._sessions.get(code)

    def put(self, session: Session) -> None:
        with self.lock:
            self._sessions[session.code] = session

    def remove(self, code: str) -> Optional[Session]:
        with self.lock:
            return self._sessions.pop(code, None)

    def codes(self) -> List[str]:
        with self.lock:
            return list(self._sessions)

    def __contains__(self, code) -> bool:
        with self.lock:
            return code in self._sessions

    def __len__(self) -> int:
        with self.lock:
            return len(self._sessions)
