import logging
from typing import Any, Callable, Optional


def room_for(code: str) -> str:
    return f"session:{code}"


class Broadcaster:
    """Persist the store and push a session's state to everyone in its room.

    `emit` is called as emit(event, payload, room); payload may be None for
    bare signals.
    """

    def __init__(self, store, emit: Callable[[str, Any, str], None], logger: Optional[logging.Logger] = None):
        self.store = store
        self.emit = emit
        self.logger = logger or logging.getLogger(__name__)

    def broadcast(self, code: str) -> None:
        # Callers only broadcast codes that are still in the store
        session = self.store.get(code)
        self.store.save()
        self.emit('sessionUpdate', session.to_dict(), room_for(code))
        self.logger.info(f"[session-update] code={code} players={len(session.players)}")

    def announce(self, code: str, event: str, payload: Any = None) -> None:
        self.emit(event, payload, room_for(code))
        self.logger.info(f"[session-signal] code={code} event={event}")
