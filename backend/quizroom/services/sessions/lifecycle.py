"""Session lifecycle: lobby -> active, plus reconnection reconciliation.

A session starts in the lobby (is_active False) where anyone may join,
and moves once to active when the host starts it; only then do score
updates apply. There is no way back to the lobby and no explicit end
state: sessions simply age out of the store at the next load.

Each operation takes the originating connection, a small transport
handle with join/leave/bind/send, and returns a Result. Only two things
ever produce a `rejected` outcome with an error sent back to the caller:
joining a missing or started session, and running out of session codes.
Every other failed precondition is `ignored` and nothing is emitted.
"""

import enum
import functools
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from quizroom.models import (
    Player,
    Session,
    SessionCodeExhausted,
    generate_player_id,
    generate_session_code,
    utcnow,
)
from .broadcast import room_for


JOIN_REJECTED_MESSAGE = 'Session not found or already started'


def _serialized(method):
    """Run the whole operation under the store lock, one event at a time."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.store.lock:
            return method(self, *args, **kwargs)
    return wrapper


class Outcome(enum.Enum):
    OK = 'ok'
    REJECTED = 'rejected'
    IGNORED = 'ignored'


@dataclass
class Result:
    outcome: Outcome
    session: Optional[Session] = None
    player: Optional[Player] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    @classmethod
    def ignored(cls, message=None):
        return cls(Outcome.IGNORED, message=message)

    @classmethod
    def rejected(cls, message):
        return cls(Outcome.REJECTED, message=message)


class SessionLifecycle:
    def __init__(self, store, broadcaster,
                 clock: Callable[[], datetime] = utcnow,
                 code_factory: Optional[Callable[[], str]] = None,
                 id_factory: Callable[[], str] = generate_player_id,
                 logger: Optional[logging.Logger] = None):
        self.store = store
        self.broadcaster = broadcaster
        self.clock = clock
        self.code_factory = code_factory or (lambda: generate_session_code(lambda c: c in store))
        self.id_factory = id_factory
        self.logger = logger or logging.getLogger(__name__)

    def _attach(self, conn, session: Session, player: Player, response_event: str) -> None:
        conn.join(room_for(session.code))
        conn.bind(session.code, player.id)
        conn.send(response_event, {'session': session.to_dict(), 'player': player.to_dict()})
        self.broadcaster.broadcast(session.code)

    @_serialized
    def create_session(self, conn, nickname: str, session_name: str) -> Result:
        try:
            code = self.code_factory()
        except SessionCodeExhausted as exc:
            self.logger.error(f"[session-create] code generation exhausted: {exc}")
            conn.send('error', {'message': str(exc)})
            return Result.rejected(str(exc))

        player_id = self.id_factory()
        player = Player(id=player_id, nickname=nickname, score=0, is_host=True)
        session = Session(
            code=code,
            name=session_name,
            host_player_id=player_id,
            created_at=self.clock(),
            players=[player],
            is_active=False,
        )
        self.store.put(session)
        self.logger.info(f"[session-create] code={code} host={player_id}")
        self._attach(conn, session, player, 'createSessionResponse')
        return Result(Outcome.OK, session, player)

    @_serialized
    def join_session(self, conn, code: str, nickname: str) -> Result:
        session = self.store.get(code)
        if not session or session.is_active:
            conn.send('error', {'message': JOIN_REJECTED_MESSAGE})
            self.logger.info(f"[session-join] code={code} rejected")
            return Result.rejected(JOIN_REJECTED_MESSAGE)

        player = Player(id=self.id_factory(), nickname=nickname, score=0, is_host=False)
        session.players.append(player)
        self.logger.info(f"[session-join] code={code} player={player.id}")
        self._attach(conn, session, player, 'joinSessionResponse')
        return Result(Outcome.OK, session, player)

    @_serialized
    def rejoin_session(self, conn, code: str, player_id: str, nickname: str) -> Result:
        """Reconcile a returning client by the player id it kept.

        An id the session has never seen is admitted as a new player even
        when the session is already active.
        """
        session = self.store.get(code)
        if not session:
            return Result.ignored('session not found')

        player = session.find_player(player_id)
        if player is None:
            player = Player(
                id=player_id,
                nickname=nickname,
                score=0,
                is_host=player_id == session.host_player_id,
            )
            session.players.append(player)
            self.logger.info(f"[session-rejoin] code={code} player={player_id} added")
        else:
            player.is_host = player_id == session.host_player_id
            player.nickname = nickname
            self.logger.info(f"[session-rejoin] code={code} player={player_id} refreshed")

        self.store.save()
        self._attach(conn, session, player, 'rejoinSessionResponse')
        return Result(Outcome.OK, session, player)

    @_serialized
    def start_session(self, conn, code: str) -> Result:
        session = self.store.get(code)
        if not session or session.is_active:
            return Result.ignored('session not found or already started')
        session.is_active = True
        self.broadcaster.broadcast(code)
        self.broadcaster.announce(code, 'sessionStarted')
        self.logger.info(f"[session-start] code={code}")
        return Result(Outcome.OK, session)

    @_serialized
    def update_score(self, conn, code: str, player_id: str, score) -> Result:
        session = self.store.get(code)
        if not session or not session.is_active:
            return Result.ignored('session not found or not started')
        player = session.find_player(player_id)
        if player is None:
            return Result.ignored('player not found')
        player.score = score
        self.broadcaster.broadcast(code)
        return Result(Outcome.OK, session, player)

    @_serialized
    def leave_session(self, conn, code: str, player_id: str) -> Result:
        session = self.store.get(code)
        if not session:
            return Result.ignored('session not found')
        # No successor is elected when the host leaves; see Session.host_orphaned
        session.remove_player(player_id)
        conn.leave(room_for(code))
        self.logger.info(f"[session-leave] code={code} player={player_id} host_orphaned={session.host_orphaned}")
        self.broadcaster.broadcast(code)
        return Result(Outcome.OK, session)

    @_serialized
    def drop_connection(self, code: Optional[str], player_id: Optional[str]) -> Result:
        """Clean up after a lost connection; the host keeps their seat."""
        session = self.store.get(code) if code else None
        if not session:
            return Result.ignored('no session bound to connection')
        if player_id != session.host_player_id:
            session.remove_player(player_id)
        self.broadcaster.broadcast(code)
        return Result(Outcome.OK, session)
