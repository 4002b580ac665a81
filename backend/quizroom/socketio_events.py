from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from numbers import Number
from typing import Dict, Any


# sid -> {'code', 'player_id'} for cleanup on disconnect
_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _lifecycle():
    return current_app.extensions['quizroom']


class SocketConnection:
    """Transport handle for the connection currently being served."""

    def __init__(self, sid: str):
        self.sid = sid

    def join(self, room: str) -> None:
        join_room(room)

    def leave(self, room: str) -> None:
        leave_room(room)

    def bind(self, code: str, player_id: str) -> None:
        _sid_to_ctx[self.sid] = {'code': code, 'player_id': player_id}

    def send(self, event: str, payload) -> None:
        emit(event, payload)


def _current_connection() -> SocketConnection:
    return SocketConnection(_get_sid())


def _require(data, event, *fields):
    """Return the payload values for `fields`, or None when any is missing."""
    data = data if isinstance(data, dict) else {}
    values = []
    for name in fields:
        value = data.get(name)
        if value is None or value == '':
            current_app.logger.warning(f"[socket-invalid] sid={_get_sid()} event={event} missing={name}")
            return None
        values.append(value)
    return values


def _code(value) -> str:
    return str(value).strip().upper()


def handle_connect(auth=None):
    current_app.logger.info(f"[socket-connect] sid={_get_sid()}")


def handle_disconnect(reason=None):
    sid = _get_sid()
    ctx = _sid_to_ctx.pop(sid, None) or {}
    _lifecycle().drop_connection(ctx.get('code'), ctx.get('player_id'))
    current_app.logger.info(f"[socket-disconnect] sid={sid} code={ctx.get('code')}")


def handle_create_session(data):
    values = _require(data, 'createSession', 'nickname', 'sessionName')
    if values is None:
        return
    nickname, session_name = values
    _lifecycle().create_session(_current_connection(), nickname, session_name)


def handle_join_session(data):
    values = _require(data, 'joinSession', 'code', 'nickname')
    if values is None:
        return
    code, nickname = values
    _lifecycle().join_session(_current_connection(), _code(code), nickname)


def handle_rejoin_session(data):
    values = _require(data, 'rejoinSession', 'code', 'playerId', 'nickname')
    if values is None:
        return
    code, player_id, nickname = values
    _lifecycle().rejoin_session(_current_connection(), _code(code), player_id, nickname)


def handle_start_session(data):
    values = _require(data, 'startSession', 'code')
    if values is None:
        return
    _lifecycle().start_session(_current_connection(), _code(values[0]))


def handle_update_score(data):
    values = _require(data, 'updateScore', 'code', 'playerId', 'score')
    if values is None:
        return
    code, player_id, score = values
    if isinstance(score, bool) or not isinstance(score, Number):
        current_app.logger.warning(f"[socket-invalid] sid={_get_sid()} event=updateScore score={score!r}")
        return
    _lifecycle().update_score(_current_connection(), _code(code), player_id, score)


def handle_leave_session(data):
    values = _require(data, 'leaveSession', 'code', 'playerId')
    if values is None:
        return
    code, player_id = values
    # The sid stays bound; its later disconnect re-broadcasts the session
    _lifecycle().leave_session(_current_connection(), _code(code), player_id)


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on `namespace`."""
    from quizroom import socketio

    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('createSession', handle_create_session, namespace=namespace)
    socketio.on_event('joinSession', handle_join_session, namespace=namespace)
    socketio.on_event('rejoinSession', handle_rejoin_session, namespace=namespace)
    socketio.on_event('startSession', handle_start_session, namespace=namespace)
    socketio.on_event('updateScore', handle_update_score, namespace=namespace)
    socketio.on_event('leaveSession', handle_leave_session, namespace=namespace)
