import json


def _events(sio_client, name=None):
    received = sio_client.get_received()
    if name is None:
        return received
    return [pkt for pkt in received if pkt['name'] == name]


def _create(sio_client, nickname='Ann', session_name='Game1'):
    sio_client.emit('createSession', {'nickname': nickname, 'sessionName': session_name})
    (response,) = _events(sio_client, 'createSessionResponse')
    return response['args'][0]


def test_create_session_replies_and_broadcasts(sio_factory):
    host = sio_factory()
    host.get_received()

    host.emit('createSession', {'nickname': 'Ann', 'sessionName': 'Game1'})
    received = host.get_received()
    names = [pkt['name'] for pkt in received]
    assert names == ['createSessionResponse', 'sessionUpdate']

    body = received[0]['args'][0]
    session, player = body['session'], body['player']
    assert len(session['code']) == 6
    assert session['code'] == session['code'].upper()
    assert session['name'] == 'Game1'
    assert session['isActive'] is False
    assert session['hostPlayerId'] == player['id']
    assert player == {'id': player['id'], 'nickname': 'Ann', 'score': 0, 'isHost': True}


def test_join_start_and_score_flow(sio_factory, store_path):
    host, guest = sio_factory(), sio_factory()
    created = _create(host)
    code = created['session']['code']
    ann_id = created['player']['id']

    guest.emit('joinSession', {'code': code, 'nickname': 'Bob'})
    (joined,) = _events(guest, 'joinSessionResponse')
    bob = joined['args'][0]['player']
    assert bob['isHost'] is False

    (update,) = _events(host, 'sessionUpdate')
    assert [p['nickname'] for p in update['args'][0]['players']] == ['Ann', 'Bob']

    host.emit('startSession', {'code': code})
    for sio_client in (host, guest):
        names = [pkt['name'] for pkt in sio_client.get_received()]
        assert names == ['sessionUpdate', 'sessionStarted']

    host.emit('updateScore', {'code': code, 'playerId': ann_id, 'score': 10})
    (update,) = _events(guest, 'sessionUpdate')
    scores = {p['nickname']: p['score'] for p in update['args'][0]['players']}
    assert scores == {'Ann': 10, 'Bob': 0}

    with open(store_path) as fh:
        persisted = json.load(fh)
    assert persisted[code]['isActive'] is True
    assert persisted[code]['players'][0]['score'] == 10


def test_join_started_session_errors_to_caller_only(sio_factory):
    host, late = sio_factory(), sio_factory()
    code = _create(host)['session']['code']
    host.emit('startSession', {'code': code})
    host.get_received()

    late.get_received()
    late.emit('joinSession', {'code': code, 'nickname': 'Late'})
    received = late.get_received()
    assert [pkt['name'] for pkt in received] == ['error']
    assert received[0]['args'][0] == {'message': 'Session not found or already started'}
    assert host.get_received() == []


def test_join_accepts_lowercase_code(sio_factory):
    host, guest = sio_factory(), sio_factory()
    code = _create(host)['session']['code']
    guest.emit('joinSession', {'code': code.lower(), 'nickname': 'Bob'})
    assert len(_events(guest, 'joinSessionResponse')) == 1


def test_score_update_in_lobby_is_silent(sio_factory):
    host = sio_factory()
    created = _create(host)
    host.get_received()
    host.emit('updateScore', {'code': created['session']['code'], 'playerId': created['player']['id'], 'score': 3})
    assert host.get_received() == []


def test_guest_disconnect_removes_guest(sio_factory, lifecycle):
    host, guest = sio_factory(), sio_factory()
    code = _create(host)['session']['code']
    guest.emit('joinSession', {'code': code, 'nickname': 'Bob'})
    host.get_received()

    guest.disconnect()

    (update,) = _events(host, 'sessionUpdate')
    assert [p['nickname'] for p in update['args'][0]['players']] == ['Ann']
    assert len(lifecycle.store.get(code).players) == 1


def test_host_disconnect_keeps_seat_and_rejoin_restores(sio_factory, lifecycle):
    host, guest = sio_factory(), sio_factory()
    created = _create(host)
    code, host_id = created['session']['code'], created['player']['id']
    guest.emit('joinSession', {'code': code, 'nickname': 'Bob'})
    guest.get_received()

    host.disconnect()
    (update,) = _events(guest, 'sessionUpdate')
    assert [p['nickname'] for p in update['args'][0]['players']] == ['Ann', 'Bob']

    returning = sio_factory()
    returning.emit('rejoinSession', {'code': code, 'playerId': host_id, 'nickname': 'Annie'})
    (response,) = _events(returning, 'rejoinSessionResponse')
    player = response['args'][0]['player']
    assert player['id'] == host_id
    assert player['isHost'] is True
    assert player['nickname'] == 'Annie'
    assert len(lifecycle.store.get(code).players) == 2


def test_leave_session_stops_updates(sio_factory):
    host, guest = sio_factory(), sio_factory()
    code = _create(host)['session']['code']
    guest.emit('joinSession', {'code': code, 'nickname': 'Bob'})
    bob_id = _events(guest, 'joinSessionResponse')[0]['args'][0]['player']['id']
    host.get_received()

    guest.emit('leaveSession', {'code': code, 'playerId': bob_id})
    assert _events(guest) == []
    (update,) = _events(host, 'sessionUpdate')
    assert [p['nickname'] for p in update['args'][0]['players']] == ['Ann']


def test_rejoin_unknown_session_is_silent(sio_factory):
    sio_client = sio_factory()
    sio_client.get_received()
    sio_client.emit('rejoinSession', {'code': 'NOPE00', 'playerId': 'x', 'nickname': 'Ghost'})
    assert sio_client.get_received() == []


def test_malformed_payload_is_ignored(sio_factory, lifecycle):
    sio_client = sio_factory()
    sio_client.get_received()
    sio_client.emit('createSession', {'nickname': 'Ann'})
    sio_client.emit('joinSession', 'ABC123')
    assert sio_client.get_received() == []
    assert len(lifecycle.store) == 0


def test_events_are_handled_in_order(flask_app):
    from quizroom import socketio
    assert socketio.server.async_handlers is False


def test_disconnect_after_leave_rebroadcasts(sio_factory):
    host, guest = sio_factory(), sio_factory()
    code = _create(host)['session']['code']
    guest.emit('joinSession', {'code': code, 'nickname': 'Bob'})
    bob_id = _events(guest, 'joinSessionResponse')[0]['args'][0]['player']['id']
    guest.emit('leaveSession', {'code': code, 'playerId': bob_id})
    host.get_received()

    # the connection keeps its session binding after leaving, so cleanup
    # sends one more unchanged snapshot to the room
    guest.disconnect()

    (update,) = _events(host, 'sessionUpdate')
    assert [p['nickname'] for p in update['args'][0]['players']] == ['Ann']
