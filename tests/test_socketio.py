from pokequiz import socketio


def names(events):
    return [e['name'] for e in events]


def create_room(client):
    return client.post('/api/multiplayer/create', json={'player_name': 'Ash', 'question_count': 5}).get_json()


def test_socket_connect_and_join(sio_client):
    assert sio_client.is_connected('/ws')
    assert 'connected' in names(sio_client.get_received('/ws'))

    sio_client.emit('join_session', {'session_id': 'abc'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    joined = [e for e in received if e['name'] == 'joined']
    assert joined and joined[0]['args'][0] == {'room': 'session:abc'}


def test_join_session_requires_id(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_session', {}, namespace='/ws')
    assert 'error' in names(sio_client.get_received('/ws'))


def test_ping_pong(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'t': 1}, namespace='/ws')
    pongs = [e for e in sio_client.get_received('/ws') if e['name'] == 'pong']
    assert pongs[0]['args'][0] == {'t': 1}


def test_http_join_is_broadcast_to_room(client, sio_client):
    host = create_room(client)
    sio_client.emit('join_session', {'session_id': host['session_id'], 'player_id': host['player_id']},
                    namespace='/ws')
    sio_client.get_received('/ws')

    client.post('/api/multiplayer/join', json={'room_code': host['room_code'], 'player_name': 'Misty'})
    events = [e for e in sio_client.get_received('/ws') if e['name'] == 'player_joined']
    assert len(events) == 1
    assert [p['name'] for p in events[0]['args'][0]['players']] == ['Ash', 'Misty']


def test_events_stay_inside_their_room(flask_app, client, sio_client):
    first = create_room(client)
    second = create_room(client)
    sio_client.emit('join_session', {'session_id': first['session_id']}, namespace='/ws')
    sio_client.get_received('/ws')

    client.post('/api/multiplayer/join', json={'room_code': second['room_code'], 'player_name': 'Brock'})
    assert 'player_joined' not in names(sio_client.get_received('/ws'))


def test_answers_announce_all_answered(flask_app, client, sio_client):
    host = create_room(client)
    guest = client.post('/api/multiplayer/join', json={'room_code': host['room_code'], 'player_name': 'Misty'}).get_json()
    sio_client.emit('join_session', {'session_id': host['session_id']}, namespace='/ws')
    client.post('/api/multiplayer/start', json={'session_id': host['session_id'], 'player_id': host['player_id']})
    assert 'game_started' in names(sio_client.get_received('/ws'))

    question = flask_app.extensions['quiz_service'].get_session(host['session_id']).questions[0]
    for player in (host, guest):
        client.post('/api/multiplayer/answer', json={
            'session_id': host['session_id'],
            'player_id': player['player_id'],
            'question_id': question.question_id,
            'selected_index': question.correct_index,
            'time_remaining': 10,
        })
    received = sio_client.get_received('/ws')
    assert names(received).count('answer_result') == 2
    done = [e for e in received if e['name'] == 'all_answered']
    assert len(done) == 1
    assert done[0]['args'][0]['question_id'] == question.question_id
    # per-player answers only go out once everyone has answered
    for e in received:
        if e['name'] == 'answer_result':
            assert 'correct' not in e['args'][0]


def test_leave_session_marks_player_disconnected(flask_app, client, sio_client):
    host = create_room(client)
    guest = client.post('/api/multiplayer/join', json={'room_code': host['room_code'], 'player_name': 'Misty'}).get_json()

    host_client = socketio.test_client(flask_app, namespace='/ws')
    host_client.emit('join_session', {'session_id': host['session_id'], 'player_id': host['player_id']},
                     namespace='/ws')
    sio_client.emit('join_session', {'session_id': host['session_id'], 'player_id': guest['player_id']},
                    namespace='/ws')
    sio_client.get_received('/ws')

    host_client.emit('leave_session', {'session_id': host['session_id']}, namespace='/ws')
    left = [e for e in sio_client.get_received('/ws') if e['name'] == 'player_left']
    assert left and left[0]['args'][0]['player_id'] == host['player_id']

    session = flask_app.extensions['quiz_service'].get_session(host['session_id'])
    assert session.players[host['player_id']].connected is False
    assert session.players[guest['player_id']].is_host is True
    host_client.disconnect(namespace='/ws')


def test_disconnect_marks_player_left(flask_app, client, sio_client):
    host = create_room(client)
    guest = client.post('/api/multiplayer/join', json={'room_code': host['room_code'], 'player_name': 'Misty'}).get_json()

    guest_client = socketio.test_client(flask_app, namespace='/ws')
    guest_client.emit('join_session', {'session_id': host['session_id'], 'player_id': guest['player_id']},
                      namespace='/ws')
    guest_client.disconnect(namespace='/ws')

    session = flask_app.extensions['quiz_service'].get_session(host['session_id'])
    assert session.players[guest['player_id']].connected is False
