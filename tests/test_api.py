import pytest


def start_single(client, **overrides):
    body = {'player_name': 'Ash', 'question_count': 5, 'time_per_question': 15}
    body.update(overrides)
    return client.post('/api/quiz/start', json=body)


def create_room(client, name='Ash'):
    res = client.post('/api/multiplayer/create', json={'player_name': name, 'question_count': 5})
    assert res.status_code == 201
    return res.get_json()


def server_question(flask_app, session_id, index):
    service = flask_app.extensions['quiz_service']
    return service.get_session(session_id).questions[index]


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_single_player_flow(flask_app, client):
    res = start_single(client)
    assert res.status_code == 201
    data = res.get_json()
    assert data['settings'] == {'question_count': 5, 'time_per_question': 15, 'hard_mode': False}
    assert len(data['questions']) == 5
    for q in data['questions']:
        assert set(q) == {'question_id', 'image_url', 'options'}
        assert len(q['options']) == 4

    total = 0
    for i, q in enumerate(data['questions']):
        truth = server_question(flask_app, data['session_id'], i)
        res = client.post('/api/quiz/answer', json={
            'session_id': data['session_id'],
            'player_id': data['player_id'],
            'question_id': q['question_id'],
            'selected_index': truth.correct_index,
            'time_remaining': 15,
        })
        assert res.status_code == 200
        body = res.get_json()
        assert body['correct'] is True
        assert body['correct_answer'] == truth.correct_name
        total += body['points_earned']
        assert body['total_score'] == total

    res = client.get(f"/api/quiz/results/{data['session_id']}")
    assert res.status_code == 200
    results = res.get_json()
    assert results['players'][0]['score'] == total == 2000
    assert len(results['questions']) == 5


def test_duplicate_answer_is_rejected(client):
    data = start_single(client).get_json()
    body = {
        'session_id': data['session_id'],
        'player_id': data['player_id'],
        'question_id': data['questions'][0]['question_id'],
        'selected_index': 0,
        'time_remaining': 3,
    }
    assert client.post('/api/quiz/answer', json=body).status_code == 200
    res = client.post('/api/quiz/answer', json=body)
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'conflict'


@pytest.mark.parametrize('overrides', [
    {'player_name': ''},
    {'player_name': 'x' * 36},
    {'question_count': 4},
    {'question_count': 21},
    {'time_per_question': 61},
    {'time_per_question': True},
    {'hard_mode': 'yes'},
])
def test_start_validation(client, overrides):
    res = start_single(client, **overrides)
    assert res.status_code == 400
    assert 'error' in res.get_json()


@pytest.mark.parametrize('field,value', [
    ('selected_index', 4),
    ('selected_index', -2),
    ('selected_index', 1.5),
    ('time_remaining', -1),
    ('time_remaining', 'soon'),
    ('question_id', ''),
])
def test_answer_validation(client, field, value):
    data = start_single(client).get_json()
    body = {
        'session_id': data['session_id'],
        'player_id': data['player_id'],
        'question_id': data['questions'][0]['question_id'],
        'selected_index': 0,
        'time_remaining': 5,
    }
    body[field] = value
    assert client.post('/api/quiz/answer', json=body).status_code == 400


def test_unknown_session_is_404(client):
    assert client.get('/api/quiz/results/nope').status_code == 404
    assert client.get('/api/multiplayer/lobby/nope').status_code == 404
    res = client.post('/api/quiz/answer', json={
        'session_id': 'nope', 'player_id': 'p', 'question_id': 'q',
        'selected_index': 0, 'time_remaining': 1,
    })
    assert res.status_code == 404


def test_multiplayer_flow(flask_app, client):
    host = create_room(client)
    assert len(host['room_code']) == 4

    res = client.post('/api/multiplayer/join', json={'room_code': host['room_code'].lower(), 'player_name': 'Misty'})
    assert res.status_code == 200
    guest = res.get_json()
    assert [p['name'] for p in guest['players']] == ['Ash', 'Misty']

    res = client.post('/api/multiplayer/join', json={'room_code': host['room_code'], 'player_name': 'misty'})
    assert res.status_code == 400

    lobby = client.get(f"/api/multiplayer/lobby/{host['session_id']}").get_json()
    assert lobby['status'] == 'waiting'
    assert lobby['room_code'] == host['room_code']

    res = client.post('/api/multiplayer/start', json={'session_id': host['session_id'], 'player_id': guest['player_id']})
    assert res.status_code == 403

    res = client.post('/api/multiplayer/start', json={'session_id': host['session_id'], 'player_id': host['player_id']})
    assert res.status_code == 200
    started = res.get_json()
    assert started['question_index'] == 0
    assert set(started['question']) == {'question_id', 'image_url', 'options'}

    for index in range(5):
        poll = client.get(f"/api/multiplayer/poll/{host['session_id']}")
        assert poll.headers['Cache-Control'].startswith('no-store')
        state = poll.get_json()
        assert state['status'] == 'active'
        assert state['question_index'] == index
        question_id = state['current_question']['question_id']

        truth = server_question(flask_app, host['session_id'], index)
        answers = []
        for player in (host, guest):
            res = client.post('/api/multiplayer/answer', json={
                'session_id': host['session_id'],
                'player_id': player['player_id'],
                'question_id': question_id,
                'selected_index': truth.correct_index,
                'time_remaining': 15,
            })
            assert res.status_code == 200
            answers.append(res.get_json())
        assert [a['all_answered'] for a in answers] == [False, True]

        res = client.post('/api/multiplayer/next', json={'session_id': host['session_id'], 'player_id': host['player_id']})
        assert res.status_code == 200
        body = res.get_json()
        if index < 4:
            assert body['finished'] is False
            assert body['question_index'] == index + 1
        else:
            assert body['finished'] is True
            assert [p['score'] for p in body['results']['players']] == [2000, 2000]

    state = client.get(f"/api/multiplayer/poll/{host['session_id']}").get_json()
    assert state['status'] == 'finished'
    assert 'results' in state


def test_answering_ahead_is_rejected(flask_app, client):
    host = create_room(client)
    guest = client.post('/api/multiplayer/join', json={'room_code': host['room_code'], 'player_name': 'Misty'}).get_json()
    client.post('/api/multiplayer/start', json={'session_id': host['session_id'], 'player_id': host['player_id']})
    ahead = server_question(flask_app, host['session_id'], 1)
    res = client.post('/api/multiplayer/answer', json={
        'session_id': host['session_id'],
        'player_id': guest['player_id'],
        'question_id': ahead.question_id,
        'selected_index': ahead.correct_index,
        'time_remaining': 15,
    })
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'precondition_failed'


def test_join_validation_and_missing_room(client):
    assert client.post('/api/multiplayer/join', json={'room_code': 'AB', 'player_name': 'Misty'}).status_code == 400
    assert client.post('/api/multiplayer/join', json={'room_code': 'ZZZZ', 'player_name': 'Misty'}).status_code == 404


def test_leave_transfers_host(client):
    host = create_room(client)
    guest = client.post('/api/multiplayer/join', json={'room_code': host['room_code'], 'player_name': 'Misty'}).get_json()
    res = client.post('/api/multiplayer/leave', json={'session_id': host['session_id'], 'player_id': host['player_id']})
    assert res.status_code == 200
    lobby = client.get(f"/api/multiplayer/lobby/{host['session_id']}").get_json()
    by_id = {p['player_id']: p for p in lobby['players']}
    assert by_id[host['player_id']]['connected'] is False
    assert by_id[guest['player_id']]['is_host'] is True


def test_body_must_be_json_object(client):
    res = client.post('/api/multiplayer/start', data='not json', content_type='application/json')
    assert res.status_code == 400
