from flask import Blueprint, jsonify

from pokequiz import get_quiz_service
from pokequiz.api import (
    answer_fields,
    game_settings,
    handle_quiz_error,
    json_body,
    player_name,
    require_str,
    room_code,
    serialize,
)
from pokequiz.errors import QuizError
from pokequiz.socketio_events import publish_to_session

multiplayer = Blueprint('multiplayer', __name__)
multiplayer.register_error_handler(QuizError, handle_quiz_error)


@multiplayer.route('/create', methods=['POST'])
def create_room():
    """Creates a waiting room; the creator becomes host."""
    data = json_body()
    name = player_name(data)
    settings = game_settings(data)
    result = get_quiz_service().create_multiplayer(name, settings)
    return jsonify(serialize(result)), 201


@multiplayer.route('/join', methods=['POST'])
def join_room_by_code():
    data = json_body()
    code = room_code(data)
    name = player_name(data)
    result = get_quiz_service().join(code, name)
    publish_to_session(result['session_id'], 'player_joined', {'players': result['players']})
    return jsonify(serialize(result))


@multiplayer.route('/start', methods=['POST'])
def start_game():
    data = json_body()
    session_id = require_str(data, 'session_id')
    player_id = require_str(data, 'player_id')
    result = get_quiz_service().start_game(session_id, player_id)
    publish_to_session(session_id, 'game_started', result)
    return jsonify(serialize(result))


@multiplayer.route('/answer', methods=['POST'])
def submit_answer():
    """Records an answer; tells the room when everyone connected has answered."""
    session_id, player_id, question_id, selected_index, time_remaining = answer_fields(json_body())
    result = get_quiz_service().submit_multiplayer_answer(
        session_id, player_id, question_id, selected_index, time_remaining
    )
    # Other players only learn that this player answered, not how
    publish_to_session(session_id, 'answer_result', {
        'player_id': player_id,
        'player_name': result.player_name,
        'answered': True,
    })
    if result.all_answered:
        publish_to_session(session_id, 'all_answered', {
            'question_id': question_id,
            'standings': result.standings,
            'question_results': result.question_results,
        })
    return jsonify(result.to_dict())


@multiplayer.route('/next', methods=['POST'])
def next_question():
    data = json_body()
    session_id = require_str(data, 'session_id')
    player_id = require_str(data, 'player_id')
    service = get_quiz_service()
    payload = service.advance(session_id, player_id)

    if payload is None:
        results = service.get_results(session_id)
        publish_to_session(session_id, 'game_over', {'results': results})
        return jsonify({'finished': True, 'results': results.to_dict()})

    publish_to_session(session_id, 'next_question', payload)
    return jsonify({'finished': False, **serialize(payload)})


@multiplayer.route('/leave', methods=['POST'])
def leave():
    data = json_body()
    session_id = require_str(data, 'session_id')
    player_id = require_str(data, 'player_id')
    service = get_quiz_service()
    service.remove_player(session_id, player_id)
    players = list(service.get_session(session_id).players.values())
    publish_to_session(session_id, 'player_left', {'player_id': player_id, 'players': players})
    return jsonify({'message': 'You have left the game.'})


@multiplayer.route('/lobby/<string:session_id>', methods=['GET'])
def get_lobby(session_id):
    return jsonify(serialize(get_quiz_service().get_lobby(session_id)))


@multiplayer.route('/poll/<string:session_id>', methods=['GET'])
def poll(session_id):
    """Full state snapshot for clients without a socket connection."""
    response = jsonify(serialize(get_quiz_service().get_poll_state(session_id)))
    response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate'
    return response
