from flask import Blueprint, jsonify

from pokequiz import get_quiz_service
from pokequiz.api import answer_fields, game_settings, handle_quiz_error, json_body, player_name, serialize
from pokequiz.errors import QuizError

quiz = Blueprint('quiz', __name__)
quiz.register_error_handler(QuizError, handle_quiz_error)


@quiz.route('/start', methods=['POST'])
def start_quiz():
    """Creates a single-player session and returns every question up front."""
    data = json_body()
    name = player_name(data)
    settings = game_settings(data)
    result = get_quiz_service().create_single_player(name, settings)
    return jsonify(serialize(result)), 201


@quiz.route('/answer', methods=['POST'])
def submit_answer():
    session_id, player_id, question_id, selected_index, time_remaining = answer_fields(json_body())
    result = get_quiz_service().submit_answer(session_id, player_id, question_id, selected_index, time_remaining)
    return jsonify(result.to_dict())


@quiz.route('/results/<string:session_id>', methods=['GET'])
def get_results(session_id):
    return jsonify(get_quiz_service().get_results(session_id).to_dict())
