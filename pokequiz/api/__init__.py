"""HTTP layer: request parsing, field validation and error mapping.

Views stay thin. They validate the JSON body into plain typed arguments, call
the quiz service and serialize what it returns.
"""

from flask import current_app, jsonify, request

from pokequiz.errors import QuizError
from pokequiz.models import GameSettings

MAX_PLAYER_NAME_LENGTH = 35
MIN_QUESTION_COUNT, MAX_QUESTION_COUNT, DEFAULT_QUESTION_COUNT = 5, 20, 10
MIN_TIME_PER_QUESTION, MAX_TIME_PER_QUESTION, DEFAULT_TIME_PER_QUESTION = 5, 60, 15
VALID_SELECTED_INDEXES = (-1, 0, 1, 2, 3)
ROOM_CODE_LENGTH = 4


class RequestValidationError(QuizError):
    kind = 'invalid_request'
    status_code = 400


def serialize(value):
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    return value


def handle_quiz_error(exc: QuizError):
    if exc.status_code >= 500:
        current_app.logger.error(f"[api-error] path={request.path} kind={exc.kind} error={exc.message}")
    else:
        current_app.logger.info(f"[api-reject] path={request.path} kind={exc.kind} error={exc.message}")
    return jsonify(exc.to_dict()), exc.status_code


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise RequestValidationError('Request body must be a JSON object')
    return data


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def require_str(data: dict, key: str) -> str:
    value = data.get(key)
    if not value or not isinstance(value, str):
        raise RequestValidationError(f'{key} is required')
    return value


def player_name(data: dict) -> str:
    name = data.get('player_name')
    if not isinstance(name, str) or not name.strip():
        raise RequestValidationError(f'player_name is required (1-{MAX_PLAYER_NAME_LENGTH} characters)')
    name = name.strip()
    if len(name) > MAX_PLAYER_NAME_LENGTH:
        raise RequestValidationError(f'player_name must be {MAX_PLAYER_NAME_LENGTH} characters or fewer')
    return name


def game_settings(data: dict) -> GameSettings:
    count = data.get('question_count', DEFAULT_QUESTION_COUNT)
    if not _is_int(count) or not MIN_QUESTION_COUNT <= count <= MAX_QUESTION_COUNT:
        raise RequestValidationError(
            f'question_count must be between {MIN_QUESTION_COUNT} and {MAX_QUESTION_COUNT}'
        )
    seconds = data.get('time_per_question', DEFAULT_TIME_PER_QUESTION)
    if not _is_int(seconds) or not MIN_TIME_PER_QUESTION <= seconds <= MAX_TIME_PER_QUESTION:
        raise RequestValidationError(
            f'time_per_question must be between {MIN_TIME_PER_QUESTION} and {MAX_TIME_PER_QUESTION}'
        )
    hard_mode = data.get('hard_mode', False)
    if not isinstance(hard_mode, bool):
        raise RequestValidationError('hard_mode must be a boolean')
    return GameSettings(question_count=count, time_per_question=seconds, hard_mode=hard_mode)


def answer_fields(data: dict):
    """(session_id, player_id, question_id, selected_index, time_remaining)"""
    session_id = require_str(data, 'session_id')
    player_id = require_str(data, 'player_id')
    question_id = require_str(data, 'question_id')
    selected_index = data.get('selected_index')
    if not _is_int(selected_index) or selected_index not in VALID_SELECTED_INDEXES:
        raise RequestValidationError('selected_index must be -1 or 0-3')
    time_remaining = data.get('time_remaining')
    if not _is_number(time_remaining) or time_remaining < 0:
        raise RequestValidationError('time_remaining must be >= 0')
    return session_id, player_id, question_id, selected_index, time_remaining


def room_code(data: dict) -> str:
    code = data.get('room_code')
    if not isinstance(code, str) or len(code.strip()) != ROOM_CODE_LENGTH:
        raise RequestValidationError(f'room_code must be exactly {ROOM_CODE_LENGTH} characters')
    return code.strip()
