from flask import current_app, request
from flask_socketio import emit, join_room, leave_room
from typing import Any, Dict

from pokequiz import get_quiz_service, socketio
from pokequiz.api import serialize
from pokequiz.errors import QuizError

NAMESPACE = '/ws'

# sid -> {'session_id': ..., 'player_id': ...}
_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def session_room(session_id: str) -> str:
    return f"session:{session_id}"


def publish_to_session(session_id: str, event: str, data: Any) -> None:
    """Fan an event out to every client in the session's room.

    Delivery is at-least-once; payloads are full snapshots so clients can apply
    them idempotently.
    """
    socketio.emit(event, serialize(data), to=session_room(session_id), namespace=NAMESPACE)
    current_app.logger.debug(f"[publish] session={session_id} event={event}")


def _mark_left(session_id: str, player_id: str) -> None:
    service = get_quiz_service()
    try:
        service.remove_player(session_id, player_id)
    except QuizError as exc:
        current_app.logger.info(f"[leave-skip] session={session_id} player={player_id} reason={exc.message}")
        return
    players = list(service.get_session(session_id).players.values())
    publish_to_session(session_id, 'player_left', {'player_id': player_id, 'players': players})


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(*args):
    ctx = _sid_to_ctx.pop(request.sid, None)
    if ctx and ctx.get('player_id'):
        _mark_left(ctx['session_id'], ctx['player_id'])


def handle_join_session(data):
    session_id = (data or {}).get('session_id')
    if not session_id:
        emit('error', {'error': 'session_id is required'})
        return
    room = session_room(session_id)
    join_room(room)
    _sid_to_ctx[request.sid] = {'session_id': session_id, 'player_id': (data or {}).get('player_id')}
    emit('joined', {'room': room})


def handle_leave_session(data):
    session_id = (data or {}).get('session_id')
    if not session_id:
        emit('error', {'error': 'session_id is required'})
        return
    room = session_room(session_id)
    leave_room(room)
    ctx = _sid_to_ctx.pop(request.sid, None) or {}
    player_id = (data or {}).get('player_id') or ctx.get('player_id')
    if player_id:
        _mark_left(session_id, player_id)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('join_session', handle_join_session, namespace=NAMESPACE)
    socketio.on_event('leave_session', handle_leave_session, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
