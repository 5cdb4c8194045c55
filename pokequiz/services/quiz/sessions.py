"""Session lifecycle: create, join, start, answer, advance, results.

State per session moves forward only::

    waiting --start--> active --advance past last question--> finished

Single-player sessions are created ``active``. Every operation that changes a
session runs inside ``store.mutate`` so checks and writes see one consistent
state, and a failed check writes nothing.
"""

import logging
from typing import Callable, List, Optional
from uuid import uuid4

from pokequiz.errors import (
    DuplicateAnswerError,
    ForbiddenError,
    NameTakenError,
    NotFoundError,
    PreconditionFailedError,
    RoomCodeTakenError,
    RoomFullError,
)
from pokequiz.models import (
    STATUS_ACTIVE,
    STATUS_FINISHED,
    STATUS_WAITING,
    AnswerResult,
    ClientQuestion,
    GameSession,
    GameSettings,
    MultiplayerAnswerResult,
    PlayerAnswer,
    PlayerInfo,
    Question,
    ResultQuestion,
    SessionResults,
)
from .room_codes import allocate_room_code, normalize_room_code
from .scoring import calculate_score
from .store import SessionStore

logger = logging.getLogger(__name__)

MAX_PLAYERS = 20
MIN_PLAYERS = 2
# Re-allocations when another worker grabs the same room code first
ROOM_CODE_RACE_RETRIES = 5


def _new_player(name: str, is_host: bool) -> PlayerInfo:
    return PlayerInfo(player_id=uuid4().hex, name=name, is_host=is_host)


def build_results(session: GameSession) -> SessionResults:
    return SessionResults(
        players=session.standings(),
        questions=[
            ResultQuestion(
                question_id=q.question_id,
                image_url=q.image_url,
                correct_answer=q.correct_name,
                player_answers=dict(session.answered_questions.get(q.question_id, {})),
            )
            for q in session.questions
        ],
        settings=session.settings,
        is_multiplayer=session.is_multiplayer,
    )


def everyone_answered(session: GameSession, question_id: str) -> bool:
    answers = session.answered_questions.get(question_id, {})
    return all(p.player_id in answers for p in session.connected_players())


class QuizSessionService:
    def __init__(self, store: SessionStore, question_source: Callable[[GameSettings], List[Question]],
                 max_players: int = MAX_PLAYERS, min_players: int = MIN_PLAYERS):
        self.store = store
        self.question_source = question_source
        self.max_players = max_players
        self.min_players = min_players

    # ---- creation ----

    def create_single_player(self, name: str, settings: GameSettings) -> dict:
        questions = self.question_source(settings)
        player = _new_player(name, is_host=True)
        session = GameSession(
            session_id=uuid4().hex,
            questions=questions,
            settings=settings,
            is_multiplayer=False,
            status=STATUS_ACTIVE,
            players={player.player_id: player},
        )
        self.store.create(session)
        logger.info(f"[session-create] session={session.session_id} mode=single questions={len(questions)}")
        return {
            'session_id': session.session_id,
            'player_id': player.player_id,
            'questions': [q.to_client() for q in questions],
            'settings': settings,
        }

    def create_multiplayer(self, name: str, settings: GameSettings) -> dict:
        questions = self.question_source(settings)
        player = _new_player(name, is_host=True)
        session = GameSession(
            session_id=uuid4().hex,
            questions=questions,
            settings=settings,
            is_multiplayer=True,
            status=STATUS_WAITING,
            players={player.player_id: player},
        )
        attempt = 0
        while True:
            session.room_code = allocate_room_code(self.store.active_room_codes())
            try:
                self.store.create(session)
                break
            except RoomCodeTakenError:
                attempt += 1
                if attempt >= ROOM_CODE_RACE_RETRIES:
                    raise
                logger.info(f"[room-code-race] code={session.room_code} attempt={attempt}")
        logger.info(f"[session-create] session={session.session_id} mode=multi room={session.room_code}")
        return {
            'session_id': session.session_id,
            'player_id': player.player_id,
            'room_code': session.room_code,
        }

    # ---- lobby ----

    def join(self, room_code: str, name: str) -> dict:
        code = normalize_room_code(room_code)
        session_id = self.store.find_by_room_code(code)
        if session_id is None:
            raise NotFoundError('Room not found')

        def _join(session: GameSession):
            if session.room_code != code or session.status != STATUS_WAITING:
                raise NotFoundError('Room not found')
            if len(session.players) >= self.max_players:
                raise RoomFullError(f'Room is full (max {self.max_players} players)')
            wanted = name.casefold()
            if any(p.name.casefold() == wanted for p in session.players.values()):
                raise NameTakenError('Name already taken')
            player = _new_player(name, is_host=False)
            session.players[player.player_id] = player
            return {
                'session_id': session.session_id,
                'player_id': player.player_id,
                'players': list(session.players.values()),
                'settings': session.settings,
            }

        try:
            result = self.store.mutate(session_id, _join)
        except NotFoundError:
            raise NotFoundError('Room not found') from None
        logger.info(f"[join] session={session_id} players={len(result['players'])}")
        return result

    def start_game(self, session_id: str, player_id: str) -> dict:
        def _start(session: GameSession):
            host = session.host()
            if host is None or host.player_id != player_id:
                raise ForbiddenError('Only the host can start the game')
            if session.status != STATUS_WAITING:
                raise PreconditionFailedError('Game has already started')
            if len(session.connected_players()) < self.min_players:
                raise PreconditionFailedError(f'Need at least {self.min_players} players to start')
            session.set_status(STATUS_ACTIVE)
            session.current_question_index = 0
            return {
                'question': session.questions[0].to_client(),
                'question_index': 0,
                'total_questions': len(session.questions),
            }

        result = self.store.mutate(session_id, _start)
        logger.info(f"[start] session={session_id} total={result['total_questions']}")
        return result

    # ---- answers ----

    def _record_answer(self, session: GameSession, player_id: str, question_id: str,
                       selected_index: int, time_remaining: float):
        if session.status != STATUS_ACTIVE:
            raise NotFoundError('Session is not active')
        question = session.find_question(question_id)
        if question is None:
            raise NotFoundError('Question not found')
        # Single-player clients hold every question and advance locally
        current = session.current_question
        if session.is_multiplayer and (current is None or current.question_id != question.question_id):
            raise PreconditionFailedError('Question is not the current question')
        player = session.players.get(player_id)
        if player is None:
            raise NotFoundError('Player not found')
        answers = session.answered_questions.setdefault(question_id, {})
        if player_id in answers:
            raise DuplicateAnswerError('Already answered this question')

        total_time = session.settings.time_per_question
        clamped = max(0, min(time_remaining, total_time))
        correct = selected_index == question.correct_index
        points = calculate_score(correct, clamped, total_time)
        answers[player_id] = PlayerAnswer(
            selected_index=selected_index,
            correct=correct,
            points_earned=points,
            time_remaining=clamped,
        )
        player.score += points
        return question, player

    def submit_answer(self, session_id: str, player_id: str, question_id: str,
                      selected_index: int, time_remaining: float) -> AnswerResult:
        def _answer(session: GameSession):
            question, player = self._record_answer(session, player_id, question_id, selected_index, time_remaining)
            answer = session.answered_questions[question_id][player_id]
            return AnswerResult(
                correct=answer.correct,
                correct_answer=question.correct_name,
                points_earned=answer.points_earned,
                total_score=player.score,
            )

        result = self.store.mutate(self._require_id(session_id), _answer)
        logger.debug(f"[answer] session={session_id} player={player_id} points={result.points_earned}")
        return result

    def submit_multiplayer_answer(self, session_id: str, player_id: str, question_id: str,
                                  selected_index: int, time_remaining: float) -> MultiplayerAnswerResult:
        def _answer(session: GameSession):
            question, player = self._record_answer(session, player_id, question_id, selected_index, time_remaining)
            answers = session.answered_questions[question_id]
            answer = answers[player_id]
            return MultiplayerAnswerResult(
                correct=answer.correct,
                correct_answer=question.correct_name,
                points_earned=answer.points_earned,
                total_score=player.score,
                player_name=player.name,
                all_answered=everyone_answered(session, question_id),
                standings=session.standings(),
                question_results=dict(answers),
            )

        result = self.store.mutate(self._require_id(session_id), _answer)
        logger.info(
            f"[answer] session={session_id} player={player_id} points={result.points_earned} "
            f"all_answered={result.all_answered}"
        )
        return result

    # ---- progression ----

    def advance(self, session_id: str, player_id: Optional[str] = None) -> Optional[dict]:
        """Move to the next question.

        Returns ``{question, question_index, total_questions}`` as written by
        this call, or ``None`` when the game just finished. When ``player_id``
        is given it must belong to the host.
        """
        def _advance(session: GameSession):
            if player_id is not None:
                host = session.host()
                if host is None or host.player_id != player_id:
                    raise ForbiddenError('Only the host can advance questions')
            if session.status != STATUS_ACTIVE:
                raise NotFoundError('Session is not active')
            session.current_question_index += 1
            if session.current_question_index >= len(session.questions):
                session.current_question_index = len(session.questions)
                session.set_status(STATUS_FINISHED)
                return None
            return {
                'question': session.questions[session.current_question_index].to_client(),
                'question_index': session.current_question_index,
                'total_questions': len(session.questions),
            }

        state = self.store.mutate(self._require_id(session_id), _advance)
        if state is None:
            logger.info(f"[finish] session={session_id}")
        else:
            logger.info(f"[advance] session={session_id} index={state['question_index']}")
        return state

    def advance_question(self, session_id: str, player_id: Optional[str] = None) -> Optional[ClientQuestion]:
        """Move to the next question; ``None`` means the game just finished."""
        state = self.advance(session_id, player_id)
        return state['question'] if state else None

    def remove_player(self, session_id: str, player_id: str) -> None:
        def _remove(session: GameSession):
            player = session.players.get(player_id)
            if player is None:
                raise NotFoundError('Player not found')
            player.connected = False
            if player.is_host:
                player.is_host = False
                successor = next(iter(session.connected_players()), None)
                if successor is not None:
                    successor.is_host = True
                    logger.info(f"[host-transfer] session={session_id} to={successor.player_id}")

        self.store.mutate(self._require_id(session_id), _remove)
        logger.info(f"[leave] session={session_id} player={player_id}")

    # ---- reads ----

    def _require_id(self, session_id: str) -> str:
        if not session_id:
            raise NotFoundError('Session not found')
        return session_id

    def get_session(self, session_id: str) -> GameSession:
        session = self.store.get(session_id)
        if session is None:
            raise NotFoundError('Session not found')
        return session

    def get_results(self, session_id: str) -> SessionResults:
        return build_results(self.get_session(session_id))

    def all_players_answered(self, session_id: str, question_id: str) -> bool:
        session = self.store.get(session_id)
        if session is None:
            return False
        return everyone_answered(session, question_id)

    def get_lobby(self, session_id: str) -> dict:
        session = self.get_session(session_id)
        return {
            'room_code': session.room_code,
            'players': list(session.players.values()),
            'settings': session.settings,
            'status': session.status,
        }

    def get_poll_state(self, session_id: str) -> dict:
        """Snapshot for clients that poll instead of listening for events."""
        session = self.get_session(session_id)
        state = {
            'status': session.status,
            'players': list(session.players.values()),
        }
        current = session.current_question
        if session.status == STATUS_ACTIVE and current is not None:
            state.update({
                'current_question': current.to_client(),
                'question_index': session.current_question_index,
                'total_questions': len(session.questions),
                'all_answered': everyone_answered(session, current.question_id),
                'standings': session.standings(),
            })
        elif session.status == STATUS_FINISHED:
            state['results'] = build_results(session)
        return state
