from dataclasses import dataclass, field
from typing import Dict, List, Optional
import time

from pokequiz import db

STATUS_WAITING = 'waiting'
STATUS_ACTIVE = 'active'
STATUS_FINISHED = 'finished'

# Forward-only status transitions
_STATUS_ORDER = {STATUS_WAITING: 0, STATUS_ACTIVE: 1, STATUS_FINISHED: 2}


class SessionRecord(db.Model):
    __tablename__ = 'quiz_session'
    session_id = db.Column(db.String(64), primary_key=True)
    room_code = db.Column(db.String(4), nullable=True, index=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_WAITING)
    payload = db.Column(db.Text, nullable=False)  # JSON-encoded GameSession
    created_at = db.Column(db.Float, nullable=False)
    expires_at = db.Column(db.Float, nullable=False, index=True)
    # Bumped on every write; an UPDATE against a stale version matches no row
    version = db.Column(db.Integer, nullable=False, default=1, server_default='1')

    __mapper_args__ = {'version_id_col': version}


class RoomCodeRecord(db.Model):
    """Secondary index: live room code -> session id."""
    __tablename__ = 'room_code'
    code = db.Column(db.String(4), primary_key=True)
    session_id = db.Column(db.String(64), nullable=False)
    expires_at = db.Column(db.Float, nullable=False, index=True)


@dataclass(frozen=True)
class GameSettings:
    question_count: int = 10
    time_per_question: int = 15
    hard_mode: bool = False

    def to_dict(self):
        return {
            'question_count': self.question_count,
            'time_per_question': self.time_per_question,
            'hard_mode': self.hard_mode,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            question_count=int(data['question_count']),
            time_per_question=int(data['time_per_question']),
            hard_mode=bool(data.get('hard_mode', False)),
        )


@dataclass
class ClientQuestion:
    """The part of a question that is safe to show before it is answered."""
    question_id: str
    image_url: str
    options: List[str]

    def to_dict(self):
        return {
            'question_id': self.question_id,
            'image_url': self.image_url,
            'options': list(self.options),
        }


@dataclass
class Question:
    question_id: str
    image_url: str
    options: List[str]
    correct_index: int
    correct_name: str
    pokemon_id: int

    def to_client(self) -> ClientQuestion:
        return ClientQuestion(
            question_id=self.question_id,
            image_url=self.image_url,
            options=list(self.options),
        )

    def to_dict(self):
        return {
            'question_id': self.question_id,
            'image_url': self.image_url,
            'options': list(self.options),
            'correct_index': self.correct_index,
            'correct_name': self.correct_name,
            'pokemon_id': self.pokemon_id,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            question_id=data['question_id'],
            image_url=data['image_url'],
            options=list(data['options']),
            correct_index=int(data['correct_index']),
            correct_name=data['correct_name'],
            pokemon_id=int(data['pokemon_id']),
        )


@dataclass
class PlayerInfo:
    player_id: str
    name: str
    score: int = 0
    connected: bool = True
    is_host: bool = False

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'name': self.name,
            'score': self.score,
            'connected': self.connected,
            'is_host': self.is_host,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            player_id=data['player_id'],
            name=data['name'],
            score=int(data.get('score', 0)),
            connected=bool(data.get('connected', True)),
            is_host=bool(data.get('is_host', False)),
        )


@dataclass
class PlayerAnswer:
    selected_index: int  # -1 when the timer ran out
    correct: bool
    points_earned: int
    time_remaining: float

    def to_dict(self):
        return {
            'selected_index': self.selected_index,
            'correct': self.correct,
            'points_earned': self.points_earned,
            'time_remaining': self.time_remaining,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            selected_index=int(data['selected_index']),
            correct=bool(data['correct']),
            points_earned=int(data['points_earned']),
            time_remaining=data['time_remaining'],
        )


@dataclass
class GameSession:
    session_id: str
    questions: List[Question]
    settings: GameSettings
    is_multiplayer: bool
    status: str = STATUS_WAITING
    room_code: Optional[str] = None
    current_question_index: int = 0
    # Insertion order is join order
    players: Dict[str, PlayerInfo] = field(default_factory=dict)
    # question_id -> player_id -> answer
    answered_questions: Dict[str, Dict[str, PlayerAnswer]] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    def find_question(self, question_id: str) -> Optional[Question]:
        return next((q for q in self.questions if q.question_id == question_id), None)

    def host(self) -> Optional[PlayerInfo]:
        return next((p for p in self.players.values() if p.is_host), None)

    def connected_players(self) -> List[PlayerInfo]:
        return [p for p in self.players.values() if p.connected]

    def set_status(self, status: str) -> None:
        if _STATUS_ORDER[status] < _STATUS_ORDER[self.status]:
            raise ValueError(f"illegal status transition {self.status} -> {status}")
        self.status = status

    def standings(self) -> List[PlayerInfo]:
        """Players by score, highest first; ties keep join order."""
        return sorted(self.players.values(), key=lambda p: -p.score)

    def to_dict(self):
        return {
            'session_id': self.session_id,
            'questions': [q.to_dict() for q in self.questions],
            'settings': self.settings.to_dict(),
            'is_multiplayer': self.is_multiplayer,
            'status': self.status,
            'room_code': self.room_code,
            'current_question_index': self.current_question_index,
            'players': [p.to_dict() for p in self.players.values()],
            'answered_questions': {
                qid: {pid: a.to_dict() for pid, a in answers.items()}
                for qid, answers in self.answered_questions.items()
            },
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data):
        players = {}
        for pd in data.get('players', []):
            player = PlayerInfo.from_dict(pd)
            players[player.player_id] = player
        return cls(
            session_id=data['session_id'],
            questions=[Question.from_dict(q) for q in data['questions']],
            settings=GameSettings.from_dict(data['settings']),
            is_multiplayer=bool(data['is_multiplayer']),
            status=data['status'],
            room_code=data.get('room_code'),
            current_question_index=int(data.get('current_question_index', 0)),
            players=players,
            answered_questions={
                qid: {pid: PlayerAnswer.from_dict(a) for pid, a in answers.items()}
                for qid, answers in (data.get('answered_questions') or {}).items()
            },
            created_at=data.get('created_at', time.time()),
        )


@dataclass
class AnswerResult:
    correct: bool
    correct_answer: str
    points_earned: int
    total_score: int

    def to_dict(self):
        return {
            'correct': self.correct,
            'correct_answer': self.correct_answer,
            'points_earned': self.points_earned,
            'total_score': self.total_score,
        }


@dataclass
class MultiplayerAnswerResult(AnswerResult):
    player_name: str = ''
    all_answered: bool = False
    standings: List[PlayerInfo] = field(default_factory=list)
    question_results: Dict[str, PlayerAnswer] = field(default_factory=dict)

    def to_dict(self):
        data = super().to_dict()
        data.update({
            'player_name': self.player_name,
            'all_answered': self.all_answered,
            'standings': [p.to_dict() for p in self.standings],
            'question_results': {pid: a.to_dict() for pid, a in self.question_results.items()},
        })
        return data


@dataclass
class ResultQuestion:
    question_id: str
    image_url: str
    correct_answer: str
    player_answers: Dict[str, PlayerAnswer]

    def to_dict(self):
        return {
            'question_id': self.question_id,
            'image_url': self.image_url,
            'correct_answer': self.correct_answer,
            'player_answers': {pid: a.to_dict() for pid, a in self.player_answers.items()},
        }


@dataclass
class SessionResults:
    players: List[PlayerInfo]
    questions: List[ResultQuestion]
    settings: GameSettings
    is_multiplayer: bool

    def to_dict(self):
        return {
            'players': [p.to_dict() for p in self.players],
            'questions': [q.to_dict() for q in self.questions],
            'settings': self.settings.to_dict(),
            'is_multiplayer': self.is_multiplayer,
        }
