import os
import sys
import pytest

# Ensure the project root (containing the `pokequiz` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from pokequiz import create_app, db, socketio
from pokequiz.models import GameSettings, Question
from pokequiz.services.quiz import InMemorySessionStore, QuizSessionService
from pokequiz.services.quiz.pokeapi import PokemonRecord

TYPES = ['fire', 'water', 'grass', 'electric', 'rock', 'psychic']


class FakePokemonProvider:
    """Stands in for PokeAPI: ids 1..total, every ``no_art_every``-th id lacks artwork."""

    def __init__(self, total=400, no_art_every=0):
        self.total = total
        self.no_art_every = no_art_every
        self.fetch_calls = 0

    def record(self, pokemon_id):
        art = not (self.no_art_every and pokemon_id % self.no_art_every == 0)
        return PokemonRecord(
            id=pokemon_id,
            name=f'Mon {pokemon_id}',
            image_url=f'https://img.example/{pokemon_id}.png' if art else '',
            types=(TYPES[pokemon_id % len(TYPES)], TYPES[(pokemon_id // len(TYPES)) % len(TYPES)]),
        )

    def total_count(self):
        return self.total

    def fetch_many(self, ids):
        self.fetch_calls += 1
        return [self.record(i) for i in ids if 1 <= i <= self.total]


def fixed_questions(settings):
    """Deterministic questions: the correct answer is always option ``i % 4``."""
    questions = []
    for i in range(settings.question_count):
        options = [f'Q{i} option {j}' for j in range(4)]
        correct_index = i % 4
        questions.append(Question(
            question_id=f'q{i}',
            image_url=f'https://img.example/q{i}.png',
            options=options,
            correct_index=correct_index,
            correct_name=options[correct_index],
            pokemon_id=100 + i,
        ))
    return questions


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_STORE = 'sql'
    SESSION_TTL_SEC = 3600
    SESSION_LOCK_TIMEOUT_SEC = 2
    MAX_PLAYERS = 20
    MIN_PLAYERS = 2
    CORS_ORIGINS = ''
    POKEMON_PROVIDER = FakePokemonProvider()


@pytest.fixture()
def settings():
    return GameSettings(question_count=5, time_per_question=15, hard_mode=False)


@pytest.fixture()
def store():
    return InMemorySessionStore(ttl_seconds=3600, lock_timeout=2)


@pytest.fixture()
def service(store):
    return QuizSessionService(store, fixed_questions)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')
