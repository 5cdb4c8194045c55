from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def build_quiz_service(flask_app):
    """Wire the session store, question source and lifecycle service from config."""
    from pokequiz.services.quiz import InMemorySessionStore, QuizSessionService, SqlSessionStore
    from pokequiz.services.quiz.pokeapi import PokeApiClient
    from pokequiz.services.quiz.questions import QuestionGenerator

    cfg = flask_app.config
    store_cls = InMemorySessionStore if cfg.get('SESSION_STORE') == 'memory' else SqlSessionStore
    store = store_cls(
        ttl_seconds=int(cfg.get('SESSION_TTL_SEC', 3600)),
        lock_timeout=float(cfg.get('SESSION_LOCK_TIMEOUT_SEC', 5)),
    )
    provider = cfg.get('POKEMON_PROVIDER') or PokeApiClient(
        base_url=cfg.get('POKEAPI_BASE_URL', 'https://pokeapi.co/api/v2'),
        timeout=float(cfg.get('POKEAPI_TIMEOUT_SEC', 10)),
        batch_size=int(cfg.get('POKEAPI_BATCH_SIZE', 20)),
    )
    return QuizSessionService(
        store,
        QuestionGenerator(provider),
        max_players=int(cfg.get('MAX_PLAYERS', 20)),
        min_players=int(cfg.get('MIN_PLAYERS', 2)),
    )


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    origins = flask_app.config.get('CORS_ORIGINS') or []
    if isinstance(origins, str):
        origins = [o.strip() for o in origins.split(',') if o.strip()]

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=origins)
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # Import models so their tables are registered on the metadata
    from pokequiz import models  # noqa: F401

    flask_app.extensions['quiz_service'] = build_quiz_service(flask_app)

    from pokequiz.routes import main
    flask_app.register_blueprint(main)

    from pokequiz.api.quiz import quiz
    from pokequiz.api.multiplayer import multiplayer
    flask_app.register_blueprint(quiz, url_prefix='/api/quiz')
    flask_app.register_blueprint(multiplayer, url_prefix='/api/multiplayer')

    from pokequiz.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('purge-sessions')
    def purge_sessions_command():
        """Deletes expired quiz sessions and their room codes."""
        removed = flask_app.extensions['quiz_service'].store.purge_expired()
        print(f'Purged {removed} expired session(s).')

    flask_app.cli.add_command(purge_sessions_command)

    return flask_app


def get_quiz_service():
    from flask import current_app
    return current_app.extensions['quiz_service']
