import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///pokequiz.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Comma separated list of allowed browser origins
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173')
    # Session store backend: 'sql' (shared across workers) or 'memory' (single process)
    SESSION_STORE = os.environ.get('SESSION_STORE', 'sql')
    # Sessions expire this long after creation or last write (seconds)
    SESSION_TTL_SEC = int(os.environ.get('SESSION_TTL_SEC', '3600'))
    # Upper bound on waiting for another request's mutation of the same session
    SESSION_LOCK_TIMEOUT_SEC = float(os.environ.get('SESSION_LOCK_TIMEOUT_SEC', '5'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '20'))
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    # PokeAPI data source
    POKEAPI_BASE_URL = os.environ.get('POKEAPI_BASE_URL', 'https://pokeapi.co/api/v2')
    POKEAPI_TIMEOUT_SEC = float(os.environ.get('POKEAPI_TIMEOUT_SEC', '10'))
    POKEAPI_BATCH_SIZE = int(os.environ.get('POKEAPI_BATCH_SIZE', '20'))
