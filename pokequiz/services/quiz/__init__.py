"""Quiz domain services: question generation, scoring, session storage
and the session lifecycle.

Everything here is transport-agnostic; the HTTP blueprints and Socket.IO
handlers import from this package and never touch session state directly.
"""

from .scoring import calculate_score
from .sessions import QuizSessionService
from .store import InMemorySessionStore, SqlSessionStore, SessionStore
