"""Failure categories raised by the quiz core.

Operations fail fast with one of these; the HTTP layer turns them into a
JSON error body using ``status_code``.
"""


class QuizError(Exception):
    kind = 'error'
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message, 'kind': self.kind}


class NotFoundError(QuizError):
    kind = 'not_found'
    status_code = 404


class ForbiddenError(QuizError):
    kind = 'forbidden'
    status_code = 403


class ConflictError(QuizError):
    kind = 'conflict'
    status_code = 400


class DuplicateAnswerError(ConflictError):
    pass


class NameTakenError(ConflictError):
    pass


class RoomFullError(ConflictError):
    pass


class RoomCodeTakenError(ConflictError):
    pass


class PreconditionFailedError(QuizError):
    kind = 'precondition_failed'
    status_code = 400


class ResourceExhaustedError(QuizError):
    kind = 'resource_exhausted'
    status_code = 500


class RoomCodeExhaustedError(ResourceExhaustedError):
    pass


class InsufficientPokemonError(ResourceExhaustedError):
    pass


class PokeApiError(ResourceExhaustedError):
    pass


class SessionBusyError(ResourceExhaustedError):
    status_code = 503
