class QuizDuelError(Exception):
    """Base class for errors raised by the quiz duel core."""


class ValidationError(QuizDuelError, ValueError):
    """Missing or malformed input, or a participant/index the session rejects."""


class NotFoundError(QuizDuelError, LookupError):
    """The requested session does not exist (or was pruned)."""
