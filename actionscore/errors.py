"""
errors.py — Domain errors raised by the services.
Routes and the app-level handlers translate them into HTTP responses.
"""


class ActionScoreError(Exception):
    """Base class for every error the services raise on purpose."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ActionScoreError):
    """A referenced task, pillar, goal or cycle does not exist for this user."""

    status_code = 404


class InvalidInput(ActionScoreError):
    """Malformed date, negative target, unknown enum value and similar."""

    status_code = 400
