"""
Engine errors

Every rejected action is raised as a ClubError subclass before anything
is written. The HTTP layer maps them by `http_status`.
"""


class ClubError(Exception):
    """Base error"""

    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(ClubError):
    """No or invalid caller identity"""

    http_status = 401

    def __init__(self, message: str = "Please sign in"):
        super().__init__(message)


class Forbidden(ClubError):
    """Authenticated but not entitled"""

    http_status = 403


class NotFound(ClubError):
    """Event, profile or record absent"""

    http_status = 404


class InvalidState(ClubError):
    """Transition not allowed by the state machine"""

    http_status = 409


class ConcurrentUpdate(InvalidState):
    """Stored status changed between read and write"""


class ValidationError(ClubError):
    """Malformed input"""

    http_status = 422
