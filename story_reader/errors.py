"""Error taxonomy shared by services and rendered by the API layer.

Services raise these; ``main`` turns them into the uniform error envelope.
Messages are meant for end users and never carry storage details.
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(AppError):
    status_code = 400


class AuthenticationFailed(AppError):
    status_code = 401


class PermissionDenied(AppError):
    status_code = 403


class NotFound(AppError):
    status_code = 404


class Conflict(AppError):
    status_code = 409


class InternalError(AppError):
    status_code = 500

    def __init__(self, message: str = "internal server error"):
        super().__init__(message)
