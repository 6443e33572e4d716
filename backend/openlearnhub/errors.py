from typing import Optional


class AppError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class AuthError(AppError):
    status_code = 401


class InvalidTokenError(AuthError):
    pass


class UpstreamError(AppError):
    """A provider or transport call failed."""

    status_code = 500


class AccountCreationError(UpstreamError):
    pass


class InvalidFederatedTokenError(UpstreamError):
    pass


class ExtractionError(AppError):
    """Quiz text could not be turned into questions."""

    status_code = 500
    kind = "extraction"


class EmptyCompletionError(ExtractionError):
    kind = "empty_completion"


class NoJsonArrayFoundError(ExtractionError):
    kind = "no_json_array_found"


class MalformedJsonError(ExtractionError):
    kind = "malformed_json"


class InvalidQuizSchemaError(ExtractionError):
    kind = "invalid_quiz_schema"
