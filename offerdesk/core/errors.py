"""Error taxonomy shared by the store, the services and the HTTP layer."""


class AppError(Exception):
    status_code = 500
    public_message = None  # when set, replaces the detail in responses

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__

    @property
    def response_message(self) -> str:
        return self.public_message or self.message


class ValidationError(AppError):
    status_code = 400


class AuthError(AppError):
    status_code = 401


class UnauthorizedError(AuthError):
    status_code = 401


class ForbiddenError(AuthError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class StorageError(AppError):
    status_code = 500
    public_message = "Storage failure"


class InternalError(AppError):
    status_code = 500
    public_message = "Internal server error"


class PayloadTooLargeError(AppError):
    status_code = 413
