"""Error taxonomy shared by the services and mapped to HTTP status codes in ``main``."""


class DailiesError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DailiesError):
    status_code = 400


class FileValidationError(ValidationError):
    pass


class NotFoundError(DailiesError):
    status_code = 404


class ConflictError(DailiesError):
    status_code = 409


class StorageError(DailiesError):
    status_code = 502


class ThumbnailError(DailiesError):
    status_code = 422
