from typing import List, Optional


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message, "code": self.code}


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, errors: List[str]):
        super().__init__(errors[0] if errors else "Validation failed")
        self.errors = errors

    def to_dict(self) -> dict:
        return {"message": self.message, "errors": self.errors}


class AlreadyExists(AppError):
    status_code = 409
    code = "ALREADY_EXISTS"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"


class Unauthorized(AppError):
    status_code = 401
    code = "UNAUTHORIZED"


class Forbidden(AppError):
    status_code = 403
    code = "FORBIDDEN"


class PaginationError(AppError):
    """Raised when the paginated query itself fails."""

    status_code = 500
    code = "PAGINATION_ERROR"

    @property
    def success(self) -> bool:
        return False
