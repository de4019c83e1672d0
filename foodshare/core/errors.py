"""Domain exceptions raised by the services and mapped to HTTP in ``foodshare.main``."""
from typing import Dict, Optional


class FoodShareError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FoodShareError):
    """Creation input failed a required-field, numeric or date rule."""

    status_code = 422

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        super().__init__(message or "Invalid donation: " + ", ".join(sorted(errors)))
        self.errors = errors


class PersistenceError(FoodShareError):
    status_code = 503


class NotificationError(FoodShareError):
    status_code = 502


class AuthorizationError(FoodShareError):
    status_code = 403


class ConflictError(FoodShareError):
    status_code = 409


class NotFoundError(FoodShareError):
    status_code = 404
