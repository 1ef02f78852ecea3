"""Application error taxonomy"""

from typing import Optional


class AppError(Exception):
    """Base class for errors the engine raises on purpose"""
    status_code = 500
    code = "app_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Malformed mutation request (bad role, unreconciled totals, illegal transition)"""
    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(AppError):
    """Unknown conversation or restaurant"""
    status_code = 404
    code = "not_found"

    def __init__(self, resource: str = "Resource", identifier: Optional[str] = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} {identifier} not found"
        super().__init__(message)
        self.resource = resource


class ExternalServiceError(AppError):
    """Completion or messaging provider failure"""
    status_code = 503
    code = "external_service_error"

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service


class DatabaseError(AppError):
    """Storage failure; the whole turn should be retried by the caller"""
    status_code = 500
    code = "database_error"
