"""
Console error taxonomy and backend error classification
"""

from typing import Optional

# Structured code a backend sends when a tenant still owns buckets
TENANT_NOT_EMPTY = "TENANT_NOT_EMPTY"


class ConsoleError(Exception):
    """Base class for every error the console reports to an operator"""

    title = "Operation failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ConsoleError):
    """A required field is missing; raised before any request is sent"""

    title = "Validation failed"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ApiError(ConsoleError):
    """Failure reported by (or while reaching) the backend console API"""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code!r}, message={self.message!r})"


class NotFoundError(ApiError):
    title = "Resource not found"


class ConflictError(ApiError):
    """Tenant still owns buckets; the only error that unlocks force delete"""

    title = "Tenant is not empty"


class GenericApiError(ApiError):
    pass


def is_tenant_not_empty(message: str, code: Optional[str] = None) -> bool:
    """Return True when a failure means "tenant has buckets".

    A structured ``code`` wins when present. Older backends only send a
    message such as ``"Cannot delete tenant: tenant has 2 bucket(s)"``, so
    without a code the message must mention both "has" and "bucket".
    """
    if code:
        return code == TENANT_NOT_EMPTY
    text = (message or "").lower()
    return "has" in text and "bucket" in text


def classify_api_error(status_code: Optional[int], message: str, code: Optional[str] = None) -> ApiError:
    """Map a backend failure onto the console taxonomy"""
    if status_code == 404:
        return NotFoundError(message, status_code=status_code, code=code)
    if (code or status_code == 409) and is_tenant_not_empty(message, code):
        return ConflictError(message, status_code=status_code, code=code)
    return GenericApiError(message, status_code=status_code, code=code)
