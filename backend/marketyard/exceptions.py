"""
Error taxonomy for the entity store and its engines.

All errors are raised synchronously at the point of detection. The HTTP
layer maps them to responses through ``status_code``.
"""
from typing import Any, Dict, Optional
from fastapi import status


class MarketYardError(Exception):
    """Base class for core errors"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(MarketYardError):
    """Raised when an operation needs a referent that does not exist"""

    def __init__(self, resource: str, identifier: str, details: Optional[Dict[str, Any]] = None):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            message=f"{resource} with identifier '{identifier}' not found",
            status_code=status.HTTP_404_NOT_FOUND,
            details=details
        )


class ValidationError(MarketYardError):
    """Raised when an entity is malformed (missing or out-of-range field)"""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.field = field
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details
        )


class ReferentialIntegrityError(MarketYardError):
    """Raised when a read-time join finds a dangling foreign key"""

    def __init__(self, message: str, dangling: Optional[list] = None):
        self.dangling = dangling or []
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"dangling": self.dangling} if self.dangling else None
        )


class ImportFormatError(MarketYardError):
    """Raised when an import document is structurally invalid"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )
