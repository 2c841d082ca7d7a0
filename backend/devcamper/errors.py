# backend/devcamper/errors.py
from typing import Any, Optional


class DevcamperError(Exception):
    """Base class for errors that map onto a client-facing error envelope"""
    status_code = 500
    default_message = "Server Error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_response(self) -> dict[str, Any]:
        return {"success": False, "error": self.message}


class NotFoundError(DevcamperError):
    status_code = 404
    default_message = "Resource not found"

    @classmethod
    def for_id(cls, collection: str, document_id: Any) -> "NotFoundError":
        return cls(f"No {collection.rstrip('s')} with the id of {document_id}")


class ValidationError(DevcamperError):
    status_code = 400
    default_message = "Invalid input"


class DuplicateKeyError(DevcamperError):
    status_code = 400
    default_message = "Duplicate field value entered"


class AuthorizationError(DevcamperError):
    status_code = 401
    default_message = "Not authorized to access this route"


class UpstreamError(DevcamperError):
    status_code = 500
    default_message = "Server Error"
