"""
Error taxonomy shared by the rule layer and the HTTP handlers.

Every error carries the HTTP status it maps to; the app's exception
handlers render it as ``{"error": message, "details": [...]}``.
"""

from typing import Any, Dict, List, Optional


class CampusError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(CampusError):
    status_code = 400


class AuthenticationError(CampusError):
    status_code = 401


class AuthorizationError(CampusError):
    status_code = 403


class NotFoundError(CampusError):
    status_code = 404


class ConflictError(CampusError):
    """Duplicate of a unique row; reported as a 400 like other bad requests."""
    status_code = 400
