"""
Domain Error Taxonomy

Every rejection raised by the services carries a stable error code, a
human-readable message and optional details. The HTTP layer maps each kind
to a status code in main.py.
"""
from typing import Any, Dict, Optional


class SkillSwapError(Exception):
    """Base class for all domain errors"""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(SkillSwapError):
    """Missing/malformed field or invalid value; rejected before any write"""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        if field is not None:
            details = {**(details or {}), "field": field}
        super().__init__(message, details)
        self.field = field


class UploadRejected(ValidationError):
    """File storage refused an upload (size ceiling or type allowlist)"""

    code = "UPLOAD_REJECTED"


class AuthenticationFailed(SkillSwapError):
    code = "AUTH_002"
    status_code = 401


class AuthorizationDenied(SkillSwapError):
    """Actor is not the participant/owner/admin the operation requires"""

    code = "AUTHORIZATION_DENIED"
    status_code = 403


class NotFound(SkillSwapError):
    code = "NOT_FOUND"
    status_code = 404


class Conflict(SkillSwapError):
    """Uniqueness or state invariant violated; details carry the current state"""

    code = "CONFLICT"
    status_code = 409


class StorageFailure(SkillSwapError):
    """Persistence failed; never exposes internal detail to the caller"""

    code = "STORAGE_FAILURE"
    status_code = 500

    def __init__(self, message: str = "A storage error occurred"):
        super().__init__(message)


class MissingCredentials(AuthenticationFailed):
    code = "AUTH_001"
