"""
Typed security errors surfaced at the HTTP boundary
"""

from typing import Dict, List, Optional


class SecurityError(Exception):
    """Base class for every error the trust core raises towards a client"""

    status_code = 500
    default_message = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[List[str]] = None,
        headers: Optional[Dict[str, str]] = None,
        action: Optional[str] = None,
    ):
        self.message = message or self.default_message
        self.action = action
        self.errors = list(errors or [])
        self.headers = dict(headers or {})
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        """Message safe to echo back to the client"""
        return self.message

    def to_dict(self) -> Dict[str, object]:
        body: Dict[str, object] = {"success": False, "error": self.public_message}
        if self.errors:
            body["errors"] = list(self.errors)
        return body


class AuthenticationError(SecurityError):
    """Missing, invalid or expired credentials"""

    status_code = 401
    default_message = "Authentication required"

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.headers.setdefault("WWW-Authenticate", "Bearer")


class AuthorizationError(SecurityError):
    """Valid identity without the required role, permission or active account"""

    status_code = 403
    default_message = "Insufficient permissions"


class ValidationError(SecurityError):
    """Input rejected; ``errors`` lists every violated rule"""

    status_code = 400
    default_message = "Validation failed"


class NotFoundError(SecurityError):
    status_code = 404
    default_message = "Not found"


class InternalError(SecurityError):
    """Unexpected failure; detail stays in the server log"""

    status_code = 500
    default_message = "Internal server error"

    @property
    def public_message(self) -> str:
        return self.default_message

    def to_dict(self) -> Dict[str, object]:
        return {"success": False, "error": self.default_message}
