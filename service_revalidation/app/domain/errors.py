"""
Terminal failure states of a revalidation request.
"""

from typing import Any, Dict, Optional

from shared.errors import AuthenticationError, ServiceError, ValidationError


class RevalidationUnauthorized(AuthenticationError):
    """Missing or mismatched shared secret."""

    def __init__(self, correlation_id: str, secret_present: bool):
        super().__init__("Unauthorized", details={"secret_present": secret_present})
        self.correlation_id = correlation_id

    def body(self) -> Dict[str, Any]:
        return {"error": "Unauthorized"}


class RevalidationBadRequest(ValidationError):
    """The request named no tags."""

    def __init__(self, correlation_id: str, message: str = "No tags provided"):
        super().__init__(message)
        self.correlation_id = correlation_id

    def body(self) -> Dict[str, Any]:
        return {"error": self.message}


class RevalidationFailed(ServiceError):
    """The invalidation primitive faulted; earlier invalidations stay applied."""

    def __init__(self, correlation_id: str, cause: Optional[BaseException] = None):
        details = {"cause": str(cause)} if cause is not None else {}
        super().__init__("Revalidation failed", details=details)
        self.correlation_id = correlation_id

    def body(self) -> Dict[str, Any]:
        return {"error": self.message, "correlationId": self.correlation_id}
