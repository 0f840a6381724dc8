"""
Exceptions métier.
- Chaque erreur porte un status HTTP, un message lisible et éventuellement le message sous-jacent (`error`).
- Rendues en enveloppe JSON {success: false, message, error?} par unishift.app_setup.exceptions.
"""
from typing import Any, Dict, Optional


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error = error

    def to_envelope(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "message": self.message}
        if self.error:
            body["error"] = self.error
        return body


class ValidationFailed(ServiceError):
    status_code = 400


class Unauthorized(ServiceError):
    status_code = 401


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 400


class PaymentIncomplete(ServiceError):
    status_code = 400


class GatewayError(ServiceError):
    status_code = 500


class ProcessingError(ServiceError):
    status_code = 500
