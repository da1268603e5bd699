from typing import Any, Dict, Optional

GENERIC_MESSAGE = "Internal server error"


class ChatError(Exception):
    """Base class for errors that map onto a JSON error envelope."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    # when False the client sees GENERIC_MESSAGE, the log keeps the detail
    expose_message: bool = True

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        error = self.message if self.expose_message else GENERIC_MESSAGE
        return {"success": False, "error": error, "code": self.code}


class ValidationError(ChatError):
    """Bad client input."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(ChatError):
    status_code = 404
    code = "NOT_FOUND"


class RateLimitError(ChatError):
    status_code = 429
    code = "RATE_LIMITED"


class ServiceError(ChatError):
    """A store or upstream failure surfaced to the caller."""

    status_code = 500
    code = "INTERNAL_ERROR"
    expose_message = False


class LLMError(ServiceError):
    """A failed generation, already reduced to a user-facing message."""

    status_code = 503
    code = "LLM_ERROR"
    expose_message = True


class ConfigurationError(ChatError):
    code = "CONFIGURATION_ERROR"
    expose_message = False
