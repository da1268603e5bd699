from abc import ABC, abstractmethod
from typing import Tuple, Type

from ...errors import LLMError
from ...logger import get_logger

logger = get_logger(__name__)

AUTH_FAILURE_MESSAGE = "AI service is currently unavailable. Please try again later."
RATE_LIMIT_MESSAGE = "We're experiencing high demand. Please wait a moment."
GENERIC_FAILURE_MESSAGE = "Unable to generate response. Please try again."


class EmptyResponseError(Exception):
    """The backend answered but produced no text."""


class BaseLLM(ABC):
    provider: str = "base"
    default_model: str = ""

    # Provider SDK exception types; matched before the message heuristics.
    auth_errors: Tuple[Type[BaseException], ...] = ()
    rate_limit_errors: Tuple[Type[BaseException], ...] = ()

    def __init__(self, model: str = "", temperature: float = 0.2, max_tokens: int = 1024):
        self.model = model or self.default_model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Send one prompt to the backend and return its raw text."""
        pass

    async def generate(self, prompt: str) -> str:
        """Get a reply for ``prompt``, or raise an LLMError with a user-facing message."""
        try:
            reply = await self.complete(prompt)
            if not reply or not reply.strip():
                raise EmptyResponseError(f"Empty response from {self.provider}")
            return reply
        except Exception as e:
            logger.error("%s generation failed: %s: %s", self.provider, type(e).__name__, e)
            raise self.classify_error(e) from e

    def classify_error(self, error: Exception) -> LLMError:
        message = str(error).lower()
        if isinstance(error, self.auth_errors) or "api key" in message or "authentication" in message:
            return LLMError(AUTH_FAILURE_MESSAGE, code="SERVICE_UNAVAILABLE")
        if isinstance(error, self.rate_limit_errors) or "rate limit" in message or "quota" in message:
            return LLMError(RATE_LIMIT_MESSAGE, code="RATE_LIMITED")
        return LLMError(GENERIC_FAILURE_MESSAGE, code="LLM_ERROR")
