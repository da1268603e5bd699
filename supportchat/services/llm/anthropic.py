from typing import Optional
import anthropic
from .base import BaseLLM
from ..prompt import SYSTEM_INSTRUCTION


class AnthropicLLM(BaseLLM):
    provider = "anthropic"
    default_model = "claude-3-5-haiku-latest"
    auth_errors = (anthropic.AuthenticationError, anthropic.PermissionDeniedError)
    rate_limit_errors = (anthropic.RateLimitError,)

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "",
        temperature: float = 0.2,
        max_tokens: int = 1024,
    ):
        super().__init__(model=model, temperature=temperature, max_tokens=max_tokens)
        self.client = (
            anthropic.AsyncAnthropic(api_key=api_key)
            if api_key
            else anthropic.AsyncAnthropic()
        )

    async def complete(self, prompt: str) -> str:
        response = await self.client.messages.create(
            model=self.model,
            system=SYSTEM_INSTRUCTION,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        return "".join(
            block.text for block in response.content if block.type == "text"
        )
