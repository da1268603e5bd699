from typing import Optional
import openai
from .base import BaseLLM
from ..prompt import SYSTEM_INSTRUCTION


class OpenAILLM(BaseLLM):
    provider = "openai"
    default_model = "gpt-4o-mini"
    auth_errors = (openai.AuthenticationError, openai.PermissionDeniedError)
    rate_limit_errors = (openai.RateLimitError,)

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "",
        temperature: float = 0.2,
        max_tokens: int = 1024,
    ):
        super().__init__(model=model, temperature=temperature, max_tokens=max_tokens)
        self.client = openai.AsyncOpenAI(api_key=api_key) if api_key else openai.AsyncOpenAI()

    async def complete(self, prompt: str) -> str:
        completion = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return completion.choices[0].message.content or ""
