from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False
    environment: str = "development"
    database_url: str = "sqlite:///conversations.db"

    llm_provider: str = "anthropic"
    llm_api_key: str = ""
    llm_model: str = ""  # blank means the provider's default model
    llm_temperature: float = 0.2
    llm_max_tokens: int = 1024

    rate_limit_window_ms: int = 900000
    rate_limit_max_requests: int = 100
    rate_limit_storage_uri: str = "memory://"  # redis://host:6379 to share counts across workers
    cors_origin: str = "http://localhost:5173"

    # how long a failed generation keeps the LLM reported as degraded
    llm_degraded_seconds: int = 60

    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origin.split(",") if origin.strip()]

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.rate_limit_window_ms / 1000


@lru_cache()
def get_settings() -> Settings:
    return Settings()
