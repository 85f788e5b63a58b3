"""Editor configuration loaded from environment variables."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic_settings import BaseSettings


@dataclass
class AssistantModel:
    """A model offered by the assistance endpoint."""

    id: str
    label: str
    provider: str


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "NOTER_",
    }

    # Durable store
    storage_backend: str = "file"  # memory | file | redis
    storage_dir: Path = Path.home() / ".noter"
    storage_key: str = "noter_notes"
    redis_url: str = "redis://localhost:6379"

    # Persistence timing (seconds)
    save_debounce_seconds: float = 0.5
    saved_display_seconds: float = 0.6
    write_retry_attempts: int = 2

    # Block lifecycle timing (seconds)
    block_grace_seconds: float = 0.3
    block_exit_seconds: float = 0.16

    # Assistance service
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "qwen3:1.7b"
    assistant_models: str = "qwen3:1.7b,llama3.2:3b,mistral:7b"
    assistant_url: str = "http://localhost:8010"
    assistant_timeout: float = 120.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8010

    @property
    def models(self) -> list[AssistantModel]:
        """Return the configured assistant models, default first."""
        ids = [m.strip() for m in self.assistant_models.split(",") if m.strip()]
        if self.ollama_model not in ids:
            ids.insert(0, self.ollama_model)
        return [
            AssistantModel(id=m, label=m.split(":", 1)[0].title(), provider="Ollama")
            for m in ids
        ]


settings = Settings()
