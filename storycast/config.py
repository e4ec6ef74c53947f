from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    app_name: str = "Storycast"
    # Default to a local sqlite file if not set in env
    database_url: str = "sqlite+aiosqlite:///./storycast.db"

    # Chat model configuration - can be overridden via environment variables
    gemini_model: str = "gemini-2.5-flash"
    google_api_key: str = ""

    # Embedding providers
    gemini_embedding_model: str = "gemini-embedding-001"
    dashscope_api_key: str = ""
    dashscope_embedding_model: str = "text-embedding-v4"
    dashscope_embedding_url: str = (
        "https://dashscope.aliyuncs.com/api/v1/services/embeddings/text-embedding/text-embedding"
    )
    embedding_dims: int = 1536
    embedding_max_retries: int = 3

    # Prompt assembly
    display_timezone: str = "Asia/Shanghai"
    default_message_limit: int = 50

    # Local Ollama backend
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "qwen3:30b-a3b"
    ollama_keep_alive: str = "24h"

    # Upper bound for a single streamed model response (seconds)
    llm_timeout_seconds: int = 120

    log_file: str = "storycast.log"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

@lru_cache
def get_settings():
    return Settings()
