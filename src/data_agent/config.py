"""Configuration management using Pydantic Settings"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Agent settings with environment variable support"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Session
    WEBSOCKET_URL: str = ""
    USER_ID: str = "user123"
    PROJECT_ID: str = ""
    AGENT_TYPE: str = "data-agent"
    RECONNECT_INTERVAL: float = 5.0
    MAX_RECONNECT_ATTEMPTS: int = 10
    REQUEST_TIMEOUT: float = 30.0
    MAX_MESSAGE_SIZE: int = 1_048_576

    # Resolution
    DEFAULT_ROW_LIMIT: int = 50
    GROQ_API_KEY: str = ""
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    COMPLETION_MODEL: str = "llama-3.3-70b-versatile"
    RERANK_MODEL: str = "openai/gpt-oss-120b"
    MATCHING_METHOD: Literal["vector", "completion"] = "vector"
    TOP_K: int = 5

    # Candidate store
    EMBEDDING_MODEL: str = "BAAI/bge-base-en-v1.5"
    QDRANT_URL: str = "http://localhost:6333"
    CANDIDATE_SYNC: bool = True
    CANDIDATE_FORCE_RECREATE: bool = False

    # Collaborators
    DATABASE_URL: str = ""
    WAREHOUSE_URL: str = ""
    USERS_FILE: str = "users.json"
    SCHEMA_FILE: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def collection_name(self) -> str:
        return f"{self.PROJECT_ID}_components"


@lru_cache
def get_settings() -> Settings:
    return Settings()
