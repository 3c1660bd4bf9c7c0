from typing import List, Literal, Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # OpenAI (embeddings + chat)
    openai_api_key: Optional[SecretStr] = None
    openai_base_url: str = "https://api.openai.com/v1"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    chat_model: str = "gpt-4o-mini"
    chat_temperature: float = 0.2

    # Vector database
    vector_backend: Literal["pgvector", "faiss"] = "pgvector"
    database_url: str = "postgresql+asyncpg://rag@localhost:5432/rag"
    database_password: Optional[SecretStr] = None
    faiss_data_dir: str = "data/faiss"

    collection_name: str = "ragChat"
    collection_mode: Literal["shared", "per_session"] = "shared"

    # Sources
    yt_language: str = "en"
    upload_dir: str = "uploads"
    max_upload_bytes: int = 25 * 1024 * 1024

    # Chunking and retrieval
    chunk_size: int = 800
    chunk_overlap: int = 160
    retrieval_k: int = 5
    context_chars_per_doc: int = 1200
    snippet_chars: int = 200
    max_context_chars: int = 12000

    # Sessions (in-memory only, lost on restart)
    session_ttl_seconds: Optional[int] = None
    max_sessions: int = 10000

    cors_origins: List[str] = ["*"]
    port: int = 3000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

    def openai_key(self) -> str:
        """Return the raw OpenAI key, or an empty string when unset."""
        if self.openai_api_key is None:
            return ""
        return self.openai_api_key.get_secret_value()

settings = Settings()
