"""Application settings."""
import os
from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict


class RetrievalStrategy(str, Enum):
    """Which combination of embedder, similarity index and keyword scorer to use."""

    FULL_VECTOR = "full_vector"
    KEYWORD_ONLY = "keyword_only"
    HYBRID = "hybrid"

    @property
    def uses_vectors(self) -> bool:
        return self is not RetrievalStrategy.KEYWORD_ONLY


class ChunkMode(str, Enum):
    """Paragraph-aware chunks with overlap, or plain fixed-width slices."""

    SMART = "smart"
    FIXED = "fixed"


class Settings(BaseSettings):
    """Application settings, read from the environment and .env."""

    model_config = SettingsConfigDict(
        # Look for .env in both backend/ and the repository root
        env_file=(
            os.path.join(os.path.dirname(__file__), "..", "..", ".env"),
            ".env",
        ),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Generation model (any OpenAI-compatible endpoint)
    llm_api_key: str = ""
    llm_api_url: str = "https://api.deepseek.com/v1/chat/completions"
    llm_model: str = "deepseek-chat"
    llm_timeout_seconds: float = 60.0
    llm_max_tokens: int = 1200

    # Embedding model
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_timeout_seconds: float = 30.0
    use_embedding_model: bool = True  # False = deterministic hash embeddings only

    # Retrieval
    retrieval_strategy: RetrievalStrategy = RetrievalStrategy.HYBRID
    top_k: int = 5
    min_similarity: float = 0.1
    keyword_top_k: int = 3  # Cap for keyword-only mode
    keyword_fallback_top_k: int = 5  # Cap when keywords stand in for a missing index

    # Chunking
    chunk_mode: ChunkMode = ChunkMode.SMART
    chunk_size: int = 800
    chunk_overlap: int = 150
    fixed_chunk_size: int = 1000

    # Citation reconciliation (empirical values, tune against a real corpus)
    fuzzy_step: int = 50
    fuzzy_threshold: float = 0.6
    max_citations: int = 10

    # Upload
    upload_dir: str = "./uploads"
    max_file_size_mb: int = 10

    # OpenTelemetry tracing
    tracing_enabled: bool = False
    otlp_endpoint: str = ""  # Empty = console exporter

    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
