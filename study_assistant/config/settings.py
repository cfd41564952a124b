"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Values are read from two sources, highest priority first:
#
#   1. Environment variables, e.g. EMBEDDING_SERVICE=ollama
#   2. A .env file in the working directory (local development)
#
# Field `chroma_base_url` maps to env var `CHROMA_BASE_URL`, and so on.
# The object is frozen: it is built once at startup and handed to the
# factories in study_assistant/main.py, which are the only code that reads
# it.  Services receive plain constructor arguments instead.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Study-assistant settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # === Vector Store (ChromaDB REST API v2) ===
    chroma_base_url: str = "http://127.0.0.1:8000"
    chroma_tenant: str = "default_tenant"
    chroma_database: str = "default_database"
    chroma_collection: str = "study_materials"
    # "upsert" overwrites records with the same id; "add" rejects duplicates.
    chroma_write_mode: Literal["upsert", "add"] = "upsert"

    # === Embedding Backends ===
    embedding_service: Literal["openai", "sentence_transformers", "ollama"] = (
        "sentence_transformers"
    )
    local_embedding_url: str = "http://localhost:8001"
    local_embedding_dimension: int = 384  # all-MiniLM-L6-v2 until the service reports otherwise
    ollama_base_url: str = "http://localhost:11434"
    ollama_embedding_model: str = "nomic-embed-text"
    ollama_embedding_delay: float = 0.1  # pacing between single-text calls

    # === LLM / Vision ===
    # "auto" picks the first configured provider: Anthropic -> OpenAI -> Ollama.
    llm_provider: Literal["auto", "anthropic", "openai", "ollama"] = "auto"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoints (TogetherAI, etc.)
    openai_text_model: str = ""
    openai_vision_model: str = ""
    openai_embedding_model: str = ""
    ollama_text_model: str = "llama3.1"
    ollama_vision_model: str = "llava"

    # === Transcription ===
    transcription_provider: Literal["whisper_api", "whisper_local"] = "whisper_api"
    whisper_model_size: str = "base"

    # === Pipeline ===
    temp_dir: str = "./data/tmp"
    temp_max_age_seconds: int = 3600
    frame_interval_seconds: int = Field(default=30, ge=1)
    chunk_size: int = Field(default=1000, ge=1)
    retrieval_top_k: int = Field(default=10, ge=1)
    document_page_size: int = Field(default=100, ge=1)
    asset_concurrency: int = Field(default=4, ge=1)
    ocr_enabled: bool = False

    # === Timeouts (seconds) ===
    health_timeout: float = 5.0
    embed_timeout: float = 60.0
    store_timeout: float = 30.0
    llm_timeout: float = 60.0
    subprocess_timeout: float = 120.0

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_llm_providers(self) -> list[str]:
        """Return LLM provider names that have credentials configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
