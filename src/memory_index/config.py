"""
Configuration

Loads and manages system configuration from index_config.yaml
"""

import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env file if it exists
env_path = Path.cwd() / "setting" / ".env"
if env_path.exists():
    load_dotenv(env_path)


class DatabaseConfig(BaseModel):
    """Database connection configuration."""
    host: str = "localhost"
    port: int = 5432
    name: str = "memory_index"
    user: Optional[str] = None
    password: Optional[str] = None
    min_pool_size: int = 2
    max_pool_size: int = 10

    @property
    def connection_string(self) -> str:
        """Generate PostgreSQL connection string."""
        if self.user and self.password:
            return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"
        return f"postgresql://{self.host}:{self.port}/{self.name}"


class LLMConfig(BaseModel):
    """Text-generation collaborator configuration.

    - classify_model: Used to place memories into index categories
    - synthesis_model: Used to write profile documents
    - compare_model: Used for supersession/contradiction detection
    """
    model: str = "gpt-4o-mini"

    classify_model: Optional[str] = None  # Falls back to 'model' if not set
    synthesis_model: Optional[str] = None
    compare_model: Optional[str] = None

    api_key: Optional[str] = None
    base_url: Optional[str] = None

    # Caller-defined timeout for every collaborator request
    request_timeout_seconds: float = 60.0

    def get_classify_model(self) -> str:
        """Get the model to use for classification."""
        return self.classify_model or self.model

    def get_synthesis_model(self) -> str:
        """Get the model to use for document synthesis."""
        return self.synthesis_model or self.model

    def get_compare_model(self) -> str:
        """Get the model to use for conflict detection."""
        return self.compare_model or self.model


class EmbeddingConfig(BaseModel):
    """Embedding model configuration."""
    model: str = "text-embedding-3-small"
    dimension: int = 1536
    enable_cache: bool = True
    max_cache_size: int = 1000


class IndexingConfig(BaseModel):
    """Classification, conflict detection and sweep limits."""
    # Most-important existing memories sent for conflict comparison
    conflict_candidate_limit: int = 50

    # Ceiling for concurrent classification calls in batch indexing
    classification_concurrency: int = Field(default=10, ge=1)

    # Users swept in parallel by the stale-document sweep
    sweep_user_concurrency: int = Field(default=4, ge=1)


class RetrievalConfig(BaseModel):
    """Context retrieval configuration."""
    max_documents: int = Field(default=5, ge=1)

    # Documents at or below this similarity are dropped from semantic results
    similarity_threshold: float = 0.3

    # Directives attached to a context package
    directive_lookup_limit: int = 100


class StalenessConfig(BaseModel):
    """Thresholds for the document regeneration policy."""
    new_memory_threshold: int = 3
    high_importance_threshold: int = 8
    max_age_days: float = 7.0


class VaultConfig(BaseModel):
    """Markdown export configuration."""
    enabled: bool = True
    base_path: Optional[str] = None  # Defaults to ~/.memory_index


class IndexConfig(BaseModel):
    """Main configuration model."""
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    staleness: StalenessConfig = Field(default_factory=StalenessConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)


def _parse_database_url(db_url: str) -> dict:
    """Split a postgresql:// URL into DatabaseConfig fields."""
    parsed = urlparse(db_url)
    values = {}
    if parsed.hostname:
        values["host"] = parsed.hostname
    if parsed.port:
        values["port"] = parsed.port
    if parsed.path and parsed.path != "/":
        values["name"] = parsed.path.lstrip("/")
    if parsed.username:
        values["user"] = parsed.username
    if parsed.password:
        values["password"] = parsed.password
    return values


def load_config(config_path: Optional[Path] = None) -> IndexConfig:
    """
    Load configuration from YAML file.

    Falls back to environment variables and defaults.
    """
    if config_path is None:
        config_path = Path.cwd() / "config" / "index_config.yaml"

    config_data = {}

    if config_path.exists():
        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

    # Override with environment variables
    if os.getenv("OPENAI_API_KEY"):
        config_data.setdefault("llm", {})
        config_data["llm"]["api_key"] = os.getenv("OPENAI_API_KEY")

    db_url = os.getenv("DATABASE_URL")
    if db_url and db_url.startswith(("postgresql://", "postgres://")):
        config_data.setdefault("database", {})
        config_data["database"].update(_parse_database_url(db_url))

    return IndexConfig(**config_data)
