"""
Configuration management for the application.
"""

import logging
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys (all optional - clustering works without any AI service)
    openai_api_key: Optional[str] = None
    you_api_key: Optional[str] = None

    # Model Configuration
    openai_embedding_model: str = "text-embedding-3-small"
    openai_llm_model: str = "gpt-4o-mini"

    # Summarizer backend: "openai" or "you"
    summarizer_provider: str = "openai"

    # Feature cache
    cache_ttl_seconds: float = 300.0

    # Feature normalization
    tfidf_top_k: int = 30
    idf_floor: float = 0.1

    # Similarity weights (renormalized per pair over present signals)
    weight_tfidf: float = 0.45
    weight_embedding: float = 0.30
    weight_topic: float = 0.15
    weight_domain: float = 0.10

    # Clustering policy
    join_threshold: float = 0.5
    merge_threshold: float = 0.35
    min_cluster_size: int = 2
    max_clusters: int = 8
    topic_majority: float = 0.6

    # Enrichment timeouts (seconds)
    classifier_timeout: float = 8.0
    summarizer_timeout: float = 8.0
    embedding_timeout: float = 4.0

    # Scan defaults
    scan_concurrency: int = 6
    scan_deadline_seconds: float = 20.0
    extraction_timeout: float = 6.0

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
