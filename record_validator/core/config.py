"""
Configuration - environment driven settings via pydantic-settings.
Every threshold the validators use lives here so deployments can tune them.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CHECKER_ORDER = [
    "korean_english",
    "institution_name",
    "keyword_prohibition",
    "grammar",
    "format",
    "date_pattern",
    "duplicate_detection",
    "cross_section_duplicate",
    "cross_student_duplicate",
    "sentence_duplicate",
    "semantic_review",
]


class Settings(BaseSettings):
    """Application settings - all values can be overridden from the environment."""

    # API
    api_v1_prefix: str = Field(default="/api/v1", description="API route prefix")
    project_name: str = Field(default="School Record Validator", description="Project name")
    version: str = Field(default="1.0.0", description="Version")
    environment: str = Field(default="development", description="development or production")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool = Field(default=True, description="Render logs as JSON")
    log_file: Optional[str] = Field(default=None, description="Also write logs to this file")

    # Checkers
    checker_order: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CHECKER_ORDER),
        description="Checker names in the order they run on each cell",
    )

    # Similarity engine
    similarity_jaccard_weight: float = Field(default=0.4, description="Weight of token-set overlap")
    similarity_lcs_weight: float = Field(default=0.4, description="Weight of longest common run")
    similarity_edit_weight: float = Field(default=0.2, description="Weight of edit-distance similarity")
    similarity_error_threshold: float = Field(default=0.90, description="Score at or above which a match blocks")
    similarity_warning_threshold: float = Field(default=0.80, description="Advisory threshold")
    similarity_info_threshold: float = Field(default=0.70, description="Informational threshold")

    # Duplicate checkers
    duplicate_min_length: int = Field(default=30, description="Minimum text length for same-document checks")
    cross_section_min_length: int = Field(default=15, description="Minimum text length for cross-section checks")
    cross_student_min_length: int = Field(default=30, description="Minimum text length for cross-student checks")
    cross_student_exact_threshold: float = Field(default=0.95, description="Cross-student exact match score")
    cross_student_high_threshold: float = Field(default=0.80, description="Cross-student high similarity score")
    cross_student_template_threshold: float = Field(default=0.70, description="Cross-student template usage score")
    cross_student_korean_ratio: float = Field(default=0.5, description="Minimum share of Hangul characters")
    cross_student_max_comparisons: int = Field(default=1000, description="Most recent entries compared per cell")

    # Sentence checker
    sentence_min_length: int = Field(default=10, description="Minimum sentence length")
    sentence_similarity_threshold: float = Field(default=0.90, description="Word overlap for near-duplicate sentences")

    # Corpus store
    corpus_max_age_hours: int = Field(default=24, description="Corpus entry lifetime (hours)")
    corpus_max_entries_per_group: int = Field(default=500, description="Entries kept per comparison group")
    corpus_max_total_entries: int = Field(default=10000, description="Total entries before a cleanup pass runs")

    # Orchestrator
    yield_every_cells: int = Field(default=50, description="Cooperative yield interval in cells")
    poll_cancel_per_cell_high_risk: bool = Field(
        default=True,
        description="Poll cancellation on every cell of high-risk sections",
    )
    result_retention_hours: int = Field(default=24, description="How long finished results are kept in memory")
    maintenance_interval_seconds: float = Field(
        default=3600,
        description="Interval between cleanup passes over results, batches and the shared corpus",
    )

    # Batch coordinator
    batch_default_concurrency: int = Field(default=3, description="Default documents validated concurrently")

    # Semantic review checker (OpenAI compatible, Upstage Solar by default)
    semantic_api_key: Optional[str] = Field(default=None, description="API key; checker disabled when empty")
    semantic_base_url: str = Field(default="https://api.upstage.ai/v1/solar", description="API base URL")
    semantic_model: str = Field(default="solar-pro", description="Chat model")
    semantic_timeout: float = Field(default=20.0, description="Request timeout (seconds)")
    semantic_max_retries: int = Field(default=2, description="Retries on transient failures")
    semantic_max_tokens: int = Field(default=800, description="Completion token limit")
    semantic_temperature: float = Field(default=0.3, description="Sampling temperature")
    semantic_min_length: int = Field(default=20, description="Minimum text length sent for review")

    # Redis result cache (optional)
    redis_url: Optional[str] = Field(default=None, description="Redis URL; result cache disabled when empty")
    result_cache_ttl: int = Field(default=86400, description="Result cache TTL (seconds)")

    # CORS
    cors_allow_origins: str = Field(default="http://localhost:5173", description="Allowed origins, comma separated")
    cors_allow_credentials: bool = Field(default=False, description="Allow credentials")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def semantic_enabled(self) -> bool:
        return bool(self.semantic_api_key)

    def get_cors_origins(self) -> list[str]:
        """Return the allowed CORS origins."""
        raw = (self.cors_allow_origins or "").strip()
        if not raw:
            return ["*"]
        return [o.strip() for o in raw.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Settings singleton.
    lru_cache keeps exactly one Settings instance per process.
    """
    return Settings()
