"""
Configuration Management using Pydantic Settings
Loads configuration from environment variables with validation

Environment variable names match the field names (case-insensitive),
e.g. PDF_LINE_THRESHOLD, OCR_MAX_PAGES, PROCESSING_TIMEOUT.
"""
import os
import tempfile
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="PDF Ingestion Service", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment: development, staging, production")

    # API Settings
    api_v1_prefix: str = Field(default="/api/v1", description="API version 1 prefix")

    # Rate Limiting
    rate_limit_window_seconds: int = Field(default=60, description="Retry-After fallback when the limit detail has no window")
    upload_rate_limit: str = Field(default="20/minute", description="Rate limit for PDF uploads")

    # Text extraction thresholds
    pdf_line_threshold: float = Field(default=5, description="Vertical gap that starts a new line")
    pdf_para_threshold: float = Field(default=10, description="Vertical gap that starts a new paragraph")
    pdf_column_threshold: float = Field(default=50, description="Backward x jump treated as a column wrap")

    # OCR settings
    ocr_language: str = Field(default="eng", description="Tesseract language code")
    ocr_max_pages: int = Field(default=10, description="Maximum pages sent to OCR")
    ocr_scale: float = Field(default=1.2, description="Rasterization scale for OCR")
    ocr_max_time_seconds: float = Field(default=300, description="Overall OCR time budget")
    ocr_page_seg_mode: int = Field(default=1, description="Tesseract page segmentation mode (1 = auto with OSD)")

    # Text detection thresholds
    min_text_length: int = Field(default=100, description="Minimum useful text length")
    sufficient_text_length: int = Field(default=300, description="Text length that ends the extraction cascade")

    # Performance
    max_items_per_page: int = Field(default=5000, description="Text items processed per page")
    enable_dynamic_scaling: bool = Field(default=True, description="Adapt extraction to document complexity")
    processing_timeout: float = Field(default=600, description="Overall timeout per job in seconds")

    # Job queue
    pdf_queue_dir: str = Field(
        default=os.path.join(tempfile.gettempdir(), "pdf_queue"),
        description="Directory holding uploaded PDFs until processed",
    )
    max_upload_size_mb: int = Field(default=50, description="Maximum accepted upload size in MB")
    auto_process_uploads: bool = Field(default=True, description="Submit uploads to the worker immediately")
    worker_concurrency: int = Field(default=1, ge=1, description="Concurrent job consumers")
    job_retention_hours: float = Field(default=24, description="Age after which terminal jobs are evicted")
    job_cleanup_interval_seconds: float = Field(default=3600, description="Periodic cleanup sweep interval")
    job_cleanup_probability: float = Field(default=0.01, ge=0.0, le=1.0, description="Cleanup chance per status request")
    retry_max_attempts: int = Field(default=3, ge=1, description="Attempts for network-dependent steps")

    # Embeddings - Google Gemini
    google_api_key: Optional[str] = Field(default=None, description="Google Gemini API key")
    embedding_model: str = Field(default="models/gemini-embedding-001", description="Gemini embedding model")
    embedding_dimensions: int = Field(default=768, description="Embedding vector dimensions (MRL)")
    embedding_max_chars: int = Field(default=30000, description="Characters of document text sent for embedding")

    # Vector Store
    chroma_host: str = Field(default="localhost", description="ChromaDB host")
    chroma_port: int = Field(default=8000, description="ChromaDB port")

    # Security
    cors_origins: list[str] = Field(default=["*"], description="CORS allowed origins")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = ["development", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()

    def processing_config(self) -> "PDFProcessingConfig":
        """Snapshot of the extraction tuning values for the PDF pipeline."""
        return PDFProcessingConfig(
            line_threshold=self.pdf_line_threshold,
            para_threshold=self.pdf_para_threshold,
            column_threshold=self.pdf_column_threshold,
            ocr_language=self.ocr_language,
            ocr_max_pages=self.ocr_max_pages,
            ocr_scale=self.ocr_scale,
            ocr_max_time_seconds=self.ocr_max_time_seconds,
            ocr_page_seg_mode=self.ocr_page_seg_mode,
            min_text_length=self.min_text_length,
            sufficient_text_length=self.sufficient_text_length,
            max_items_per_page=self.max_items_per_page,
            enable_dynamic_scaling=self.enable_dynamic_scaling,
            processing_timeout=self.processing_timeout,
        )


@dataclass(frozen=True)
class PDFProcessingConfig:
    """
    Tuning values for extraction, OCR and job processing.

    Built once at startup and handed to each component; algorithmic code
    never reads the environment itself.
    """
    line_threshold: float = 5
    para_threshold: float = 10
    column_threshold: float = 50
    ocr_language: str = "eng"
    ocr_max_pages: int = 10
    ocr_scale: float = 1.2
    ocr_max_time_seconds: float = 300
    ocr_page_seg_mode: int = 1
    min_text_length: int = 100
    sufficient_text_length: int = 300
    max_items_per_page: int = 5000
    enable_dynamic_scaling: bool = True
    processing_timeout: float = 600


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Export settings instance for convenience
settings = get_settings()
