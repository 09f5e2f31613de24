"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management for the scanning service using Pydantic Settings.

A single cached Settings instance is shared across the application.

Features:
---------
- Environment variable loading with type validation
- .env file support for local development
- Scanner tuning knobs (code lengths, debounce, history, tone, video)

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

List values (ACCEPTED_LENGTHS, SYMBOLOGIES) are given as JSON arrays,
e.g. ACCEPTED_LENGTHS='[6, 9, 13]'.

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        database_url: SQLAlchemy URL of the key-value store backing history
        cors_origins: Allowed CORS origins (JSON array string)
        accepted_lengths: Digit counts a normalized code may have
        debounce_ms: Minimum gap before the same code is accepted again
        history_cap: Maximum number of history entries kept
        history_key: Store key holding the serialized history
        tone_frequency_hz: Confirmation tone pitch
        tone_duration_ms: Confirmation tone length
        tone_gain: Starting amplitude of the tone envelope
        feedback_enabled: Play the confirmation tone on accepted scans
        video_width: Ideal capture width
        video_height: Ideal capture height
        aspect_ratio: Ideal capture aspect ratio
        facing_mode: Preferred camera direction
        symbologies: Barcode symbologies handed to the decoder
        fault_threshold: Consecutive decode faults before the loop gives up
        max_probe_devices: Number of camera indexes probed on enumeration
        preview_enabled: Keep an annotated preview of the latest frame
        preview_jpeg_quality: JPEG quality of the preview image

    Example:
        >>> settings = Settings()
        >>> settings.accepted_lengths
        [6, 9]
        >>> settings.debounce_seconds
        0.8
    """

    # =========================================================================
    # PYDANTIC SETTINGS CONFIGURATION
    # =========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="LiveScan Barcode Service",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # STORAGE SETTINGS
    # =========================================================================
    database_url: str = Field(
        default="sqlite:///./storage/db/livescan.db",
        description="SQLAlchemy connection string for the key-value store"
    )

    history_key: str = Field(
        default="scan_history",
        min_length=1,
        description="Store key holding the serialized scan history"
    )

    history_cap: int = Field(
        default=50,
        ge=1,
        le=10000,
        description="Maximum number of history entries kept"
    )

    # =========================================================================
    # SCAN GATE SETTINGS
    # =========================================================================
    accepted_lengths: List[int] = Field(
        default=[6, 9],
        description="Digit counts accepted after normalization"
    )

    debounce_ms: int = Field(
        default=800,
        ge=0,
        le=60000,
        description="Window during which a repeated code is suppressed"
    )

    # =========================================================================
    # FEEDBACK SETTINGS
    # =========================================================================
    feedback_enabled: bool = Field(
        default=True,
        description="Play a confirmation tone on accepted scans"
    )

    tone_frequency_hz: float = Field(
        default=1800.0,
        gt=0,
        le=20000,
        description="Confirmation tone frequency in Hz"
    )

    tone_duration_ms: int = Field(
        default=150,
        ge=10,
        le=2000,
        description="Confirmation tone duration in milliseconds"
    )

    tone_gain: float = Field(
        default=0.15,
        gt=0,
        le=1.0,
        description="Initial amplitude of the decaying tone"
    )

    # =========================================================================
    # CAPTURE SETTINGS
    # =========================================================================
    video_width: int = Field(
        default=1280,
        ge=160,
        le=7680,
        description="Ideal capture width in pixels"
    )

    video_height: int = Field(
        default=720,
        ge=120,
        le=4320,
        description="Ideal capture height in pixels"
    )

    aspect_ratio: float = Field(
        default=16 / 9,
        gt=0,
        description="Ideal capture aspect ratio"
    )

    facing_mode: str = Field(
        default="environment",
        description="Preferred camera direction: environment or user"
    )

    max_probe_devices: int = Field(
        default=10,
        ge=1,
        le=64,
        description="Camera indexes probed during enumeration"
    )

    # =========================================================================
    # DECODE SETTINGS
    # =========================================================================
    symbologies: List[str] = Field(
        default=["EAN13", "EAN8", "UPCA", "UPCE", "CODE128", "CODE39"],
        description="Symbologies the decoder looks for"
    )

    fault_threshold: int = Field(
        default=30,
        ge=1,
        le=10000,
        description="Consecutive decode faults before a decode failure is raised"
    )

    preview_enabled: bool = Field(
        default=True,
        description="Keep an annotated JPEG of the latest frame"
    )

    preview_jpeg_quality: int = Field(
        default=70,
        ge=10,
        le=100,
        description="JPEG quality of the preview image"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """
        Validate and normalize application environment.

        Unknown values fall back to 'development'.
        """
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("accepted_lengths")
    @classmethod
    def validate_accepted_lengths(cls, value: List[int]) -> List[int]:
        """
        Validate the accepted code lengths.

        Raises:
            ValueError: If the list is empty or holds non-positive lengths
        """
        if not value:
            raise ValueError("accepted_lengths must contain at least one length")

        if any(length <= 0 for length in value):
            raise ValueError(f"accepted_lengths must be positive: {value}")

        return sorted(set(value))

    @field_validator("facing_mode")
    @classmethod
    def validate_facing_mode(cls, value: str) -> str:
        """Validate the preferred camera direction."""
        normalized = value.lower().strip()

        if normalized not in {"environment", "user"}:
            raise ValueError(
                f"Unsupported facing mode: {value}. Supported: environment, user"
            )

        return normalized

    @field_validator("symbologies")
    @classmethod
    def validate_symbologies(cls, value: List[str]) -> List[str]:
        """Normalize symbology names to upper case without separators."""
        return [name.strip().upper().replace("-", "").replace("_", "") for name in value if name.strip()]

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def debounce_seconds(self) -> float:
        """Debounce window in seconds."""
        return self.debounce_ms / 1000.0

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS origins from JSON string to list.

        Returns:
            List of allowed origin strings
        """
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================
    def get_database_path(self) -> Optional[Path]:
        """
        Extract database file path for SQLite databases.

        Returns:
            Path to database file, or None for non-SQLite or in-memory databases
        """
        if not self.database_url.startswith("sqlite"):
            return None

        db_path = self.database_url.replace("sqlite:///", "", 1)
        if not db_path or db_path.startswith("sqlite:") or db_path == ":memory:":
            return None
        if db_path.startswith("./"):
            db_path = db_path[2:]
        return Path(db_path)

    def ensure_directories(self) -> None:
        """Create the SQLite database directory when needed."""
        db_path = self.get_database_path()
        if db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)

        logger.debug("Required directories created/verified")

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"debug={self.debug})"
        )


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global Settings instance (singleton pattern).

    Returns:
        Global Settings instance
    """
    settings = Settings()

    settings.ensure_directories()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings
