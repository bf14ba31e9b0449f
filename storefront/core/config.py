"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports three modes:
    - DEVELOPMENT: Uses mock services with simulated latency
    - STAGING: Mock services, no simulated failures
    - PRODUCTION: Same services, tuned by environment variables

Pricing parameters (tax rate, delivery fee, discount) and the timing of the
simulated order lifecycle (fetch latency, submission latency, stage interval)
all live here so the storefront can be re-tuned without code changes.

Usage:
    from storefront.core.config import get_settings

    settings = get_settings()
    print(settings.tax_rate)

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import sys
from decimal import Decimal
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local testing with mock services
        PRODUCTION: Live environment
        STAGING: Pre-production testing
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.

    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging and error details

        # Pricing
        tax_rate: Tax rate applied to the subtotal (decimal, 0-1)
        delivery_fee: Flat delivery charge
        default_discount: Discount applied at checkout

        # Order lifecycle simulation
        tracking_interval_seconds: Time between two tracking stages
        order_fetch_latency_seconds: Simulated latency of an order lookup
        submission_latency_seconds: Simulated latency of an order submission
        submission_failure_rate: Probability of a simulated submission failure
        max_finished_trackers: Finished trackers kept before eviction
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Storefront Order Service",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8001,
        description="API server port"
    )

    # ==========================================================================
    # BUSINESS CONFIGURATION
    # ==========================================================================

    restaurant_name: str = Field(
        default="The Gourmet Place",
        description="Restaurant display name"
    )
    currency: str = Field(
        default="usd",
        description="Currency code used for every amount"
    )
    tax_rate: Decimal = Field(
        default=Decimal("0.10"),
        description="Tax rate as decimal (10%)"
    )
    delivery_fee: Decimal = Field(
        default=Decimal("3.99"),
        description="Standard delivery fee"
    )
    default_discount: Decimal = Field(
        default=Decimal("5.00"),
        description="Discount applied to every order at checkout"
    )
    supported_countries: str = Field(
        default="US,CA,GB,AU,DE",
        description="Comma-separated list of country codes we deliver to"
    )

    # ==========================================================================
    # ORDER LIFECYCLE SIMULATION
    # ==========================================================================

    tracking_interval_seconds: float = Field(
        default=7.0,
        gt=0,
        description="Seconds between two order tracking stages"
    )
    order_fetch_latency_seconds: float = Field(
        default=1.5,
        ge=0,
        description="Simulated latency when fetching an order"
    )
    submission_latency_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Simulated latency when submitting an order"
    )
    submission_failure_rate: float = Field(
        default=0.0,
        ge=0,
        le=1,
        description="Probability of a simulated submission failure"
    )
    max_finished_trackers: int = Field(
        default=20,
        ge=0,
        description="Finished order trackers kept for polling before the oldest are dropped"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    @field_validator("tax_rate")
    @classmethod
    def validate_tax_rate(cls, v: Decimal) -> Decimal:
        """Tax rate must be a fraction between 0 and 1."""
        if not Decimal("0") <= v <= Decimal("1"):
            raise ValueError("tax_rate must be between 0 and 1")
        return v

    @field_validator("delivery_fee", "default_discount")
    @classmethod
    def validate_non_negative(cls, v: Decimal) -> Decimal:
        """Fees and discounts are never negative."""
        if v < 0:
            raise ValueError("Amount must not be negative")
        return v

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def supported_countries_list(self) -> list[str]:
        """Get supported country codes as a list."""
        return [c.strip().upper() for c in self.supported_countries.split(",") if c.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are loaded only once and stay
    consistent across the application lifecycle.

    Returns:
        Settings: Configured application settings

    Example:
        >>> settings = get_settings()
        >>> print(settings.env_mode)
        EnvironmentMode.DEVELOPMENT
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured root logger
    """
    settings = get_settings()

    # Set level based on debug mode
    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return logging.getLogger("storefront")
