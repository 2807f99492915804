"""
Configuration management for Bundle Builder Discounts
Handles environment variables and evaluation flags
"""
import os
import logging

logger = logging.getLogger(__name__)


class Config:
    """Centralized configuration management"""

    # ---- Environment ----
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    DEBUG = ENVIRONMENT == "development"

    # ---- Flask ----
    PORT = int(os.getenv("PORT", 5000))
    HOST = os.getenv("HOST", "0.0.0.0")

    # ---- Discounts ----
    DEFAULT_BUNDLE_TITLE = os.getenv("DEFAULT_BUNDLE_TITLE", "Bundle discount")
    ALLOW_NEGATIVE_BUNDLE_DISCOUNT = os.getenv("ALLOW_NEGATIVE_BUNDLE_DISCOUNT", "true").lower() == "true"

    # ---- Branding ----
    SERVICE_NAME = os.getenv("SERVICE_NAME", "Bundle Builder")
    VERSION = "1.0"

    @classmethod
    def validate(cls) -> bool:
        """
        Validate configuration settings
        Returns True if valid, raises ValueError if invalid
        """
        errors = []

        if not 0 < cls.PORT < 65536:
            errors.append(f"PORT must be between 1 and 65535, got {cls.PORT}")

        if not cls.DEFAULT_BUNDLE_TITLE.strip():
            errors.append("DEFAULT_BUNDLE_TITLE must not be blank")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ValueError(error_msg)

        return True

    @classmethod
    def log_config(cls):
        """Log current configuration"""
        logger.info("=" * 50)
        logger.info(f"{cls.SERVICE_NAME} Configuration")
        logger.info("=" * 50)
        logger.info(f"Environment: {cls.ENVIRONMENT}")
        logger.info(f"Debug Mode: {cls.DEBUG}")
        logger.info(f"Default Bundle Title: {cls.DEFAULT_BUNDLE_TITLE}")
        logger.info(f"Negative Bundle Discounts: {'Allowed' if cls.ALLOW_NEGATIVE_BUNDLE_DISCOUNT else 'Rejected'}")
        logger.info("=" * 50)
