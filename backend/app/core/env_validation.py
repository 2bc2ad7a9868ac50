"""
Environment variable validation and security checks.

This module validates that all required environment variables are properly
configured before the application starts.
"""

import sys
from typing import List, Optional, Tuple

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

_PLACEHOLDER_MARKERS = ("change", "your-", "example")


class EnvironmentValidationError(Exception):
    """Raised when environment validation fails."""
    pass


def validate_secret_key(key_name: str, key_value: Optional[str], min_length: int = 32) -> List[str]:
    """
    Validate that a secret key meets security requirements.

    Args:
        key_name: Name of the key (for error messages)
        key_value: The key value to validate
        min_length: Minimum required length

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not key_value:
        errors.append(f"{key_name} is not set")
        return errors

    if len(key_value) < min_length:
        errors.append(
            f"{key_name} is too short (must be at least {min_length} characters)"
        )

    # Check if it's a default/example value
    if any(marker in key_value.lower() for marker in _PLACEHOLDER_MARKERS):
        errors.append(
            f"{key_name} appears to be a placeholder value - update with a real secret key"
        )

    if key_name == "JWT_SECRET_KEY" and key_value == settings.SECRET_KEY:
        errors.append(
            "JWT_SECRET_KEY should be different from SECRET_KEY for security"
        )

    return errors


def validate_unsubscribe_secret() -> List[str]:
    """
    Validate the unsubscribe signing secret.

    Without it every unsubscribe link would be rejected, so a missing secret
    is an error rather than a warning.
    """
    errors = []

    if settings.UNSUBSCRIBE_SECRET:
        errors.extend(validate_secret_key("UNSUBSCRIBE_SECRET", settings.UNSUBSCRIBE_SECRET))
    elif settings.CRON_SECRET:
        logger.warning(
            "unsubscribe_secret_fallback",
            message="UNSUBSCRIBE_SECRET not set - signing unsubscribe tokens with CRON_SECRET",
        )
        errors.extend(validate_secret_key("CRON_SECRET", settings.CRON_SECRET))
    else:
        errors.append(
            "UNSUBSCRIBE_SECRET (or CRON_SECRET) is not set - unsubscribe links cannot be verified"
        )

    if settings.UNSUBSCRIBE_TOKEN_MAX_AGE_DAYS <= 0:
        errors.append("UNSUBSCRIBE_TOKEN_MAX_AGE_DAYS must be positive")

    return errors


def validate_database_url() -> List[str]:
    """
    Validate database URL configuration.

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")
        return errors

    if not settings.DATABASE_URL.startswith("postgresql+asyncpg://"):
        errors.append(
            "DATABASE_URL must use asyncpg driver (format: postgresql+asyncpg://...)"
        )

    return errors


def validate_redis_url() -> List[str]:
    """
    Validate Redis URL configuration.

    Redis only backs rate limiting, so it is checked only when that is on.
    """
    errors = []

    if not settings.RATE_LIMIT_ENABLED:
        return errors

    if not settings.REDIS_URL:
        errors.append("REDIS_URL is not set (required when RATE_LIMIT_ENABLED)")
        return errors

    if not settings.REDIS_URL.startswith(("redis://", "rediss://")):
        errors.append(
            "REDIS_URL must start with redis:// or rediss:// (format: redis://host:port/db)"
        )

    return errors


def validate_production_settings() -> List[str]:
    """
    Validate production-specific settings.

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not settings.is_production:
        return errors

    if settings.DEBUG:
        errors.append("DEBUG must be false in production")

    if not settings.PUBLIC_BASE_URL.startswith("https://"):
        errors.append("PUBLIC_BASE_URL must use https in production")

    if "localhost" in ",".join(settings.ALLOWED_ORIGINS):
        logger.warning(
            "localhost_in_allowed_origins",
            message="ALLOWED_ORIGINS includes localhost in production - may be insecure"
        )

    if settings.LOG_FORMAT != "json":
        logger.warning(
            "log_format_not_json",
            message="LOG_FORMAT should be 'json' in production for better log aggregation"
        )

    if settings.LOG_LEVEL == "DEBUG":
        logger.warning(
            "log_level_is_debug",
            message="LOG_LEVEL is DEBUG in production - may impact performance"
        )

    return errors


def validate_environment() -> Tuple[bool, List[str]]:
    """
    Validate all environment variables.

    Returns:
        (is_valid, list_of_errors)
    """
    all_errors = []

    logger.info(
        "validating_environment",
        app_env=settings.APP_ENV,
        app_name=settings.APP_NAME
    )

    all_errors.extend(validate_secret_key("SECRET_KEY", settings.SECRET_KEY))
    all_errors.extend(validate_secret_key("JWT_SECRET_KEY", settings.JWT_SECRET_KEY))
    all_errors.extend(validate_unsubscribe_secret())
    all_errors.extend(validate_database_url())
    all_errors.extend(validate_redis_url())

    if settings.is_production:
        all_errors.extend(validate_production_settings())

    if all_errors:
        logger.error(
            "environment_validation_failed",
            errors=all_errors,
            error_count=len(all_errors)
        )
        return False, all_errors

    logger.info(
        "environment_validation_successful",
        app_env=settings.APP_ENV,
        features_enabled={
            "rate_limit": settings.RATE_LIMIT_ENABLED,
            "dedicated_unsubscribe_secret": bool(settings.UNSUBSCRIBE_SECRET),
        }
    )
    return True, []


def validate_or_exit():
    """
    Validate environment and exit if validation fails.

    Called during application startup outside development and testing.
    """
    is_valid, errors = validate_environment()

    if not is_valid:
        logger.critical(
            "startup_aborted_invalid_environment",
            errors=errors
        )
        print("\nENVIRONMENT VALIDATION FAILED\n")
        print("The following configuration errors were found:\n")
        for i, error in enumerate(errors, 1):
            print(f"  {i}. {error}")
        print("\nPlease fix these errors and restart the application.")
        print("See env_template for configuration reference.\n")
        sys.exit(1)

    logger.info("environment_validation_passed")
