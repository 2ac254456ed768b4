"""
Application Configuration
"""
from pydantic_settings import BaseSettings
from typing import Dict, List
from decimal import Decimal
import warnings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Inventory Ledger API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # Database
    DATABASE_URL: str = "sqlite:///./ledger.db"

    # Security
    SECRET_KEY: str = "your-super-secret-key-change-in-production-min-32-chars"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours

    # Whitelist of identities allowed in, email -> role. JSON in the environment:
    # AUTHORIZED_USERS='{"owner@example.com": "admin"}'
    AUTHORIZED_USERS: Dict[str, str] = {}

    # CORS
    CORS_ORIGINS: str = "http://localhost:5000,http://127.0.0.1:5000"

    # Ledger rules
    PAYMENT_TOLERANCE: Decimal = Decimal("0.01")
    MISSING_PRODUCT_COST_POLICY: str = "skip"  # skip, fail
    # cheapest_first spreads the initial payment over items; none leaves items at paid 0
    INITIAL_PAYMENT_ALLOCATION: str = "cheapest_first"

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def database_url(self) -> str:
        """Get properly formatted database URL"""
        url = self.DATABASE_URL
        if url.startswith("file:"):
            path = url[5:]
            return f"sqlite:///{path}"
        return url

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT.lower() == "production"

    def validate_ledger_settings(self):
        """Reject unknown policy names before any service runs with them"""
        if self.MISSING_PRODUCT_COST_POLICY not in ("skip", "fail"):
            raise ValueError(
                f"MISSING_PRODUCT_COST_POLICY must be 'skip' or 'fail', got '{self.MISSING_PRODUCT_COST_POLICY}'"
            )
        if self.INITIAL_PAYMENT_ALLOCATION not in ("cheapest_first", "none"):
            raise ValueError(
                f"INITIAL_PAYMENT_ALLOCATION must be 'cheapest_first' or 'none', got '{self.INITIAL_PAYMENT_ALLOCATION}'"
            )
        if self.PAYMENT_TOLERANCE < 0:
            raise ValueError("PAYMENT_TOLERANCE cannot be negative")
        return True

    def validate_security_settings(self):
        """Validate security settings and warn about insecure defaults"""
        default_keys = [
            "your-super-secret-key-change-in-production-min-32-chars",
            "dev-secret-key-change-in-production",
            "secret-key",
            "change-me",
        ]

        if self.SECRET_KEY in default_keys:
            if self.is_production:
                raise ValueError(
                    "CRITICAL: Default SECRET_KEY detected in production! "
                    "Set the SECRET_KEY environment variable to a secure random value."
                )
            else:
                warnings.warn(
                    "WARNING: Using default SECRET_KEY. "
                    "Set SECRET_KEY environment variable for production.",
                    UserWarning
                )

        if len(self.SECRET_KEY) < 32:
            if self.is_production:
                raise ValueError(
                    "CRITICAL: SECRET_KEY is too short for production! "
                    "Use at least 32 characters."
                )
            else:
                warnings.warn(
                    "WARNING: SECRET_KEY should be at least 32 characters.",
                    UserWarning
                )

        if self.is_production and self.DEBUG:
            raise ValueError(
                "CRITICAL: DEBUG mode is enabled in production! "
                "Set DEBUG=False for production environment."
            )

        if self.is_production and not self.AUTHORIZED_USERS:
            warnings.warn(
                "WARNING: AUTHORIZED_USERS is empty in production. "
                "Nobody will be able to use the API.",
                UserWarning
            )

        return True

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
settings.validate_ledger_settings()

# Validate security settings on import (but don't crash in development)
try:
    settings.validate_security_settings()
except ValueError as e:
    if settings.is_production:
        raise
    else:
        warnings.warn(str(e), UserWarning)
