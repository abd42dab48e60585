"""
Configuration settings for the Testing Engine.

All settings can be overridden via environment variables.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Environment Configuration
    ENVIRONMENT: str = Field(default="development", description="Current environment")

    # API Configuration
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8080, description="API port")
    ENABLE_DOCS: bool = Field(default=True, description="Enable OpenAPI docs")
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5000", "http://127.0.0.1:5000"],
        description="CORS allowed origins"
    )

    # Persistence
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./testing_engine.db",
        description="Async SQLAlchemy URL (postgresql+asyncpg://... in production)"
    )

    # System under test
    E2E_BASE_URL: str = Field(
        default="http://localhost:5000",
        description="Base URL navigated by browser sweeps"
    )
    API_BASE_URL: str = Field(
        default="http://localhost:5000",
        description="Base URL for network-request test cases"
    )
    API_REQUEST_TIMEOUT_SECONDS: float = Field(default=30.0, description="Network executor timeout")

    # Sweep credentials (loaded from secrets)
    SUPER_ADMIN_EMAIL: Optional[str] = Field(default=None, description="Sweep login email")
    SUPER_ADMIN_PASSWORD: Optional[str] = Field(default=None, description="Sweep login password")

    # Browser
    CHROMIUM_PATH: Optional[str] = Field(default=None, description="Preferred Chromium executable")
    CHROMIUM_CANDIDATE_PATHS: List[str] = Field(
        default=["/run/current-system/sw/bin/chromium", "/usr/bin/chromium", "chromium"],
        description="Fallback executables tried in order before the bundled browser"
    )
    BROWSER_ARGS: List[str] = Field(
        default=["--no-sandbox", "--disable-setuid-sandbox", "--disable-gpu", "--disable-dev-shm-usage"],
        description="Extra Chromium launch arguments"
    )
    BROWSER_VIEWPORT_WIDTH: int = Field(default=1280, description="Viewport width")
    BROWSER_VIEWPORT_HEIGHT: int = Field(default=800, description="Viewport height")
    BROWSER_USER_AGENT: str = Field(
        default="TestingEngine-E2E-Runner/1.0",
        description="User agent sent by the sweep browser"
    )

    # Timeouts (milliseconds, Playwright convention)
    NAVIGATION_TIMEOUT_MS: int = Field(default=30000, description="Page navigation timeout")
    LOGIN_FORM_TIMEOUT_MS: int = Field(default=10000, description="Wait for login inputs")
    LOGIN_REDIRECT_TIMEOUT_MS: int = Field(default=15000, description="Wait for post-login redirect")

    # Page checks
    ACCESSIBILITY_TAGS: List[str] = Field(
        default=["wcag2a", "wcag2aa"],
        description="axe-core rule tags used by the accessibility scan"
    )
    CONTENT_MIN_LENGTH: int = Field(default=50, description="Minimum rendered text length")
    SCREENSHOTS_PATH: str = Field(default="./screenshots", description="Failure screenshot root")

    # Catalog
    SYNC_CATALOG_ON_STARTUP: bool = Field(default=True, description="Run auto-discovery on startup")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Log level")
    LOG_FORMAT: str = Field(default="json", description="Log format: json or text")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()


def validate_settings(config: Optional[Settings] = None):
    """Validate critical settings on startup."""
    config = config or settings
    errors = []

    for name in ("NAVIGATION_TIMEOUT_MS", "LOGIN_FORM_TIMEOUT_MS", "LOGIN_REDIRECT_TIMEOUT_MS"):
        if getattr(config, name) <= 0:
            errors.append(f"{name} must be positive")

    if config.API_REQUEST_TIMEOUT_SECONDS <= 0:
        errors.append("API_REQUEST_TIMEOUT_SECONDS must be positive")

    if not config.ACCESSIBILITY_TAGS:
        errors.append("ACCESSIBILITY_TAGS must name at least one axe tag")

    if config.LOG_FORMAT.lower() not in ("json", "text"):
        errors.append(f"LOG_FORMAT must be 'json' or 'text', got '{config.LOG_FORMAT}'")

    if errors:
        raise ValueError("Configuration errors: " + "; ".join(errors))


# Secret patterns for redaction
SECRET_PATTERNS = [
    r"password",
    r"secret",
    r"token",
    r"api[_-]?key",
    r"auth",
    r"credential",
    r"bearer",
    r"cookie",
    r"session",
]
