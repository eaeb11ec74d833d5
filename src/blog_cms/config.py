"""
# Configuration

Centralised settings for the blog CMS API, built on `pydantic-settings`.

Values are read from environment variables and, when present, from a dotenv file.
The file is discovered in this order:

1.  The path in `BLOG_CMS_CONFIG_PATH` (if it exists).
2.  `.env` in the project root.
3.  Environment variables only.

## Configuration Groups

- **Server**: `HOST`, `PORT`, `DEBUG`, `API_PREFIX`, `CORS_ORIGINS`
- **Database**: `MONGODB_URL`, `MONGODB_DATABASE`, credentials and timeouts
- **Security**: `SECRET_KEY`, `ALGORITHM`, `ACCESS_TOKEN_EXPIRE_MINUTES`
- **Content**: paging limits, reading speed and excerpt length
- **Client**: `API_BASE_URL`, `API_CLIENT_TIMEOUT` for `blog_cms.client`

## Usage

```python
from blog_cms.config import settings

if settings.is_production:
    ...
```

Attributes:
    settings (Settings): Global settings singleton.
"""

import os
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Constants ---
DEFAULT_ENV_FILENAME: str = ".env"
CONFIG_ENV_VAR: str = "BLOG_CMS_CONFIG_PATH"
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent.parent
INSECURE_SECRET_MARKERS = ("change", "0000", "dev-secret")


def get_config_path() -> Optional[str]:
    """
    Determine which configuration file to load, if any.

    Returns:
        Optional[str]: Absolute path of the config file, or `None` for environment-only mode.
    """
    env_path: Optional[str] = os.environ.get(CONFIG_ENV_VAR)
    if env_path and os.path.exists(env_path):
        return env_path
    env_path_file: Path = PROJECT_ROOT / DEFAULT_ENV_FILENAME
    if env_path_file.exists():
        return str(env_path_file)
    return None


CONFIG_PATH: Optional[str] = get_config_path()
if CONFIG_PATH:
    load_dotenv(dotenv_path=CONFIG_PATH, override=True)


class Settings(BaseSettings):
    """
    Application configuration settings model.

    **Validation:**
    *   `MONGODB_URL` must not be blank.
    *   Page sizes and timeouts must be positive.
    *   In production (`DEBUG=False`) the JWT `SECRET_KEY` must be set to a non-placeholder value.
    """

    model_config = SettingsConfigDict(
        env_file=CONFIG_PATH if CONFIG_PATH else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 5000
    DEBUG: bool = True
    API_PREFIX: str = "/api"
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "mern-blog"
    MONGODB_USERNAME: Optional[str] = None
    MONGODB_PASSWORD: Optional[SecretStr] = None
    MONGODB_CONNECTION_TIMEOUT: int = 10000
    MONGODB_SERVER_SELECTION_TIMEOUT: int = 5000
    MONGODB_SEED_DEFAULTS: bool = True

    # Security
    SECRET_KEY: SecretStr = SecretStr("dev-secret-key")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Content
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 50
    FEATURED_POSTS_LIMIT: int = 5
    WORDS_PER_MINUTE: int = 200
    EXCERPT_LENGTH: int = 150

    # Logging
    LOG_LEVEL: str = "INFO"

    # HTTP client layer
    API_BASE_URL: str = "http://localhost:5000/api"
    API_CLIENT_TIMEOUT: float = 10.0

    @field_validator("MONGODB_URL", mode="before")
    @classmethod
    def no_empty_urls(cls, v: Any, info: Any) -> Any:
        """Reject blank connection strings."""
        if not v or not str(v).strip():
            raise ValueError(f"{info.field_name} must be set via environment or .env and not empty!")
        return v

    @field_validator(
        "DEFAULT_PAGE_SIZE", "MAX_PAGE_SIZE", "FEATURED_POSTS_LIMIT", "WORDS_PER_MINUTE", "EXCERPT_LENGTH",
        mode="before",
    )
    @classmethod
    def validate_positive_integers(cls, v: Any, info: Any) -> int:
        value = int(v)
        if value <= 0:
            raise ValueError(f"{info.field_name} must be a positive integer")
        return value

    @model_validator(mode="after")
    def no_placeholder_secret_in_production(self) -> "Settings":
        """
        Refuse to start in production with an empty or placeholder JWT secret.

        Development keeps the bundled default so the API runs out of the box.
        """
        if self.is_production:
            secret = self.SECRET_KEY.get_secret_value()
            if not secret.strip() or any(marker in secret.lower() for marker in INSECURE_SECRET_MARKERS):
                raise ValueError("SECRET_KEY must be set via environment or .env and not hardcoded!")
        if self.DEFAULT_PAGE_SIZE > self.MAX_PAGE_SIZE:
            raise ValueError("DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE")
        return self

    @property
    def is_production(self) -> bool:
        """`True` when running with `DEBUG=False`. Internal error details are hidden in production."""
        return not self.DEBUG

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse `CORS_ORIGINS` into a list, ignoring blanks."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings: Settings = Settings()
