"""
config.py — Centralized Application Configuration Loader

Purpose:
- Define a single source of truth for application settings.
- Load and validate environment variables from `.env` or OS environment.

Covers:
- Database connection for the user directory.
- REST namespace / route layout (namespace, URL prefix, alternate-id meta key).
- Response shaping (site URL for links, avatar sizes, exposed user meta keys).
- Authorization knobs (multisite mode, super administrators).
- JWT settings for actor authentication.

This module does NOT:
- Execute any DB connections.
- Make external API calls.
- Modify runtime settings.
"""

from pathlib import Path
from typing import Annotated, Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# .env lives at the project root, next to pyproject.toml
_CONFIG_DIR = Path(__file__).parent  # wrdsb_rest/core
_PROJECT_DIR = _CONFIG_DIR.parent.parent
_ENV_FILE = _PROJECT_DIR / ".env"

if _ENV_FILE.exists():
    _ENV_FILE_PATH = str(_ENV_FILE.resolve())
else:
    # Fallback: use relative path (pydantic will look in CWD)
    _ENV_FILE_PATH = ".env"


def _split_csv(value: Any) -> Any:
    """Accept `a,b,c` strings from the environment for list settings."""
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class Settings(BaseSettings):
    """
    Settings container for the user lookup API.
    """

    # Database
    DATABASE_URL: str = Field(
        "sqlite:///./wrdsb_rest.db",
        description="SQLAlchemy URL of the user directory database",
    )

    # Logging
    LOG_LEVEL: str = Field(
        "INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # Routing
    SITE_URL: str = Field(
        "http://localhost:8000",
        description="Public base URL, used to build author links and REST links",
    )
    REST_URL_PREFIX: str = Field(
        "/wp-json",
        description="Path prefix every REST namespace is mounted under",
    )
    REST_NAMESPACE: str = Field(
        "wrdsb/v2",
        description="Namespace of the custom user lookup routes",
    )
    ID_NUMBER_META_KEY: str = Field(
        "wrdsb_id_number",
        description="User meta key holding the institutional ID number",
    )

    # Response shaping
    REST_USER_META_KEYS: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["wrdsb_id_number"],
        description="User meta keys exposed (and writable) through the `meta` field",
    )
    REST_CONTENT_TYPES: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["post", "page", "attachment"],
        description="Content types counted when deciding whether a user is a public author",
    )
    SHOW_AVATARS: bool = Field(
        True,
        description="Include the avatar_urls field in schema and responses",
    )
    AVATAR_SIZES: Annotated[List[int], NoDecode] = Field(
        default_factory=lambda: [24, 48, 96],
        description="Avatar pixel sizes listed under avatar_urls",
    )
    AVATAR_DEFAULT: str = Field(
        "mm",
        description="Gravatar fallback image style",
    )
    AVATAR_RATING: str = Field(
        "g",
        description="Maximum Gravatar rating",
    )

    # Authorization
    MULTISITE: bool = Field(
        False,
        description="Multisite mode enables super administrators",
    )
    SUPER_ADMINS: Annotated[List[str], NoDecode] = Field(
        default_factory=list,
        description="Logins of super administrators (only honoured in multisite mode)",
    )

    # Auth tokens
    JWT_SECRET_KEY: str = Field(
        "change-me",
        description="Secret used to sign actor access tokens",
    )
    JWT_ALGORITHM: str = Field(
        "HS256",
        description="Signing algorithm for access tokens",
    )
    JWT_EXPIRE_MINUTES: int = Field(
        60,
        description="Access token lifetime (minutes)",
    )

    @field_validator(
        "REST_USER_META_KEYS",
        "REST_CONTENT_TYPES",
        "AVATAR_SIZES",
        "SUPER_ADMINS",
        mode="before",
    )
    @classmethod
    def split_lists(cls, v: Any) -> Any:
        return _split_csv(v)

    @field_validator("REST_NAMESPACE", mode="before")
    @classmethod
    def strip_namespace(cls, v: Any) -> Any:
        """Namespaces are stored without surrounding slashes."""
        if isinstance(v, str):
            return v.strip().strip("/")
        return v

    @field_validator("REST_URL_PREFIX", mode="before")
    @classmethod
    def normalize_prefix(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().rstrip("/")
            if v and not v.startswith("/"):
                v = "/" + v
        return v

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Singleton: every import shares this object
settings = Settings()
