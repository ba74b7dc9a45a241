"""
Configuration Management for the Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here, including the
token signing key. Components never read the environment themselves: the
key is handed to the TokenCodec at construction, so tests can substitute
a deterministic one.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    """Token signing and password hashing configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        extra="ignore"
    )

    access_key: str = Field(
        ...,
        min_length=1,
        description="HMAC secret used to sign access and refresh tokens"
    )
    algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    access_token_ttl_seconds: int = Field(
        default=60 * 60,
        ge=1,
        description="Access token lifetime (1 hour)"
    )
    refresh_token_ttl_seconds: int = Field(
        default=7 * 24 * 60 * 60,
        ge=1,
        description="Refresh token lifetime (7 days)"
    )
    password_hash_method: str = Field(
        default="scrypt",
        description="werkzeug password hash method"
    )

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        """Only HMAC algorithms make sense with a shared secret."""
        if not v.upper().startswith("HS"):
            raise ValueError(f"Unsupported signing algorithm: {v}")
        return v.upper()


class MongoSettings(BaseSettings):
    """MongoDB document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONGO_",
        extra="ignore"
    )

    uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string"
    )
    database: str = Field(
        default="fintrack",
        description="Database name"
    )
    server_selection_timeout_ms: int = Field(
        default=5000,
        ge=100,
        description="How long to wait for a reachable server"
    )

    # Collection names
    categories_collection: str = "categories"
    transactions_collection: str = "transactions"
    users_collection: str = "users"
    groups_collection: str = "groups"
    audit_collection: str = "audit_log"


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )
    storage_backend: Literal["memory", "mongo"] = Field(
        default="memory",
        description="Which document store implementation to wire up"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def mongo(self) -> MongoSettings:
        return MongoSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("auth", "mongo", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
