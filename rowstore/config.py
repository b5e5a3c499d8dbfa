"""
Configuration settings for rowstore.

Uses Pydantic Settings to load environment variables for the remote store,
logging, ingestion and pagination defaults.

The store endpoint and credential are resolved through an ordered chain of
providers: request-scoped bindings (e.g. an edge runtime's `env` object) are
consulted before the process environment. The first provider that yields a
complete configuration wins.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional, Protocol, Sequence, runtime_checkable

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rowstore.errors import ConfigurationError

URL_ENV = "TURSO_DATABASE_URL"
TOKEN_ENV = "TURSO_AUTH_TOKEN"


class Settings(BaseSettings):
    # Remote store
    database_url: Optional[str] = Field(None, alias=URL_ENV)
    auth_token: Optional[str] = Field(None, alias=TOKEN_ENV)
    request_timeout_seconds: float = Field(30.0, alias="STORE_TIMEOUT_SECONDS", gt=0)

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(False, alias="LOG_JSON")

    # Ingestion defaults
    ingest_batch_size: int = Field(150, alias="INGEST_BATCH_SIZE", ge=1)
    ingest_concurrency: int = Field(15, alias="INGEST_CONCURRENCY", ge=1)
    ingest_max_attempts: int = Field(3, alias="INGEST_MAX_ATTEMPTS", ge=1)
    ingest_backoff_seconds: float = Field(1.0, alias="INGEST_BACKOFF_SECONDS", ge=0)

    # Pagination / search
    default_page_size: int = Field(50, alias="DEFAULT_PAGE_SIZE", ge=1)
    max_page_size: int = Field(500, alias="MAX_PAGE_SIZE", ge=1)
    search_case_sensitive: bool = Field(False, alias="SEARCH_CASE_SENSITIVE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


@dataclass(frozen=True)
class StoreConfig:
    """Endpoint and bearer credential for the remote store."""

    url: str
    auth_token: str


@runtime_checkable
class ConfigProvider(Protocol):
    """A source that may be able to supply the store configuration."""

    name: str

    def load(self) -> Optional[StoreConfig]:
        """Return a complete StoreConfig, or None if this source lacks one."""
        ...


def _clean(value: Optional[str]) -> Optional[str]:
    # Some runtimes stringify unset bindings.
    if value is None:
        return None
    value = value.strip()
    if not value or value == "undefined":
        return None
    return value


class MappingProvider:
    """
    Reads the store configuration from a mapping of bindings, such as the
    per-request environment an edge runtime hands to a handler.
    """

    name = "bindings"

    def __init__(self, bindings: Optional[Mapping[str, Optional[str]]]) -> None:
        self._bindings = bindings or {}

    def load(self) -> Optional[StoreConfig]:
        url = _clean(self._bindings.get(URL_ENV))
        token = _clean(self._bindings.get(TOKEN_ENV))
        if url and token:
            return StoreConfig(url=url, auth_token=token)
        return None


class SettingsProvider:
    """Reads the store configuration from process environment / `.env`."""

    name = "environment"

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings

    def load(self) -> Optional[StoreConfig]:
        settings = self._settings or get_settings()
        url = _clean(settings.database_url)
        token = _clean(settings.auth_token)
        if url and token:
            return StoreConfig(url=url, auth_token=token)
        return None


def default_providers(
    settings: Optional[Settings] = None,
    bindings: Optional[Mapping[str, Optional[str]]] = None,
) -> list[ConfigProvider]:
    """Bindings first (when given), then the process environment."""
    providers: list[ConfigProvider] = []
    if bindings is not None:
        providers.append(MappingProvider(bindings))
    providers.append(SettingsProvider(settings))
    return providers


def resolve_store_config(providers: Optional[Sequence[ConfigProvider]] = None) -> StoreConfig:
    """
    Query providers in order and return the first complete configuration.

    Raises
    ------
    ConfigurationError
        If no provider can supply both the endpoint URL and the credential.
    """
    chain = list(providers) if providers is not None else default_providers()
    for provider in chain:
        config = provider.load()
        if config is not None:
            return config
    tried = ", ".join(p.name for p in chain) or "none"
    raise ConfigurationError(
        f"Missing database configuration: set {URL_ENV} and {TOKEN_ENV} (sources tried: {tried})"
    )


__all__ = [
    "Settings",
    "get_settings",
    "StoreConfig",
    "ConfigProvider",
    "MappingProvider",
    "SettingsProvider",
    "default_providers",
    "resolve_store_config",
    "URL_ENV",
    "TOKEN_ENV",
]
