"""Application settings, Pydantic-based.

Endpoint selection:
  - CHAIN_RPC_URL set and non-empty -> that URL
  - otherwise -> the well-known endpoint of CHAIN_NETWORK (default polkadot)
"""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dotstarter.services.networks import (
    DECIMALS,
    DEFAULT_NETWORK,
    SS58_FORMAT,
    UNITS,
    WELL_KNOWN_ENDPOINTS,
    NetworkName,
)


def _project_root() -> Path:
    """Project root. config.py lives at the repository root."""
    return Path(__file__).resolve().parent


def _ensure_env_loaded() -> None:
    """Load .env from project root (then its parent). Idempotent."""
    root: Path = _project_root()
    for candidate in (root / ".env", root.parent / ".env"):
        if candidate.exists():
            load_dotenv(candidate, override=False)


_ensure_env_loaded()


class ChainSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CHAIN_",
        env_file=(str(_project_root() / ".env"), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    network: NetworkName = Field(default=DEFAULT_NETWORK)
    rpc_url: str | None = Field(default=None, description="Overrides the network endpoint")
    rpc_timeout: int = Field(default=30)
    retry_attempts: int = Field(default=3)
    retry_delay: float = Field(default=1.0)
    ss58_format: int | None = Field(default=None, description="Overrides the network SS58 prefix")

    @property
    def endpoint(self) -> str:
        return (self.rpc_url or "").strip() or WELL_KNOWN_ENDPOINTS[self.network]

    @property
    def resolved_ss58_format(self) -> int:
        return self.ss58_format if self.ss58_format is not None else SS58_FORMAT[self.network]

    @property
    def default_decimals(self) -> int:
        return DECIMALS[self.network]

    @property
    def default_unit(self) -> str:
        return UNITS[self.network]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DOTSTARTER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    app_name: str = Field(default="DotStarter SDK")

    chain: ChainSettings = Field(default_factory=ChainSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()
