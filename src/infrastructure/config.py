"""
Infrastructure Layer: Configuration Adapter
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application settings loaded from .env file and environment variables.
    Follows 12-factor app methodology.
    """

    # Ledger endpoint
    rpc_url: str = Field("http://127.0.0.1:8545", alias="RPC_URL")
    token_contract_address: str = Field(..., alias="TOKEN_CONTRACT_ADDRESS")
    marketplace_contract_address: str = Field(..., alias="MARKETPLACE_CONTRACT_ADDRESS")

    # Wallet (read-only session when unset)
    wallet_private_key: Optional[SecretStr] = Field(None, alias="WALLET_PRIVATE_KEY")

    # History scanning
    max_block_range: int = Field(5000, alias="MAX_BLOCK_RANGE", ge=1)
    history_page_size: int = Field(10, alias="HISTORY_PAGE_SIZE", ge=1)

    # Metadata
    ipfs_gateway: str = Field("https://ipfs.io/ipfs/", alias="IPFS_GATEWAY")

    # System
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Loads settings once; fails fast when required values are missing."""
    return Settings()  # type: ignore[call-arg]
