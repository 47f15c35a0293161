"""
Wallet Explorer - Configuration.

============================================================
CONFIGURATION SOURCES
============================================================

Configuration can be loaded from:
- Default values
- Environment variables
- A .env file (via python-dotenv)

Timeouts follow the call type: short for metadata lookups,
long for ledger queries and paginated transaction lists.

============================================================
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional

from dotenv import load_dotenv

from wallet_explorer.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


# =============================================================
# LEDGER
# =============================================================


@dataclass
class LedgerConfig:
    """Ledger node connection settings."""
    rpc_url: Optional[str] = None
    network: str = "mainnet"
    infura_project_id: Optional[str] = None
    timeout_seconds: float = 30.0

    def resolved_rpc_url(self) -> str:
        """
        Explicit RPC URL, else the Infura URL for the network.

        Raises:
            ConfigurationError: If neither is configured.
        """
        if self.rpc_url:
            return self.rpc_url
        if self.infura_project_id:
            return f"https://{self.network}.infura.io/v3/{self.infura_project_id}"
        raise ConfigurationError(
            message="Neither ETHEREUM_RPC_URL nor INFURA_PROJECT_ID is configured",
            config_key="ETHEREUM_RPC_URL",
            component="config",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rpc_url": self.rpc_url,
            "network": self.network,
            "infura_project_id": "***" if self.infura_project_id else None,
            "timeout_seconds": self.timeout_seconds,
        }


# =============================================================
# EXPLORER
# =============================================================


@dataclass
class ExplorerConfig:
    """Block explorer API settings."""
    api_key: Optional[str] = None
    base_url: str = "https://api.etherscan.io/v2/api"
    chain_id: int = 1
    timeout_seconds: float = 8.0
    page_timeout_seconds: float = 30.0
    page_delay_seconds: float = 0.2
    max_results: int = 10_000

    def to_dict(self) -> dict[str, Any]:
        return {
            "api_key": "***" if self.api_key else None,
            "base_url": self.base_url,
            "chain_id": self.chain_id,
            "timeout_seconds": self.timeout_seconds,
            "page_timeout_seconds": self.page_timeout_seconds,
            "page_delay_seconds": self.page_delay_seconds,
            "max_results": self.max_results,
        }


# =============================================================
# RESOLVER
# =============================================================


@dataclass
class ResolverConfig:
    """Token metadata resolution settings."""
    call_timeout_seconds: float = 8.0
    metadata_delay_seconds: float = 0.1

    def to_dict(self) -> dict[str, Any]:
        return {
            "call_timeout_seconds": self.call_timeout_seconds,
            "metadata_delay_seconds": self.metadata_delay_seconds,
        }


# =============================================================
# AGGREGATE
# =============================================================


@dataclass
class WalletExplorerConfig:
    """Combines all sub-configurations."""
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    explorer: ExplorerConfig = field(default_factory=ExplorerConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "WalletExplorerConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - ETHEREUM_RPC_URL
        - ETHEREUM_NETWORK
        - INFURA_PROJECT_ID
        - LEDGER_TIMEOUT_SECONDS
        - ETHERSCAN_API_KEY
        - ETHERSCAN_API_URL
        - ETHERSCAN_CHAIN_ID
        - EXPLORER_TIMEOUT_SECONDS
        """
        if dotenv:
            load_dotenv()

        config = cls()

        # Ledger
        config.ledger.rpc_url = os.getenv("ETHEREUM_RPC_URL") or None
        if os.getenv("ETHEREUM_NETWORK"):
            config.ledger.network = os.getenv("ETHEREUM_NETWORK")
        config.ledger.infura_project_id = os.getenv("INFURA_PROJECT_ID") or None
        if os.getenv("LEDGER_TIMEOUT_SECONDS"):
            config.ledger.timeout_seconds = float(os.getenv("LEDGER_TIMEOUT_SECONDS"))

        # Explorer
        config.explorer.api_key = os.getenv("ETHERSCAN_API_KEY") or None
        if os.getenv("ETHERSCAN_API_URL"):
            config.explorer.base_url = os.getenv("ETHERSCAN_API_URL")
        if os.getenv("ETHERSCAN_CHAIN_ID"):
            config.explorer.chain_id = int(os.getenv("ETHERSCAN_CHAIN_ID"))
        if os.getenv("EXPLORER_TIMEOUT_SECONDS"):
            config.explorer.timeout_seconds = float(os.getenv("EXPLORER_TIMEOUT_SECONDS"))
            config.resolver.call_timeout_seconds = config.explorer.timeout_seconds

        if not config.explorer.api_key:
            logger.warning("ETHERSCAN_API_KEY not set; explorer lookups disabled")

        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (secrets masked)."""
        return {
            "ledger": self.ledger.to_dict(),
            "explorer": self.explorer.to_dict(),
            "resolver": self.resolver.to_dict(),
        }


# =============================================================
# GLOBAL CONFIG SINGLETON
# =============================================================


_default_config: Optional[WalletExplorerConfig] = None


def get_config() -> WalletExplorerConfig:
    """Get the global configuration."""
    global _default_config
    if _default_config is None:
        _default_config = WalletExplorerConfig.from_env()
    return _default_config


def set_config(config: WalletExplorerConfig) -> None:
    """Set the global configuration."""
    global _default_config
    _default_config = config
