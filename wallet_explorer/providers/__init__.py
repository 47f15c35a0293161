"""
Providers package - Ledger and explorer client implementations.
"""

from wallet_explorer.providers.etherscan import EtherscanExplorerClient
from wallet_explorer.providers.web3_ledger import Web3LedgerClient


__all__ = [
    "EtherscanExplorerClient",
    "Web3LedgerClient",
]
