"""
Scripts Package.

Scripts:
- run_wallet_explorer: Balance, history and token metadata for one wallet
"""

# Scripts are meant to be run directly, not imported
