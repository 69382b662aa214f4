"""
NFTFlow - single-edition NFT lifecycle on an Algorand-style ledger.

Key features:
- Deferred transaction builders for asset create / transfer / payment
- Sign, broadcast and bounded confirmation wait (single and atomic groups)
- Accounts with balance queries, opt-in and close-out opt-out
- One-unit NFT definition and minting
- Concurrent seller/buyer price negotiation with atomic settlement
"""

__version__ = "0.3.0"
__all__ = [
    "errors",
    "units",
    "config",
    "logging_config",
    "algod",
    "txn_builder",
    "submitter",
    "account",
    "provisioning",
    "nft",
    "exchange",
    "negotiation",
]
