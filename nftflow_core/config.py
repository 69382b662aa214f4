"""
TOML-based configuration for NFTFlow.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Usage:
    from nftflow_core.config import load_config
    cfg = load_config("nftflow.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib  # type: ignore[import]
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[import,no-redef]


@dataclass
class AlgodConfig:
    """Ledger node connection settings."""
    address: str = "http://localhost:4001"
    token: str = "a" * 64          # default sandbox / localnet token
    timeout_seconds: float = 30.0  # per HTTP request


@dataclass
class FaucetConfig:
    """Funded account used to provision test identities.

    ``mnemonic`` is the 25-word phrase of an account holding enough native
    currency to fund every account the demo creates.  Empty means no
    provisioning is possible.
    """
    mnemonic: str = ""


@dataclass
class SubmitConfig:
    """Transaction submission settings."""
    # Rounds to wait for a confirmation before raising ConfirmationTimeout.
    wait_rounds: int = 10


@dataclass
class DemoConfig:
    """Parameters of the end-to-end demonstration flow."""
    starting_balance: float = 10.0   # whole ALGO per new account
    price: float = 5.0               # whole ALGO asked by the seller
    asset_name: str = "Laughing Out Loud"
    asset_symbol: str = "LOL1"
    asset_note: str = "Edition 1 of 1"


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class NFTFlowConfig:
    """Top-level configuration container."""
    algod: AlgodConfig = field(default_factory=AlgodConfig)
    faucet: FaucetConfig = field(default_factory=FaucetConfig)
    submit: SubmitConfig = field(default_factory=SubmitConfig)
    demo: DemoConfig = field(default_factory=DemoConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a dataclass instance (in-place)."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, value)


def load_config(path: str | None = None) -> NFTFlowConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    Env-var mapping:
        NFTFLOW_ALGOD_ADDRESS    -> algod.address
        NFTFLOW_ALGOD_TOKEN      -> algod.token
        NFTFLOW_FAUCET_MNEMONIC  -> faucet.mnemonic
        NFTFLOW_WAIT_ROUNDS      -> submit.wait_rounds
        NFTFLOW_PRICE            -> demo.price
        NFTFLOW_LOG_LEVEL        -> logging.level
        NFTFLOW_LOG_FMT          -> logging.format
    """
    cfg = NFTFlowConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            for section_name, section_dc in [
                ("algod", cfg.algod),
                ("faucet", cfg.faucet),
                ("submit", cfg.submit),
                ("demo", cfg.demo),
                ("logging", cfg.logging),
            ]:
                if section_name in data:
                    _merge(section_dc, data[section_name])

    # ── Environment variable overrides ───────────────────────────
    if v := os.environ.get("NFTFLOW_ALGOD_ADDRESS"):
        cfg.algod.address = v
    if v := os.environ.get("NFTFLOW_ALGOD_TOKEN"):
        cfg.algod.token = v
    if v := os.environ.get("NFTFLOW_FAUCET_MNEMONIC"):
        cfg.faucet.mnemonic = v.strip()
    if v := os.environ.get("NFTFLOW_WAIT_ROUNDS"):
        cfg.submit.wait_rounds = int(v)
    if v := os.environ.get("NFTFLOW_PRICE"):
        cfg.demo.price = float(v)
    if v := os.environ.get("NFTFLOW_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("NFTFLOW_LOG_FMT"):
        cfg.logging.format = v

    return cfg
