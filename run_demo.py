#!/usr/bin/env python3
"""
NFTFlow demo runner — drives one NFT through its whole life:
  - provisions a Creator and a Buyer account from the faucet
  - Creator defines a single-unit asset and mints it to itself
  - Buyer opts in to the asset
  - Creator and Buyer negotiate a price through the exchange contract,
    which settles payment and asset atomically

Usage:
    python run_demo.py --config nftflow.toml --price 5

Environment variables (alternative to flags):
    NFTFLOW_ALGOD_ADDRESS, NFTFLOW_ALGOD_TOKEN, NFTFLOW_FAUCET_MNEMONIC,
    NFTFLOW_PRICE, NFTFLOW_LOG_LEVEL
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import sys

# ---------------------------------------------------------------------------
# Ensure the project root is in sys.path so imports work before pip install
# ---------------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from nftflow_core.account import Account  # noqa: E402
from nftflow_core.algod import AlgodClient  # noqa: E402
from nftflow_core.config import DemoConfig, load_config  # noqa: E402
from nftflow_core.errors import NFTFlowError  # noqa: E402
from nftflow_core.exchange import ExchangeProgram  # noqa: E402
from nftflow_core.logging_config import setup_logging  # noqa: E402
from nftflow_core.negotiation import NegotiationResult, run_negotiation  # noqa: E402
from nftflow_core.nft import Nft  # noqa: E402
from nftflow_core.provisioning import AccountProvisioner  # noqa: E402
from nftflow_core.submitter import TransactionSubmitter  # noqa: E402
from nftflow_core.units import fmt, parse_currency  # noqa: E402

logger = logging.getLogger("demo")


async def run_flow(
    submitter: TransactionSubmitter,
    provisioner: AccountProvisioner,
    demo: DemoConfig,
) -> NegotiationResult:
    """Run the full create / mint / opt-in / negotiate scenario."""
    creator = await Account.create("Creator", provisioner, demo.starting_balance)
    buyer = await Account.create("Buyer", provisioner, demo.starting_balance)

    print()
    await creator.print_balances()
    await buyer.print_balances()

    nft = await Nft.create(creator, demo.asset_name, demo.asset_symbol, demo.asset_note)
    print(f"\nCreated asset {nft.symbol} with id {nft.asset_id}")

    print(f"\nMinting 1 {nft.symbol} to {creator.name}")
    await nft.mint(creator)

    print()
    await creator.print_balances(nft)
    await buyer.print_balances(nft)

    # The buyer must hold a zero-balance slot before it can receive the asset
    print(f"\nOpting {buyer.name} into {nft.symbol}\n")
    await buyer.opt_in(nft)
    await buyer.print_balances(nft)

    price = parse_currency(demo.price)
    program = ExchangeProgram(submitter)
    result = await run_negotiation(
        program,
        creator,
        buyer,
        nft,
        price,
        on_propose=lambda asset_id, p: print(
            f"\n{creator.name} proposes price of {fmt(p)} for {nft.symbol}"
        ),
        on_accept=lambda p: print(f"\n{buyer.name} accepts price of {fmt(p)}"),
    )

    print()
    await creator.print_balances(nft)
    await buyer.print_balances(nft)
    return result


# ===================================================================
#  Main entry point
# ===================================================================

def parse_args(argv: list[str] | None = None):
    p = argparse.ArgumentParser(description="NFTFlow single-NFT lifecycle demo")
    p.add_argument("--config", default=None, help="Path to nftflow.toml config file")
    p.add_argument("--algod", default=None, help="algod address, e.g. http://localhost:4001")
    p.add_argument("--price", type=float, default=None, help="Sale price in whole ALGO")
    p.add_argument("--wait-rounds", type=int, default=None,
                   help="Rounds to wait for each confirmation")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    return p.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    # Load config (TOML + env overrides), then CLI flags
    cfg = load_config(args.config)
    if args.algod:
        cfg.algod.address = args.algod
    if args.price is not None:
        cfg.demo.price = args.price
    if args.wait_rounds is not None:
        cfg.submit.wait_rounds = args.wait_rounds
    if args.log_level:
        cfg.logging.level = args.log_level.upper()

    setup_logging(cfg.logging.level, cfg.logging.format, cfg.logging.file)

    async with AlgodClient.from_config(cfg.algod) as client:
        submitter = TransactionSubmitter(client, cfg.submit.wait_rounds)
        try:
            provisioner = AccountProvisioner.from_mnemonic(submitter, cfg.faucet.mnemonic)
            result = await run_flow(submitter, provisioner, cfg.demo)
        except NFTFlowError as exc:
            logger.error(f"Demo failed: {type(exc).__name__}: {exc}")
            return 1

    logger.info(f"Trade settled: {result.outcome.to_dict()}")
    return 0


def main_sync():
    """Synchronous entry point for console_scripts."""
    with contextlib.suppress(KeyboardInterrupt):
        sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    main_sync()
