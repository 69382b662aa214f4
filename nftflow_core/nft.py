"""
Single-edition NFT management for NFTFlow.

An Nft is a ledger asset with a total supply of exactly one indivisible
unit.  Its life has two steps:

  - create: the issuer submits an asset definition; the ledger assigns
    the asset id in the confirmation receipt
  - mint:   the single unit is transferred from the issuer to a holder
            (the issuer itself in the standard flow)

Whether the unit has already been minted is not tracked here; the ledger
rejects any transfer beyond the one unit that exists.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from nftflow_core.errors import PreconditionNotMet, TransactionRejected
from nftflow_core.txn_builder import (
    NFT_DECIMALS,
    NFT_TOTAL,
    build_asset_transfer,
    build_create_asset,
)

if TYPE_CHECKING:
    from nftflow_core.account import Account

logger = logging.getLogger("nftflow_nft")


class Nft:
    """A created single-unit asset."""

    total = NFT_TOTAL
    decimals = NFT_DECIMALS

    def __init__(self, issuer: Account, name: str, symbol: str, asset_id: int):
        self.issuer = issuer
        self.name = name
        self.symbol = symbol
        self.asset_id = asset_id

    @classmethod
    async def create(
        cls,
        issuer: Account,
        name: str,
        symbol: str,
        note: str = "",
    ) -> Nft:
        """Define a new NFT owned by *issuer* and wait for its asset id."""
        receipt = await issuer.submitter.submit(
            issuer, build_create_asset(issuer, name, symbol, note),
        )
        asset_id = receipt.get("asset-index")
        if not asset_id:
            raise TransactionRejected("Confirmation receipt carries no asset-index")
        logger.info(f"Created {symbol} for {issuer.name}", extra={"asset_id": asset_id})
        return cls(issuer, name, symbol, int(asset_id))

    async def mint(self, receiver: Account) -> dict[str, Any]:
        """Transfer the single unit from the issuer to *receiver*.

        *receiver* must already be opted in.  A second mint is left to the
        ledger, which rejects it because no unit remains with the issuer.
        """
        if not await receiver.is_opted_in(self):
            raise PreconditionNotMet(
                f"{receiver.name} must opt in to {self.symbol} before minting"
            )
        receipt = await self.issuer.submitter.submit(
            self.issuer,
            build_asset_transfer(self.asset_id, self.issuer, receiver, self.total),
        )
        logger.info(
            f"Minted {self.total} {self.symbol} to {receiver.name}",
            extra={"asset_id": self.asset_id},
        )
        return receipt

    def to_dict(self) -> dict:
        return {
            "asset_id": self.asset_id,
            "issuer": self.issuer.address,
            "name": self.name,
            "symbol": self.symbol,
            "total": self.total,
            "decimals": self.decimals,
        }

    def __repr__(self) -> str:
        return f"Nft({self.symbol}, {self.asset_id})"
