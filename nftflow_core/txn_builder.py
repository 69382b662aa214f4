"""
Transaction builders for NFTFlow.

A builder captures the *intent* of a transaction (who, what, how much)
and returns a callable that turns fresh ledger parameters into an
unsigned transaction:

    builder = build_asset_transfer(asset_id, alice, bob, 1)
    txn = builder(await client.suggested_params())

Deferring the parameters means the valid-round window is taken when the
transaction is actually submitted, not when the intent was declared.
Builders never touch the network and never sign.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from algosdk import transaction

if TYPE_CHECKING:
    from nftflow_core.account import Account

Builder = Callable[[transaction.SuggestedParams], transaction.Transaction]

NFT_TOTAL = 1
NFT_DECIMALS = 0


def build_create_asset(
    issuer: Account,
    name: str,
    symbol: str,
    note: str = "",
) -> Builder:
    """
    Define a single, indivisible asset owned by *issuer*.

    The issuer holds every authority role (manager, reserve, freeze,
    clawback); there is no external trustee.
    """
    note_bytes = note.encode("utf-8") if note else None

    def make(params: transaction.SuggestedParams) -> transaction.Transaction:
        return transaction.AssetCreateTxn(
            sender=issuer.address,
            sp=params,
            total=NFT_TOTAL,
            decimals=NFT_DECIMALS,
            default_frozen=False,
            manager=issuer.address,
            reserve=issuer.address,
            freeze=issuer.address,
            clawback=issuer.address,
            unit_name=symbol,
            asset_name=name,
            url="",
            note=note_bytes,
        )

    return make


def build_asset_transfer(
    asset_id: int,
    sender: Account,
    receiver: Account,
    amount: int = 0,
    close_out: bool = False,
) -> Builder:
    """
    Move *amount* units of *asset_id* from *sender* to *receiver*.

    A zero-amount transfer from an account to itself is an opt-in.
    ``close_out=True`` also sends the sender's remaining units to the
    receiver and removes the sender's holding slot; only use it to opt out.
    """
    if amount < 0:
        raise ValueError("amount must be non-negative")

    def make(params: transaction.SuggestedParams) -> transaction.Transaction:
        return transaction.AssetTransferTxn(
            sender=sender.address,
            sp=params,
            receiver=receiver.address,
            amt=amount,
            index=asset_id,
            close_assets_to=receiver.address if close_out else None,
        )

    return make


def build_payment(sender: Account | str, receiver: Account | str, amount: int) -> Builder:
    """Pay *amount* micro-units of the native currency."""
    if amount < 0:
        raise ValueError("amount must be non-negative")
    sender_addr = sender if isinstance(sender, str) else sender.address
    receiver_addr = receiver if isinstance(receiver, str) else receiver.address

    def make(params: transaction.SuggestedParams) -> transaction.Transaction:
        return transaction.PaymentTxn(
            sender=sender_addr,
            sp=params,
            receiver=receiver_addr,
            amt=amount,
        )

    return make
