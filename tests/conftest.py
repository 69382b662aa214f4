"""
Shared pytest fixtures for the NFTFlow test suite.

``FakeAlgod`` stands in for an algod node: it exposes the same coroutine
methods as :class:`nftflow_core.algod.AlgodClient` and applies signed
transactions to an in-memory ledger with Algorand asset semantics
(creator holds the supply, opt-in slots, close-out, minimum balance,
atomic groups).
"""

from __future__ import annotations

import base64
import copy

import pytest
from algosdk import account as algo_account
from algosdk import mnemonic, transaction

from nftflow_core.errors import NetworkFailure, TransactionRejected
from nftflow_core.provisioning import AccountProvisioner
from nftflow_core.submitter import TransactionSubmitter

MIN_BALANCE = 100_000
MIN_FEE = 1_000
GENESIS_HASH = base64.b64encode(b"\x01" * 32).decode()
FAUCET_FUNDS = 10 ** 15


class FakeAlgod:
    """In-memory ledger speaking the AlgodClient interface."""

    def __init__(self, confirm: bool = True):
        self.round = 1
        self.confirm = confirm
        self.balances: dict[str, int] = {}
        self.holdings: dict[str, dict[int, int]] = {}
        self.assets: dict[int, dict] = {}
        self.pending: dict[str, dict] = {}
        self.sent: list[list[transaction.SignedTransaction]] = []
        self.pool_errors: dict[str, str] = {}
        self._next_asset = 1001

        self.faucet_key, self.faucet_address = algo_account.generate_account()
        self.balances[self.faucet_address] = FAUCET_FUNDS
        self.holdings[self.faucet_address] = {}

    @property
    def faucet_mnemonic(self) -> str:
        return mnemonic.from_private_key(self.faucet_key)

    # ---- AlgodClient interface ----

    async def suggested_params(self) -> transaction.SuggestedParams:
        return transaction.SuggestedParams(
            fee=MIN_FEE,
            first=self.round,
            last=self.round + 1000,
            gh=GENESIS_HASH,
            gen="fakenet-v1",
            flat_fee=True,
        )

    async def account_info(self, address: str) -> dict:
        held = self.holdings.get(address, {})
        return {
            "address": address,
            "amount": self.balances.get(address, 0),
            "assets": [
                {"asset-id": aid, "amount": amt, "is-frozen": False}
                for aid, amt in held.items()
            ],
            "min-balance": self._min_balance(address),
        }

    async def send_transaction(self, stxn) -> str:
        return await self.send_transactions([stxn])

    async def send_transactions(self, stxns) -> str:
        self.sent.append(list(stxns))
        if len(stxns) > 1:
            groups = {s.transaction.group for s in stxns}
            if len(groups) != 1 or None in groups:
                raise TransactionRejected("transaction group is incomplete or mixed")

        snapshot = copy.deepcopy(
            (self.balances, self.holdings, self.assets, self._next_asset)
        )
        extras = []
        try:
            for stxn in stxns:
                if stxn.authorizing_address not in (None, stxn.transaction.sender):
                    raise TransactionRejected(
                        f"should have been authorized by {stxn.transaction.sender}"
                    )
                extras.append(self._apply(stxn.transaction))
        except TransactionRejected:
            self.balances, self.holdings, self.assets, self._next_asset = snapshot
            raise

        self.round += 1
        for stxn, extra in zip(stxns, extras):
            txid = stxn.get_txid()
            error = self.pool_errors.get(stxn.transaction.type, "")
            self.pending[txid] = {
                "confirmed-round": self.round if self.confirm and not error else 0,
                "pool-error": error,
                **extra,
            }
        return stxns[0].get_txid()

    async def pending_transaction_info(self, txid: str) -> dict:
        if txid not in self.pending:
            raise NetworkFailure(f"txn {txid} does not exist", 404)
        return dict(self.pending[txid])

    async def status(self) -> dict:
        return {"last-round": self.round}

    async def status_after_block(self, round_num: int) -> dict:
        self.round = max(self.round, round_num + 1)
        return {"last-round": self.round}

    # ---- ledger rules ----

    def _min_balance(self, address: str) -> int:
        return MIN_BALANCE * (1 + len(self.holdings.get(address, {})))

    def _debit(self, address: str, amount: int) -> None:
        have = self.balances.get(address, 0)
        if have < amount:
            raise TransactionRejected(
                f"overspend (account {address}, data {have}, tried to spend {amount})"
            )
        self.balances[address] = have - amount

    def _check_min(self, address: str) -> None:
        if self.balances.get(address, 0) < self._min_balance(address):
            raise TransactionRejected(
                f"account {address} balance {self.balances.get(address, 0)} "
                f"below min {self._min_balance(address)}"
            )

    def _apply(self, txn) -> dict:
        sender = txn.sender
        if sender not in self.balances:
            raise TransactionRejected(f"account {sender} does not exist")
        self._debit(sender, txn.fee)
        extra: dict = {}

        if txn.type == "pay":
            self._debit(sender, txn.amt)
            self.balances[txn.receiver] = self.balances.get(txn.receiver, 0) + txn.amt
            self.holdings.setdefault(txn.receiver, {})
            self._check_min(txn.receiver)
        elif txn.type == "acfg" and not txn.index:
            aid = self._next_asset
            self._next_asset += 1
            self.assets[aid] = {
                "creator": sender,
                "total": txn.total,
                "decimals": txn.decimals,
                "unit-name": txn.unit_name,
                "name": txn.asset_name,
                "manager": txn.manager,
                "reserve": txn.reserve,
                "freeze": txn.freeze,
                "clawback": txn.clawback,
                "default-frozen": txn.default_frozen,
            }
            self.holdings[sender][aid] = txn.total
            extra["asset-index"] = aid
        elif txn.type == "axfer":
            self._apply_asset_transfer(txn)
        else:
            raise TransactionRejected(f"unsupported transaction type {txn.type}")

        self._check_min(sender)
        return extra

    def _apply_asset_transfer(self, txn) -> None:
        aid = txn.index
        if aid not in self.assets:
            raise TransactionRejected(f"asset {aid} does not exist or has been deleted")
        sender, receiver = txn.sender, txn.receiver
        sender_held = self.holdings.setdefault(sender, {})

        if sender == receiver and txn.amount == 0 and aid not in sender_held:
            sender_held[aid] = 0
            return
        if aid not in sender_held:
            raise TransactionRejected(f"asset {aid} missing from {sender}")
        receiver_held = self.holdings.setdefault(receiver, {})
        if aid not in receiver_held:
            raise TransactionRejected(
                f"receiver error: must optin, asset {aid} missing from {receiver}"
            )
        if sender_held[aid] < txn.amount:
            raise TransactionRejected(
                f"underflow on subtracting {txn.amount} from sender amount {sender_held[aid]}"
            )
        sender_held[aid] -= txn.amount
        receiver_held[aid] += txn.amount

        if txn.close_assets_to:
            if self.assets[aid]["creator"] == sender:
                raise TransactionRejected("cannot close asset ID in allocating account")
            target = self.holdings.setdefault(txn.close_assets_to, {})
            if aid not in target:
                raise TransactionRejected(
                    f"asset {aid} missing from {txn.close_assets_to}"
                )
            target[aid] += sender_held.pop(aid)


@pytest.fixture
def algod():
    """Fresh in-memory ledger with a funded faucet."""
    return FakeAlgod()


@pytest.fixture
def stalled_algod():
    """Ledger that accepts transactions but never confirms them."""
    return FakeAlgod(confirm=False)


@pytest.fixture
def submitter(algod):
    return TransactionSubmitter(algod, wait_rounds=5)


@pytest.fixture
def provisioner(algod, submitter):
    """Provisioner paying new accounts from the fake faucet."""
    return AccountProvisioner.from_mnemonic(submitter, algod.faucet_mnemonic)
