"""
Tests for nftflow_core.account and nftflow_core.provisioning.

Covers:
  - Provisioning funds a fresh account with the starting balance
  - Native and asset balance queries
  - "Not opted in" is None, never 0
  - Opt-in is idempotent at the ledger level
  - Opt-out closes the slot and moves the prior balance to the target
  - Local precondition checks on opt-out
  - Console balance lines
  - Signing through the SDK transaction signer
"""

from __future__ import annotations

import base64
import warnings

import pytest
from algosdk import transaction

from nftflow_core.account import Account
from nftflow_core.errors import PreconditionNotMet, SigningFailure
from nftflow_core.nft import Nft
from nftflow_core.provisioning import AccountProvisioner
from nftflow_core.txn_builder import build_payment


async def _minted(provisioner, holder_name="Holder"):
    """Creator + holder accounts with the NFT minted to the holder."""
    creator = await Account.create("Creator", provisioner, 10)
    holder = await Account.create(holder_name, provisioner, 10)
    nft = await Nft.create(creator, "Laughing Out Loud", "LOL1", "Edition 1 of 1")
    await holder.opt_in(nft)
    await nft.mint(holder)
    return creator, holder, nft


@pytest.mark.asyncio
class TestProvisioning:
    async def test_starting_balance(self, provisioner):
        acct = await Account.create("Creator", provisioner, 10)
        assert await acct.balance() == 10_000_000

    async def test_accounts_are_distinct(self, provisioner):
        a = await Account.create("A", provisioner)
        b = await Account.create("B", provisioner)
        assert a.address != b.address

    async def test_faucet_pays(self, algod, provisioner):
        before = algod.balances[algod.faucet_address]
        await Account.create("A", provisioner, 2)
        assert algod.balances[algod.faucet_address] == before - 2_000_000 - 1_000


def test_missing_faucet_mnemonic(submitter):
    with pytest.raises(PreconditionNotMet):
        AccountProvisioner.from_mnemonic(submitter, "")


def test_bad_mnemonic(submitter):
    with pytest.raises(SigningFailure):
        Account.from_mnemonic("Faucet", "not a real phrase", submitter)


@pytest.mark.asyncio
class TestAssetBalance:
    async def test_never_opted_in_is_none(self, provisioner):
        creator = await Account.create("Creator", provisioner)
        stranger = await Account.create("Stranger", provisioner)
        nft = await Nft.create(creator, "Laughing Out Loud", "LOL1")
        assert await stranger.balance(nft) is None
        assert not await stranger.is_opted_in(nft)

    async def test_opted_in_zero_is_zero(self, provisioner):
        creator = await Account.create("Creator", provisioner)
        buyer = await Account.create("Buyer", provisioner)
        nft = await Nft.create(creator, "Laughing Out Loud", "LOL1")
        await buyer.opt_in(nft)
        balance = await buyer.balance(nft)
        assert balance == 0
        assert balance is not None

    async def test_opt_in_twice_is_harmless(self, algod, provisioner):
        creator = await Account.create("Creator", provisioner)
        buyer = await Account.create("Buyer", provisioner)
        nft = await Nft.create(creator, "Laughing Out Loud", "LOL1")
        await buyer.opt_in(nft)
        sent = len(algod.sent)
        await buyer.opt_in(nft)
        assert len(algod.sent) == sent + 1  # no local short-circuit
        assert await buyer.balance(nft) == 0

    async def test_opt_in_costs_min_balance_slot(self, algod, provisioner):
        creator = await Account.create("Creator", provisioner)
        buyer = await Account.create("Buyer", provisioner)
        nft = await Nft.create(creator, "Laughing Out Loud", "LOL1")
        await buyer.opt_in(nft)
        info = await buyer.info()
        assert info["min-balance"] == 200_000


@pytest.mark.asyncio
class TestOptOut:
    async def test_close_out_moves_balance(self, provisioner):
        creator, holder, nft = await _minted(provisioner)
        assert await holder.balance(nft) == 1
        before = await creator.balance(nft)

        await holder.opt_out(nft, creator)

        assert await holder.balance(nft) is None
        assert await creator.balance(nft) == before + 1

    async def test_close_out_zero_balance(self, provisioner):
        creator = await Account.create("Creator", provisioner)
        buyer = await Account.create("Buyer", provisioner)
        nft = await Nft.create(creator, "Laughing Out Loud", "LOL1")
        await buyer.opt_in(nft)
        await buyer.opt_out(nft, creator)
        assert await buyer.balance(nft) is None
        assert await creator.balance(nft) == 1

    async def test_opt_out_without_slot(self, provisioner):
        creator = await Account.create("Creator", provisioner)
        stranger = await Account.create("Stranger", provisioner)
        nft = await Nft.create(creator, "Laughing Out Loud", "LOL1")
        with pytest.raises(PreconditionNotMet):
            await stranger.opt_out(nft, creator)

    async def test_opt_out_to_non_opted_target(self, provisioner):
        creator, holder, nft = await _minted(provisioner)
        stranger = await Account.create("Stranger", provisioner)
        with pytest.raises(PreconditionNotMet):
            await holder.opt_out(nft, stranger)
        assert await holder.balance(nft) == 1

    async def test_can_opt_in_again_after_opt_out(self, provisioner):
        creator, holder, nft = await _minted(provisioner)
        await holder.opt_out(nft, creator)
        await holder.opt_in(nft)
        assert await holder.balance(nft) == 0


@pytest.mark.asyncio
class TestBalanceLines:
    async def test_lines_native_and_assets(self, provisioner):
        creator = await Account.create("Creator", provisioner)
        buyer = await Account.create("Buyer", provisioner)
        nft = await Nft.create(creator, "Laughing Out Loud", "LOL1")
        lines = await buyer.balance_lines(nft)
        assert lines == ["Account: Buyer", "  * 10 ALGO", "  * NULL LOL1"]

    async def test_print_balances(self, provisioner, capsys):
        creator = await Account.create("Creator", provisioner)
        nft = await Nft.create(creator, "Laughing Out Loud", "LOL1")
        await creator.print_balances(nft)
        out = capsys.readouterr().out
        assert "Account: Creator" in out
        assert "  * 1 LOL1" in out


class TestSign:
    def _params(self):
        return transaction.SuggestedParams(
            fee=1000,
            first=10,
            last=1010,
            gh=base64.b64encode(b"\x03" * 32).decode(),
            flat_fee=True,
        )

    def test_signed_envelope(self, submitter):
        alice = Account.generate("Alice", submitter)
        txn = build_payment(alice, alice, 0)(self._params())
        stxn = alice.sign(txn)
        assert stxn.signature
        assert stxn.get_txid() == txn.get_txid()

    def test_no_deprecated_signing_call(self, submitter):
        alice = Account.generate("Alice", submitter)
        txn = build_payment(alice, alice, 0)(self._params())
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            alice.sign(txn)
        deprecated = [w for w in caught if issubclass(w.category, DeprecationWarning)]
        assert deprecated == []
