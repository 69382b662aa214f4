"""
Test-account provisioning for NFTFlow.

New identities are generated locally and funded by a payment from a
faucet account whose mnemonic comes from configuration.  This is a
demonstration facility, not wallet management: nothing is persisted.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nftflow_core.account import Account
from nftflow_core.errors import PreconditionNotMet
from nftflow_core.txn_builder import build_payment
from nftflow_core.units import fmt, parse_currency

if TYPE_CHECKING:
    from nftflow_core.submitter import TransactionSubmitter

logger = logging.getLogger("nftflow_provisioning")


class AccountProvisioner:
    """Creates funded accounts by paying them from a faucet."""

    def __init__(self, submitter: TransactionSubmitter, faucet: Account):
        self.submitter = submitter
        self.faucet = faucet

    @classmethod
    def from_mnemonic(
        cls, submitter: TransactionSubmitter, phrase: str,
    ) -> AccountProvisioner:
        if not phrase:
            raise PreconditionNotMet(
                "No faucet mnemonic configured (set NFTFLOW_FAUCET_MNEMONIC)"
            )
        return cls(submitter, Account.from_mnemonic("Faucet", phrase, submitter))

    async def provision(self, name: str, starting_balance: float = 10.0) -> Account:
        """Generate a keypair and fund it with *starting_balance* whole units."""
        acct = Account.generate(name, self.submitter)
        amount = parse_currency(starting_balance)
        await self.submitter.submit(
            self.faucet, build_payment(self.faucet, acct, amount),
        )
        logger.info(f"Provisioned {name} ({acct.address[:12]}...) with {fmt(amount)}")
        return acct
