"""
Account management for NFTFlow.

High-level account abstraction that combines a keypair, its ledger
address, and convenience methods for interacting with the network:
balance queries, asset opt-in / opt-out, and contract deploy / attach.

Every ledger-touching method goes through the injected
:class:`TransactionSubmitter` (and its client); accounts hold no ledger
state of their own.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from algosdk import account as algo_account
from algosdk import mnemonic, transaction
from algosdk.atomic_transaction_composer import AccountTransactionSigner

from nftflow_core.errors import PreconditionNotMet, SigningFailure
from nftflow_core.txn_builder import build_asset_transfer
from nftflow_core.units import fmt

if TYPE_CHECKING:
    from nftflow_core.exchange import ContractHandle, ExchangeProgram
    from nftflow_core.nft import Nft
    from nftflow_core.provisioning import AccountProvisioner
    from nftflow_core.submitter import TransactionSubmitter


class Account:
    """
    A named ledger identity.

    The signing key never leaves the object; it is only used inside
    :meth:`sign`.
    """

    def __init__(
        self,
        name: str,
        address: str,
        signing_key: str,
        submitter: TransactionSubmitter,
    ):
        self.name = name
        self.address = address
        self._signing_key = signing_key
        self.submitter = submitter

    @classmethod
    async def create(
        cls,
        name: str,
        provisioner: AccountProvisioner,
        starting_balance: float = 10.0,
    ) -> Account:
        """Create a fresh account funded with *starting_balance* whole units."""
        return await provisioner.provision(name, starting_balance)

    @classmethod
    def generate(cls, name: str, submitter: TransactionSubmitter) -> Account:
        """Create an account with a fresh, unfunded keypair."""
        private_key, address = algo_account.generate_account()
        return cls(name, address, private_key, submitter)

    @classmethod
    def from_mnemonic(
        cls, name: str, phrase: str, submitter: TransactionSubmitter,
    ) -> Account:
        """Restore an account from its 25-word mnemonic."""
        try:
            private_key = mnemonic.to_private_key(phrase)
            address = algo_account.address_from_private_key(private_key)
        except Exception as exc:
            raise SigningFailure(f"Invalid mnemonic for {name}") from exc
        return cls(name, address, private_key, submitter)

    # ---- signing ----

    def sign(self, txn: transaction.Transaction) -> transaction.SignedTransaction:
        """Sign *txn*, which must be sent from this account."""
        try:
            key_address = algo_account.address_from_private_key(self._signing_key)
        except (ValueError, TypeError) as exc:
            raise SigningFailure(f"{self.name} holds an unusable signing key") from exc
        if key_address != self.address or txn.sender != self.address:
            raise SigningFailure(
                f"{self.name} cannot sign for sender {txn.sender}"
            )
        try:
            signer = AccountTransactionSigner(self._signing_key)
            return signer.sign_transactions([txn], [0])[0]
        except (ValueError, TypeError) as exc:
            raise SigningFailure(f"{self.name} failed to sign {txn.type}") from exc

    # ---- queries ----

    async def info(self) -> dict[str, Any]:
        return await self.submitter.client.account_info(self.address)

    async def balance(self, asset: Nft | None = None) -> int | None:
        """
        Native balance in micro-units when *asset* is None.

        Otherwise the units of *asset* held, or ``None`` when this account
        has not opted in.  ``0`` means opted in but holding nothing.
        """
        info = await self.info()
        if asset is None:
            return int(info.get("amount", 0))
        for holding in info.get("assets", []):
            if holding.get("asset-id") == asset.asset_id:
                return int(holding.get("amount", 0))
        return None

    async def is_opted_in(self, asset: Nft) -> bool:
        return await self.balance(asset) is not None

    async def format_balance(self, asset: Nft | None = None) -> str:
        amount = await self.balance(asset)
        if asset is None:
            return fmt(amount or 0)
        if amount is None:
            return f"NULL {asset.symbol}"
        return f"{amount} {asset.symbol}"

    async def balance_lines(self, *assets: Nft) -> list[str]:
        lines = [f"Account: {self.name}", f"  * {await self.format_balance()}"]
        for asset in assets:
            lines.append(f"  * {await self.format_balance(asset)}")
        return lines

    async def print_balances(self, *assets: Nft) -> None:
        """Print the native balance and each asset balance to stdout."""
        for line in await self.balance_lines(*assets):
            print(line)

    # ---- asset slots ----

    async def opt_in(self, asset: Nft) -> dict[str, Any]:
        """Allocate a holding slot for *asset* (zero-amount self transfer)."""
        return await self.submitter.submit(
            self, build_asset_transfer(asset.asset_id, self, self, 0),
        )

    async def opt_out(self, asset: Nft, to: Account) -> dict[str, Any]:
        """Close this account's slot for *asset*, sending what it holds to *to*."""
        if not await self.is_opted_in(asset):
            raise PreconditionNotMet(f"{self.name} is not opted in to {asset.symbol}")
        if to.address != self.address and not await to.is_opted_in(asset):
            raise PreconditionNotMet(f"{to.name} is not opted in to {asset.symbol}")
        return await self.submitter.submit(
            self,
            build_asset_transfer(asset.asset_id, self, to, 0, close_out=True),
        )

    # ---- contracts ----

    def deploy(self, program: ExchangeProgram) -> ContractHandle:
        return program.deploy(self)

    def attach(self, program: ExchangeProgram, info: int) -> ContractHandle:
        return program.attach(self, info)

    def __repr__(self) -> str:
        return f"Account({self.name}, {self.address})"
