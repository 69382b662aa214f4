"""
In-process exchange contract for NFTFlow.

Implements the contract side of the seller/buyer negotiation:

  - ``deploy(account)``        the seller creates a contract instance
  - ``attach(account, info)``  the buyer joins it using ``handle.get_info()``
  - ``seller(handle, interact)`` / ``buyer(handle, interact)``
        participant entry points; each resolves to the trade Outcome

Protocol of one instance:

    seller:  get_token_and_price()  ->  publish (asset_id, price)
    buyer:   receive terms          ->  accept_price(price)
    contract settles atomically:
        buyer  pays  price micro-units      -> seller
        seller sends 1 unit of the asset    -> buyer

Both legs go to the ledger as one transaction group, so either both
happen or neither does.  A settlement failure fails both participants.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from nftflow_core.errors import ContractError
from nftflow_core.txn_builder import build_asset_transfer, build_payment
from nftflow_core.units import fmt

if TYPE_CHECKING:
    from nftflow_core.account import Account
    from nftflow_core.submitter import TransactionSubmitter

logger = logging.getLogger("nftflow_exchange")

Terms = tuple[int, int]  # (asset_id, price in micro-units)


@dataclass
class SellerInteract:
    """Seller callbacks: supply the sale terms when asked."""
    get_token_and_price: Callable[[], Union[Terms, Awaitable[Terms]]]


@dataclass
class BuyerInteract:
    """Buyer callbacks: acknowledge the proposed price."""
    accept_price: Callable[[int], Union[None, Awaitable[None]]]


@dataclass
class Outcome:
    """Agreed and settled trade of one contract instance."""
    contract_id: int
    asset_id: int
    price: int
    seller: str
    buyer: str
    receipts: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "contract_id": self.contract_id,
            "asset_id": self.asset_id,
            "price": self.price,
            "seller": self.seller,
            "buyer": self.buyer,
            "confirmed_rounds": [r.get("confirmed-round") for r in self.receipts],
        }


class ContractHandle:
    """One participant's view of a contract instance."""

    def __init__(self, program: ExchangeProgram, account: Account, contract_id: int):
        self.program = program
        self.account = account
        self.contract_id = contract_id

    def get_info(self) -> int:
        """Connection info another account needs to attach."""
        return self.contract_id

    def __repr__(self) -> str:
        return f"ContractHandle({self.contract_id}, {self.account.name})"


@dataclass
class _Instance:
    contract_id: int
    seller: Account
    buyer: Account | None = None
    # each participant entry point runs once per instance
    seller_joined: bool = False
    buyer_joined: bool = False
    terms: asyncio.Future | None = None
    outcome: asyncio.Future | None = None

    def futures(
        self, on_resolved: Callable[[asyncio.Future], None],
    ) -> tuple[asyncio.Future, asyncio.Future]:
        if self.terms is None or self.outcome is None:
            loop = asyncio.get_running_loop()
            self.terms = loop.create_future()
            self.outcome = loop.create_future()
            self.outcome.add_done_callback(on_resolved)
        return self.terms, self.outcome


async def _invoke(fn: Callable[..., Any], *args: Any) -> Any:
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class ExchangeProgram:
    """
    Program definition for a single-NFT sale.

    Instances live in this object until their trade resolves (settled,
    failed or cancelled); after that the contract id no longer attaches.
    Each instance accepts one ``seller`` and one ``buyer`` call.
    ``settle=False`` runs the handshake without touching the ledger.
    """

    def __init__(self, submitter: TransactionSubmitter, settle: bool = True):
        self.submitter = submitter
        self.settle = settle
        self._instances: dict[int, _Instance] = {}
        self._next_id = 1

    # ---- deploy / attach ----

    def deploy(self, account: Account) -> ContractHandle:
        contract_id = self._next_id
        self._next_id += 1
        self._instances[contract_id] = _Instance(contract_id, seller=account)
        logger.info(f"{account.name} deployed exchange contract", extra={"contract_id": contract_id})
        return ContractHandle(self, account, contract_id)

    def attach(self, account: Account, info: int) -> ContractHandle:
        inst = self._instances.get(info)
        if inst is None:
            raise ContractError(f"No exchange contract {info}")
        if account.address == inst.seller.address:
            raise ContractError("The deployer cannot attach as the buyer")
        if inst.buyer is not None and inst.buyer.address != account.address:
            raise ContractError(f"Contract {info} already has a buyer")
        inst.buyer = account
        logger.info(f"{account.name} attached to exchange contract", extra={"contract_id": info})
        return ContractHandle(self, account, info)

    def _instance(self, handle: ContractHandle) -> _Instance:
        inst = self._instances.get(handle.contract_id)
        if inst is None or handle.program is not self:
            raise ContractError(f"Handle {handle!r} does not belong to this program")
        return inst

    def _futures(self, inst: _Instance) -> tuple[asyncio.Future, asyncio.Future]:
        def release(_: asyncio.Future) -> None:
            self._instances.pop(inst.contract_id, None)
            logger.debug("Exchange contract closed", extra={"contract_id": inst.contract_id})

        return inst.futures(release)

    @property
    def open_contracts(self) -> list[int]:
        """Ids of instances whose trade has not resolved yet."""
        return sorted(self._instances)

    # ---- participants ----

    async def seller(self, handle: ContractHandle, interact: SellerInteract) -> Outcome:
        inst = self._instance(handle)
        if handle.account.address != inst.seller.address:
            raise ContractError(f"{handle.account.name} is not the seller")
        if inst.seller_joined:
            raise ContractError(f"Seller already joined contract {inst.contract_id}")
        inst.seller_joined = True
        terms, outcome = self._futures(inst)

        asset_id, price = await _invoke(interact.get_token_and_price)
        if not isinstance(price, int) or price < 0:
            raise ContractError(f"Price must be a non-negative integer, got {price!r}")
        terms.set_result((int(asset_id), price))
        logger.debug(f"Contract {inst.contract_id}: asset {asset_id} offered at {fmt(price)}")
        return await outcome

    async def buyer(self, handle: ContractHandle, interact: BuyerInteract) -> Outcome:
        inst = self._instance(handle)
        if inst.buyer is None or handle.account.address != inst.buyer.address:
            raise ContractError(f"{handle.account.name} is not attached as buyer")
        if inst.buyer_joined:
            raise ContractError(f"Buyer already joined contract {inst.contract_id}")
        inst.buyer_joined = True
        terms, outcome = self._futures(inst)

        asset_id, price = await terms
        try:
            await _invoke(interact.accept_price, price)
            receipts = await self._settle(inst, asset_id, price) if self.settle else []
        except asyncio.CancelledError:
            if not outcome.done():
                outcome.cancel()
            raise
        except Exception as exc:
            if not outcome.done():
                outcome.set_exception(exc)
            raise

        result = Outcome(
            contract_id=inst.contract_id,
            asset_id=asset_id,
            price=price,
            seller=inst.seller.address,
            buyer=inst.buyer.address,
            receipts=receipts,
        )
        if not outcome.done():
            outcome.set_result(result)
        return result

    async def _settle(self, inst: _Instance, asset_id: int, price: int) -> list[dict]:
        seller, buyer = inst.seller, inst.buyer
        if buyer is None:
            raise ContractError(f"No buyer attached to contract {inst.contract_id}")
        receipts = await self.submitter.submit_group([
            (buyer, build_payment(buyer, seller, price)),
            (seller, build_asset_transfer(asset_id, seller, buyer, 1)),
        ])
        logger.info(
            f"Contract {inst.contract_id}: {buyer.name} bought asset {asset_id} "
            f"from {seller.name} for {fmt(price)}"
        )
        return receipts
