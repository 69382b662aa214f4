"""
Seller / buyer negotiation for NFTFlow.

Two roles run as independent asyncio tasks against one exchange
contract instance.  Each role is a small linear state machine:

    Seller:  IDLE -> PROPOSE_PRICE -> AWAIT_OUTCOME -> DONE
    Buyer:   IDLE -> AWAIT_PROPOSAL -> ACCEPT_PRICE -> DONE

Either role moves to FAILED when its task raises.  The roles share no
memory; they only see what the contract hands them.  ``join_or_cancel``
is the barrier: it returns once both roles are done, and on the first
failure cancels the other role before re-raising.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from nftflow_core.errors import ContractError
from nftflow_core.exchange import BuyerInteract, Outcome, SellerInteract
from nftflow_core.units import fmt

if TYPE_CHECKING:
    from nftflow_core.account import Account
    from nftflow_core.exchange import ContractHandle, ExchangeProgram
    from nftflow_core.nft import Nft

logger = logging.getLogger("nftflow_negotiation")


class SellerState(Enum):
    IDLE = "idle"
    PROPOSE_PRICE = "propose_price"
    AWAIT_OUTCOME = "await_outcome"
    DONE = "done"
    FAILED = "failed"


class BuyerState(Enum):
    IDLE = "idle"
    AWAIT_PROPOSAL = "await_proposal"
    ACCEPT_PRICE = "accept_price"
    DONE = "done"
    FAILED = "failed"


_SELLER_NEXT = {
    SellerState.IDLE: SellerState.PROPOSE_PRICE,
    SellerState.PROPOSE_PRICE: SellerState.AWAIT_OUTCOME,
    SellerState.AWAIT_OUTCOME: SellerState.DONE,
}

_BUYER_NEXT = {
    BuyerState.IDLE: BuyerState.AWAIT_PROPOSAL,
    BuyerState.AWAIT_PROPOSAL: BuyerState.ACCEPT_PRICE,
    BuyerState.ACCEPT_PRICE: BuyerState.DONE,
}


@dataclass
class SellerView:
    asset_id: Optional[int] = None
    price: Optional[int] = None


@dataclass
class BuyerView:
    accepted_price: Optional[int] = None


@dataclass
class NegotiationResult:
    outcome: Outcome
    seller: SellerView = field(default_factory=SellerView)
    buyer: BuyerView = field(default_factory=BuyerView)
    # role states when run_negotiation returned
    seller_state: SellerState = SellerState.IDLE
    buyer_state: BuyerState = BuyerState.IDLE


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


class SellerRole:
    """Supplies the sale terms once, then waits for the trade outcome."""

    def __init__(
        self,
        account: Account,
        asset: Nft,
        price: int,
        on_propose: Optional[Callable[[int, int], Any]] = None,
    ):
        self.account = account
        self.asset = asset
        self.price = price
        self.on_propose = on_propose
        self.state = SellerState.IDLE
        self.view = SellerView()

    def _advance(self, expected: SellerState) -> None:
        nxt = _SELLER_NEXT.get(self.state)
        if nxt is not expected:
            raise ContractError(
                f"Seller cannot move from {self.state.value} to {expected.value}"
            )
        self.state = nxt

    async def _get_token_and_price(self) -> tuple[int, int]:
        self._advance(SellerState.PROPOSE_PRICE)
        self.view = SellerView(asset_id=self.asset.asset_id, price=self.price)
        if self.on_propose is not None:
            await _maybe_await(self.on_propose(self.asset.asset_id, self.price))
        logger.info(
            f"{self.account.name} proposes {fmt(self.price)} for {self.asset.symbol}"
        )
        self._advance(SellerState.AWAIT_OUTCOME)
        return self.asset.asset_id, self.price

    async def run(self, handle: ContractHandle) -> Outcome:
        try:
            outcome = await handle.program.seller(
                handle, SellerInteract(get_token_and_price=self._get_token_and_price),
            )
            self._advance(SellerState.DONE)
        except BaseException:
            self.state = SellerState.FAILED
            raise
        return outcome


class BuyerRole:
    """Waits for the proposed price and acknowledges it once."""

    def __init__(
        self,
        account: Account,
        on_accept: Optional[Callable[[int], Any]] = None,
    ):
        self.account = account
        self.on_accept = on_accept
        self.state = BuyerState.IDLE
        self.view = BuyerView()

    async def _accept_price(self, price: int) -> None:
        self._advance(BuyerState.ACCEPT_PRICE)
        self.view = BuyerView(accepted_price=price)
        if self.on_accept is not None:
            await _maybe_await(self.on_accept(price))
        logger.info(f"{self.account.name} accepts price of {fmt(price)}")

    def _advance(self, expected: BuyerState) -> None:
        nxt = _BUYER_NEXT.get(self.state)
        if nxt is not expected:
            raise ContractError(
                f"Buyer cannot move from {self.state.value} to {expected.value}"
            )
        self.state = nxt

    async def run(self, handle: ContractHandle) -> Outcome:
        try:
            self._advance(BuyerState.AWAIT_PROPOSAL)
            outcome = await handle.program.buyer(
                handle, BuyerInteract(accept_price=self._accept_price),
            )
            self._advance(BuyerState.DONE)
        except BaseException:
            self.state = BuyerState.FAILED
            raise
        return outcome


async def join_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """
    Run *aws* concurrently and return their results in order.

    On the first failure the remaining tasks are cancelled and awaited,
    then that failure is re-raised.  Cancelling the caller cancels all.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    failed = [
        t for t in tasks
        if t in done and not t.cancelled() and t.exception() is not None
    ]
    if failed:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        raise failed[0].exception()
    return [t.result() for t in tasks]


async def run_negotiation(
    program: ExchangeProgram,
    seller: Account,
    buyer: Account,
    asset: Nft,
    price: int,
    on_propose: Optional[Callable[[int, int], Any]] = None,
    on_accept: Optional[Callable[[int], Any]] = None,
) -> NegotiationResult:
    """
    Deploy a contract as *seller*, attach *buyer*, and run both roles.

    Returns only after both roles reach DONE.
    """
    seller_ctc = seller.deploy(program)
    buyer_ctc = buyer.attach(program, seller_ctc.get_info())

    seller_role = SellerRole(seller, asset, price, on_propose)
    buyer_role = BuyerRole(buyer, on_accept)

    _, outcome = await join_or_cancel(
        seller_role.run(seller_ctc),
        buyer_role.run(buyer_ctc),
    )
    return NegotiationResult(
        outcome=outcome,
        seller=seller_role.view,
        buyer=buyer_role.view,
        seller_state=seller_role.state,
        buyer_state=buyer_role.state,
    )
