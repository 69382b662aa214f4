"""
Transaction submission for NFTFlow.

The submitter is the only place where intent becomes a ledger effect:

    1. fetch current ledger parameters (fee, valid-round window)
    2. invoke the builder with them
    3. sign with the holder's key
    4. broadcast
    5. wait, for at most ``wait_rounds`` rounds, until the node reports
       the transaction confirmed

Errors are never retried here.  A broadcast refused by the node or a
pool error reported while waiting raises TransactionRejected; running
out of rounds raises ConfirmationTimeout.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence

from algosdk import transaction

from nftflow_core.errors import ConfirmationTimeout, TransactionRejected
from nftflow_core.txn_builder import Builder

if TYPE_CHECKING:
    from nftflow_core.account import Account
    from nftflow_core.algod import AlgodClient

logger = logging.getLogger("nftflow_submitter")

DEFAULT_WAIT_ROUNDS = 10


class TransactionSubmitter:
    """Signs, broadcasts and confirms transactions against one ledger client."""

    def __init__(self, client: AlgodClient, wait_rounds: int = DEFAULT_WAIT_ROUNDS):
        if wait_rounds < 1:
            raise ValueError("wait_rounds must be at least 1")
        self.client = client
        self.wait_rounds = wait_rounds

    async def submit(self, signer: Account, builder: Builder) -> dict[str, Any]:
        """Build, sign, broadcast and confirm one transaction.

        Returns the confirmed pending-transaction record (the receipt).
        """
        params = await self.client.suggested_params()
        txn = builder(params)
        stxn = signer.sign(txn)
        txid = stxn.get_txid()
        logger.debug(f"Submitting {txn.type} from {signer.name}", extra={"txid": txid})
        try:
            await self.client.send_transaction(stxn)
        except TransactionRejected as exc:
            exc.txid = exc.txid or txid
            logger.warning(f"{txn.type} rejected: {exc.reason}", extra={"txid": txid})
            raise
        return await self.wait_for_confirmation(txid)

    async def submit_group(
        self, steps: Sequence[tuple[Account, Builder]],
    ) -> list[dict[str, Any]]:
        """Submit several transactions as one atomic group.

        Each ``(signer, builder)`` pair is built against the same
        parameters and signed by its own signer.  Either every member is
        confirmed or none is applied.
        """
        if not steps:
            raise ValueError("Cannot submit an empty group")
        params = await self.client.suggested_params()
        txns = [builder(params) for _, builder in steps]
        transaction.assign_group_id(txns)
        stxns = [signer.sign(txn) for (signer, _), txn in zip(steps, txns)]
        txids = [stxn.get_txid() for stxn in stxns]
        logger.debug(f"Submitting group of {len(stxns)}", extra={"txid": txids[0]})
        try:
            await self.client.send_transactions(stxns)
        except TransactionRejected as exc:
            exc.txid = exc.txid or txids[0]
            logger.warning(f"Group rejected: {exc.reason}", extra={"txid": txids[0]})
            raise
        return [await self.wait_for_confirmation(txid) for txid in txids]

    async def wait_for_confirmation(self, txid: str) -> dict[str, Any]:
        """Poll until *txid* is confirmed, rejected, or the round bound passes."""
        last_round = (await self.client.status())["last-round"]
        start_round = last_round + 1
        current_round = start_round

        while current_round < start_round + self.wait_rounds:
            info = await self.client.pending_transaction_info(txid)
            confirmed = info.get("confirmed-round", 0)
            if confirmed and confirmed > 0:
                logger.info("Confirmed", extra={"txid": txid, "round": confirmed})
                return info
            if info.get("pool-error"):
                raise TransactionRejected(info["pool-error"], txid)
            await self.client.status_after_block(current_round)
            current_round += 1

        raise ConfirmationTimeout(txid, self.wait_rounds)
