"""
Error taxonomy for NFTFlow.

Every transaction-path failure is raised as one of these and propagates
to the orchestration caller unchanged:

  - NetworkFailure       – the ledger node is unreachable or misbehaving
  - TransactionRejected  – the ledger refused a transaction (carries its reason)
  - SigningFailure       – the key cannot sign for the transaction sender
  - ConfirmationTimeout  – no confirmation within the configured round bound
  - PreconditionNotMet   – a local check failed before anything was submitted
  - ContractError        – the exchange contract could not be deployed/attached
"""

from __future__ import annotations


class NFTFlowError(Exception):
    """Base class for all NFTFlow errors."""


class NetworkFailure(NFTFlowError):
    """The ledger node could not be reached or answered unexpectedly."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class TransactionRejected(NFTFlowError):
    """The ledger rejected a transaction."""

    def __init__(self, reason: str, txid: str | None = None):
        super().__init__(reason)
        self.reason = reason
        self.txid = txid


class SigningFailure(NFTFlowError):
    """A transaction could not be signed with the given key."""


class ConfirmationTimeout(NFTFlowError):
    """A submitted transaction was not confirmed within the round bound."""

    def __init__(self, txid: str, rounds: int):
        super().__init__(
            f"Transaction {txid} not confirmed after {rounds} rounds"
        )
        self.txid = txid
        self.rounds = rounds


class PreconditionNotMet(NFTFlowError):
    """A locally checked precondition does not hold."""


class ContractError(NFTFlowError):
    """The exchange contract is unknown or was used incorrectly."""
