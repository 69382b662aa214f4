"""
Async ledger query client for NFTFlow.

Talks to an algod node over its v2 REST interface using aiohttp.  Only
the handful of endpoints the orchestration core consumes are wrapped:

  - GET  /v2/transactions/params              suggested parameters
  - GET  /v2/accounts/{address}               balances and asset holdings
  - POST /v2/transactions                     broadcast signed transaction(s)
  - GET  /v2/transactions/pending/{txid}      confirmation status
  - GET  /v2/status                           last round
  - GET  /v2/status/wait-for-block-after/{n}  block until round n+1

Every method is a suspension point.  Connection problems and unexpected
HTTP statuses raise :class:`NetworkFailure`; a 400 answer to a broadcast
is the ledger refusing the transaction and raises
:class:`TransactionRejected` with the node's message.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import Any, Sequence

import aiohttp
from algosdk import encoding, transaction

from nftflow_core.errors import NetworkFailure, TransactionRejected

logger = logging.getLogger("nftflow_algod")

API_TOKEN_HEADER = "X-Algo-API-Token"

# Width of the validity window attached to suggested parameters.
VALIDITY_WINDOW = 1000


def _error_message(body: str) -> str:
    """Pull the ``message`` field out of an algod error body."""
    try:
        payload = json.loads(body)
    except ValueError:
        return body.strip()
    if isinstance(payload, dict) and "message" in payload:
        return str(payload["message"])
    return body.strip()


class AlgodClient:
    """
    Minimal asyncio client for an algod node.

    The underlying :class:`aiohttp.ClientSession` is created lazily inside
    the running loop, or may be supplied by the caller (who then owns it).
    """

    def __init__(
        self,
        address: str,
        token: str = "",
        timeout_seconds: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self.address = address.rstrip("/")
        self._headers = {API_TOKEN_HEADER: token} if token else {}
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, cfg) -> AlgodClient:
        """Build a client from an :class:`AlgodConfig` section."""
        return cls(cfg.address, cfg.token, cfg.timeout_seconds)

    # ---- lifecycle ----

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self._headers, timeout=self._timeout,
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> AlgodClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ---- transport ----

    async def _request(
        self,
        method: str,
        path: str,
        data: bytes | None = None,
        broadcast: bool = False,
    ) -> dict[str, Any]:
        url = f"{self.address}{path}"
        headers = dict(self._headers)
        if data is not None:
            headers["Content-Type"] = "application/x-binary"
        try:
            async with self._get_session().request(
                method, url, data=data, headers=headers,
            ) as resp:
                body = await resp.text()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise NetworkFailure(f"{method} {path} failed: {exc}") from exc

        if status >= 400:
            message = _error_message(body)
            if broadcast and status == 400:
                raise TransactionRejected(message)
            raise NetworkFailure(f"{method} {path} -> HTTP {status}: {message}", status)
        if not body:
            return {}
        try:
            return json.loads(body)
        except ValueError as exc:
            raise NetworkFailure(f"{method} {path} returned invalid JSON") from exc

    # ---- queries ----

    async def suggested_params(self) -> transaction.SuggestedParams:
        """Current fee and validity window for new transactions."""
        res = await self._request("GET", "/v2/transactions/params")
        first = res["last-round"]
        return transaction.SuggestedParams(
            res["fee"],
            first,
            first + VALIDITY_WINDOW,
            res["genesis-hash"],
            res.get("genesis-id"),
            False,
            res.get("consensus-version"),
            res.get("min-fee"),
        )

    async def account_info(self, address: str) -> dict[str, Any]:
        return await self._request("GET", f"/v2/accounts/{address}")

    async def pending_transaction_info(self, txid: str) -> dict[str, Any]:
        return await self._request("GET", f"/v2/transactions/pending/{txid}")

    async def status(self) -> dict[str, Any]:
        return await self._request("GET", "/v2/status")

    async def status_after_block(self, round_num: int) -> dict[str, Any]:
        return await self._request(
            "GET", f"/v2/status/wait-for-block-after/{round_num}",
        )

    # ---- broadcast ----

    async def send_transaction(self, stxn: transaction.SignedTransaction) -> str:
        """Broadcast one signed transaction; returns its id."""
        return await self.send_transactions([stxn])

    async def send_transactions(
        self, stxns: Sequence[transaction.SignedTransaction],
    ) -> str:
        """Broadcast signed transactions as one payload; returns the first id."""
        if not stxns:
            raise ValueError("Nothing to send")
        raw = b"".join(base64.b64decode(encoding.msgpack_encode(s)) for s in stxns)
        res = await self._request("POST", "/v2/transactions", data=raw, broadcast=True)
        txid = res.get("txId", stxns[0].get_txid())
        logger.debug(f"Broadcast {len(stxns)} txn(s), first id {txid}")
        return txid
