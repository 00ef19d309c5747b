"""Narrow adapter over the Solana/Sonic RPC client.

Only the primitives the agent needs are exposed: latest block
reference, raw submission, bounded confirmation, balances and throughput. RPC
failures are mapped onto the agent's error taxonomy here so the executor
never sees solana-py exception types.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.pubkey import Pubkey
from solders.signature import Signature
from spl.token.instructions import get_associated_token_address

from .errors import (
    BlockReferenceExpired,
    ConfirmationTimeout,
    SonicAgentError,
    SubmissionFailed,
    TransactionReverted,
)
from .models import BlockReference

LOG = logging.getLogger(__name__)

COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


class SolanaLedger:
    def __init__(
        self,
        rpc_url: str,
        commitment: str = "confirmed",
        timeout: float = 10.0,
        poll_interval: float = 0.5,
        client: Optional[Client] = None,
    ) -> None:
        if commitment not in COMMITMENT_RANK:
            raise ValueError(f"unsupported commitment level {commitment!r}")
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.poll_interval = poll_interval
        self.client = client or Client(rpc_url, timeout=timeout)

    def latest_block_reference(self) -> BlockReference:
        try:
            resp = self.client.get_latest_blockhash(self.commitment)
        except (RPCException, SolanaRpcException) as exc:
            raise SubmissionFailed("could not fetch latest block reference", stage="submit", cause=exc) from exc
        return BlockReference(
            blockhash=str(resp.value.blockhash),
            last_valid_block_height=int(resp.value.last_valid_block_height),
        )

    def submit(self, payload: bytes, signature: str) -> str:
        opts = TxOpts(skip_confirmation=True, skip_preflight=False, preflight_commitment=self.commitment)
        try:
            resp = self.client.send_raw_transaction(payload, opts=opts)
        except RPCException as exc:
            raise SubmissionFailed(
                "ledger rejected transaction",
                service_message=str(exc),
                signature=signature,
                cause=exc,
            ) from exc
        except SolanaRpcException as exc:
            raise ConfirmationTimeout(
                "submission outcome unknown",
                stage="submit",
                signature=signature,
                timed_out=True,
                cause=exc,
            ) from exc
        return str(resp.value)

    def confirm(self, signature: str, reference: BlockReference, timeout: float) -> None:
        """Block until ``signature`` reaches the configured commitment level.

        Failed status polls are retried until ``timeout`` runs out; the last
        poll error is attached as the cause of the resulting timeout.
        """
        wanted = COMMITMENT_RANK[self.commitment]
        target = Signature.from_string(signature)
        expires = time.monotonic() + timeout
        last_error: Optional[Exception] = None
        while True:
            height = None
            try:
                status = self.client.get_signature_statuses([target]).value[0]
                if status is None and time.monotonic() < expires:
                    height = self.client.get_block_height(self.commitment).value
            except (RPCException, SolanaRpcException) as exc:
                LOG.warning(f"Status poll for {signature} failed: {exc}")
                last_error = exc
            else:
                last_error = None
                if status is not None:
                    if status.err is not None:
                        raise TransactionReverted(
                            "transaction failed on-chain",
                            service_message=str(status.err),
                            signature=signature,
                        )
                    if self._reached(status, wanted):
                        return
                elif height is not None and height > reference.last_valid_block_height:
                    raise BlockReferenceExpired(
                        f"block height {height} passed {reference.last_valid_block_height} without landing",
                        signature=signature,
                    )

            if time.monotonic() + self.poll_interval > expires:
                reason = "confirmation status unavailable" if last_error else f"not {self.commitment}"
                raise ConfirmationTimeout(
                    f"{reason} after {timeout:.1f}s",
                    signature=signature,
                    timed_out=True,
                    cause=last_error,
                ) from last_error
            time.sleep(self.poll_interval)

    def get_balance(self, address: str) -> int:
        try:
            resp = self.client.get_balance(Pubkey.from_string(address), self.commitment)
        except (RPCException, SolanaRpcException) as exc:
            raise SonicAgentError(f"balance lookup for {address} failed", stage="balance", cause=exc) from exc
        return int(resp.value)

    def get_token_balance(self, owner: str, mint: str) -> int:
        """Balance of ``owner``'s associated token account for ``mint``, in base units.

        A wallet that never held the token has no account; that reads as 0.
        """
        account = get_associated_token_address(Pubkey.from_string(owner), Pubkey.from_string(mint))
        try:
            if self.client.get_account_info(account, self.commitment).value is None:
                return 0
            resp = self.client.get_token_account_balance(account, self.commitment)
        except (RPCException, SolanaRpcException) as exc:
            raise SonicAgentError(f"token balance lookup for {owner} ({mint}) failed", stage="balance", cause=exc) from exc
        return int(resp.value.amount)

    def get_mint_decimals(self, mint: str) -> int:
        try:
            resp = self.client.get_token_supply(Pubkey.from_string(mint), self.commitment)
        except (RPCException, SolanaRpcException) as exc:
            raise SonicAgentError(f"mint lookup for {mint} failed", stage="balance", cause=exc) from exc
        return int(resp.value.decimals)

    def get_tps(self) -> float:
        try:
            samples = self.client.get_recent_performance_samples(1).value
        except (RPCException, SolanaRpcException) as exc:
            raise SonicAgentError("performance sample lookup failed", stage="tps", cause=exc) from exc
        if not samples or not samples[0].sample_period_secs:
            raise SonicAgentError("ledger returned no performance samples", stage="tps")
        return samples[0].num_transactions / samples[0].sample_period_secs

    @staticmethod
    def _reached(status, wanted: int) -> bool:
        if status.confirmation_status is None:
            # rooted transactions report no status and no confirmation count
            return status.confirmations is None
        return int(status.confirmation_status) >= wanted
