import base64
from typing import Any, Dict, List, Optional

from solders.hash import Hash
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from sonic_agent.errors import ConfirmationTimeout
from sonic_agent.http_client import HttpError
from sonic_agent.models import BlockReference


def unsigned_payload(payer: Pubkey) -> bytes:
    instruction = transfer(TransferParams(from_pubkey=payer, to_pubkey=Pubkey.new_unique(), lamports=1))
    message = MessageV0.try_compile(payer, [instruction], [], Hash.new_unique())
    return bytes(VersionedTransaction.populate(message, [Signature.default()]))


def route_hop(pool: str, input_mint: str, output_mint: str) -> Dict[str, Any]:
    return {
        "poolId": pool,
        "inputMint": input_mint,
        "outputMint": output_mint,
        "feeMint": input_mint,
        "feeRate": 2500,
        "feeAmount": "250",
        "remainingAccounts": [],
    }


def quote_response(
    input_mint: str = "A",
    output_mint: str = "B",
    input_amount: int = 100_000_000,
    output_amount: int = 2_500_000,
    price_impact: float = 0.05,
    route: Optional[List[Dict[str, Any]]] = None,
    swap_type: str = "swap-base-in",
) -> Dict[str, Any]:
    return {
        "id": "quote-1",
        "success": True,
        "version": "V1",
        "data": {
            "swapType": swap_type,
            "inputMint": input_mint,
            "inputAmount": str(input_amount),
            "outputMint": output_mint,
            "outputAmount": str(output_amount),
            "otherAmountThreshold": str(output_amount - output_amount // 200),
            "slippageBps": 50,
            "priceImpactPct": price_impact,
            "referrerAmount": "0",
            "routePlan": route if route is not None else [route_hop("pool-1", input_mint, output_mint)],
        },
    }


def build_response(*payloads: bytes) -> Dict[str, Any]:
    return {
        "id": "build-1",
        "success": True,
        "data": [{"transaction": base64.b64encode(payload).decode()} for payload in payloads],
    }


class FakeHttp:
    """Routes requests by URL fragment and records every call."""

    def __init__(self, routes: Dict[str, Any]) -> None:
        self.routes = routes
        self.calls: List[Dict[str, Any]] = []

    def _respond(self, method: str, url: str, **details: Any) -> Dict[str, Any]:
        self.calls.append({"method": method, "url": url, **details})
        for fragment, response in self.routes.items():
            if fragment in url:
                if isinstance(response, Exception):
                    raise response
                return response
        raise HttpError(f"{method} {url} returned status 404", http_status=404)

    def get_json(self, url, params=None, timeout=None):
        return self._respond("GET", url, params=params, timeout=timeout)

    def post_json(self, url, payload, timeout=None):
        return self._respond("POST", url, payload=payload, timeout=timeout)

    def close(self) -> None:
        pass

    def urls(self) -> List[str]:
        return [call["url"] for call in self.calls]


class FakeLedger:
    def __init__(self, signatures: Optional[List[str]] = None, submit_error=None, confirm_errors=None) -> None:
        self.signatures = list(signatures or [])
        self.submit_error = submit_error
        self.confirm_errors = dict(confirm_errors or {})
        self.submitted: List[bytes] = []
        self.confirmed: List[str] = []
        self.references = 0
        self.last_reference: Optional[BlockReference] = None

    def latest_block_reference(self) -> BlockReference:
        self.references += 1
        self.last_reference = BlockReference(blockhash=str(Hash.new_unique()), last_valid_block_height=1_000 + self.references)
        return self.last_reference

    def submit(self, payload: bytes, signature: str) -> str:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(payload)
        return self.signatures.pop(0) if self.signatures else signature

    def confirm(self, signature: str, reference: BlockReference, timeout: float) -> None:
        error = self.confirm_errors.get(signature)
        if error is not None:
            raise error
        self.confirmed.append(signature)

    def get_balance(self, address: str) -> int:
        return 5_000_000_000

    def get_token_balance(self, owner: str, mint: str) -> int:
        return 7_000_000

    def get_mint_decimals(self, mint: str) -> int:
        return 6

    def get_tps(self) -> float:
        return 2_500.0


def confirmation_timeout(signature: str) -> ConfirmationTimeout:
    return ConfirmationTimeout("not confirmed after 1.0s", signature=signature, timed_out=True)


