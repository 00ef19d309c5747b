import base64
import binascii
import logging
from typing import Any, Dict, List, Optional

from .errors import TransactionBuildFailed
from .http_client import HttpClient, HttpError, translate, unwrap_envelope
from .models import Deadline, Quote, UnsignedTransactionBundle, stage_budget

LOG = logging.getLogger(__name__)


class TransactionBuilder:
    def __init__(self, http: HttpClient, base_url: str, tx_version: str = "V0", timeout: float = 10.0) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.tx_version = tx_version
        self.timeout = timeout

    def endpoint(self, quote: Quote) -> str:
        return f"{self.base_url}/swap/transaction/{quote.direction.value}"

    def request_body(
        self,
        wallet_address: str,
        quote: Quote,
        tx_version: Optional[str] = None,
        compute_unit_price_micro_lamports: Optional[int] = None,
        wrap_sol: bool = True,
        unwrap_sol: bool = True,
        output_account: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "wallet": wallet_address,
            "swapResponse": {"id": quote.request_id, "success": True, "data": quote.data},
            "txVersion": tx_version or self.tx_version,
            "wrapSol": wrap_sol,
            "unwrapSol": unwrap_sol,
        }
        if compute_unit_price_micro_lamports is not None:
            body["computeUnitPriceMicroLamports"] = str(compute_unit_price_micro_lamports)
        if output_account:
            body["outputAccount"] = output_account
        return body

    def build(
        self,
        wallet_address: str,
        quote: Quote,
        tx_version: Optional[str] = None,
        compute_unit_price_micro_lamports: Optional[int] = None,
        wrap_sol: bool = True,
        unwrap_sol: bool = True,
        output_account: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> UnsignedTransactionBundle:
        timeout = stage_budget(deadline, "build", self.timeout)
        body = self.request_body(
            wallet_address,
            quote,
            tx_version=tx_version,
            compute_unit_price_micro_lamports=compute_unit_price_micro_lamports,
            wrap_sol=wrap_sol,
            unwrap_sol=unwrap_sol,
            output_account=output_account,
        )
        try:
            response = self.http.post_json(self.endpoint(quote), body, timeout=timeout)
        except HttpError as exc:
            LOG.warning(f"Transaction build for {wallet_address} failed: {exc}")
            raise translate(exc, TransactionBuildFailed, "transaction build") from exc

        bundle = self.parse_bundle(response)
        LOG.info(f"Built {len(bundle)} transaction(s) for {wallet_address}")
        return bundle

    def parse_bundle(self, response: Dict[str, Any]) -> UnsignedTransactionBundle:
        data = unwrap_envelope(response, TransactionBuildFailed, "transaction build")
        if not isinstance(data, list) or not data:
            raise TransactionBuildFailed("transaction build returned no transactions")

        payloads: List[bytes] = []
        for index, item in enumerate(data):
            encoded = item.get("transaction") if isinstance(item, dict) else None
            if not isinstance(encoded, str) or not encoded:
                raise TransactionBuildFailed(f"transaction entry {index} has no payload")
            try:
                payloads.append(base64.b64decode(encoded, validate=True))
            except (binascii.Error, ValueError):
                raise TransactionBuildFailed(f"transaction entry {index} is not valid base64") from None
        return UnsignedTransactionBundle(payloads=tuple(payloads))
