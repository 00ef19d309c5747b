import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Optional

from .errors import PriceDataUnavailable
from .http_client import HttpClient, HttpError, translate, unwrap_envelope
from .models import Deadline, stage_budget, validate_amount

LOG = logging.getLogger(__name__)

# fixed haircut applied to oracle estimates; not a slippage setting
ESTIMATE_HAIRCUT = Decimal("0.99")


class PriceOracle:
    """USD price lookups used as a rough fallback when no quote is available."""

    def __init__(self, http: HttpClient, base_url: str, timeout: float = 10.0) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def fetch_prices(self, mints: Iterable[str], deadline: Optional[Deadline] = None) -> Dict[str, Decimal]:
        mint_list = list(mints)
        timeout = stage_budget(deadline, "price", self.timeout)
        try:
            response = self.http.get_json(
                f"{self.base_url}/api/mint/price",
                params={"mints": ",".join(mint_list)},
                timeout=timeout,
            )
        except HttpError as exc:
            raise translate(exc, PriceDataUnavailable, "price") from exc

        data = unwrap_envelope(response, PriceDataUnavailable, "price")
        if not isinstance(data, dict):
            raise PriceDataUnavailable("price data is not an object")

        prices: Dict[str, Decimal] = {}
        for mint in mint_list:
            raw = data.get(mint)
            if raw is None or raw == "":
                continue
            try:
                price = Decimal(str(raw))
            except InvalidOperation:
                raise PriceDataUnavailable(f"price for {mint} is not numeric: {raw!r}") from None
            if price.is_finite() and price > 0:
                prices[mint] = price
        return prices

    def estimate(self, input_mint: str, output_mint: str, input_amount: int, deadline: Optional[Deadline] = None) -> int:
        validate_amount(input_amount)
        prices = self.fetch_prices([input_mint, output_mint], deadline=deadline)
        missing = [mint for mint in (input_mint, output_mint) if mint not in prices]
        if missing:
            raise PriceDataUnavailable(f"price data missing for {', '.join(missing)}")

        # exact rational floor; Decimal context precision would round large products
        in_num, in_den = prices[input_mint].as_integer_ratio()
        out_num, out_den = prices[output_mint].as_integer_ratio()
        cut_num, cut_den = ESTIMATE_HAIRCUT.as_integer_ratio()
        estimate = (input_amount * in_num * cut_num * out_den) // (in_den * cut_den * out_num)
        LOG.info(f"Estimated {input_amount} {input_mint} -> {estimate} {output_mint} from USD prices")
        return estimate
