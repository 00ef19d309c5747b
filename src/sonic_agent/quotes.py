import logging
from typing import Any, Dict, List, Optional

from .errors import QuoteUnavailable
from .http_client import HttpClient, HttpError, translate, unwrap_envelope
from .models import (
    DEFAULT_SLIPPAGE_BPS,
    Deadline,
    Quote,
    RouteStep,
    SwapDirection,
    stage_budget,
    validate_amount,
    validate_slippage,
)

LOG = logging.getLogger(__name__)


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise QuoteUnavailable(f"quote field {name} is not an integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise QuoteUnavailable(f"quote field {name} is not an integer") from None
    if parsed < 0:
        raise QuoteUnavailable(f"quote field {name} is negative")
    return parsed


def _as_str(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise QuoteUnavailable(f"quote field {name} is missing")
    return value


class QuoteFetcher:
    def __init__(
        self,
        http: HttpClient,
        base_url: str,
        tx_version: str = "V0",
        default_slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        timeout: float = 10.0,
    ) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.tx_version = tx_version
        self.default_slippage_bps = validate_slippage(default_slippage_bps)
        self.timeout = timeout

    def endpoint(self, direction: SwapDirection, smart: bool = False) -> str:
        kind = "smart-compute" if smart else "compute"
        return f"{self.base_url}/swap/{kind}/{direction.value}"

    def quote_params(self, in_mint: str, out_mint: str, amount: int, slippage_bps: int) -> Dict[str, str]:
        return {
            "inputMint": in_mint,
            "outputMint": out_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
            "txVersion": self.tx_version,
        }

    def fetch(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        direction: SwapDirection = SwapDirection.EXACT_INPUT,
        slippage_bps: Optional[int] = None,
        smart: bool = False,
        deadline: Optional[Deadline] = None,
    ) -> Quote:
        validate_amount(amount)
        slippage = self.default_slippage_bps if slippage_bps is None else validate_slippage(slippage_bps)
        timeout = stage_budget(deadline, "quote", self.timeout)

        url = self.endpoint(direction, smart=smart)
        params = self.quote_params(input_mint, output_mint, amount, slippage)
        try:
            response = self.http.get_json(url, params=params, timeout=timeout)
        except HttpError as exc:
            LOG.warning(f"Quote request {input_mint} -> {output_mint} failed: {exc}")
            raise translate(exc, QuoteUnavailable, "quote") from exc

        quote = self.parse_quote(
            response,
            input_mint=input_mint,
            output_mint=output_mint,
            direction=direction,
            amount=amount,
        )
        LOG.info(
            f"Quote {quote.input_mint} -> {quote.output_mint}: in={quote.input_amount} "
            f"out={quote.output_amount} impact={quote.price_impact_pct} hops={len(quote.route)}"
        )
        return quote

    def parse_quote(
        self,
        response: Dict[str, Any],
        input_mint: str,
        output_mint: str,
        direction: Optional[SwapDirection] = None,
        amount: Optional[int] = None,
    ) -> Quote:
        """Validate a compute response against the request that produced it.

        ``direction`` and ``amount`` are optional so a stored response can be
        re-parsed; when given, the quote must echo them back. The fixed side of
        the trade (input for exact-input, output for exact-output) has to equal
        ``amount`` exactly.
        """
        data = unwrap_envelope(response, QuoteUnavailable, "quote")
        if not isinstance(data, dict):
            raise QuoteUnavailable("quote data is not an object")

        try:
            quoted_direction = SwapDirection(data.get("swapType"))
        except ValueError:
            raise QuoteUnavailable(f"unknown swapType {data.get('swapType')!r}") from None
        if direction is not None and quoted_direction is not direction:
            raise QuoteUnavailable(f"quote is {quoted_direction.value}, requested {direction.value}")

        quoted_in = _as_str(data.get("inputMint"), "inputMint")
        quoted_out = _as_str(data.get("outputMint"), "outputMint")
        if quoted_in != input_mint or quoted_out != output_mint:
            raise QuoteUnavailable(f"quote is for {quoted_in} -> {quoted_out}, requested {input_mint} -> {output_mint}")

        price_impact = data.get("priceImpactPct", 0)
        if isinstance(price_impact, bool):
            raise QuoteUnavailable("quote field priceImpactPct is not numeric")
        try:
            price_impact = float(price_impact)
        except (TypeError, ValueError):
            raise QuoteUnavailable("quote field priceImpactPct is not numeric") from None

        try:
            slippage = validate_slippage(_as_int(data.get("slippageBps"), "slippageBps"))
        except ValueError as exc:
            raise QuoteUnavailable(f"quote field slippageBps is out of range: {exc}") from None

        input_amount = _as_int(data.get("inputAmount"), "inputAmount")
        output_amount = _as_int(data.get("outputAmount"), "outputAmount")
        if amount is not None:
            fixed_side = input_amount if quoted_direction is SwapDirection.EXACT_INPUT else output_amount
            if fixed_side != amount:
                raise QuoteUnavailable(f"quote is for amount {fixed_side}, requested {amount}")

        route = self.parse_route(data.get("routePlan"), quoted_in, quoted_out)

        return Quote(
            direction=quoted_direction,
            input_mint=quoted_in,
            output_mint=quoted_out,
            input_amount=input_amount,
            output_amount=output_amount,
            other_amount_threshold=_as_int(data.get("otherAmountThreshold", 0), "otherAmountThreshold"),
            slippage_bps=slippage,
            price_impact_pct=price_impact,
            route=tuple(route),
            request_id=str(response.get("id", "")),
            data=data,
        )

    def parse_route(self, route_plan: Any, input_mint: str, output_mint: str) -> List[RouteStep]:
        if not isinstance(route_plan, list) or not route_plan:
            raise QuoteUnavailable("quote has no route")

        steps: List[RouteStep] = []
        for hop in route_plan:
            if not isinstance(hop, dict):
                raise QuoteUnavailable("route hop is not an object")
            steps.append(
                RouteStep(
                    pool_id=_as_str(hop.get("poolId"), "routePlan.poolId"),
                    input_mint=_as_str(hop.get("inputMint"), "routePlan.inputMint"),
                    output_mint=_as_str(hop.get("outputMint"), "routePlan.outputMint"),
                    fee_mint=str(hop.get("feeMint", "")),
                    fee_rate=_as_int(hop.get("feeRate", 0), "routePlan.feeRate"),
                    fee_amount=_as_int(hop.get("feeAmount", 0), "routePlan.feeAmount"),
                )
            )

        if steps[0].input_mint != input_mint or steps[-1].output_mint != output_mint:
            raise QuoteUnavailable("route endpoints do not match the quoted mints")
        for current, following in zip(steps, steps[1:]):
            if current.output_mint != following.input_mint:
                raise QuoteUnavailable(f"route breaks between pools {current.pool_id} and {following.pool_id}")
        return steps
