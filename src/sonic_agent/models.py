import time
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .errors import DeadlineExceeded

DEFAULT_SLIPPAGE_BPS = 50
MAX_SLIPPAGE_BPS = 10_000
DEFAULT_TOKEN_DECIMALS = 9


class SwapDirection(Enum):
    EXACT_INPUT = "swap-base-in"
    EXACT_OUTPUT = "swap-base-out"


@dataclass(frozen=True)
class RouteStep:
    pool_id: str
    input_mint: str
    output_mint: str
    fee_mint: str
    fee_rate: int
    fee_amount: int


@dataclass(frozen=True)
class Quote:
    direction: SwapDirection
    input_mint: str
    output_mint: str
    input_amount: int
    output_amount: int
    other_amount_threshold: int
    slippage_bps: int
    price_impact_pct: float
    route: Tuple[RouteStep, ...]
    request_id: str = ""
    data: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class QuoteSummary:
    input_amount: int
    output_amount: int
    price_impact_pct: Optional[float]
    input_mint: str
    output_mint: str
    estimated: bool = False

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteSummary":
        return cls(
            input_amount=quote.input_amount,
            output_amount=quote.output_amount,
            price_impact_pct=quote.price_impact_pct,
            input_mint=quote.input_mint,
            output_mint=quote.output_mint,
        )

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "inputAmount": self.input_amount,
            "outputAmount": self.output_amount,
            "priceImpactPercent": self.price_impact_pct,
            "inputMint": self.input_mint,
            "outputMint": self.output_mint,
        }
        if self.estimated:
            result["estimated"] = True
        return result


@dataclass(frozen=True)
class UnsignedTransactionBundle:
    """Opaque serialized transactions, in submission order."""

    payloads: Tuple[bytes, ...]

    def __len__(self) -> int:
        return len(self.payloads)


@dataclass(frozen=True)
class SwapResult:
    signature: str
    input_amount: int
    output_amount: int
    input_mint: str
    output_mint: str
    signatures: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {
            "signature": self.signature,
            "inputAmount": self.input_amount,
            "outputAmount": self.output_amount,
            "inputMint": self.input_mint,
            "outputMint": self.output_mint,
        }


@dataclass(frozen=True)
class TransferResult:
    signature: str
    recipient: str
    amount: int
    mint: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "signature": self.signature,
            "recipient": self.recipient,
            "amount": self.amount,
            "mint": self.mint,
        }


@dataclass(frozen=True)
class BlockReference:
    blockhash: str
    last_valid_block_height: int


@dataclass(frozen=True)
class Deadline:
    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(expires_at=time.monotonic() + seconds)

    def remaining(self) -> float:
        return self.expires_at - time.monotonic()

    def check(self, stage: str) -> float:
        left = self.remaining()
        if left <= 0:
            raise DeadlineExceeded(f"deadline exceeded before {stage}", stage=stage)
        return left

    def budget(self, stage: str, ceiling: float) -> float:
        return min(self.check(stage), ceiling)


def stage_budget(deadline: Optional[Deadline], stage: str, ceiling: float) -> float:
    if deadline is None:
        return ceiling
    return deadline.budget(stage, ceiling)


def validate_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"amount must be an integer in smallest units, got {amount!r}")
    if amount <= 0:
        raise ValueError(f"amount must be positive, got {amount}")
    return amount


def validate_slippage(slippage_bps: int) -> int:
    if isinstance(slippage_bps, bool) or not isinstance(slippage_bps, int):
        raise ValueError(f"slippage_bps must be an integer, got {slippage_bps!r}")
    if not 0 <= slippage_bps <= MAX_SLIPPAGE_BPS:
        raise ValueError(f"slippage_bps must be within [0, {MAX_SLIPPAGE_BPS}], got {slippage_bps}")
    return slippage_bps


def to_smallest_units(amount: Union[str, int, float, Decimal], decimals: int = DEFAULT_TOKEN_DECIMALS) -> int:
    """Convert a human decimal amount into integer base units, rounding down."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"amount {amount!r} is not a decimal number") from None
    if not value.is_finite():
        raise ValueError(f"amount {amount!r} is not finite")
    units = int((value * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_FLOOR))
    if units <= 0:
        raise ValueError(f"amount {amount!r} is below one base unit")
    return units
