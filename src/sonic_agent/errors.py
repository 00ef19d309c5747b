"""Error taxonomy for the swap pipeline.

Every failure surfaced to callers is one of these kinds. Each carries the
stage it originated in and, where the upstream service supplied them, the
HTTP status and server message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(eq=False)
class SonicAgentError(Exception):
    """Base error carrying stage and upstream context."""

    message: str
    stage: str = ""
    http_status: Optional[int] = None
    service_message: Optional[str] = None
    timed_out: bool = False
    signature: Optional[str] = None
    landed_signatures: Tuple[str, ...] = ()
    cause: Optional[BaseException] = None

    default_stage = "agent"

    def __post_init__(self) -> None:
        if not self.stage:
            self.stage = self.default_stage

    def __str__(self) -> str:
        suffix = [f"stage={self.stage}"]
        if self.http_status is not None:
            suffix.append(f"status={self.http_status}")
        if self.service_message:
            suffix.append(f"service={self.service_message}")
        if self.timed_out:
            suffix.append("timed_out")
        if self.signature:
            suffix.append(f"signature={self.signature}")
        if self.cause:
            suffix.append(f"cause={self.cause}")
        return f"{self.message} ({', '.join(suffix)})"


class QuoteUnavailable(SonicAgentError):
    default_stage = "quote"


class TransactionBuildFailed(SonicAgentError):
    default_stage = "build"


class MalformedTransaction(SonicAgentError):
    default_stage = "decode"


class SigningError(SonicAgentError):
    default_stage = "sign"


class SubmissionFailed(SonicAgentError):
    """The ledger definitely did not apply the transaction."""

    default_stage = "submit"


class TransactionReverted(SubmissionFailed):
    """Landed on-chain but executed with an error."""

    default_stage = "confirm"


class BlockReferenceExpired(SubmissionFailed):
    """The block reference expired before the transaction landed."""

    default_stage = "confirm"


class ConfirmationTimeout(SonicAgentError):
    """Submitted, but settlement is unknown when the wait ran out."""

    default_stage = "confirm"


class PriceDataUnavailable(SonicAgentError):
    default_stage = "price"


class MarketDataUnavailable(SonicAgentError):
    default_stage = "market"


class DeadlineExceeded(SonicAgentError):
    """The caller's deadline ran out before a stage could start."""

    def __post_init__(self) -> None:
        self.timed_out = True
        super().__post_init__()
