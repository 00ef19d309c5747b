from .agent import SonicSwapAgent
from .config import AgentConfig, load_config, load_keypair
from .errors import (
    BlockReferenceExpired,
    ConfirmationTimeout,
    DeadlineExceeded,
    MalformedTransaction,
    MarketDataUnavailable,
    PriceDataUnavailable,
    QuoteUnavailable,
    SigningError,
    SonicAgentError,
    SubmissionFailed,
    TransactionBuildFailed,
    TransactionReverted,
)
from .models import (
    Quote,
    QuoteSummary,
    RouteStep,
    SwapDirection,
    SwapResult,
    TransferResult,
    UnsignedTransactionBundle,
    to_smallest_units,
)

__all__ = [
    "AgentConfig",
    "BlockReferenceExpired",
    "ConfirmationTimeout",
    "DeadlineExceeded",
    "MalformedTransaction",
    "MarketDataUnavailable",
    "PriceDataUnavailable",
    "Quote",
    "QuoteSummary",
    "QuoteUnavailable",
    "RouteStep",
    "SigningError",
    "SonicAgentError",
    "SonicSwapAgent",
    "SubmissionFailed",
    "SwapDirection",
    "SwapResult",
    "TransactionBuildFailed",
    "TransactionReverted",
    "TransferResult",
    "UnsignedTransactionBundle",
    "load_config",
    "load_keypair",
    "to_smallest_units",
]
