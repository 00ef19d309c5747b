import logging
from typing import Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .config import AgentConfig
from .errors import QuoteUnavailable, SonicAgentError
from .executor import TransactionExecutor
from .http_client import HttpClient
from .ledger import SolanaLedger
from .market import MarketDataClient
from .models import Deadline, QuoteSummary, SwapDirection, SwapResult, TransferResult, validate_amount
from .oracle import PriceOracle
from .quotes import QuoteFetcher
from .transactions import TransactionBuilder
from .transfers import native_transfer, token_transfer

LOG = logging.getLogger(__name__)


class SonicSwapAgent:
    """Holds a keypair and runs quote/swap operations against Sega and the ledger.

    Every ``swap`` call performs its own quote -> build -> sign -> submit ->
    confirm sequence; nothing is cached or resumed between calls.
    """

    def __init__(
        self,
        agent_config: AgentConfig,
        keypair: Keypair,
        ledger: Optional[SolanaLedger] = None,
        http: Optional[HttpClient] = None,
    ) -> None:
        self.agent_config = agent_config
        self.keypair = keypair
        self.http = http or HttpClient(
            timeout=agent_config.request_timeout,
            max_retries=agent_config.retries,
            user_agent=agent_config.user_agent,
        )
        self.ledger = ledger or SolanaLedger(
            agent_config.rpc_url,
            commitment=agent_config.commitment,
            timeout=agent_config.request_timeout,
            poll_interval=agent_config.poll_interval,
        )
        base_url = agent_config.api_base_url
        timeout = agent_config.request_timeout
        self.quotes = QuoteFetcher(
            self.http,
            base_url,
            tx_version=agent_config.tx_version,
            default_slippage_bps=agent_config.default_slippage_bps,
            timeout=timeout,
        )
        self.builder = TransactionBuilder(self.http, base_url, tx_version=agent_config.tx_version, timeout=timeout)
        self.executor = TransactionExecutor(self.ledger, confirm_timeout=agent_config.confirm_timeout)
        self.oracle = PriceOracle(self.http, base_url, timeout=timeout)
        self.market = MarketDataClient(self.http, base_url, timeout=timeout)

    @property
    def wallet_address(self) -> str:
        return str(self.keypair.pubkey())

    def get_balance(self, address: Optional[str] = None, mint: Optional[str] = None) -> int:
        """Native lamports, or base units of ``mint`` when one is given."""
        owner = address or self.wallet_address
        if mint is not None:
            return self.ledger.get_token_balance(owner, mint)
        return self.ledger.get_balance(owner)

    def get_tps(self) -> float:
        return self.ledger.get_tps()

    def leaderboard(self):
        return self.market.leaderboard(self.wallet_address)

    def sonic_stats(self, start_time: Optional[int] = None, end_time: Optional[int] = None):
        return self.market.sonic_stats(self.wallet_address, start_time=start_time, end_time=end_time)

    def transfer(
        self,
        recipient: str,
        amount: int,
        mint: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> TransferResult:
        """Send ``amount`` base units of SOL, or of the SPL token ``mint``, to ``recipient``."""
        validate_amount(amount)
        to = Pubkey.from_string(recipient)
        deadline = Deadline.after(timeout) if timeout is not None else None
        sender = self.keypair.pubkey()
        try:
            if mint is None:
                instructions = native_transfer(sender, to, amount)
            else:
                decimals = self.ledger.get_mint_decimals(mint)
                instructions = token_transfer(sender, to, Pubkey.from_string(mint), amount, decimals)
            signature = self.executor.execute_instructions(instructions, self.keypair, deadline=deadline)
        except SonicAgentError as exc:
            LOG.error(f"Transfer of {amount} {mint or 'lamports'} to {recipient} aborted at {exc.stage}: {exc}")
            raise
        LOG.info(f"Transferred {amount} {mint or 'lamports'} to {recipient}: {signature}")
        return TransferResult(signature=signature, recipient=recipient, amount=amount, mint=mint)

    def quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: Optional[int] = None,
        direction: SwapDirection = SwapDirection.EXACT_INPUT,
        smart: bool = False,
        fallback_to_estimate: bool = False,
        timeout: Optional[float] = None,
    ) -> QuoteSummary:
        deadline = Deadline.after(timeout) if timeout is not None else None
        try:
            quote = self.quotes.fetch(
                input_mint,
                output_mint,
                amount,
                direction=direction,
                slippage_bps=slippage_bps,
                smart=smart,
                deadline=deadline,
            )
        except QuoteUnavailable as exc:
            if not fallback_to_estimate or direction is not SwapDirection.EXACT_INPUT:
                raise
            LOG.warning(f"Quote unavailable ({exc}); falling back to price estimate")
            estimate = self.oracle.estimate(input_mint, output_mint, amount, deadline=deadline)
            return QuoteSummary(
                input_amount=amount,
                output_amount=estimate,
                price_impact_pct=None,
                input_mint=input_mint,
                output_mint=output_mint,
                estimated=True,
            )
        return QuoteSummary.from_quote(quote)

    def smart_quote(self, input_mint: str, output_mint: str, amount: int, **kwargs) -> QuoteSummary:
        return self.quote(input_mint, output_mint, amount, smart=True, **kwargs)

    def estimate(self, input_mint: str, output_mint: str, amount: int) -> int:
        return self.oracle.estimate(input_mint, output_mint, amount)

    def swap(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: Optional[int] = None,
        direction: SwapDirection = SwapDirection.EXACT_INPUT,
        smart: bool = False,
        timeout: Optional[float] = None,
    ) -> SwapResult:
        deadline = Deadline.after(timeout) if timeout is not None else None
        config = self.agent_config
        try:
            quote = self.quotes.fetch(
                input_mint,
                output_mint,
                amount,
                direction=direction,
                slippage_bps=slippage_bps,
                smart=smart,
                deadline=deadline,
            )
            bundle = self.builder.build(
                self.wallet_address,
                quote,
                compute_unit_price_micro_lamports=config.compute_unit_price_micro_lamports,
                wrap_sol=config.wrap_sol,
                unwrap_sol=config.unwrap_sol,
                deadline=deadline,
            )
            signatures = self.executor.execute_bundle(bundle, self.keypair, deadline=deadline)
        except SonicAgentError as exc:
            LOG.error(f"Swap {input_mint} -> {output_mint} aborted at {exc.stage}: {exc}")
            raise

        # reports the quoted output, not the amount settled on-chain
        result = SwapResult(
            signature=signatures[-1],
            input_amount=quote.input_amount,
            output_amount=quote.output_amount,
            input_mint=quote.input_mint,
            output_mint=quote.output_mint,
            signatures=tuple(signatures),
        )
        LOG.info(f"Swap {input_mint} -> {output_mint} settled: {result.signature}")
        return result

    def smart_swap(self, input_mint: str, output_mint: str, amount: int, **kwargs) -> SwapResult:
        return self.swap(input_mint, output_mint, amount, smart=True, **kwargs)

    def close(self) -> None:
        self.http.close()
