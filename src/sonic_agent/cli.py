import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, List, Optional

from .agent import SonicSwapAgent
from .config import AgentConfig, load_config, load_keypair
from .errors import SonicAgentError
from .models import SwapDirection, to_smallest_units


def configure_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    log = logging.getLogger("sonic_agent")
    log.setLevel(level.upper())
    for old in list(log.handlers):
        log.removeHandler(old)
        old.close()
    fmt = logging.Formatter(fmt="%(asctime)sZ %(levelname)s %(message)s", datefmt="%Y-%m-%dT%H:%M:%S")
    fmt.converter = time.gmtime
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(fmt)
        log.addHandler(handler)
    return log


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sonic-agent", description="Sega DEX swaps on Sonic")
    parser.add_argument("--config", type=Path, default=None, help="YAML agent configuration")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    def pair_command(name: str, help_text: str) -> argparse.ArgumentParser:
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("input_mint")
        cmd.add_argument("output_mint")
        cmd.add_argument("amount", help="human decimal amount, converted with --decimals")
        cmd.add_argument("--decimals", type=int, default=None)
        cmd.add_argument("--timeout", type=float, default=None)
        return cmd

    for name in ("quote", "swap"):
        cmd = pair_command(name, f"{name} tokens on Sega")
        cmd.add_argument("--slippage-bps", type=int, default=None)
        cmd.add_argument("--exact-output", action="store_true")
        cmd.add_argument("--smart", action="store_true", help="use smart routing")
    quote_cmd = sub.choices["quote"]
    quote_cmd.add_argument("--estimate-fallback", action="store_true")

    pair_command("estimate", "estimate output from USD prices")

    price = sub.add_parser("price", help="USD price of a token")
    price.add_argument("mint")

    balance = sub.add_parser("balance", help="native balance in lamports, or token balance with --mint")
    balance.add_argument("address", nargs="?", default=None)
    balance.add_argument("--mint", default=None)

    transfer = sub.add_parser("transfer", help="send SOL or an SPL token")
    transfer.add_argument("recipient")
    transfer.add_argument("amount", help="human decimal amount")
    transfer.add_argument("--mint", default=None, help="SPL token mint; SOL when omitted")
    transfer.add_argument("--decimals", type=int, default=None)
    transfer.add_argument("--timeout", type=float, default=None)

    sub.add_parser("tps", help="current ledger transactions per second")
    sub.add_parser("leaderboard", help="Sega points leaderboard")
    stats = sub.add_parser("stats", help="Sega volume stats for this wallet")
    stats.add_argument("--start-time", type=int, default=None)
    stats.add_argument("--end-time", type=int, default=None)
    return parser


def run(args: argparse.Namespace, config: AgentConfig) -> Any:
    agent = SonicSwapAgent(config, load_keypair())
    try:
        if args.command == "price":
            price = agent.market.token_price(args.mint)
            return {"mint": args.mint, "priceInUSD": None if price is None else str(price)}
        if args.command == "balance":
            address = args.address or agent.wallet_address
            if args.mint is not None:
                return {"address": address, "mint": args.mint, "amount": agent.get_balance(address, mint=args.mint)}
            return {"address": address, "lamports": agent.get_balance(address)}
        if args.command == "tps":
            return {"tps": agent.get_tps()}
        if args.command == "leaderboard":
            return {"leaderboard": agent.leaderboard()}
        if args.command == "stats":
            return {"stats": agent.sonic_stats(args.start_time, args.end_time)}
        if args.command == "transfer":
            decimals = args.decimals
            if decimals is None:
                decimals = config.token_decimals if args.mint is None else agent.ledger.get_mint_decimals(args.mint)
            amount = to_smallest_units(args.amount, decimals)
            return agent.transfer(args.recipient, amount, mint=args.mint, timeout=args.timeout).as_dict()

        decimals = config.token_decimals if args.decimals is None else args.decimals
        amount = to_smallest_units(args.amount, decimals)
        if args.command == "estimate":
            return {"inputAmount": amount, "outputAmount": agent.estimate(args.input_mint, args.output_mint, amount)}

        direction = SwapDirection.EXACT_OUTPUT if args.exact_output else SwapDirection.EXACT_INPUT
        if args.command == "quote":
            summary = agent.quote(
                args.input_mint,
                args.output_mint,
                amount,
                slippage_bps=args.slippage_bps,
                direction=direction,
                smart=args.smart,
                fallback_to_estimate=args.estimate_fallback,
                timeout=args.timeout,
            )
            return summary.as_dict()
        result = agent.swap(
            args.input_mint,
            args.output_mint,
            amount,
            slippage_bps=args.slippage_bps,
            direction=direction,
            smart=args.smart,
            timeout=args.timeout,
        )
        return result.as_dict()
    finally:
        agent.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log = configure_logging(args.log_level, args.log_file)
    try:
        config = load_config(args.config)
        output = run(args, config)
    except SonicAgentError as exc:
        log.error(f"{args.command} failed: {exc}")
        print(json.dumps({"status": "error", "stage": exc.stage, "message": str(exc), "signature": exc.signature}))
        return 1
    except ValueError as exc:
        log.error(f"{args.command} rejected: {exc}")
        print(json.dumps({"status": "error", "message": str(exc)}))
        return 2
    print(json.dumps({"status": "success", **output}))
    return 0


if __name__ == "__main__":
    sys.exit(main())
