import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from solders.keypair import Keypair

from .models import DEFAULT_SLIPPAGE_BPS, DEFAULT_TOKEN_DECIMALS, validate_slippage


@dataclass(frozen=True)
class AgentConfig:
    api_base_url: str = "https://api.sega.so"
    rpc_url: str = "https://api.testnet.sonic.game"
    request_timeout: float = 10.0
    retries: int = 0
    commitment: str = "confirmed"
    confirm_timeout: float = 60.0
    poll_interval: float = 0.5
    tx_version: str = "V0"
    default_slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    compute_unit_price_micro_lamports: Optional[int] = 10_500
    wrap_sol: bool = True
    unwrap_sol: bool = False
    token_decimals: int = DEFAULT_TOKEN_DECIMALS
    user_agent: str = "sonic-agent/1.0"

    def __post_init__(self) -> None:
        validate_slippage(self.default_slippage_bps)
        if self.retries < 0:
            raise ValueError("retries must be non-negative")
        if self.confirm_timeout <= 0 or self.request_timeout <= 0:
            raise ValueError("timeouts must be positive")


ENV_OVERRIDES = {
    "SONIC_RPC_URL": "rpc_url",
    "SEGA_API_URL": "api_base_url",
}


def config_from_mapping(raw: Mapping[str, Any]) -> AgentConfig:
    known = {f.name for f in fields(AgentConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(unknown)}")
    return AgentConfig(**dict(raw))


def load_config(config_path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> AgentConfig:
    raw: Dict[str, Any] = {}
    if config_path is not None:
        with config_path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"{config_path} must contain a mapping")

    config = config_from_mapping(raw)
    env = os.environ if environ is None else environ
    overrides = {attr: env[name] for name, attr in ENV_OVERRIDES.items() if env.get(name)}
    return replace(config, **overrides) if overrides else config


def load_keypair(environ: Optional[Mapping[str, str]] = None, variable: str = "SOLANA_PRIVATE_KEY") -> Keypair:
    env = os.environ if environ is None else environ
    raw = env.get(variable)
    if not raw:
        raise ValueError(f"{variable} environment variable is required")

    if raw.strip().startswith("["):
        return Keypair.from_bytes(bytes(json.loads(raw)))
    return Keypair.from_base58_string(raw.strip())
