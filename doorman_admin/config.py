from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Awaitable, Dict, Optional, Tuple, TypeVar, Union

from anchorpy import Idl, Program, Provider, Wallet
from dotenv import load_dotenv
from solana.constants import LAMPORTS_PER_SOL
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.pubkey import Pubkey

# ─── Constants ────────────────────────────────────────────────────────────────

DEFAULT_RPC_URL = "https://api.devnet.solana.com"
BUNDLED_IDL_PATH = Path(__file__).resolve().parent / "idl" / "doorman.json"

# seed used on-chain for the vault authority and the per-mint vault address
DOORMAN_SEED = b"doorman"

# upper bound for a submitted transaction to be confirmed
TX_TIMEOUT_S = 30.0

# sends wait for the same commitment that reads use
TX_OPTS = TxOpts(skip_confirmation=False, preflight_commitment=Confirmed)

U64_MAX = 2**64 - 1

# must match MAX_LEN in the doorman program
MAX_WHITELIST_LEN = 1111

RENT_SYSVAR_ID = Pubkey.from_string("SysvarRent111111111111111111111111111111111")

# env var -> Settings field
PUBKEY_VARS = {
    "DOORMAN_PROGRAM_ID": "doorman_program",
    "REACT_APP_CANDYMACHINE_PROGRAM": "candymachine_program",
    "REACT_APP_CANDYMACHINE_ID": "candymachine_id",
    "REACT_APP_DOORMAN_CONFIG": "doorman_config",
    "REACT_APP_DOORMAN_TREASURY": "doorman_treasury",
    "REACT_APP_DOORMAN_WHITELIST": "doorman_whitelist",
    "DOORMAN_INITIALIZOR_TOKEN_ACCOUNT": "initializor_token_account",
    "REACT_APP_MINT": "mint",
}

T = TypeVar("T")
log = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when the environment is missing or carries a malformed identifier."""


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    doorman_program: Pubkey
    candymachine_program: Pubkey
    candymachine_id: Pubkey
    doorman_config: Pubkey
    doorman_treasury: Pubkey
    doorman_whitelist: Pubkey
    initializor_token_account: Pubkey
    mint: Pubkey  # shared between the candy machine and doorman
    idl_path: Path = BUNDLED_IDL_PATH

    @staticmethod
    def from_env() -> "Settings":
        load_dotenv()

        values: Dict[str, Pubkey] = {}
        problems = []
        for var, field in PUBKEY_VARS.items():
            raw = os.getenv(var, "").strip()
            if not raw:
                problems.append(f"{var} is not set")
                continue
            try:
                values[field] = Pubkey.from_string(raw)
            except ValueError:
                problems.append(f"{var} is not a valid public key: {raw!r}")

        if problems:
            raise ConfigError(
                "Invalid environment (put these in .env or export them):\n  "
                + "\n  ".join(problems)
            )

        rpc_url = os.getenv("ANCHOR_PROVIDER_URL", "").strip() or DEFAULT_RPC_URL
        idl_path = os.getenv("DOORMAN_IDL_PATH", "").strip()
        return Settings(
            rpc_url=rpc_url,
            idl_path=Path(idl_path) if idl_path else BUNDLED_IDL_PATH,
            **values,
        )


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


# ─── Program Client ───────────────────────────────────────────────────────────

async def program_client(settings: Settings) -> Program:
    """
    Connect to the configured cluster with the local wallet (ANCHOR_WALLET or
    ~/.config/solana/id.json), load the doorman IDL and return an AnchorPy
    Program client.
    """
    client = AsyncClient(settings.rpc_url, commitment=Confirmed, timeout=TX_TIMEOUT_S)
    provider = Provider(client, Wallet.local(), TX_OPTS)
    idl = Idl.from_json(settings.idl_path.read_text())
    log.debug("rpc=%s program=%s idl=%s", settings.rpc_url, settings.doorman_program, settings.idl_path)
    return Program(idl, settings.doorman_program, provider)


async def with_tx_timeout(aw: Awaitable[T], what: str = "transaction") -> T:
    """Await a submitted transaction, giving up after TX_TIMEOUT_S."""
    try:
        return await asyncio.wait_for(aw, TX_TIMEOUT_S)
    except asyncio.TimeoutError:
        log.error("%s not confirmed within %.0fs", what, TX_TIMEOUT_S)
        raise


# ─── Address Derivation ───────────────────────────────────────────────────────

def derive_vault_address(program_id: Pubkey, mint: Pubkey) -> Tuple[Pubkey, int]:
    """Per-mint token vault address: seeds [b"doorman", mint]."""
    return Pubkey.find_program_address([DOORMAN_SEED, bytes(mint)], program_id)


def derive_vault_authority(program_id: Pubkey) -> Tuple[Pubkey, int]:
    """PDA the program hands vault ownership to during initialize: seeds [b"doorman"]."""
    return Pubkey.find_program_address([DOORMAN_SEED], program_id)


# ─── Formatting ───────────────────────────────────────────────────────────────

def sol_to_lamports(cost_in_sol: Union[str, int, float, Decimal]) -> int:
    try:
        sol = Decimal(str(cost_in_sol))
    except InvalidOperation:
        raise ValueError(f"Not a decimal SOL amount: {cost_in_sol!r}")
    if not sol.is_finite():
        raise ValueError(f"Not a decimal SOL amount: {cost_in_sol!r}")
    if sol < 0:
        raise ValueError(f"Cost cannot be negative: {cost_in_sol}")

    lamports = sol * LAMPORTS_PER_SOL
    if lamports != lamports.to_integral_value():
        raise ValueError(f"{cost_in_sol} SOL is not a whole number of lamports")
    if lamports > U64_MAX:
        raise ValueError(f"{cost_in_sol} SOL does not fit in a u64 lamport amount")
    return int(lamports)


def go_live_timestamp(offset_s: int, now: Optional[float] = None) -> int:
    """Absolute unix time `offset_s` seconds from now (negative = in the past)."""
    if now is None:
        now = time.time()
    return int(now + offset_s)


def format_sol(lamports: int) -> str:
    sol = Decimal(int(lamports)) / Decimal(LAMPORTS_PER_SOL)
    return format(sol.normalize(), "f")


def format_timestamp(ts: int) -> str:
    try:
        return datetime.fromtimestamp(int(ts), tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        # any i64 is valid on-chain, datetime only covers years 1..9999
        return f"{int(ts)} (not a calendar date)"


def format_config(config: Any) -> Dict[str, Any]:
    """Render a decoded Config record with display-friendly values."""
    return {
        "authority": str(config.authority),
        "treasury": str(config.treasury),
        "mint": str(config.mint),
        "mint_token_vault": str(config.mint_token_vault),
        "whitelist": str(config.whitelist),
        "whitelist_enabled": bool(config.whitelist_enabled),
        "cost_in_lamports": str(config.cost_in_lamports),
        "cost_in_sol": format_sol(config.cost_in_lamports),
        "go_live_date": format_timestamp(config.go_live_date),
        "go_live_timestamp": int(config.go_live_date),
        "counter": int(config.counter),
        "num_tokens": int(config.num_tokens),
    }


async def fetch_and_format_config(program: Program, address: Pubkey) -> Dict[str, Any]:
    """
    Fetch the Config record at `address` and format it for display.
    Raises anchorpy's AccountDoesNotExistError when there is no such account.
    """
    config = await program.account["Config"].fetch(address)
    return format_config(config)


def print_config(view: Dict[str, Any], title: str = "config account data") -> None:
    print(f"\n >> {title}:")
    for key, value in view.items():
        print(f"    {key:<18}: {value}")


def optional_str(value: Optional[Any]) -> str:
    return "(unchanged)" if value is None else str(value)
