# Create a fresh doorman Config + Whitelist pair.
#
# Not idempotent: every run generates new config/whitelist keypairs. Copy the
# addresses and the whitelist secret key printed at the end, nothing else keeps them.

import argparse
import asyncio
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple, Union

from anchorpy import Context, Program
from solana.rpc.core import RPCException
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYS_PROGRAM_ID
from solders.system_program import CreateAccountParams, create_account
from spl.token.async_client import AsyncToken
from spl.token.constants import TOKEN_PROGRAM_ID

from .accounts import whitelist_account_size
from .config import (
    MAX_WHITELIST_LEN,
    RENT_SYSVAR_ID,
    TX_OPTS,
    Settings,
    fetch_and_format_config,
    go_live_timestamp,
    program_client,
    setup_logging,
    sol_to_lamports,
    with_tx_timeout,
)

# ─── Config ───────────────────────────────────────────────────────────────────

# set to False to use the mint / treasury given in .env
CREATE_NEW_MINT = False
CREATE_NEW_TREASURY = False
COST_IN_SOL = "0.001"
NUM_MINT_TOKENS = 10            # mint tokens handed to doorman for the vault
GO_LIVE_OFFSET_S = -5000        # relative to now; negative = already live
WHITELIST_SIZE = MAX_WHITELIST_LEN

# a fresh mint gets this many times NUM_MINT_TOKENS in the operator's account
MINT_MULTIPLIER = 2
NEW_MINT_DECIMALS = 0

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class InitParams:
    create_new_mint: bool = CREATE_NEW_MINT
    create_new_treasury: bool = CREATE_NEW_TREASURY
    cost_in_sol: Union[str, Decimal] = COST_IN_SOL
    num_mint_tokens: int = NUM_MINT_TOKENS
    go_live_offset_s: int = GO_LIVE_OFFSET_S
    whitelist_size: int = WHITELIST_SIZE


@dataclass(frozen=True)
class InitResult:
    tx: object
    config: Pubkey
    whitelist: Keypair
    mint: Pubkey
    treasury: Pubkey
    mint_token_vault: Pubkey
    authority_mint_account: Pubkey
    cost_in_lamports: int
    go_live_date: int
    whitelist_account_size: int


# ─── Steps ────────────────────────────────────────────────────────────────────

async def setup_mint(program: Program, settings: Settings, params: InitParams) -> Tuple[AsyncToken, Pubkey]:
    """Returns (token client for the mint, operator's token account holding it)."""
    conn = program.provider.connection
    payer = program.provider.wallet.payer
    owner = program.provider.wallet.public_key

    if not params.create_new_mint:
        token = AsyncToken(conn, settings.mint, TOKEN_PROGRAM_ID, payer)
        return token, settings.initializor_token_account

    print("\n1️⃣  Creating a new mint...")
    token = await with_tx_timeout(
        AsyncToken.create_mint(
            conn,
            payer,
            owner,
            NEW_MINT_DECIMALS,
            TOKEN_PROGRAM_ID,
        ),
        "create_mint",
    )
    print("  New mint pubkey:", token.pubkey)

    # this will be the initializor's token account
    holding = await with_tx_timeout(token.create_associated_token_account(owner), "create holding account")
    print("  Initializor token account:", holding)

    amount = params.num_mint_tokens * MINT_MULTIPLIER
    await with_tx_timeout(token.mint_to(holding, payer, amount, opts=TX_OPTS), "mint_to")
    print(f"✓ minted {amount} tokens to the initializor")
    return token, holding


def resolve_treasury(settings: Settings, params: InitParams) -> Pubkey:
    if params.create_new_treasury:
        # receives the SOL paid for mint tokens; nobody needs to sign for it
        return Keypair().pubkey()
    return settings.doorman_treasury


async def whitelist_create_ix(program: Program, whitelist: Pubkey, size: int):
    resp = await program.provider.connection.get_minimum_balance_for_rent_exemption(size)
    lamports = resp.value
    log.info("whitelist account: %d bytes, %d lamports for rent exemption", size, lamports)
    return create_account(
        CreateAccountParams(
            from_pubkey=program.provider.wallet.public_key,
            to_pubkey=whitelist,
            lamports=lamports,
            space=size,
            owner=program.program_id,
        )
    )


async def perform_init(
    program: Program,
    settings: Settings,
    params: InitParams = InitParams(),
    now: Optional[float] = None,
) -> InitResult:
    if params.whitelist_size != MAX_WHITELIST_LEN:
        log.warning(
            "whitelist size %d differs from the program's fixed capacity %d; initialize will likely fail",
            params.whitelist_size, MAX_WHITELIST_LEN,
        )

    # validate before anything touches the chain
    cost_in_lamports = sol_to_lamports(params.cost_in_sol)
    size = whitelist_account_size(params.whitelist_size)
    go_live_date = go_live_timestamp(params.go_live_offset_s, now)

    config_kp = Keypair()
    whitelist_kp = Keypair()
    authority = program.provider.wallet.public_key

    token, authority_mint_account = await setup_mint(program, settings, params)
    mint = token.pubkey

    print("\n2️⃣  Creating the mint token vault...")
    mint_token_vault = await with_tx_timeout(token.create_account(authority), "create vault")
    print("  mint token vault:", mint_token_vault)

    treasury = resolve_treasury(settings, params)

    log.info("mint: %s", mint)
    log.info("authority mint account: %s", authority_mint_account)
    log.info("cost: %d lamports, go live: %d", cost_in_lamports, go_live_date)

    print("\n3️⃣  Running initialize...")
    create_ix = await whitelist_create_ix(program, whitelist_kp.pubkey(), size)
    try:
        tx = await with_tx_timeout(
            program.rpc["initialize"](
                params.num_mint_tokens,
                cost_in_lamports,
                go_live_date,
                ctx=Context(
                    accounts={
                        "whitelist": whitelist_kp.pubkey(),
                        "config": config_kp.pubkey(),
                        "treasury": treasury,
                        "authority": authority,
                        "mint": mint,
                        "system_program": SYS_PROGRAM_ID,
                        "rent": RENT_SYSVAR_ID,
                        "token_program": TOKEN_PROGRAM_ID,
                        "mint_token_vault": mint_token_vault,
                        "authority_mint_account": authority_mint_account,
                    },
                    signers=[config_kp, whitelist_kp],
                    pre_instructions=[create_ix],
                ),
            ),
            "initialize",
        )
    except RPCException as e:
        log.error("initialize failed: %s", e)
        raise
    print("✓ initialize succeeded. Tx:", tx)

    return InitResult(
        tx=tx,
        config=config_kp.pubkey(),
        whitelist=whitelist_kp,
        mint=mint,
        treasury=treasury,
        mint_token_vault=mint_token_vault,
        authority_mint_account=authority_mint_account,
        cost_in_lamports=cost_in_lamports,
        go_live_date=go_live_date,
        whitelist_account_size=size,
    )


def print_summary(result: InitResult) -> None:
    print("\n\n")
    print(">>> config account to use: ", result.config)
    print(">>> mint account to use: ", result.mint)
    print(">>> treasury to use: ", result.treasury)
    print(">>> whitelist account public key: ", result.whitelist.pubkey())
    print(">>> whitelist account secret key: ", json.dumps(list(bytes(result.whitelist))))
    print("\n")


# ─── Main ─────────────────────────────────────────────────────────────────────

async def main(params: InitParams = InitParams()) -> InitResult:
    settings = Settings.from_env()
    prog = await program_client(settings)
    try:
        result = await perform_init(prog, settings, params)
        # print first: the summary is the only record of the whitelist secret key
        print_summary(result)

        view = await fetch_and_format_config(prog, result.config)
        for key, value in view.items():
            log.info("config %s = %s", key, value)
        return result
    finally:
        await prog.provider.close()


def run() -> None:
    parser = argparse.ArgumentParser(
        prog="doorman-initialize",
        description="Create a new doorman config and whitelist (parameters are set in initialize.py).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()
    setup_logging(args.verbose)
    asyncio.run(main())


if __name__ == "__main__":
    run()
