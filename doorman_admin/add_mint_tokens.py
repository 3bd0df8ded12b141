# Move more mint tokens from the initializor's account into the doorman vault.

import argparse
import asyncio
import logging

from anchorpy import Context, Program
from solana.rpc.core import RPCException
from spl.token.constants import TOKEN_PROGRAM_ID

from .config import (
    Settings,
    fetch_and_format_config,
    program_client,
    setup_logging,
    with_tx_timeout,
)

log = logging.getLogger(__name__)


async def add_mint_tokens(program: Program, settings: Settings, num_tokens: int):
    if num_tokens <= 0:
        raise ValueError(f"Number of tokens must be positive: {num_tokens}")

    config = await program.account["Config"].fetch(settings.doorman_config)
    try:
        return await with_tx_timeout(
            program.rpc["add_mint_tokens"](
                num_tokens,
                ctx=Context(
                    accounts={
                        "config": settings.doorman_config,
                        "authority": program.provider.wallet.public_key,
                        "mint": config.mint,
                        "token_program": TOKEN_PROGRAM_ID,
                        "authority_mint_account": settings.initializor_token_account,
                        "mint_token_vault": config.mint_token_vault,
                    },
                ),
            ),
            "add_mint_tokens",
        )
    except RPCException as e:
        log.error("add_mint_tokens failed: %s", e)
        raise


async def main(num_tokens: int) -> None:
    settings = Settings.from_env()
    prog = await program_client(settings)
    try:
        tx = await add_mint_tokens(prog, settings, num_tokens)
        print(f"✓ added {num_tokens} mint tokens to the vault. Tx: {tx}")

        view = await fetch_and_format_config(prog, settings.doorman_config)
        print(">> num tokens now: ", view["num_tokens"])
    finally:
        await prog.provider.close()


def run() -> None:
    parser = argparse.ArgumentParser(prog="doorman-add-mint-tokens", description="Top up the doorman mint token vault.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument("--amount", required=True, type=int, help="Number of mint tokens to transfer.")
    args = parser.parse_args()
    setup_logging(args.verbose)
    asyncio.run(main(args.amount))


if __name__ == "__main__":
    run()
