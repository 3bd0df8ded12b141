# Print the on-chain doorman state for the addresses in .env. Read-only.

import argparse
import asyncio
import logging
from dataclasses import asdict
from typing import Any, Dict

from anchorpy import Program
from solders.pubkey import Pubkey

from .accounts import (
    decode_whitelist,
    fetch_account,
    format_account_info,
    parse_mint,
    parse_token_account,
    whitelisted_addresses,
)
from .config import (
    Settings,
    derive_vault_address,
    derive_vault_authority,
    fetch_and_format_config,
    print_config,
    program_client,
    setup_logging,
)

log = logging.getLogger(__name__)


async def print_state(program: Program, settings: Settings) -> Dict[str, Any]:
    """
    Fetch and print config, mint, vault and whitelist. Any missing account
    raises; nothing is printed as a placeholder.
    """
    conn = program.provider.connection

    config = await fetch_and_format_config(program, settings.doorman_config)
    print_config(config)

    mint_info = await fetch_account(conn, settings.mint, "mint")
    mint = format_account_info(mint_info)
    mint.update(asdict(parse_mint(bytes(mint_info.data))))
    print_config(mint, f"mint account {settings.mint}")

    vault_address = Pubkey.from_string(config["mint_token_vault"])
    derived, bump = derive_vault_address(program.program_id, settings.mint)
    vault_authority, _ = derive_vault_authority(program.program_id)
    print(">> mint token vault address: ", vault_address)
    print(">> derived vault address (seeds [doorman, mint]): ", derived, "bump", bump)

    vault_info = await fetch_account(conn, vault_address, "mint token vault")
    token_state = parse_token_account(bytes(vault_info.data))
    vault = format_account_info(vault_info)
    vault.update(
        {
            "token_mint": str(token_state.mint),
            "token_owner": str(token_state.owner),
            "token_amount": token_state.amount,
            "owned_by_doorman": token_state.owner == vault_authority,
        }
    )
    print_config(vault, "mint token vault")
    if token_state.owner != vault_authority:
        log.warning("vault owner %s is not the doorman authority %s", token_state.owner, vault_authority)

    wl_info = await fetch_account(conn, settings.doorman_whitelist, "whitelist")
    slots = decode_whitelist(bytes(wl_info.data))
    entries = whitelisted_addresses(slots)
    whitelist = format_account_info(wl_info)
    whitelist.update({"capacity": len(slots), "entries": len(entries)})
    print_config(whitelist, f"whitelist {settings.doorman_whitelist}")
    for i, addr in enumerate(entries):
        log.debug("whitelist[%d] = %s", i, addr)

    return {
        "config": config,
        "mint": mint,
        "mint_token_vault": vault,
        "derived_vault_address": str(derived),
        "whitelist": whitelist,
    }


async def main() -> Dict[str, Any]:
    settings = Settings.from_env()
    prog = await program_client(settings)
    try:
        return await print_state(prog, settings)
    finally:
        await prog.provider.close()


def run() -> None:
    parser = argparse.ArgumentParser(prog="doorman-show-config", description="Print the doorman on-chain state.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()
    setup_logging(args.verbose)
    asyncio.run(main())


if __name__ == "__main__":
    run()
