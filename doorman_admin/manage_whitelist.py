# Whitelist maintenance: add addresses, reset the counter, close, or list entries.

import argparse
import asyncio
import logging
from typing import Iterable, List

from anchorpy import Context, Program
from solana.rpc.core import RPCException
from solders.pubkey import Pubkey

from .accounts import decode_whitelist, fetch_account, whitelisted_addresses
from .config import (
    MAX_WHITELIST_LEN,
    Settings,
    program_client,
    setup_logging,
    with_tx_timeout,
)

# pubkeys per add_whitelist_addresses transaction, keeps it under the packet size
BATCH_SIZE = 20

log = logging.getLogger(__name__)


def load_addresses(lines: Iterable[str]) -> List[Pubkey]:
    """One address per line; blanks and '#' comments skipped, duplicates dropped in order."""
    out: List[Pubkey] = []
    seen = set()
    for n, line in enumerate(lines, start=1):
        w = line.strip()
        if not w or w.startswith("#"):
            continue
        try:
            key = Pubkey.from_string(w)
        except ValueError:
            raise ValueError(f"line {n}: not a valid address: {w!r}")
        if key in seen:
            log.debug("line %d: duplicate %s skipped", n, key)
            continue
        seen.add(key)
        out.append(key)
    return out


def batches(items: List[Pubkey], size: int = BATCH_SIZE) -> List[List[Pubkey]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


async def add_addresses(program: Program, settings: Settings, addresses: List[Pubkey]) -> List[object]:
    config = await program.account["Config"].fetch(settings.doorman_config)
    counter = int(config.counter)
    if counter + len(addresses) > MAX_WHITELIST_LEN:
        # the program would reject this with NotEnoughSpace anyway
        raise ValueError(
            f"whitelist has {MAX_WHITELIST_LEN - counter} free slots, {len(addresses)} addresses given"
        )

    sigs = []
    for i, batch in enumerate(batches(addresses), start=1):
        try:
            tx = await with_tx_timeout(
                program.rpc["add_whitelist_addresses"](
                    batch,
                    ctx=Context(
                        accounts={
                            "config": settings.doorman_config,
                            "whitelist": settings.doorman_whitelist,
                            "authority": program.provider.wallet.public_key,
                        },
                    ),
                ),
                "add_whitelist_addresses",
            )
        except RPCException as e:
            log.error("batch %d failed after %d addresses were added: %s", i, (i - 1) * BATCH_SIZE, e)
            raise
        print(f"✓ batch {i}: added {len(batch)} addresses. Tx: {tx}")
        sigs.append(tx)
    return sigs


async def reset_counter(program: Program, settings: Settings):
    return await with_tx_timeout(
        program.rpc["reset_whitelist_counter"](
            ctx=Context(
                accounts={
                    "config": settings.doorman_config,
                    "authority": program.provider.wallet.public_key,
                },
            ),
        ),
        "reset_whitelist_counter",
    )


async def close_whitelist(program: Program, settings: Settings):
    """Disables the whitelist and returns the account's rent to the authority."""
    return await with_tx_timeout(
        program.rpc["close_whitelist"](
            ctx=Context(
                accounts={
                    "config": settings.doorman_config,
                    "authority": program.provider.wallet.public_key,
                    "whitelist": settings.doorman_whitelist,
                },
            ),
        ),
        "close_whitelist",
    )


async def list_addresses(program: Program, settings: Settings) -> List[Pubkey]:
    info = await fetch_account(program.provider.connection, settings.doorman_whitelist, "whitelist")
    entries = whitelisted_addresses(decode_whitelist(bytes(info.data)))
    for addr in entries:
        print(addr)
    print(f"\n{len(entries)} whitelisted addresses")
    return entries


# ─── CLI ──────────────────────────────────────────────────────────────────────

async def _dispatch(args: argparse.Namespace) -> int:
    settings = Settings.from_env()

    # parse the file before connecting so a typo costs nothing
    addresses = []
    if args.cmd == "add":
        with open(args.file, "r", encoding="utf-8") as f:
            addresses = load_addresses(f)
        print(f"{len(addresses)} addresses read from {args.file}")

    prog = await program_client(settings)
    try:
        if args.cmd == "add":
            await add_addresses(prog, settings, addresses)
        elif args.cmd == "reset":
            tx = await reset_counter(prog, settings)
            print("✓ whitelist counter reset. Tx:", tx)
        elif args.cmd == "close":
            tx = await close_whitelist(prog, settings)
            print("✓ whitelist closed. Tx:", tx)
        else:
            await list_addresses(prog, settings)
    finally:
        await prog.provider.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="doorman-whitelist", description="Manage the doorman whitelist.")
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")

    sub = p.add_subparsers(dest="cmd", required=True)

    a = sub.add_parser("add", help="Append addresses from a file (one per line).")
    a.add_argument("file", help="Path to the address list.")

    sub.add_parser("reset", help="Reset the whitelist counter to zero.")
    sub.add_parser("close", help="Disable the whitelist and close its account.")
    sub.add_parser("list", help="Print the whitelisted addresses.")
    return p


def run() -> None:
    args = build_parser().parse_args()
    setup_logging(args.verbose)
    raise SystemExit(asyncio.run(_dispatch(args)))


if __name__ == "__main__":
    run()
