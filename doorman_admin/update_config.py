# Change price, go-live date and whitelist flag on the existing doorman config.

import argparse
import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from anchorpy import Context, Program
from solana.rpc.core import RPCException

from .config import (
    Settings,
    fetch_and_format_config,
    format_sol,
    format_timestamp,
    go_live_timestamp,
    optional_str,
    print_config,
    program_client,
    setup_logging,
    sol_to_lamports,
    with_tx_timeout,
)

# ─── Config ───────────────────────────────────────────────────────────────────

COST_IN_SOL = "0.002"
GO_LIVE_OFFSET_S = 55_555_500   # in the future
ENABLE_WHITELIST = False

log = logging.getLogger(__name__)


class UpdateNotApplied(RuntimeError):
    """The Config read back after update_config does not hold the submitted values."""


async def update_config(
    program: Program,
    settings: Settings,
    cost_in_lamports: Optional[int],
    go_live_date: Optional[int],
    enable_whitelist: Optional[bool],
):
    """Any argument left as None keeps its current on-chain value."""
    try:
        return await with_tx_timeout(
            program.rpc["update_config"](
                cost_in_lamports,
                go_live_date,
                enable_whitelist,
                ctx=Context(
                    accounts={
                        "config": settings.doorman_config,
                        "authority": program.provider.wallet.public_key,
                    },
                ),
            ),
            "update_config",
        )
    except RPCException as e:
        log.error("update_config failed (is this wallet the config authority?): %s", e)
        raise


def check_applied(
    view: Dict[str, Any],
    cost_in_lamports: Optional[int],
    go_live_date: Optional[int],
    enable_whitelist: Optional[bool],
) -> bool:
    expected = {}
    if cost_in_lamports is not None:
        expected["cost_in_sol"] = format_sol(cost_in_lamports)
    if go_live_date is not None:
        expected["go_live_date"] = format_timestamp(go_live_date)
    if enable_whitelist is not None:
        expected["whitelist_enabled"] = enable_whitelist

    ok = True
    for key, want in expected.items():
        if view[key] != want:
            log.warning("%s is %s on-chain, expected %s", key, view[key], want)
            ok = False
    return ok


async def main(
    cost_in_sol: Optional[Union[str, Decimal]] = COST_IN_SOL,
    go_live_offset_s: Optional[int] = GO_LIVE_OFFSET_S,
    enable_whitelist: Optional[bool] = ENABLE_WHITELIST,
    now: Optional[float] = None,
) -> Dict[str, Any]:
    settings = Settings.from_env()

    cost_in_lamports = None if cost_in_sol is None else sol_to_lamports(cost_in_sol)
    go_live_date = None if go_live_offset_s is None else go_live_timestamp(go_live_offset_s, now)

    prog = await program_client(settings)
    try:
        tx = await update_config(prog, settings, cost_in_lamports, go_live_date, enable_whitelist)
        print("\n\nconfig updated. Tx:", tx)
        print(">> cost in sol should be: ", optional_str(cost_in_sol))
        print(">> go live date should be: ", optional_str(None if go_live_date is None else format_timestamp(go_live_date)))
        print(">> whitelist enabled should be: ", optional_str(enable_whitelist))

        view = await fetch_and_format_config(prog, settings.doorman_config)
        print_config(view)
        if not check_applied(view, cost_in_lamports, go_live_date, enable_whitelist):
            raise UpdateNotApplied(f"config {settings.doorman_config} does not hold the submitted values")
        return view
    finally:
        await prog.provider.close()


def run() -> None:
    parser = argparse.ArgumentParser(
        prog="doorman-update-config",
        description="Update cost, go-live date and whitelist flag (values are set in update_config.py).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()
    setup_logging(args.verbose)
    try:
        asyncio.run(main())
    except UpdateNotApplied as e:
        log.error("%s", e)
        raise SystemExit(1)


if __name__ == "__main__":
    run()
