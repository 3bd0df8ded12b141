"""
Shared fixtures for the doorman admin test suite.

Nothing here touches a cluster: the AnchorPy Program is replaced by a
MagicMock whose RPC surface (rpc namespace, Config fetcher, connection)
is AsyncMock-based, and on-chain accounts are plain byte strings built
with the real account layouts.
"""

import struct
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from doorman_admin.config import Settings, derive_vault_authority
from doorman_admin.disc import discriminator_whitelist

RENT_EXEMPT_LAMPORTS = 248_400_000

# ============================================================================
# ACCOUNT DATA BUILDERS
# ============================================================================


def mint_data(supply: int = 20, decimals: int = 0) -> bytes:
    authority = b"\x01\x00\x00\x00" + bytes(Pubkey.new_unique())
    freeze = b"\x00" * 36
    return authority + struct.pack("<Q", supply) + bytes([decimals, 1]) + freeze


def token_account_data(mint: Pubkey, owner: Pubkey, amount: int) -> bytes:
    data = bytes(mint) + bytes(owner) + struct.pack("<Q", amount)
    return data + b"\x00" * (165 - len(data))


def whitelist_data(entries, capacity: int = 1111) -> bytes:
    slots = [bytes(k) for k in entries] + [bytes(32)] * (capacity - len(entries))
    return discriminator_whitelist() + b"".join(slots)


def account(data: bytes, owner: Pubkey, lamports: int = 1_461_600):
    return SimpleNamespace(lamports=lamports, data=data, owner=owner, executable=False, rent_epoch=0)


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        rpc_url="http://localhost:8899",
        doorman_program=Pubkey.new_unique(),
        candymachine_program=Pubkey.new_unique(),
        candymachine_id=Pubkey.new_unique(),
        doorman_config=Pubkey.new_unique(),
        doorman_treasury=Pubkey.new_unique(),
        doorman_whitelist=Pubkey.new_unique(),
        initializor_token_account=Pubkey.new_unique(),
        mint=Pubkey.new_unique(),
    )


@pytest.fixture
def wallet() -> Keypair:
    return Keypair()


@pytest.fixture
def config_record(settings, wallet):
    """Decoded Config record as AnchorPy returns it (snake_case attributes)."""
    return SimpleNamespace(
        whitelist_enabled=True,
        cost_in_lamports=1_000_000,
        go_live_date=1_640_000_000,
        authority=wallet.pubkey(),
        whitelist=settings.doorman_whitelist,
        treasury=settings.doorman_treasury,
        mint=settings.mint,
        mint_token_vault=Pubkey.new_unique(),
        counter=2,
        num_tokens=10,
    )


@pytest.fixture
def program(settings, wallet, config_record):
    prog = MagicMock()
    prog.program_id = settings.doorman_program
    prog.provider.wallet.public_key = wallet.pubkey()
    prog.provider.wallet.payer = wallet
    prog.provider.close = AsyncMock()

    conn = MagicMock()
    conn.get_minimum_balance_for_rent_exemption = AsyncMock(
        return_value=SimpleNamespace(value=RENT_EXEMPT_LAMPORTS)
    )
    conn.get_account_info = AsyncMock(return_value=SimpleNamespace(value=None))
    prog.provider.connection = conn

    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(return_value=config_record)
    prog.account = {"Config": fetcher}

    prog.rpc = {
        name: AsyncMock(return_value=f"{name}-sig")
        for name in (
            "initialize",
            "update_config",
            "add_whitelist_addresses",
            "reset_whitelist_counter",
            "close_whitelist",
            "add_mint_tokens",
        )
    }
    return prog


@pytest.fixture
def chain_accounts(settings, config_record):
    """Address -> account for a fully initialized doorman deployment."""
    vault_authority, _ = derive_vault_authority(settings.doorman_program)
    token_program = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
    entries = [Pubkey.new_unique(), Pubkey.new_unique()]
    return {
        settings.mint: account(mint_data(), token_program),
        config_record.mint_token_vault: account(
            token_account_data(settings.mint, vault_authority, 10), token_program, lamports=2_039_280
        ),
        settings.doorman_whitelist: account(
            whitelist_data(entries), settings.doorman_program, lamports=RENT_EXEMPT_LAMPORTS
        ),
    }


@pytest.fixture
def served_program(program, chain_accounts):
    """Program whose connection answers from chain_accounts (mutations are seen live)."""

    async def get_account_info(address, *args, **kwargs):
        return SimpleNamespace(value=chain_accounts.get(address))

    program.provider.connection.get_account_info = AsyncMock(side_effect=get_account_info)
    return program
