from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Dict, List

from solana.rpc.async_api import AsyncClient
from solders.pubkey import Pubkey

from .disc import DISCRIMINATOR_SIZE, discriminator_whitelist

PUBKEY_SIZE = 32

# SPL token layouts
MINT_ACCOUNT_SIZE = 82
TOKEN_ACCOUNT_SIZE = 165


class AccountNotFoundError(RuntimeError):
    pass


def whitelist_account_size(capacity: int) -> int:
    """Bytes needed for a whitelist of `capacity` addresses plus the account discriminator."""
    if capacity < 0:
        raise ValueError(f"Whitelist capacity cannot be negative: {capacity}")
    return DISCRIMINATOR_SIZE + PUBKEY_SIZE * capacity


async def fetch_account(client: AsyncClient, address: Pubkey, label: str) -> Any:
    resp = await client.get_account_info(address)
    if resp.value is None:
        raise AccountNotFoundError(f"{label} account {address} not found")
    return resp.value


def format_account_info(info: Any) -> Dict[str, Any]:
    return {
        "owner": str(info.owner),
        "lamports": info.lamports,
        "data_len": len(info.data),
        "executable": info.executable,
        "rent_epoch": info.rent_epoch,
    }


# ─── Whitelist ────────────────────────────────────────────────────────────────

def decode_whitelist(data: bytes) -> List[Pubkey]:
    """
    Whitelist is zero-copy: 8-byte discriminator, then a packed array of pubkeys.
    Returns every slot, including the empty (all-zero) ones.
    """
    if data[:DISCRIMINATOR_SIZE] != discriminator_whitelist():
        raise ValueError("Account data is not a doorman Whitelist (discriminator mismatch)")

    body = data[DISCRIMINATOR_SIZE:]
    usable = len(body) - len(body) % PUBKEY_SIZE
    return [
        Pubkey.from_bytes(body[i:i + PUBKEY_SIZE])
        for i in range(0, usable, PUBKEY_SIZE)
    ]


def whitelisted_addresses(slots: List[Pubkey]) -> List[Pubkey]:
    # purchased / unused slots hold Pubkey::default()
    empty = Pubkey.default()
    return [k for k in slots if k != empty]


# ─── SPL Token ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MintState:
    supply: int
    decimals: int
    is_initialized: bool


@dataclass(frozen=True)
class TokenAccountState:
    mint: Pubkey
    owner: Pubkey
    amount: int


def parse_mint(data: bytes) -> MintState:
    """
    Mint layout:
    mint_authority COption (0-36) | Supply (36-44) | Decimals (44) | IsInitialized (45)
    """
    if len(data) < MINT_ACCOUNT_SIZE:
        raise ValueError(f"Mint data too short: {len(data)} bytes")
    supply = struct.unpack("<Q", data[36:44])[0]
    return MintState(supply=supply, decimals=data[44], is_initialized=bool(data[45]))


def parse_token_account(data: bytes) -> TokenAccountState:
    """Mint(0-32) | Owner(32-64) | Amount(64-72)"""
    if len(data) < 72:
        raise ValueError(f"Token account data too short: {len(data)} bytes")
    return TokenAccountState(
        mint=Pubkey.from_bytes(data[0:32]),
        owner=Pubkey.from_bytes(data[32:64]),
        amount=struct.unpack("<Q", data[64:72])[0],
    )
