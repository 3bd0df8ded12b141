#!/usr/bin/env python3
import hashlib

DISCRIMINATOR_SIZE = 8


def compute_instruction_discriminator(instruction_name: str) -> bytes:
    """
    Compute the 8-byte discriminator for an instruction.
    Anchor uses the first 8 bytes of the SHA-256 hash of "global:<instruction_name>".
    """
    data = f"global:{instruction_name}".encode("utf-8")
    return hashlib.sha256(data).digest()[:DISCRIMINATOR_SIZE]


def compute_account_discriminator(account_name: str) -> bytes:
    """
    Compute the 8-byte discriminator for an account.
    Anchor uses the first 8 bytes of the SHA-256 hash of "account:<account_name>".
    """
    data = f"account:{account_name}".encode("utf-8")
    return hashlib.sha256(data).digest()[:DISCRIMINATOR_SIZE]


# doorman instructions, snake_case as the program declares them
INSTRUCTIONS = (
    "initialize",
    "add_mint_tokens",
    "add_whitelist_addresses",
    "reset_whitelist_counter",
    "update_config",
    "close_whitelist",
    "purchase_mint_token",
    "purchase_mint_token_whitelist",
)

ACCOUNTS = ("Config", "Whitelist")


def discriminator_whitelist() -> bytes:
    return compute_account_discriminator("Whitelist")


if __name__ == '__main__':
    print("Instruction Discriminators:")
    for name in INSTRUCTIONS:
        print(f"{name + ':':<32}{compute_instruction_discriminator(name).hex()}")

    print("\nAccount Discriminators:")
    for name in ACCOUNTS:
        print(f"{name + ':':<32}{compute_account_discriminator(name).hex()}")
