"""Deterministic keys and instructions for tests."""

from __future__ import annotations

from hh_sdk.instruction import AccountMeta, Instruction
from hh_sdk.keys import Keypair

PROGRAM_ID = "Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS"


def keypair(n: int) -> Keypair:
    """Keypair derived from a one-byte seed."""
    return Keypair.from_seed(bytes([n]) * 32)


BLOCKHASH = keypair(250).public_key


def make_instruction(
    data_len: int = 100,
    accounts: tuple[AccountMeta, ...] | None = None,
    tag: int = 0,
) -> Instruction:
    if accounts is None:
        accounts = (AccountMeta(keypair(200).public_key, is_signer=False, is_writable=True),)
    return Instruction(PROGRAM_ID, accounts, bytes([tag % 256]) * data_len)
