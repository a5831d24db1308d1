"""Example: Pack many instructions into transactions and diagnose failures"""

import logging
import os

import base58

from hh_sdk import (
    AccountMeta,
    Instruction,
    Keypair,
    ProgramError,
    SdkConfig,
    SendTransactionError,
    default_registry,
)

ESCROW_PROGRAM_ID = os.getenv('HH_ESCROW_PROGRAM_ID', 'Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS')

ESCROW_ERRORS = [
    {'code': 6000, 'name': 'InvalidOutcome', 'msg': 'Outcome is not valid for this market'},
    {'code': 6003, 'name': 'FeeTooHigh'},
]


def main():
    logging.basicConfig(level=logging.INFO)

    # Load settings from HH_* variables or a .env file
    config = SdkConfig.from_env()

    secret = os.getenv('HH_PAYER_SECRET_KEY')
    payer = Keypair.from_secret_key(base58.b58decode(secret)) if secret else Keypair.generate()

    registry = default_registry()
    registry.register(ESCROW_PROGRAM_ID, ESCROW_ERRORS)

    sender = config.create_sender(payer, registry)

    # One instruction per market update, each touching its own account
    markets = [Keypair.generate().public_key for _ in range(30)]
    instructions = [
        Instruction(
            ESCROW_PROGRAM_ID,
            [AccountMeta(market, is_writable=True), AccountMeta(payer.public_key, is_signer=True)],
            bytes([i]) * 64,
        )
        for i, market in enumerate(markets)
    ]

    transactions = sender.pack(instructions)
    print(f"Packed {len(instructions)} instructions into {len(transactions)} transactions")

    for i, tx in enumerate(transactions):
        try:
            signature = sender.submit(tx)
            print(f"Transaction {i + 1}: {signature}")
        except ProgramError as e:
            print(f"Transaction {i + 1} rejected by {e.program}: {e.code} {e.message}")
        except SendTransactionError as e:
            print(f"Transaction {i + 1} failed: {e}")
            for line in e.logs:
                print(f"  {line}")


if __name__ == '__main__':
    main()
