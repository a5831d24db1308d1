"""Pack instructions into transactions and attach the signers they need"""

import logging
from typing import Iterable, List, Optional, Sequence

from .errors import AccountLimitError, PackingError
from .instruction import GroupLike, as_group
from .keys import Signer
from .transaction import PACKET_DATA_SIZE, Transaction

logger = logging.getLogger(__name__)


def _serialized_size(tx: Transaction) -> Optional[int]:
    """Serialized size of `tx`, or None when it cannot index all its accounts"""
    try:
        return tx.serialized_size()
    except AccountLimitError:
        return None


def pack_instructions(
    groups: Iterable[GroupLike],
    fee_payer: str,
    recent_blockhash: Optional[str] = None,
    max_size: int = PACKET_DATA_SIZE,
) -> List[Transaction]:
    """
    Greedily pack instruction groups into as few transactions as possible

    Groups are appended in order to the current transaction until the next
    one would push it over `max_size`, at which point a new transaction is
    started. Groups are never split and never reordered.

    Args:
        groups: Instructions, or sequences of instructions that must share a transaction
        fee_payer: Address paying for every transaction
        recent_blockhash: Optional blockhash set on every transaction
        max_size: Maximum serialized size per transaction

    Returns:
        List of unsigned transactions

    Raises:
        PackingError: a single group does not fit in an empty transaction,
            by size or by number of accounts
    """
    packed: List[Transaction] = []
    current = Transaction(fee_payer=fee_payer, recent_blockhash=recent_blockhash)

    for index, group in enumerate(groups):
        instructions = as_group(group).instructions

        candidate = current.copy().add(*instructions)
        size = _serialized_size(candidate)
        if size is not None and size <= max_size:
            current = candidate
            continue

        if current.instructions:
            logger.debug("Sealing transaction %d with %d instructions", len(packed), len(current.instructions))
            packed.append(current)
            current = Transaction(fee_payer=fee_payer, recent_blockhash=recent_blockhash).add(*instructions)
            size = _serialized_size(current)
            if size is not None and size <= max_size:
                continue

        raise PackingError(index, size, max_size)

    if current.instructions:
        packed.append(current)

    for tx in packed:
        tx.ensure_signature_slots()

    logger.debug("Packed instructions into %d transactions", len(packed))
    return packed


def sign_transactions(transactions: Sequence[Transaction], signers: Iterable[Signer]) -> List[Transaction]:
    """
    Partially sign each transaction with the signers it requires

    Signers that a transaction does not reference are skipped, and slots
    without a matching signer are left empty for the caller to fill.
    """
    available = {signer.public_key: signer for signer in signers}

    for tx in transactions:
        required = [available[key] for key in tx.required_signers() if key in available]
        if required:
            tx.partial_sign(*required)
        else:
            tx.ensure_signature_slots()

    return list(transactions)
