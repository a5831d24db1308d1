"""Transaction submission and confirmation"""

import json
import logging
import time
from typing import Callable, Iterable, List, Optional, Sequence, Union

from .client import RpcClient, RpcError, SignatureStatus
from .errors import ConfirmationTimeoutError
from .instruction import GroupLike, Instruction
from .keys import Signer
from .packing import pack_instructions, sign_transactions
from .registry import ErrorRegistry, default_registry
from .transaction import PACKET_DATA_SIZE, Transaction
from .translate import translate_error

logger = logging.getLogger(__name__)

COMMITMENT_LEVELS = ('processed', 'confirmed', 'finalized')


def _reached(status: SignatureStatus, commitment: str) -> bool:
    if status.confirmation_status is None:
        # Nodes omit the status once a transaction is rooted.
        return status.confirmations is None
    if status.confirmation_status not in COMMITMENT_LEVELS:
        return False
    return COMMITMENT_LEVELS.index(status.confirmation_status) >= COMMITMENT_LEVELS.index(commitment)


class TransactionSender:
    """Signs, submits and confirms transactions paid for by `payer`

    Failed transactions are raised as the error type produced by
    `translate_error`, resolved against `registry`.
    """

    def __init__(
        self,
        client: RpcClient,
        payer: Signer,
        registry: Optional[ErrorRegistry] = None,
        commitment: str = 'confirmed',
        poll_interval: float = 0.5,
        confirm_timeout: Optional[float] = None,
        max_packet_size: int = PACKET_DATA_SIZE,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if commitment not in COMMITMENT_LEVELS:
            raise ValueError(f"Unknown commitment: {commitment}")
        self.client = client
        self.payer = payer
        self.registry = registry if registry is not None else default_registry()
        self.commitment = commitment
        self.poll_interval = poll_interval
        self.confirm_timeout = confirm_timeout
        self.max_packet_size = max_packet_size
        self._sleep = sleep
        self._clock = clock

    def pack(
        self,
        groups: Iterable[GroupLike],
        max_size: Optional[int] = None,
        recent_blockhash: Optional[str] = None,
    ) -> List[Transaction]:
        """Pack instruction groups into transactions paid for by the payer"""
        return pack_instructions(
            groups,
            self.payer.public_key,
            recent_blockhash=recent_blockhash,
            max_size=max_size or self.max_packet_size,
        )

    def sign(self, transactions: Sequence[Transaction], signers: Iterable[Signer]) -> List[Transaction]:
        return sign_transactions(transactions, signers)

    def send(
        self,
        transaction: Union[Transaction, Sequence[Instruction]],
        signers: Sequence[Signer] = (),
    ) -> str:
        """Send a transaction, or a list of instructions as one transaction"""
        if not isinstance(transaction, Transaction):
            transaction = Transaction().add(*transaction)
        return self.submit(transaction, signers)

    def send_all(self, groups: Iterable[GroupLike], signers: Sequence[Signer] = ()) -> List[str]:
        """Pack instruction groups and submit the transactions one after another"""
        transactions = self.pack(groups)
        return [self.submit(tx, signers) for tx in transactions]

    def submit(self, transaction: Transaction, signers: Sequence[Signer] = ()) -> str:
        """
        Sign, send and confirm a single transaction

        Returns:
            Transaction signature

        Raises:
            ProgramError: the failing program's error code resolved to a message
            SendTransactionError: the transaction failed for any other reason
            ConfirmationTimeoutError: the outcome could not be observed
            RpcError: the node rejected the transaction without logs
        """
        if transaction.recent_blockhash is None:
            latest = self.client.get_latest_blockhash(self.commitment)
            transaction.recent_blockhash = latest.blockhash
            transaction.last_valid_block_height = latest.last_valid_block_height
            transaction.clear_signatures()
        elif transaction.last_valid_block_height is None:
            latest = self.client.get_latest_blockhash(self.commitment)
            transaction.last_valid_block_height = latest.last_valid_block_height

        if transaction.fee_payer != self.payer.public_key:
            transaction.fee_payer = self.payer.public_key
            transaction.clear_signatures()

        # Signers the transaction does not reference are skipped.
        sign_transactions([transaction], [self.payer, *signers])

        raw = transaction.serialize()

        try:
            signature = self.client.send_raw_transaction(raw, preflight_commitment=self.commitment)
        except RpcError as e:
            if e.logs is not None:
                error = translate_error(e.message, e.logs, self.registry)
                logger.warning("Transaction rejected: %s", error)
                raise error from e
            raise

        logger.debug("Sent transaction %s", signature)

        status = self.confirm(signature, transaction.last_valid_block_height)
        if status.err is None:
            logger.info("Confirmed transaction %s", signature)
            return signature

        message = f"Transaction {signature} failed ({json.dumps({'err': status.err}, default=str)})"
        details = self.client.get_transaction(signature, commitment='confirmed')
        logs = ((details or {}).get('meta') or {}).get('logMessages')
        if logs is None:
            raise ConfirmationTimeoutError(message, signature)

        error = translate_error(message, logs, self.registry)
        logger.warning("Transaction %s failed: %s", signature, error)
        raise error

    def confirm(self, signature: str, last_valid_block_height: int) -> SignatureStatus:
        """Poll until the transaction reaches the sender's commitment

        Raises:
            ConfirmationTimeoutError: the blockhash expired or `confirm_timeout` elapsed first
        """
        deadline = None
        if self.confirm_timeout is not None:
            deadline = self._clock() + self.confirm_timeout

        while True:
            status = self.client.get_signature_statuses([signature]).value[0]
            if status is not None and (status.err is not None or _reached(status, self.commitment)):
                return status

            block_height = self.client.get_block_height(self.commitment)
            if block_height > last_valid_block_height:
                raise ConfirmationTimeoutError(
                    f"Transaction {signature} expired: block height {block_height} "
                    f"exceeded {last_valid_block_height}",
                    signature,
                )
            if deadline is not None and self._clock() >= deadline:
                raise ConfirmationTimeoutError(
                    f"Transaction {signature} was not confirmed within {self.confirm_timeout}s",
                    signature,
                )

            logger.debug("Waiting for %s (block height %d)", signature, block_height)
            self._sleep(self.poll_interval)
