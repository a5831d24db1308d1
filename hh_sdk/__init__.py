"""Transaction packing, submission and error translation for Solana programs"""

from .client import RpcClient, RpcError, RpcDecodeError, TransportError
from .config import ConfigError, SdkConfig
from .errors import (
    AccountLimitError,
    ClockTimeoutError,
    ConfirmationTimeoutError,
    MalformedLogsError,
    MissingProgramError,
    PackingError,
    ProgramError,
    RegistryError,
    SdkError,
    SendTransactionError,
    SignatureError,
)
from .instruction import AccountMeta, Instruction, InstructionGroup
from .keys import Keypair, Signer
from .packing import pack_instructions, sign_transactions
from .registry import ErrorRegistry, default_registry
from .sender import TransactionSender
from .transaction import PACKET_DATA_SIZE, Transaction
from .translate import translate_error

__version__ = '0.1.0'

__all__ = [
    'AccountLimitError',
    'AccountMeta',
    'ClockTimeoutError',
    'ConfigError',
    'ConfirmationTimeoutError',
    'ErrorRegistry',
    'Instruction',
    'InstructionGroup',
    'Keypair',
    'MalformedLogsError',
    'MissingProgramError',
    'PACKET_DATA_SIZE',
    'PackingError',
    'ProgramError',
    'RegistryError',
    'RpcClient',
    'RpcDecodeError',
    'RpcError',
    'SdkConfig',
    'SdkError',
    'SendTransactionError',
    'SignatureError',
    'Signer',
    'Transaction',
    'TransactionSender',
    'TransportError',
    'default_registry',
    'pack_instructions',
    'sign_transactions',
    'translate_error',
]
