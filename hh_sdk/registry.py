"""Program error tables used to resolve custom program error codes

Each program registers its declared errors once, keyed by the program's
base58 address. Tables are read concurrently by in-flight submissions and
never modified after registration.
"""

import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from .errors import RegistryError
from .keys import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    decode_pubkey,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdlErrorCode:
    """Error declared by a program interface"""
    code: int
    name: str
    msg: Optional[str] = None

    @property
    def message(self) -> str:
        return self.msg if self.msg is not None else self.name

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'IdlErrorCode':
        code = data['code']
        if not isinstance(code, int) or isinstance(code, bool) or code < 0:
            raise ValueError(f"Error code must be a non-negative integer, got {code!r}")
        return cls(code=code, name=data['name'], msg=data.get('msg'))


ErrorSpec = Union[IdlErrorCode, Mapping[str, Any]]


def _as_error_code(error: ErrorSpec) -> IdlErrorCode:
    if isinstance(error, IdlErrorCode):
        return error
    return IdlErrorCode.from_dict(error)


def parse_error_codes(errors: Iterable[ErrorSpec]) -> Mapping[str, int]:
    """Map error names to their codes"""
    return MappingProxyType({e.name: e.code for e in map(_as_error_code, errors)})


class ErrorRegistry:
    """Write-once mapping from program address to its error messages"""

    def __init__(self):
        self._tables: Dict[str, Mapping[int, str]] = {}
        self._lock = threading.Lock()

    def register(self, program_id: str, errors: Iterable[ErrorSpec]) -> None:
        """Register a program's error table

        Raises:
            RegistryError: the program already has a table, even an identical one
        """
        decode_pubkey(program_id)
        table = MappingProxyType({e.code: e.message for e in map(_as_error_code, errors)})
        with self._lock:
            if program_id in self._tables:
                raise RegistryError(f"Errors already registered for program {program_id}")
            self._tables[program_id] = table
        logger.debug("Registered %d errors for program %s", len(table), program_id)

    def register_idl(self, program_id: str, idl: Mapping[str, Any]) -> None:
        """Register the `errors` array of a program interface description"""
        self.register(program_id, idl.get('errors') or [])

    def get(self, program_id: str) -> Optional[Mapping[int, str]]:
        return self._tables.get(program_id)

    def lookup(self, program_id: str, code: int) -> Optional[str]:
        table = self._tables.get(program_id)
        if table is None:
            return None
        return table.get(code)

    def __contains__(self, program_id: object) -> bool:
        return program_id in self._tables

    def __len__(self) -> int:
        return len(self._tables)


SYSTEM_PROGRAM_ERRORS = [
    IdlErrorCode(0, 'AccountAlreadyInUse', 'an account with the same address already exists'),
    IdlErrorCode(1, 'ResultWithNegativeLamports', 'account does not have enough SOL to perform the operation'),
    IdlErrorCode(2, 'InvalidProgramId', 'cannot assign account to this program id'),
    IdlErrorCode(3, 'InvalidAccountDataLength', 'cannot allocate account data of this length'),
    IdlErrorCode(4, 'MaxSeedLengthExceeded', 'length of requested seed is too long'),
    IdlErrorCode(5, 'AddressWithSeedMismatch', 'provided address does not match addressed derived from seed'),
    IdlErrorCode(6, 'NonceNoRecentBlockhashes', 'advancing stored nonce requires a populated RecentBlockhashes sysvar'),
    IdlErrorCode(7, 'NonceBlockhashNotExpired', 'stored nonce is still in recent_blockhashes'),
    IdlErrorCode(8, 'NonceUnexpectedBlockhashValue', 'specified nonce does not match stored nonce'),
]

TOKEN_PROGRAM_ERRORS = [
    IdlErrorCode(0, 'NotRentExempt', 'Lamport balance below rent-exempt threshold'),
    IdlErrorCode(1, 'InsufficientFunds', 'Insufficient funds'),
    IdlErrorCode(2, 'InvalidMint', 'Invalid Mint'),
    IdlErrorCode(3, 'MintMismatch', 'Account not associated with this Mint'),
    IdlErrorCode(4, 'OwnerMismatch', 'Owner does not match'),
    IdlErrorCode(5, 'FixedSupply', 'Fixed supply'),
    IdlErrorCode(6, 'AlreadyInUse', 'Already in use'),
    IdlErrorCode(7, 'InvalidNumberOfProvidedSigners', 'Invalid number of provided signers'),
    IdlErrorCode(8, 'InvalidNumberOfRequiredSigners', 'Invalid number of required signers'),
    IdlErrorCode(9, 'UninitializedState', 'State is unititialized'),
    IdlErrorCode(10, 'NativeNotSupported', 'Instruction does not support native tokens'),
    IdlErrorCode(11, 'NonNativeHasBalance', 'Non-native account can only be closed if its balance is zero'),
    IdlErrorCode(12, 'InvalidInstruction', 'Invalid instruction'),
    IdlErrorCode(13, 'InvalidState', 'State is invalid for requested operation'),
    IdlErrorCode(14, 'Overflow', 'Operation overflowed'),
    IdlErrorCode(15, 'AuthorityTypeNotSupported', 'Account does not support specified authority type'),
    IdlErrorCode(16, 'MintCannotFreeze', 'This token mint cannot freeze accounts'),
    IdlErrorCode(17, 'AccountFrozen', 'Account is frozen'),
    IdlErrorCode(18, 'MintDecimalsMismatch', 'The provided decimals value different from the Mint decimals'),
    IdlErrorCode(19, 'NonNativeNotSupported', 'Instruction does not support non-native tokens'),
]

ASSOCIATED_TOKEN_PROGRAM_ERRORS = [
    IdlErrorCode(0, 'InvalidOwner', 'Associated token account owner does not match address derivation'),
]

# Errors raised by the program framework itself, shared by every program built on it.
FRAMEWORK_ERRORS = [
    IdlErrorCode(100, 'InstructionMissing', '8 byte instruction identifier not provided'),
    IdlErrorCode(101, 'InstructionFallbackNotFound', 'Fallback functions are not supported'),
    IdlErrorCode(102, 'InstructionDidNotDeserialize', 'The program could not deserialize the given instruction'),
    IdlErrorCode(103, 'InstructionDidNotSerialize', 'The program could not serialize the given instruction'),
    IdlErrorCode(1000, 'IdlInstructionStub', 'The program was compiled without idl instructions'),
    IdlErrorCode(1001, 'IdlInstructionInvalidProgram', 'The transaction was given an invalid program for the IDL instruction'),
    IdlErrorCode(2000, 'ConstraintMut', 'A mut constraint was violated'),
    IdlErrorCode(2001, 'ConstraintHasOne', 'A has_one constraint was violated'),
    IdlErrorCode(2002, 'ConstraintSigner', 'A signer constraint was violated'),
    IdlErrorCode(2003, 'ConstraintRaw', 'A raw constraint was violated'),
    IdlErrorCode(2004, 'ConstraintOwner', 'An owner constraint was violated'),
    IdlErrorCode(2005, 'ConstraintRentExempt', 'A rent exemption constraint was violated'),
    IdlErrorCode(2006, 'ConstraintSeeds', 'A seeds constraint was violated'),
    IdlErrorCode(2007, 'ConstraintExecutable', 'An executable constraint was violated'),
    IdlErrorCode(2008, 'ConstraintState', 'A state constraint was violated'),
    IdlErrorCode(2009, 'ConstraintAssociated', 'An associated constraint was violated'),
    IdlErrorCode(2010, 'ConstraintAssociatedInit', 'An associated init constraint was violated'),
    IdlErrorCode(2011, 'ConstraintClose', 'A close constraint was violated'),
    IdlErrorCode(2012, 'ConstraintAddress', 'An address constraint was violated'),
    IdlErrorCode(2013, 'ConstraintZero', 'Expected zero account discriminant'),
    IdlErrorCode(2014, 'ConstraintTokenMint', 'A token mint constraint was violated'),
    IdlErrorCode(2015, 'ConstraintTokenOwner', 'A token owner constraint was violated'),
    IdlErrorCode(2016, 'ConstraintMintMintAuthority', 'A mint mint authority constraint was violated'),
    IdlErrorCode(2017, 'ConstraintMintFreezeAuthority', 'A mint freeze authority constraint was violated'),
    IdlErrorCode(2018, 'ConstraintMintDecimals', 'A mint decimals constraint was violated'),
    IdlErrorCode(2019, 'ConstraintSpace', 'A space constraint was violated'),
    IdlErrorCode(2500, 'RequireViolated', 'A require expression was violated'),
    IdlErrorCode(2501, 'RequireEqViolated', 'A require_eq expression was violated'),
    IdlErrorCode(2502, 'RequireKeysEqViolated', 'A require_keys_eq expression was violated'),
    IdlErrorCode(2503, 'RequireNeqViolated', 'A require_neq expression was violated'),
    IdlErrorCode(2504, 'RequireKeysNeqViolated', 'A require_keys_neq expression was violated'),
    IdlErrorCode(2505, 'RequireGtViolated', 'A require_gt expression was violated'),
    IdlErrorCode(2506, 'RequireGteViolated', 'A require_gte expression was violated'),
    IdlErrorCode(3000, 'AccountDiscriminatorAlreadySet', 'The account discriminator was already set on this account'),
    IdlErrorCode(3001, 'AccountDiscriminatorNotFound', 'No 8 byte discriminator was found on the account'),
    IdlErrorCode(3002, 'AccountDiscriminatorMismatch', '8 byte discriminator did not match what was expected'),
    IdlErrorCode(3003, 'AccountDidNotDeserialize', 'Failed to deserialize the account'),
    IdlErrorCode(3004, 'AccountDidNotSerialize', 'Failed to serialize the account'),
    IdlErrorCode(3005, 'AccountNotEnoughKeys', 'Not enough account keys given to the instruction'),
    IdlErrorCode(3006, 'AccountNotMutable', 'The given account is not mutable'),
    IdlErrorCode(3007, 'AccountOwnedByWrongProgram', 'The given account is owned by a different program than expected'),
    IdlErrorCode(3008, 'InvalidProgramId', 'Program ID was not as expected'),
    IdlErrorCode(3009, 'InvalidProgramExecutable', 'Program account is not executable'),
    IdlErrorCode(3010, 'AccountNotSigner', 'The given account did not sign'),
    IdlErrorCode(3011, 'AccountNotSystemOwned', 'The given account is not owned by the system program'),
    IdlErrorCode(3012, 'AccountNotInitialized', 'The program expected this account to be already initialized'),
    IdlErrorCode(3013, 'AccountNotProgramData', 'The given account is not a program data account'),
    IdlErrorCode(3014, 'AccountNotAssociatedTokenAccount', 'The given account is not the associated token account'),
    IdlErrorCode(3015, 'AccountSysvarMismatch', 'The given public key does not match the required sysvar'),
    IdlErrorCode(4000, 'StateInvalidAddress', 'The given state account does not have the correct address'),
    IdlErrorCode(4100, 'DeclaredProgramIdMismatch', 'The declared program id does not match the actual program id'),
    IdlErrorCode(5000, 'Deprecated', 'The API being used is deprecated and should no longer be used'),
]

FRAMEWORK_ERROR_MESSAGES: Mapping[int, str] = MappingProxyType({e.code: e.message for e in FRAMEWORK_ERRORS})

SystemErrorCode = parse_error_codes(SYSTEM_PROGRAM_ERRORS)
TokenErrorCode = parse_error_codes(TOKEN_PROGRAM_ERRORS)
AssociatedTokenErrorCode = parse_error_codes(ASSOCIATED_TOKEN_PROGRAM_ERRORS)
FrameworkErrorCode = parse_error_codes(FRAMEWORK_ERRORS)


def default_registry() -> ErrorRegistry:
    """Create a registry pre-populated with the native programs' errors"""
    registry = ErrorRegistry()
    registry.register(SYSTEM_PROGRAM_ID, SYSTEM_PROGRAM_ERRORS)
    registry.register(TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ERRORS)
    registry.register(ASSOCIATED_TOKEN_PROGRAM_ID, ASSOCIATED_TOKEN_PROGRAM_ERRORS)
    return registry
