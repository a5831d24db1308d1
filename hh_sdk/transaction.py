"""Transaction message compilation and wire format"""

from typing import Dict, Iterable, List, Optional, Sequence
from dataclasses import dataclass

import base58

from .errors import AccountLimitError, SignatureError
from .instruction import Instruction
from .keys import (
    PUBKEY_LENGTH,
    SIGNATURE_LENGTH,
    Signer,
    decode_pubkey,
    verify_signature,
)

# Maximum size of a serialized transaction (IPv6 MTU minus headers).
PACKET_DATA_SIZE = 1280 - 40 - 8

# Account indices are encoded as a single byte.
MAX_ACCOUNT_KEYS = 256

_EMPTY_BLOCKHASH = bytes(PUBKEY_LENGTH)


def encode_length(length: int) -> bytes:
    """Encode length as compact-u16"""
    result = []
    while length > 0x7f:
        result.append((length & 0x7f) | 0x80)
        length >>= 7
    result.append(length)
    return bytes(result)


@dataclass
class MessageHeader:
    """Transaction message header"""
    num_required_signatures: int
    num_readonly_signed_accounts: int
    num_readonly_unsigned_accounts: int


@dataclass
class CompiledInstruction:
    """Compiled instruction"""
    program_id_index: int
    accounts: List[int]
    data: bytes


@dataclass
class Message:
    """Transaction message"""
    header: MessageHeader
    account_keys: List[str]
    recent_blockhash: Optional[str]
    instructions: List[CompiledInstruction]

    @property
    def signer_keys(self) -> List[str]:
        return self.account_keys[:self.header.num_required_signatures]

    def serialize(self) -> bytes:
        """Serialize message to bytes"""
        parts = []

        parts.append(bytes([
            self.header.num_required_signatures,
            self.header.num_readonly_signed_accounts,
            self.header.num_readonly_unsigned_accounts,
        ]))

        parts.append(encode_length(len(self.account_keys)))
        for key in self.account_keys:
            parts.append(decode_pubkey(key))

        if self.recent_blockhash is None:
            parts.append(_EMPTY_BLOCKHASH)
        else:
            parts.append(decode_pubkey(self.recent_blockhash))

        parts.append(encode_length(len(self.instructions)))
        for instruction in self.instructions:
            parts.append(bytes([instruction.program_id_index]))
            parts.append(encode_length(len(instruction.accounts)))
            parts.append(bytes(instruction.accounts))
            parts.append(encode_length(len(instruction.data)))
            parts.append(instruction.data)

        return b''.join(parts)


@dataclass
class _KeyMeta:
    pubkey: str
    is_signer: bool
    is_writable: bool


def compile_message(
    instructions: Sequence[Instruction],
    fee_payer: str,
    recent_blockhash: Optional[str] = None,
) -> Message:
    """Compile instructions into a legacy message with the fee payer first"""
    metas: Dict[str, _KeyMeta] = {fee_payer: _KeyMeta(fee_payer, True, True)}

    for ix in instructions:
        for account in ix.accounts:
            meta = metas.get(account.pubkey)
            if meta is None:
                metas[account.pubkey] = _KeyMeta(account.pubkey, account.is_signer, account.is_writable)
            else:
                meta.is_signer = meta.is_signer or account.is_signer
                meta.is_writable = meta.is_writable or account.is_writable
        if ix.program_id not in metas:
            metas[ix.program_id] = _KeyMeta(ix.program_id, False, False)

    payer = metas.pop(fee_payer)
    # Stable sort keeps first-seen order inside each signer/writable class.
    ordered = [payer] + sorted(
        metas.values(),
        key=lambda m: (not m.is_signer, not m.is_writable),
    )

    header = MessageHeader(
        num_required_signatures=sum(1 for m in ordered if m.is_signer),
        num_readonly_signed_accounts=sum(1 for m in ordered if m.is_signer and not m.is_writable),
        num_readonly_unsigned_accounts=sum(1 for m in ordered if not m.is_signer and not m.is_writable),
    )

    account_keys = [m.pubkey for m in ordered]
    index = {key: i for i, key in enumerate(account_keys)}
    if len(account_keys) > MAX_ACCOUNT_KEYS:
        raise AccountLimitError(f"Too many accounts in message: {len(account_keys)}")

    compiled = [
        CompiledInstruction(
            program_id_index=index[ix.program_id],
            accounts=[index[a.pubkey] for a in ix.accounts],
            data=ix.data,
        )
        for ix in instructions
    ]

    return Message(
        header=header,
        account_keys=account_keys,
        recent_blockhash=recent_blockhash,
        instructions=compiled,
    )


@dataclass
class SignaturePair:
    """Signature slot for one required signer"""
    pubkey: str
    signature: Optional[bytes] = None


class Transaction:
    """Transaction object"""

    def __init__(
        self,
        fee_payer: Optional[str] = None,
        recent_blockhash: Optional[str] = None,
        last_valid_block_height: Optional[int] = None,
        instructions: Optional[Iterable[Instruction]] = None,
    ):
        self.fee_payer = fee_payer
        self.recent_blockhash = recent_blockhash
        self.last_valid_block_height = last_valid_block_height
        self.instructions: List[Instruction] = list(instructions or [])
        self.signatures: List[SignaturePair] = []

    def add(self, *instructions: Instruction) -> 'Transaction':
        """Append instructions"""
        self.instructions.extend(instructions)
        return self

    def copy(self) -> 'Transaction':
        tx = Transaction(
            fee_payer=self.fee_payer,
            recent_blockhash=self.recent_blockhash,
            last_valid_block_height=self.last_valid_block_height,
            instructions=self.instructions,
        )
        tx.signatures = [SignaturePair(s.pubkey, s.signature) for s in self.signatures]
        return tx

    def compile_message(self) -> Message:
        fee_payer = self.fee_payer
        if fee_payer is None:
            if not self.signatures:
                raise ValueError("Transaction fee payer required")
            fee_payer = self.signatures[0].pubkey
        return compile_message(self.instructions, fee_payer, self.recent_blockhash)

    def serialize_message(self) -> bytes:
        return self.compile_message().serialize()

    def serialized_size(self) -> int:
        """Size in bytes of the fully signed transaction"""
        message = self.compile_message()
        num_signatures = message.header.num_required_signatures
        return (
            len(encode_length(num_signatures))
            + num_signatures * SIGNATURE_LENGTH
            + len(message.serialize())
        )

    def required_signers(self) -> List[str]:
        return self.compile_message().signer_keys

    def ensure_signature_slots(self, message: Optional[Message] = None) -> None:
        """Reset signature slots only when they no longer match the signer set"""
        signer_keys = (message or self.compile_message()).signer_keys
        if [s.pubkey for s in self.signatures] != signer_keys:
            self.signatures = [SignaturePair(key) for key in signer_keys]

    def clear_signatures(self) -> None:
        self.signatures = []

    def sign(self, *signers: Signer) -> None:
        """Sign from scratch, discarding any existing signatures"""
        if not signers:
            raise ValueError("No signers")
        self.signatures = []
        self.partial_sign(*signers)

    def partial_sign(self, *signers: Signer) -> None:
        """Fill the slots of the given signers, keeping any other signatures"""
        if self.recent_blockhash is None:
            raise ValueError("Transaction recent_blockhash required")
        message = self.compile_message()
        self.ensure_signature_slots(message)
        message_bytes = message.serialize()

        slots = {pair.pubkey: pair for pair in self.signatures}
        for signer in signers:
            pair = slots.get(signer.public_key)
            if pair is None:
                raise SignatureError(f"Unknown signer: {signer.public_key}")
            pair.signature = signer.sign(message_bytes)

    def verify_signatures(self, require_all_signatures: bool = True) -> bool:
        message_bytes = self.serialize_message()
        for pair in self.signatures:
            if pair.signature is None:
                if require_all_signatures:
                    return False
            elif not verify_signature(pair.pubkey, message_bytes, pair.signature):
                return False
        return True

    @property
    def signature(self) -> Optional[str]:
        """Base58 fee payer signature, which identifies the transaction"""
        if not self.signatures or self.signatures[0].signature is None:
            return None
        return base58.b58encode(self.signatures[0].signature).decode()

    def serialize(self, require_all_signatures: bool = True) -> bytes:
        """Serialize transaction to bytes"""
        message = self.compile_message()
        signatures = self.signatures
        if [s.pubkey for s in signatures] != message.signer_keys:
            if require_all_signatures:
                raise SignatureError("Signature slots do not match the required signers")
            signatures = [SignaturePair(key) for key in message.signer_keys]

        parts = []

        parts.append(encode_length(len(signatures)))

        for pair in signatures:
            if pair.signature is None:
                if require_all_signatures:
                    raise SignatureError(f"Missing signature for {pair.pubkey}")
                parts.append(bytes(SIGNATURE_LENGTH))
            else:
                parts.append(pair.signature)

        parts.append(message.serialize())

        return b''.join(parts)
