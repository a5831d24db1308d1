"""Addresses and signing keys"""

from typing import Protocol, runtime_checkable

import base58
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

PUBKEY_LENGTH = 32
SIGNATURE_LENGTH = 64

SYSTEM_PROGRAM_ID = '11111111111111111111111111111111'
TOKEN_PROGRAM_ID = 'TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA'
ASSOCIATED_TOKEN_PROGRAM_ID = 'ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL'


def decode_pubkey(pubkey: str) -> bytes:
    """Decode a base58 address into its 32 raw bytes"""
    try:
        raw = base58.b58decode(pubkey)
    except ValueError as e:
        raise ValueError(f"Invalid address {pubkey!r}: {e}") from e
    if len(raw) != PUBKEY_LENGTH:
        raise ValueError(f"Invalid address {pubkey!r}: expected {PUBKEY_LENGTH} bytes, got {len(raw)}")
    return raw


def encode_pubkey(raw: bytes) -> str:
    """Encode 32 raw bytes as a base58 address"""
    if len(raw) != PUBKEY_LENGTH:
        raise ValueError(f"Expected {PUBKEY_LENGTH} bytes, got {len(raw)}")
    return base58.b58encode(raw).decode()


def verify_signature(pubkey: str, message: bytes, signature: bytes) -> bool:
    """Check an ed25519 signature made by `pubkey` over `message`"""
    try:
        VerifyKey(decode_pubkey(pubkey)).verify(message, signature)
    except BadSignatureError:
        return False
    return True


@runtime_checkable
class Signer(Protocol):
    """Anything that can sign a transaction message"""

    @property
    def public_key(self) -> str:
        ...

    def sign(self, message: bytes) -> bytes:
        ...


class Keypair:
    """ed25519 keypair addressed by its base58 public key"""

    def __init__(self, signing_key: SigningKey):
        self._signing_key = signing_key
        self._public_key = encode_pubkey(bytes(signing_key.verify_key))

    @classmethod
    def generate(cls) -> 'Keypair':
        return cls(SigningKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> 'Keypair':
        if len(seed) != 32:
            raise ValueError(f"Seed must be 32 bytes, got {len(seed)}")
        return cls(SigningKey(seed))

    @classmethod
    def from_secret_key(cls, secret_key: bytes) -> 'Keypair':
        """Load a 64 byte secret key (seed followed by public key)"""
        if len(secret_key) != 64:
            raise ValueError(f"Secret key must be 64 bytes, got {len(secret_key)}")
        keypair = cls.from_seed(secret_key[:32])
        if decode_pubkey(keypair.public_key) != secret_key[32:]:
            raise ValueError("Secret key public half does not match its seed")
        return keypair

    @property
    def public_key(self) -> str:
        return self._public_key

    @property
    def secret_key(self) -> bytes:
        return bytes(self._signing_key) + decode_pubkey(self._public_key)

    def sign(self, message: bytes) -> bytes:
        """Sign a message, returning the detached 64 byte signature"""
        return self._signing_key.sign(message).signature

    def __repr__(self) -> str:
        return f"Keypair({self._public_key})"
