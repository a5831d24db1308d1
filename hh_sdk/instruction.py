"""Instructions and atomic instruction groups"""

from dataclasses import dataclass, field
from typing import Iterator, Sequence, Tuple, Union

from .keys import decode_pubkey


@dataclass(frozen=True)
class AccountMeta:
    """Account referenced by an instruction"""
    pubkey: str
    is_signer: bool = False
    is_writable: bool = False

    def __post_init__(self):
        decode_pubkey(self.pubkey)


@dataclass(frozen=True)
class Instruction:
    """Single operation invoking an on-chain program"""
    program_id: str
    accounts: Tuple[AccountMeta, ...] = ()
    data: bytes = b''

    def __post_init__(self):
        decode_pubkey(self.program_id)
        # Accept any sequence but store a tuple so the instruction stays immutable.
        object.__setattr__(self, 'accounts', tuple(self.accounts))
        object.__setattr__(self, 'data', bytes(self.data))


@dataclass(frozen=True)
class InstructionGroup:
    """Instructions that must land in the same transaction"""
    instructions: Tuple[Instruction, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, 'instructions', tuple(self.instructions))

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def __len__(self) -> int:
        return len(self.instructions)


GroupLike = Union[Instruction, InstructionGroup, Sequence[Instruction]]


def as_group(value: GroupLike) -> InstructionGroup:
    """Normalize a lone instruction or a sequence of instructions into a group"""
    if isinstance(value, InstructionGroup):
        return value
    if isinstance(value, Instruction):
        return InstructionGroup((value,))
    instructions = tuple(value)
    for ix in instructions:
        if not isinstance(ix, Instruction):
            raise TypeError(f"Expected Instruction, got {type(ix).__name__}")
    return InstructionGroup(instructions)
