"""Error types raised by the SDK"""

from typing import Any, List, Optional, Sequence, Tuple


class SdkError(Exception):
    """Base class for all SDK errors"""


class RegistryError(SdkError):
    """Program error table registered more than once"""


class SignatureError(SdkError):
    """Transaction is missing a required signature"""


class MissingProgramError(SdkError):
    """Program stack is empty so no failing program can be named"""


class AccountLimitError(SdkError, ValueError):
    """Message references more accounts than a transaction can index"""


class PackingError(SdkError):
    """Instruction group cannot fit in a single transaction

    `size` is None when the group references more accounts than one
    transaction can hold.
    """

    def __init__(self, group_index: int, size: Optional[int], max_size: int):
        self.group_index = group_index
        self.size = size
        self.max_size = max_size
        if size is None:
            message = f"Instruction group {group_index} references too many accounts for one transaction"
        else:
            message = (
                f"Instruction group {group_index} needs {size} bytes "
                f"but transactions are limited to {max_size}"
            )
        super().__init__(message)


class ClockTimeoutError(SdkError, TimeoutError):
    """On-chain clock did not reach the requested time"""


class ConfirmationTimeoutError(SdkError):
    """Transaction outcome could not be observed"""

    def __init__(self, message: str, signature: Optional[str] = None):
        self.signature = signature
        super().__init__(message)


class SendTransactionError(SdkError):
    """Transaction failed and the logs did not resolve to a known error"""

    def __init__(self, message: str, logs: Sequence[str], program_stack: Sequence[str]):
        self.message = message
        self.logs: List[str] = list(logs)
        self.program_stack: List[str] = list(program_stack)
        super().__init__(message)

    @property
    def program(self) -> str:
        """Innermost program that was executing when the transaction failed"""
        if not self.program_stack:
            raise MissingProgramError("Missing program")
        return self.program_stack[-1]


class MalformedLogsError(SendTransactionError):
    """Logs carried no program invocations to attribute the failure to"""


class ProgramError(SendTransactionError):
    """Program returned an error code with a known meaning"""

    def __init__(
        self,
        message: str,
        logs: Sequence[str],
        program_stack: Sequence[str],
        code: int,
        name: Optional[str] = None,
        origin: Optional[Any] = None,
        compared_values: Optional[Tuple[str, str]] = None,
    ):
        super().__init__(message, logs, program_stack)
        self.code = code
        self.name = name
        self.origin = origin
        self.compared_values = compared_values

    def __str__(self) -> str:
        if self.name:
            return f"{self.name} ({self.code}): {self.message}"
        return f"Error {self.code}: {self.message}"
