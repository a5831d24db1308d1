"""Translate failed transaction logs into typed errors

Pure functions over the log lines returned by the ledger. Nothing here
performs I/O, so every branch can be exercised against fixed log fixtures.
"""

import re
from typing import List, Optional, Sequence

from .errors import MalformedLogsError, ProgramError, SendTransactionError
from .registry import FRAMEWORK_ERROR_MESSAGES, ErrorRegistry

_PROGRAM_LOG = 'Program log: '
_FRAMEWORK_ERROR_PREFIX = 'Program log: AnchorError'

_INVOKE_RE = re.compile(r'^Program (\w*) invoke')
_SUCCESS_RE = re.compile(r'^Program \w* success')
_CUSTOM_ERROR_RE = re.compile(r'^Program \w+ failed: custom program error: (.*)$')

_ERROR_OCCURRED_RE = re.compile(
    r'^Program log: AnchorError occurred\. '
    r'Error Code: (.*)\. Error Number: (\d*)\. Error Message: (.*)\.$'
)
_ERROR_THROWN_RE = re.compile(
    r'^Program log: AnchorError thrown in (.*):(\d*)\. '
    r'Error Code: (.*)\. Error Number: (\d*)\. Error Message: (.*)\.$'
)
_ERROR_CAUSED_BY_RE = re.compile(
    r'^Program log: AnchorError caused by account: (.*)\. '
    r'Error Code: (.*)\. Error Number: (\d*)\. Error Message: (.*)\.$'
)


def parse_program_stack(logs: Sequence[str]) -> List[str]:
    """Reconstruct the programs still executing when the logs end

    Invocations push, successes pop, and failures leave the program in
    place, so the last element is the innermost failing program.
    """
    stack: List[str] = []
    for line in logs:
        if line.startswith(_PROGRAM_LOG):
            continue
        invoke = _INVOKE_RE.match(line)
        if invoke:
            stack.append(invoke.group(1))
        elif _SUCCESS_RE.match(line) and stack:
            stack.pop()
    return stack


def parse_error_code(value: str) -> Optional[int]:
    """Parse a custom program error value, in hex when prefixed with 0x"""
    value = value.strip()
    try:
        if value[:2].lower() == '0x':
            return int(value[2:], 16)
        return int(value, 10)
    except ValueError:
        return None


def _compared_values(logs: Sequence[str], index: int):
    if index + 1 >= len(logs):
        return None
    following = logs[index + 1]
    if following == 'Program log: Left:':
        # Public keys are logged on the line after each label.
        if index + 4 < len(logs):
            return (logs[index + 2][len(_PROGRAM_LOG):], logs[index + 4][len(_PROGRAM_LOG):])
        return None
    if following.startswith('Program log: Left: ') and index + 2 < len(logs):
        right = logs[index + 2]
        if right.startswith('Program log: Right: '):
            return (following[len('Program log: Left: '):], right[len('Program log: Right: '):])
    return None


def parse_framework_error(logs: Sequence[str], program_stack: Sequence[str]) -> Optional[ProgramError]:
    """Parse the framework's structured error envelope, if the logs carry one"""
    for index, line in enumerate(logs):
        if line.startswith(_FRAMEWORK_ERROR_PREFIX):
            break
    else:
        return None

    origin = None
    match = _ERROR_OCCURRED_RE.match(line)
    if match:
        name, number, message = match.groups()
    else:
        match = _ERROR_THROWN_RE.match(line)
        if match:
            file, file_line, name, number, message = match.groups()
            origin = (file, int(file_line))
        else:
            match = _ERROR_CAUSED_BY_RE.match(line)
            if not match:
                return None
            origin, name, number, message = match.groups()

    if not number:
        return None

    return ProgramError(
        message,
        logs,
        program_stack,
        int(number),
        name=name,
        origin=origin,
        compared_values=_compared_values(logs, index),
    )


def translate_error(message: str, logs: Sequence[str], registry: ErrorRegistry) -> SendTransactionError:
    """Turn the logs of a failed transaction into the most specific error available"""
    program_stack = parse_program_stack(logs)

    framework_error = parse_framework_error(logs, program_stack)
    if framework_error is not None:
        return framework_error

    if not program_stack:
        return MalformedLogsError(message, logs, program_stack)
    program = program_stack[-1]

    unparsed_code = None
    for line in logs:
        match = _CUSTOM_ERROR_RE.match(line)
        if match and match.group(1):
            unparsed_code = match.group(1)
            break

    if unparsed_code is None:
        return SendTransactionError(message, logs, program_stack)

    code = parse_error_code(unparsed_code)
    if code is None:
        return SendTransactionError(message, logs, program_stack)

    program_errors = registry.get(program)
    if program_errors is None:
        return SendTransactionError(message, logs, program_stack)

    error_message = program_errors.get(code)
    if error_message is None:
        error_message = FRAMEWORK_ERROR_MESSAGES.get(code)
    if error_message is None:
        return SendTransactionError(message, logs, program_stack)

    return ProgramError(error_message, logs, program_stack, code)
