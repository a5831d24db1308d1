"""On-chain clock helpers"""

import time
from typing import Callable

from .client import RpcClient
from .errors import ClockTimeoutError, SdkError


def block_timestamp(client: RpcClient) -> int:
    """Attempts to get the current on-chain unix timestamp"""
    epoch_info = client.get_epoch_info()
    timestamp = client.get_block_time(epoch_info['absoluteSlot'] + 1)
    if timestamp is None:
        raise SdkError("Failed to get block time")
    return timestamp


def sleep_until(
    client: RpcClient,
    timestamp: int,
    timeout: float = 5.0,
    poll_interval: float = 0.1,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Block until the on-chain clock reaches `timestamp`

    Raises:
        ClockTimeoutError: the chain clock did not progress far enough within `timeout` seconds
    """
    deadline = clock() + timeout
    while clock() < deadline:
        sleep(poll_interval)
        if timestamp <= block_timestamp(client):
            return
    raise ClockTimeoutError("Timed out waiting for clock progression")
