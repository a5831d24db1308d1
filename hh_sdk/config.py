"""SDK configuration loaded from the environment"""

import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

from .client import RpcClient
from .errors import SdkError
from .keys import Signer
from .registry import ErrorRegistry
from .sender import COMMITMENT_LEVELS, TransactionSender
from .transaction import PACKET_DATA_SIZE

T = TypeVar('T')

DEFAULT_RPC_URL = 'http://localhost:8899'


class ConfigError(SdkError):
    """Invalid configuration value"""


def _env(name: str, parse: Callable[[str], T], default: T) -> T:
    value = os.getenv(name)
    if value is None or value == '':
        return default
    try:
        return parse(value)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e


@dataclass
class SdkConfig:
    """Connection and submission settings"""
    rpc_url: str = DEFAULT_RPC_URL
    commitment: str = 'confirmed'
    timeout: float = 30.0
    max_retries: int = 5
    retry_delay: float = 0.5
    poll_interval: float = 0.5
    confirm_timeout: Optional[float] = None
    max_packet_size: int = PACKET_DATA_SIZE

    def __post_init__(self):
        if self.commitment not in COMMITMENT_LEVELS:
            raise ConfigError(f"Unknown commitment: {self.commitment}")
        if self.max_retries < 1:
            raise ConfigError("max_retries must be at least 1")
        if not 0 < self.max_packet_size <= PACKET_DATA_SIZE:
            raise ConfigError(f"max_packet_size must be between 1 and {PACKET_DATA_SIZE}")

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'SdkConfig':
        """Read settings from HH_* environment variables, loading `env_file` first"""
        load_dotenv(env_file)
        return cls(
            rpc_url=os.getenv('HH_RPC_URL') or DEFAULT_RPC_URL,
            commitment=os.getenv('HH_COMMITMENT') or 'confirmed',
            timeout=_env('HH_RPC_TIMEOUT', float, 30.0),
            max_retries=_env('HH_RPC_MAX_RETRIES', int, 5),
            retry_delay=_env('HH_RPC_RETRY_DELAY', float, 0.5),
            poll_interval=_env('HH_CONFIRM_POLL_INTERVAL', float, 0.5),
            confirm_timeout=_env('HH_CONFIRM_TIMEOUT', float, None),
        )

    def create_client(self) -> RpcClient:
        return RpcClient(
            self.rpc_url,
            timeout=self.timeout,
            commitment=self.commitment,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
        )

    def create_sender(self, payer: Signer, registry: Optional[ErrorRegistry] = None) -> TransactionSender:
        return TransactionSender(
            self.create_client(),
            payer,
            registry=registry,
            commitment=self.commitment,
            poll_interval=self.poll_interval,
            confirm_timeout=self.confirm_timeout,
            max_packet_size=self.max_packet_size,
        )
