"""
Tests for configuration loading and the chain clock helpers.

Test plan:
- defaults, environment overrides, .env files, invalid values
- components built from config carry its settings
- block_timestamp / sleep_until against a fake client
"""

import os
from pathlib import Path
from typing import Optional

import pytest

from hh_sdk.chain import block_timestamp, sleep_until
from hh_sdk.config import ConfigError, SdkConfig
from hh_sdk.errors import ClockTimeoutError, SdkError
from hh_sdk.registry import ErrorRegistry

from tests.helpers import keypair

ENV_VARS = [
    "HH_RPC_URL",
    "HH_COMMITMENT",
    "HH_RPC_TIMEOUT",
    "HH_RPC_MAX_RETRIES",
    "HH_RPC_RETRY_DELAY",
    "HH_CONFIRM_POLL_INTERVAL",
    "HH_CONFIRM_TIMEOUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSdkConfig:
    def test_defaults(self, tmp_path: Path) -> None:
        config = SdkConfig.from_env(str(tmp_path / "missing.env"))

        assert config.rpc_url == "http://localhost:8899"
        assert config.commitment == "confirmed"
        assert config.max_retries == 5
        assert config.retry_delay == 0.5
        assert config.confirm_timeout is None

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("HH_RPC_URL", "https://api.devnet.solana.com")
        monkeypatch.setenv("HH_COMMITMENT", "finalized")
        monkeypatch.setenv("HH_RPC_MAX_RETRIES", "8")
        monkeypatch.setenv("HH_CONFIRM_TIMEOUT", "45")

        config = SdkConfig.from_env(str(tmp_path / "missing.env"))

        assert config.rpc_url == "https://api.devnet.solana.com"
        assert config.commitment == "finalized"
        assert config.max_retries == 8
        assert config.confirm_timeout == 45.0

    def test_env_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("HH_RPC_URL=http://validator:8899\nHH_RPC_RETRY_DELAY=0.1\n")

        try:
            config = SdkConfig.from_env(str(env_file))
        finally:
            # load_dotenv writes straight into os.environ.
            os.environ.pop("HH_RPC_URL", None)
            os.environ.pop("HH_RPC_RETRY_DELAY", None)

        assert config.rpc_url == "http://validator:8899"
        assert config.retry_delay == 0.1

    def test_invalid_number(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("HH_RPC_MAX_RETRIES", "many")

        with pytest.raises(ConfigError, match="HH_RPC_MAX_RETRIES"):
            SdkConfig.from_env(str(tmp_path / "missing.env"))

    def test_invalid_commitment(self) -> None:
        with pytest.raises(ConfigError):
            SdkConfig(commitment="eventually")

    def test_packet_size_bounded(self) -> None:
        with pytest.raises(ConfigError):
            SdkConfig(max_packet_size=4096)

    def test_create_sender(self) -> None:
        registry = ErrorRegistry()
        config = SdkConfig(rpc_url="http://node:8899", commitment="finalized", max_retries=2, poll_interval=1.5)

        sender = config.create_sender(keypair(1), registry)

        assert sender.registry is registry
        assert sender.commitment == "finalized"
        assert sender.poll_interval == 1.5
        assert sender.client.rpc_url == "http://node:8899"
        assert sender.client.max_retries == 2


class FakeChain:
    def __init__(self, times) -> None:
        self.times = list(times)
        self.slots = []

    def get_epoch_info(self):
        return {"absoluteSlot": 1000}

    def get_block_time(self, slot: int) -> Optional[int]:
        self.slots.append(slot)
        return self.times.pop(0) if len(self.times) > 1 else self.times[0]


class TestChainClock:
    def test_block_timestamp_uses_next_slot(self) -> None:
        chain = FakeChain([1_700_000_000])
        assert block_timestamp(chain) == 1_700_000_000
        assert chain.slots == [1001]

    def test_block_timestamp_unavailable(self) -> None:
        with pytest.raises(SdkError):
            block_timestamp(FakeChain([None]))

    def test_sleep_until_reached(self) -> None:
        now = [0.0]

        def sleep(seconds: float) -> None:
            now[0] += seconds

        chain = FakeChain([10, 11, 12])
        sleep_until(chain, 12, timeout=5.0, poll_interval=0.1, sleep=sleep, clock=lambda: now[0])

        assert len(chain.slots) == 3

    def test_sleep_until_times_out(self) -> None:
        now = [0.0]

        def sleep(seconds: float) -> None:
            now[0] += seconds

        with pytest.raises(ClockTimeoutError) as exc_info:
            sleep_until(FakeChain([10]), 20, timeout=1.0, poll_interval=0.25, sleep=sleep, clock=lambda: now[0])

        assert isinstance(exc_info.value, SdkError)
        assert isinstance(exc_info.value, TimeoutError)
