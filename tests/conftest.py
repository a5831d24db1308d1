"""Shared fixtures."""

import pytest

from hh_sdk.keys import Keypair

from tests.helpers import keypair


@pytest.fixture
def payer() -> Keypair:
    return keypair(1)
