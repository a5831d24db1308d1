"""
Tests for the resilient RPC client: mocked HTTP via pytest-httpx.

Test plan:
- rate limiting retried with doubling delay, bounded by max_retries
- other HTTP failures surface immediately with the body
- envelope validation: result, error, malformed
- integers beyond 64 bits and non-integral numbers decode exactly
- typed results for blockhash, balance, account info and signature statuses
"""

import base64
import json
from decimal import Decimal
from typing import List

import pytest
from pytest_httpx import HTTPXMock

from hh_sdk.client import RpcClient, RpcDecodeError, RpcError, TransportError

URL = "http://localhost:8899"


def rpc_result(result) -> dict:
    return {"jsonrpc": "2.0", "id": 1, "result": result}


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def client(sleeps: List[float]) -> RpcClient:
    return RpcClient(URL, max_retries=3, retry_delay=0.5, sleep=sleeps.append)


class TestRetry:
    def test_rate_limit_exhausts_max_attempts(self, httpx_mock: HTTPXMock, client: RpcClient, sleeps: List[float]) -> None:
        for _ in range(3):
            httpx_mock.add_response(status_code=429, text="slow down")

        with pytest.raises(TransportError) as exc_info:
            client.get_slot()

        assert exc_info.value.status_code == 429
        assert exc_info.value.body == "slow down"
        assert len(httpx_mock.get_requests()) == 3
        assert sleeps == [0.5, 1.0]

    def test_recovers_after_rate_limit(self, httpx_mock: HTTPXMock, client: RpcClient, sleeps: List[float]) -> None:
        httpx_mock.add_response(status_code=429)
        httpx_mock.add_response(status_code=429)
        httpx_mock.add_response(json=rpc_result(42))

        assert client.get_slot() == 42
        assert sleeps == [0.5, 1.0]

    def test_server_error_is_not_retried(self, httpx_mock: HTTPXMock, client: RpcClient, sleeps: List[float]) -> None:
        httpx_mock.add_response(status_code=500, text="internal failure")

        with pytest.raises(TransportError) as exc_info:
            client.get_slot()

        assert exc_info.value.status_code == 500
        assert "internal failure" in str(exc_info.value)
        assert len(httpx_mock.get_requests()) == 1
        assert sleeps == []

    def test_max_retries_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            RpcClient(URL, max_retries=0)


class TestEnvelope:
    def test_request_body(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(json=rpc_result(7))

        client.get_block_height("finalized")

        body = json.loads(httpx_mock.get_requests()[0].content)
        assert body["jsonrpc"] == "2.0"
        assert body["method"] == "getBlockHeight"
        assert body["params"] == [{"commitment": "finalized"}]

    def test_error_envelope_raises_rpc_error(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(json={
            "jsonrpc": "2.0",
            "id": 1,
            "error": {
                "code": -32002,
                "message": "Transaction simulation failed: Error processing Instruction 0",
                "data": {"err": {"InstructionError": [0, {"Custom": 6003}]}, "logs": ["Program x invoke [1]"]},
            },
        })

        with pytest.raises(RpcError) as exc_info:
            client.send_raw_transaction(b"\x00")

        assert exc_info.value.code == -32002
        assert exc_info.value.logs == ["Program x invoke [1]"]

    def test_error_without_logs(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid params"}})

        with pytest.raises(RpcError) as exc_info:
            client.get_slot()

        assert exc_info.value.logs is None

    @pytest.mark.parametrize(
        "body",
        [
            {"id": 1, "result": 1},
            {"jsonrpc": "2.0", "result": 1},
            {"jsonrpc": "2.0", "id": 1},
            {"jsonrpc": "2.0", "id": 1, "error": {"code": 1}},
            [1, 2, 3],
        ],
    )
    def test_malformed_envelope(self, httpx_mock: HTTPXMock, client: RpcClient, body) -> None:
        httpx_mock.add_response(json=body)

        with pytest.raises(RpcDecodeError):
            client.get_slot()

    def test_invalid_json(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(text="<html>gateway</html>")

        with pytest.raises(RpcDecodeError):
            client.get_slot()


class TestPrecision:
    def test_large_balance_is_exact(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(
            text='{"jsonrpc":"2.0","id":1,"result":{"context":{"slot":12},"value":1180591620717411303424123}}'
        )

        result = client.get_balance_and_context("11111111111111111111111111111111")

        assert result.slot == 12
        assert result.value == 1180591620717411303424123

    def test_fractional_numbers_decode_as_decimal(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(
            text='{"jsonrpc":"2.0","id":1,"result":{"absoluteSlot":18446744073709551615,"rate":0.10000000000000000001}}'
        )

        info = client.get_epoch_info()

        assert info["absoluteSlot"] == 18446744073709551615
        assert info["rate"] == Decimal("0.10000000000000000001")

    def test_balance_must_be_integer(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(json=rpc_result({"context": {"slot": 1}, "value": "lots"}))

        with pytest.raises(RpcDecodeError):
            client.get_balance("11111111111111111111111111111111")

    def test_missing_context(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(json=rpc_result({"value": 1}))

        with pytest.raises(RpcDecodeError):
            client.get_balance("11111111111111111111111111111111")


class TestTypedResults:
    def test_latest_blockhash(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(json=rpc_result({
            "context": {"slot": 5},
            "value": {"blockhash": "EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N", "lastValidBlockHeight": 3090},
        }))

        blockhash = client.get_latest_blockhash()

        assert blockhash.blockhash == "EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N"
        assert blockhash.last_valid_block_height == 3090

    def test_account_info(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(json=rpc_result({
            "context": {"slot": 5},
            "value": {
                "data": [base64.b64encode(b"market state").decode(), "base64"],
                "executable": False,
                "lamports": 2039280,
                "owner": "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
                "rentEpoch": 18446744073709551615,
            },
        }))

        info = client.get_account_info("11111111111111111111111111111111")

        assert info is not None
        assert info.data == b"market state"
        assert info.rent_epoch == 18446744073709551615
        assert info.owner == "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

    def test_missing_account(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(json=rpc_result({"context": {"slot": 5}, "value": None}))

        assert client.get_account_info("11111111111111111111111111111111") is None

    def test_signature_statuses(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(json=rpc_result({
            "context": {"slot": 82},
            "value": [
                {"slot": 72, "confirmations": 10, "err": None, "confirmationStatus": "confirmed"},
                None,
            ],
        }))

        statuses = client.get_signature_statuses(["a", "b"]).value

        assert statuses[0].confirmation_status == "confirmed"
        assert statuses[0].err is None
        assert statuses[1] is None

    def test_send_raw_transaction_encodes_base64(self, httpx_mock: HTTPXMock, client: RpcClient) -> None:
        httpx_mock.add_response(json=rpc_result("5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"))

        signature = client.send_raw_transaction(b"\x01\x02\x03")

        body = json.loads(httpx_mock.get_requests()[0].content)
        assert body["params"][0] == base64.b64encode(b"\x01\x02\x03").decode()
        assert body["params"][1]["encoding"] == "base64"
        assert signature.startswith("5VER")
