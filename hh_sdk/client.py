"""RPC Client for the ledger"""

import base64
import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

import httpx

from .errors import SdkError

logger = logging.getLogger(__name__)

T = TypeVar('T')

TOO_MANY_REQUESTS = 429


class RpcError(SdkError):
    """RPC Error"""
    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC Error {code}: {message}")

    @property
    def logs(self) -> Optional[List[str]]:
        """Program logs attached to a rejected transaction, if any"""
        if isinstance(self.data, dict):
            logs = self.data.get('logs')
            if isinstance(logs, list):
                return logs
        return None


class TransportError(SdkError):
    """HTTP request did not produce a successful response"""
    def __init__(self, status_code: int, reason: str, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"{status_code} {reason}: {body}")


class RpcDecodeError(SdkError):
    """Response body is not a valid JSON-RPC envelope"""


@dataclass
class RpcResponse:
    """Validated JSON-RPC response envelope"""
    id: Any
    result: Any = None
    error: Optional[RpcError] = None

    @classmethod
    def from_dict(cls, data: Any) -> 'RpcResponse':
        if not isinstance(data, dict) or data.get('jsonrpc') != '2.0' or 'id' not in data:
            raise RpcDecodeError(f"Invalid JSON-RPC response: {data!r}")
        if 'result' in data:
            return cls(id=data['id'], result=data['result'])
        error = data.get('error')
        if isinstance(error, dict) and 'code' in error and isinstance(error.get('message'), str):
            return cls(id=data['id'], error=RpcError(error['code'], error['message'], error.get('data')))
        raise RpcDecodeError(f"Invalid JSON-RPC response: {data!r}")


@dataclass
class RpcResponseAndContext(Generic[T]):
    """RPC result with the slot it was evaluated at"""
    slot: int
    value: T

    @classmethod
    def from_dict(cls, data: Any, value: Callable[[Any], T] = lambda v: v) -> 'RpcResponseAndContext[T]':
        if not isinstance(data, dict) or 'value' not in data:
            raise RpcDecodeError(f"Expected result with context, got {data!r}")
        context = data.get('context')
        if not isinstance(context, dict) or not isinstance(context.get('slot'), int):
            raise RpcDecodeError(f"Invalid result context: {context!r}")
        return cls(slot=context['slot'], value=value(data['value']))


@dataclass
class Blockhash:
    """Recent blockhash and the last block height it is valid for"""
    blockhash: str
    last_valid_block_height: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Blockhash':
        return cls(
            blockhash=data['blockhash'],
            last_valid_block_height=data['lastValidBlockHeight'],
        )


@dataclass
class SignatureStatus:
    """Processing status of a submitted transaction"""
    slot: int
    confirmations: Optional[int]
    err: Any
    confirmation_status: Optional[str]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SignatureStatus':
        return cls(
            slot=data['slot'],
            confirmations=data.get('confirmations'),
            err=data.get('err'),
            confirmation_status=data.get('confirmationStatus'),
        )


@dataclass
class AccountInfo:
    """On-chain account state"""
    lamports: int
    owner: str
    data: bytes
    executable: bool
    rent_epoch: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccountInfo':
        raw, encoding = data['data']
        if encoding != 'base64':
            raise RpcDecodeError(f"Unexpected account data encoding: {encoding}")
        return cls(
            lamports=data['lamports'],
            owner=data['owner'],
            data=base64.b64decode(raw),
            executable=data['executable'],
            rent_epoch=data['rentEpoch'],
        )


def decode_json(response: httpx.Response) -> Any:
    """Decode a response body without losing numeric precision

    Integers decode to arbitrary precision ints and everything else to Decimal.
    """
    try:
        return response.json(parse_float=Decimal)
    except ValueError as e:
        raise RpcDecodeError(f"Response is not valid JSON: {e}") from e


class RpcClient:
    """Client for the ledger JSON-RPC API

    Rate-limited requests are retried with exponential backoff; every other
    failure is surfaced to the caller.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30,
        commitment: str = 'confirmed',
        max_retries: int = 5,
        retry_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.commitment = commitment
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._transport = transport
        self._request_id = 1

    def _post(self, request: Dict[str, Any]) -> httpx.Response:
        """POST a request, retrying while the endpoint is rate limiting"""
        attempts = self.max_retries
        delay = self.retry_delay

        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            while True:
                response = client.post(self.rpc_url, json=request)
                if response.status_code != TOO_MANY_REQUESTS:
                    break
                attempts -= 1
                if attempts == 0:
                    logger.error("%s still rate limited after %d attempts", request['method'], self.max_retries)
                    break
                logger.warning("%s rate limited, retrying in %.2fs", request['method'], delay)
                self._sleep(delay)
                delay *= 2

            if not response.is_success:
                raise TransportError(response.status_code, response.reason_phrase, response.text)
            return response

    def _call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Make an RPC call"""
        request = {
            'jsonrpc': '2.0',
            'id': self._request_id,
            'method': method,
            'params': params or [],
        }
        self._request_id += 1

        response = RpcResponse.from_dict(decode_json(self._post(request)))
        if response.error is not None:
            raise response.error
        return response.result

    def _config(self, commitment: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
        config = {'commitment': commitment or self.commitment}
        config.update({k: v for k, v in extra.items() if v is not None})
        return config

    def get_slot(self, commitment: Optional[str] = None) -> int:
        """Get current slot"""
        return self._call('getSlot', [self._config(commitment)])

    def get_block_height(self, commitment: Optional[str] = None) -> int:
        """Get current block height"""
        return self._call('getBlockHeight', [self._config(commitment)])

    def get_epoch_info(self, commitment: Optional[str] = None) -> Dict[str, Any]:
        return self._call('getEpochInfo', [self._config(commitment)])

    def get_block_time(self, slot: int) -> Optional[int]:
        """Estimated unix timestamp of a slot, None when unavailable"""
        return self._call('getBlockTime', [slot])

    def get_latest_blockhash(self, commitment: Optional[str] = None) -> Blockhash:
        """Get latest blockhash"""
        result = self._call('getLatestBlockhash', [self._config(commitment)])
        return RpcResponseAndContext.from_dict(result, Blockhash.from_dict).value

    def send_raw_transaction(
        self,
        raw_transaction: bytes,
        skip_preflight: bool = False,
        preflight_commitment: Optional[str] = None,
        max_retries: Optional[int] = None,
    ) -> str:
        """Send a serialized transaction, returning its signature"""
        config = {
            'encoding': 'base64',
            'skipPreflight': skip_preflight,
            'preflightCommitment': preflight_commitment or self.commitment,
        }
        if max_retries is not None:
            config['maxRetries'] = max_retries
        encoded = base64.b64encode(raw_transaction).decode()
        return self._call('sendTransaction', [encoded, config])

    def get_signature_statuses(
        self,
        signatures: List[str],
        search_transaction_history: bool = False,
    ) -> RpcResponseAndContext[List[Optional[SignatureStatus]]]:
        result = self._call('getSignatureStatuses', [
            signatures,
            {'searchTransactionHistory': search_transaction_history},
        ])
        return RpcResponseAndContext.from_dict(
            result,
            lambda value: [SignatureStatus.from_dict(s) if s is not None else None for s in value],
        )

    def get_transaction(self, signature: str, commitment: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Get transaction details"""
        return self._call('getTransaction', [
            signature,
            self._config(commitment, encoding='json', maxSupportedTransactionVersion=0),
        ])

    def get_balance_and_context(self, address: str, commitment: Optional[str] = None) -> RpcResponseAndContext[int]:
        """Get account balance in lamports, with context"""
        result = self._call('getBalance', [address, self._config(commitment)])
        return RpcResponseAndContext.from_dict(result, _expect_int)

    def get_balance(self, address: str, commitment: Optional[str] = None) -> int:
        """Get account balance"""
        return self.get_balance_and_context(address, commitment).value

    def get_account_info(self, address: str, commitment: Optional[str] = None) -> Optional[AccountInfo]:
        """Get account information"""
        result = self._call('getAccountInfo', [address, self._config(commitment, encoding='base64')])
        return RpcResponseAndContext.from_dict(
            result,
            lambda value: AccountInfo.from_dict(value) if value is not None else None,
        ).value

    def get_minimum_balance_for_rent_exemption(self, data_length: int, commitment: Optional[str] = None) -> int:
        return self._call('getMinimumBalanceForRentExemption', [data_length, self._config(commitment)])

    def request_airdrop(self, address: str, lamports: int, commitment: Optional[str] = None) -> str:
        return self._call('requestAirdrop', [address, lamports, self._config(commitment)])


def _expect_int(value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise RpcDecodeError(f"Expected integer, got {value!r}")
    return value
