"""
Bitcoin RPC service for blockchain interaction.
"""

import asyncio
import itertools
import json
import random
import time
from decimal import Decimal
from enum import Enum
from functools import wraps
from typing import Any, Dict, List, Optional

import httpx
import structlog

from runescan.config import settings
from runescan.utils.exceptions import RPCError, TransactionNotFound

logger = structlog.get_logger()


class ConnectionState(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"


def _is_retryable(error: Exception) -> bool:
    if isinstance(error, TransactionNotFound):
        return False
    if isinstance(error, RPCError):
        return error.is_transient
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(error, httpx.TransportError)


def retry_on_rpc_error(max_retries: int = 3, base_delay: float = 1.0, max_delay: float = 60.0):
    """
    Decorator for automatic retry with exponential backoff on transient RPC errors.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Base delay in seconds between retries
        max_delay: Maximum delay in seconds between retries
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    result = await func(self, *args, **kwargs)
                    self._record_success()
                    return result
                except (httpx.HTTPError, RPCError) as e:
                    last_exception = e

                    if not _is_retryable(e):
                        raise

                    if isinstance(e, httpx.TransportError):
                        logger.warning(
                            "RPC connection error detected",
                            error=str(e),
                            attempt=attempt + 1,
                            max_retries=max_retries,
                        )
                        self._connection_state = ConnectionState.DEGRADED

                    if attempt == max_retries:
                        logger.error(
                            "RPC call failed after all retries",
                            function=func.__name__,
                            error=str(e),
                            attempts=attempt + 1,
                        )
                        break

                    delay = min(base_delay * (2**attempt), max_delay)
                    jitter = random.uniform(0, delay * 0.1)  # nosec B311
                    actual_delay = delay + jitter

                    logger.info(
                        "RPC call failed, retrying",
                        function=func.__name__,
                        error=str(e),
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        retry_delay=actual_delay,
                    )

                    await self._sleep(actual_delay)

            self._record_failure()
            raise last_exception

        return wrapper

    return decorator


class BitcoinRPCService:
    """
    Async Bitcoin Core JSON-RPC client with retry and connection state tracking.
    """

    def __init__(
        self,
        rpc_url: str = None,
        rpc_user: str = None,
        rpc_password: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Bitcoin RPC service.

        Args:
            rpc_url: RPC URL (default from settings)
            rpc_user: RPC username (default from settings)
            rpc_password: RPC password (default from settings)
            timeout: request timeout in seconds (default from settings)
            transport: optional httpx transport, used by tests
        """
        self.rpc_url = rpc_url or settings.BITCOIN_RPC_URL
        self.rpc_user = rpc_user or settings.BITCOIN_RPC_USER
        self.rpc_password = rpc_password or settings.BITCOIN_RPC_PASSWORD

        if not self.rpc_url:
            raise ValueError("Bitcoin RPC URL is required")
        if not self.rpc_user:
            raise ValueError("Bitcoin RPC username is required")
        if not self.rpc_password:
            raise ValueError("Bitcoin RPC password is required")

        if self.rpc_password == "your_rpc_password_here":  # nosec B105
            raise ValueError(
                "Bitcoin RPC password is set to placeholder value. "
                "For rpcauth setup, use the actual password (not the hash)."
            )

        if not self.rpc_url.startswith("http"):
            self.rpc_url = f"http://{self.rpc_url}"

        self._client = httpx.AsyncClient(
            base_url=self.rpc_url,
            auth=(self.rpc_user, self.rpc_password),
            timeout=timeout or settings.BITCOIN_RPC_TIMEOUT,
            transport=transport,
        )
        self._ids = itertools.count(1)
        self._connection_state = ConnectionState.HEALTHY
        self._last_health_check = 0.0
        self._consecutive_failures = 0
        self._max_consecutive_failures = 5

        logger.info(
            "Bitcoin RPC service initialized",
            rpc_url=self.rpc_url,
            rpc_user=self.rpc_user,
            connection_state=self._connection_state.value,
        )

    async def _sleep(self, delay: float):
        await asyncio.sleep(delay)

    def _record_success(self):
        self._consecutive_failures = 0
        self._connection_state = ConnectionState.HEALTHY

    def _record_failure(self):
        self._consecutive_failures += 1
        if self._consecutive_failures >= self._max_consecutive_failures:
            self._connection_state = ConnectionState.FAILED
        else:
            self._connection_state = ConnectionState.DEGRADED

    async def call(self, method: str, *params) -> Any:
        """
        Perform one JSON-RPC 1.0 call.

        Floats in the response are parsed as Decimal so BTC amounts stay exact.

        Raises:
            RPCError: the node returned an error object
            httpx.HTTPError: transport failure or unexpected HTTP status
        """
        payload = {"jsonrpc": "1.0", "id": next(self._ids), "method": method, "params": list(params)}
        response = await self._client.post("/", json=payload)

        if response.status_code == 401:
            logger.error("RPC authentication error", rpc_user=self.rpc_user)
            response.raise_for_status()

        try:
            body = json.loads(response.text, parse_float=Decimal)
        except ValueError:
            response.raise_for_status()
            raise

        # Bitcoin Core answers RPC errors with HTTP 404/500 and a JSON body
        error = body.get("error") if isinstance(body, dict) else None
        if error:
            raise RPCError.from_payload(method, error)

        response.raise_for_status()
        return body.get("result")

    def get_connection_status(self) -> Dict[str, Any]:
        return {
            "state": self._connection_state.value,
            "consecutive_failures": self._consecutive_failures,
            "last_health_check": self._last_health_check,
            "connection_url": self.rpc_url,
            "healthy": self._connection_state == ConnectionState.HEALTHY,
        }

    @retry_on_rpc_error(max_retries=3, base_delay=1.0, max_delay=30.0)
    async def get_block_count(self) -> int:
        return await self.call("getblockcount")

    @retry_on_rpc_error(max_retries=3, base_delay=1.0, max_delay=30.0)
    async def get_block_hash(self, height: int) -> str:
        return await self.call("getblockhash", height)

    @retry_on_rpc_error(max_retries=3, base_delay=1.0, max_delay=30.0)
    async def get_block(self, block_hash: str, verbosity: int = 1) -> Dict[str, Any]:
        """
        Get block by hash.

        Args:
            block_hash: Block hash to retrieve
            verbosity: 0=hex, 1=txids, 2=full transaction data
        """
        return await self.call("getblock", block_hash, verbosity)

    @retry_on_rpc_error(max_retries=3, base_delay=1.0, max_delay=30.0)
    async def get_raw_transaction(self, txid: str, verbose: bool = True) -> Dict[str, Any]:
        """
        Get transaction by ID.

        Raises:
            TransactionNotFound: the node does not know the transaction, not retried
        """
        return await self.call("getrawtransaction", txid, verbose)

    @retry_on_rpc_error(max_retries=3, base_delay=1.0, max_delay=30.0)
    async def get_raw_mempool(self) -> List[str]:
        return await self.call("getrawmempool")

    @retry_on_rpc_error(max_retries=3, base_delay=1.0, max_delay=30.0)
    async def get_block_template(self, template_request: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.call("getblocktemplate", template_request or {"rules": ["segwit"]})

    @retry_on_rpc_error(max_retries=3, base_delay=1.0, max_delay=30.0)
    async def get_blockchain_info(self) -> Dict[str, Any]:
        return await self.call("getblockchaininfo")

    async def test_connection(self) -> bool:
        """
        Test RPC connection.

        Returns:
            bool: True if the node answered getblockcount
        """
        self._last_health_check = time.time()
        try:
            await self.get_block_count()
            return True
        except Exception as e:
            logger.warning("RPC health check failed", error=str(e))
            return False

    async def close(self):
        """Close the underlying HTTP client."""
        await self._client.aclose()
        logger.info("RPC connection closed")
