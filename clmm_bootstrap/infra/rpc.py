"""
RPC Client for Solana

Provides unified JSON-RPC interface with:
- Multiple endpoint fallback
- Retry logic
- Rate limit handling
- Request timeout management
"""

import base64
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from ..errors import TransportUnavailable, ConfigurationError, ErrorCode
from ..config import config as global_config

logger = logging.getLogger(__name__)

# JSON-RPC error code for a failed preflight simulation
PREFLIGHT_FAILURE_CODE = -32002


@dataclass
class RpcClientConfig:
    """
    RPC client runtime configuration

    This is a runtime configuration class that allows per-client overrides
    while pulling defaults from the global config (clmm_bootstrap.config.RpcConfig).

    Usage:
        # Use all defaults from environment
        client = RpcClient(endpoint)

        # Override specific settings
        config = RpcClientConfig(timeout_seconds=60, max_retries=5)
        client = RpcClient(endpoint, config=config)
    """
    timeout_seconds: float = None
    max_retries: int = None
    retry_delay_seconds: float = None
    commitment: str = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.timeout_seconds is None:
            self.timeout_seconds = global_config.rpc.timeout_seconds
        if self.max_retries is None:
            self.max_retries = global_config.rpc.max_retries
        if self.retry_delay_seconds is None:
            self.retry_delay_seconds = global_config.rpc.retry_delay_seconds
        if self.commitment is None:
            self.commitment = global_config.rpc.commitment


class RpcClient:
    """
    Unified Solana RPC client

    Supports:
    - Multiple RPC endpoints with automatic fallback
    - Retry logic for transient failures
    - Rate limit handling with backoff
    - Configurable timeouts

    Usage:
        # Single endpoint
        rpc = RpcClient("https://api.devnet.solana.com")

        # Multiple endpoints with fallback
        rpc = RpcClient([
            "https://primary-rpc.example.com",
            "https://backup-rpc.example.com",
        ])

        # Batched existence lookup
        accounts = rpc.get_multiple_accounts([pool, tick_lower, tick_upper])
    """

    def __init__(
        self,
        endpoint: Union[str, List[str]],
        config: Optional[RpcClientConfig] = None,
    ):
        """
        Initialize RPC client

        Args:
            endpoint: RPC endpoint URL or list of URLs (for fallback)
            config: RPC configuration options
        """
        self._endpoints = [endpoint] if isinstance(endpoint, str) else list(endpoint)
        if not self._endpoints or not all(self._endpoints):
            raise ConfigurationError.missing("RPC endpoint")

        self._config = config or RpcClientConfig()
        self._current_endpoint_idx = 0
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()

    @property
    def endpoint(self) -> str:
        """Current active endpoint"""
        return self._endpoints[self._current_endpoint_idx]

    @property
    def commitment(self) -> str:
        """Default commitment level"""
        return self._config.commitment

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client (thread-safe)"""
        if self._client is None:
            with self._client_lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=self._config.timeout_seconds,
                        headers={"Content-Type": "application/json"},
                    )
        return self._client

    def _rotate_endpoint(self):
        """Rotate to next endpoint on failure"""
        if len(self._endpoints) > 1:
            self._current_endpoint_idx = (self._current_endpoint_idx + 1) % len(self._endpoints)
            logger.info(f"Rotating to RPC endpoint: {self.endpoint}")

    def _rpc_error(self, error: Dict[str, Any]) -> TransportUnavailable:
        """Map a JSON-RPC error object to an exception"""
        error_msg = error.get("message", str(error))
        error_code = error.get("code")
        data = error.get("data") or {}

        if error_code == PREFLIGHT_FAILURE_CODE:
            logs = data.get("logs") if isinstance(data, dict) else None
            return TransportUnavailable.preflight_failed(self.endpoint, error_msg, logs)

        rpc_error = TransportUnavailable(
            f"RPC error: {error_msg}",
            ErrorCode.RPC_INVALID_RESPONSE,
            endpoint=self.endpoint,
        )
        # Preserve RPC error code in details for debugging
        rpc_error.details["rpc_error_code"] = error_code
        rpc_error.details["rpc_error_data"] = data
        return rpc_error

    def call(
        self,
        method: str,
        params: List[Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Make JSON-RPC call

        Args:
            method: RPC method name
            params: RPC parameters
            timeout: Optional timeout override

        Returns:
            RPC result

        Raises:
            TransportUnavailable: On RPC failure after all retries and endpoints
        """
        client = self._get_client()
        body = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params,
        }

        last_error: Optional[Exception] = None
        endpoints_tried = 0
        max_endpoints = len(self._endpoints)
        timeout_val = timeout or self._config.timeout_seconds

        while endpoints_tried < max_endpoints:
            for attempt in range(self._config.max_retries):
                try:
                    response = client.post(
                        self.endpoint,
                        json=body,
                        timeout=timeout_val,
                    )

                    # Handle rate limiting
                    if response.status_code == 429:
                        logger.warning(f"Rate limited by {self.endpoint}")
                        last_error = TransportUnavailable.rate_limited(self.endpoint)
                        time.sleep(self._config.retry_delay_seconds * (attempt + 1))
                        continue

                    response.raise_for_status()
                    result = response.json()

                    # JSON-RPC level errors are answers, not transport failures
                    if "error" in result:
                        raise self._rpc_error(result["error"])

                    return result.get("result")

                except httpx.TimeoutException:
                    last_error = TransportUnavailable.timeout(self.endpoint, timeout_val)
                    logger.warning(f"RPC timeout (attempt {attempt + 1}): {self.endpoint}")

                except httpx.HTTPStatusError as e:
                    if e.response.status_code == 429:
                        last_error = TransportUnavailable.rate_limited(self.endpoint)
                    else:
                        last_error = TransportUnavailable(
                            f"HTTP error {e.response.status_code}",
                            endpoint=self.endpoint,
                        )
                    logger.warning(f"RPC HTTP error (attempt {attempt + 1}): {e}")

                except httpx.RequestError as e:
                    last_error = TransportUnavailable.connection_failed(self.endpoint, e)
                    logger.warning(f"RPC connection error (attempt {attempt + 1}): {e}")

                except TransportUnavailable:
                    raise

                except ValueError as e:
                    last_error = TransportUnavailable(
                        f"Malformed RPC response: {e}",
                        ErrorCode.RPC_INVALID_RESPONSE,
                        endpoint=self.endpoint,
                        original_error=e,
                    )

                # Wait before retry
                if attempt < self._config.max_retries - 1:
                    time.sleep(self._config.retry_delay_seconds * (attempt + 1))

            # All retries failed, try next endpoint
            self._rotate_endpoint()
            endpoints_tried += 1

        # All endpoints failed
        raise last_error or TransportUnavailable("All RPC endpoints failed")

    def get_account_info(
        self,
        address: str,
        encoding: str = "base64",
        commitment: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Get account information

        Args:
            address: Account address (base58)
            encoding: Data encoding ("base64", "jsonParsed", etc.)
            commitment: Commitment level

        Returns:
            Account info or None if not found
        """
        params = [
            address,
            {
                "encoding": encoding,
                "commitment": commitment or self.commitment,
            },
        ]
        result = self.call("getAccountInfo", params)
        return result.get("value") if result else None

    def get_multiple_accounts(
        self,
        addresses: List[str],
        encoding: str = "base64",
        commitment: Optional[str] = None,
    ) -> List[Optional[Dict[str, Any]]]:
        """
        Get multiple account information in one call

        Args:
            addresses: List of account addresses (at most 100)
            encoding: Data encoding
            commitment: Commitment level

        Returns:
            List of account info (None for accounts not found), in request order

        Raises:
            TransportUnavailable: On failure or when the reply length does not match
        """
        params = [
            addresses,
            {
                "encoding": encoding,
                "commitment": commitment or self.commitment,
            },
        ]
        result = self.call("getMultipleAccounts", params)
        values = result.get("value", []) if result else []
        if len(values) != len(addresses):
            raise TransportUnavailable(
                f"getMultipleAccounts returned {len(values)} entries for {len(addresses)} addresses",
                ErrorCode.RPC_INVALID_RESPONSE,
                endpoint=self.endpoint,
            )
        return values

    def get_latest_blockhash(
        self,
        commitment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Get latest blockhash

        Returns:
            Dict with blockhash and lastValidBlockHeight
        """
        params = [{"commitment": commitment or self.commitment}]
        result = self.call("getLatestBlockhash", params)
        return result.get("value", {})

    def send_transaction(
        self,
        transaction: bytes,
        skip_preflight: bool = False,
        preflight_commitment: Optional[str] = None,
        max_retries: Optional[int] = None,
    ) -> str:
        """
        Send signed transaction

        Args:
            transaction: Signed transaction bytes
            skip_preflight: Skip preflight simulation
            preflight_commitment: Preflight commitment level
            max_retries: Max send retries

        Returns:
            Transaction signature (base58)

        Raises:
            TransportUnavailable: Non-recoverable when the preflight simulation fails
        """
        # Always use base64 encoding (standard for Solana RPC)
        tx_data = base64.b64encode(transaction).decode("ascii")

        params = [
            tx_data,
            {
                "skipPreflight": skip_preflight,
                "preflightCommitment": preflight_commitment or self.commitment,
                "encoding": "base64",
            },
        ]
        if max_retries is not None:
            params[1]["maxRetries"] = max_retries

        return self.call("sendTransaction", params)

    def simulate_transaction(
        self,
        transaction: bytes,
        commitment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Simulate transaction execution

        Args:
            transaction: Transaction bytes (can be unsigned)
            commitment: Commitment level

        Returns:
            Simulation result
        """
        tx_data = base64.b64encode(transaction).decode("ascii")

        params = [
            tx_data,
            {
                "commitment": commitment or self.commitment,
                "encoding": "base64",
                "sigVerify": False,
                "replaceRecentBlockhash": True,
            },
        ]
        return self.call("simulateTransaction", params)

    def get_signature_status(self, signature: str) -> Optional[Dict[str, Any]]:
        """Status of one signature, None if the cluster has not seen it"""
        result = self.call("getSignatureStatuses", [[signature]])
        if result and result.get("value"):
            return result["value"][0]
        return None

    def get_transaction_logs(
        self,
        signature: str,
        commitment: Optional[str] = None,
    ) -> List[str]:
        """Program log messages of a landed transaction"""
        params = [
            signature,
            {
                "encoding": "json",
                "commitment": commitment or self.commitment,
                "maxSupportedTransactionVersion": 0,
            },
        ]
        result = self.call("getTransaction", params)
        if not result:
            return []
        return (result.get("meta") or {}).get("logMessages") or []

    def confirm_transaction(
        self,
        signature: str,
        commitment: Optional[str] = None,
        timeout_seconds: float = 60.0,
        poll_interval: float = 1.0,
    ) -> Optional[bool]:
        """
        Wait for transaction confirmation

        Args:
            signature: Transaction signature
            commitment: Commitment level
            timeout_seconds: Max wait time
            poll_interval: Delay between status polls

        Returns:
            True if confirmed successfully
            False if transaction failed on-chain (has error)
            None if timeout (transaction never landed or status unknown)
        """
        start_time = time.time()
        last_status = None
        wanted = ("finalized",) if commitment == "finalized" else ("confirmed", "finalized")

        while time.time() - start_time < timeout_seconds:
            try:
                status = self.get_signature_status(signature)
                if status:
                    last_status = status
                    if status.get("err"):
                        # Transaction failed on-chain
                        logger.warning(
                            f"Transaction {signature} failed on-chain: {status.get('err')}"
                        )
                        return False
                    if status.get("confirmationStatus") in wanted:
                        return True
            except TransportUnavailable as e:
                logger.debug(f"Error checking transaction status: {e}")

            time.sleep(poll_interval)

        # Timeout - transaction never landed or didn't reach confirmation
        if last_status is None:
            logger.warning(
                f"Transaction {signature} was never seen on chain (dropped/expired)"
            )
        else:
            logger.warning(
                f"Transaction {signature} timeout. Last status: {last_status.get('confirmationStatus', 'unknown')}"
            )

        return None

    def close(self):
        """Close HTTP client"""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
