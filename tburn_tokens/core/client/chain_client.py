import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp
from web3 import Web3

from ...utils.common import hex_to_int
from ...utils.exceptions import APIError, ErrorCodes

LOG = logging.getLogger(__name__)

DEFAULT_PRIORITY_FEE = Web3.to_wei(1, "gwei")


def to_checksum_address(address: str) -> str:
    """Convert address to EIP-55 checksum format"""
    if not address.startswith("0x"):
        address = "0x" + address
    return Web3.to_checksum_address(address)


@dataclass(frozen=True)
class FeeData:
    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None


class ChainClient:
    """TBURN chain JSON-RPC client"""

    def __init__(self, rpc_url: str, chain_id: Optional[int] = None, timeout: float = 30.0):
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None
        self._request_id = 0

    async def __aenter__(self):
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self.session

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None

    async def send_request(self, method: str, params: List[Any] = None) -> Any:
        """Send JSON-RPC request

        Args:
            method: RPC method name
            params: Parameter list

        Returns:
            RPC response result

        Raises:
            APIError: Request failed or returned error
        """
        session = self._ensure_session()

        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": self._request_id
        }

        try:
            async with session.post(self.rpc_url, json=payload) as response:
                if response.status != 200:
                    text = await response.text()
                    raise APIError(
                        f"HTTP {response.status}: {text}",
                        code=response.status,
                        method=method
                    )

                result = await response.json(content_type=None)
                if "error" in result:
                    error = result["error"]
                    raise APIError(
                        f"RPC Error: {error.get('message', str(error))}",
                        code=error.get("code"),
                        method=method
                    )

                return result["result"]

        except asyncio.TimeoutError:
            raise APIError(
                f"Request timeout after {self.timeout}s",
                code=ErrorCodes.RPC_TIMEOUT,
                method=method
            )
        except aiohttp.ClientError as e:
            raise APIError(f"Connection error: {e}", code=ErrorCodes.RPC_ERROR, method=method)
        except json.JSONDecodeError as e:
            raise APIError(f"Invalid JSON response: {e}", code=ErrorCodes.RPC_ERROR, method=method)

    async def get_chain_id(self) -> int:
        chain_id = await self.send_request("eth_chainId")
        return hex_to_int(chain_id)

    async def get_block_number(self) -> int:
        block = await self.send_request("eth_blockNumber")
        return hex_to_int(block)

    async def get_block(self, block: str = "latest", full_transactions: bool = False) -> Optional[Dict]:
        return await self.send_request("eth_getBlockByNumber", [block, full_transactions])

    async def get_gas_price(self) -> int:
        gas_price = await self.send_request("eth_gasPrice")
        return hex_to_int(gas_price)

    async def get_max_priority_fee(self) -> int:
        fee = await self.send_request("eth_maxPriorityFeePerGas")
        return hex_to_int(fee)

    async def get_fee_data(self) -> FeeData:
        """
        Current fee data.

        On EIP-1559 chains maxFeePerGas is twice the latest base fee plus the
        priority fee. Chains without a base fee report only a gas price.
        """
        block = await self.get_block("latest")
        gas_price = None
        try:
            gas_price = await self.get_gas_price()
        except APIError as e:
            LOG.debug(f"eth_gasPrice unavailable: {e}")

        base_fee = (block or {}).get("baseFeePerGas")
        if base_fee is None:
            return FeeData(gas_price=gas_price)

        try:
            priority_fee = await self.get_max_priority_fee()
        except APIError as e:
            LOG.debug(f"eth_maxPriorityFeePerGas unavailable, using default: {e}")
            priority_fee = DEFAULT_PRIORITY_FEE

        return FeeData(
            gas_price=gas_price,
            max_fee_per_gas=hex_to_int(base_fee) * 2 + priority_fee,
            max_priority_fee_per_gas=priority_fee
        )

    async def estimate_gas(self, tx: Dict, block: str = "latest") -> int:
        """Estimate transaction gas"""
        params = dict(tx)
        for key in ("from", "to"):
            if params.get(key):
                params[key] = to_checksum_address(params[key])
        gas = await self.send_request("eth_estimateGas", [params, block])
        return hex_to_int(gas)

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict]:
        receipt = await self.send_request("eth_getTransactionReceipt", [tx_hash])
        return receipt if receipt else None

    async def wait_for_transaction(
        self,
        tx_hash: str,
        confirmations: int = 1,
        poll_interval: float = 1.0
    ) -> Dict:
        """
        Poll until the transaction is mined and has `confirmations` blocks.

        Has no timeout of its own; callers bound it with asyncio.wait_for.
        """
        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                if confirmations <= 1:
                    return receipt
                mined_at = hex_to_int(receipt["blockNumber"])
                current = await self.get_block_number()
                if current - mined_at + 1 >= confirmations:
                    return receipt
            await asyncio.sleep(poll_interval)

    async def call(
        self,
        to: str,
        data: str = "0x",
        from_: str = None,
        block: str = "latest"
    ) -> str:
        """Execute contract call (read-only)"""
        params = {
            "to": to_checksum_address(to),
            "data": data
        }
        if from_:
            params["from"] = to_checksum_address(from_)

        return await self.send_request("eth_call", [params, block])
