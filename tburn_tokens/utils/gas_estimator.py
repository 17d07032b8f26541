"""
Gas estimation for factory deployments

Design Notes:
- `try_estimate` performs the RPC round-trips and returns an EstimateResult
  holding either the estimation or the error; it never raises for RPC failures
- `with_fallback` is the pure policy that turns an error result into the fixed
  fallback estimation, so `estimate` always returns a well-formed value
- Integer arithmetic only: the 20% buffer is `raw * 120 // 100`
"""

import logging
from dataclasses import dataclass
from typing import Optional

from web3 import Web3

from ..core.models import GasEstimation
from .tburn_address import to_hex_address

LOG = logging.getLogger(__name__)

GAS_BUFFER_NUMERATOR = 120
GAS_BUFFER_DENOMINATOR = 100

FALLBACK_GAS_LIMIT = 500_000
DEFAULT_MAX_FEE_PER_GAS = Web3.to_wei(10, "gwei")
DEFAULT_MAX_PRIORITY_FEE_PER_GAS = Web3.to_wei(1, "gwei")

FALLBACK_ESTIMATION = GasEstimation(
    gas_limit=FALLBACK_GAS_LIMIT,
    max_fee_per_gas=DEFAULT_MAX_FEE_PER_GAS,
    max_priority_fee_per_gas=DEFAULT_MAX_PRIORITY_FEE_PER_GAS,
)


@dataclass(frozen=True)
class EstimateResult:
    estimation: Optional[GasEstimation] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.estimation is not None


def apply_gas_buffer(raw_gas: int) -> int:
    return (int(raw_gas) * GAS_BUFFER_NUMERATOR) // GAS_BUFFER_DENOMINATOR


def with_fallback(result: EstimateResult) -> GasEstimation:
    if result.ok:
        return result.estimation
    return FALLBACK_ESTIMATION


class GasEstimator:
    """Best-effort gas estimation against a chain client"""

    def __init__(self, chain_client):
        """
        Args:
            chain_client: Object exposing async `estimate_gas(tx)` and
                `get_fee_data()` (see core.client.chain_client.ChainClient)
        """
        self.chain_client = chain_client

    async def try_estimate(self, from_address: str, to_address: str, data: str) -> EstimateResult:
        try:
            raw_gas = await self.chain_client.estimate_gas({
                "from": to_hex_address(from_address),
                "to": to_hex_address(to_address),
                "data": data,
            })
            fee_data = await self.chain_client.get_fee_data()
        except Exception as e:
            return EstimateResult(error=e)

        max_fee = fee_data.max_fee_per_gas or DEFAULT_MAX_FEE_PER_GAS
        priority_fee = fee_data.max_priority_fee_per_gas or DEFAULT_MAX_PRIORITY_FEE_PER_GAS

        return EstimateResult(estimation=GasEstimation(
            gas_limit=apply_gas_buffer(raw_gas),
            max_fee_per_gas=int(max_fee),
            max_priority_fee_per_gas=int(priority_fee),
        ))

    async def estimate(self, from_address: str, to_address: str, data: str) -> GasEstimation:
        result = await self.try_estimate(from_address, to_address, data)
        if not result.ok:
            LOG.warning(f"RPC gas estimation failed, using fallback values: {result.error}")
        return with_fallback(result)
