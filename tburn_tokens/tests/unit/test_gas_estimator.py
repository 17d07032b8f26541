"""
Unit tests for gas estimation
"""

from unittest.mock import AsyncMock

import pytest

from tburn_tokens.core.client.chain_client import FeeData
from tburn_tokens.core.models import GasEstimation
from tburn_tokens.utils.exceptions import APIError
from tburn_tokens.utils.gas_estimator import (
    DEFAULT_MAX_FEE_PER_GAS,
    DEFAULT_MAX_PRIORITY_FEE_PER_GAS,
    FALLBACK_ESTIMATION,
    EstimateResult,
    GasEstimator,
    apply_gas_buffer,
    with_fallback,
)
from tburn_tokens.utils.tburn_address import generate_system_address, to_hex_address

GWEI = 10 ** 9
FACTORY = generate_system_address("tburn-factory-tbc20")


class TestGasBuffer:
    """Test the 20% buffer"""

    @pytest.mark.parametrize("raw", [0, 1, 21_000, 99_999, 2 ** 53 + 1, 2 ** 200 + 7])
    def test_integer_arithmetic(self, raw):
        """Test the 20% buffer uses integer arithmetic"""
        assert apply_gas_buffer(raw) == raw * 120 // 100

    def test_precision_above_two_pow_53(self):
        """Test the buffer is exact above 2**53"""
        raw = 2 ** 53 + 3
        assert apply_gas_buffer(raw) == 10808639105689194


class TestFallbackPolicy:
    """Test the pure fallback combinator"""

    def test_ok_result_passes_through(self):
        """Test a successful estimate is kept"""
        estimation = GasEstimation(gas_limit=1, max_fee_per_gas=2, max_priority_fee_per_gas=3)
        assert with_fallback(EstimateResult(estimation=estimation)) is estimation

    def test_error_result_uses_fixed_tuple(self):
        """Test a failed estimate maps to the fixed fallback"""
        result = with_fallback(EstimateResult(error=RuntimeError("boom")))

        assert (result.gas_limit, result.max_fee_per_gas, result.max_priority_fee_per_gas) == (
            500_000, 10 * GWEI, 1 * GWEI
        )


class TestGasEstimator:
    """Test estimation against a mocked chain client"""

    @pytest.mark.asyncio
    async def test_buffered_estimate(self, chain_client, deployer_address):
        """Test a provider estimate gets the buffer and fee data"""
        estimator = GasEstimator(chain_client)

        estimation = await estimator.estimate(deployer_address, FACTORY, "0x1234")

        assert estimation.gas_limit == 120_000
        assert estimation.max_fee_per_gas == 3 * GWEI
        assert estimation.max_priority_fee_per_gas == 1_500_000_000
        assert estimation.estimated_cost_wei == 120_000 * 3 * GWEI
        assert estimation.to_dict()["estimatedCostTB"] == "0.00036"

        chain_client.estimate_gas.assert_awaited_once_with({
            "from": deployer_address,
            "to": to_hex_address(FACTORY),
            "data": "0x1234",
        })

    @pytest.mark.asyncio
    async def test_large_raw_estimate(self, chain_client, deployer_address):
        """Test a very large provider estimate"""
        chain_client.estimate_gas = AsyncMock(return_value=2 ** 60 + 1)

        estimation = await GasEstimator(chain_client).estimate(deployer_address, FACTORY, "0x")

        assert estimation.gas_limit == (2 ** 60 + 1) * 120 // 100
        assert estimation.to_dict()["gasLimit"] == str((2 ** 60 + 1) * 120 // 100)

    @pytest.mark.asyncio
    async def test_missing_fee_data_uses_defaults(self, chain_client, deployer_address):
        """Test missing EIP-1559 fields fall back to defaults"""
        chain_client.get_fee_data = AsyncMock(return_value=FeeData(gas_price=GWEI))

        estimation = await GasEstimator(chain_client).estimate(deployer_address, FACTORY, "0x")

        assert estimation.gas_limit == 120_000
        assert estimation.max_fee_per_gas == DEFAULT_MAX_FEE_PER_GAS
        assert estimation.max_priority_fee_per_gas == DEFAULT_MAX_PRIORITY_FEE_PER_GAS

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", [
        APIError("Connection error: refused"),
        APIError("RPC Error: execution reverted", code=3),
        TimeoutError(),
    ])
    async def test_rejecting_provider_returns_fallback(self, chain_client, deployer_address, failure):
        """Test a rejected estimate returns the fallback"""
        chain_client.estimate_gas = AsyncMock(side_effect=failure)

        estimation = await GasEstimator(chain_client).estimate(deployer_address, FACTORY, "0x")

        assert estimation == FALLBACK_ESTIMATION

    @pytest.mark.asyncio
    async def test_fee_data_failure_returns_fallback(self, chain_client, deployer_address):
        """Test a fee data failure returns the fallback"""
        chain_client.get_fee_data = AsyncMock(side_effect=APIError("HTTP 502: bad gateway", code=502))

        estimation = await GasEstimator(chain_client).estimate(deployer_address, FACTORY, "0x")

        assert estimation == FALLBACK_ESTIMATION

    @pytest.mark.asyncio
    async def test_try_estimate_exposes_error(self, chain_client, deployer_address):
        """Test try_estimate reports the error"""
        error = APIError("RPC Error: out of gas")
        chain_client.estimate_gas = AsyncMock(side_effect=error)

        result = await GasEstimator(chain_client).try_estimate(deployer_address, FACTORY, "0x")

        assert not result.ok
        assert result.error is error
        assert result.estimation is None

    @pytest.mark.asyncio
    async def test_bad_deployer_address_returns_fallback(self, chain_client):
        """Test an invalid deployer address returns the fallback"""
        estimation = await GasEstimator(chain_client).estimate("not-an-address", FACTORY, "0x")

        assert estimation == FALLBACK_ESTIMATION
        chain_client.estimate_gas.assert_not_awaited()
