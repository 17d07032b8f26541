"""
Pytest configuration and fixtures for TBURN token tests.

This module provides shared fixtures for all tests: isolated settings, a
SQLite-backed token store and registry per test, a mocked chain client and
the factory service wired on top of them.

Usage:
    # In test files, fixtures are automatically injected:

    @pytest.mark.asyncio
    async def test_something(factory_service, fungible_request):
        result = await factory_service.generate_mock_deployment_for_simulation(fungible_request)
        assert result.token.status == "confirmed"
"""

import logging
import sys
from pathlib import Path
from typing import AsyncGenerator
from unittest.mock import AsyncMock, Mock

# Make the package importable without installation
_current_dir = Path(__file__).resolve().parent
if str(_current_dir) not in sys.path:
    sys.path.insert(0, str(_current_dir))

import pytest
import pytest_asyncio
from eth_abi import encode
from eth_account import Account
from web3 import Web3

from tburn_tokens.core.client.chain_client import FeeData
from tburn_tokens.core.models import TokenDeploymentRequest
from tburn_tokens.core.token_factory import TokenFactoryService
from tburn_tokens.core.token_registry import TokenRegistry
from tburn_tokens.core.token_store import TokenStore
from tburn_tokens.utils.config_manager import Settings
from tburn_tokens.utils.event_parser import creation_event_entry
from tburn_tokens.utils.factory_abi import event_topic

LOG = logging.getLogger(__name__)


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """SQLite database file unique to the test"""
    return f"sqlite:///{tmp_path / 'tokens.db'}"


@pytest.fixture
def settings(database_url: str) -> Settings:
    """Settings with placeholder factory addresses and a short receipt timeout"""
    return Settings(rpc_url="http://127.0.0.1:8545", database_url=database_url, receipt_timeout=0.2)


@pytest.fixture
def deployer_address() -> str:
    return Account.create().address


@pytest.fixture
def token_store(database_url: str) -> TokenStore:
    store = TokenStore.from_url(database_url)
    yield store
    store.dispose()


@pytest_asyncio.fixture
async def registry(token_store: TokenStore) -> AsyncGenerator[TokenRegistry, None]:
    """Initialized registry over a fresh database"""
    reg = TokenRegistry(token_store)
    await reg.initialize()
    yield reg


@pytest.fixture
def chain_client() -> Mock:
    """
    Chain client double.

    Defaults describe a healthy EIP-1559 chain; tests override individual
    coroutines (`side_effect`) to simulate RPC failures.
    """
    client = Mock()
    client.get_block_number = AsyncMock(return_value=1234)
    client.estimate_gas = AsyncMock(return_value=100_000)
    client.get_fee_data = AsyncMock(return_value=FeeData(
        gas_price=2_000_000_000,
        max_fee_per_gas=3_000_000_000,
        max_priority_fee_per_gas=1_500_000_000,
    ))
    client.wait_for_transaction = AsyncMock()
    client.call = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def factory_service(settings: Settings, chain_client: Mock, registry: TokenRegistry) -> TokenFactoryService:
    return TokenFactoryService(settings, chain_client, registry)


@pytest.fixture
def fungible_request(deployer_address: str) -> TokenDeploymentRequest:
    return TokenDeploymentRequest(
        standard="TBC-20",
        name="Test",
        symbol="TST",
        deployer_address=deployer_address,
        total_supply="500",
        decimals=6,
    )


@pytest.fixture
def nft_request(deployer_address: str) -> TokenDeploymentRequest:
    return TokenDeploymentRequest(
        standard="TBC-721",
        name="Burn Apes",
        symbol="BAPE",
        deployer_address=deployer_address,
        base_uri="ipfs://apes/",
        royalty_percentage=2.5,
    )


@pytest.fixture
def multi_token_request(deployer_address: str) -> TokenDeploymentRequest:
    return TokenDeploymentRequest(
        standard="TBC-1155",
        name="Game Items",
        symbol="ITEM",
        deployer_address=deployer_address,
        base_uri="https://items.example/{id}.json",
    )


def build_creation_log(standard: str, token_address: str, owner: str, name: str = "Test",
                       symbol: str = "TST", amount: int = 0) -> dict:
    """Receipt log for the factory creation event of `standard`"""
    entry = creation_event_entry(standard)
    non_indexed = [p["type"] for p in entry["inputs"] if not p.get("indexed")]
    values = {
        "TBC-20": [name, symbol, amount],
        "TBC-721": [name, symbol, amount],
        "TBC-1155": [name],
    }[standard]

    return {
        "address": "0x" + "11" * 20,
        "topics": [
            event_topic(entry),
            "0x" + "00" * 12 + token_address[2:].lower(),
            "0x" + "00" * 12 + owner[2:].lower(),
        ],
        "data": "0x" + encode(non_indexed, values).hex(),
    }


def build_unrelated_log() -> dict:
    """ERC-20 Transfer log emitted by some other contract"""
    return {
        "address": "0x" + "22" * 20,
        "topics": [
            "0x" + bytes(Web3.keccak(text="Transfer(address,address,uint256)")).hex(),
            "0x" + "00" * 32,
            "0x" + "00" * 12 + "33" * 20,
        ],
        "data": "0x" + (1000).to_bytes(32, "big").hex(),
    }


@pytest.fixture
def creation_log():
    return build_creation_log


@pytest.fixture
def unrelated_log():
    return build_unrelated_log
