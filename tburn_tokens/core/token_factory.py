"""
Token factory service

Orchestrates a deployment end to end: calldata encoding, gas estimation,
unsigned transaction assembly, receipt processing, simulated deployments,
receipt waiting, contract validation and the factory status report. The
caller signs and submits transactions; this service never holds keys.

Every created token is written to the TokenRegistry, which is the single
source of truth for deployed-token queries.
"""

import asyncio
import logging
import random
import secrets
from typing import Any, Dict, List, Optional

from eth_abi import decode

from ..utils.common import format_timestamp, hex_to_int, now_millis
from ..utils.config_manager import FACTORY_ENV_VARS, Settings
from ..utils.event_parser import extract_contract_address
from ..utils.factory_abi import TOKEN_READ_ABI, function_selector, get_abi_entry, output_types
from ..utils.factory_encoder import FactoryEncoder
from ..utils.gas_estimator import GasEstimator
from ..utils.tburn_address import (
    format_tburn_address,
    generate_random_tburn_address,
    to_hex_address,
)
from ..utils.transaction_builder import build_deployment_transaction
from .models import (
    DEFAULT_DECIMALS,
    DEFAULT_FUNGIBLE_SUPPLY,
    ConnectionStatus,
    ContractValidation,
    DeploymentMode,
    DeploymentResult,
    DeploymentSource,
    DeploymentTransaction,
    GasEstimation,
    ReceiptWaitResult,
    RegisteredToken,
    SimulatedDeployment,
    TokenDeploymentRequest,
    TokenStandard,
    TokenStatus,
    resolve_capability_flags,
)
from .token_registry import TokenRegistry

LOG = logging.getLogger(__name__)

TX_FAILED_ERROR = "Transaction failed on-chain"
NO_CREATION_EVENT_ERROR = "Could not extract contract address from logs"
RECEIPT_TIMEOUT_ERROR = "Transaction confirmation timeout"

SIMULATED_BLOCK_RANGE = (1_000_000, 1_999_999)
SIMULATED_GAS_RANGE = (200_000, 499_999)

# Keys of the `factories` section of the status report
STATUS_FACTORY_KEYS = {
    TokenStandard.TBC20: "TBC20",
    TokenStandard.TBC721: "TBC721",
    TokenStandard.TBC1155: "TBC1155",
}


def _token_id(standard: TokenStandard) -> str:
    # Millisecond granularity; two same-standard deployments in one millisecond collide
    return f"{standard.value.lower()}-{now_millis()}"


def build_token_record(
    request: TokenDeploymentRequest,
    contract_address: str,
    tx_hash: str,
    block_number: int,
    deployer_address: str,
    source: DeploymentSource,
    mode: DeploymentMode
) -> RegisteredToken:
    """
    Canonical registry record for a request that produced `contract_address`.

    Applies the same capability-flag defaults as the encoder, since receipts
    may be processed without the request ever having been encoded here.
    """
    standard = TokenStandard.parse(request.standard)
    flags = resolve_capability_flags(request)
    fungible = standard is TokenStandard.TBC20

    if request.decimals is not None:
        decimals = int(request.decimals)
    else:
        decimals = DEFAULT_DECIMALS if fungible else 0

    return RegisteredToken(
        id=_token_id(standard),
        name=request.name,
        symbol=request.symbol,
        contract_address=contract_address,
        standard=standard.value,
        total_supply=request.total_supply or (DEFAULT_FUNGIBLE_SUPPLY if fungible else "0"),
        decimals=decimals,
        deployer_address=deployer_address,
        deployment_tx_hash=tx_hash,
        deployed_at=format_timestamp(),
        block_number=block_number,
        mintable=flags.mintable,
        burnable=flags.burnable,
        pausable=flags.pausable,
        ai_optimization_enabled=flags.ai_optimization_enabled,
        quantum_resistant=flags.quantum_resistant,
        mev_protection=flags.mev_protection,
        max_supply=request.max_supply,
        base_uri=request.base_uri,
        royalty_percentage=request.royalty_percentage,
        royalty_recipient=request.royalty_recipient,
        status=TokenStatus.CONFIRMED.value,
        deployment_source=source.value,
        deployment_mode=mode.value,
    )


class TokenFactoryService:
    """Deployment orchestration over the chain client and the token registry"""

    def __init__(self, settings: Settings, chain_client, registry: TokenRegistry):
        """
        Args:
            settings: Runtime settings (chain ID, factory addresses, timeouts)
            chain_client: ChainClient or any object with the same async API
            registry: Token registry that receives every created token
        """
        self.settings = settings
        self.chain_client = chain_client
        self.registry = registry
        self.encoder = FactoryEncoder(settings.factory_addresses)
        self.gas_estimator = GasEstimator(chain_client)

    async def check_connection(self) -> ConnectionStatus:
        try:
            block_number = await self.chain_client.get_block_number()
            return ConnectionStatus(connected=True, block_number=block_number)
        except Exception as e:
            LOG.warning(f"RPC connection check failed: {e}")
            return ConnectionStatus(connected=False, error=str(e))

    # Deployment composition

    def get_factory_address(self, standard) -> str:
        return self.encoder.get_factory_address(standard)

    def encode_deployment_data(self, request: TokenDeploymentRequest) -> str:
        return self.encoder.encode_deployment_data(request)

    async def estimate_gas(self, request: TokenDeploymentRequest) -> GasEstimation:
        """Best-effort estimate for the request's factory call; never raises for RPC failures"""
        factory_address = self.get_factory_address(request.standard)
        data = self.encode_deployment_data(request)
        return await self.gas_estimator.estimate(request.deployer_address, factory_address, data)

    def build_deployment_transaction(
        self,
        request: TokenDeploymentRequest,
        gas_estimation: GasEstimation,
        nonce: Optional[int] = None
    ) -> DeploymentTransaction:
        return build_deployment_transaction(
            factory_address=self.get_factory_address(request.standard),
            data=self.encode_deployment_data(request),
            gas_estimation=gas_estimation,
            chain_id=self.settings.chain_id,
            nonce=nonce,
        )

    # Receipt processing

    async def process_deployment_receipt(
        self,
        request: TokenDeploymentRequest,
        tx_hash: str,
        receipt: Dict[str, Any]
    ) -> DeploymentResult:
        """
        Register the token created by a mined deployment transaction.

        Args:
            request: The request the transaction was built from
            tx_hash: Transaction hash
            receipt: Receipt with `status`, `blockNumber`, `gasUsed` and
                `logs`; numeric fields may be ints or hex strings

        Returns:
            DeploymentResult; a reverted transaction or a receipt without the
            creation event yields success=False and registers nothing
        """
        standard = TokenStandard.parse(request.standard)

        if hex_to_int(receipt.get("status", 0)) != 1:
            LOG.info(f"Deployment {tx_hash} reverted")
            return DeploymentResult(success=False, transaction_hash=tx_hash, error=TX_FAILED_ERROR)

        contract_address = extract_contract_address(standard, receipt.get("logs") or [])
        if contract_address is None:
            LOG.warning(f"No {standard.value} creation event in receipt of {tx_hash}")
            return DeploymentResult(success=False, transaction_hash=tx_hash, error=NO_CREATION_EVENT_ERROR)

        block_number = hex_to_int(receipt["blockNumber"])
        token = build_token_record(
            request,
            contract_address=contract_address,
            tx_hash=tx_hash,
            block_number=block_number,
            deployer_address=request.deployer_address,
            source=DeploymentSource.TOKEN_FACTORY,
            mode=DeploymentMode.WALLET,
        )
        await self.registry.register_token(token)

        return DeploymentResult(
            success=True,
            contract_address=contract_address,
            transaction_hash=tx_hash,
            block_number=block_number,
            gas_used=str(hex_to_int(receipt.get("gasUsed", 0))),
        )

    async def generate_mock_deployment_for_simulation(self, request: TokenDeploymentRequest) -> SimulatedDeployment:
        """
        Register an as-if-deployed token without touching the chain.

        Must not be used for a request that is also submitted on-chain.
        """
        contract_address = generate_random_tburn_address()
        tx_hash = "0x" + secrets.token_hex(32)
        block_number = random.randint(*SIMULATED_BLOCK_RANGE)

        deployer = request.deployer_address
        if deployer.startswith("0x"):
            deployer = format_tburn_address(deployer)

        token = build_token_record(
            request,
            contract_address=contract_address,
            tx_hash=tx_hash,
            block_number=block_number,
            deployer_address=deployer,
            source=DeploymentSource.TOKEN_GENERATOR,
            mode=DeploymentMode.SIMULATION,
        )
        await self.registry.register_token(token)

        return SimulatedDeployment(
            token=self.registry.get_token(contract_address) or token,
            transaction={
                "hash": tx_hash,
                "blockNumber": block_number,
                "gasUsed": str(random.randint(*SIMULATED_GAS_RANGE)),
                "status": "success",
            },
        )

    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        confirmations: int = 1,
        timeout: Optional[float] = None
    ) -> ReceiptWaitResult:
        """
        Wait for a receipt, bounded by `timeout` seconds.

        Returns:
            ReceiptWaitResult with status "success", "failed" or "timeout";
            never raises for RPC errors or timeouts
        """
        if timeout is None:
            timeout = self.settings.receipt_timeout

        try:
            receipt = await asyncio.wait_for(
                self.chain_client.wait_for_transaction(tx_hash, confirmations),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            LOG.warning(f"Timed out after {timeout}s waiting for {tx_hash}")
            return ReceiptWaitResult(status="timeout", error=RECEIPT_TIMEOUT_ERROR)
        except Exception as e:
            LOG.error(f"Failed waiting for {tx_hash}: {e}")
            return ReceiptWaitResult(status="failed", error=str(e))

        if not receipt:
            return ReceiptWaitResult(status="timeout", error=RECEIPT_TIMEOUT_ERROR)

        status = "success" if hex_to_int(receipt.get("status", 0)) == 1 else "failed"
        return ReceiptWaitResult(status=status, receipt=receipt)

    async def _call_view(self, contract_address: str, function_name: str) -> Any:
        entry = get_abi_entry(TOKEN_READ_ABI, function_name, "function")
        result = await self.chain_client.call(contract_address, "0x" + function_selector(entry).hex())
        return decode(output_types(entry), bytes.fromhex(result[2:] if result.startswith("0x") else result))[0]

    async def validate_token_contract(self, contract_address: str) -> ContractValidation:
        """Read name, symbol, totalSupply and (if exposed) owner from a token contract"""
        try:
            address = to_hex_address(contract_address)
            name = await self._call_view(address, "name")
            symbol = await self._call_view(address, "symbol")
            total_supply = await self._call_view(address, "totalSupply")
        except Exception as e:
            return ContractValidation(valid=False, error=str(e))

        try:
            owner = await self._call_view(address, "owner")
        except Exception as e:
            LOG.debug(f"{contract_address} exposes no owner(): {e}")
            owner = None

        return ContractValidation(
            valid=True,
            name=name,
            symbol=symbol,
            total_supply=str(total_supply),
            owner=owner,
        )

    # Registry-backed queries

    def get_deployed_tokens(self, deployer_address: Optional[str] = None) -> List[RegisteredToken]:
        if deployer_address:
            return self.registry.get_tokens_by_deployer(deployer_address)
        return self.registry.get_all_tokens()

    def get_token_by_address(self, contract_address: str) -> Optional[RegisteredToken]:
        return self.registry.get_token(contract_address)

    async def get_factory_status(self) -> Dict[str, Any]:
        warnings = []
        for standard in TokenStandard:
            if self.settings.is_placeholder(standard):
                warnings.append(
                    f"{FACTORY_ENV_VARS[standard]} uses placeholder - set environment variable for production"
                )

        connection = await self.check_connection()
        if not connection.connected:
            warnings.append(f"RPC connection failed: {connection.error}")

        addresses = self.settings.factory_addresses
        factories = {
            STATUS_FACTORY_KEYS[standard]: {
                "address": addresses[standard],
                "isConfigured": not self.settings.is_placeholder(standard),
            }
            for standard in TokenStandard
        }

        is_ready = connection.connected and not warnings
        return {
            "isReady": is_ready,
            "rpcConnected": connection.connected,
            "blockNumber": connection.block_number,
            "factories": factories,
            "launchReady": is_ready,
            "launchDate": self.settings.launch_date,
            "deployedTokensCount": self.registry.count(),
            "registryStats": self.registry.get_stats(),
            "warnings": warnings,
        }
