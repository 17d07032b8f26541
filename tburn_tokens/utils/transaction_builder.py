"""
Deployment transaction assembly

Combines the factory address, encoded calldata, a gas estimation and the
configured chain ID into the unsigned EIP-1559 transaction the caller signs.
No network calls and no validation beyond what the encoder and the estimator
already performed.
"""

from typing import Any, Dict, Optional

from ..core.models import DeploymentTransaction, GasEstimation
from .tburn_address import to_hex_address

EIP1559_TX_TYPE = 2


def build_deployment_transaction(
    factory_address: str,
    data: str,
    gas_estimation: GasEstimation,
    chain_id: int,
    nonce: Optional[int] = None
) -> DeploymentTransaction:
    return DeploymentTransaction(
        to=factory_address,
        data=data,
        gas_limit=gas_estimation.gas_limit,
        max_fee_per_gas=gas_estimation.max_fee_per_gas,
        max_priority_fee_per_gas=gas_estimation.max_priority_fee_per_gas,
        chain_id=chain_id,
        nonce=nonce,
    )


def to_tx_params(transaction: DeploymentTransaction, from_address: Optional[str] = None) -> Dict[str, Any]:
    """
    Render a DeploymentTransaction as web3/eth-account transaction params.

    The factory address is converted to its 0x form since signers only
    understand hex addresses.
    """
    params: Dict[str, Any] = {
        "type": EIP1559_TX_TYPE,
        "to": to_hex_address(transaction.to),
        "data": transaction.data,
        "value": 0,
        "gas": transaction.gas_limit,
        "maxFeePerGas": transaction.max_fee_per_gas,
        "maxPriorityFeePerGas": transaction.max_priority_fee_per_gas,
        "chainId": transaction.chain_id,
    }
    if transaction.nonce is not None:
        params["nonce"] = transaction.nonce
    if from_address:
        params["from"] = to_hex_address(from_address)
    return params
