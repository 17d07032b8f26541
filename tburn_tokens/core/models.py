"""
Data model for token deployment and registry tracking

Design Notes:
- Large numeric values (supplies, gas, fees) are Python ints internally and
  decimal strings on the wire (`to_dict`)
- Wire dictionaries use camelCase keys; dataclass fields use snake_case
- The capability-flag default policy lives in one place
  (`resolve_capability_flags`) and every creation path goes through it
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional

from ..utils.common import format_ether
from ..utils.exceptions import UnsupportedStandardError


class TokenStandard(str, Enum):
    TBC20 = "TBC-20"
    TBC721 = "TBC-721"
    TBC1155 = "TBC-1155"

    @classmethod
    def parse(cls, value: Any) -> "TokenStandard":
        """Resolve a standard name; anything outside the closed set is fatal"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedStandardError(value)


class TokenStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    PAUSED = "paused"
    VERIFIED = "verified"
    FAILED = "failed"


class DeploymentSource(str, Enum):
    TOKEN_FACTORY = "token-factory"
    TOKEN_GENERATOR = "token-generator"
    TOKEN_SYSTEM = "token-system"
    ADMIN = "admin"


class DeploymentMode(str, Enum):
    WALLET = "wallet"
    SIMULATION = "simulation"
    ADMIN = "admin"


DEFAULT_DECIMALS = 18
DEFAULT_FUNGIBLE_SUPPLY = "1000000"
DEFAULT_NFT_MAX_SUPPLY = "10000"


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


@dataclass
class TokenDeploymentRequest:
    """Caller-supplied description of a single deployment attempt"""
    standard: str
    name: str
    symbol: str
    deployer_address: str
    total_supply: Optional[str] = None
    decimals: Optional[int] = None
    mintable: Optional[bool] = None
    burnable: Optional[bool] = None
    pausable: Optional[bool] = None
    max_supply: Optional[str] = None
    base_uri: Optional[str] = None
    royalty_percentage: Optional[float] = None
    royalty_recipient: Optional[str] = None
    ai_optimization_enabled: Optional[bool] = None
    quantum_resistant: Optional[bool] = None
    mev_protection: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenDeploymentRequest":
        """Build a request from a camelCase (wire) or snake_case dictionary"""
        kwargs = {}
        for f in fields(cls):
            camel = _to_camel(f.name)
            if camel in data:
                kwargs[f.name] = data[camel]
            elif f.name in data:
                kwargs[f.name] = data[f.name]
        if "total_supply" in kwargs and kwargs["total_supply"] is not None:
            kwargs["total_supply"] = str(kwargs["total_supply"])
        if "max_supply" in kwargs and kwargs["max_supply"] is not None:
            kwargs["max_supply"] = str(kwargs["max_supply"])
        return cls(**kwargs)


@dataclass(frozen=True)
class CapabilityFlags:
    mintable: bool
    burnable: bool
    pausable: bool
    ai_optimization_enabled: bool
    quantum_resistant: bool
    mev_protection: bool


def _default(value: Optional[bool], fallback: bool) -> bool:
    return fallback if value is None else bool(value)


def resolve_capability_flags(request: TokenDeploymentRequest) -> CapabilityFlags:
    """Apply the canonical default policy: burnable/AI/quantum/MEV on, mintable/pausable off"""
    return CapabilityFlags(
        mintable=_default(request.mintable, False),
        burnable=_default(request.burnable, True),
        pausable=_default(request.pausable, False),
        ai_optimization_enabled=_default(request.ai_optimization_enabled, True),
        quantum_resistant=_default(request.quantum_resistant, True),
        mev_protection=_default(request.mev_protection, True),
    )


@dataclass(frozen=True)
class GasEstimation:
    gas_limit: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int

    @property
    def estimated_cost_wei(self) -> int:
        return self.gas_limit * self.max_fee_per_gas

    @property
    def estimated_cost_tb(self) -> str:
        return format_ether(self.estimated_cost_wei)

    def to_dict(self) -> Dict[str, str]:
        return {
            "gasLimit": str(self.gas_limit),
            "maxFeePerGas": str(self.max_fee_per_gas),
            "maxPriorityFeePerGas": str(self.max_priority_fee_per_gas),
            "estimatedCostWei": str(self.estimated_cost_wei),
            "estimatedCostTB": self.estimated_cost_tb,
        }


@dataclass(frozen=True)
class DeploymentTransaction:
    """Unsigned deployment transaction; the caller signs and submits it"""
    to: str
    data: str
    gas_limit: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    chain_id: int
    nonce: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "to": self.to,
            "data": self.data,
            "gasLimit": str(self.gas_limit),
            "maxFeePerGas": str(self.max_fee_per_gas),
            "maxPriorityFeePerGas": str(self.max_priority_fee_per_gas),
            "chainId": self.chain_id,
        }
        if self.nonce is not None:
            result["nonce"] = self.nonce
        return result


@dataclass
class DeploymentResult:
    success: bool
    contract_address: Optional[str] = None
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            _to_camel(f.name): getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class ReceiptWaitResult:
    status: str  # success, failed, timeout
    receipt: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"status": self.status, "receipt": self.receipt}
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class RegisteredToken:
    """
    Durable registry record of a deployed token.

    `contract_address` is the natural key; the registry compares it
    case-insensitively. `total_supply` is in whole tokens as supplied by the
    deployer, not scaled by `decimals`.
    """
    id: str
    name: str
    symbol: str
    contract_address: str
    standard: str
    total_supply: str
    decimals: int
    deployer_address: str
    deployment_tx_hash: str
    deployed_at: str
    block_number: int
    mintable: bool = False
    burnable: bool = True
    pausable: bool = False
    ai_optimization_enabled: bool = True
    quantum_resistant: bool = True
    mev_protection: bool = True
    max_supply: Optional[str] = None
    base_uri: Optional[str] = None
    royalty_percentage: Optional[float] = None
    royalty_recipient: Optional[str] = None
    holders: int = 1
    transaction_count: int = 1
    volume_24h: str = "0"
    status: str = TokenStatus.PENDING.value
    verified: bool = False
    security_score: Optional[int] = None
    deployment_source: str = DeploymentSource.TOKEN_FACTORY.value
    deployment_mode: str = DeploymentMode.WALLET.value

    def to_dict(self) -> Dict[str, Any]:
        return {_to_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegisteredToken":
        kwargs = {}
        for f in fields(cls):
            camel = _to_camel(f.name)
            if camel in data:
                kwargs[f.name] = data[camel]
            elif f.name in data:
                kwargs[f.name] = data[f.name]
        return cls(**kwargs)


@dataclass
class SimulatedDeployment:
    token: RegisteredToken
    transaction: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"token": self.token.to_dict(), "transaction": self.transaction}


def token_field_names() -> List[str]:
    return [f.name for f in fields(RegisteredToken)]


@dataclass
class ConnectionStatus:
    connected: bool
    block_number: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"connected": self.connected}
        if self.block_number is not None:
            result["blockNumber"] = self.block_number
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class ContractValidation:
    valid: bool
    name: Optional[str] = None
    symbol: Optional[str] = None
    total_supply: Optional[str] = None
    owner: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            _to_camel(f.name): getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }
