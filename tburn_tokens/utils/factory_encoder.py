"""
Factory calldata encoding

Maps a TokenDeploymentRequest to the factory contract for its standard and
the ABI-encoded `create*` call. Pure: no network access, no side effects.
"""

import logging
import math
from typing import Dict, List, Mapping, Tuple

from eth_abi import encode

from ..core.models import (
    DEFAULT_DECIMALS,
    DEFAULT_FUNGIBLE_SUPPLY,
    DEFAULT_NFT_MAX_SUPPLY,
    TokenDeploymentRequest,
    TokenStandard,
    resolve_capability_flags,
)
from .common import parse_units
from .factory_abi import (
    TBC20_FACTORY_ABI,
    TBC721_FACTORY_ABI,
    TBC1155_FACTORY_ABI,
    function_selector,
    get_abi_entry,
    input_types,
)
from .tburn_address import to_hex_address

LOG = logging.getLogger(__name__)

FACTORY_ABIS: Dict[TokenStandard, List[Dict]] = {
    TokenStandard.TBC20: TBC20_FACTORY_ABI,
    TokenStandard.TBC721: TBC721_FACTORY_ABI,
    TokenStandard.TBC1155: TBC1155_FACTORY_ABI,
}

CREATE_FUNCTIONS: Dict[TokenStandard, str] = {
    TokenStandard.TBC20: "createToken",
    TokenStandard.TBC721: "createNFT",
    TokenStandard.TBC1155: "createMultiToken",
}

CREATION_EVENTS: Dict[TokenStandard, str] = {
    TokenStandard.TBC20: "TokenCreated",
    TokenStandard.TBC721: "NFTCreated",
    TokenStandard.TBC1155: "MultiTokenCreated",
}


def royalty_basis_points(percentage) -> int:
    """2.5 (%) -> 250 bps, floored"""
    return math.floor((percentage or 0) * 100)


class FactoryEncoder:
    """
    Selects the factory for a request's standard and encodes its calldata.

    Only an unsupported `standard` raises (UnsupportedStandardError); it is a
    closed enum, so any other value is a programming error.
    """

    def __init__(self, factory_addresses: Mapping[TokenStandard, str]):
        self.factory_addresses = dict(factory_addresses)

    def get_factory_address(self, standard) -> str:
        return self.factory_addresses[TokenStandard.parse(standard)]

    @staticmethod
    def get_factory_abi(standard) -> List[Dict]:
        return FACTORY_ABIS[TokenStandard.parse(standard)]

    def encode_deployment_data(self, request: TokenDeploymentRequest) -> str:
        """
        Encode the factory `create*` call for a request.

        Args:
            request: Deployment request; unset optional fields take the
                canonical defaults

        Returns:
            0x-prefixed calldata hex string
        """
        standard = TokenStandard.parse(request.standard)
        function_name, args = self._build_arguments(standard, request)

        entry = get_abi_entry(FACTORY_ABIS[standard], function_name, "function")
        encoded = function_selector(entry) + encode(input_types(entry), args)

        LOG.debug(f"Encoded {function_name} for {standard.value} ({len(encoded)} bytes)")
        return "0x" + encoded.hex()

    def _build_arguments(self, standard: TokenStandard, request: TokenDeploymentRequest) -> Tuple[str, list]:
        flags = resolve_capability_flags(request)

        if standard is TokenStandard.TBC20:
            decimals = DEFAULT_DECIMALS if request.decimals is None else int(request.decimals)
            initial_supply = parse_units(request.total_supply or DEFAULT_FUNGIBLE_SUPPLY, decimals)
            # maxSupply of 0 is the unbounded sentinel
            max_supply = parse_units(request.max_supply, decimals) if request.max_supply else 0
            return CREATE_FUNCTIONS[standard], [
                request.name,
                request.symbol,
                initial_supply,
                decimals,
                flags.mintable,
                flags.burnable,
                flags.pausable,
                max_supply,
                flags.ai_optimization_enabled,
                flags.quantum_resistant,
            ]

        if standard is TokenStandard.TBC721:
            recipient = request.royalty_recipient or request.deployer_address
            return CREATE_FUNCTIONS[standard], [
                request.name,
                request.symbol,
                request.base_uri or "",
                int(request.max_supply or DEFAULT_NFT_MAX_SUPPLY),
                royalty_basis_points(request.royalty_percentage),
                to_hex_address(recipient),
                flags.ai_optimization_enabled,
                flags.quantum_resistant,
            ]

        return CREATE_FUNCTIONS[standard], [
            request.name,
            request.base_uri or "",
            flags.mintable,
            flags.burnable,
            flags.ai_optimization_enabled,
            flags.quantum_resistant,
        ]
