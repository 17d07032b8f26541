"""
Unit tests for factory calldata encoding and transaction assembly
"""

import pytest
from eth_abi import decode
from eth_account import Account

from tburn_tokens.core.models import (
    DeploymentTransaction,
    GasEstimation,
    TokenDeploymentRequest,
    TokenStandard,
)
from tburn_tokens.utils.config_manager import Settings
from tburn_tokens.utils.exceptions import UnsupportedStandardError
from tburn_tokens.utils.factory_abi import function_selector, get_abi_entry, input_types
from tburn_tokens.utils.factory_encoder import (
    CREATE_FUNCTIONS,
    FactoryEncoder,
    royalty_basis_points,
)
from tburn_tokens.utils.tburn_address import format_tburn_address, to_hex_address
from tburn_tokens.utils.transaction_builder import build_deployment_transaction, to_tx_params


def decode_calldata(encoder: FactoryEncoder, standard: str, calldata: str) -> tuple:
    """Check the selector and return the decoded `create*` arguments"""
    entry = get_abi_entry(encoder.get_factory_abi(standard), CREATE_FUNCTIONS[TokenStandard(standard)], "function")
    raw = bytes.fromhex(calldata[2:])
    assert raw[:4] == function_selector(entry)
    return decode(input_types(entry), raw[4:])


@pytest.fixture
def encoder() -> FactoryEncoder:
    return FactoryEncoder(Settings().factory_addresses)


class TestFactoryAddress:
    """Test factory lookup"""

    def test_lookup_per_standard(self):
        """Test factory address per standard"""
        settings = Settings(tbc721_factory_address=Account.create().address)
        encoder = FactoryEncoder(settings.factory_addresses)

        assert encoder.get_factory_address("TBC-721") == settings.tbc721_factory_address
        assert encoder.get_factory_address(TokenStandard.TBC20) == settings.tbc20_factory_address
        assert encoder.get_factory_address("TBC-1155") == settings.tbc1155_factory_address

    @pytest.mark.parametrize("standard", ["ERC-20", "tbc-20", "", None])
    def test_unsupported_standard_is_fatal(self, encoder, standard):
        """Test unknown standards raise"""
        with pytest.raises(UnsupportedStandardError):
            encoder.get_factory_address(standard)

    def test_encode_unsupported_standard_is_fatal(self, encoder, deployer_address):
        """Test encoding an unknown standard raises"""
        request = TokenDeploymentRequest(standard="BEP-20", name="X", symbol="X", deployer_address=deployer_address)
        with pytest.raises(UnsupportedStandardError):
            encoder.encode_deployment_data(request)


class TestFungibleEncoding:
    """Test TBC-20 createToken calldata"""

    def test_supply_scaled_by_decimals(self, encoder, fungible_request):
        """Test initial supply is scaled by decimals"""
        args = decode_calldata(encoder, "TBC-20", encoder.encode_deployment_data(fungible_request))

        name, symbol, initial_supply, decimals, mintable, burnable, pausable, max_supply, ai, quantum = args
        assert (name, symbol) == ("Test", "TST")
        assert initial_supply == 500 * 10 ** 6
        assert decimals == 6
        assert max_supply == 0

    def test_defaults(self, encoder, deployer_address):
        """Test defaults for an empty TBC-20 request"""
        request = TokenDeploymentRequest(standard="TBC-20", name="Burn", symbol="BRN", deployer_address=deployer_address)
        args = decode_calldata(encoder, "TBC-20", encoder.encode_deployment_data(request))

        assert args[2] == 1_000_000 * 10 ** 18
        assert args[3] == 18
        # mintable, burnable, pausable, maxSupply, ai, quantum
        assert list(args[4:]) == [False, True, False, 0, True, True]

    def test_max_supply_and_overrides(self, encoder, deployer_address):
        """Test max supply and explicit capability flags"""
        request = TokenDeploymentRequest(
            standard="TBC-20", name="Capped", symbol="CAP", deployer_address=deployer_address,
            total_supply="1000", max_supply="5000", decimals=2,
            mintable=True, burnable=False, pausable=True, quantum_resistant=False,
        )
        args = decode_calldata(encoder, "TBC-20", encoder.encode_deployment_data(request))

        assert args[2] == 100_000
        assert args[7] == 500_000
        assert list(args[4:7]) == [True, False, True]
        assert args[8] is True
        assert args[9] is False

    def test_zero_decimals_is_honored(self, encoder, deployer_address):
        """Test an explicit 0 decimals is not replaced by the default"""
        request = TokenDeploymentRequest(
            standard="TBC-20", name="Whole", symbol="WHL", deployer_address=deployer_address,
            total_supply="1000", decimals=0,
        )
        args = decode_calldata(encoder, "TBC-20", encoder.encode_deployment_data(request))

        assert args[2] == 1000
        assert args[3] == 0

    def test_supply_beyond_float_precision(self, encoder, deployer_address):
        """Test supply above 2**53 is encoded exactly"""
        request = TokenDeploymentRequest(
            standard="TBC-20", name="Huge", symbol="HUGE", deployer_address=deployer_address,
            total_supply="9007199254740993",
        )
        args = decode_calldata(encoder, "TBC-20", encoder.encode_deployment_data(request))

        assert args[2] == 9007199254740993 * 10 ** 18


class TestNonFungibleEncoding:
    """Test TBC-721 createNFT calldata"""

    def test_royalty_conversion(self):
        """Test royalty percentage to basis points"""
        assert royalty_basis_points(2.5) == 250
        assert royalty_basis_points(0.015) == 1
        assert royalty_basis_points(None) == 0

    def test_encodes_royalty_and_recipient_default(self, encoder, nft_request, deployer_address):
        """Test royalty recipient defaults to the deployer"""
        args = decode_calldata(encoder, "TBC-721", encoder.encode_deployment_data(nft_request))

        name, symbol, base_uri, max_supply, royalty_bps, recipient, ai, quantum = args
        assert (name, symbol, base_uri) == ("Burn Apes", "BAPE", "ipfs://apes/")
        assert max_supply == 10000
        assert royalty_bps == 250
        assert recipient.lower() == deployer_address.lower()
        assert ai is True and quantum is True

    def test_tb1_recipient_is_converted(self, encoder, nft_request):
        """Test a tb1 royalty recipient is encoded as hex"""
        recipient = Account.create().address
        nft_request.royalty_recipient = format_tburn_address(recipient)

        args = decode_calldata(encoder, "TBC-721", encoder.encode_deployment_data(nft_request))

        assert args[5].lower() == recipient.lower()


class TestMultiTokenEncoding:
    """Test TBC-1155 createMultiToken calldata"""

    def test_flags_and_uri(self, encoder, multi_token_request):
        """Test TBC-1155 URI and capability flags"""
        args = decode_calldata(encoder, "TBC-1155", encoder.encode_deployment_data(multi_token_request))

        assert args[0] == "Game Items"
        assert args[1] == "https://items.example/{id}.json"
        # mintable, burnable, ai, quantum
        assert list(args[2:]) == [False, True, True, True]


class TestTransactionBuilder:
    """Test unsigned transaction assembly"""

    def test_build_and_render(self, encoder, fungible_request):
        """Test building and rendering a deployment transaction"""
        estimation = GasEstimation(gas_limit=120_000, max_fee_per_gas=3, max_priority_fee_per_gas=1)
        factory = encoder.get_factory_address("TBC-20")
        data = encoder.encode_deployment_data(fungible_request)

        tx = build_deployment_transaction(factory, data, estimation, chain_id=5800, nonce=7)

        assert isinstance(tx, DeploymentTransaction)
        assert tx.to_dict() == {
            "to": factory,
            "data": data,
            "gasLimit": "120000",
            "maxFeePerGas": "3",
            "maxPriorityFeePerGas": "1",
            "chainId": 5800,
            "nonce": 7,
        }

        params = to_tx_params(tx, from_address=fungible_request.deployer_address)
        assert params["type"] == 2
        assert params["to"] == to_hex_address(factory)
        assert params["gas"] == 120_000
        assert params["from"] == fungible_request.deployer_address

    def test_nonce_is_optional(self, encoder, fungible_request):
        """Test the nonce is omitted when not given"""
        estimation = GasEstimation(gas_limit=1, max_fee_per_gas=1, max_priority_fee_per_gas=1)
        tx = build_deployment_transaction("0x" + "ab" * 20, "0x", estimation, chain_id=5800)

        assert "nonce" not in tx.to_dict()
        assert "nonce" not in to_tx_params(tx)
