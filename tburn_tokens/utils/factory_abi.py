"""
Factory contract ABIs

One factory per token standard. Each exposes a `create*` function and emits a
`*Created` event whose first indexed argument is the new token contract.
Selectors and topics are derived from these entries, so the entries must match
the deployed factory contracts exactly.
"""

from typing import Dict, List

from web3 import Web3


def _inputs(*params) -> List[Dict]:
    return [{"name": name, "type": typ} for name, typ in params]


def _event_inputs(*params) -> List[Dict]:
    return [{"indexed": indexed, "name": name, "type": typ} for name, typ, indexed in params]


TBC20_FACTORY_ABI: List[Dict] = [
    {
        "type": "function",
        "name": "createToken",
        "stateMutability": "nonpayable",
        "inputs": _inputs(
            ("name", "string"),
            ("symbol", "string"),
            ("initialSupply", "uint256"),
            ("decimals", "uint8"),
            ("mintable", "bool"),
            ("burnable", "bool"),
            ("pausable", "bool"),
            ("maxSupply", "uint256"),
            ("aiOptimized", "bool"),
            ("quantumResistant", "bool"),
        ),
        "outputs": _inputs(("", "address")),
    },
    {
        "type": "function",
        "name": "getDeployedTokens",
        "stateMutability": "view",
        "inputs": _inputs(("deployer", "address")),
        "outputs": _inputs(("", "address[]")),
    },
    {
        "type": "event",
        "name": "TokenCreated",
        "anonymous": False,
        "inputs": _event_inputs(
            ("token", "address", True),
            ("owner", "address", True),
            ("name", "string", False),
            ("symbol", "string", False),
            ("initialSupply", "uint256", False),
        ),
    },
]

TBC721_FACTORY_ABI: List[Dict] = [
    {
        "type": "function",
        "name": "createNFT",
        "stateMutability": "nonpayable",
        "inputs": _inputs(
            ("name", "string"),
            ("symbol", "string"),
            ("baseUri", "string"),
            ("maxSupply", "uint256"),
            ("royaltyPercentage", "uint96"),
            ("royaltyRecipient", "address"),
            ("aiOptimized", "bool"),
            ("quantumResistant", "bool"),
        ),
        "outputs": _inputs(("", "address")),
    },
    {
        "type": "event",
        "name": "NFTCreated",
        "anonymous": False,
        "inputs": _event_inputs(
            ("nft", "address", True),
            ("owner", "address", True),
            ("name", "string", False),
            ("symbol", "string", False),
            ("maxSupply", "uint256", False),
        ),
    },
]

TBC1155_FACTORY_ABI: List[Dict] = [
    {
        "type": "function",
        "name": "createMultiToken",
        "stateMutability": "nonpayable",
        "inputs": _inputs(
            ("name", "string"),
            ("uri", "string"),
            ("mintable", "bool"),
            ("burnable", "bool"),
            ("aiOptimized", "bool"),
            ("quantumResistant", "bool"),
        ),
        "outputs": _inputs(("", "address")),
    },
    {
        "type": "event",
        "name": "MultiTokenCreated",
        "anonymous": False,
        "inputs": _event_inputs(
            ("token", "address", True),
            ("owner", "address", True),
            ("name", "string", False),
        ),
    },
]

# Read-only surface used to validate a deployed token contract
TOKEN_READ_ABI: List[Dict] = [
    {"type": "function", "name": "name", "stateMutability": "view",
     "inputs": [], "outputs": _inputs(("", "string"))},
    {"type": "function", "name": "symbol", "stateMutability": "view",
     "inputs": [], "outputs": _inputs(("", "string"))},
    {"type": "function", "name": "totalSupply", "stateMutability": "view",
     "inputs": [], "outputs": _inputs(("", "uint256"))},
    {"type": "function", "name": "owner", "stateMutability": "view",
     "inputs": [], "outputs": _inputs(("", "address"))},
]


def get_abi_entry(abi: List[Dict], name: str, entry_type: str) -> Dict:
    for entry in abi:
        if entry.get("type") == entry_type and entry.get("name") == name:
            return entry
    raise KeyError(f"No {entry_type} named {name} in ABI")


def input_types(entry: Dict) -> List[str]:
    return [param["type"] for param in entry["inputs"]]


def output_types(entry: Dict) -> List[str]:
    return [param["type"] for param in entry.get("outputs", [])]


def abi_signature(entry: Dict) -> str:
    """Canonical signature, e.g. `TokenCreated(address,address,string,string,uint256)`"""
    return f"{entry['name']}({','.join(input_types(entry))})"


def function_selector(entry: Dict) -> bytes:
    return bytes(Web3.keccak(text=abi_signature(entry))[:4])


def event_topic(entry: Dict) -> str:
    return "0x" + bytes(Web3.keccak(text=abi_signature(entry))).hex()
