from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ChainSpec:
    """Chain specification used for gas pricing and display"""
    name: str
    chain_id: int
    display_name: str
    native_currency: str
    is_l2: bool
    rpc_urls: List[str] = field(default_factory=list)  # Multiple URLs for fallback
    explorer_url: Optional[str] = None
    is_testnet: bool = False
    aliases: List[str] = field(default_factory=list)  # Names used by data feeds


CHAIN_SPECS: Dict[str, ChainSpec] = {
    # Ethereum Mainnet
    "ethereum": ChainSpec(
        name="ethereum",
        chain_id=1,
        display_name="Ethereum",
        native_currency="ETH",
        is_l2=False,
        rpc_urls=[
            "${ETHEREUM_RPC_URL}",
            "https://mainnet.infura.io/v3/${INFURA_KEY}",
            "https://ethereum.publicnode.com",
        ],
        explorer_url="https://etherscan.io",
        aliases=["mainnet", "eth"],
    ),

    # Polygon
    "polygon": ChainSpec(
        name="polygon",
        chain_id=137,
        display_name="Polygon",
        native_currency="MATIC",
        is_l2=False,
        rpc_urls=[
            "${POLYGON_RPC_URL}",
            "https://polygon-rpc.com",
        ],
        explorer_url="https://polygonscan.com",
        aliases=["matic", "polygon pos"],
    ),

    # Arbitrum
    "arbitrum": ChainSpec(
        name="arbitrum",
        chain_id=42161,
        display_name="Arbitrum One",
        native_currency="ETH",
        is_l2=True,
        rpc_urls=[
            "${ARBITRUM_RPC_URL}",
            "https://arb1.arbitrum.io/rpc",
        ],
        explorer_url="https://arbiscan.io",
        aliases=["arbitrum"],
    ),

    # Optimism
    "optimism": ChainSpec(
        name="optimism",
        chain_id=10,
        display_name="Optimism",
        native_currency="ETH",
        is_l2=True,
        rpc_urls=[
            "${OPTIMISM_RPC_URL}",
            "https://mainnet.optimism.io",
        ],
        explorer_url="https://optimistic.etherscan.io",
        aliases=["op mainnet"],
    ),

    # Base
    "base": ChainSpec(
        name="base",
        chain_id=8453,
        display_name="Base",
        native_currency="ETH",
        is_l2=True,
        rpc_urls=[
            "${BASE_RPC_URL}",
            "https://mainnet.base.org",
        ],
        explorer_url="https://basescan.org",
    ),

    # Mantle
    "mantle": ChainSpec(
        name="mantle",
        chain_id=5000,
        display_name="Mantle Network",
        native_currency="MNT",
        is_l2=True,
        rpc_urls=[
            "${MANTLE_RPC_URL}",
            "https://rpc.mantle.xyz",
        ],
        explorer_url="https://explorer.mantle.xyz",
        aliases=["mantle"],
    ),

    "mantle-sepolia": ChainSpec(
        name="mantle-sepolia",
        chain_id=5003,
        display_name="Mantle Sepolia",
        native_currency="MNT",
        is_l2=True,
        rpc_urls=[
            "https://rpc.sepolia.mantle.xyz",
        ],
        explorer_url="https://explorer.sepolia.mantle.xyz",
        is_testnet=True,
    ),
}

_BY_ID: Dict[int, ChainSpec] = {spec.chain_id: spec for spec in CHAIN_SPECS.values()}


def get_chain_spec(chain_name: str) -> ChainSpec:
    """Get chain specification by name"""
    if chain_name not in CHAIN_SPECS:
        raise ValueError(f"Chain {chain_name} not supported")
    return CHAIN_SPECS[chain_name]


def get_chain_spec_by_id(chain_id: int) -> Optional[ChainSpec]:
    """Get chain specification by chain ID, None if unknown"""
    return _BY_ID.get(chain_id)


def find_chain_by_label(label: str) -> Optional[ChainSpec]:
    """Resolve a feed's chain label ("Ethereum", "Arbitrum", ...) to a spec"""
    key = label.strip().lower()
    for spec in CHAIN_SPECS.values():
        if key in (spec.name, spec.display_name.lower()) or key in spec.aliases:
            return spec
    return None


def native_symbol(chain_id: int) -> str:
    """Native currency symbol for a chain, ETH when unknown"""
    spec = _BY_ID.get(chain_id)
    return spec.native_currency if spec else "ETH"


def get_all_supported_chains(include_testnets: bool = True) -> List[ChainSpec]:
    """Get all supported chain specifications"""
    return [
        spec for spec in CHAIN_SPECS.values()
        if include_testnets or not spec.is_testnet
    ]
