"""Static CCTP deployment table keyed by EVM chain id."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from web3 import Web3

from cctp_bridger.core.errors import UnsupportedChain


@dataclass(frozen=True)
class ChainDescriptor:
    """CCTP contracts and domain for one chain."""

    chain_id: int
    name: str
    domain: int
    usdc: str
    token_messenger: str
    message_transmitter: str
    testnet: bool = False

    @property
    def key(self) -> str:
        """Lowercase, underscore separated name used on the command line."""
        return self.name.lower().replace(" ", "_")


def _chain(
    chain_id: int,
    name: str,
    domain: int,
    *,
    usdc: str,
    token_messenger: str,
    message_transmitter: str,
    testnet: bool = False,
) -> ChainDescriptor:
    return ChainDescriptor(
        chain_id=chain_id,
        name=name,
        domain=domain,
        usdc=Web3.to_checksum_address(usdc),
        token_messenger=Web3.to_checksum_address(token_messenger),
        message_transmitter=Web3.to_checksum_address(message_transmitter),
        testnet=testnet,
    )


# Circle CCTP v1 deployments.
_CHAINS: Dict[int, ChainDescriptor] = {
    chain.chain_id: chain
    for chain in (
        _chain(
            1,
            "Ethereum",
            0,
            usdc="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
            token_messenger="0xBd3fa81B58Ba92a82136038B25aDec7066af3155",
            message_transmitter="0x0a992d191DEeC32aFe36203Ad87D7d289a738F81",
        ),
        _chain(
            10,
            "Optimism",
            2,
            usdc="0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",
            token_messenger="0x2B4069517957735bE00ceE0fadAE88a26365528f",
            message_transmitter="0x4D41f22c5a0e5c74090899E5a8Fb597a8842b3e8",
        ),
        _chain(
            42161,
            "Arbitrum",
            3,
            usdc="0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
            token_messenger="0x19330d10D9Cc8751218eaf51E8885D058642E08A",
            message_transmitter="0xC30362313FBBA5cf9163F0bb16a0e01f01A896ca",
        ),
        _chain(
            8453,
            "Base",
            6,
            usdc="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
            token_messenger="0x1682Ae6375C4E4A97e4B583BC394c861A46D8962",
            message_transmitter="0xAD09780d193884d503182aD4588450C416D6F9D4",
        ),
        _chain(
            137,
            "Polygon",
            7,
            usdc="0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",
            token_messenger="0x9daF8c91AEFAE50b9c0E69629D3F6Ca40cA3B3FE",
            message_transmitter="0xF3be9355363857F3e001be68856A2f96b4C39Ba9",
        ),
        _chain(
            11155111,
            "Sepolia",
            0,
            usdc="0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
            token_messenger="0x9f3B8679c73C2Fef8b59B4f3444d4e156fb70AA5",
            message_transmitter="0x7865fAfC2db2093669d92c0F33AeEF291086BEFD",
            testnet=True,
        ),
        _chain(
            84532,
            "Base Sepolia",
            6,
            usdc="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
            token_messenger="0x9f3B8679c73C2Fef8b59B4f3444d4e156fb70AA5",
            message_transmitter="0x7865fAfC2db2093669d92c0F33AeEF291086BEFD",
            testnet=True,
        ),
        _chain(
            421614,
            "Arbitrum Sepolia",
            3,
            usdc="0x75faf114eafb1BDbe2F0316DF893fd58CE46AA4d",
            token_messenger="0x9f3B8679c73C2Fef8b59B4f3444d4e156fb70AA5",
            message_transmitter="0xaCF1ceeF35caAc005e15888dDb8A3515C41B4872",
            testnet=True,
        ),
    )
}


def descriptor(chain_id: int) -> ChainDescriptor:
    """Return the CCTP descriptor for ``chain_id`` or raise :class:`UnsupportedChain`."""
    try:
        return _CHAINS[int(chain_id)]
    except (KeyError, TypeError, ValueError):
        raise UnsupportedChain(chain_id) from None


def descriptor_by_name(name: str) -> ChainDescriptor:
    """Look a chain up by its name, e.g. ``base``, ``BASE`` or ``base-sepolia``."""
    wanted = name.strip().lower().replace("-", "_").replace(" ", "_")
    for chain in _CHAINS.values():
        if chain.key == wanted:
            return chain
    raise UnsupportedChain(name)


def resolve_chain(value: str) -> ChainDescriptor:
    """Accept either a numeric chain id or a chain name."""
    value = value.strip()
    if value.isdigit():
        return descriptor(int(value))
    return descriptor_by_name(value)


def supported_chains(*, include_testnets: bool = True) -> List[ChainDescriptor]:
    """Return registered chains ordered by domain, mainnets first."""
    chains = [chain for chain in _CHAINS.values() if include_testnets or not chain.testnet]
    return sorted(chains, key=lambda chain: (chain.testnet, chain.domain, chain.chain_id))


def is_supported(chain_id: int) -> bool:
    return chain_id in _CHAINS


__all__ = [
    "ChainDescriptor",
    "descriptor",
    "descriptor_by_name",
    "is_supported",
    "resolve_chain",
    "supported_chains",
]
