"""Utility helpers shared across bridger core modules."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Optional, Union

from hexbytes import HexBytes
from web3 import Web3

USDC_DECIMALS = 6
USDC_SYMBOL = "USDC"


def get_logger(name: str = "cctp_bridger") -> logging.Logger:
    """Return a configured logger that prints to stdout."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def ensure_web3_connected(web3: Web3, *, expected_chain_id: Optional[int] = None) -> None:
    """Validate that ``web3`` is connected and optionally matches the expected chain id."""
    if not web3.is_connected():
        raise ConnectionError("Failed to connect to the configured RPC endpoint")
    if expected_chain_id is not None and web3.eth.chain_id != expected_chain_id:
        raise ValueError(f"RPC chain ID mismatch: expected {expected_chain_id}, got {web3.eth.chain_id}")


def hex_to_bytes(data: Union[str, bytes]) -> bytes:
    """Convert a hex string (with or without ``0x``) to bytes."""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    data = data[2:] if data.startswith("0x") else data
    return bytes.fromhex(data)


def to_hex(data: Union[str, bytes]) -> str:
    """Return ``data`` as a ``0x``-prefixed lowercase hex string."""
    return HexBytes(data).to_0x_hex()


def address_to_bytes32(address: str) -> bytes:
    """Left-pad an EVM address to the 32-byte ``mintRecipient`` form."""
    checksum_address = Web3.to_checksum_address(address)
    return bytes(12) + hex_to_bytes(checksum_address)


def format_usdc(amount: int) -> str:
    """Render a raw 6-decimal USDC amount with two (truncated) fraction digits."""
    divisor = 10**USDC_DECIMALS
    integer_part, fractional_part = divmod(int(amount), divisor)
    fraction = str(fractional_part).rjust(USDC_DECIMALS, "0")[:2]
    return f"{integer_part}.{fraction} {USDC_SYMBOL}"


def parse_usdc(value: Union[str, int, Decimal]) -> int:
    """Convert a human USDC amount into raw units, rounding down past 6 decimals."""
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid USDC amount: {value}") from exc
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Invalid USDC amount: {value}")
    scaled = amount * (Decimal(10) ** USDC_DECIMALS)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_DOWN))


__all__ = [
    "USDC_DECIMALS",
    "USDC_SYMBOL",
    "address_to_bytes32",
    "ensure_web3_connected",
    "format_usdc",
    "get_logger",
    "hex_to_bytes",
    "parse_usdc",
    "to_hex",
]
