"""Call data builders for the three CCTP transactions."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Union

from web3 import Web3
from web3.contract import Contract

from cctp_bridger.contracts import erc20_abi, message_transmitter_abi, token_messenger_abi
from cctp_bridger.core.registry import ChainDescriptor
from cctp_bridger.core.utils import address_to_bytes32, hex_to_bytes


@dataclass(frozen=True)
class PreparedCall:
    """An unsigned contract call: target address and ``0x`` call data."""

    to: str
    data: str


@functools.lru_cache(maxsize=1)
def _encoder() -> Web3:
    return Web3()


def _contract(abi) -> Contract:
    return _encoder().eth.contract(abi=abi)


def encode_approve(chain: ChainDescriptor, amount: int) -> PreparedCall:
    """``USDC.approve(tokenMessenger, amount)`` on ``chain``."""
    data = _contract(erc20_abi()).encode_abi("approve", args=[chain.token_messenger, int(amount)])
    return PreparedCall(to=chain.usdc, data=data)


def encode_deposit_for_burn(
    source: ChainDescriptor,
    dest: ChainDescriptor,
    amount: int,
    recipient: str,
) -> PreparedCall:
    """``TokenMessenger.depositForBurn`` burning ``amount`` on ``source`` for ``recipient`` on ``dest``."""
    mint_recipient = address_to_bytes32(recipient)
    data = _contract(token_messenger_abi()).encode_abi(
        "depositForBurn",
        args=[int(amount), dest.domain, mint_recipient, source.usdc],
    )
    return PreparedCall(to=source.token_messenger, data=data)


def encode_receive_message(
    dest: ChainDescriptor,
    message: Union[bytes, str],
    attestation: Union[bytes, str],
) -> PreparedCall:
    """``MessageTransmitter.receiveMessage(message, attestation)`` on ``dest``."""
    data = _contract(message_transmitter_abi()).encode_abi(
        "receiveMessage",
        args=[hex_to_bytes(message), hex_to_bytes(attestation)],
    )
    return PreparedCall(to=dest.message_transmitter, data=data)


__all__ = ["PreparedCall", "encode_approve", "encode_deposit_for_burn", "encode_receive_message"]
