"""Contract ABIs shipped with the bridger."""

from importlib import resources
from typing import Any, Dict, List
import functools
import json


def load_contract_abi(filename: str) -> List[Dict[str, Any]]:
    """Load an ABI JSON file from the contracts package."""
    with resources.files(__package__).joinpath(filename).open("r", encoding="utf-8") as fh:
        return json.load(fh)


@functools.lru_cache(maxsize=None)
def erc20_abi() -> List[Dict[str, Any]]:
    return load_contract_abi("erc20.json")


@functools.lru_cache(maxsize=None)
def token_messenger_abi() -> List[Dict[str, Any]]:
    return load_contract_abi("token_messenger.json")


@functools.lru_cache(maxsize=None)
def message_transmitter_abi() -> List[Dict[str, Any]]:
    return load_contract_abi("message_transmitter.json")


__all__ = ["erc20_abi", "load_contract_abi", "message_transmitter_abi", "token_messenger_abi"]
