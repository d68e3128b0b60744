"""On-chain USDC reads used before approving and burning."""

from __future__ import annotations

import threading
from typing import Dict, Tuple

from web3 import Web3
from web3.contract import Contract

from cctp_bridger.contracts import erc20_abi
from cctp_bridger.core.utils import ensure_web3_connected

# Largest uint256, the conventional "unlimited" ERC20 approval.
MAX_UINT256 = 2**256 - 1

_usdc_contracts: Dict[Tuple[int, str], Contract] = {}
_usdc_contracts_lock = threading.Lock()


def usdc_contract(web3: Web3, usdc_address: str) -> Contract:
    """Bind the ERC20 ABI to ``usdc_address``, reusing one instance per client."""
    address = Web3.to_checksum_address(usdc_address)
    with _usdc_contracts_lock:
        contract = _usdc_contracts.get((id(web3), address))
        if contract is None:
            ensure_web3_connected(web3)
            contract = web3.eth.contract(address=address, abi=erc20_abi())
            _usdc_contracts[(id(web3), address)] = contract
    return contract


def balance_of(web3: Web3, usdc_address: str, owner: str) -> int:
    """Raw 6-decimal USDC balance of ``owner``."""
    account = Web3.to_checksum_address(owner)
    return int(usdc_contract(web3, usdc_address).functions.balanceOf(account).call())


def allowance_of(web3: Web3, usdc_address: str, owner: str, spender: str) -> int:
    """How much of ``owner``'s USDC ``spender`` may still move."""
    functions = usdc_contract(web3, usdc_address).functions
    return int(functions.allowance(Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)).call())


__all__ = ["MAX_UINT256", "allowance_of", "balance_of", "usdc_contract"]
