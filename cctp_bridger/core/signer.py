"""Signing context: owns the key, the active chain and transaction submission."""

from __future__ import annotations

import abc
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError

from cctp_bridger.core.calldata import PreparedCall
from cctp_bridger.core.errors import ChainSwitchFailed
from cctp_bridger.core.utils import ensure_web3_connected, get_logger, to_hex

LOGGER = get_logger("cctp_bridger.signer")

DEFAULT_FALLBACK_GAS = 1_000_000


@dataclass(frozen=True)
class GasParameters:
    """EIP-1559 gas parameters."""

    gas: int
    max_priority_fee: int
    max_fee: int


class SigningContext(abc.ABC):
    """The one place transactions are signed and submitted.

    ``signing_lock`` serialises chain switches against submissions; callers
    hold it across "switch if needed, then submit".
    """

    def __init__(self) -> None:
        self.signing_lock = threading.RLock()

    @property
    @abc.abstractmethod
    def address(self) -> str: ...

    @property
    @abc.abstractmethod
    def active_chain_id(self) -> Optional[int]: ...

    @abc.abstractmethod
    def switch_chain(self, chain_id: int) -> None:
        """Make ``chain_id`` the active chain or raise :class:`ChainSwitchFailed`."""

    @abc.abstractmethod
    def web3(self, chain_id: int) -> Web3:
        """Return a read-capable client for ``chain_id``."""

    @abc.abstractmethod
    def send_transaction(self, call: PreparedCall) -> str:
        """Sign and broadcast ``call`` on the active chain; return the tx hash."""

    @abc.abstractmethod
    def wait_for_receipt(self, chain_id: int, tx_hash: str, *, timeout: float = 300) -> Mapping[str, Any]: ...

    def ensure_chain(self, chain_id: int) -> bool:
        """Switch to ``chain_id`` if it is not already active. Return whether a switch happened."""
        with self.signing_lock:
            if self.active_chain_id == chain_id:
                return False
            self.switch_chain(chain_id)
            return True


class Web3Signer(SigningContext):
    """Local private key signer backed by one HTTP provider per chain."""

    def __init__(
        self,
        *,
        private_key: str,
        rpc_urls: Mapping[int, str],
        initial_chain_id: Optional[int] = None,
        fallback_gas: int = DEFAULT_FALLBACK_GAS,
        web3_factory: Callable[[str], Web3] = lambda url: Web3(Web3.HTTPProvider(url)),
    ) -> None:
        super().__init__()
        self.account = Account.from_key(private_key)
        self._rpc_urls = dict(rpc_urls)
        self._web3_factory = web3_factory
        self._clients: Dict[int, Web3] = {}
        self._active_chain_id: Optional[int] = None
        self.fallback_gas = fallback_gas
        if initial_chain_id is not None:
            self.switch_chain(initial_chain_id)

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def active_chain_id(self) -> Optional[int]:
        return self._active_chain_id

    def web3(self, chain_id: int) -> Web3:
        client = self._clients.get(chain_id)
        if client is None:
            rpc_url = self._rpc_urls.get(chain_id)
            if not rpc_url:
                raise ConnectionError(f"No RPC URL configured for chain {chain_id}")
            client = self._web3_factory(rpc_url)
            self._clients[chain_id] = client
        return client

    def switch_chain(self, chain_id: int) -> None:
        with self.signing_lock:
            try:
                client = self.web3(chain_id)
                ensure_web3_connected(client, expected_chain_id=chain_id)
            except (ConnectionError, ValueError) as exc:
                raise ChainSwitchFailed(chain_id, str(exc)) from exc
            self._active_chain_id = chain_id
            LOGGER.info("Signing context switched to chain %s as %s", chain_id, self.address)

    def estimate_gas(self, client: Web3, tx: Dict[str, Any]) -> GasParameters:
        """Estimate gas; reverts propagate, other estimation failures fall back."""
        try:
            gas = client.eth.estimate_gas(tx)
        except ContractLogicError:
            raise
        except Exception as exc:
            LOGGER.warning("Gas estimation failed, using fallback %s: %s", self.fallback_gas, exc)
            gas = self.fallback_gas
        gas_price = client.eth.gas_price
        max_priority_fee = getattr(client.eth, "max_priority_fee", gas_price)
        return GasParameters(
            gas=int(gas * 1.1),  # add a 10% buffer
            max_priority_fee=max_priority_fee,
            max_fee=gas_price + max_priority_fee,
        )

    def send_transaction(self, call: PreparedCall) -> str:
        with self.signing_lock:
            chain_id = self._active_chain_id
            if chain_id is None:
                raise ChainSwitchFailed(-1, "no active chain selected")
            client = self.web3(chain_id)
            tx: Dict[str, Any] = {
                "from": self.address,
                "to": Web3.to_checksum_address(call.to),
                "data": call.data,
                "value": 0,
                "chainId": chain_id,
            }
            gas = self.estimate_gas(client, tx)
            tx.update(
                {
                    "gas": gas.gas,
                    "maxFeePerGas": gas.max_fee,
                    "maxPriorityFeePerGas": gas.max_priority_fee,
                    "nonce": client.eth.get_transaction_count(self.address, "pending"),
                }
            )
            tx.pop("from")
            signed = self.account.sign_transaction(tx)
            tx_hash = client.eth.send_raw_transaction(signed.raw_transaction)
        tx_hex = to_hex(tx_hash)
        LOGGER.info("Broadcast transaction %s on chain %s", tx_hex, chain_id)
        return tx_hex

    def wait_for_receipt(self, chain_id: int, tx_hash: str, *, timeout: float = 300) -> Mapping[str, Any]:
        receipt = self.web3(chain_id).eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        LOGGER.info(
            "Transaction %s mined on chain %s in block %s (status=%s)",
            tx_hash,
            chain_id,
            receipt["blockNumber"],
            receipt["status"],
        )
        return receipt


__all__ = ["DEFAULT_FALLBACK_GAS", "GasParameters", "SigningContext", "Web3Signer"]
