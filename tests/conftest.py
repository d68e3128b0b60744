"""Shared fakes for the bridger test suite."""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from cctp_bridger.core import executor as executor_module
from cctp_bridger.core.calldata import PreparedCall
from cctp_bridger.core.codec import MESSAGE_SENT_TOPIC
from cctp_bridger.core.errors import AttestationError, ChainSwitchFailed
from cctp_bridger.core.models import PENDING, Attestation, BridgeRequest
from cctp_bridger.core.signer import SigningContext

ARBITRUM = 42161
BASE = 8453
RECIPIENT = "0x564323aE0D8473103F3763814c5121Ca9e48004B"
SIGNER_ADDRESS = "0x1111111111111111111111111111111111111111"


def encode_message_sent_data(message: bytes) -> bytes:
    """ABI-encode ``message`` the way ``MessageSent(bytes)`` log data is laid out."""
    padding = (-len(message)) % 32
    return (32).to_bytes(32, "big") + len(message).to_bytes(32, "big") + message + bytes(padding)


def message_sent_log(message: bytes) -> Dict[str, Any]:
    return {"topics": [MESSAGE_SENT_TOPIC], "data": encode_message_sent_data(message)}


class FakeSigner(SigningContext):
    """In-memory signing context recording every switch and submission."""

    def __init__(self, *, active_chain_id: Optional[int] = None) -> None:
        super().__init__()
        self._active_chain_id = active_chain_id
        self.switches: List[int] = []
        self.sent: List[Tuple[int, PreparedCall]] = []
        self.switch_errors: Dict[int, Exception] = {}
        self.send_errors: Dict[str, Exception] = {}
        self.receipt_status: Dict[str, int] = {}
        self.receipt_logs: Dict[str, List[Dict[str, Any]]] = {}
        self.on_send: Optional[Callable[[PreparedCall], None]] = None
        self._targets: Dict[str, str] = {}

    @property
    def address(self) -> str:
        return SIGNER_ADDRESS

    @property
    def active_chain_id(self) -> Optional[int]:
        return self._active_chain_id

    def switch_chain(self, chain_id: int) -> None:
        if chain_id in self.switch_errors:
            raise ChainSwitchFailed(chain_id, str(self.switch_errors[chain_id]))
        self.switches.append(chain_id)
        self._active_chain_id = chain_id

    def web3(self, chain_id: int) -> Any:
        return ("web3", chain_id)

    def send_transaction(self, call: PreparedCall) -> str:
        if call.to in self.send_errors:
            raise self.send_errors[call.to]
        self.sent.append((self._active_chain_id, call))
        tx_hash = f"0x{len(self.sent):064x}"
        self._targets[tx_hash] = call.to
        if self.on_send is not None:
            self.on_send(call)
        return tx_hash

    def wait_for_receipt(self, chain_id: int, tx_hash: str, *, timeout: float = 300) -> Dict[str, Any]:
        target = self._targets[tx_hash]
        return {
            "status": self.receipt_status.get(target, 1),
            "logs": self.receipt_logs.get(target, []),
            "transactionHash": tx_hash,
            "blockNumber": 1,
        }

    def targets(self) -> List[str]:
        return [call.to for _, call in self.sent]


class FakeAttestationClient:
    """Replays a scripted list of results, then keeps answering the last one."""

    def __init__(self, script: Optional[List[Any]] = None, *, signature: bytes = b"\xaa" * 65) -> None:
        self.script = list(script or ["complete"])
        self.signature = signature
        self.calls: List[str] = []
        self.gate: Optional[threading.Event] = None

    def fetch(self, message_hash: str):
        if self.gate is not None:
            self.gate.wait(5)
        self.calls.append(message_hash)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        if item == "complete":
            return Attestation(message_hash=message_hash, signature=self.signature)
        return PENDING


@pytest.fixture
def request_arb_to_base() -> BridgeRequest:
    return BridgeRequest(
        source_chain_id=ARBITRUM,
        dest_chain_id=BASE,
        amount=500_000_000,
        recipient=RECIPIENT,
    )


@pytest.fixture
def allowance(monkeypatch):
    """Mutable allowance seen by the executor instead of an on-chain read."""
    state = {"value": 0}
    monkeypatch.setattr(executor_module, "allowance_of", lambda web3, token, owner, spender: state["value"])
    return state


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner(active_chain_id=BASE)


__all__ = [
    "ARBITRUM",
    "BASE",
    "RECIPIENT",
    "AttestationError",
    "FakeAttestationClient",
    "FakeSigner",
    "encode_message_sent_data",
    "message_sent_log",
]
