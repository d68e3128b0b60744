"""Value objects exchanged between the registry, codec, executor and planner."""

from __future__ import annotations

from dataclasses import dataclass

from web3 import Web3

from cctp_bridger.core import registry
from cctp_bridger.core.errors import InvalidRequest
from cctp_bridger.core.utils import format_usdc, to_hex


@dataclass(frozen=True)
class BridgeRequest:
    """One USDC transfer from ``source_chain_id`` to ``dest_chain_id``."""

    source_chain_id: int
    dest_chain_id: int
    amount: int
    recipient: str

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int) or self.amount <= 0:
            raise InvalidRequest(f"amount must be a positive integer, got {self.amount!r}")
        if self.source_chain_id == self.dest_chain_id:
            raise InvalidRequest("source and destination chains must differ")
        registry.descriptor(self.source_chain_id)
        registry.descriptor(self.dest_chain_id)
        try:
            recipient = Web3.to_checksum_address(self.recipient)
        except Exception as exc:  # web3 raises ValueError/TypeError for malformed inputs
            raise InvalidRequest(f"Invalid recipient address: {self.recipient}") from exc
        object.__setattr__(self, "recipient", recipient)

    @property
    def source(self) -> registry.ChainDescriptor:
        return registry.descriptor(self.source_chain_id)

    @property
    def dest(self) -> registry.ChainDescriptor:
        return registry.descriptor(self.dest_chain_id)

    @property
    def formatted_amount(self) -> str:
        return format_usdc(self.amount)


@dataclass(frozen=True)
class BurnMessage:
    """CCTP message bytes emitted by a confirmed burn."""

    message: bytes
    message_hash: bytes
    burn_tx_hash: str = ""

    @property
    def message_hash_hex(self) -> str:
        return to_hex(self.message_hash)


@dataclass(frozen=True)
class Attestation:
    """Circle's signature over a message hash."""

    message_hash: str
    signature: bytes


class _Pending:
    """Sentinel returned while the attestation service is still working."""

    _instance = None

    def __new__(cls) -> "_Pending":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "PENDING"

    def __bool__(self) -> bool:
        return False


PENDING = _Pending()


__all__ = ["Attestation", "BridgeRequest", "BurnMessage", "PENDING"]
