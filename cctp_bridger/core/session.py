"""Bridge session state and the transition table that governs it."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional

from cctp_bridger.core.errors import InvalidTransition
from cctp_bridger.core.models import Attestation, BridgeRequest, BurnMessage


class BridgeState(str, enum.Enum):
    IDLE = "idle"
    APPROVING = "approving"
    BURNING = "burning"
    ATTESTING = "attesting"
    MINTING = "minting"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in (BridgeState.COMPLETED, BridgeState.ERROR)


TRANSITIONS: Dict[BridgeState, FrozenSet[BridgeState]] = {
    BridgeState.IDLE: frozenset({BridgeState.APPROVING, BridgeState.BURNING}),
    BridgeState.APPROVING: frozenset({BridgeState.IDLE, BridgeState.ERROR}),
    BridgeState.BURNING: frozenset({BridgeState.ATTESTING, BridgeState.ERROR}),
    BridgeState.ATTESTING: frozenset({BridgeState.MINTING, BridgeState.ERROR}),
    BridgeState.MINTING: frozenset({BridgeState.COMPLETED, BridgeState.ERROR}),
    BridgeState.COMPLETED: frozenset(),
    BridgeState.ERROR: frozenset(),
}


def can_transition(current: BridgeState, target: BridgeState) -> bool:
    return target in TRANSITIONS[current]


@dataclass
class BridgeSession:
    """Mutable record of one bridge attempt. Owned by a single executor."""

    request: BridgeRequest
    state: BridgeState = BridgeState.IDLE
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    burn_message: Optional[BurnMessage] = None
    attestation: Optional[Attestation] = None
    approve_tx_hash: Optional[str] = None
    burn_tx_hash: Optional[str] = None
    mint_tx_hash: Optional[str] = None
    allowance: Optional[int] = None
    failed_step: Optional[str] = None
    error: Optional[str] = None

    def transition(self, target: BridgeState) -> None:
        if not can_transition(self.state, target):
            raise InvalidTransition(f"Cannot move bridge session from {self.state.value} to {target.value}")
        self.state = target

    def fail(self, step: str, message: str) -> None:
        """Move to ``error`` recording the step that failed."""
        self.transition(BridgeState.ERROR)
        self.failed_step = step
        self.error = f"{step} failed: {message}"

    @property
    def terminal(self) -> bool:
        return self.state.terminal

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "approve_tx_hash": self.approve_tx_hash,
            "burn_tx_hash": self.burn_tx_hash,
            "mint_tx_hash": self.mint_tx_hash,
            "message_hash": self.burn_message.message_hash_hex if self.burn_message else None,
            "allowance": str(self.allowance) if self.allowance is not None else None,
            "error": self.error,
        }


__all__ = ["TRANSITIONS", "BridgeSession", "BridgeState", "can_transition"]
