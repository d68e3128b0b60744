"""Exception hierarchy for the bridge orchestrator."""

from __future__ import annotations

from typing import Optional


class BridgeError(Exception):
    """Base class for all bridge failures."""


class UnsupportedChain(BridgeError, KeyError):
    """Raised when a chain id has no registry entry."""

    def __init__(self, chain_id: object) -> None:
        super().__init__(f"Unsupported chain: {chain_id}")
        self.chain_id = chain_id

    def __str__(self) -> str:
        return str(self.args[0])


class InvalidRequest(BridgeError, ValueError):
    """Raised when a bridge request fails validation."""


class InvalidTransition(BridgeError):
    """Raised when a session is asked to move along an edge the state machine forbids."""


class ChainSwitchFailed(BridgeError):
    """Raised when the signing context cannot move to the required chain."""

    def __init__(self, chain_id: int, reason: str) -> None:
        super().__init__(f"Could not switch to chain {chain_id}: {reason}")
        self.chain_id = chain_id
        self.reason = reason


class InsufficientAllowance(BridgeError):
    """Raised when the burn contract allowance is below the bridged amount."""

    def __init__(self, allowance: int, required: int) -> None:
        super().__init__(f"Allowance {allowance} is below required amount {required}")
        self.allowance = allowance
        self.required = required


class StepFailed(BridgeError):
    """A transaction submission or confirmation failed during a bridge step."""

    step = "bridge"

    def __init__(self, message: str, *, tx_hash: Optional[str] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


class ApprovalFailed(StepFailed):
    step = "approve"


class BurnFailed(StepFailed):
    step = "burn"


class MintFailed(StepFailed):
    step = "mint"


class MessageNotFound(BridgeError):
    """The burn receipt did not carry a ``MessageSent`` event."""


class MalformedMessage(MessageNotFound):
    """The ``MessageSent`` payload is not a well-formed ABI ``bytes`` value."""


class AttestationError(BridgeError):
    """The attestation service could not be reached or answered garbage."""


__all__ = [
    "ApprovalFailed",
    "AttestationError",
    "BridgeError",
    "BurnFailed",
    "ChainSwitchFailed",
    "InsufficientAllowance",
    "InvalidRequest",
    "InvalidTransition",
    "MalformedMessage",
    "MessageNotFound",
    "MintFailed",
    "StepFailed",
    "UnsupportedChain",
]
