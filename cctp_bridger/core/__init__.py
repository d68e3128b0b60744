"""Core domain logic for the CCTP bridger."""

from .errors import (
    ApprovalFailed,
    AttestationError,
    BridgeError,
    BurnFailed,
    ChainSwitchFailed,
    InsufficientAllowance,
    InvalidRequest,
    InvalidTransition,
    MalformedMessage,
    MessageNotFound,
    MintFailed,
    UnsupportedChain,
)
from .registry import ChainDescriptor, descriptor, descriptor_by_name, supported_chains
from .models import PENDING, Attestation, BridgeRequest, BurnMessage
from .codec import decode_message_sent, extract_burn_message
from .attestation import AttestationClient, AttestationPoller, PollHandle
from .session import BridgeSession, BridgeState
from .executor import BridgeExecutor
from .planner import BridgePlan, BridgePlanner, PlanStep
from .signer import SigningContext, Web3Signer
from .utils import format_usdc, parse_usdc

__all__ = [
    "PENDING",
    "ApprovalFailed",
    "Attestation",
    "AttestationClient",
    "AttestationError",
    "AttestationPoller",
    "BridgeError",
    "BridgeExecutor",
    "BridgePlan",
    "BridgePlanner",
    "BridgeRequest",
    "BridgeSession",
    "BridgeState",
    "BurnFailed",
    "BurnMessage",
    "ChainDescriptor",
    "ChainSwitchFailed",
    "InsufficientAllowance",
    "InvalidRequest",
    "InvalidTransition",
    "MalformedMessage",
    "MessageNotFound",
    "MintFailed",
    "PlanStep",
    "PollHandle",
    "SigningContext",
    "UnsupportedChain",
    "Web3Signer",
    "decode_message_sent",
    "descriptor",
    "descriptor_by_name",
    "extract_burn_message",
    "format_usdc",
    "parse_usdc",
    "supported_chains",
]
