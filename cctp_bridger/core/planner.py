"""Non-interactive bridge planning for agents that only prepare transactions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from cctp_bridger.core import registry
from cctp_bridger.core.calldata import (
    PreparedCall,
    encode_approve,
    encode_deposit_for_burn,
    encode_receive_message,
)
from cctp_bridger.core.models import BridgeRequest
from cctp_bridger.core.tokens import MAX_UINT256

ACTION_APPROVE = "approve"
ACTION_DEPOSIT_FOR_BURN = "depositForBurn"
ACTION_WAIT_FOR_ATTESTATION = "waitForAttestation"
ACTION_RECEIVE_MESSAGE = "receiveMessage"

PLAN_ACTIONS = (
    ACTION_APPROVE,
    ACTION_DEPOSIT_FOR_BURN,
    ACTION_WAIT_FOR_ATTESTATION,
    ACTION_RECEIVE_MESSAGE,
)

# Marker steps are not transactions and carry no chain.
NO_CHAIN = 0


@dataclass(frozen=True)
class PlanStep:
    index: int
    action: str
    chain_id: int
    to: str
    description: str
    data: Optional[str] = None

    @property
    def is_transaction(self) -> bool:
        return bool(self.to) and self.chain_id != NO_CHAIN

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "step": self.index,
            "action": self.action,
            "chainId": self.chain_id,
            "to": self.to,
            "description": self.description,
        }
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass(frozen=True)
class BridgePlan:
    """Ordered approve / burn / wait / mint instructions for one request."""

    request: BridgeRequest
    steps: Tuple[PlanStep, ...]

    def __iter__(self):
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def step(self, action: str) -> PlanStep:
        for step in self.steps:
            if step.action == action:
                return step
        raise KeyError(action)

    def to_dict(self) -> Dict[str, Any]:
        request = self.request
        return {
            "sourceChainId": request.source_chain_id,
            "destChainId": request.dest_chain_id,
            "amount": str(request.amount),
            "recipient": request.recipient,
            "steps": [step.to_dict() for step in self.steps],
        }

    def summary(self) -> str:
        request = self.request
        lines: List[str] = [
            "=" * 60,
            "CCTP BRIDGE FLOW",
            "=" * 60,
            f"From: {request.source.name} (domain {request.source.domain})",
            f"To: {request.dest.name} (domain {request.dest.domain})",
            f"Amount: {request.formatted_amount}",
            f"Recipient: {request.recipient}",
            "",
            "Steps:",
        ]
        lines.extend(f"  {step.index}. {step.action}: {step.description}" for step in self.steps)
        lines.append("=" * 60)
        return "\n".join(lines)


class BridgePlanner:
    """Builds a :class:`BridgePlan` without touching any chain."""

    def plan(self, request: BridgeRequest) -> BridgePlan:
        source, dest = request.source, request.dest
        amount = request.formatted_amount

        approve = encode_approve(source, MAX_UINT256)
        burn = encode_deposit_for_burn(source, dest, request.amount, request.recipient)

        steps = (
            PlanStep(
                index=1,
                action=ACTION_APPROVE,
                chain_id=source.chain_id,
                to=approve.to,
                data=approve.data,
                description=f"Approve TokenMessenger on {source.name} to spend USDC",
            ),
            PlanStep(
                index=2,
                action=ACTION_DEPOSIT_FOR_BURN,
                chain_id=source.chain_id,
                to=burn.to,
                data=burn.data,
                description=f"Burn {amount} on {source.name} for {dest.name}",
            ),
            PlanStep(
                index=3,
                action=ACTION_WAIT_FOR_ATTESTATION,
                chain_id=NO_CHAIN,
                to="",
                description="Wait for Circle attestation (typically 10-20 minutes)",
            ),
            PlanStep(
                index=4,
                action=ACTION_RECEIVE_MESSAGE,
                chain_id=dest.chain_id,
                to=dest.message_transmitter,
                description=f"Mint {amount} on {dest.name}",
            ),
        )
        return BridgePlan(request=request, steps=steps)

    def build_receive_message(
        self,
        dest_chain_id: int,
        message: Union[bytes, str],
        attestation: Union[bytes, str],
    ) -> PreparedCall:
        """Complete the mint step once the message and its attestation are known."""
        return encode_receive_message(registry.descriptor(dest_chain_id), message, attestation)


__all__ = [
    "ACTION_APPROVE",
    "ACTION_DEPOSIT_FOR_BURN",
    "ACTION_RECEIVE_MESSAGE",
    "ACTION_WAIT_FOR_ATTESTATION",
    "NO_CHAIN",
    "PLAN_ACTIONS",
    "BridgePlan",
    "BridgePlanner",
    "PlanStep",
]
