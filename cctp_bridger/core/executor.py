"""Interactive driver for one CCTP bridge attempt: approve, burn, attest, mint."""

from __future__ import annotations

import dataclasses
import functools
import threading
from typing import Any, Mapping, Optional, Type

from cctp_bridger.core.attestation import (
    DEFAULT_POLL_INTERVAL,
    IRIS_API_URL,
    IRIS_SANDBOX_API_URL,
    AttestationClient,
    AttestationPoller,
    PollHandle,
)
from cctp_bridger.core.calldata import encode_approve, encode_deposit_for_burn, encode_receive_message
from cctp_bridger.core.codec import extract_burn_message
from cctp_bridger.core.errors import (
    ApprovalFailed,
    BurnFailed,
    ChainSwitchFailed,
    InsufficientAllowance,
    InvalidTransition,
    MessageNotFound,
    MintFailed,
    StepFailed,
)
from cctp_bridger.core.models import Attestation, BridgeRequest, BurnMessage
from cctp_bridger.core.session import BridgeSession, BridgeState
from cctp_bridger.core.signer import SigningContext
from cctp_bridger.core.tokens import allowance_of, balance_of
from cctp_bridger.core.utils import get_logger

LOGGER = get_logger("cctp_bridger.executor")

NONCE_USED_MARKER = "nonce already used"


def is_nonce_used_error(exc: BaseException) -> bool:
    """True when a mint failure means the message was already received."""
    return NONCE_USED_MARKER in str(exc).lower()


class BridgeExecutor:
    """Drives a single :class:`BridgeRequest` through the CCTP flow.

    ``approve()`` and ``burn()`` run on the caller's thread and raise typed
    errors after recording them on the session. Once the burn is confirmed
    the attestation poll runs on a background thread and the mint is
    submitted from there; use :meth:`wait` to block for the outcome.
    """

    def __init__(
        self,
        request: BridgeRequest,
        *,
        signer: SigningContext,
        attestation_client: Optional[AttestationClient] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_poll_attempts: Optional[int] = None,
        receipt_timeout: float = 300,
        api_timeout: float = 10,
    ) -> None:
        self.request = request
        self._signer = signer
        if attestation_client is None:
            api_url = IRIS_SANDBOX_API_URL if request.source.testnet else IRIS_API_URL
            attestation_client = AttestationClient(api_url, timeout=api_timeout)
        self._poller = AttestationPoller(attestation_client, interval=poll_interval, max_attempts=max_poll_attempts)
        self.receipt_timeout = receipt_timeout
        self._lock = threading.RLock()
        self._poll: Optional[PollHandle] = None
        self._done = threading.Event()
        self.session = BridgeSession(request)

    # -- read side -----------------------------------------------------------------

    @property
    def state(self) -> BridgeState:
        return self.session.state

    @property
    def error(self) -> Optional[str]:
        return self.session.error

    @property
    def poll_handle(self) -> Optional[PollHandle]:
        return self._poll

    def allowance(self) -> int:
        source = self.request.source
        return allowance_of(
            self._signer.web3(source.chain_id),
            source.usdc,
            self._signer.address,
            source.token_messenger,
        )

    def balance(self) -> int:
        source = self.request.source
        return balance_of(self._signer.web3(source.chain_id), source.usdc, self._signer.address)

    def needs_approval(self) -> bool:
        return self.allowance() < self.request.amount

    # -- actions ---------------------------------------------------------------------

    def approve(self) -> str:
        """Approve the source token messenger for the request amount."""
        source = self.request.source
        with self._lock:
            session = self.session
            session.transition(BridgeState.APPROVING)
        self._log_action("approve", "started")

        call = encode_approve(source, self.request.amount)
        try:
            tx_hash = self._send(source.chain_id, call, ApprovalFailed)
            self._record(session, approve_tx_hash=tx_hash)
            self._confirm(source.chain_id, tx_hash, ApprovalFailed)
        except (ChainSwitchFailed, StepFailed) as exc:
            self._fail(session, "approve", str(exc))
            raise

        with self._lock:
            if self._is_current(session):
                session.transition(BridgeState.IDLE)
        self._log_action("approve", "confirmed", tx_hash)

        allowance = self.allowance()
        self._record(session, allowance=allowance)
        if allowance < self.request.amount:
            LOGGER.warning("Allowance %s still below bridge amount %s after approval", allowance, self.request.amount)
        return tx_hash

    def burn(self) -> BurnMessage:
        """Burn on the source chain and start polling for the attestation."""
        source, dest = self.request.source, self.request.dest
        if self.state is not BridgeState.IDLE:
            raise InvalidTransition(f"Cannot burn while session is {self.state.value}")
        allowance = self.allowance()
        if allowance < self.request.amount:
            raise InsufficientAllowance(allowance, self.request.amount)

        with self._lock:
            session = self.session
            session.transition(BridgeState.BURNING)
        self._log_action("burn", "started")

        call = encode_deposit_for_burn(source, dest, self.request.amount, self.request.recipient)
        try:
            tx_hash = self._send(source.chain_id, call, BurnFailed)
            self._record(session, burn_tx_hash=tx_hash)
            receipt = self._confirm(source.chain_id, tx_hash, BurnFailed)
            burn_message = extract_burn_message(receipt)
        except (ChainSwitchFailed, StepFailed, MessageNotFound) as exc:
            self._fail(session, "burn", str(exc))
            raise

        if not burn_message.burn_tx_hash:
            burn_message = dataclasses.replace(burn_message, burn_tx_hash=tx_hash)
        self._log_action("burn", "confirmed", tx_hash)

        with self._lock:
            if not self._is_current(session):
                return burn_message
            session.burn_message = burn_message
            session.transition(BridgeState.ATTESTING)
            self._poll = self._poller.start(
                burn_message.message_hash,
                functools.partial(self._on_attestation, session),
                on_exhausted=functools.partial(self._on_attestation_exhausted, session),
            )
        LOGGER.info("Burn message %s waiting for attestation", burn_message.message_hash_hex)
        return burn_message

    def run(self, timeout: Optional[float] = None) -> BridgeState:
        """Approve when needed, burn, then block until the session finishes."""
        if self.needs_approval():
            self.approve()
        self.burn()
        return self.wait(timeout)

    def wait(self, timeout: Optional[float] = None) -> BridgeState:
        """Block until the session reaches ``completed`` or ``error``, is closed, or ``timeout`` passes."""
        with self._lock:
            done = self._done
        done.wait(timeout)
        return self.state

    def reset(self) -> BridgeSession:
        """Discard the current attempt, cancel any poll and start a fresh idle session."""
        with self._lock:
            self._cancel_poll()
            previous = self.session
            self.session = BridgeSession(self.request)
            self._done.set()
            self._done = threading.Event()
        LOGGER.info("Bridge session %s reset from %s", previous.session_id, previous.state.value)
        return self.session

    def close(self) -> None:
        """Cancel any poll and release callers blocked in :meth:`wait`."""
        with self._lock:
            self._cancel_poll()
            self._done.set()

    def __enter__(self) -> "BridgeExecutor":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- attestation / mint (poller thread) ----------------------------------------------------

    def _on_attestation(self, session: BridgeSession, attestation: Attestation) -> None:
        with self._lock:
            if not self._is_current(session) or session.state is not BridgeState.ATTESTING:
                LOGGER.info("Dropping attestation for discarded session %s", session.session_id)
                return
            burn_message = session.burn_message
            if burn_message is None or attestation.message_hash.lower() != burn_message.message_hash_hex.lower():
                session.fail("attestation", "attestation does not match the burn message")
                self._done.set()
                return
            session.attestation = attestation
        self._log_action("attestation", "received")
        self._mint(session)

    def _on_attestation_exhausted(self, session: BridgeSession, attempts: int) -> None:
        self._fail(session, "attestation", f"attestation not available after {attempts} polls")

    def _mint(self, session: BridgeSession) -> None:
        dest = self.request.dest
        burn_message, attestation = session.burn_message, session.attestation
        if burn_message is None or attestation is None:
            self._fail(session, "mint", "burn message or attestation missing")
            return
        call = encode_receive_message(dest, burn_message.message, attestation.signature)

        try:
            with self._signer.signing_lock:
                self._switch(dest.chain_id)
                with self._lock:
                    if not self._is_current(session):
                        return
                    session.transition(BridgeState.MINTING)
                self._log_action("mint", "started")
                tx_hash = self._signer.send_transaction(call)
        except ChainSwitchFailed as exc:
            self._fail(session, "mint", str(exc))
            return
        except Exception as exc:
            self._mint_failed(session, MintFailed(str(exc)))
            return

        self._record(session, mint_tx_hash=tx_hash)
        try:
            self._confirm(dest.chain_id, tx_hash, MintFailed)
        except MintFailed as exc:
            self._mint_failed(session, exc)
            return
        self._complete(session)
        self._log_action("mint", "confirmed", tx_hash)

    def _mint_failed(self, session: BridgeSession, exc: MintFailed) -> None:
        if is_nonce_used_error(exc):
            LOGGER.info("Message for session %s was already received on chain %s", session.session_id, self.request.dest_chain_id)
            self._complete(session)
            return
        self._fail(session, "mint", str(exc))

    # -- helpers -------------------------------------------------------------------------

    def _switch(self, chain_id: int) -> None:
        try:
            if self._signer.ensure_chain(chain_id):
                LOGGER.info("Switched signing context to chain %s", chain_id)
        except ChainSwitchFailed:
            raise
        except Exception as exc:
            raise ChainSwitchFailed(chain_id, str(exc)) from exc

    def _send(self, chain_id: int, call, failure: Type[StepFailed]) -> str:
        try:
            with self._signer.signing_lock:
                self._switch(chain_id)
                return self._signer.send_transaction(call)
        except ChainSwitchFailed:
            raise
        except Exception as exc:
            raise failure(str(exc)) from exc

    def _confirm(self, chain_id: int, tx_hash: str, failure: Type[StepFailed]) -> Mapping[str, Any]:
        try:
            receipt = self._signer.wait_for_receipt(chain_id, tx_hash, timeout=self.receipt_timeout)
        except Exception as exc:
            raise failure(f"transaction {tx_hash} was not confirmed: {exc}", tx_hash=tx_hash) from exc
        if receipt.get("status") != 1:
            raise failure(f"transaction {tx_hash} reverted", tx_hash=tx_hash)
        return receipt

    def _is_current(self, session: BridgeSession) -> bool:
        return session is self.session

    def _record(self, session: BridgeSession, **fields: Any) -> None:
        with self._lock:
            for name, value in fields.items():
                setattr(session, name, value)

    def _complete(self, session: BridgeSession) -> None:
        with self._lock:
            if not self._is_current(session) or session.terminal:
                return
            session.transition(BridgeState.COMPLETED)
            self._done.set()
        LOGGER.info("Bridge of %s to chain %s completed", self.request.formatted_amount, self.request.dest_chain_id)

    def _fail(self, session: BridgeSession, step: str, message: str) -> None:
        with self._lock:
            if not self._is_current(session) or session.terminal:
                return
            session.fail(step, message)
            self._done.set()
        self._log_action(step, "failed")
        LOGGER.error("Bridge session %s: %s", session.session_id, session.error)

    def _cancel_poll(self) -> None:
        if self._poll is not None:
            self._poll.cancel()
            self._poll = None

    def _log_action(self, action: str, status: str, tx_hash: Optional[str] = None) -> None:
        request = self.request
        LOGGER.info(
            "CCTP_%s %s: bridge %s from %s to %s recipient=%s tx=%s",
            action,
            status,
            request.formatted_amount,
            request.source.name,
            request.dest.name,
            request.recipient,
            tx_hash or "-",
        )


__all__ = ["NONCE_USED_MARKER", "BridgeExecutor", "is_nonce_used_error"]
