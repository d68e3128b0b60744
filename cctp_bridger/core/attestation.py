"""Circle attestation service client and background poller."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional, Union

import requests

from cctp_bridger.core.errors import AttestationError
from cctp_bridger.core.models import PENDING, Attestation, _Pending
from cctp_bridger.core.utils import get_logger, hex_to_bytes, to_hex

LOGGER = get_logger("cctp_bridger.attestation")

IRIS_API_URL = "https://iris-api.circle.com/attestations"
IRIS_SANDBOX_API_URL = "https://iris-api-sandbox.circle.com/attestations"
DEFAULT_POLL_INTERVAL = 5.0

AttestationResult = Union[Attestation, _Pending]


class AttestationClient:
    """Single request/response access to ``GET <api_url>/<messageHash>``."""

    def __init__(
        self,
        api_url: str = IRIS_API_URL,
        *,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._http = session or requests.Session()

    def fetch(self, message_hash: Union[str, bytes]) -> AttestationResult:
        """Return the attestation for ``message_hash`` or :data:`PENDING`.

        Raises :class:`AttestationError` for transport failures, unexpected
        HTTP statuses and bodies that are not JSON objects.
        """
        message_hash = to_hex(message_hash)
        url = f"{self.api_url}/{message_hash}"
        try:
            response = self._http.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise AttestationError(f"Failed to reach attestation service at {url}: {exc}") from exc

        # Iris answers 404 until it has indexed the burn.
        if response.status_code == 404:
            return PENDING
        try:
            response.raise_for_status()
            payload: Any = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise AttestationError(f"Bad attestation response for {message_hash}: {exc}") from exc
        if not isinstance(payload, dict):
            raise AttestationError(f"Unexpected attestation payload for {message_hash}: {payload!r}")

        signature = payload.get("attestation")
        if payload.get("status") != "complete" or not signature or signature == "PENDING":
            return PENDING
        if not isinstance(signature, str):
            raise AttestationError(f"Attestation for {message_hash} is not a hex string: {signature!r}")
        try:
            return Attestation(message_hash=message_hash, signature=hex_to_bytes(signature))
        except (TypeError, ValueError) as exc:
            raise AttestationError(f"Attestation for {message_hash} is not valid hex") from exc


class PollHandle:
    """Cancellation token and join handle for one running poll."""

    def __init__(self, message_hash: str) -> None:
        self.message_hash = message_hash
        self.attempts = 0
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the poll thread to exit; return ``True`` if it has."""
        if self._thread is None:
            return True
        if self._thread is not threading.current_thread():
            self._thread.join(timeout)
        return not self._thread.is_alive()

    def _wait(self, interval: float) -> bool:
        return self._cancel.wait(interval)


class AttestationPoller:
    """Polls :class:`AttestationClient` on a fixed interval until complete or cancelled.

    ``max_attempts`` defaults to ``None``: the poll has no ceiling and stops
    only on success or cancellation. Setting it bounds the number of fetches;
    ``on_exhausted`` is then called once the budget is spent.
    """

    def __init__(
        self,
        client: AttestationClient,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: Optional[int] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("poll interval must be positive")
        if max_attempts is not None and max_attempts <= 0:
            raise ValueError("max_attempts must be positive when set")
        self.client = client
        self.interval = interval
        self.max_attempts = max_attempts

    def start(
        self,
        message_hash: Union[str, bytes],
        on_attestation: Callable[[Attestation], None],
        *,
        on_exhausted: Optional[Callable[[int], None]] = None,
    ) -> PollHandle:
        handle = PollHandle(to_hex(message_hash))
        thread = threading.Thread(
            target=self._run,
            args=(handle, on_attestation, on_exhausted),
            name=f"attestation-poller-{handle.message_hash[:10]}",
            daemon=True,
        )
        handle._thread = thread
        thread.start()
        return handle

    def _run(
        self,
        handle: PollHandle,
        on_attestation: Callable[[Attestation], None],
        on_exhausted: Optional[Callable[[int], None]],
    ) -> None:
        LOGGER.info("Polling attestation for %s every %ss", handle.message_hash, self.interval)
        while not handle.cancelled:
            handle.attempts += 1
            try:
                result = self.client.fetch(handle.message_hash)
            except AttestationError as exc:
                LOGGER.warning("Attestation poll %s failed: %s", handle.attempts, exc)
                result = PENDING
            except Exception:
                LOGGER.exception("Attestation poll %s raised unexpectedly", handle.attempts)
                result = PENDING

            if isinstance(result, Attestation):
                if handle.cancelled:
                    break
                LOGGER.info("Attestation received for %s after %s polls", handle.message_hash, handle.attempts)
                on_attestation(result)
                return

            if self.max_attempts is not None and handle.attempts >= self.max_attempts:
                LOGGER.warning("Attestation for %s not ready after %s polls", handle.message_hash, handle.attempts)
                if on_exhausted is not None and not handle.cancelled:
                    on_exhausted(handle.attempts)
                return

            if handle._wait(self.interval):
                break
        LOGGER.info("Attestation poll for %s cancelled", handle.message_hash)


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "IRIS_API_URL",
    "IRIS_SANDBOX_API_URL",
    "AttestationClient",
    "AttestationPoller",
    "AttestationResult",
    "PollHandle",
]
