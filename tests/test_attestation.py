"""Tests for the attestation client and the background poller."""

import threading

import pytest
import requests

from cctp_bridger.core.attestation import AttestationClient, AttestationPoller
from cctp_bridger.core.errors import AttestationError
from cctp_bridger.core.models import PENDING, Attestation

from conftest import FakeAttestationClient

MESSAGE_HASH = "0x" + "ab" * 32


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeHttp:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


def _client(response=None, error=None):
    http = FakeHttp(response, error)
    return AttestationClient("https://iris.example/attestations/", timeout=3, session=http), http


class TestAttestationClient:
    def test_complete_response(self):
        client, http = _client(FakeResponse(payload={"status": "complete", "attestation": "0x" + "11" * 65}))

        result = client.fetch(MESSAGE_HASH)

        assert isinstance(result, Attestation)
        assert result.signature == b"\x11" * 65
        assert result.message_hash == MESSAGE_HASH
        assert http.urls == [(f"https://iris.example/attestations/{MESSAGE_HASH}", 3)]

    def test_accepts_bytes_hash(self):
        client, http = _client(FakeResponse(payload={"status": "pending_confirmations"}))
        client.fetch(b"\xab" * 32)
        assert http.urls[0][0].endswith(MESSAGE_HASH)

    @pytest.mark.parametrize(
        "payload",
        [
            {"status": "pending_confirmations", "attestation": "PENDING"},
            {"status": "complete", "attestation": ""},
            {"status": "complete", "attestation": None},
            {"status": "complete", "attestation": "PENDING"},
            {},
        ],
    )
    def test_not_ready_is_pending(self, payload):
        client, _ = _client(FakeResponse(payload=payload))
        assert client.fetch(MESSAGE_HASH) is PENDING

    def test_not_found_is_pending(self):
        client, _ = _client(FakeResponse(status_code=404, payload={"error": "Message hash not found"}))
        assert client.fetch(MESSAGE_HASH) is PENDING

    def test_server_error_raises(self):
        client, _ = _client(FakeResponse(status_code=503, payload={}))
        with pytest.raises(AttestationError):
            client.fetch(MESSAGE_HASH)

    def test_invalid_json_raises(self):
        client, _ = _client(FakeResponse(payload=ValueError("Expecting value")))
        with pytest.raises(AttestationError):
            client.fetch(MESSAGE_HASH)

    def test_non_object_payload_raises(self):
        client, _ = _client(FakeResponse(payload=["complete"]))
        with pytest.raises(AttestationError):
            client.fetch(MESSAGE_HASH)

    @pytest.mark.parametrize("signature", [12345, ["0x11"], {"sig": "0x11"}])
    def test_non_string_attestation_raises(self, signature):
        client, _ = _client(FakeResponse(payload={"status": "complete", "attestation": signature}))
        with pytest.raises(AttestationError, match="not a hex string"):
            client.fetch(MESSAGE_HASH)

    def test_non_hex_attestation_raises(self):
        client, _ = _client(FakeResponse(payload={"status": "complete", "attestation": "0xnothex"}))
        with pytest.raises(AttestationError, match="not valid hex"):
            client.fetch(MESSAGE_HASH)

    def test_transport_error_raises(self):
        client, _ = _client(error=requests.ConnectionError("connection refused"))
        with pytest.raises(AttestationError, match="connection refused"):
            client.fetch(MESSAGE_HASH)

    def test_pending_is_falsy(self):
        assert not PENDING
        assert repr(PENDING) == "PENDING"


class TestAttestationPoller:
    def test_swallows_errors_until_complete(self):
        client = FakeAttestationClient([AttestationError("boom"), "pending", AttestationError("bad json"), "complete"])
        received = []
        done = threading.Event()

        def on_attestation(attestation):
            received.append(attestation)
            done.set()

        handle = AttestationPoller(client, interval=0.01).start(MESSAGE_HASH, on_attestation)

        assert done.wait(2)
        assert handle.join(2)
        assert handle.attempts == 4
        assert received[0].message_hash == MESSAGE_HASH
        assert client.calls == [MESSAGE_HASH] * 4

    def test_cancel_stops_polling(self):
        client = FakeAttestationClient(["pending"])
        received = []

        handle = AttestationPoller(client, interval=0.01).start(MESSAGE_HASH, received.append)
        handle.cancel()

        assert handle.join(2)
        assert handle.cancelled
        assert not handle.running
        assert received == []

    def test_result_after_cancel_is_dropped(self):
        client = FakeAttestationClient(["complete"])
        client.gate = threading.Event()
        received = []

        handle = AttestationPoller(client, interval=0.01).start(MESSAGE_HASH, received.append)
        handle.cancel()
        client.gate.set()

        assert handle.join(2)
        assert received == []

    def test_max_attempts_calls_on_exhausted(self):
        client = FakeAttestationClient(["pending"])
        exhausted = []

        handle = AttestationPoller(client, interval=0.01, max_attempts=3).start(
            MESSAGE_HASH, lambda attestation: None, on_exhausted=exhausted.append
        )

        assert handle.join(2)
        assert exhausted == [3]
        assert len(client.calls) == 3

    def test_unbounded_by_default(self):
        assert AttestationPoller(FakeAttestationClient()).max_attempts is None

    @pytest.mark.parametrize("kwargs", [{"interval": 0}, {"interval": 1, "max_attempts": 0}])
    def test_rejects_bad_settings(self, kwargs):
        with pytest.raises(ValueError):
            AttestationPoller(FakeAttestationClient(), **kwargs)


class TestPollerSurvivesBadResponses:
    def test_malformed_attestation_keeps_polling(self):
        responses = [
            FakeResponse(payload={"status": "complete", "attestation": 12345}),
            FakeResponse(payload={"status": "complete", "attestation": "0x" + "22" * 65}),
        ]
        http = FakeHttp()
        http.get = lambda url, timeout=None: responses.pop(0) if len(responses) > 1 else responses[0]
        client = AttestationClient("https://iris.example/attestations", session=http)
        received = []
        done = threading.Event()

        def on_attestation(attestation):
            received.append(attestation)
            done.set()

        handle = AttestationPoller(client, interval=0.01).start(MESSAGE_HASH, on_attestation)

        assert done.wait(2)
        assert handle.join(2)
        assert handle.attempts == 2
        assert received[0].signature == b"\x22" * 65

    def test_unexpected_client_error_keeps_polling(self):
        client = FakeAttestationClient([RuntimeError("decoder bug"), "complete"])
        done = threading.Event()

        handle = AttestationPoller(client, interval=0.01).start(MESSAGE_HASH, lambda attestation: done.set())

        assert done.wait(2)
        assert handle.join(2)
        assert handle.attempts == 2
