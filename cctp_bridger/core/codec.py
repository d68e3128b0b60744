"""Decoding of the ``MessageSent(bytes)`` event emitted by a CCTP burn.

The event carries a single dynamic ``bytes`` argument, so its log data is the
standard ABI head/tail layout::

    [0:32]      offset of the bytes value (0x20 for a lone argument)
    [off:off+32] length N of the message
    [off+32:...] N message bytes, right-padded to a 32-byte boundary

Only the N message bytes are returned and hashed; the trailing padding is
not part of the message.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Tuple, Union

from hexbytes import HexBytes
from web3 import Web3

from cctp_bridger.core.errors import MalformedMessage, MessageNotFound
from cctp_bridger.core.models import BurnMessage
from cctp_bridger.core.utils import to_hex

WORD_SIZE = 32

MESSAGE_SENT_SIGNATURE = "MessageSent(bytes)"
MESSAGE_SENT_TOPIC: bytes = bytes(Web3.keccak(text=MESSAGE_SENT_SIGNATURE))


def _read_word(data: bytes, start: int, label: str) -> int:
    end = start + WORD_SIZE
    if start < 0 or end > len(data):
        raise MalformedMessage(f"MessageSent payload too short to read {label} at byte {start}")
    return int.from_bytes(data[start:end], "big")


def decode_message_sent(data: Union[bytes, str]) -> Tuple[bytes, bytes]:
    """Return ``(message, keccak256(message))`` from ``MessageSent`` log data."""
    try:
        payload = bytes(HexBytes(data))
    except (TypeError, ValueError) as exc:
        raise MalformedMessage(f"MessageSent payload is not valid hex: {exc}") from exc
    offset = _read_word(payload, 0, "offset")
    length = _read_word(payload, offset, "length")
    start = offset + WORD_SIZE
    end = start + length
    if end > len(payload):
        raise MalformedMessage(
            f"MessageSent payload declares {length} message bytes but only {max(len(payload) - start, 0)} are present"
        )
    message = payload[start:end]
    return message, bytes(Web3.keccak(message))


def _field(log: Any, name: str) -> Any:
    if isinstance(log, Mapping):
        return log.get(name)
    return getattr(log, name, None)


def find_message_sent_log(logs: Iterable[Any]) -> Optional[Any]:
    """Return the first log whose topic 0 is ``MessageSent(bytes)``."""
    for log in logs:
        topics = _field(log, "topics") or []
        if not topics:
            continue
        try:
            topic = bytes(HexBytes(topics[0]))
        except (TypeError, ValueError):
            continue
        if topic == MESSAGE_SENT_TOPIC:
            return log
    return None


def extract_burn_message(receipt: Any) -> BurnMessage:
    """Locate and decode the burn message carried by a burn transaction receipt."""
    log = find_message_sent_log(_field(receipt, "logs") or [])
    tx_hash = _field(receipt, "transactionHash")
    if log is None:
        raise MessageNotFound("Could not find MessageSent event in burn transaction")
    message, message_hash = decode_message_sent(_field(log, "data") or b"")
    return BurnMessage(
        message=message,
        message_hash=message_hash,
        burn_tx_hash=to_hex(tx_hash) if tx_hash else "",
    )


__all__ = [
    "MESSAGE_SENT_SIGNATURE",
    "MESSAGE_SENT_TOPIC",
    "decode_message_sent",
    "extract_burn_message",
    "find_message_sent_log",
]
