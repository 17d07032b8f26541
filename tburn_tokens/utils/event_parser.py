"""
Creation-event parsing for factory deployment receipts

Each receipt log is decoded into a LogDecodeResult tagged as MATCHED (the
standard's creation event, carrying the new contract address), NOT_MATCHING
(some other event or contract) or MALFORMED (right signature, bad payload).
Callers iterate the results explicitly instead of catching decode exceptions.

Design Notes:
- Topic0 is compared against keccak(signature) derived from the factory ABI
- The contract address is the first indexed argument (topics[1])
- Non-indexed data is fully ABI-decoded so truncated payloads are rejected
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from eth_abi import decode
from eth_utils import decode_hex, to_checksum_address

from ..core.models import TokenStandard
from .factory_abi import event_topic, get_abi_entry
from .factory_encoder import CREATION_EVENTS, FACTORY_ABIS

LOG = logging.getLogger(__name__)


class DecodeKind(str, Enum):
    MATCHED = "matched"
    NOT_MATCHING = "not_matching"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class LogDecodeResult:
    kind: DecodeKind
    address: Optional[str] = None
    args: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.kind is DecodeKind.MATCHED


def _as_bytes(value: Union[str, bytes, bytearray]) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return decode_hex(value)


def _topic_hex(value: Union[str, bytes, bytearray]) -> str:
    return "0x" + _as_bytes(value).hex()


def creation_event_entry(standard) -> Dict:
    standard = TokenStandard.parse(standard)
    return get_abi_entry(FACTORY_ABIS[standard], CREATION_EVENTS[standard], "event")


def decode_log(log: Dict[str, Any], event_entry: Dict) -> LogDecodeResult:
    """
    Decode one receipt log against a single event ABI entry.

    Args:
        log: Receipt log with `topics` and `data` (hex strings or bytes)
        event_entry: ABI entry of the event to match

    Returns:
        LogDecodeResult tagged MATCHED, NOT_MATCHING or MALFORMED
    """
    try:
        topics = [_topic_hex(t) for t in (log.get("topics") or [])]
    except (ValueError, TypeError) as e:
        return LogDecodeResult(DecodeKind.MALFORMED, reason=f"bad topics: {e}")

    if not topics or topics[0].lower() != event_topic(event_entry):
        return LogDecodeResult(DecodeKind.NOT_MATCHING)

    indexed = [p for p in event_entry["inputs"] if p.get("indexed")]
    non_indexed = [p for p in event_entry["inputs"] if not p.get("indexed")]

    if len(topics) != 1 + len(indexed):
        return LogDecodeResult(
            DecodeKind.MALFORMED,
            reason=f"expected {1 + len(indexed)} topics, got {len(topics)}"
        )

    args: Dict[str, Any] = {}
    for param, topic in zip(indexed, topics[1:]):
        raw = _as_bytes(topic)
        if param["type"] == "address":
            if len(raw) != 32 or any(raw[:12]):
                return LogDecodeResult(DecodeKind.MALFORMED, reason=f"bad address topic {topic}")
            args[param["name"]] = to_checksum_address("0x" + raw[12:].hex())
        else:
            args[param["name"]] = raw

    try:
        data = _as_bytes(log.get("data") or b"")
        values = decode([p["type"] for p in non_indexed], data)
    except Exception as e:
        return LogDecodeResult(DecodeKind.MALFORMED, reason=f"bad data: {e}")

    for param, value in zip(non_indexed, values):
        args[param["name"]] = value

    return LogDecodeResult(
        DecodeKind.MATCHED,
        address=args[indexed[0]["name"]],
        args=args
    )


def decode_creation_logs(standard, logs: Iterable[Dict[str, Any]]) -> List[LogDecodeResult]:
    entry = creation_event_entry(standard)
    return [decode_log(log, entry) for log in logs]


def extract_contract_address(standard, logs: Iterable[Dict[str, Any]]) -> Optional[str]:
    """
    Return the first indexed argument of the first matching creation event.

    Non-matching and malformed logs are skipped; None means no log matched.
    """
    for index, result in enumerate(decode_creation_logs(standard, logs)):
        if result.matched:
            return result.address
        if result.kind is DecodeKind.MALFORMED:
            LOG.debug(f"Skipping malformed log #{index}: {result.reason}")
    return None
