"""
Response envelope comparison for API mode.

Both REST deployments wrap a named collection of records in a JSON
envelope. Backend-generated identifiers, links and timestamps are redacted
from every record before the envelopes are compared, since they differ
even when the underlying data is logically identical.
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .diff import Difference, RecordDifference, diff_values, display_key, display_title
from .endpoints import EndpointSpec
from .normalize import normalize

logger = logging.getLogger(__name__)

REDACTED_KEYS = frozenset({"sourcedId", "href", "dateLastModified"})

# Generated identifiers are MD5-style hex tokens
_IDENTIFIER_TOKEN = re.compile(r"[0-9a-f]{32}", re.IGNORECASE)

MAX_ITEM_DIFFERENCES = 3


class EnvelopeStatus(str, Enum):
    IDENTICAL = "identical"
    DIFFERENT = "different"
    STRUCTURE_MISMATCH = "structure_mismatch"


@dataclass(frozen=True)
class EnvelopeComparison:
    """Outcome of comparing two response envelopes for one endpoint."""

    status: EnvelopeStatus
    count_a: int = 0
    count_b: int = 0
    differences: tuple[Difference, ...] = ()
    item_differences: tuple[RecordDifference, ...] = ()
    differing_items: int = 0
    message: str | None = None

    @property
    def identical(self) -> bool:
        return self.status == EnvelopeStatus.IDENTICAL


def contains_identifier(value: Any) -> bool:
    """
    Check whether a value holds a generated identifier anywhere inside it.

    A string qualifies when it is a 32-character hex token or mentions
    "sourcedId" or "href"; containers qualify when any member does.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return (
            _IDENTIFIER_TOKEN.fullmatch(value) is not None
            or "sourcedId" in value
            or "href" in value
        )
    if isinstance(value, Mapping):
        return any(contains_identifier(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(contains_identifier(v) for v in value)
    return False


def redact(value: Any) -> Any:
    """
    Remove identifier, link and timestamp fields from a record, recursively

    Args:
        value: Record (or any JSON value) from a response envelope

    Returns:
        A redacted copy; the input is left untouched
    """
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    if not isinstance(value, Mapping):
        return value

    cleaned = {}
    for key, item in value.items():
        if key in REDACTED_KEYS or contains_identifier(item):
            continue
        cleaned[key] = redact(item)
    return cleaned


def redact_envelope(envelope: Mapping[str, Any], collection: str) -> dict[str, Any]:
    """Copy of the envelope with every record of the collection redacted."""
    redacted = dict(envelope)
    records = envelope.get(collection)
    if isinstance(records, list):
        redacted[collection] = [redact(record) for record in records]
    return redacted


def _has_collection(envelope: Any, collection: str) -> bool:
    return isinstance(envelope, Mapping) and isinstance(envelope.get(collection), list)


def _collection_size(envelope: Any, collection: str) -> int:
    return len(envelope[collection]) if _has_collection(envelope, collection) else 0


def compare_envelopes(
    envelope_a: Mapping[str, Any],
    envelope_b: Mapping[str, Any],
    spec: EndpointSpec,
    max_item_differences: int = MAX_ITEM_DIFFERENCES,
) -> EnvelopeComparison:
    """
    Compare two response envelopes after redaction

    Args:
        envelope_a: Envelope returned by the authoritative deployment
        envelope_b: Envelope returned by the other deployment
        spec: Endpoint spec; its collection names the record array
        max_item_differences: Number of differing items explained in detail

    Returns:
        EnvelopeComparison; STRUCTURE_MISMATCH when either side lacks the
        collection property
    """
    collection = spec.collection

    if not _has_collection(envelope_a, collection) or not _has_collection(
        envelope_b, collection
    ):
        message = (
            f"Response structure mismatch for {spec.name}: "
            f"'{collection}' present in A: {_has_collection(envelope_a, collection)}, "
            f"in B: {_has_collection(envelope_b, collection)}"
        )
        logger.warning(message)
        return EnvelopeComparison(
            status=EnvelopeStatus.STRUCTURE_MISMATCH,
            count_a=_collection_size(envelope_a, collection),
            count_b=_collection_size(envelope_b, collection),
            message=message,
        )

    raw_items_a = envelope_a[collection]
    raw_items_b = envelope_b[collection]

    redacted_a = redact_envelope(envelope_a, collection)
    redacted_b = redact_envelope(envelope_b, collection)

    normalized_a = normalize(redacted_a)
    normalized_b = normalize(redacted_b)

    if normalized_a == normalized_b:
        return EnvelopeComparison(
            status=EnvelopeStatus.IDENTICAL,
            count_a=len(raw_items_a),
            count_b=len(raw_items_b),
        )

    differences = tuple(diff_values(normalized_a, normalized_b))

    item_differences: list[RecordDifference] = []
    differing_items = 0
    items_a = redacted_a[collection]
    items_b = redacted_b[collection]

    if len(items_a) == len(items_b):
        for index, (item_a, item_b) in enumerate(zip(items_a, items_b)):
            value_a = normalize(item_a)
            value_b = normalize(item_b)
            if value_a == value_b:
                continue
            differing_items += 1
            if len(item_differences) < max_item_differences:
                item_differences.append(
                    _item_difference(
                        index,
                        diff_values(value_a, value_b),
                        item_a,
                        item_b,
                        raw_items_a[index],
                        raw_items_b[index],
                        spec.key_field,
                    )
                )

    return EnvelopeComparison(
        status=EnvelopeStatus.DIFFERENT,
        count_a=len(raw_items_a),
        count_b=len(raw_items_b),
        differences=differences,
        item_differences=tuple(item_differences),
        differing_items=differing_items,
    )


def _item_difference(
    index: int,
    differences: list[Difference],
    item_a: Any,
    item_b: Any,
    raw_a: Any,
    raw_b: Any,
    key_field: str,
) -> RecordDifference:
    # Redacted payloads lose the key; identify items by the raw record
    def as_record(value: Any) -> Mapping[str, Any]:
        return value if isinstance(value, Mapping) else {}

    return RecordDifference(
        index=index,
        differences=tuple(differences),
        key_a=display_key(as_record(raw_a), key_field),
        key_b=display_key(as_record(raw_b), key_field),
        title_a=display_title(as_record(raw_a)),
        title_b=display_title(as_record(raw_b)),
        payload_a=item_a if isinstance(item_a, Mapping) else {"value": item_a},
        payload_b=item_b if isinstance(item_b, Mapping) else {"value": item_b},
    )
