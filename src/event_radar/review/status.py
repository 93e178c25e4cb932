"""
Derived review status.

Records carry an explicit `status` field. Older records only carry the
`reviewed`/`rejected` booleans (and sometimes `approved`), stored either as
real booleans or as the strings "true"/"false". Both encodings resolve
through `derive_status`.
"""

from typing import Any, Mapping, Union

from event_radar.shared.schemas.dto import LEGACY_FIELDS, EventStatus, StoredEvent

# Fields removed from a record once it carries an explicit status
LEGACY_REVIEW_FIELDS = LEGACY_FIELDS + ("reviewedAt",)


def _flag(value: Any) -> bool:
    return value is True or (isinstance(value, str) and value.strip().lower() == "true")


def _coerce_status(value: Any):
    if isinstance(value, EventStatus):
        return value
    try:
        return EventStatus(value) if value else None
    except ValueError:
        return None


def derive_status(record: Union[StoredEvent, Mapping[str, Any], None]) -> EventStatus:
    """
    Return the review status of a record in either encoding.

    Precedence: a true `rejected` flag always means rejected; otherwise a
    valid `status` field wins; otherwise `reviewed` (or the legacy
    `approved` flag) means approved; anything else is pending.

    Args:
        record: A StoredEvent or a raw Redis hash

    Returns:
        The derived EventStatus
    """
    if record is None:
        return EventStatus.PENDING

    if isinstance(record, StoredEvent):
        status = record.status
        legacy = record.legacy
    else:
        status = _coerce_status(record.get("status"))
        legacy = {name: _flag(record.get(name)) for name in LEGACY_FIELDS}

    if legacy.get("rejected"):
        return EventStatus.REJECTED
    if status is not None:
        return status
    if legacy.get("reviewed") or legacy.get("approved"):
        return EventStatus.APPROVED
    return EventStatus.PENDING


def has_legacy_fields(record: Mapping[str, Any]) -> bool:
    return any(name in record for name in LEGACY_REVIEW_FIELDS)
