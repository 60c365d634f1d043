"""
Deterministic hashing utilities.

Audit metadata is hashed over its canonical JSON form so that the stored
``payload_hash`` can be recomputed and compared at any later time.
"""

import hashlib
import json
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """Serialize types json does not handle natively."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: Any) -> str:
    """Sorted keys, no whitespace, consistent handling of UUID/datetime/Enum."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def to_json_safe(data: dict[str, Any]) -> dict[str, Any]:
    """Round-trip through canonical JSON so a JSON column stores plain values."""
    return json.loads(canonicalize_json(data))


def hash_payload(payload: dict[str, Any]) -> str:
    """Hex-encoded SHA-256 of the canonical JSON of ``payload``."""
    return hashlib.sha256(canonicalize_json(payload).encode("utf-8")).hexdigest()


def hash_audit_entry(
    actor_id: str,
    action: str,
    subject_type: str,
    subject_id: str | None,
    metadata: dict[str, Any],
) -> str:
    """Hash covering every field of an audit entry except its timestamp."""
    return hash_payload({
        "actor_id": actor_id,
        "action": action,
        "subject_type": subject_type,
        "subject_id": subject_id,
        "metadata": metadata,
    })
