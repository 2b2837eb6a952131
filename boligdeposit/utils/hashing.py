"""
Hashing helpers for the audit trail and processing ledger.

All digests are SHA-256 hex over a canonical JSON encoding (sorted keys,
ISO-8601 datetimes, enums by value), so a stored hash can be recomputed from
the stored fields alone.
"""

import enum
import hashlib
import json
from datetime import date, datetime
from typing import Any


def _json_default(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, set):
        return sorted(value)
    return str(value)


def canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_json_default, ensure_ascii=False)


def sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def hash_sensitive_data(value: str) -> str:
    """One-way hash used for identifiers kept after erasure."""
    return sha256_hex(value)


def audit_entry_hash(action: str, user_id: str, details: str) -> str:
    return sha256_hex(f"{action}{user_id}{details}")


def processing_hash(fields: dict[str, Any]) -> str:
    return sha256_hex(canonical_json(fields))
