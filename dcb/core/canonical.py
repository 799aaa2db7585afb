"""
Canonical serialization for event payloads.

Persisted records and payload comparisons go through these functions so that
key order, tuple/list choice and set ordering never change the outcome.
"""

import json
from datetime import datetime
from typing import Any


def canonicalize(obj: Any) -> Any:
    """
    Convert arbitrary nested payload to canonical form.

    Rules:
    - dict keys sorted (keys coerced to str)
    - tuples converted to lists
    - sets and frozensets converted to sorted lists
    - datetimes rendered as ISO-8601 strings
    """
    if isinstance(obj, dict):
        return {str(k): canonicalize(obj[k]) for k in sorted(obj.keys(), key=str)}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    if isinstance(obj, (set, frozenset)):
        return sorted(canonicalize(x) for x in obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    return obj


def canonical_json_str(obj: Any) -> str:
    """
    Deterministic JSON string (no whitespace, sorted keys, UTF-8 preserved).
    """
    canon = canonicalize(obj)
    return json.dumps(canon, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def canonical_json_bytes(obj: Any) -> bytes:
    """UTF-8 bytes of canonical_json_str()."""
    return canonical_json_str(obj).encode("utf-8")
