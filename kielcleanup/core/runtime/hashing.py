import hashlib
import json
from typing import Any

from kielcleanup.utils.json_safe import to_jsonable


def stable_event_hash(event_data: dict, previous_hash: str) -> str:
    """
    Compute a deterministic hash for a run event linked to its predecessor.
    """
    payload = {"event": event_data, "previous_event_hash": previous_hash}
    serialized = json.dumps(to_jsonable(payload), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def short_hash(value: Any) -> str:
    """Short SHA-256 prefix of a JSON-safe value, for log lines."""
    serialized = json.dumps(to_jsonable(value), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()[:12]
