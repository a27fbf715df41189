from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Mapping
from uuid import UUID


def to_jsonable(obj: Any) -> Any:
    """
    Convert common Python objects to JSON-serializable equivalents.

    Notes:
    - Sets are sorted so hashes over the output stay deterministic.
    - Unknown objects fall back to str().
    """
    if isinstance(obj, Enum):
        return to_jsonable(obj.value)

    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    if isinstance(obj, (datetime, date)):
        return obj.isoformat()

    if isinstance(obj, (Path, UUID)):
        return str(obj)

    if is_dataclass(obj) and not isinstance(obj, type):
        return to_jsonable(asdict(obj))

    if isinstance(obj, Mapping):
        return {str(k): to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (set, frozenset)):
        return sorted((to_jsonable(x) for x in obj), key=str)

    if isinstance(obj, (list, tuple)):
        return [to_jsonable(x) for x in obj]

    return str(obj)
