from __future__ import annotations

import re
from typing import Dict, Iterable, List, Tuple

# Sub-parts of a composite value are separated by wide gaps; single spaces
# belong to the part itself ("Maßstab: 1:10000"). Only ASCII whitespace
# separates; non-breaking spaces stay inside a part.
_PART_GAP = re.compile(r"\s{3,6}", re.ASCII)


def value_after_colon(token: str) -> str:
    """Return the text after the first colon, trimmed.

    A token without a colon is returned unchanged.

    Time:  O(n)
    Space: O(n)
    """

    if ":" in token:
        return token.split(":", 1)[1].strip()
    return token


def split_tokens(value: str) -> List[str]:
    """Split a composite value into its non-blank parts."""

    return [t for t in _PART_GAP.split(value or "") if t.strip()]


def split_composite(value: str, labels: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """Split a composite value into labeled sub-values.

    `labels` is an ordered sequence of (label, target_field) pairs. Each part
    is assigned to the first label it starts with; parts matching no label are
    dropped. If several parts map to the same target the last one wins.

    Returns: {target_field: sub_value}. Targets without a matching part are
    absent. Sub-values may be blank; callers decide whether to keep them.

    Time:  O(p * l) for p parts and l labels
    Space: O(p)
    """

    pairs = [(label, target) for label, target in labels if label]
    out: Dict[str, str] = {}
    for token in split_tokens(value):
        for label, target in pairs:
            if token.startswith(label):
                out[target] = value_after_colon(token)
                break
    return out
