from __future__ import annotations

import re

# ASCII whitespace only; a non-breaking space belongs to the token.
_GAP = re.compile(r"\s+", re.ASCII)
_UNIT_NUMBER = re.compile(r"\+?[0-9]+")

# Unit numbers beyond a signed 32-bit int never produced a prefix.
_MAX_UNIT_NUMBER = 2**31 - 1


def resolve_image_prefix(unit_id: str) -> str:
    """Derive the image filename prefix for a unit identifier.

    "A 7" -> "A00007": the first token followed by the unit number padded to
    five digits. Wider numbers are kept as they are. Returns "" when the
    identifier has fewer than two tokens or the second token is not a
    non-negative integer (an explicit "+" sign is accepted).

    Time:  O(n)
    Space: O(n)
    """

    tokens = [t for t in _GAP.split(unit_id or "") if t]
    if len(tokens) < 2:
        return ""
    if not _UNIT_NUMBER.fullmatch(tokens[1]):
        return ""
    number = int(tokens[1])
    if number > _MAX_UNIT_NUMBER:
        return ""
    return f"{tokens[0]}{number:05d}"
