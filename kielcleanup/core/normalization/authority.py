from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from kielcleanup.core.record.model import AuthorityRef


class MarkerKind(str, Enum):
    """Syntax used to append an authority identifier to a name.

    - pipe: "Smith, John|118599869"
    - gnd:  "Smith, John GND:118599869"
    """

    PIPE = "pipe"
    GND = "gnd"

    @property
    def literal(self) -> str:
        return _MARKER_LITERALS[self]


_MARKER_LITERALS = {MarkerKind.PIPE: "|", MarkerKind.GND: " GND:"}


@dataclass(frozen=True)
class AuthorityParts:
    """Outcome of authority extraction.

    `primary` is the cleaned value (last name for persons). `first_name` and
    `identifier` are empty strings when not present.
    """

    primary: str
    first_name: str = ""
    identifier: str = ""

    def authority_ref(self) -> Optional[AuthorityRef]:
        if not self.identifier.strip():
            return None
        return AuthorityRef(identifier=self.identifier.strip())


def extract_authority(value: str, marker: MarkerKind | str, *, person: bool = False) -> AuthorityParts:
    """Strip an authority marker from a value.

    Only the first marker occurrence is significant. For person names the
    cleaned value is split at the first comma into last and first name.
    Corporate and plain values are never comma-split.

    Time:  O(n)
    Space: O(n)
    """

    literal = MarkerKind(marker).literal
    text = value or ""
    identifier = ""
    if literal in text:
        text, rest = text.split(literal, 1)
        identifier = rest.strip()

    if person and "," in text:
        last, first = text.split(",", 1)
        return AuthorityParts(primary=last.strip(), first_name=first.strip(), identifier=identifier)

    return AuthorityParts(primary=text.strip(), identifier=identifier)
