from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from kielcleanup.core.record.model import Entity, EntityKind, Field, Record

from .authority import MarkerKind, extract_authority


@dataclass(frozen=True)
class ReclassificationResult:
    """Counts for one source -> target reclassification.

    Time:  O(1)
    Space: O(1)
    """

    source_type: str
    target_type: str
    kind: EntityKind
    removed: int
    created: int
    consumed: int


def _entity_for(source: Field, target_type: str, kind: EntityKind, marker: MarkerKind) -> Entity:
    # A reference already attached to the field is kept when the value has no marker.
    if kind == EntityKind.PERSON:
        parts = extract_authority(source.value, marker, person=True)
        return Entity.person(target_type, parts.primary, parts.first_name, parts.authority_ref() or source.authority)
    parts = extract_authority(source.value, marker)
    return Entity.corporate(target_type, parts.primary, parts.authority_ref() or source.authority)


def reclassify_entities(
    record: Record,
    source_type: str,
    target_type: str,
    kind: EntityKind,
    *,
    marker: MarkerKind = MarkerKind.GND,
    consume_sources: bool = False,
) -> ReclassificationResult:
    """Turn generic fields of `source_type` into entities of `target_type`.

    Replace semantics: every entity of the target type and kind is removed
    first, so the result reflects exactly the current source fields and
    repeated runs never duplicate entities. With `consume_sources` the
    processed source fields are dropped from the record.

    Mutates `record` in place.

    Time:  O(f + e) for f fields and e entities
    Space: O(f)
    """

    kind = EntityKind(kind)
    removed = record.remove_entities_of_type(target_type, kind)

    sources = record.fields_of_type(source_type)
    for f in sources:
        record.add_entity(_entity_for(f, target_type, kind, marker))

    if consume_sources:
        for f in sources:
            record.remove_field(f)

    return ReclassificationResult(
        source_type=source_type,
        target_type=target_type,
        kind=kind,
        removed=removed,
        created=len(sources),
        consumed=len(sources) if consume_sources else 0,
    )


def normalize_authority_fields(
    record: Record,
    field_types: Iterable[str],
    *,
    marker: MarkerKind = MarkerKind.GND,
) -> int:
    """Split authority markers out of plain fields in place.

    Used for topical/geographic fields that stay fields: the value becomes
    the cleaned text and the identifier is attached as AuthorityRef. Fields
    without a marker keep their value and any existing reference.

    Returns: number of fields rewritten.
    """

    literal = MarkerKind(marker).literal
    types = set(field_types)
    changed = 0
    for f in record.fields:
        if f.type_name not in types or literal not in f.value:
            continue
        parts = extract_authority(f.value, marker)
        f.value = parts.primary
        f.authority = parts.authority_ref()
        changed += 1
    return changed
