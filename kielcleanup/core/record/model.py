from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

GND_NAMESPACE: str = "gnd"
GND_BASE_URI: str = "http://d-nb.info/gnd/"


@dataclass(frozen=True)
class AuthorityRef:
    """Reference into an external authority file (GND by default).

    Only built when a non-blank identifier was found; absence is `None`
    on the owning field or entity.
    """

    identifier: str
    namespace: str = GND_NAMESPACE
    base_uri: str = GND_BASE_URI

    def __post_init__(self) -> None:
        if not self.identifier or not self.identifier.strip():
            raise ValueError("AuthorityRef identifier must not be blank")

    @property
    def uri(self) -> str:
        return f"{self.base_uri}{self.identifier}"

    def snapshot(self) -> Dict[str, str]:
        return {"namespace": self.namespace, "base_uri": self.base_uri, "identifier": self.identifier}


@dataclass(eq=False)
class Field:
    """One typed value of a record.

    Fields compare by identity: a record may hold several fields of the
    same type with equal values.
    """

    type_name: str
    value: str
    authority: Optional[AuthorityRef] = None

    def snapshot(self) -> Dict[str, Any]:
        return {
            "type": self.type_name,
            "value": self.value,
            "authority": self.authority.snapshot() if self.authority else None,
        }


class EntityKind(str, Enum):
    PERSON = "person"
    CORPORATE = "corporate"


@dataclass(frozen=True)
class PersonName:
    last_name: str
    first_name: str = ""


@dataclass(frozen=True)
class CorporateName:
    main_name: str


EntityName = Union[PersonName, CorporateName]

_NAME_TYPES = {EntityKind.PERSON: PersonName, EntityKind.CORPORATE: CorporateName}


@dataclass(frozen=True)
class Entity:
    """A structured person or corporate reference.

    `kind` is the discriminator; `name` carries the kind-specific payload.
    """

    kind: EntityKind
    type_name: str
    name: EntityName
    authority: Optional[AuthorityRef] = None

    def __post_init__(self) -> None:
        expected = _NAME_TYPES[EntityKind(self.kind)]
        if not isinstance(self.name, expected):
            raise TypeError(f"{self.kind.value} entity requires {expected.__name__}")

    @classmethod
    def person(
        cls,
        type_name: str,
        last_name: str,
        first_name: str = "",
        authority: Optional[AuthorityRef] = None,
    ) -> "Entity":
        return cls(EntityKind.PERSON, type_name, PersonName(last_name, first_name), authority)

    @classmethod
    def corporate(cls, type_name: str, main_name: str, authority: Optional[AuthorityRef] = None) -> "Entity":
        return cls(EntityKind.CORPORATE, type_name, CorporateName(main_name), authority)

    @property
    def display_name(self) -> str:
        if isinstance(self.name, PersonName):
            if self.name.first_name:
                return f"{self.name.last_name}, {self.name.first_name}"
            return self.name.last_name
        return self.name.main_name

    def snapshot(self) -> Dict[str, Any]:
        snap: Dict[str, Any] = {"kind": self.kind.value, "type": self.type_name}
        if isinstance(self.name, PersonName):
            snap["last_name"] = self.name.last_name
            snap["first_name"] = self.name.first_name
        else:
            snap["main_name"] = self.name.main_name
        snap["authority"] = self.authority.snapshot() if self.authority else None
        return snap


@dataclass
class Record:
    """Descriptive metadata document being normalized.

    Owned by a single run; not safe for concurrent mutation.

    Complexity
    - type lookups / removals: O(n) over fields or entities
    - copy: O(n) due to deep copy
    """

    record_id: str
    doc_type: str = ""
    fields: List[Field] = field(default_factory=list)
    entities: List[Entity] = field(default_factory=list)

    def fields_of_type(self, type_name: str) -> List[Field]:
        return [f for f in self.fields if f.type_name == type_name]

    def last_value(self, type_name: str) -> Optional[str]:
        """Return the value of the last field of a type, or None."""

        found = self.fields_of_type(type_name)
        return found[-1].value if found else None

    def add_field(self, new_field: Field) -> None:
        self.fields.append(new_field)

    def remove_field(self, old_field: Field) -> None:
        self.fields = [f for f in self.fields if f is not old_field]

    def remove_fields_of_type(self, type_names: Iterable[str]) -> int:
        names = set(type_names)
        before = len(self.fields)
        self.fields = [f for f in self.fields if f.type_name not in names]
        return before - len(self.fields)

    def entities_of_type(self, type_name: str, kind: EntityKind) -> List[Entity]:
        return [e for e in self.entities if e.type_name == type_name and e.kind == kind]

    def remove_entities_of_type(self, type_name: str, kind: EntityKind) -> int:
        before = len(self.entities)
        self.entities = [e for e in self.entities if not (e.type_name == type_name and e.kind == kind)]
        return before - len(self.entities)

    def add_entity(self, entity: Entity) -> None:
        self.entities.append(entity)

    def copy(self) -> "Record":
        return Record(
            record_id=self.record_id,
            doc_type=self.doc_type,
            fields=deepcopy(self.fields),
            entities=list(self.entities),
        )

    def snapshot(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "doc_type": self.doc_type,
            "fields": [f.snapshot() for f in self.fields],
            "entities": [e.snapshot() for e in self.entities],
        }
