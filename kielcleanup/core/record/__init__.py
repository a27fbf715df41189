"""Record model and record stores.

A Record is the descriptive metadata document a cleanup run normalizes. It
holds typed fields plus structured person/corporate entities.
"""

from .model import (
    GND_BASE_URI,
    GND_NAMESPACE,
    AuthorityRef,
    CorporateName,
    Entity,
    EntityKind,
    Field,
    PersonName,
    Record,
)
from .xml_store import RecordStore, XmlRecordStore, record_from_element, write_record_children

__all__ = [
    "GND_BASE_URI",
    "GND_NAMESPACE",
    "AuthorityRef",
    "CorporateName",
    "Entity",
    "EntityKind",
    "Field",
    "PersonName",
    "Record",
    "RecordStore",
    "XmlRecordStore",
    "record_from_element",
    "write_record_children",
]
