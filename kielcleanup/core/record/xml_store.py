from __future__ import annotations

import os
import stat
import tempfile
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET

from kielcleanup.core.errors import RecordStoreError

from .model import GND_BASE_URI, GND_NAMESPACE, AuthorityRef, Entity, Field, PersonName, Record

_ENTITY_TAGS = {"metadata", "person", "corporate"}


class RecordStore(Protocol):
    """Whole-document access to the record a run normalizes."""

    def load(self) -> Record:
        ...

    def save(self, record: Record) -> None:
        ...


def _authority_from_attrs(el: ET.Element) -> Optional[AuthorityRef]:
    identifier = (el.get("identifier") or "").strip()
    if not identifier:
        return None
    return AuthorityRef(
        identifier=identifier,
        namespace=el.get("authority") or GND_NAMESPACE,
        base_uri=el.get("uri") or GND_BASE_URI,
    )


def _authority_to_attrs(el: ET.Element, ref: Optional[AuthorityRef]) -> None:
    if ref is None:
        return
    el.set("authority", ref.namespace)
    el.set("uri", ref.base_uri)
    el.set("identifier", ref.identifier)


def _child_text(el: ET.Element, tag: str) -> str:
    child = el.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text


def record_from_element(el: ET.Element) -> Record:
    """Build a Record from a `<record>` element.

    Raises
    - RecordStoreError: if a metadata/person/corporate element has no type.
    """

    record = Record(record_id=el.get("id") or "", doc_type=el.get("type") or "")
    for child in el:
        if child.tag not in _ENTITY_TAGS:
            continue
        type_name = child.get("type")
        if not type_name:
            raise RecordStoreError(f"<{child.tag}> without type attribute in record {record.record_id!r}")
        ref = _authority_from_attrs(child)
        if child.tag == "metadata":
            record.add_field(Field(type_name=type_name, value=child.text or "", authority=ref))
        elif child.tag == "person":
            record.add_entity(
                Entity.person(type_name, _child_text(child, "lastName"), _child_text(child, "firstName"), ref)
            )
        else:
            record.add_entity(Entity.corporate(type_name, _child_text(child, "mainName"), ref))
    return record


def write_record_children(el: ET.Element, record: Record) -> None:
    """Replace the metadata/person/corporate children of `el` with the record content."""

    for child in list(el):
        if child.tag in _ENTITY_TAGS:
            el.remove(child)

    for f in record.fields:
        md = ET.SubElement(el, "metadata", {"type": f.type_name})
        _authority_to_attrs(md, f.authority)
        md.text = f.value

    for entity in record.entities:
        ent = ET.SubElement(el, entity.kind.value, {"type": entity.type_name})
        _authority_to_attrs(ent, entity.authority)
        if isinstance(entity.name, PersonName):
            ET.SubElement(ent, "lastName").text = entity.name.last_name
            ET.SubElement(ent, "firstName").text = entity.name.first_name
        else:
            ET.SubElement(ent, "mainName").text = entity.display_name


@dataclass(slots=True)
class XmlRecordStore:
    """Record store backed by an XML document on disk.

    Layout: `<document><record id=.. type=..>...</record></document>`.
    A top-level record with `anchor="true"` is a container; its first nested
    `<record>` is the one loaded and saved, the anchor itself is left as is.

    Security notes:
    - The document is parsed with defusedxml (no entity expansion).
    - Saves write a temp file in the same folder and replace atomically.

    Complexity
    - load / save: O(n) in document size
    """

    path: Path

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    def _read_tree(self) -> ET.ElementTree:
        try:
            return DefusedET.parse(str(self.path))
        except (OSError, DefusedET.ParseError, DefusedXmlException) as e:
            raise RecordStoreError(f"cannot read record document {self.path}: {e}") from e

    def _target(self, root: ET.Element) -> ET.Element:
        if root.tag != "document":
            raise RecordStoreError(f"unexpected root element <{root.tag}> in {self.path}")
        top = root.find("record")
        if top is None:
            raise RecordStoreError(f"no <record> in {self.path}")
        if (top.get("anchor") or "").lower() == "true":
            child = top.find("record")
            if child is None:
                raise RecordStoreError(f"anchor record without child in {self.path}")
            return child
        return top

    def load(self) -> Record:
        tree = self._read_tree()
        return record_from_element(self._target(tree.getroot()))

    def save(self, record: Record) -> None:
        tree = self._read_tree()
        target = self._target(tree.getroot())
        write_record_children(target, record)

        fd, tmp_name = tempfile.mkstemp(prefix=".record-", suffix=".xml", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "wb") as f:
                tree.write(f, encoding="utf-8", xml_declaration=True)
            # mkstemp creates 0600; the document keeps its own permissions.
            os.chmod(tmp_name, stat.S_IMODE(os.stat(self.path).st_mode))
            os.replace(tmp_name, self.path)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise RecordStoreError(f"cannot save record document {self.path}: {e}") from e
