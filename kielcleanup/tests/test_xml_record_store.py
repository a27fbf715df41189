import stat
from pathlib import Path

import pytest

from kielcleanup.core.errors import RecordStoreError
from kielcleanup.core.record import AuthorityRef, Entity, EntityKind, Field, XmlRecordStore

RECORD_XML = """<?xml version="1.0" encoding="utf-8"?>
<document>
  <record id="r1" type="Map">
    <metadata type="Format">Breite: 35    Länge: 38</metadata>
    <metadata type="SubjectTopic" authority="gnd" uri="http://d-nb.info/gnd/" identifier="4023219-5">Hafen</metadata>
    <person type="Creator" authority="gnd" uri="http://d-nb.info/gnd/" identifier="118599869">
      <lastName>Smith</lastName>
      <firstName>John</firstName>
    </person>
    <corporate type="CorporateCreator"><mainName>Stadtarchiv Kiel</mainName></corporate>
  </record>
</document>
"""

ANCHOR_XML = """<document>
  <record id="series" type="Series" anchor="true">
    <metadata type="Title">Kartensammlung</metadata>
    <record id="vol1" type="Map">
      <metadata type="UnitID">A 7</metadata>
    </record>
  </record>
</document>
"""


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "meta.xml"
    p.write_text(text, encoding="utf-8")
    return p


def test_load_reads_fields_entities_and_authority(tmp_path: Path) -> None:
    rec = XmlRecordStore(_write(tmp_path, RECORD_XML)).load()

    assert rec.record_id == "r1"
    assert rec.doc_type == "Map"
    assert rec.last_value("Format") == "Breite: 35    Länge: 38"
    assert rec.fields_of_type("SubjectTopic")[0].authority == AuthorityRef("4023219-5")
    assert rec.entities == [
        Entity.person("Creator", "Smith", "John", AuthorityRef("118599869")),
        Entity.corporate("CorporateCreator", "Stadtarchiv Kiel"),
    ]


def test_save_roundtrip(tmp_path: Path) -> None:
    store = XmlRecordStore(_write(tmp_path, RECORD_XML))
    rec = store.load()
    rec.add_field(Field("SizeWidth", "35"))
    rec.remove_entities_of_type("CorporateCreator", EntityKind.CORPORATE)

    store.save(rec)
    again = store.load()

    assert again.last_value("SizeWidth") == "35"
    assert again.last_value("Format") == "Breite: 35    Länge: 38"
    assert again.entities_of_type("CorporateCreator", EntityKind.CORPORATE) == []
    assert again.entities_of_type("Creator", EntityKind.PERSON)[0].authority.identifier == "118599869"
    assert [p.name for p in tmp_path.iterdir()] == ["meta.xml"]


def test_anchor_child_is_loaded_and_anchor_preserved(tmp_path: Path) -> None:
    path = _write(tmp_path, ANCHOR_XML)
    store = XmlRecordStore(path)

    rec = store.load()
    assert rec.record_id == "vol1"
    assert rec.last_value("Title") is None

    rec.add_field(Field("Note", "checked"))
    store.save(rec)

    text = path.read_text(encoding="utf-8")
    assert "Kartensammlung" in text
    assert store.load().last_value("Note") == "checked"


@pytest.mark.parametrize(
    "text",
    [
        "<document><record id='x'><metadata>no type</metadata></record></document>",
        "<records/>",
        "<document/>",
        "<document><record",
    ],
)
def test_malformed_documents_raise(tmp_path: Path, text: str) -> None:
    with pytest.raises(RecordStoreError):
        XmlRecordStore(_write(tmp_path, text)).load()


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(RecordStoreError):
        XmlRecordStore(tmp_path / "missing.xml").load()


def test_entity_payload_must_match_kind() -> None:
    with pytest.raises(TypeError):
        Entity(EntityKind.CORPORATE, "Creator", Entity.person("X", "Y").name)


def test_save_keeps_document_permissions(tmp_path: Path) -> None:
    path = _write(tmp_path, RECORD_XML)
    path.chmod(0o644)
    store = XmlRecordStore(path)

    store.save(store.load())

    assert stat.S_IMODE(path.stat().st_mode) == 0o644
