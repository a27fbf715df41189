from kielcleanup.core.normalization import MarkerKind, normalize_authority_fields, reclassify_entities
from kielcleanup.core.record import AuthorityRef, Entity, EntityKind, Field, PersonName, Record


def _record() -> Record:
    return Record(
        record_id="r1",
        fields=[
            Field("CreatorRaw", "Smith, John GND:118599869"),
            Field("CreatorRaw", "Doe, Jane"),
            Field("CorporateRaw", "Landesarchiv Schleswig-Holstein GND:2024870-6"),
            Field("Title", "Karte der Kieler Förde"),
        ],
        entities=[
            Entity.person("Creator", "Old", "Entry"),
            Entity.person("Editor", "Keep", "Me"),
        ],
    )


def test_persons_replace_existing_entities_of_target_type():
    rec = _record()

    result = reclassify_entities(rec, "CreatorRaw", "Creator", EntityKind.PERSON)

    creators = rec.entities_of_type("Creator", EntityKind.PERSON)
    assert [e.name for e in creators] == [PersonName("Smith", "John"), PersonName("Doe", "Jane")]
    assert creators[0].authority == AuthorityRef(identifier="118599869")
    assert creators[1].authority is None
    assert rec.entities_of_type("Editor", EntityKind.PERSON)
    assert (result.removed, result.created, result.consumed) == (1, 2, 0)


def test_running_twice_does_not_duplicate():
    rec = _record()

    reclassify_entities(rec, "CreatorRaw", "Creator", EntityKind.PERSON)
    once = list(rec.entities)
    reclassify_entities(rec, "CreatorRaw", "Creator", EntityKind.PERSON)

    assert rec.entities_of_type("Creator", EntityKind.PERSON) == [e for e in once if e.type_name == "Creator"]
    assert len(rec.entities) == len(once)


def test_sources_are_retained_by_default():
    rec = _record()

    reclassify_entities(rec, "CreatorRaw", "Creator", EntityKind.PERSON)

    assert len(rec.fields_of_type("CreatorRaw")) == 2


def test_consume_sources_removes_processed_fields():
    rec = _record()

    result = reclassify_entities(rec, "CorporateRaw", "CorporateCreator", EntityKind.CORPORATE, consume_sources=True)

    assert rec.fields_of_type("CorporateRaw") == []
    corp = rec.entities_of_type("CorporateCreator", EntityKind.CORPORATE)
    assert len(corp) == 1
    assert corp[0].display_name == "Landesarchiv Schleswig-Holstein"
    assert corp[0].authority.identifier == "2024870-6"
    assert result.consumed == 1


def test_no_source_fields_clears_target_entities():
    rec = _record()

    reclassify_entities(rec, "Missing", "Creator", EntityKind.PERSON)

    assert rec.entities_of_type("Creator", EntityKind.PERSON) == []


def test_person_and_corporate_of_same_type_name_are_independent():
    rec = Record(record_id="r", entities=[Entity.corporate("Creator", "ACME")])

    reclassify_entities(rec, "CreatorRaw", "Creator", EntityKind.PERSON)

    assert rec.entities_of_type("Creator", EntityKind.CORPORATE) == [Entity.corporate("Creator", "ACME")]


def test_bare_fields_are_cleaned_in_place():
    topic = Field("SubjectTopic", "Hafen|4023219-5")
    place = Field("SubjectGeographic", "Kiel", AuthorityRef("4030523-9"))
    rec = Record(record_id="r", fields=[topic, place, Field("Title", "A|B")])

    changed = normalize_authority_fields(rec, ["SubjectTopic", "SubjectGeographic"], marker=MarkerKind.PIPE)

    assert changed == 1
    assert topic.value == "Hafen"
    assert topic.authority == AuthorityRef("4023219-5")
    assert place.value == "Kiel"
    assert place.authority == AuthorityRef("4030523-9")
    assert rec.fields[2].value == "A|B"
    assert len(rec.entities) == 0
