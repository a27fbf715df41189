from pathlib import Path

from fastapi.testclient import TestClient

from kielcleanup.api.server import create_app

RECORD_XML = b"""<document>
  <record id="map-7" type="Map">
    <metadata type="Format">Breite: 35    L\xc3\xa4nge: 38</metadata>
    <metadata type="CreatorRaw">Smith, John GND:118599869</metadata>
  </record>
</document>
"""

CONFIG_JSON = """{
  "composite": {"source": "Format", "labels": {"Breite": "SizeWidth"}},
  "persons": {"CreatorRaw": "Creator"}
}
"""


def _client(tmp_path: Path) -> TestClient:
    cfg = tmp_path / "cleanup.json"
    cfg.write_text(CONFIG_JSON, encoding="utf-8")
    return TestClient(create_app(config_path=str(cfg)))


def test_health_and_request_id(tmp_path: Path):
    client = _client(tmp_path)

    r = client.get("/health", headers={"X-Request-ID": "abc-123"})

    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.headers["X-Request-ID"] == "abc-123"


def test_image_prefix(tmp_path: Path):
    client = _client(tmp_path)

    assert client.get("/image-prefix", params={"unit_id": "A 7"}).json() == {
        "unit_id": "A 7",
        "prefix": "A00007",
        "resolved": True,
    }
    assert client.get("/image-prefix", params={"unit_id": "A x"}).json()["resolved"] is False


def test_normalize_upload(tmp_path: Path):
    client = _client(tmp_path)

    r = client.post("/normalize", files={"file": ("meta.xml", RECORD_XML, "application/xml")})

    assert r.status_code == 200
    body = r.json()
    assert body["record_id"] == "map-7"
    assert {"type": "SizeWidth", "value": "35", "authority": None} in body["fields"]
    assert body["entities"][0]["last_name"] == "Smith"
    assert body["report"]["reclassified"][0]["created"] == 1


def test_malformed_upload_is_rejected(tmp_path: Path):
    client = _client(tmp_path)

    r = client.post("/normalize", files={"file": ("meta.xml", b"<document><record", "application/xml")})

    assert r.status_code == 400
    assert r.json()["error"] == "invalid_record"
