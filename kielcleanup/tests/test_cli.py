import json
from pathlib import Path

from kielcleanup.cli.main import main

RECORD_XML = """<document>
  <record id="map-7" type="Map">
    <metadata type="UnitID">A 7</metadata>
    <metadata type="CreatorRaw">Doe, Jane GND:118</metadata>
  </record>
</document>
"""

CONFIG_YAML = """persons:
  CreatorRaw: Creator
images:
  unit_id_field: UnitID
  import_folder: {import_folder}
  target_folder: {target_folder}
steps_to_skip:
  - Scanning
"""


def _setup(tmp_path: Path):
    record = tmp_path / "meta.xml"
    record.write_text(RECORD_XML, encoding="utf-8")
    import_folder = tmp_path / "import"
    import_folder.mkdir()
    (import_folder / "A00007_001.tif").write_bytes(b"img")
    config = tmp_path / "cleanup.yaml"
    config.write_text(
        CONFIG_YAML.format(import_folder=import_folder, target_folder=tmp_path / "master"),
        encoding="utf-8",
    )
    return record, config


def test_resolve_prefix(capsys):
    assert main(["resolve-prefix", "A 7"]) == 0
    assert capsys.readouterr().out.strip() == "A00007"

    assert main(["resolve-prefix", "A"]) == 1


def test_run_with_step_database(tmp_path: Path, capsys):
    record, config = _setup(tmp_path)
    db = tmp_path / "steps.db"
    assert main(["db-add-step", "--db", str(db), "--title", "Scanning", "--title", "QA"]) == 0
    capsys.readouterr()

    rc = main(["run", str(record), "--config", str(config), "--db", str(db), "--json"])

    assert rc == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["success"] is True
    assert summary["images"] == {"prefix": "A00007", "copied": ["A00007_001.tif"]}
    assert summary["disabled_steps"] == ["Scanning"]
    assert summary["integrity_ok"] is True

    assert main(["db-list-steps", "--db", str(db), "--json"]) == 0
    steps = json.loads(capsys.readouterr().out)
    assert [(s["title"], s["status"]) for s in steps] == [("Scanning", "DEACTIVATED"), ("QA", "OPEN")]

    assert main(["db-list-runs", "--db", str(db)]) == 0
    runs = json.loads(capsys.readouterr().out)
    assert runs[0]["run_id"] == summary["run_id"]


def test_normalize_record_prints_without_saving(tmp_path: Path, capsys):
    record, config = _setup(tmp_path)

    assert main(["normalize-record", str(record), "--config", str(config)]) == 0

    out = json.loads(capsys.readouterr().out)
    assert out["saved"] is False
    assert out["record"]["entities"][0]["last_name"] == "Doe"
    assert "<person" not in record.read_text(encoding="utf-8")


def test_match_images_by_unit_id(tmp_path: Path, capsys):
    _, _ = _setup(tmp_path)
    target = tmp_path / "out"

    rc = main(
        [
            "match-images",
            "--unit-id",
            "A 7",
            "--import-folder",
            str(tmp_path / "import"),
            "--target-folder",
            str(target),
        ]
    )

    assert rc == 0
    assert json.loads(capsys.readouterr().out)["copied"] == ["A00007_001.tif"]
    assert (target / "A00007_001.tif").exists()


def test_invalid_config_exit_code(tmp_path: Path, capsys):
    record, _ = _setup(tmp_path)
    bad = tmp_path / "bad.yaml"
    bad.write_text("authority:\n  marker: slash\n", encoding="utf-8")

    assert main(["run", str(record), "--config", str(bad)]) == 2
    assert "invalid authority.marker" in capsys.readouterr().err


def test_failed_run_exit_code(tmp_path: Path, capsys):
    _, config = _setup(tmp_path)

    assert main(["run", str(tmp_path / "missing.xml"), "--config", str(config)]) == 1
    assert "FAILED (load:" in capsys.readouterr().out
