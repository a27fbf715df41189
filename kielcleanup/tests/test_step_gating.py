from pathlib import Path

import pytest

from kielcleanup.core.errors import StepStatusError
from kielcleanup.core.workflow import SQLiteStepStatusStore, StepStatus, disable_steps_if_found


class _StoreSpy:
    def __init__(self) -> None:
        self.calls = []

    def disable_step(self, name):
        self.calls.append(name)
        return 1


def test_gate_disables_each_named_step_when_found():
    spy = _StoreSpy()

    names = disable_steps_if_found(True, ["Scanning", "QA"], spy)

    assert names == ["Scanning", "QA"]
    assert spy.calls == ["Scanning", "QA"]


def test_gate_does_nothing_without_images():
    spy = _StoreSpy()

    assert disable_steps_if_found(False, ["Scanning"], spy) == []
    assert spy.calls == []


def test_sqlite_store_disables_matching_steps(tmp_path: Path) -> None:
    store = SQLiteStepStatusStore(tmp_path / "steps.db", process_id="p1")
    store.add_step("Import")
    store.add_step("Scanning")
    store.add_step("Scanning", StepStatus.LOCKED)
    SQLiteStepStatusStore(tmp_path / "steps.db", process_id="p2").add_step("Scanning")

    assert store.disable_step("Scanning") == 2
    assert store.disable_step("Unknown") == 0

    statuses = [(s["title"], s["status"]) for s in store.list_steps()]
    assert statuses == [("Import", "OPEN"), ("Scanning", "DEACTIVATED"), ("Scanning", "DEACTIVATED")]

    other = SQLiteStepStatusStore(tmp_path / "steps.db", process_id="p2").list_steps()
    assert other[0]["status"] == "OPEN"


def test_sqlite_store_wraps_database_errors(tmp_path: Path) -> None:
    folder = tmp_path / "not-a-db"
    folder.mkdir()

    with pytest.raises(StepStatusError):
        SQLiteStepStatusStore(folder).init_schema()
