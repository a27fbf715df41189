import pytest

from kielcleanup.core.images import resolve_image_prefix


@pytest.mark.parametrize(
    "unit_id, expected",
    [
        ("A 7", "A00007"),
        ("A 00007", "A00007"),
        ("A", ""),
        ("A x", ""),
        ("", ""),
        ("Abt.47 123", "Abt.4700123"),
        ("A  7  Nachtrag", "A00007"),
        ("A 123456", "A123456"),
        ("A -7", ""),
        ("A +7", "A00007"),
        ("A +-7", ""),
        (" A 7 ", "A00007"),
        ("A\xa07", ""),
        ("A\xa0 7", "A\xa000007"),
        ("A 7a", ""),
        ("A 99999999999", ""),
    ],
)
def test_resolve_image_prefix(unit_id, expected):
    assert resolve_image_prefix(unit_id) == expected


def test_resolve_is_deterministic():
    assert resolve_image_prefix("K 12") == resolve_image_prefix("K 12") == "K00012"
