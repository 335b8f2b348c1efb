"""Test cursor persistence and the XP ledger.

Tests for zen_sutra.tracer.progress:
    - load_index: missing, numeric strings, garbage, out of range
    - save_index writes an int under the configured key
    - award_xp: creates, increments, preserves other profile fields
    - Malformed profiles are left untouched
    - Failing stores are reported, never raised
    - YamlFileStore round-trips through an atomic file

Run:
    pytest tests/test_progress.py -v
"""

import logging

import pytest

from zen_sutra.tracer.progress import InMemoryStore, ProgressStore, YamlFileStore, _parse_index
from zen_sutra.utils.validators import ProgressConfig


class BrokenStore:
    def get(self, key):
        raise OSError("quota exceeded")

    def set(self, key, value):
        raise OSError("quota exceeded")


# ============================================================================
# CURSOR
# ============================================================================

@pytest.mark.parametrize("raw,expected", [
    (None, 0),
    (3, 3),
    ("3", 3),
    ("3abc", 3),
    (" 4 ", 4),
    (2.9, 2),
    ("abc", 0),
    ("", 0),
    (-1, 0),
    (10, 0),
    (True, 0),
    (float("nan"), 0),
    (float("inf"), 0),
])
def test_load_index(raw, expected):
    store = InMemoryStore({} if raw is None else {"zen_sutra_index": raw})
    assert ProgressStore(store).load_index(10) == expected


def test_parse_index_signs():
    assert _parse_index("+7") == 7
    assert _parse_index("-2") == -2
    assert _parse_index("-") is None


def test_save_index():
    store = InMemoryStore()
    assert ProgressStore(store).save_index(5) is True
    assert store.data == {"zen_sutra_index": 5}


def test_custom_keys():
    store = InMemoryStore({"cursor": "1"})
    progress = ProgressStore(store, ProgressConfig(index_key="cursor", profile_key="me"))
    assert progress.load_index(3) == 1
    progress.award_xp(2)
    assert store.data["me"] == {"totalXP": 2, "spentXP": 0}


# ============================================================================
# XP LEDGER
# ============================================================================

class TestAwardXp:
    def test_creates_profile(self) -> None:
        store = InMemoryStore()
        assert ProgressStore(store).award_xp(1) is True
        assert store.data["zen_profile"] == {"totalXP": 1, "spentXP": 0}

    def test_increments_and_keeps_other_fields(self) -> None:
        store = InMemoryStore({"zen_profile": {"totalXP": 10, "spentXP": 4, "title": "novice"}})
        ProgressStore(store).award_xp(1)
        assert store.data["zen_profile"] == {"totalXP": 11, "spentXP": 4, "title": "novice"}

    def test_json_string_profile(self) -> None:
        store = InMemoryStore({"zen_profile": '{"totalXP": 2, "spentXP": 1}'})
        ProgressStore(store).award_xp(1)
        assert store.data["zen_profile"] == {"totalXP": 3, "spentXP": 1}

    def test_malformed_profile_untouched(self, caplog) -> None:
        store = InMemoryStore({"zen_profile": "{not json"})
        with caplog.at_level(logging.WARNING):
            assert ProgressStore(store).award_xp(1) is False
        assert store.data["zen_profile"] == "{not json"
        assert "Could not award" in caplog.text

    def test_non_mapping_profile_untouched(self) -> None:
        store = InMemoryStore({"zen_profile": [1, 2]})
        assert ProgressStore(store).award_xp(1) is False
        assert store.data["zen_profile"] == [1, 2]


# ============================================================================
# FAILURES
# ============================================================================

def test_broken_store_is_best_effort(caplog):
    progress = ProgressStore(BrokenStore())
    with caplog.at_level(logging.WARNING):
        assert progress.load_index(5) == 0
        assert progress.save_index(1) is False
        assert progress.award_xp(1) is False
    assert "quota exceeded" in caplog.text


# ============================================================================
# YAML FILE STORE
# ============================================================================

def test_yaml_store_roundtrip(tmp_path):
    path = tmp_path / "progress.yaml"
    store = YamlFileStore(path)
    assert store.get("zen_sutra_index") is None

    progress = ProgressStore(store)
    progress.save_index(3)
    progress.award_xp(1)

    reopened = ProgressStore(YamlFileStore(path))
    assert reopened.load_index(10) == 3
    assert YamlFileStore(path).get("zen_profile") == {"totalXP": 1, "spentXP": 0}
    assert not list(tmp_path.glob("*.tmp"))


def test_yaml_store_keeps_foreign_keys(tmp_path):
    path = tmp_path / "progress.yaml"
    path.write_text("theme: dark\n", encoding="utf-8")
    YamlFileStore(path).set("zen_sutra_index", 1)
    assert YamlFileStore(path).get("theme") == "dark"


def test_yaml_store_rejects_non_mapping(tmp_path):
    path = tmp_path / "progress.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        YamlFileStore(path).get("zen_sutra_index")
