import pytest

from social_core.snapshot import GameSnapshot, SnapshotError
from social_core.storage import SLUG_MAX, SnapshotStore


# ── Save names ───────────────────────────────────────────────


def test_slug_basic():
    assert SnapshotStore.slug_for("Week 3 Blindside") == "week-3-blindside"


def test_slug_apostrophes():
    assert SnapshotStore.slug_for("Mara's Last Stand") == "maras-last-stand"
    assert SnapshotStore.slug_for("Mara’s Last Stand") == "maras-last-stand"


def test_slug_folds_accents():
    assert SnapshotStore.slug_for("Café Münch") == "cafe-munch"


def test_slug_empty():
    assert SnapshotStore.slug_for("!!!") == "untitled"


def test_slug_is_capped():
    slug = SnapshotStore.slug_for("final " * 40)
    assert len(slug) <= SLUG_MAX
    assert not slug.endswith("-")


# ── SnapshotStore ───────────────────────────────────────────


@pytest.fixture
def store(tmp_path):
    return SnapshotStore(tmp_path)


def test_save_and_load(store):
    slug = store.save("Day Two", GameSnapshot(day=2, turn=5))
    assert slug == "day-two"
    loaded = store.load("day two")
    assert loaded is not None
    assert (loaded.day, loaded.turn) == (2, 5)


def test_save_overwrites_same_slug(store):
    store.save("Run", GameSnapshot(day=1))
    store.save("run", GameSnapshot(day=4))
    assert store.list() == ["run"]
    assert store.load("Run").day == 4


def test_load_missing(store):
    assert store.load("nope") is None


def test_load_corrupt(store, tmp_path):
    (tmp_path / "saves" / "broken.json").write_text("{not json")
    with pytest.raises(SnapshotError):
        store.load("broken")


def test_list_sorted(store):
    store.save("b", GameSnapshot())
    store.save("a", GameSnapshot())
    assert store.list() == ["a", "b"]


def test_delete(store):
    store.save("gone", GameSnapshot())
    assert store.delete("gone") is True
    assert store.delete("gone") is False
    assert store.list() == []
