import pytest

from lore.media.store import MediaItem, MediaStore, stable_item_id


def _item(owner="flams1", id=1, title="Akira", category="ANIME"):
    return MediaItem(owner_id=owner, id=id, title=title, category=category)


def test_stable_item_id():
    assert stable_item_id(42) == 42
    assert stable_item_id("42") == 42
    assert stable_item_id(3.0) == 3
    assert stable_item_id("zyTCAlFPjgYC") == stable_item_id("zyTCAlFPjgYC")
    assert 0 <= stable_item_id("zyTCAlFPjgYC") < 2**31 + 1
    assert stable_item_id("a") == 97
    assert stable_item_id("+7") == 7
    assert stable_item_id(" 77 ") == 77
    for bad in (None, "", "  ", True, [1], 0, -5, 0.0, "0", "-5", "+0"):
        with pytest.raises(ValueError):
            stable_item_id(bad)


def test_add_is_idempotent_per_owner():
    store = MediaStore()
    first, existed = store.add(_item(title="Akira"))
    assert not existed
    again, existed = store.add(_item(title="Other title"))
    assert existed
    assert again.title == "Akira"
    _, existed = store.add(_item(owner="random1"))
    assert not existed


def test_list_is_per_owner_and_category_newest_first():
    store = MediaStore()
    store.add(_item(id=1, title="Akira"))
    store.add(_item(id=2, title="Dune", category="BOOK"))
    store.add(_item(id=3, title="Mononoke"))
    store.add(_item(owner="random1", id=4, title="Ghost"))

    assert [it.id for it in store.list_items("flams1", "ANIME")] == [3, 1]
    assert [it.id for it in store.list_items("flams1")] == [3, 2, 1]
    assert [it.id for it in store.list_items("random1")] == [4]


def test_rating_upsert_and_delete_cascade():
    store = MediaStore()
    store.add(_item(id=7))
    assert store.upsert_rating("flams1", 7, 3.5).value == 3.5
    assert store.upsert_rating("flams1", 7, 4.0).value == 4.0
    assert store.rating_for("flams1", 7).value == 4.0

    with pytest.raises(KeyError):
        store.upsert_rating("random1", 7, 5)

    assert store.delete("flams1", 7)
    assert store.get("flams1", 7) is None
    assert store.rating_for("flams1", 7) is None
    assert not store.delete("flams1", 7)
