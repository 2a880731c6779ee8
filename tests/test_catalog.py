import json
from dataclasses import FrozenInstanceError

import pytest

from adrelevance.catalog import Catalog, CatalogLoader, Item, ItemType, default_items, item_from_record
from adrelevance.errors import InvalidInputError
from adrelevance.ranker import ScoredItem
from adrelevance.vocabulary import UserMood


def test_seed_catalog_order():
    assert [item.id for item in default_items()] == [
        "fashion_001",
        "tech_001",
        "travel_001",
        "food_001",
        "fitness_001",
        "beauty_001",
    ]


def test_items_are_immutable():
    item = default_items()[0]

    with pytest.raises(FrozenInstanceError):
        item.title = "changed"
    with pytest.raises(TypeError):
        item.topic_relevance["fashion"] = 0.1


def test_weights_outside_unit_interval_are_rejected():
    with pytest.raises(InvalidInputError):
        Item(id="x", title="X", description="", brand="B", topic_relevance={"home": 1.5})


def test_blank_id_is_rejected():
    with pytest.raises(InvalidInputError):
        Item(id="  ", title="X", description="", brand="B")


def test_duplicate_ids_are_rejected():
    catalog = Catalog(default_items())

    with pytest.raises(InvalidInputError):
        catalog.add(default_items()[0])
    assert len(catalog) == 6


def test_deactivate_swaps_in_inactive_copy():
    catalog = Catalog(default_items())
    original = catalog.get("tech_001")

    inactive = catalog.deactivate("tech_001")

    assert inactive is not None and inactive.active is False
    assert original.active is True
    assert catalog.get("tech_001") is inactive
    assert [item.id for item in catalog.items()][1] == "tech_001"
    assert catalog.deactivate("missing") is None


def test_loader_maps_synonyms(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps(
            {
                "items": [
                    {
                        "adId": "home_001",
                        "name": "Cozy Lamp",
                        "desc": "Warm light",
                        "brandName": "HomeCo",
                        "category": "home",
                        "tags": ["lamp", "decor"],
                        "topics": {"home": 0.7},
                        "moodRelevance": {"HAPPY": 0.5},
                        "type": "SPECIAL_OFFER",
                        "link": "https://example.com/lamp",
                    }
                ]
            }
        ),
        encoding="utf-8",
    )

    items, meta = CatalogLoader(path).load()

    assert len(items) == 1
    item = items[0]
    assert item.id == "home_001"
    assert item.title == "Cozy Lamp"
    assert item.brand == "HomeCo"
    assert item.categories == ("home",)
    assert item.keywords == ("lamp", "decor")
    assert dict(item.mood_relevance) == {UserMood.HAPPY: 0.5}
    assert item.item_type == ItemType.SPECIAL_OFFER
    assert item.url == "https://example.com/lamp"
    assert meta.file_name == "catalog.json"
    assert len(meta.sha256) == 64


def test_loader_accepts_plain_list(tmp_path):
    path = tmp_path / "list.json"
    path.write_text(json.dumps([{"id": "a", "title": "A"}, {"id": "b", "title": "B"}]), encoding="utf-8")

    items, _meta = CatalogLoader(path).load()

    assert [item.id for item in items] == ["a", "b"]


def test_unknown_mood_label_is_invalid_input():
    with pytest.raises(InvalidInputError):
        item_from_record({"id": "x", "moodRelevance": {"giddy": 0.5}})


def test_items_hash_by_id():
    item = default_items()[0]
    scored = {ScoredItem(item=item, score=0.5), ScoredItem(item=item, score=0.5)}

    assert hash(item) == hash(item.id)
    assert len({item, default_items()[0]}) == 1
    assert len(scored) == 1
