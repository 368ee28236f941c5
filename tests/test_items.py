"""Tests for items: upserted translations and category reassignment."""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from greenlight.application.catalog_service import CategoryService, ItemService
from greenlight.domain.entities import Item
from greenlight.domain.exceptions import CategoryDoesNotExist, RecordNotFound
from greenlight.infrastructure.database.models import Item as ItemModel
from greenlight.infrastructure.database.translations import (
    ItemRepository,
    TranslationPolicy,
)


@pytest.fixture(name="categories")
def categories_fixture(session: Session) -> tuple[int, int]:
    service = CategoryService(session)
    fruit = service.create_category("Fruit", "fruit.png")
    vegetables = service.create_category("Vegetables", "veg.png")
    assert fruit.id is not None and vegetables.id is not None
    return fruit.id, vegetables.id


@pytest.fixture(name="apple")
def apple_fixture(session: Session, categories) -> Item:
    return ItemService(session).create_item(categories[0], "Apple", "apple.png")


def test_items_use_upsert_policy():
    assert ItemRepository.policy is TranslationPolicy.UPSERT


def test_create_item_requires_existing_category(session: Session):
    with pytest.raises(CategoryDoesNotExist):
        ItemService(session).create_item(999, "Apple", "apple.png")

    assert ItemService(session).list_items("en") == []


def test_upsert_adds_then_replaces_translation(session: Session, apple: Item):
    service = ItemService(session)
    assert apple.id is not None

    service.update_item(apple.id, "تفاح", "ar")
    service.update_item(apple.id, "تفاحة", "ar", image="apple-ar.png")

    arabic = service.get_item(apple.id, "ar")
    assert arabic.name == "تفاحة"
    assert arabic.image == "apple-ar.png"
    assert service.get_item(apple.id, "en").name == "Apple"


def test_upsert_is_idempotent(session: Session, apple: Item):
    service = ItemService(session)
    assert apple.id is not None

    first = service.update_item(apple.id, "تفاح", "ar", image="a.png")
    second = service.update_item(apple.id, "تفاح", "ar", image="a.png")

    assert (second.name, second.image, second.category_id) == (
        first.name,
        first.image,
        first.category_id,
    )
    assert second.version == first.version
    assert len(service.list_items("ar")) == 1

    session.expire_all()
    stored = session.get(ItemModel, apple.id)
    assert stored is not None
    assert stored.version == first.version


def test_update_bumps_version(session: Session, apple: Item):
    assert apple.id is not None
    updated = ItemService(session).update_item(apple.id, "Green apple", "en")

    assert updated.version == apple.version + 1


def test_update_can_move_item_to_another_category(
    session: Session, apple: Item, categories
):
    assert apple.id is not None
    moved = ItemService(session).update_item(
        apple.id, "Apple", "en", category_id=categories[1]
    )

    assert moved.category_id == categories[1]
    assert moved.version == apple.version + 1


def test_failed_reassignment_rolls_back_translation(session: Session, apple: Item):
    service = ItemService(session)
    assert apple.id is not None

    with pytest.raises(CategoryDoesNotExist):
        service.update_item(apple.id, "Renamed", "en", category_id=999)

    stored = service.get_item(apple.id, "en")
    assert stored.name == "Apple"
    assert stored.category_id == apple.category_id
    assert stored.version == apple.version


def test_update_parent_reference(session: Session, apple: Item, categories):
    repo = ItemRepository(session)
    assert apple.id is not None

    ItemService(session).reassign_category(apple.id, categories[1])
    assert repo.get(apple.id, "en").category_id == categories[1]

    with pytest.raises(CategoryDoesNotExist):
        repo.update_parent_reference(apple.id, 999)
    assert repo.get(apple.id, "en").category_id == categories[1]

    with pytest.raises(RecordNotFound):
        repo.update_parent_reference(999, categories[0])


def test_update_missing_item(session: Session, categories):
    with pytest.raises(RecordNotFound):
        ItemService(session).update_item(999, "Ghost", "en")


def test_find_untranslated(session: Session, apple: Item, categories):
    service = ItemService(session)
    pear = service.create_item(categories[0], "Pear", "pear.png")
    assert apple.id is not None and pear.id is not None

    service.update_item(apple.id, "تفاح", "ar")

    assert service.list_untranslated("ar") == [pear.id]
    assert service.list_untranslated("en") == []


def test_delete_item_removes_translations(session: Session, apple: Item):
    service = ItemService(session)
    assert apple.id is not None
    service.update_item(apple.id, "تفاح", "ar")

    service.delete_item(apple.id)

    with pytest.raises(RecordNotFound):
        service.get_item(apple.id, "ar")
    assert service.list_untranslated("ar") == []


# API


def test_item_api_flow(client: TestClient, categories):
    created = client.post(
        "/v1/items",
        json={"category_id": categories[0], "name": "Apple", "image": "apple.png"},
    )
    assert created.status_code == 201
    item_id = created.json()["item"]["id"]

    untranslated = client.get("/v1/items/untranslated/ar")
    assert untranslated.json() == {"language": "ar", "item_ids": [item_id]}

    body = {"id": item_id, "name": "تفاح", "language": "ar"}
    assert client.put("/v1/items", json=body).status_code == 200
    again = client.put("/v1/items", json=body)
    assert again.status_code == 200
    assert again.json()["item"]["image"] == "apple.png"

    shown = client.get(f"/v1/items/{item_id}", headers={"Accept-Language": "ar"})
    assert shown.json()["item"]["name"] == "تفاح"

    assert client.get("/v1/items/untranslated/ar").json()["item_ids"] == []

    assert client.delete(f"/v1/items/{item_id}").status_code == 200
    assert client.get(f"/v1/items/{item_id}").status_code == 404


def test_item_api_unknown_category(client: TestClient, categories):
    created = client.post(
        "/v1/items",
        json={"category_id": categories[0], "name": "Apple", "image": "apple.png"},
    ).json()["item"]

    response = client.put(
        "/v1/items",
        json={"id": created["id"], "name": "Apple", "language": "en", "category_id": 999},
    )

    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "category_id"


def test_untranslated_rejects_unknown_language(client: TestClient):
    response = client.get("/v1/items/untranslated/fr")

    assert response.status_code == 422
