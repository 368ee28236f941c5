"""Tests for categories: strict translations and protected deletes."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from greenlight.application.catalog_service import CategoryService, ItemService
from greenlight.domain.entities import Category
from greenlight.domain.exceptions import (
    CannotDeleteProtected,
    DuplicateTranslation,
    RecordNotFound,
    ValidationFailed,
)
from greenlight.infrastructure.database.models import Category as CategoryModel
from greenlight.infrastructure.database.translations import CategoryRepository


def _category_rows(session: Session) -> int:
    return session.exec(select(func.count()).select_from(CategoryModel)).one()


def test_create_category_in_default_language(session: Session):
    category = CategoryService(session).create_category("Fruit", "fruit.png")

    assert category.id is not None
    assert category.language == "en"
    assert category.version == 1
    assert CategoryService(session).get_category(category.id, "en").title == "Fruit"


def test_add_language_and_read_it_back(session: Session):
    service = CategoryService(session)
    category = service.create_category("Fruit", "fruit.png")
    assert category.id is not None

    arabic = service.add_category_language(category.id, "فاكهة", "ar")

    assert arabic.image == "fruit.png"
    assert service.get_category(category.id, "ar").title == "فاكهة"
    assert [c.title for c in service.list_categories("ar")] == ["فاكهة"]


def test_adding_an_existing_language_is_a_duplicate(session: Session):
    service = CategoryService(session)
    category = service.create_category("Fruit", "fruit.png")
    assert category.id is not None
    service.add_category_language(category.id, "فاكهة", "ar")

    with pytest.raises(DuplicateTranslation):
        service.add_category_language(category.id, "فواكه", "ar")

    assert service.get_category(category.id, "ar").title == "فاكهة"


def test_add_language_to_missing_category(session: Session):
    with pytest.raises(RecordNotFound):
        CategoryService(session).add_category_language(999, "فاكهة", "ar")


def test_unsupported_language_is_rejected(session: Session):
    service = CategoryService(session)
    category = service.create_category("Fruit", "fruit.png")
    assert category.id is not None

    with pytest.raises(ValidationFailed) as exc_info:
        service.add_category_language(category.id, "Fruits", "fr")
    assert exc_info.value.errors == {"language": "fr not an allowed language"}


def test_delete_then_get_is_not_found(session: Session):
    service = CategoryService(session)
    category = service.create_category("Fruit", "fruit.png")
    assert category.id is not None
    service.add_category_language(category.id, "فاكهة", "ar")

    service.delete_category(category.id)

    for language in ("en", "ar"):
        with pytest.raises(RecordNotFound):
            service.get_category(category.id, language)
    with pytest.raises(RecordNotFound):
        service.delete_category(category.id)


def test_default_category_cannot_be_deleted(session: Session):
    service = CategoryService(session)
    default = service.create_category("General", "general.png", is_default=True)
    assert default.id is not None

    with pytest.raises(CannotDeleteProtected):
        service.delete_category(default.id)

    assert service.get_category(default.id, "en").title == "General"


def test_category_with_items_cannot_be_deleted(session: Session):
    category = CategoryService(session).create_category("Fruit", "fruit.png")
    assert category.id is not None
    ItemService(session).create_item(category.id, "Apple", "apple.png")

    with pytest.raises(CannotDeleteProtected):
        CategoryService(session).delete_category(category.id)


def test_non_atomic_insert_keeps_parent_when_translation_fails(session: Session):
    repo = CategoryRepository(session, atomic_inserts=False)

    with pytest.raises(IntegrityError):
        repo.insert(
            Category(id=None, title=None, image="x.png", language="en")  # type: ignore[arg-type]
        )

    assert _category_rows(session) == 1


def test_atomic_insert_leaves_nothing_behind(session: Session):
    repo = CategoryRepository(session, atomic_inserts=True)

    with pytest.raises(IntegrityError):
        repo.insert(
            Category(id=None, title=None, image="x.png", language="en")  # type: ignore[arg-type]
        )

    assert _category_rows(session) == 0


# API


def test_category_api_flow(client: TestClient):
    created = client.post("/v1/categories", json={"title": "Fruit", "image": "f.png"})
    assert created.status_code == 201
    category_id = created.json()["category"]["id"]
    assert created.headers["Location"] == f"/v1/categories/{category_id}"

    added = client.put(
        "/v1/categories", json={"id": category_id, "title": "فاكهة", "language": "ar"}
    )
    assert added.status_code == 201

    duplicate = client.put(
        "/v1/categories", json={"id": category_id, "title": "فواكه", "language": "ar"}
    )
    assert duplicate.status_code == 422
    assert duplicate.json()["errors"][0]["field"] == "category"

    shown = client.get(f"/v1/categories/{category_id}", headers={"Accept-Language": "ar"})
    assert shown.json()["category"]["title"] == "فاكهة"

    listed = client.get("/v1/categories")
    assert [c["title"] for c in listed.json()["categories"]] == ["Fruit"]

    assert client.delete(f"/v1/categories/{category_id}").status_code == 200
    assert client.get(f"/v1/categories/{category_id}").status_code == 404


def test_accept_language_is_validated(client: TestClient):
    response = client.get("/v1/categories", headers={"Accept-Language": "fr-FR,fr;q=0.9"})

    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "language"


def test_accept_language_region_is_ignored(client: TestClient):
    response = client.get("/v1/categories", headers={"Accept-Language": "ar-EG"})

    assert response.status_code == 200


def test_protected_delete_is_conflict(client: TestClient, session: Session):
    default = CategoryService(session).create_category(
        "General", "general.png", is_default=True
    )

    response = client.delete(f"/v1/categories/{default.id}")

    assert response.status_code == 409
    assert response.json()["detail"] == "can't delete default category"
