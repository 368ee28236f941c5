"""Repositories for entities stored as a parent row plus one row per language.

Each entity picks how a second translation for the same language is treated:

* ``STRICT`` - adding a language that already exists is a DuplicateTranslation;
  changing an existing language is a separate operation.
* ``UPSERT`` - one "set translation" call inserts or replaces the row in a
  single ``INSERT ... ON CONFLICT DO UPDATE`` statement.

Categories are strict, items upsert.
"""

from enum import StrEnum
from typing import Any, ClassVar, Final, Generic, TypeVar

from sqlalchemy import delete, exists, false, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, select

from ...domain.entities import Category as DomainCategory
from ...domain.entities import Item as DomainItem
from ...domain.exceptions import (
    CannotDeleteProtected,
    CategoryDoesNotExist,
    DuplicateTranslation,
    RecordNotFound,
)
from ...logging_config import get_logger
from ...logging_utils import log_database_operation
from .database import storage_errors
from .models import Category as CategoryModel
from .models import CategoryTranslation
from .models import Item as ItemModel
from .models import ItemTranslation
from .repositories import is_foreign_key_violation, is_unique_violation

logger: Final = get_logger(__name__)

EntityT = TypeVar("EntityT", DomainCategory, DomainItem)


class TranslationPolicy(StrEnum):
    STRICT = "strict"
    UPSERT = "upsert"


class TranslationRepository(Generic[EntityT]):
    """Shared persistence for translatable parents."""

    parent_model: ClassVar[type[SQLModel]]
    translation_model: ClassVar[type[SQLModel]]
    parent_key: ClassVar[str]
    entity_name: ClassVar[str]
    policy: ClassVar[TranslationPolicy]

    def __init__(self, session: Session, atomic_inserts: bool = True):
        self.session = session
        self.atomic_inserts = atomic_inserts

    # Hooks for subclasses

    def _new_parent(self, entity: EntityT) -> Any:
        raise NotImplementedError

    def _to_domain(self, parent: Any, translation: Any) -> EntityT:
        raise NotImplementedError

    def _text(self, entity: EntityT) -> str:
        raise NotImplementedError

    def _insert_integrity_error(self, entity: EntityT, error: IntegrityError) -> None:
        """Translate an integrity error raised while inserting a parent."""

    # Helpers

    def _translation_values(self, entity: EntityT) -> dict[str, Any]:
        return {
            self.parent_key: entity.id,
            "language_code": entity.language,
            "translation": self._text(entity),
            "image": entity.image,
        }

    def _parent_id_column(self) -> Any:
        return getattr(self.translation_model, self.parent_key)

    def _upsert_statement(self, entity: EntityT) -> Any:
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            statement = postgresql.insert(self.translation_model)
        elif dialect == "sqlite":
            statement = sqlite.insert(self.translation_model)
        else:
            raise NotImplementedError(f"upsert is not supported on {dialect}")

        statement = statement.values(**self._translation_values(entity))
        return statement.on_conflict_do_update(
            index_elements=[self.parent_key, "language_code"],
            set_={
                "translation": statement.excluded.translation,
                "image": statement.excluded.image,
            },
        )

    def _require_parent(self, parent_id: int | None) -> Any:
        if parent_id is None or parent_id < 1:
            raise RecordNotFound()
        parent = self.session.get(self.parent_model, parent_id)
        if parent is None:
            raise RecordNotFound()
        return parent

    # Operations

    def insert(self, entity: EntityT) -> EntityT:
        """Create the parent row (version 1) and its first translation.

        With ``atomic_inserts`` both rows are written in one transaction;
        otherwise the parent is committed first and survives a failing
        translation write.
        """
        parent = self._new_parent(entity)

        with storage_errors(self.session):
            try:
                self.session.add(parent)
                if self.atomic_inserts:
                    self.session.flush()
                else:
                    self.session.commit()
                    self.session.refresh(parent)

                entity.id = parent.id
                self.session.add(
                    self.translation_model(**self._translation_values(entity))
                )
                self.session.commit()
            except IntegrityError as e:
                self.session.rollback()
                self._insert_integrity_error(entity, e)
                raise
            self.session.refresh(parent)

        entity.created_at = parent.created_at
        entity.version = parent.version
        log_database_operation(
            operation="create",
            table=self.parent_model.__tablename__,
            record_id=entity.id,
            language=entity.language,
        )
        return entity

    def add_translation(self, entity: EntityT) -> EntityT:
        """Strict insert of a new language for an existing parent.

        Raises:
            RecordNotFound: if the parent does not exist
            DuplicateTranslation: if the language is already present
        """
        with storage_errors(self.session):
            parent = self._require_parent(entity.id)
            try:
                self.session.add(
                    self.translation_model(**self._translation_values(entity))
                )
                self.session.commit()
            except IntegrityError as e:
                self.session.rollback()
                if is_unique_violation(e):
                    logger.info(
                        "Translation rejected - language already present",
                        entity=self.entity_name,
                        record_id=entity.id,
                        language=entity.language,
                    )
                    raise DuplicateTranslation(self.entity_name) from e
                raise
            self.session.refresh(parent)

        entity.created_at = parent.created_at
        entity.version = parent.version
        return entity

    def upsert_translation(self, entity: EntityT, *, commit: bool = True) -> None:
        """Insert the translation or replace text and image in place."""
        with storage_errors(self.session):
            try:
                self.session.execute(self._upsert_statement(entity))
                if commit:
                    self.session.commit()
            except IntegrityError as e:
                self.session.rollback()
                if is_foreign_key_violation(e):
                    raise RecordNotFound() from e
                if is_unique_violation(e):
                    raise DuplicateTranslation(self.entity_name) from e
                raise

    def get(self, parent_id: int, language: str) -> EntityT:
        if parent_id < 1:
            raise RecordNotFound()

        statement = (
            select(self.parent_model, self.translation_model)
            .join(
                self.translation_model,
                self._parent_id_column() == self.parent_model.id,  # type: ignore[attr-defined]
            )
            .where(
                self.parent_model.id == parent_id,  # type: ignore[attr-defined]
                self.translation_model.language_code == language,  # type: ignore[attr-defined]
            )
        )
        with storage_errors(self.session):
            row = self.session.exec(statement).first()
        if row is None:
            raise RecordNotFound()
        return self._to_domain(*row)

    def get_all(self, language: str) -> list[EntityT]:
        """Every parent that has a translation in ``language``, by id."""
        statement = (
            select(self.parent_model, self.translation_model)
            .join(
                self.translation_model,
                self._parent_id_column() == self.parent_model.id,  # type: ignore[attr-defined]
            )
            .where(self.translation_model.language_code == language)  # type: ignore[attr-defined]
            .order_by(self.parent_model.id)  # type: ignore[attr-defined]
        )
        with storage_errors(self.session):
            rows = self.session.exec(statement).all()
        return [self._to_domain(parent, translation) for parent, translation in rows]

    def find_untranslated(self, language: str) -> list[int]:
        """Ids of parents that have no translation in ``language``."""
        translated = exists().where(
            self._parent_id_column() == self.parent_model.id,  # type: ignore[attr-defined]
            self.translation_model.language_code == language,  # type: ignore[attr-defined]
        )
        statement = (
            select(self.parent_model.id)  # type: ignore[attr-defined]
            .where(~translated)
            .order_by(self.parent_model.id)  # type: ignore[attr-defined]
        )
        with storage_errors(self.session):
            return list(self.session.exec(statement).all())

    def delete(self, parent_id: int) -> None:
        """Delete a parent; its translations go with it."""
        if parent_id < 1:
            raise RecordNotFound()

        with storage_errors(self.session):
            result = self.session.execute(
                delete(self.parent_model).where(
                    self.parent_model.id == parent_id  # type: ignore[attr-defined]
                )
            )
            self.session.commit()

        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise RecordNotFound()
        log_database_operation(
            operation="delete",
            table=self.parent_model.__tablename__,
            record_id=parent_id,
        )


class CategoryRepository(TranslationRepository[DomainCategory]):
    parent_model = CategoryModel
    translation_model = CategoryTranslation
    parent_key = "category_id"
    entity_name = "category"
    policy = TranslationPolicy.STRICT

    def _new_parent(self, entity: DomainCategory) -> CategoryModel:
        return CategoryModel(is_default=entity.is_default)

    def _to_domain(
        self, parent: CategoryModel, translation: CategoryTranslation
    ) -> DomainCategory:
        return DomainCategory(
            id=parent.id,
            title=translation.translation,
            image=translation.image,
            language=translation.language_code,
            is_default=parent.is_default,
            created_at=parent.created_at,
            version=parent.version,
        )

    def _text(self, entity: DomainCategory) -> str:
        return entity.title

    def delete(self, parent_id: int) -> None:
        """Delete a category unless it is the default or still owns items.

        Raises:
            RecordNotFound: if no category has this id
            CannotDeleteProtected: if the store refuses the delete
        """
        if parent_id < 1:
            raise RecordNotFound()

        statement = delete(CategoryModel).where(
            CategoryModel.id == parent_id,  # type: ignore[arg-type]
            CategoryModel.is_default == false(),  # type: ignore[arg-type]
        )
        with storage_errors(self.session):
            try:
                result = self.session.execute(statement)
                self.session.commit()
            except IntegrityError as e:
                self.session.rollback()
                if is_foreign_key_violation(e):
                    raise CannotDeleteProtected(
                        "can't delete a category that still has items"
                    ) from e
                raise

            if result.rowcount == 0:  # type: ignore[attr-defined]
                if self.session.get(CategoryModel, parent_id) is not None:
                    raise CannotDeleteProtected()
                raise RecordNotFound()

        log_database_operation(
            operation="delete", table="categories", record_id=parent_id
        )


class ItemRepository(TranslationRepository[DomainItem]):
    parent_model = ItemModel
    translation_model = ItemTranslation
    parent_key = "item_id"
    entity_name = "item"
    policy = TranslationPolicy.UPSERT

    def _new_parent(self, entity: DomainItem) -> ItemModel:
        return ItemModel(category_id=entity.category_id)

    def _to_domain(self, parent: ItemModel, translation: ItemTranslation) -> DomainItem:
        return DomainItem(
            id=parent.id,
            category_id=parent.category_id,
            name=translation.translation,
            image=translation.image,
            language=translation.language_code,
            created_at=parent.created_at,
            version=parent.version,
        )

    def _text(self, entity: DomainItem) -> str:
        return entity.name

    def _insert_integrity_error(self, entity: DomainItem, error: IntegrityError) -> None:
        if is_foreign_key_violation(error):
            raise CategoryDoesNotExist(entity.category_id) from error

    def _touch_parent(self, item_id: int, category_id: int | None) -> None:
        values: dict[str, Any] = {"version": ItemModel.version + 1}
        if category_id is not None:
            values["category_id"] = category_id
        statement = (
            update(ItemModel)
            .where(ItemModel.id == item_id)  # type: ignore[arg-type]
            .values(**values)
        )
        try:
            result = self.session.execute(statement)
        except IntegrityError as e:
            self.session.rollback()
            if is_foreign_key_violation(e):
                raise CategoryDoesNotExist(category_id) from e
            raise
        if result.rowcount == 0:  # type: ignore[attr-defined]
            self.session.rollback()
            raise RecordNotFound()

    def update_parent_reference(self, item_id: int, category_id: int) -> None:
        """Move an item to another category.

        The foreign key decides whether the category exists; there is no
        separate lookup.

        Raises:
            RecordNotFound: if the item does not exist
            CategoryDoesNotExist: if the category does not exist
        """
        with storage_errors(self.session):
            self._touch_parent(item_id, category_id)
            self.session.commit()

        log_database_operation(
            operation="update", table="items", record_id=item_id, category_id=category_id
        )

    def _translation_matches(self, item: DomainItem) -> bool:
        current = self.session.exec(
            select(ItemTranslation).where(
                ItemTranslation.item_id == item.id,  # type: ignore[arg-type]
                ItemTranslation.language_code == item.language,  # type: ignore[arg-type]
            )
        ).first()
        return (
            current is not None
            and current.translation == item.name
            and current.image == item.image
        )

    def update(self, item: DomainItem, update_category: bool) -> DomainItem:
        """Set the item's translation and optionally its category, atomically.

        The version only moves when something was actually written, so
        repeating an update leaves the item untouched.
        """
        if item.id is None or item.id < 1:
            raise RecordNotFound()

        with storage_errors(self.session):
            translation_changed = not self._translation_matches(item)
            if translation_changed:
                self.upsert_translation(item, commit=False)
            if translation_changed or update_category:
                self._touch_parent(
                    item.id, item.category_id if update_category else None
                )
            self.session.commit()

        updated = self.get(item.id, item.language)
        log_database_operation(
            operation="update",
            table="items",
            record_id=item.id,
            language=item.language,
            category_changed=update_category,
        )
        return updated

    def get_category_id(self, item_id: int) -> int:
        """Category the item currently belongs to, independent of language."""
        with storage_errors(self.session):
            item = self._require_parent(item_id)
        return item.category_id  # type: ignore[no-any-return]
