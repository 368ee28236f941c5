"""Application layer - categories and items with per-language translations."""

from typing import Final

from sqlmodel import Session

from ..config import settings
from ..domain.entities import Category as DomainCategory
from ..domain.entities import Item as DomainItem
from ..domain.exceptions import RecordNotFound
from ..domain.validator import Validator
from ..infrastructure.database.translations import CategoryRepository, ItemRepository
from ..logging_config import get_logger
from ..metrics import record_translation_written

logger: Final = get_logger(__name__)


class CategoryService:
    """Application service for Category operations.

    A language that already exists for a category cannot be added again.
    """

    def __init__(self, session: Session, atomic_inserts: bool | None = None):
        if atomic_inserts is None:
            atomic_inserts = settings.atomic_translatable_inserts
        self.category_repo = CategoryRepository(session, atomic_inserts=atomic_inserts)

    def create_category(
        self,
        title: str,
        image: str,
        language: str | None = None,
        is_default: bool = False,
    ) -> DomainCategory:
        category = DomainCategory(
            id=None,
            title=title,
            image=image,
            language=language or settings.default_language,
            is_default=is_default,
        )

        v = Validator()
        category.validate(v)
        v.raise_if_invalid()

        created = self.category_repo.insert(category)
        record_translation_written("category", created.language)
        logger.info(
            "Category created", category_id=created.id, language=created.language
        )
        return created

    def add_category_language(
        self, category_id: int, title: str, language: str, image: str = ""
    ) -> DomainCategory:
        """Add a translation; the image defaults to the default-language one.

        Raises:
            RecordNotFound: if the category has no default-language row
            ValidationFailed: if the new translation is invalid
            DuplicateTranslation: if the language is already present
        """
        base = self.category_repo.get(category_id, settings.default_language)

        category = DomainCategory(
            id=base.id,
            title=title,
            image=image or base.image,
            language=language,
            is_default=base.is_default,
            created_at=base.created_at,
            version=base.version,
        )

        v = Validator()
        category.validate(v)
        v.raise_if_invalid()

        added = self.category_repo.add_translation(category)
        record_translation_written("category", added.language)
        return added

    def get_category(self, category_id: int, language: str) -> DomainCategory:
        return self.category_repo.get(category_id, language)

    def list_categories(self, language: str) -> list[DomainCategory]:
        return self.category_repo.get_all(language)

    def delete_category(self, category_id: int) -> None:
        self.category_repo.delete(category_id)
        logger.info("Category deleted", category_id=category_id)


class ItemService:
    """Application service for Item operations.

    Setting an item's translation replaces an existing one for the language.
    """

    def __init__(self, session: Session, atomic_inserts: bool | None = None):
        if atomic_inserts is None:
            atomic_inserts = settings.atomic_translatable_inserts
        self.item_repo = ItemRepository(session, atomic_inserts=atomic_inserts)

    def create_item(
        self, category_id: int, name: str, image: str, language: str | None = None
    ) -> DomainItem:
        item = DomainItem(
            id=None,
            category_id=category_id,
            name=name,
            image=image,
            language=language or settings.default_language,
        )

        v = Validator()
        item.validate(v)
        v.raise_if_invalid()

        created = self.item_repo.insert(item)
        record_translation_written("item", created.language)
        logger.info("Item created", item_id=created.id, category_id=category_id)
        return created

    def update_item(
        self,
        item_id: int,
        name: str,
        language: str,
        image: str = "",
        category_id: int | None = None,
    ) -> DomainItem:
        """Set the item's translation for ``language`` and maybe its category.

        Both changes are written together; if the new category does not exist
        the translation is left as it was.

        Raises:
            RecordNotFound: if the item does not exist
            ValidationFailed: if the translation is invalid
            CategoryDoesNotExist: if ``category_id`` names no category
        """
        current_category = self.item_repo.get_category_id(item_id)

        if not image:
            image = self._fallback_image(item_id, language)

        item = DomainItem(
            id=item_id,
            category_id=category_id or current_category,
            name=name,
            image=image,
            language=language,
        )

        v = Validator()
        item.validate(v)
        v.raise_if_invalid()

        updated = self.item_repo.update(
            item, update_category=item.category_id != current_category
        )
        record_translation_written("item", updated.language)
        return updated

    def _fallback_image(self, item_id: int, language: str) -> str:
        for candidate in (language, settings.default_language):
            try:
                return self.item_repo.get(item_id, candidate).image
            except RecordNotFound:
                continue
        return ""

    def reassign_category(self, item_id: int, category_id: int) -> None:
        self.item_repo.update_parent_reference(item_id, category_id)
        logger.info("Item moved", item_id=item_id, category_id=category_id)

    def get_item(self, item_id: int, language: str) -> DomainItem:
        return self.item_repo.get(item_id, language)

    def list_items(self, language: str) -> list[DomainItem]:
        return self.item_repo.get_all(language)

    def list_untranslated(self, language: str) -> list[int]:
        return self.item_repo.find_untranslated(language)

    def delete_item(self, item_id: int) -> None:
        self.item_repo.delete(item_id)
        logger.info("Item deleted", item_id=item_id)
