from typing import Final, cast

from fastapi import APIRouter, Depends, Path, Response, status
from pydantic import BaseModel, Field
from sqlmodel import Session

from ..application.catalog_service import CategoryService, ItemService
from ..domain.entities import Category as DomainCategory
from ..domain.entities import Item as DomainItem
from ..domain.entities import validate_language
from ..domain.validator import Validator
from ..infrastructure.database.database import get_session
from .dependencies import get_language

category_router: Final = APIRouter(
    prefix="/v1/categories",
    tags=["categories"],
    responses={
        404: {"description": "Not Found - Category or translation does not exist"},
        409: {"description": "Conflict - Category is protected"},
        422: {"description": "Validation Error - Invalid or duplicate translation"},
    },
)

item_router: Final = APIRouter(
    prefix="/v1/items",
    tags=["items"],
    responses={
        404: {"description": "Not Found - Item or translation does not exist"},
        422: {"description": "Validation Error - Invalid item or unknown category"},
    },
)


# Request Models
class CategoryCreate(BaseModel):
    title: str = Field(default="", examples=["Fruit"])
    image: str = Field(default="", examples=["fruit.png"])


class CategoryLanguage(BaseModel):
    """Request model for adding a language to an existing category."""

    id: int = Field(description="Category to translate")
    title: str = Field(default="", examples=["فاكهة"])
    language: str = Field(default="", examples=["ar"])
    image: str = Field(
        default="", description="Defaults to the image of the default language"
    )


class ItemCreate(BaseModel):
    category_id: int = Field(default=0)
    name: str = Field(default="", examples=["Apple"])
    image: str = Field(default="", examples=["apple.png"])


class ItemTranslationSet(BaseModel):
    """Request model for setting an item's translation.

    A ``category_id`` different from the current one moves the item.
    """

    id: int
    category_id: int | None = None
    name: str = ""
    image: str = ""
    language: str = ""


# Response Models
class CategoryResponse(BaseModel):
    id: int
    title: str
    image: str
    language: str
    is_default: bool
    version: int

    @classmethod
    def from_domain(cls, category: DomainCategory) -> "CategoryResponse":
        return cls(
            id=cast(int, category.id),
            title=category.title,
            image=category.image,
            language=category.language,
            is_default=category.is_default,
            version=category.version,
        )


class CategoryEnvelope(BaseModel):
    category: CategoryResponse


class CategoryListResponse(BaseModel):
    categories: list[CategoryResponse]


class ItemResponse(BaseModel):
    id: int
    category_id: int
    name: str
    image: str
    language: str
    version: int

    @classmethod
    def from_domain(cls, item: DomainItem) -> "ItemResponse":
        return cls(
            id=cast(int, item.id),
            category_id=item.category_id,
            name=item.name,
            image=item.image,
            language=item.language,
            version=item.version,
        )


class ItemEnvelope(BaseModel):
    item: ItemResponse


class ItemListResponse(BaseModel):
    items: list[ItemResponse]


class UntranslatedResponse(BaseModel):
    language: str
    item_ids: list[int]


class MessageResponse(BaseModel):
    message: str


# Categories


@category_router.post(
    "",
    response_model=CategoryEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create a category in the default language",
)
def api_create_category(
    payload: CategoryCreate, response: Response, session: Session = Depends(get_session)
) -> CategoryEnvelope:
    category = CategoryService(session).create_category(
        title=payload.title, image=payload.image
    )
    response.headers["Location"] = f"/v1/categories/{category.id}"
    return CategoryEnvelope(category=CategoryResponse.from_domain(category))


@category_router.get("", response_model=CategoryListResponse)
def api_list_categories(
    language: str = Depends(get_language), session: Session = Depends(get_session)
) -> CategoryListResponse:
    categories = CategoryService(session).list_categories(language)
    return CategoryListResponse(
        categories=[CategoryResponse.from_domain(c) for c in categories]
    )


@category_router.put(
    "",
    response_model=CategoryEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Add a language to a category",
)
def api_add_category_language(
    payload: CategoryLanguage,
    response: Response,
    session: Session = Depends(get_session),
) -> CategoryEnvelope:
    """Add a translation; a language that already exists is rejected."""
    category = CategoryService(session).add_category_language(
        category_id=payload.id,
        title=payload.title,
        language=payload.language,
        image=payload.image,
    )
    response.headers["Location"] = f"/v1/categories/{category.id}"
    return CategoryEnvelope(category=CategoryResponse.from_domain(category))


@category_router.get("/{category_id}", response_model=CategoryEnvelope)
def api_get_category(
    category_id: int = Path(...),
    language: str = Depends(get_language),
    session: Session = Depends(get_session),
) -> CategoryEnvelope:
    category = CategoryService(session).get_category(category_id, language)
    return CategoryEnvelope(category=CategoryResponse.from_domain(category))


@category_router.delete("/{category_id}", response_model=MessageResponse)
def api_delete_category(
    category_id: int = Path(...), session: Session = Depends(get_session)
) -> MessageResponse:
    CategoryService(session).delete_category(category_id)
    return MessageResponse(message="category deleted")


# Items


@item_router.post(
    "",
    response_model=ItemEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create an item in the default language",
)
def api_create_item(
    payload: ItemCreate, response: Response, session: Session = Depends(get_session)
) -> ItemEnvelope:
    item = ItemService(session).create_item(
        category_id=payload.category_id, name=payload.name, image=payload.image
    )
    response.headers["Location"] = f"/v1/items/{item.id}"
    return ItemEnvelope(item=ItemResponse.from_domain(item))


@item_router.get("", response_model=ItemListResponse)
def api_list_items(
    language: str = Depends(get_language), session: Session = Depends(get_session)
) -> ItemListResponse:
    items = ItemService(session).list_items(language)
    return ItemListResponse(items=[ItemResponse.from_domain(i) for i in items])


@item_router.put(
    "",
    response_model=ItemEnvelope,
    summary="Set an item's translation",
)
def api_set_item_translation(
    payload: ItemTranslationSet,
    response: Response,
    session: Session = Depends(get_session),
) -> ItemEnvelope:
    """Insert or replace the translation, optionally moving the item.

    Sending the same body twice leaves the item as after the first call.
    """
    item = ItemService(session).update_item(
        item_id=payload.id,
        name=payload.name,
        language=payload.language,
        image=payload.image,
        category_id=payload.category_id,
    )
    response.headers["Location"] = f"/v1/items/{item.id}"
    return ItemEnvelope(item=ItemResponse.from_domain(item))


@item_router.get("/untranslated/{language}", response_model=UntranslatedResponse)
def api_list_untranslated_items(
    language: str = Path(...), session: Session = Depends(get_session)
) -> UntranslatedResponse:
    v = Validator()
    validate_language(v, language)
    v.raise_if_invalid()

    item_ids = ItemService(session).list_untranslated(language)
    return UntranslatedResponse(language=language, item_ids=item_ids)


@item_router.get("/{item_id}", response_model=ItemEnvelope)
def api_get_item(
    item_id: int = Path(...),
    language: str = Depends(get_language),
    session: Session = Depends(get_session),
) -> ItemEnvelope:
    item = ItemService(session).get_item(item_id, language)
    return ItemEnvelope(item=ItemResponse.from_domain(item))


@item_router.delete("/{item_id}", response_model=MessageResponse)
def api_delete_item(
    item_id: int = Path(...), session: Session = Depends(get_session)
) -> MessageResponse:
    ItemService(session).delete_item(item_id)
    return MessageResponse(message="item deleted")
