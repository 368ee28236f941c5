from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, LargeBinary, UniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

from ...domain.constants import MAX_TEXT_BYTES
from ...domain.entities import Movie as DomainMovie
from ...domain.entities import User as DomainUser


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Movie(SQLModel, table=True):  # type: ignore[call-arg]
    """A movie. ``version`` is bumped by every successful update."""

    __tablename__: str = "movies"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(
        default_factory=_utcnow, sa_type=DateTime(timezone=True)  # type: ignore[call-overload]
    )
    title: str = Field(index=True, max_length=MAX_TEXT_BYTES)
    year: int
    runtime: int
    version: int = Field(default=1)

    genre_links: list["MovieGenre"] = Relationship(
        back_populates="movie",
        cascade_delete=True,
        sa_relationship_kwargs={"order_by": "MovieGenre.position"},
    )

    @classmethod
    def from_domain(cls, domain_movie: DomainMovie) -> "Movie":
        """Convert domain entity to persistence model."""
        return cls(
            title=domain_movie.title,
            year=domain_movie.year,
            runtime=domain_movie.runtime,
            genre_links=[
                MovieGenre(genre=g, position=i)
                for i, g in enumerate(domain_movie.genres)
            ],
        )

    def to_domain(self) -> DomainMovie:
        """Convert persistence model to domain entity."""
        return DomainMovie(
            id=self.id,
            created_at=self.created_at,
            title=self.title,
            year=self.year,
            runtime=self.runtime,
            genres=[link.genre for link in self.genre_links],
            version=self.version,
        )


class MovieGenre(SQLModel, table=True):  # type: ignore[call-arg]
    """One genre of a movie; the pair is the primary key.

    ``position`` keeps the order the genres were given in.
    """

    __tablename__: str = "movie_genres"  # type: ignore[assignment]

    movie_id: int | None = Field(
        default=None, foreign_key="movies.id", primary_key=True, ondelete="CASCADE"
    )
    genre: str = Field(primary_key=True, index=True)
    position: int = Field(default=0)

    movie: Movie | None = Relationship(back_populates="genre_links")


class Category(SQLModel, table=True):  # type: ignore[call-arg]
    """Language-independent part of a category."""

    __tablename__: str = "categories"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(
        default_factory=_utcnow, sa_type=DateTime(timezone=True)  # type: ignore[call-overload]
    )
    version: int = Field(default=1)
    is_default: bool = Field(default=False)


class CategoryTranslation(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__: str = "category_translations"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint(
            "category_id", "language_code", name="uq_category_translation_lang"
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    category_id: int = Field(foreign_key="categories.id", ondelete="CASCADE")
    language_code: str = Field(max_length=8)
    translation: str = Field(max_length=MAX_TEXT_BYTES)
    image: str


class Item(SQLModel, table=True):  # type: ignore[call-arg]
    """Language-independent part of an item.

    Deleting a category that still owns items is refused by the store.
    """

    __tablename__: str = "items"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(
        default_factory=_utcnow, sa_type=DateTime(timezone=True)  # type: ignore[call-overload]
    )
    version: int = Field(default=1)
    category_id: int = Field(
        foreign_key="categories.id", index=True, ondelete="RESTRICT"
    )


class ItemTranslation(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__: str = "item_translations"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("item_id", "language_code", name="uq_item_translation_lang"),
    )

    id: int | None = Field(default=None, primary_key=True)
    item_id: int = Field(foreign_key="items.id", ondelete="CASCADE")
    language_code: str = Field(max_length=8)
    translation: str = Field(max_length=MAX_TEXT_BYTES)
    image: str


class User(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__: str = "users"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(
        default_factory=_utcnow, sa_type=DateTime(timezone=True)  # type: ignore[call-overload]
    )
    name: str = Field(max_length=MAX_TEXT_BYTES)
    email: str = Field(unique=True, index=True)
    password_hash: str
    activated: bool = Field(default=False)
    version: int = Field(default=1)

    def to_domain(self) -> DomainUser:
        """Convert persistence model to domain entity."""
        return DomainUser(
            id=self.id,
            created_at=self.created_at,
            name=self.name,
            email=self.email,
            password_hash=self.password_hash,
            activated=self.activated,
            version=self.version,
        )


class TokenRecord(SQLModel, table=True):  # type: ignore[call-arg]
    """Persisted half of a token; the plaintext is never stored."""

    __tablename__: str = "tokens"  # type: ignore[assignment]
    __table_args__ = (Index("ix_tokens_scope_user_id", "scope", "user_id"),)

    hash: bytes = Field(sa_column=Column(LargeBinary(32), primary_key=True))
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE")
    expiry: datetime = Field(sa_type=DateTime(timezone=True))  # type: ignore[call-overload]
    scope: str = Field(max_length=32)
