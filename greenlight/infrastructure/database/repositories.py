"""Infrastructure layer - Repository implementations."""

from datetime import UTC, datetime, timedelta
from typing import Any, Final

from sqlalchemy import and_, delete, distinct, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from ...domain.entities import Movie as DomainMovie
from ...domain.entities import User as DomainUser
from ...domain.exceptions import (
    DuplicateEmail,
    EditConflict,
    RecordNotFound,
    UnsafeSortParameter,
)
from ...domain.filters import Filters, Metadata, calculate_metadata, compile_sort
from ...domain.tokens import Token, generate_token, hash_plaintext
from ...logging_config import get_logger
from ...logging_utils import log_database_operation
from .database import storage_errors
from .models import Movie as MovieModel
from .models import MovieGenre, TokenRecord
from .models import User as UserModel

logger: Final = get_logger(__name__)

_MOVIE_SORT_COLUMNS: Final = {
    "id": MovieModel.id,
    "title": MovieModel.title,
    "year": MovieModel.year,
    "runtime": MovieModel.runtime,
}


def is_unique_violation(error: IntegrityError) -> bool:
    """Tell unique-constraint violations apart from other integrity errors."""
    message = str(error.orig).lower()
    return "unique" in message or "duplicate key" in message


def is_foreign_key_violation(error: IntegrityError) -> bool:
    return "foreign key" in str(error.orig).lower()


class MovieRepository:
    """Repository for Movie persistence with optimistic concurrency."""

    def __init__(self, session: Session):
        self.session = session

    def insert(self, movie: DomainMovie) -> DomainMovie:
        """Persist a new movie; id, created_at and version come from the store."""
        movie_model = MovieModel.from_domain(movie)

        with storage_errors(self.session):
            self.session.add(movie_model)
            self.session.commit()
            self.session.refresh(movie_model)
            created = movie_model.to_domain()

        log_database_operation(operation="create", table="movies", movie_id=created.id)
        return created

    def get(self, movie_id: int) -> DomainMovie:
        if movie_id < 1:
            raise RecordNotFound()

        with storage_errors(self.session):
            movie_model = self.session.exec(
                select(MovieModel)
                .options(selectinload(MovieModel.genre_links))  # type: ignore[arg-type]
                .where(MovieModel.id == movie_id)
            ).first()

        if movie_model is None:
            raise RecordNotFound()
        return movie_model.to_domain()

    def update(self, movie: DomainMovie) -> DomainMovie:
        """Write the movie only if its version is still the stored one.

        Raises:
            EditConflict: if no row matched id and version
        """
        statement = (
            update(MovieModel)
            .where(
                MovieModel.id == movie.id,  # type: ignore[arg-type]
                MovieModel.version == movie.version,  # type: ignore[arg-type]
            )
            .values(
                title=movie.title,
                year=movie.year,
                runtime=movie.runtime,
                version=MovieModel.version + 1,
            )
        )

        with storage_errors(self.session):
            result = self.session.execute(statement)
            if result.rowcount == 0:  # type: ignore[attr-defined]
                self.session.rollback()
                logger.info(
                    "Movie update rejected - stale version",
                    movie_id=movie.id,
                    version=movie.version,
                )
                raise EditConflict()

            self.session.execute(
                delete(MovieGenre).where(MovieGenre.movie_id == movie.id)  # type: ignore[arg-type]
            )
            self.session.add_all(
                MovieGenre(movie_id=movie.id, genre=genre, position=i)
                for i, genre in enumerate(movie.genres)
            )
            self.session.commit()

        movie.version += 1
        log_database_operation(
            operation="update", table="movies", movie_id=movie.id, version=movie.version
        )
        return movie

    def delete(self, movie_id: int) -> None:
        if movie_id < 1:
            raise RecordNotFound()

        with storage_errors(self.session):
            result = self.session.execute(
                delete(MovieModel).where(MovieModel.id == movie_id)  # type: ignore[arg-type]
            )
            self.session.commit()

        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise RecordNotFound()
        log_database_operation(operation="delete", table="movies", movie_id=movie_id)

    def get_all(
        self, title: str, genres: list[str], filters: Filters
    ) -> tuple[list[DomainMovie], Metadata]:
        """List movies matching every word of ``title`` and every genre.

        Empty filters match everything. Results are ordered by the validated
        sort column, then by id so pages never overlap.
        """
        conditions: list[Any] = [
            func.lower(MovieModel.title).contains(word.lower(), autoescape=True)
            for word in title.split()
        ]
        wanted = set(genres)
        if wanted:
            having_all = (
                select(MovieGenre.movie_id)
                .where(MovieGenre.genre.in_(wanted))  # type: ignore[attr-defined]
                .group_by(MovieGenre.movie_id)
                .having(func.count(distinct(MovieGenre.genre)) == len(wanted))
            )
            conditions.append(MovieModel.id.in_(having_all))  # type: ignore[union-attr]

        column_name, direction = compile_sort(filters)
        column = _MOVIE_SORT_COLUMNS.get(column_name)
        if column is None:
            raise UnsafeSortParameter(filters.sort)
        order = column.desc() if direction == "DESC" else column.asc()  # type: ignore[union-attr]

        count_statement = select(func.count()).select_from(MovieModel)
        list_statement = select(MovieModel).options(
            selectinload(MovieModel.genre_links)  # type: ignore[arg-type]
        )
        if conditions:
            count_statement = count_statement.where(and_(*conditions))
            list_statement = list_statement.where(and_(*conditions))
        list_statement = (
            list_statement.order_by(order, MovieModel.id.asc())  # type: ignore[union-attr]
            .limit(filters.limit())
            .offset(filters.offset())
        )

        with storage_errors(self.session):
            total = self.session.exec(count_statement).one()
            movies = [m.to_domain() for m in self.session.exec(list_statement).all()]

        return movies, calculate_metadata(total, filters.page, filters.page_size)


class UserRepository:
    """Repository for User persistence operations."""

    def __init__(self, session: Session):
        self.session = session

    def insert(self, user: DomainUser, commit: bool = True) -> DomainUser:
        """Persist a new user.

        With ``commit=False`` the row is only flushed, so a later write can
        join the same transaction.

        Raises:
            DuplicateEmail: if the email address is already registered
        """
        user_model = UserModel(
            name=user.name,
            email=user.email,
            password_hash=user.password_hash,
            activated=user.activated,
        )

        with storage_errors(self.session):
            try:
                self.session.add(user_model)
                if commit:
                    self.session.commit()
                else:
                    self.session.flush()
            except IntegrityError as e:
                self.session.rollback()
                if is_unique_violation(e):
                    raise DuplicateEmail() from e
                raise
            self.session.refresh(user_model)

        log_database_operation(operation="create", table="users", user_id=user_model.id)
        return user_model.to_domain()

    def get_by_email(self, email: str) -> DomainUser:
        with storage_errors(self.session):
            user_model = self.session.exec(
                select(UserModel).where(UserModel.email == email)
            ).first()
        if user_model is None:
            raise RecordNotFound()
        return user_model.to_domain()

    def update(self, user: DomainUser) -> DomainUser:
        """Optimistic update, same rules as for movies."""
        statement = (
            update(UserModel)
            .where(
                UserModel.id == user.id,  # type: ignore[arg-type]
                UserModel.version == user.version,  # type: ignore[arg-type]
            )
            .values(
                name=user.name,
                email=user.email,
                password_hash=user.password_hash,
                activated=user.activated,
                version=UserModel.version + 1,
            )
        )

        with storage_errors(self.session):
            try:
                result = self.session.execute(statement)
            except IntegrityError as e:
                self.session.rollback()
                if is_unique_violation(e):
                    raise DuplicateEmail() from e
                raise
            if result.rowcount == 0:  # type: ignore[attr-defined]
                self.session.rollback()
                raise EditConflict()
            self.session.commit()

        user.version += 1
        return user

    def get_for_token(self, scope: str, plaintext: str) -> DomainUser:
        """Find the owner of a live token of the given scope."""
        statement = (
            select(UserModel)
            .join(TokenRecord, TokenRecord.user_id == UserModel.id)  # type: ignore[arg-type]
            .where(
                TokenRecord.hash == hash_plaintext(plaintext),
                TokenRecord.scope == scope,
                TokenRecord.expiry > datetime.now(UTC),
            )
        )
        with storage_errors(self.session):
            user_model = self.session.exec(statement).first()
        if user_model is None:
            raise RecordNotFound()
        return user_model.to_domain()


class TokenRepository:
    """Repository for token hashes."""

    def __init__(self, session: Session):
        self.session = session

    def new(self, user_id: int, ttl: timedelta, scope: str) -> Token:
        """Generate a token and persist its hash; returns the plaintext once."""
        token = generate_token(user_id, ttl, scope)
        self.insert(token)
        return token

    def insert(self, token: Token) -> None:
        """Commit the token, together with anything else pending in the session.

        A failed write rolls the whole transaction back.
        """
        record = TokenRecord(
            hash=token.hash,
            user_id=token.user_id,
            expiry=token.expiry,
            scope=token.scope,
        )
        with storage_errors(self.session):
            try:
                self.session.add(record)
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                raise

        log_database_operation(
            operation="create", table="tokens", user_id=token.user_id, scope=token.scope
        )

    def delete_all_for_user(self, scope: str, user_id: int) -> int:
        """Delete every token of ``scope`` owned by the user; returns the count."""
        with storage_errors(self.session):
            result = self.session.execute(
                delete(TokenRecord).where(
                    TokenRecord.scope == scope,  # type: ignore[arg-type]
                    TokenRecord.user_id == user_id,  # type: ignore[arg-type]
                )
            )
            self.session.commit()

        deleted: int = result.rowcount  # type: ignore[attr-defined]
        log_database_operation(
            operation="delete",
            table="tokens",
            user_id=user_id,
            scope=scope,
            deleted=deleted,
        )
        return deleted

    def get_all_for_user(self, user_id: int) -> list[TokenRecord]:
        with storage_errors(self.session):
            return list(
                self.session.exec(
                    select(TokenRecord).where(TokenRecord.user_id == user_id)
                ).all()
            )
