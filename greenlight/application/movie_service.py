"""Application layer - movie use cases."""

from typing import Final

from sqlmodel import Session

from ..domain.constants import MOVIE_SORT_SAFELIST
from ..domain.entities import Movie as DomainMovie
from ..domain.exceptions import EditConflict
from ..domain.filters import Filters, Metadata, validate_filters
from ..domain.validator import Validator
from ..infrastructure.database.repositories import MovieRepository
from ..logging_config import get_logger
from ..metrics import record_edit_conflict, record_movie_created

logger: Final = get_logger(__name__)


class MovieService:
    """Application service for Movie operations."""

    def __init__(self, session: Session):
        self.movie_repo = MovieRepository(session)

    def create_movie(
        self, title: str, year: int, runtime: int, genres: list[str]
    ) -> DomainMovie:
        movie = DomainMovie(
            id=None, title=title, year=year, runtime=runtime, genres=list(genres)
        )

        v = Validator()
        movie.validate(v)
        v.raise_if_invalid()

        created = self.movie_repo.insert(movie)
        record_movie_created()
        logger.info("Movie created", movie_id=created.id, title=created.title)
        return created

    def get_movie(self, movie_id: int) -> DomainMovie:
        return self.movie_repo.get(movie_id)

    def update_movie(
        self,
        movie_id: int,
        *,
        title: str | None = None,
        year: int | None = None,
        runtime: int | None = None,
        genres: list[str] | None = None,
        expected_version: int | None = None,
    ) -> DomainMovie:
        """Apply a partial update; ``None`` leaves a field unchanged.

        Raises:
            RecordNotFound: if the movie does not exist
            EditConflict: if ``expected_version`` is stale, or a concurrent
                update won the race
            ValidationFailed: if the merged movie is invalid
        """
        movie = self.movie_repo.get(movie_id)

        if expected_version is not None and expected_version != movie.version:
            record_edit_conflict("movie")
            raise EditConflict()

        if title is not None:
            movie.title = title
        if year is not None:
            movie.year = year
        if runtime is not None:
            movie.runtime = runtime
        if genres is not None:
            movie.genres = list(genres)

        v = Validator()
        movie.validate(v)
        v.raise_if_invalid()

        try:
            return self.movie_repo.update(movie)
        except EditConflict:
            record_edit_conflict("movie")
            raise

    def delete_movie(self, movie_id: int) -> None:
        self.movie_repo.delete(movie_id)
        logger.info("Movie deleted", movie_id=movie_id)

    def list_movies(
        self,
        title: str = "",
        genres: list[str] | None = None,
        page: int = 1,
        page_size: int = 20,
        sort: str = "id",
    ) -> tuple[list[DomainMovie], Metadata]:
        filters = Filters(
            page=page, page_size=page_size, sort=sort, sort_safelist=MOVIE_SORT_SAFELIST
        )

        v = Validator()
        validate_filters(v, filters)
        v.raise_if_invalid()

        return self.movie_repo.get_all(title, genres or [], filters)
