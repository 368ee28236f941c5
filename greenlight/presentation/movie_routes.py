from typing import Final, cast

from fastapi import APIRouter, Depends, Header, Path, Query, Response, status
from pydantic import BaseModel, Field
from sqlmodel import Session

from ..application.movie_service import MovieService
from ..domain.constants import DEFAULT_PAGE_SIZE
from ..domain.entities import Movie as DomainMovie
from ..domain.entities import User as DomainUser
from ..domain.entities import format_runtime, parse_runtime
from ..domain.filters import Metadata
from ..infrastructure.database.database import get_session
from .dependencies import require_activated_user

movie_router: Final = APIRouter(
    prefix="/v1/movies",
    tags=["movies"],
    responses={
        401: {"description": "Unauthorized - Missing or invalid bearer token"},
        403: {"description": "Forbidden - Account not activated"},
        404: {"description": "Not Found - Movie does not exist"},
        409: {"description": "Conflict - Stale version"},
        422: {"description": "Validation Error - Invalid movie fields"},
    },
)


# Request Models
class MovieCreate(BaseModel):
    """Request model for creating a movie."""

    title: str = Field(default="", examples=["Casablanca"])
    year: int = Field(default=0, examples=[1942])
    runtime: str | None = Field(
        default=None,
        description="Runtime in minutes, written as '<n> mins'",
        examples=["102 mins"],
    )
    genres: list[str] = Field(default_factory=list, examples=[["drama", "romance"]])


class MovieUpdate(BaseModel):
    """Request model for a partial movie update; omitted fields are kept."""

    title: str | None = None
    year: int | None = None
    runtime: str | None = Field(default=None, examples=["102 mins"])
    genres: list[str] | None = None


# Response Models
class MovieResponse(BaseModel):
    id: int = Field(description="Unique movie identifier")
    title: str
    year: int
    runtime: str = Field(description="Runtime as '<n> mins'")
    genres: list[str]
    version: int = Field(description="Incremented on every successful update")

    @classmethod
    def from_domain(cls, movie: DomainMovie) -> "MovieResponse":
        return cls(
            id=cast(int, movie.id),
            title=movie.title,
            year=movie.year,
            runtime=format_runtime(movie.runtime),
            genres=movie.genres,
            version=movie.version,
        )


class MovieEnvelope(BaseModel):
    movie: MovieResponse


class MetadataResponse(BaseModel):
    current_page: int = 0
    page_size: int = 0
    first_page: int = 0
    last_page: int = 0
    total_records: int = 0

    @classmethod
    def from_domain(cls, metadata: Metadata) -> "MetadataResponse":
        return cls(
            current_page=metadata.current_page,
            page_size=metadata.page_size,
            first_page=metadata.first_page,
            last_page=metadata.last_page,
            total_records=metadata.total_records,
        )


class MovieListResponse(BaseModel):
    movies: list[MovieResponse]
    metadata: MetadataResponse


class MessageResponse(BaseModel):
    message: str


def _parse_optional_runtime(value: str | None) -> int | None:
    return parse_runtime(value) if value is not None else None


@movie_router.post(
    "",
    response_model=MovieEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create a movie",
)
def api_create_movie(
    payload: MovieCreate,
    response: Response,
    session: Session = Depends(get_session),
    _user: DomainUser = Depends(require_activated_user),
) -> MovieEnvelope:
    movie = MovieService(session).create_movie(
        title=payload.title,
        year=payload.year,
        runtime=_parse_optional_runtime(payload.runtime) or 0,
        genres=payload.genres,
    )
    response.headers["Location"] = f"/v1/movies/{movie.id}"
    return MovieEnvelope(movie=MovieResponse.from_domain(movie))


@movie_router.get("", response_model=MovieListResponse, summary="List movies")
def api_list_movies(
    title: str = Query(default="", description="Every word must occur in the title"),
    genres: str = Query(
        default="", description="Comma-separated; a movie must have all of them"
    ),
    page: int = Query(default=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE),
    sort: str = Query(default="id", description="Column, '-' prefix for descending"),
    session: Session = Depends(get_session),
    _user: DomainUser = Depends(require_activated_user),
) -> MovieListResponse:
    """List movies with filtering, sorting and pagination."""
    genre_list = [genre.strip() for genre in genres.split(",") if genre.strip()]
    movies, metadata = MovieService(session).list_movies(
        title=title, genres=genre_list, page=page, page_size=page_size, sort=sort
    )
    return MovieListResponse(
        movies=[MovieResponse.from_domain(movie) for movie in movies],
        metadata=MetadataResponse.from_domain(metadata),
    )


@movie_router.get("/{movie_id}", response_model=MovieEnvelope, summary="Show a movie")
def api_get_movie(
    movie_id: int = Path(...),
    session: Session = Depends(get_session),
    _user: DomainUser = Depends(require_activated_user),
) -> MovieEnvelope:
    movie = MovieService(session).get_movie(movie_id)
    return MovieEnvelope(movie=MovieResponse.from_domain(movie))


@movie_router.patch(
    "/{movie_id}", response_model=MovieEnvelope, summary="Partially update a movie"
)
def api_update_movie(
    payload: MovieUpdate,
    movie_id: int = Path(...),
    expected_version: int | None = Header(default=None, alias="X-Expected-Version"),
    session: Session = Depends(get_session),
    _user: DomainUser = Depends(require_activated_user),
) -> MovieEnvelope:
    """Update the given fields.

    With ``X-Expected-Version`` the update is refused when the stored version
    differs; without it the version read at the start of the request is used.
    """
    movie = MovieService(session).update_movie(
        movie_id,
        title=payload.title,
        year=payload.year,
        runtime=_parse_optional_runtime(payload.runtime),
        genres=payload.genres,
        expected_version=expected_version,
    )
    return MovieEnvelope(movie=MovieResponse.from_domain(movie))


@movie_router.delete(
    "/{movie_id}", response_model=MessageResponse, summary="Delete a movie"
)
def api_delete_movie(
    movie_id: int = Path(...),
    session: Session = Depends(get_session),
    _user: DomainUser = Depends(require_activated_user),
) -> MessageResponse:
    MovieService(session).delete_movie(movie_id)
    return MessageResponse(message="movie successfully deleted")
