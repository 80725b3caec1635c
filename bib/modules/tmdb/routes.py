from fastapi import APIRouter, Depends
from bib.modules.tmdb.schemas import TMDBDetailResponse, TMDBSearchResponse
from bib.modules.tmdb.service import TMDBService

router = APIRouter(prefix="/tmdb", tags=["tmdb"])


def get_tmdb_service() -> TMDBService:
    return TMDBService()


@router.get("/search", response_model=TMDBSearchResponse)
async def search(
    q: str = "",
    media_type: str = "movie",
    page: int = 1,
    service: TMDBService = Depends(get_tmdb_service)
):
    """Search TMDB movies or TV shows"""
    return await service.search(q, media_type=media_type, page=page)


@router.get("/{media_type}/{tmdb_id}", response_model=TMDBDetailResponse)
async def details(
    media_type: str,
    tmdb_id: int,
    service: TMDBService = Depends(get_tmdb_service)
):
    """Title details for a movie or TV show"""
    return await service.details(tmdb_id, media_type=media_type)
