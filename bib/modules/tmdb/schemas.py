from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class TMDBSearchResponse(BaseModel):
    configured: bool
    page: int = 1
    total_pages: int = 0
    total_results: int = 0
    results: List[Dict[str, Any]] = Field(default_factory=list)


class TMDBTitle(BaseModel):
    id: int
    media_type: str
    title: str
    original_title: Optional[str] = None
    overview: str = ""
    year: Optional[int] = None
    poster: str = ""
    backdrop: str = ""
    genres: List[str] = Field(default_factory=list)
    language: str = ""
    duration: str = ""
    rating: float = 0.0


class TMDBDetailResponse(BaseModel):
    configured: bool
    title: Optional[TMDBTitle] = None
