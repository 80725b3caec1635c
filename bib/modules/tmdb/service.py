from bib.config import settings
from bib.modules.tmdb.cache import TTLCache, get_tmdb_cache
from bib.modules.tmdb.schemas import TMDBDetailResponse, TMDBSearchResponse, TMDBTitle
from typing import Any, Dict, Iterable, List, Optional
import httpx
import logging

logger = logging.getLogger(__name__)

MEDIA_TYPES = ("movie", "tv")

GENRE_MAP = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Sci-Fi",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
}

LANGUAGE_MAP = {
    "en": "English",
    "te": "Telugu",
    "hi": "Hindi",
    "ta": "Tamil",
    "ml": "Malayalam",
    "kn": "Kannada",
    "bn": "Bengali",
    "mr": "Marathi",
    "ko": "Korean",
    "ja": "Japanese",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "zh": "Chinese",
}


def image_url(path: Optional[str], size: str = "w500", base_url: Optional[str] = None) -> str:
    if not path:
        return ""
    return f"{base_url or settings.tmdb_image_base_url}/{size}{path}"


def genre_names(genre_ids: Iterable[int]) -> List[str]:
    return [GENRE_MAP.get(genre_id, "Unknown") for genre_id in genre_ids]


def language_name(code: Optional[str]) -> str:
    code = code or ""
    return LANGUAGE_MAP.get(code, code.upper())


def format_runtime(minutes: Optional[int]) -> str:
    minutes = int(minutes or 0)
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if hours > 0 else f"{mins}m"


def cache_key(path: str, params: Dict[str, Any]) -> str:
    ordered = "&".join(f"{k}={params[k]}" for k in sorted(params) if k != "api_key")
    return f"{path}?{ordered}"


class TMDBService:
    """
    Key-authenticated TMDB v3 lookups.

    Without an API key every lookup returns an empty result flagged configured=False.
    Successful responses are cached; upstream failures are logged and never cached.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        image_base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        cache: Optional[TTLCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = ((settings.tmdb_api_key if api_key is None else api_key) or "").strip()
        self.base_url = (base_url or settings.tmdb_base_url).rstrip("/")
        self.image_base_url = image_base_url or settings.tmdb_image_base_url
        self.timeout = timeout or settings.tmdb_timeout_seconds
        self.cache = cache if cache is not None else get_tmdb_cache()
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        key = cache_key(path, params)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            try:
                response = await client.get(path, params={**params, "api_key": self.api_key})
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"TMDB request {path} failed: {e}")
                return None

        self.cache.set(key, data)
        return data

    async def search(self, query: str, media_type: str = "movie", page: int = 1) -> TMDBSearchResponse:
        query = (query or "").strip()
        if not self.configured:
            logger.warning("TMDB API key not configured")
            return TMDBSearchResponse(configured=False)
        if not query or media_type not in MEDIA_TYPES:
            return TMDBSearchResponse(configured=True)

        data = await self._get(f"/search/{media_type}", {
            "query": query,
            "page": max(page, 1),
            "include_adult": "false",
        })
        if not data:
            return TMDBSearchResponse(configured=True)
        return TMDBSearchResponse(
            configured=True,
            page=data.get("page", 1),
            total_pages=data.get("total_pages", 0),
            total_results=data.get("total_results", 0),
            results=data.get("results") or [],
        )

    async def details(self, tmdb_id: int, media_type: str = "movie") -> TMDBDetailResponse:
        if not self.configured:
            logger.warning("TMDB API key not configured")
            return TMDBDetailResponse(configured=False)
        if media_type not in MEDIA_TYPES:
            return TMDBDetailResponse(configured=True)

        data = await self._get(f"/{media_type}/{tmdb_id}", {})
        if not data:
            return TMDBDetailResponse(configured=True)
        return TMDBDetailResponse(configured=True, title=self.to_title(data, media_type))

    def to_title(self, data: Dict[str, Any], media_type: str) -> TMDBTitle:
        """Flatten a TMDB detail payload into the card shape the app shows"""
        title = data.get("title") or data.get("name") or ""
        original = data.get("original_title") or data.get("original_name")
        release = data.get("release_date") or data.get("first_air_date") or ""
        runtime = data.get("runtime")
        if runtime is None and data.get("episode_run_time"):
            runtime = data["episode_run_time"][0]
        if data.get("genres"):
            genres = [g.get("name", "Unknown") for g in data["genres"]]
        else:
            genres = genre_names(data.get("genre_ids") or [])
        return TMDBTitle(
            id=data["id"],
            media_type=media_type,
            title=title,
            original_title=original if original and original != title else None,
            overview=data.get("overview") or "",
            year=int(release[:4]) if release[:4].isdigit() else None,
            poster=image_url(data.get("poster_path"), base_url=self.image_base_url),
            backdrop=image_url(data.get("backdrop_path"), "original", base_url=self.image_base_url),
            genres=genres,
            language=language_name(data.get("original_language")),
            duration=format_runtime(runtime) if runtime else "",
            rating=round(float(data.get("vote_average") or 0), 1),
        )
