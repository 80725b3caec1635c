"""
Where a reminder sends the user when it is opened
"""

from urllib.parse import quote

SHOW_PREFIX = "show::"
TMDB_TV_PREFIX = "tmdbtv-"


def get_watch_reminder_open_path(movie_id) -> str:
    raw = str(movie_id or "").strip()
    if not raw:
        return "/movies"

    if raw.startswith(SHOW_PREFIX):
        show_id = raw[len(SHOW_PREFIX):].strip()
        if not show_id:
            return "/shows"
        return f"/show/{quote(show_id, safe='')}"

    if raw.startswith(TMDB_TV_PREFIX):
        return f"/show/{quote(raw, safe='')}"

    return f"/movie/{quote(raw, safe='')}"


def get_friend_reminder_open_path(movie_id, is_tmdb: bool) -> str:
    """Friend reminders always open a movie page: bare TMDB ids get the tmdb- prefix"""
    raw = str(movie_id or "").strip()
    if not raw:
        return "/movies"
    if is_tmdb:
        return f"/movie/tmdb-{quote(raw, safe='')}"
    return f"/movie/{quote(raw, safe='')}"
