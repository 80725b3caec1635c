"""
Token-based REST gateway.

Every call attaches the anon api key and a bearer token (the stored session's access token,
falling back to the anon key), enforces a timeout, parses JSON with a raw-text fallback and
turns any failure into a GatewayError carrying the server's message. No retries here;
callers that want them (sending recommendations) add their own.
"""

from pathlib import Path
from typing import Any, Dict, Optional
import json
import logging

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 25.0


class GatewayError(Exception):
    """A failed request: message from the server (or the status text), HTTP status, backend code"""

    def __init__(self, message: str, status: Optional[int] = None, code: str = ""):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code


class SessionStore:
    """
    JSON file standing in for browser local storage.

    The auth session lives under sb-<project-ref>-auth-token like the Supabase JS client
    keeps it. Read and write failures are logged and swallowed: a broken store behaves
    like an empty one.
    """

    def __init__(self, path: str, project_ref: str = ""):
        self.path = Path(path).expanduser()
        self.project_ref = project_ref

    @property
    def session_key(self) -> str:
        return f"sb-{self.project_ref}-auth-token"

    def _read_all(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.debug(f"Session store unreadable: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(data, f)
            tmp.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.debug(f"Session store write failed: {e}")

    def get(self, key: str) -> Optional[Any]:
        return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)

    def load_session(self) -> Optional[Dict[str, Any]]:
        session = self.get(self.session_key)
        return session if isinstance(session, dict) else None

    def save_session(self, session: Dict[str, Any]) -> None:
        self.set(self.session_key, session)

    def clear_session(self) -> None:
        self.remove(self.session_key)

    def access_token(self) -> Optional[str]:
        session = self.load_session()
        token = session.get("access_token") if session else None
        return token.strip() if isinstance(token, str) and token.strip() else None


def _format_seconds(seconds: float) -> str:
    return f"{seconds:g}"


def _error_message(data: Any, response: httpx.Response) -> str:
    if isinstance(data, dict):
        for key in ("message", "detail", "error", "msg", "error_description"):
            value = data.get(key)
            if value:
                return value if isinstance(value, str) else json.dumps(value)
    elif isinstance(data, str) and data.strip():
        return data.strip()
    return response.reason_phrase or "Request failed."


class RestGateway:
    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        session_store: Optional[SessionStore] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session_store = session_store
        self.timeout = timeout
        self._client = httpx.AsyncClient(base_url=self.base_url, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    def current_token(self) -> Optional[str]:
        if self.session_store is None:
            return None
        return self.session_store.access_token()

    def _headers(self, token: Optional[str], extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        bearer = (token or self.current_token() or self.api_key or "").strip()
        headers = {}
        if self.api_key:
            headers["apikey"] = self.api_key
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        if extra:
            headers.update(extra)
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        token: Optional[str] = None,
    ) -> httpx.Response:
        limit = timeout or self.timeout
        try:
            return await self._client.request(
                method,
                path,
                params=params,
                json=json_body,
                headers=self._headers(token, headers),
                timeout=limit,
            )
        except httpx.TimeoutException:
            raise GatewayError(f"Request timed out after {_format_seconds(limit)}s")
        except httpx.HTTPError as e:
            raise GatewayError(str(e) or "Network error")

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        token: Optional[str] = None,
    ) -> Any:
        """Send a request and return the parsed body (JSON, raw text, or None when empty)"""
        response = await self._send(
            method, path, params=params, json_body=json, headers=headers, timeout=timeout, token=token
        )
        text = response.text
        data: Any = None
        if text:
            try:
                data = response.json()
            except ValueError:
                data = text

        if response.is_error:
            code = str(data.get("code") or "") if isinstance(data, dict) else ""
            raise GatewayError(_error_message(data, response), status=response.status_code, code=code)
        return data
