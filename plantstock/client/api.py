from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def parse_envelope(resp: httpx.Response) -> dict:
    """Decode an envelope body; raise ApiError on failure statuses or bodies."""
    try:
        body = resp.json()
    except ValueError:
        raise ApiError(resp.status_code, f"Invalid response from server (HTTP {resp.status_code})")
    if not isinstance(body, dict):
        raise ApiError(resp.status_code, "Invalid response from server")
    if resp.status_code >= 400 or body.get("success") is False:
        raise ApiError(resp.status_code, body.get("error") or body.get("message") or "An error occurred")
    return body


class ApiClient:
    """Single HTTP client for the service.

    Attaches the bearer token and retries a request once after refreshing
    the session when the server answers 401.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000/api",
        token: str | None = None,
        refresh_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.refresh_token = refresh_token
        self.timeout = timeout
        self.transport = transport
        self.user: dict | None = None
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def async_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Content-Type": "application/json", **self.auth_headers()},
            transport=self.transport,
        )

    def _store_session(self, data: dict) -> None:
        self.token = data.get("token")
        self.refresh_token = data.get("refreshToken") or self.refresh_token
        self.user = data.get("user") or self.user

    def login(self, email: str, password: str) -> dict:
        body = parse_envelope(self._http.post("/auth/login", json={"email": email, "password": password}))
        self._store_session(body.get("data") or {})
        return body

    def refresh(self) -> bool:
        if not self.refresh_token:
            return False
        resp = self._http.post("/auth/refresh", json={"refreshToken": self.refresh_token})
        try:
            body = parse_envelope(resp)
        except ApiError:
            logger.info("session refresh failed; clearing tokens")
            self.token = self.refresh_token = None
            return False
        self._store_session(body.get("data") or {})
        return True

    def logout(self) -> None:
        if self.token:
            try:
                self.request("POST", "/auth/logout", json={"refreshToken": self.refresh_token})
            except ApiError as e:
                logger.info("logout failed: %s", e.message)
        self.token = self.refresh_token = None
        self.user = None

    def request(self, method: str, url: str, *, params: dict | None = None, json: Any = None) -> dict:
        resp = self._http.request(method, url, params=params, json=json, headers=self.auth_headers())
        if resp.status_code == 401 and url not in ("/auth/login", "/auth/refresh") and self.refresh():
            resp = self._http.request(method, url, params=params, json=json, headers=self.auth_headers())
        return parse_envelope(resp)

    def get(self, url: str, params: dict | None = None) -> dict:
        return self.request("GET", url, params=params)

    def post(self, url: str, data: Any = None) -> dict:
        return self.request("POST", url, json=data)

    def put(self, url: str, data: Any = None) -> dict:
        return self.request("PUT", url, json=data)

    def patch(self, url: str, data: Any = None) -> dict:
        return self.request("PATCH", url, json=data)

    def delete(self, url: str) -> dict:
        return self.request("DELETE", url)
