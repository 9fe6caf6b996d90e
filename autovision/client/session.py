"""Autovision API client with silent token refresh"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

import requests

from ..auth.models import TokenPair
from ..core.exceptions import ApiError, SessionExpired, Unauthenticated
from ..core.logger import get_logger
from .token_store import TokenStore

logger = get_logger(__name__)

REFRESH_PATH = "/auth/refresh"


def _error_message(response: Any) -> str:
    """The server's message, verbatim when it sent one."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("detail") or body.get("message")
        if isinstance(message, str) and message:
            return message
    text = getattr(response, "text", "") or ""
    return text.strip() or f"Error {response.status_code}"


class SessionClient:
    """
    Client for the Autovision API.

    Every authenticated call attaches the stored access token. When the
    server answers 403 and a refresh token is stored, the client refreshes
    once and replays the original call once. A failed refresh clears the
    stored tokens, fires on_session_expired (the sign-in redirect) and
    raises SessionExpired.

    Concurrent callers that hit 403 together share one refresh: the lock
    holder refreshes, the others find a newer pair in the store and reuse it.
    """

    def __init__(
        self,
        base_url: str,
        store: TokenStore,
        http: Optional[Any] = None,
        on_session_expired: Optional[Callable[[], None]] = None,
        timeout: float = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.store = store
        self.http = http or requests.Session()
        self.on_session_expired = on_session_expired
        self.timeout = timeout
        self._refresh_lock = threading.Lock()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _send(
        self,
        method: str,
        path: str,
        access_token: Optional[str],
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return self.http.request(
            method,
            self._url(path),
            headers=headers,
            json=json,
            params=params,
            timeout=self.timeout,
        )

    def _expire_session(self) -> None:
        self.store.clear()
        if self.on_session_expired is not None:
            self.on_session_expired()

    def _refresh(self, stale_refresh_token: str) -> str:
        """Exchange the refresh token for a new pair; returns the new access token."""
        with self._refresh_lock:
            current = self.store.get()
            if not current.refresh_token:
                # Another flow already failed to refresh and signed out
                raise SessionExpired("Session expired. Please sign in again.")
            if current.refresh_token != stale_refresh_token and current.access_token:
                logger.debug("Reusing token pair refreshed by a concurrent request")
                return current.access_token

            try:
                response = self._send(
                    "POST", REFRESH_PATH, None, json={"refreshToken": stale_refresh_token}
                )
            except requests.RequestException as e:
                logger.warning("Token refresh failed", error=str(e))
                self._expire_session()
                raise SessionExpired("Session expired. Please sign in again.") from e

            if not 200 <= response.status_code < 300:
                logger.info("Token refresh rejected", status_code=response.status_code)
                self._expire_session()
                raise SessionExpired("Session expired. Please sign in again.")

            try:
                body = response.json()
                pair = TokenPair(
                    access_token=body["accessToken"], refresh_token=body["refreshToken"]
                )
            except (KeyError, TypeError, ValueError) as e:
                self._expire_session()
                raise SessionExpired("Session expired. Please sign in again.") from e
            self.store.set(pair)
            logger.debug("Token pair refreshed")
            return pair.access_token

    def _handle(self, response: Any) -> Any:
        if 200 <= response.status_code < 300:
            if response.status_code == 204 or not response.content:
                return None
            return response.json()
        raise ApiError(_error_message(response), status_code=response.status_code)

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        auth: bool = True,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            Unauthenticated: auth required and no access token stored (no network call)
            SessionExpired: the token refresh failed
            ApiError: any other non-2xx response, carrying the server's message
        """
        tokens = self.store.get()
        if auth and not tokens.access_token:
            raise Unauthenticated("Access token required")

        access_token = tokens.access_token if auth else None
        response = self._send(method, path, access_token, json=json, params=params)

        if auth and response.status_code == 403 and tokens.refresh_token:
            new_access_token = self._refresh(tokens.refresh_token)
            response = self._send(method, path, new_access_token, json=json, params=params)

        return self._handle(response)

    # Auth

    def login(self, email: str, password: str) -> Dict[str, Any]:
        body = self.request(
            "POST", "/auth/login", json={"email": email, "password": password}, auth=False
        )
        self.store.set(TokenPair(access_token=body["accessToken"], refresh_token=body["refreshToken"]))
        return body

    def logout(self) -> None:
        self.store.clear()

    def me(self) -> Dict[str, Any]:
        return self.request("GET", "/auth/me")

    def authenticated_url(self, path: str) -> str:
        """
        URL carrying the access token as a query parameter, for embedded
        viewers and new-tab opens that cannot set headers.
        """
        url = self._url(path)
        access_token = self.store.get().access_token
        if not access_token:
            return url
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}{urlencode({'token': access_token})}"

    # Users

    def list_users(self) -> List[Dict[str, Any]]:
        return self.request("GET", "/users")

    def create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/users", json=data)

    def update_user(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", f"/users/{user_id}", json=data)

    def delete_user(self, user_id: str) -> Dict[str, Any]:
        return self.request("DELETE", f"/users/{user_id}")

    def user_activity(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        return self.request("GET", f"/users/{user_id}/activity", params={"limit": limit})

    def update_profile(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", "/profile", json=data)

    # Vehicles

    def list_vehicles(self, **filters: Any) -> Dict[str, Any]:
        params = {k: v for k, v in filters.items() if v is not None and v != ""}
        return self.request("GET", "/vehicles", params=params)

    def get_vehicle(self, vehicle_id: str) -> Dict[str, Any]:
        return self.request("GET", f"/vehicles/{vehicle_id}")

    def create_vehicle(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/vehicles", json=data)

    def update_vehicle(self, vehicle_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", f"/vehicles/{vehicle_id}", json=data)

    def delete_vehicle(self, vehicle_id: str) -> Any:
        return self.request("DELETE", f"/vehicles/{vehicle_id}")

    def request_approval(self, vehicle_id: str) -> Dict[str, Any]:
        return self.request("POST", f"/vehicles/{vehicle_id}/request-approval")

    def approve_vehicle(self, vehicle_id: str) -> Dict[str, Any]:
        return self.request("POST", f"/vehicles/{vehicle_id}/approve")

    def reject_vehicle(self, vehicle_id: str) -> Dict[str, Any]:
        return self.request("POST", f"/vehicles/{vehicle_id}/reject")

    def pending_vehicles(self) -> List[Dict[str, Any]]:
        return self.request("GET", "/vehicles/pending")

    def vehicle_history(self, vehicle_id: str) -> List[Dict[str, Any]]:
        return self.request("GET", f"/vehicles/{vehicle_id}/history")

    def compare_vehicles(self, vehicle_ids: List[str]) -> Dict[str, Any]:
        return self.request("POST", "/vehicles/compare", json={"vehicleIds": list(vehicle_ids)})

    def vehicle_stats(self) -> Dict[str, Any]:
        return self.request("GET", "/vehicles/stats")

    # Dashboard

    def stats(self) -> Dict[str, Any]:
        return self.request("GET", "/stats")

    def vehicles_by_status(self) -> List[Dict[str, Any]]:
        return self.request("GET", "/stats/vehicles-by-status")

    def sales(self) -> List[Dict[str, Any]]:
        return self.request("GET", "/stats/sales")
