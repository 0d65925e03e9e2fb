"""
HTTP client for the Retro Board API.

Every failure, whether transport or non-2xx, surfaces as ``ApiRequestError``
so callers handle one exception type.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from retroboard.core.config import ClientSettings
from retroboard.core.schemas.card import Card, ColumnType, VoteResult
from retroboard.core.schemas.session import SessionCreated, SessionInfo

logger = logging.getLogger(__name__)


class ApiRequestError(Exception):
    """A request that did not produce a successful response."""

    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"

    def __init__(self, status: Optional[int], code: str, message: str):
        super().__init__(message)
        self.status = status
        self.code = code
        self.message = message

    def __str__(self) -> str:
        prefix = f"HTTP {self.status}" if self.status is not None else self.code
        return f"{prefix}: {self.message}"


class RetroApiClient:
    """
    Thin synchronous wrapper around the REST endpoints.

    Pass ``http_client`` to reuse a configured ``httpx.Client`` (FastAPI's
    ``TestClient`` works); otherwise one is created for ``base_url``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.Client] = None,
        client_settings: Optional[ClientSettings] = None,
    ):
        config = client_settings or ClientSettings()
        self.timeout = timeout if timeout is not None else config.request_timeout
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url or config.base_url)

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> "RetroApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._http.request(method, f"/api/{path}", timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise ApiRequestError(None, ApiRequestError.TIMEOUT, f"Request timed out: {method} {path}") from e
        except httpx.HTTPError as e:
            raise ApiRequestError(None, ApiRequestError.NETWORK_ERROR, str(e) or type(e).__name__) from e

        if response.is_success:
            return response
        raise self._error_from(response)

    @staticmethod
    def _error_from(response: httpx.Response) -> ApiRequestError:
        try:
            body = response.json().get("error", {})
        except (ValueError, AttributeError):
            body = {}
        return ApiRequestError(
            response.status_code,
            body.get("code") or "HTTP_ERROR",
            body.get("message") or response.reason_phrase or "Request failed",
        )

    # Sessions
    def create_session(self, name: str) -> SessionCreated:
        response = self._request("POST", "sessions", json={"name": name})
        return SessionCreated.model_validate(response.json())

    def get_session(self, session_id: str) -> SessionInfo:
        response = self._request("GET", f"sessions/{session_id}")
        return SessionInfo.model_validate(response.json())

    def delete_session(self, session_id: str, admin_token: str) -> None:
        self._request("DELETE", f"sessions/{session_id}", params={"admin_token": admin_token})

    # Cards
    def list_cards(self, session_id: str, limit: Optional[int] = None) -> List[Card]:
        params = {"limit": limit} if limit is not None else None
        response = self._request("GET", f"sessions/{session_id}/cards", params=params)
        return [Card.model_validate(item) for item in response.json()]

    def add_card(self, session_id: str, column_type: ColumnType, content: str) -> Card:
        response = self._request(
            "POST",
            f"sessions/{session_id}/cards",
            json={"column_type": ColumnType(column_type).value, "content": content},
        )
        return Card.model_validate(response.json())

    def update_card(
        self,
        card_id: str,
        session_id: str,
        content: Optional[str] = None,
        column_type: Optional[ColumnType] = None,
    ) -> Card:
        body: Dict[str, Any] = {"session_id": session_id}
        if content is not None:
            body["content"] = content
        if column_type is not None:
            body["column_type"] = ColumnType(column_type).value
        response = self._request("PATCH", f"cards/{card_id}", json=body)
        return Card.model_validate(response.json())

    def delete_card(self, card_id: str, session_id: str) -> None:
        self._request("DELETE", f"cards/{card_id}", params={"session_id": session_id})

    # Votes
    def toggle_vote(self, card_id: str, voter_id: str, session_id: str) -> Tuple[Card, bool]:
        response = self._request(
            "PATCH", f"cards/{card_id}/vote", json={"voter_id": voter_id, "session_id": session_id}
        )
        result = VoteResult.model_validate(response.json())
        return Card.model_validate(result.model_dump(exclude={"voted"})), result.voted

    def voted_card_ids(self, session_id: str, voter_id: str, limit: Optional[int] = None) -> List[str]:
        params: Dict[str, Any] = {"voter_id": voter_id}
        if limit is not None:
            params["limit"] = limit
        response = self._request("GET", f"sessions/{session_id}/votes", params=params)
        return [str(card_id) for card_id in response.json()]
