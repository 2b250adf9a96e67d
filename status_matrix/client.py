"""HTTP client for the team status REST backend."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from .models import GroupedStatus, Person, Session, StatusPage, Team, UploadResult
from .normalize import parse_status_page

logger = logging.getLogger(__name__)

EXPORT_TIMEOUT = 30.0
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

NETWORK = "network"
AUTH = "auth"
VALIDATION = "validation"
GENERIC = "generic"


class StatusApiError(RuntimeError):
    """Raised when the backend cannot be reached or answers with an error."""

    def __init__(self, kind: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    @property
    def user_message(self) -> str:
        if self.status_code == 403:
            return "You do not have permission to perform this action"
        if self.kind == AUTH:
            return "Session expired, please login again"
        if self.kind == NETWORK:
            return "Unable to reach the status service"
        return self.message

    @classmethod
    def from_response(cls, response: httpx.Response) -> "StatusApiError":
        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("message") if isinstance(body, dict) else None
        message = message or f"{response.status_code} {response.reason_phrase}"
        if response.status_code in (401, 403):
            kind = AUTH
        elif response.status_code in (400, 422):
            kind = VALIDATION
        else:
            kind = GENERIC
        return cls(kind, message, response.status_code)


class StatusApiClient:
    """Async wrapper around the status backend endpoints.

    Credentials are never stored on the client: every call takes the
    ``Session`` it acts for.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        session: Optional[Session] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if session is not None:
            headers.update(session.headers)
        logger.debug("%s %s params=%s", method, path, kwargs.get("params"))
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise StatusApiError(NETWORK, f"{method} {path} failed: {exc}") from exc
        if response.is_error:
            raise StatusApiError.from_response(response)
        return response

    # region Auth
    async def login(self, email: str, password: str) -> Session:
        response = await self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        data = response.json()
        token = data.get("token")
        if not token:
            raise StatusApiError(AUTH, "Login failed")
        return Session(token=token, user=data.get("user"))

    async def current_user(self, session: Session) -> Dict[str, Any]:
        response = await self._request("GET", "/api/auth/me", session)
        return response.json()

    # endregion

    # region Directory
    async def fetch_teams(self, session: Session) -> List[Team]:
        response = await self._request("GET", "/api/teams", session)
        return [
            Team(id=str(item["_id"]), name=item.get("name") or "")
            for item in response.json()
            if isinstance(item, dict) and item.get("_id")
        ]

    async def fetch_team_members(self, session: Session, team_id: str) -> List[Person]:
        response = await self._request("GET", f"/api/teams/{team_id}/members", session)
        return [
            Person(
                id=str(member["_id"]),
                name=member.get("name") or "",
                email=member.get("email"),
                role=member.get("role"),
            )
            for member in response.json()
            if isinstance(member, dict) and member.get("_id")
        ]

    # endregion

    # region Statuses
    async def fetch_statuses(self, session: Session, params: Optional[Mapping[str, Any]] = None) -> StatusPage:
        response = await self._request("GET", "/api/status", session, params=dict(params or {}))
        return parse_status_page(response.json())

    async def upload_status_file(self, session: Session, filename: str, content: bytes) -> UploadResult:
        files = {"excelFile": (filename, content, XLSX_MEDIA_TYPE)}
        response = await self._request("POST", "/api/import/upload-status", session, files=files)
        return UploadResult.from_payload(response.json())

    async def upload_status_json(self, session: Session, entries: Sequence[GroupedStatus]) -> UploadResult:
        body = {"data": [entry.to_payload() for entry in entries]}
        response = await self._request("POST", "/api/import/upload-status-json", session, json=body)
        return UploadResult.from_payload(response.json())

    async def download_excel_report(self, session: Session, params: Optional[Mapping[str, Any]] = None) -> bytes:
        response = await self._request(
            "GET",
            "/api/reports/excel",
            session,
            params=dict(params or {}),
            timeout=EXPORT_TIMEOUT,
        )
        if not response.content:
            raise StatusApiError(GENERIC, "Invalid response format received")
        return response.content

    # endregion


__all__ = ["StatusApiClient", "StatusApiError"]
