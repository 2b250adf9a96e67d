"""Dataclasses representing Status Matrix domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class Team:
    id: str
    name: str
    members: List["Person"] = field(default_factory=list)


@dataclass(slots=True)
class Person:
    id: str
    name: str
    email: str | None = None
    role: str | None = None


@dataclass(slots=True, frozen=True)
class QuestionRef:
    """A question as referenced by a response.

    The backend sends either a populated ``{_id, text}`` object or a bare id
    string; in the latter case ``text`` is ``None``.
    """

    id: str
    text: str | None = None

    @classmethod
    def parse(cls, value: Any) -> Optional["QuestionRef"]:
        if value is None:
            return None
        if isinstance(value, str):
            value = value.strip()
            return cls(id=value) if value else None
        if isinstance(value, dict):
            question_id = value.get("_id") or value.get("id")
            if not question_id:
                return None
            return cls(id=str(question_id), text=value.get("text"))
        return None


@dataclass(slots=True)
class Response:
    question: QuestionRef | None
    answer: str


@dataclass(slots=True)
class StatusRecord:
    id: str
    day: date
    team: Team | None = None
    user: Person | None = None
    is_leave: bool = False
    leave_reason: str | None = None
    responses: List[Response] = field(default_factory=list)


@dataclass(slots=True)
class StatusPage:
    statuses: List[StatusRecord]
    total_pages: int = 1
    total_records: int = 0


@dataclass(slots=True, frozen=True)
class FlatAnswer:
    """One non-blank spreadsheet cell resolved to its team and employee."""

    team: str
    employee: str
    question: str
    date_label: str
    answer: str


@dataclass(slots=True)
class GroupedStatus:
    team_name: str
    user_name: str
    date: str
    responses: List[Dict[str, str]] = field(default_factory=list)
    is_leave: bool = False
    leave_reason: str | None = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "teamName": self.team_name,
            "userName": self.user_name,
            "date": self.date,
            "responses": [dict(item) for item in self.responses],
            "isLeave": self.is_leave,
        }
        if self.leave_reason is not None:
            payload["leaveReason"] = self.leave_reason
        return payload


@dataclass(slots=True)
class UploadResult:
    success: bool
    message: str
    inserted_count: int = 0
    modified_count: int = 0
    total_records: int | None = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "UploadResult":
        data = dict(payload.get("data") or {})
        return cls(
            success=bool(payload.get("success")),
            message=str(payload.get("message") or ""),
            inserted_count=int(data.pop("insertedCount", 0) or 0),
            modified_count=int(data.pop("modifiedCount", 0) or 0),
            total_records=data.pop("totalRecords", None),
            extra=data,
        )


@dataclass(slots=True)
class Session:
    """Bearer credentials for one caller, passed explicitly to the client."""

    token: str
    user: Dict[str, Any] | None = None

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


__all__ = [
    "FlatAnswer",
    "GroupedStatus",
    "Person",
    "QuestionRef",
    "Response",
    "Session",
    "StatusPage",
    "StatusRecord",
    "Team",
    "UploadResult",
]
