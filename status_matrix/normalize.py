"""Conversion of backend JSON payloads into typed status records."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .models import Person, QuestionRef, Response, StatusPage, StatusRecord, Team

logger = logging.getLogger(__name__)


def parse_day(value: Any) -> date:
    """Return the calendar day of ``value``.

    Timestamps with an offset are moved to UTC before the day is taken, so the
    result matches the ``YYYY-MM-DD`` prefix of the UTC ISO form.
    """

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Unrecognised date value: {value!r}")
    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return parse_day(datetime.fromisoformat(text))


def _parse_team(value: Any) -> Optional[Team]:
    if not isinstance(value, dict):
        return None
    return Team(id=str(value.get("_id") or value.get("id") or ""), name=value.get("name") or "")


def _parse_person(value: Any) -> Optional[Person]:
    if not isinstance(value, dict):
        return None
    return Person(
        id=str(value.get("_id") or value.get("id") or ""),
        name=value.get("name") or "",
        email=value.get("email"),
        role=value.get("role"),
    )


def parse_status_record(payload: Dict[str, Any]) -> StatusRecord:
    is_leave = bool(payload.get("isLeave"))
    responses: List[Response] = []
    if not is_leave:
        for item in payload.get("responses") or []:
            if not isinstance(item, dict):
                continue
            responses.append(
                Response(
                    question=QuestionRef.parse(item.get("question")),
                    answer="" if item.get("answer") is None else str(item["answer"]),
                )
            )
    return StatusRecord(
        id=str(payload["_id"]),
        day=parse_day(payload.get("date")),
        team=_parse_team(payload.get("team")),
        user=_parse_person(payload.get("user")),
        is_leave=is_leave,
        leave_reason=payload.get("leaveReason") if is_leave else None,
        responses=responses,
    )


def parse_status_records(payloads: Iterable[Any]) -> List[StatusRecord]:
    records: List[StatusRecord] = []
    for payload in payloads:
        if not isinstance(payload, dict) or not payload.get("_id"):
            logger.warning("Invalid status entry found: %r", payload)
            continue
        try:
            records.append(parse_status_record(payload))
        except ValueError as exc:
            logger.warning("Skipping status %s: %s", payload.get("_id"), exc)
    return records


def parse_status_page(payload: Any) -> StatusPage:
    """Accept either a bare array of statuses or a paginated envelope."""

    if isinstance(payload, dict):
        raw = payload.get("statuses") or []
        records = parse_status_records(raw)
        return StatusPage(
            statuses=records,
            total_pages=int(payload.get("totalPages") or 1),
            total_records=int(payload.get("totalRecords") or len(raw)),
        )
    raw = list(payload or [])
    return StatusPage(statuses=parse_status_records(raw), total_pages=1, total_records=len(raw))


def collect_questions(records: Iterable[StatusRecord]) -> List[QuestionRef]:
    """Distinct questions referenced by ``records`` in first-seen order."""

    seen: Dict[str, QuestionRef] = {}
    for record in records:
        for response in record.responses:
            question = response.question
            if question is None:
                continue
            known = seen.get(question.id)
            # a bare id reference gets upgraded once a populated one shows up
            if known is None or (known.text is None and question.text is not None):
                seen[question.id] = question
    return list(seen.values())


__all__ = [
    "collect_questions",
    "parse_day",
    "parse_status_page",
    "parse_status_record",
    "parse_status_records",
]
