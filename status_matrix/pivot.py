"""Pivot table construction for status previews and exports.

The table is keyed by display names (team, then user), then question id, then
calendar day. Teams or users that share a display name are merged into the
same block; the backend ids are only kept in the status index.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from .models import QuestionRef, StatusRecord
from .normalize import collect_questions

LEAVE_PLACEHOLDER = "N/A (On Leave)"
UNKNOWN_TEAM = "Unknown Team"
UNKNOWN_USER = "Unknown User"


@dataclass(slots=True)
class QuestionRow:
    text: str
    answers: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class PivotRow:
    team: str
    user: str
    question_id: str
    text: str
    cells: List[Optional[str]]
    first_in_team: bool
    first_in_user: bool


@dataclass(slots=True)
class PivotTable:
    dates: List[str]
    teams: Dict[str, Dict[str, Dict[str, QuestionRow]]]
    team_rowspans: Dict[str, int]
    user_rowspans: Dict[Tuple[str, str], int]
    status_index: Dict[Tuple[str, str], str]
    question_count: int = 0

    def answer(self, team: str, user: str, question_id: str, day: Union[date, str]) -> Optional[str]:
        """Cell text, or ``None`` when nothing was recorded."""

        key = day.isoformat() if isinstance(day, date) else day
        row = self.teams.get(team, {}).get(user, {}).get(question_id)
        if row is None:
            return None
        return row.answers.get(key)

    def record_for(self, user_id: str, day: Union[date, str]) -> Optional[str]:
        key = day.isoformat() if isinstance(day, date) else day
        return self.status_index.get((user_id, key))

    def iter_rows(self) -> Iterator[PivotRow]:
        for team, users in self.teams.items():
            first_in_team = True
            for user, questions in users.items():
                first_in_user = True
                for question_id, row in questions.items():
                    yield PivotRow(
                        team=team,
                        user=user,
                        question_id=question_id,
                        text=row.text,
                        cells=[row.answers.get(day) for day in self.dates],
                        first_in_team=first_in_team,
                        first_in_user=first_in_user,
                    )
                    first_in_team = False
                    first_in_user = False

    def summary(self) -> Dict[str, object]:
        return {
            "teams": len(self.teams),
            "users": sum(len(users) for users in self.teams.values()),
            "questions": self.question_count,
            "days": len(self.dates),
            "range": (self.dates[-1], self.dates[0]) if self.dates else None,
        }

    def to_dict(self) -> Dict[str, object]:
        return {
            "dates": list(self.dates),
            "teams": {
                team: {
                    user: {
                        question_id: {"text": row.text, "answers": dict(row.answers)}
                        for question_id, row in questions.items()
                    }
                    for user, questions in users.items()
                }
                for team, users in self.teams.items()
            },
            "teamRowspans": dict(self.team_rowspans),
            "userRowspans": [
                {"team": team, "user": user, "rows": rows}
                for (team, user), rows in self.user_rowspans.items()
            ],
            "statusIndex": [
                {"userId": user_id, "date": day, "statusId": status_id}
                for (user_id, day), status_id in self.status_index.items()
            ],
            "summary": self.summary(),
        }


def date_range(days: Iterable[date]) -> List[date]:
    """Every calendar day between the earliest and latest of ``days``, newest first."""

    distinct = set(days)
    if not distinct:
        return []
    start, end = min(distinct), max(distinct)
    span = (end - start).days
    return [end - timedelta(days=offset) for offset in range(span + 1)]


def _question_row(user_rows: Dict[str, QuestionRow], question: QuestionRef) -> QuestionRow:
    row = user_rows.get(question.id)
    if row is None:
        row = QuestionRow(text=question.text if question.text is not None else question.id)
        user_rows[question.id] = row
    return row


def build_pivot_table(
    records: Sequence[StatusRecord],
    questions: Optional[Sequence[QuestionRef]] = None,
) -> PivotTable:
    if questions is None:
        questions = collect_questions(records)
    known = {question.id: question for question in questions}

    teams: Dict[str, Dict[str, Dict[str, QuestionRow]]] = {}
    status_index: Dict[Tuple[str, str], str] = {}

    for record in records:
        team_name = (record.team.name if record.team else "") or UNKNOWN_TEAM
        user_name = (record.user.name if record.user else "") or UNKNOWN_USER
        day = record.day.isoformat()

        if record.user and record.user.id:
            status_index[(record.user.id, day)] = record.id

        user_rows = teams.setdefault(team_name, {}).setdefault(user_name, {})
        if record.is_leave:
            for question in questions:
                _question_row(user_rows, question).answers[day] = LEAVE_PLACEHOLDER
            continue

        for response in record.responses:
            ref = response.question
            if ref is None:
                continue
            if ref.text is None:
                ref = known.get(ref.id, ref)
            _question_row(user_rows, ref).answers[day] = response.answer
        for question in questions:
            _question_row(user_rows, question)

    team_rowspans: Dict[str, int] = {}
    user_rowspans: Dict[Tuple[str, str], int] = {}
    for team_name, users in teams.items():
        total = 0
        for user_name, rows in users.items():
            user_rowspans[(team_name, user_name)] = len(rows)
            total += len(rows)
        team_rowspans[team_name] = total

    return PivotTable(
        dates=[day.isoformat() for day in date_range(record.day for record in records)],
        teams=teams,
        team_rowspans=team_rowspans,
        user_rowspans=user_rowspans,
        status_index=status_index,
        question_count=len(questions),
    )


def team_names(records: Iterable[StatusRecord]) -> List[str]:
    names: Dict[str, None] = {}
    for record in records:
        names.setdefault((record.team.name if record.team else "") or UNKNOWN_TEAM, None)
    return list(names)


def paginate_teams(
    records: Sequence[StatusRecord], page: int, per_page: int = 4
) -> Tuple[List[StatusRecord], int]:
    """Records of the teams shown on ``page`` (1-based) and the page count."""

    names = team_names(records)
    total_pages = math.ceil(len(names) / per_page) if names else 0
    page = max(page, 1)
    visible = set(names[(page - 1) * per_page : page * per_page])
    selected = [
        record
        for record in records
        if ((record.team.name if record.team else "") or UNKNOWN_TEAM) in visible
    ]
    return selected, total_pages


def page_window(current: int, total: int, max_visible: int = 5) -> List[Union[int, str]]:
    """Page numbers to offer, with ``"..."`` standing in for skipped runs."""

    if total <= max_visible:
        return list(range(1, total + 1))

    if current <= 3:
        start, end = 1, 4
    elif current >= total - 2:
        start, end = total - 3, total
    else:
        start, end = current - 2, current + 2

    pages: List[Union[int, str]] = []
    if start > 1:
        pages.append(1)
        if start > 2:
            pages.append("...")
    pages.extend(number for number in range(start, end + 1) if 0 < number <= total)
    if end < total:
        if end < total - 1:
            pages.append("...")
        pages.append(total)
    return pages


__all__ = [
    "LEAVE_PLACEHOLDER",
    "PivotRow",
    "PivotTable",
    "QuestionRow",
    "build_pivot_table",
    "date_range",
    "page_window",
    "paginate_teams",
    "team_names",
]
