"""Query parameter and filename helpers for status previews and exports."""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional, Sequence, Tuple

from .models import Person, Team


@dataclass(slots=True)
class ExportFilters:
    team: Optional[str] = None
    user: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    month: Optional[str] = None

    @property
    def has_dates(self) -> bool:
        return bool(self.month or self.start_date or self.end_date)


def month_range(month: str) -> Tuple[str, str]:
    """First and last day of a ``YYYY-MM`` month as ISO strings."""

    try:
        year_text, month_text = month.split("-")
        year, number = int(year_text), int(month_text)
        last_day = calendar.monthrange(year, number)[1]
    except (ValueError, calendar.IllegalMonthError) as exc:
        raise ValueError(f"Invalid month {month!r}. Use YYYY-MM.") from exc
    return date(year, number, 1).isoformat(), date(year, number, last_day).isoformat()


def default_month_range(today: date) -> Tuple[str, str]:
    return month_range(f"{today.year}-{today.month:02d}")


def team_members(team_id: str, teams: Sequence[Team]) -> Sequence[Person]:
    for team in teams:
        if team.id == team_id:
            return team.members
    return []


def build_query_params(filters: ExportFilters, teams: Sequence[Team]) -> Dict[str, str]:
    params: Dict[str, str] = {}

    if filters.team:
        params["teams"] = filters.team
    elif teams:
        params["teams"] = ",".join(team.id for team in teams)

    if filters.user:
        params["user"] = filters.user
    elif filters.team:
        members = team_members(filters.team, teams)
        if members:
            params["users"] = ",".join(member.id for member in members)

    if filters.month:
        params["startDate"], params["endDate"] = month_range(filters.month)
    else:
        if filters.start_date:
            params["startDate"] = filters.start_date
        if filters.end_date:
            params["endDate"] = filters.end_date
    return params


def _slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


def export_filename(filters: ExportFilters, teams: Sequence[Team], today: date) -> str:
    parts = ["status-report"]

    if filters.team:
        team = next((t for t in teams if t.id == filters.team), None)
        parts.append(_slug(team.name if team else "team"))
    else:
        parts.append("all-teams")

    if filters.user:
        people = team_members(filters.team, teams) if filters.team else [m for t in teams for m in t.members]
        person = next((p for p in people if p.id == filters.user), None)
        parts.append(_slug(person.name if person else "user"))
    else:
        parts.append("all-users")

    if filters.month:
        parts.append(filters.month)
    elif filters.start_date and filters.end_date:
        parts.append(f"{filters.start_date}-to-{filters.end_date}")
    else:
        parts.append(f"{today.year}-{today.month:02d}")

    return "-".join(parts) + ".xlsx"


__all__ = [
    "ExportFilters",
    "build_query_params",
    "default_month_range",
    "export_filename",
    "month_range",
]
