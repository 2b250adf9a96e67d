"""Spreadsheet import: read status workbooks and group them per employee and day."""

from __future__ import annotations

import io
import logging
import re
import zipfile
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .models import FlatAnswer, GroupedStatus

logger = logging.getLogger(__name__)

TEAM_COLUMN = "Team"
EMPLOYEE_COLUMN = "Employee"
QUESTION_COLUMN = "Question"
RESERVED_COLUMNS = frozenset({TEAM_COLUMN, EMPLOYEE_COLUMN, QUESTION_COLUMN})
LEAVE_MARKERS = frozenset({"leave", "absent"})

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_LABEL_PATTERN = re.compile(r"^\s*(\d{1,2})\s*-\s*([A-Za-z]{3})[A-Za-z]*\s*$")

WorkbookSource = Union[str, Path, bytes, BinaryIO]

# what openpyxl raises for content that is not a valid xlsx package
_UNREADABLE = (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, SyntaxError)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def is_leave_answer(answer: str) -> bool:
    return answer.strip().lower() in LEAVE_MARKERS


@dataclass(slots=True)
class TeamCarry:
    """Accumulator for the team column: blank cells inherit the last team seen."""

    current: str = ""

    def advance(self, row: Mapping[str, Any]) -> "TeamCarry":
        team = _cell_text(row.get(TEAM_COLUMN))
        return TeamCarry(team) if team else self


def _row_answers(row: Mapping[str, Any], team: str) -> Iterator[FlatAnswer]:
    employee = _cell_text(row.get(EMPLOYEE_COLUMN))
    question = _cell_text(row.get(QUESTION_COLUMN))
    if not (employee and question and team):
        return
    for column, value in row.items():
        if column in RESERVED_COLUMNS:
            continue
        answer = _cell_text(value)
        if not answer:
            continue
        yield FlatAnswer(
            team=team,
            employee=employee,
            question=question,
            date_label=str(column),
            answer=answer,
        )


def flatten_rows(rows: Iterable[Mapping[str, Any]]) -> List[FlatAnswer]:
    """Resolve the carried-forward team of every row and emit one tuple per answer."""

    answers: List[FlatAnswer] = []
    carry = TeamCarry()
    for row in rows:
        carry = carry.advance(row)
        answers.extend(_row_answers(row, carry.current))
    return answers


def group_flat_answers(answers: Iterable[FlatAnswer]) -> List[GroupedStatus]:
    """Merge answers into one entry per (team, employee, date label).

    A leave or absent answer marks the entry as leave, drops the responses
    collected so far and ignores later answers of the group. The flag never
    goes back to false.
    """

    grouped: Dict[Tuple[str, str, str], GroupedStatus] = {}
    for item in answers:
        key = (item.team, item.employee, item.date_label)
        entry = grouped.get(key)
        if entry is None:
            entry = GroupedStatus(team_name=item.team, user_name=item.employee, date=item.date_label)
            grouped[key] = entry

        if is_leave_answer(item.answer):
            entry.is_leave = True
            entry.leave_reason = item.answer
            entry.responses.clear()
        elif not entry.is_leave:
            entry.responses.append({"question": item.question, "answer": item.answer})
    return list(grouped.values())


def group_import_rows(rows: Iterable[Mapping[str, Any]]) -> List[GroupedStatus]:
    return group_flat_answers(flatten_rows(rows))


def header_label(value: Any) -> str:
    """Column title as text; date headers become ``D-Mon`` labels."""

    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return f"{value.day}-{value.strftime('%b')}"
    return _cell_text(value)


class WorkbookError(ValueError):
    """Raised when uploaded content cannot be read as a workbook."""


def _sheet_records(workbook: Any) -> List[Dict[str, Any]]:
    worksheet = workbook.worksheets[0]
    rows = worksheet.iter_rows(values_only=True)
    header_row = next(rows, None)
    if header_row is None:
        return []
    headers = [header_label(value) for value in header_row]

    records: List[Dict[str, Any]] = []
    for values in rows:
        record: Dict[str, Any] = {}
        for header, value in zip(headers, values):
            if not header or value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            record[header] = value if isinstance(value, str) else str(value)
        if record:
            records.append(record)
    logger.debug("Read %d rows with columns %s", len(records), headers)
    return records


def read_workbook_rows(source: WorkbookSource) -> List[Dict[str, Any]]:
    """Return the first worksheet as a list of header-keyed row mappings.

    Empty cells are left out of each mapping and fully empty rows are skipped.
    Content that is not a readable workbook raises :class:`WorkbookError`.
    """

    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    try:
        workbook = load_workbook(source, read_only=True, data_only=True)
    except _UNREADABLE as exc:
        raise WorkbookError("Error processing file") from exc
    try:
        return _sheet_records(workbook)
    except _UNREADABLE as exc:
        raise WorkbookError("Error processing file") from exc
    finally:
        workbook.close()


def parse_date_label(label: str, year: Optional[int] = None) -> Optional[date]:
    """Convert a ``5-May`` style label (or an ISO date) into a calendar date."""

    text = label.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    match = _LABEL_PATTERN.match(text)
    if not match:
        return None
    month = MONTHS.get(match.group(2).lower())
    if month is None:
        return None
    try:
        return date(year or date.today().year, month, int(match.group(1)))
    except ValueError:
        return None


__all__ = [
    "LEAVE_MARKERS",
    "TeamCarry",
    "WorkbookError",
    "flatten_rows",
    "group_flat_answers",
    "group_import_rows",
    "header_label",
    "is_leave_answer",
    "parse_date_label",
    "read_workbook_rows",
]
