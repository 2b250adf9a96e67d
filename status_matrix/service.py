"""Core orchestration logic for Status Matrix."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from .client import StatusApiClient, StatusApiError
from .config import Settings
from .filters import ExportFilters, build_query_params, default_month_range, export_filename
from .importer import group_import_rows, read_workbook_rows
from .models import GroupedStatus, QuestionRef, Session, Team, UploadResult
from .normalize import collect_questions
from .pivot import PivotTable, build_pivot_table, paginate_teams

logger = logging.getLogger(__name__)


class StalePreviewError(RuntimeError):
    """Raised when a preview load finishes after a newer one already did."""


@dataclass(slots=True)
class Preview:
    table: PivotTable
    page: int
    total_pages: int
    questions: List[QuestionRef]
    total_records: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "totalPages": self.total_pages,
            "totalRecords": self.total_records,
            "questions": [{"_id": q.id, "text": q.text} for q in self.questions],
            "table": self.table.to_dict(),
        }


@dataclass(slots=True)
class ImportOutcome:
    entries: List[GroupedStatus]
    upload: Optional[UploadResult] = None
    message: str = ""


class StatusMatrixService:
    """High-level service that loads statuses and exposes reshaping helpers."""

    def __init__(self, settings: Settings, client: StatusApiClient) -> None:
        self.settings = settings
        self.client = client
        # preview tickets keyed by (session token, view)
        self._issued: Dict[Tuple[str, str], int] = {}
        self._latest_applied: Dict[Tuple[str, str], int] = {}

    # region Directory
    async def load_directory(self, session: Session) -> List[Team]:
        teams = await self.client.fetch_teams(session)
        for team in teams:
            try:
                team.members = await self.client.fetch_team_members(session, team.id)
            except StatusApiError as exc:
                logger.warning("Error fetching members for team %s: %s", team.name, exc)
                team.members = []
        return teams

    # endregion

    # region Preview
    async def load_preview(
        self,
        session: Session,
        filters: ExportFilters,
        page: int = 1,
        teams: Optional[List[Team]] = None,
        view: Optional[str] = None,
    ) -> Preview:
        key = (session.token, view or "")
        ticket = self._issued.get(key, 0) + 1
        self._issued[key] = ticket

        if teams is None:
            teams = await self.load_directory(session)
        params = build_query_params(filters, teams)
        result = await self.client.fetch_statuses(session, params)

        latest = self._latest_applied.get(key, 0)
        if ticket < latest:
            raise StalePreviewError(f"preview {ticket} superseded by {latest}")
        self._latest_applied[key] = ticket

        records = result.statuses
        questions = collect_questions(records)
        visible, total_pages = paginate_teams(records, page, self.settings.teams_per_page)
        table = build_pivot_table(visible, questions)
        logger.info(
            "Preview built: %d statuses, %d teams on page %d/%d",
            len(records),
            len(table.teams),
            page,
            total_pages,
        )
        return Preview(
            table=table,
            page=page,
            total_pages=total_pages,
            questions=questions,
            total_records=result.total_records,
        )

    # endregion

    # region Import
    def group_workbook(self, content: bytes) -> List[GroupedStatus]:
        rows = read_workbook_rows(content)
        entries = group_import_rows(rows)
        logger.info("Grouped %d spreadsheet rows into %d status entries", len(rows), len(entries))
        return entries

    async def import_workbook(self, session: Session, content: bytes, *, upload: bool = True) -> ImportOutcome:
        entries = self.group_workbook(content)
        if not entries:
            return ImportOutcome(entries=[], message="No valid data found in the Excel file")
        if not upload:
            return ImportOutcome(
                entries=entries,
                message=f"Processed {len(entries)} status entries",
            )
        result = await self.client.upload_status_json(session, entries)
        if result.success:
            total = result.total_records if result.total_records is not None else len(entries)
            message = (
                f"Successfully processed: {total} records, "
                f"{result.inserted_count} inserted, {result.modified_count} modified"
            )
        else:
            message = f"Error: {result.message}"
        return ImportOutcome(entries=entries, upload=result, message=message)

    async def upload_workbook(self, session: Session, filename: str, content: bytes) -> UploadResult:
        result = await self.client.upload_status_file(session, filename, content)
        if result.success:
            logger.info(
                "File uploaded: %d inserted, %d modified", result.inserted_count, result.modified_count
            )
        else:
            logger.warning("File upload rejected: %s", result.message)
        return result

    # endregion

    # region Export
    async def export_report(
        self,
        session: Session,
        filters: ExportFilters,
        today: Optional[date] = None,
        teams: Optional[List[Team]] = None,
    ) -> Tuple[str, bytes]:
        today = today or date.today()
        if teams is None:
            teams = await self.load_directory(session)
        params = build_query_params(filters, teams)
        if not filters.has_dates:
            params["startDate"], params["endDate"] = default_month_range(today)
        content = await self.client.download_excel_report(session, params)
        return export_filename(filters, teams, today), content

    # endregion


__all__ = ["ImportOutcome", "Preview", "StalePreviewError", "StatusMatrixService"]
