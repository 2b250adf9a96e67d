"""MCP server exposing Status Matrix reshaping tools."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from .client import StatusApiClient
from .config import load_settings
from .filters import ExportFilters
from .importer import group_import_rows
from .models import Session
from .normalize import parse_status_records
from .pivot import build_pivot_table
from .service import StatusMatrixService

mcp = FastMCP("status-matrix")

_settings = load_settings()
_client = StatusApiClient(_settings.api_url, timeout=_settings.request_timeout)
_service = StatusMatrixService(_settings, _client)
_preview_lock = asyncio.Lock()


@mcp.tool()
async def group_status_rows(rows: List[Dict[str, Any]]) -> dict:
    """Group spreadsheet-style rows (Team, Employee, Question, date columns) per employee and day."""

    entries = group_import_rows(rows)
    return {"count": len(entries), "entries": [entry.to_payload() for entry in entries]}


@mcp.tool()
async def build_status_matrix(statuses: List[Dict[str, Any]]) -> dict:
    """Pivot raw status records into the team/user/question by date table."""

    return build_pivot_table(parse_status_records(statuses)).to_dict()


@mcp.tool()
async def preview_statuses(
    team: Optional[str] = None,
    user: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    month: Optional[str] = None,
    page: int = 1,
) -> dict:
    """Fetch statuses from the backend and return one page of the pivot table."""

    if not _settings.api_token:
        raise ValueError("STATUS_API_TOKEN must be configured to fetch statuses")
    filters = ExportFilters(team=team, user=user, start_date=start_date, end_date=end_date, month=month)
    async with _preview_lock:
        preview = await _service.load_preview(Session(token=_settings.api_token), filters, page)
    return preview.to_dict()


__all__ = ["mcp", "group_status_rows", "build_status_matrix", "preview_statuses"]
